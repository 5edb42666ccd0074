"""Error taxonomy for quantum entropy provisioning.

Every failure raised by this package derives from ``ProvisioningError``.
Provider exceptions are wrapped into the matching subclass with the
original exception chained as ``__cause__``.
"""


class ProvisioningError(Exception):
    """Base class for all provisioning errors."""


class KeyGenerationError(ProvisioningError):
    """KEM or signature key pair generation failed."""


class EncryptionError(ProvisioningError):
    """Encapsulation or AEAD encryption failed."""


class DecryptionError(ProvisioningError):
    """Decapsulation or AEAD decryption failed."""


class AuthenticationTagError(DecryptionError):
    """AEAD tag did not verify; ciphertext was tampered or the key is wrong."""


class SigningError(ProvisioningError):
    """Signature generation failed."""


class VerificationError(ProvisioningError):
    """Signature verification could not run on the supplied material."""


class InvalidInputError(ProvisioningError, ValueError):
    """Malformed hex, odd-length strings, under-length buffers."""


class SeedIOError(ProvisioningError):
    """A seed buffer could not be loaded."""
