"""Device credential generation."""

import logging
from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from Crypto.Hash import SHA3_256

from .errors import KeyGenerationError
from .providers import (
    KemProvider,
    SignatureProvider,
    get_kem_provider,
    get_signature_provider,
)

if TYPE_CHECKING:
    from .qrng import QuantumEntropyEngine

logger = logging.getLogger(__name__)

QUANTUM_SEED_SIZE = 64


@dataclass(frozen=True)
class DeviceCredentials:
    """KEM and signature key pairs for one device."""

    kem_public_key: bytes
    kem_secret_key: bytes
    sig_public_key: bytes
    sig_secret_key: bytes

    def public_key_hash(self) -> dict:
        """Get hashes of the public keys for identification."""
        return {
            "kem": SHA3_256.new(self.kem_public_key).hexdigest(),
            "signature": SHA3_256.new(self.sig_public_key).hexdigest(),
        }

    def __repr__(self) -> str:
        hashes = self.public_key_hash()
        return (
            f"DeviceCredentials(kem={hashes['kem'][:16]}..., "
            f"signature={hashes['signature'][:16]}...)"
        )


class DeviceCredentialFactory:
    """Generates device credential bundles.

    Keys are produced by the configured providers; a bundle is returned only
    when both key pairs were generated successfully.
    """

    def __init__(
        self,
        kem: Optional[KemProvider] = None,
        signature: Optional[SignatureProvider] = None,
    ) -> None:
        self.kem = kem or get_kem_provider()
        self.signature = signature or get_signature_provider()
        self._warned_discard = False

    def _keypair(self, provider, label: str) -> tuple:
        try:
            public_key, secret_key = provider.keypair()
        except KeyGenerationError:
            raise
        except Exception as e:
            raise KeyGenerationError(f"{label} key generation failed: {e}") from e

        sizes = provider.sizes
        if len(public_key) != sizes["public_key"] or len(secret_key) != sizes["secret_key"]:
            raise KeyGenerationError(
                f"{label} provider returned keys of unexpected size "
                f"({len(public_key)}/{len(secret_key)})"
            )
        return public_key, secret_key

    def generate(self) -> DeviceCredentials:
        """Generate a fresh credential bundle.

        Raises:
            KeyGenerationError: If either key pair cannot be generated
        """
        kem_public, kem_secret = self._keypair(self.kem, "KEM")
        try:
            sig_public, sig_secret = self._keypair(self.signature, "Signature")
        except KeyGenerationError:
            del kem_public, kem_secret
            raise

        logger.debug("Generated device credentials (%s, %s)",
                     self.kem.algorithm.value, self.signature.algorithm.value)
        return DeviceCredentials(
            kem_public_key=kem_public,
            kem_secret_key=kem_secret,
            sig_public_key=sig_public,
            sig_secret_key=sig_secret,
        )

    def generate_quantum_seeded(self, engine: "QuantumEntropyEngine") -> DeviceCredentials:
        """Generate credentials after drawing quantum entropy from ``engine``.

        The drawn entropy is not passed to key generation: the providers use
        their own internal randomness, so the resulting keys are not bound to
        the engine output.
        """
        quantum_entropy = engine.generate_refreshed(QUANTUM_SEED_SIZE)
        if not self._warned_discard:
            logger.warning(
                "Providers expose no seeded key generation; "
                "%d bytes of quantum entropy are not bound to the generated keys",
                len(quantum_entropy),
            )
            self._warned_discard = True
        del quantum_entropy
        return self.generate()

    def security_info(self) -> dict:
        """Get security information about generated credentials."""
        return {
            "kem_algorithm": self.kem.algorithm.value,
            "kem_backend": getattr(self.kem, "backend", "custom"),
            "kem_public_key_size": self.kem.sizes["public_key"],
            "kem_secret_key_size": self.kem.sizes["secret_key"],
            "signature_algorithm": self.signature.algorithm.value,
            "signature_backend": getattr(self.signature, "backend", "custom"),
            "sig_public_key_size": self.signature.sizes["public_key"],
            "sig_secret_key_size": self.signature.sizes["secret_key"],
            "signature_size": self.signature.sizes["signature"],
        }
