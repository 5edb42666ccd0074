"""Hybrid KEM + AEAD envelope for entropy delivery.

encrypt_for:
    (ct, ss) = KEM.Encaps(pk)
    encrypted_data = nonce[12] || AEAD.Enc(ss[:32], nonce, entropy)

Each call encapsulates afresh, so an AEAD key is never used with more
than one nonce.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from .aead import KEY_SIZE, NONCE_SIZE, AEADProvider, get_aead_provider
from .errors import DecryptionError, EncryptionError, InvalidInputError
from .providers import KemProvider, get_kem_provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EncryptedEntropy:
    """Entropy encrypted to a device KEM public key."""

    ciphertext: bytes
    encrypted_data: bytes

    def to_dict(self) -> dict:
        return {
            "ciphertext": self.ciphertext.hex(),
            "encrypted_data": self.encrypted_data.hex(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EncryptedEntropy":
        try:
            return cls(
                ciphertext=bytes.fromhex(data["ciphertext"]),
                encrypted_data=bytes.fromhex(data["encrypted_data"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidInputError(f"Malformed encrypted entropy: {e}") from e


class EntropyEnvelope:
    """Encrypts entropy for a device and decrypts it on the device."""

    def __init__(
        self,
        kem: Optional[KemProvider] = None,
        aead: Optional[AEADProvider] = None,
    ) -> None:
        self.kem = kem or get_kem_provider()
        self.aead = aead or get_aead_provider()

    def encrypt_for(self, recipient_kem_public_key: bytes, entropy: bytes) -> EncryptedEntropy:
        """Encrypt entropy to a recipient's KEM public key.

        Raises:
            EncryptionError: On invalid public key or provider failure
        """
        expected = self.kem.sizes["public_key"]
        if len(recipient_kem_public_key) != expected:
            raise EncryptionError(
                f"Invalid public key length: {len(recipient_kem_public_key)} != {expected}"
            )

        try:
            ciphertext, shared_secret = self.kem.encapsulate(recipient_kem_public_key)
        except Exception as e:
            raise EncryptionError(f"KEM encapsulation failed: {e}") from e

        if len(shared_secret) < KEY_SIZE:
            raise EncryptionError(
                f"Shared secret too short for AEAD key: {len(shared_secret)} < {KEY_SIZE}"
            )

        nonce = secrets.token_bytes(NONCE_SIZE)
        try:
            sealed = self.aead.encrypt(shared_secret[:KEY_SIZE], nonce, entropy)
        except Exception as e:
            raise EncryptionError(f"AEAD encryption failed: {e}") from e

        logger.debug("Encrypted %d bytes of entropy (%s)", len(entropy), self.aead.name)
        return EncryptedEntropy(ciphertext=ciphertext, encrypted_data=nonce + sealed)

    def decrypt(self, encrypted: EncryptedEntropy, recipient_kem_secret_key: bytes) -> bytes:
        """Decrypt entropy with the recipient's KEM secret key.

        Raises:
            DecryptionError: On malformed input, wrong key or tampering
        """
        if len(encrypted.encrypted_data) < NONCE_SIZE:
            raise DecryptionError("Invalid ciphertext: shorter than nonce")

        sizes = self.kem.sizes
        if len(recipient_kem_secret_key) != sizes["secret_key"]:
            raise DecryptionError(
                f"Invalid secret key length: {len(recipient_kem_secret_key)} != {sizes['secret_key']}"
            )
        if len(encrypted.ciphertext) != sizes["ciphertext"]:
            raise DecryptionError(
                f"Invalid ciphertext length: {len(encrypted.ciphertext)} != {sizes['ciphertext']}"
            )

        try:
            shared_secret = self.kem.decapsulate(encrypted.ciphertext, recipient_kem_secret_key)
        except Exception as e:
            raise DecryptionError(f"KEM decapsulation failed: {e}") from e

        if len(shared_secret) < KEY_SIZE:
            raise DecryptionError(
                f"Shared secret too short for AEAD key: {len(shared_secret)} < {KEY_SIZE}"
            )

        nonce = encrypted.encrypted_data[:NONCE_SIZE]
        sealed = encrypted.encrypted_data[NONCE_SIZE:]
        try:
            return self.aead.decrypt(shared_secret[:KEY_SIZE], nonce, sealed)
        except DecryptionError:
            raise
        except Exception as e:
            raise DecryptionError(f"AEAD decryption failed: {e}") from e
