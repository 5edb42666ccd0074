"""Challenge-response device authentication.

The signed message is ``device_id || "|" || lowercase_hex(nonce)``.
Nonce freshness and replay tracking belong to the session manager that
issues the nonces.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .errors import InvalidInputError, SigningError, VerificationError
from .providers import SignatureProvider, get_signature_provider

logger = logging.getLogger(__name__)


def canonical_message(device_id: str, nonce: bytes) -> bytes:
    """Build the exact byte string that is signed for an auth request."""
    if not isinstance(device_id, str):
        raise InvalidInputError("device_id must be a string")
    if not isinstance(nonce, (bytes, bytearray)):
        raise InvalidInputError("nonce must be bytes")
    return f"{device_id}|{bytes(nonce).hex()}".encode("utf-8")


@dataclass(frozen=True)
class AuthRequest:
    """A signed authentication request."""

    device_id: str
    nonce: bytes
    signature: bytes

    def to_dict(self) -> dict:
        return {
            "device_id": self.device_id,
            "nonce": self.nonce.hex(),
            "signature": self.signature.hex(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AuthRequest":
        try:
            return cls(
                device_id=str(data["device_id"]),
                nonce=bytes.fromhex(data["nonce"]),
                signature=bytes.fromhex(data["signature"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidInputError(f"Malformed auth request: {e}") from e


class AuthProtocol:
    """Builds and verifies signed auth requests."""

    def __init__(self, signature: Optional[SignatureProvider] = None) -> None:
        self.signature = signature or get_signature_provider()

    def build_request(
        self,
        device_id: str,
        nonce: bytes,
        signing_secret_key: bytes,
    ) -> AuthRequest:
        """Sign ``(device_id, nonce)`` with the device's signature key.

        Raises:
            SigningError: On invalid secret key or provider failure
        """
        message = canonical_message(device_id, nonce)

        expected = self.signature.sizes["secret_key"]
        if len(signing_secret_key) != expected:
            raise SigningError(
                f"Invalid secret key length: {len(signing_secret_key)} != {expected}"
            )

        try:
            signature = self.signature.sign(message, signing_secret_key)
        except Exception as e:
            raise SigningError(f"Signing failed: {e}") from e

        return AuthRequest(device_id=device_id, nonce=bytes(nonce), signature=signature)

    def verify_request(self, request: AuthRequest, signing_public_key: bytes) -> bool:
        """Verify an auth request.

        Returns:
            True if the signature is valid, False if it is not

        Raises:
            VerificationError: If the public key material is unusable
        """
        expected = self.signature.sizes["public_key"]
        if len(signing_public_key) != expected:
            raise VerificationError(
                f"Invalid public key length: {len(signing_public_key)} != {expected}"
            )

        if len(request.signature) != self.signature.sizes["signature"]:
            logger.debug("Rejecting auth request for %s: bad signature length", request.device_id)
            return False

        message = canonical_message(request.device_id, request.nonce)
        try:
            valid = self.signature.verify(message, request.signature, signing_public_key)
        except Exception as e:
            raise VerificationError(f"Signature verification failed to run: {e}") from e

        logger.debug("Auth request for %s: %s", request.device_id, "valid" if valid else "invalid")
        return bool(valid)
