"""Authenticated encryption provider (AES-256-GCM via pycryptodome)."""

from typing import Protocol, runtime_checkable

from Crypto.Cipher import AES

from .errors import AuthenticationTagError, InvalidInputError

KEY_SIZE = 32
NONCE_SIZE = 12
TAG_SIZE = 16


@runtime_checkable
class AEADProvider(Protocol):
    """Capability interface for authenticated symmetric encryption."""

    name: str

    def encrypt(self, key: bytes, nonce: bytes, plaintext: bytes) -> bytes:
        """Returns ciphertext || tag."""
        ...

    def decrypt(self, key: bytes, nonce: bytes, ciphertext: bytes) -> bytes:
        """Returns plaintext or raises AuthenticationTagError."""
        ...


class AESGCMProvider:
    """AES-256-GCM with a 96-bit nonce and 128-bit tag appended to the ciphertext."""

    name = "aes-256-gcm"

    @staticmethod
    def _check(key: bytes, nonce: bytes) -> None:
        if len(key) != KEY_SIZE:
            raise InvalidInputError(f"AEAD key must be {KEY_SIZE} bytes, got {len(key)}")
        if len(nonce) != NONCE_SIZE:
            raise InvalidInputError(f"AEAD nonce must be {NONCE_SIZE} bytes, got {len(nonce)}")

    def encrypt(self, key: bytes, nonce: bytes, plaintext: bytes) -> bytes:
        self._check(key, nonce)
        cipher = AES.new(key, AES.MODE_GCM, nonce=nonce, mac_len=TAG_SIZE)
        ciphertext, tag = cipher.encrypt_and_digest(plaintext)
        return ciphertext + tag

    def decrypt(self, key: bytes, nonce: bytes, ciphertext: bytes) -> bytes:
        self._check(key, nonce)
        if len(ciphertext) < TAG_SIZE:
            raise InvalidInputError(
                f"AEAD ciphertext shorter than the {TAG_SIZE}-byte tag: {len(ciphertext)}"
            )
        body, tag = ciphertext[:-TAG_SIZE], ciphertext[-TAG_SIZE:]
        cipher = AES.new(key, AES.MODE_GCM, nonce=nonce, mac_len=TAG_SIZE)
        try:
            return cipher.decrypt_and_verify(body, tag)
        except ValueError as e:
            raise AuthenticationTagError(f"AEAD authentication failed: {e}") from e


def get_aead_provider(name: str = "aes-256-gcm") -> AEADProvider:
    """Resolve an AEAD provider by name."""
    n = name.strip().lower()
    if n in ("aes-256-gcm", "aes-gcm", "aesgcm"):
        return AESGCMProvider()
    raise InvalidInputError(f"Unsupported AEAD algorithm: {name}")
