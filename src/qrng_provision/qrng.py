"""Quantum entropy engine.

Two independent quantum seed buffers are combined with a domain-separated
SHA-256 digest. The digest keys a ChaCha20 keystream that serves as the
deterministic generator for device entropy.

Combined seed:
    SHA256("QRNG_QUANTUM_ENTROPY_" || seed_a || "_SEPARATOR_" || seed_b || "_END")

Device entropy:
    SHA256("DEVICE_ENTROPY_" || device_id || "_" || refreshed(size + 32))[:min(size, 32)]
"""

import logging
import string
import threading
from pathlib import Path
from typing import Mapping, Optional, Protocol, Union, runtime_checkable

from Crypto.Cipher import ChaCha20
from Crypto.Hash import SHA256

from .errors import InvalidInputError, SeedIOError

logger = logging.getLogger(__name__)

SEED_PREFIX = b"QRNG_QUANTUM_ENTROPY_"
SEED_SEPARATOR = b"_SEPARATOR_"
SEED_SUFFIX = b"_END"
DEVICE_PREFIX = b"DEVICE_ENTROPY_"
DEVICE_SEPARATOR = b"_"

GENERATOR_SEED_SIZE = 32
MAX_DEVICE_ENTROPY = 32

_HEX_DIGITS = frozenset(string.hexdigits.encode())
_WHITESPACE = string.whitespace.encode()


def hex_to_bytes(hex_str: str) -> bytes:
    """Convert a hex string to bytes, ignoring surrounding and embedded whitespace."""
    cleaned = "".join(hex_str.split())
    if len(cleaned) % 2 != 0:
        raise InvalidInputError("Hex string must have even length")
    try:
        return bytes.fromhex(cleaned)
    except ValueError as e:
        raise InvalidInputError(f"Invalid hex string: {e}") from e


@runtime_checkable
class SeedSource(Protocol):
    """Supplies raw seed buffers by opaque reference."""

    def load(self, ref: str) -> bytes:
        ...


class FileSeedSource:
    """Loads seed buffers from files.

    Files may hold raw binary or hex text. With ``encoding="auto"`` a file
    whose non-whitespace content is entirely hex digits is decoded as hex.
    """

    ENCODINGS = ("auto", "hex", "raw")

    def __init__(self, encoding: str = "auto", base_dir: Optional[Path] = None) -> None:
        if encoding not in self.ENCODINGS:
            raise InvalidInputError(f"Unknown seed encoding: {encoding}")
        self.encoding = encoding
        self.base_dir = Path(base_dir) if base_dir else None

    def _resolve(self, ref: Union[str, Path]) -> Path:
        path = Path(ref)
        if self.base_dir and not path.is_absolute():
            path = self.base_dir / path
        return path

    def load(self, ref: Union[str, Path]) -> bytes:
        path = self._resolve(ref)
        if not path.exists():
            raise SeedIOError(f"File not found: {path}")
        try:
            with open(path, "rb") as f:
                content = f.read()
        except OSError as e:
            raise SeedIOError(f"Failed to read file {path}: {e}") from e

        if self.encoding == "raw":
            return content
        if self.encoding == "hex" or _looks_like_hex(content):
            try:
                text = content.decode("ascii")
            except UnicodeDecodeError as e:
                raise InvalidInputError(f"Seed file {path} is not hex text") from e
            return hex_to_bytes(text)
        return content


def _looks_like_hex(content: bytes) -> bool:
    stripped = bytes(b for b in content if b not in _WHITESPACE)
    return bool(stripped) and all(b in _HEX_DIGITS for b in stripped)


class MemorySeedSource:
    """Seed source backed by an in-memory mapping."""

    def __init__(self, seeds: Mapping[str, bytes]) -> None:
        self._seeds = dict(seeds)

    def load(self, ref: str) -> bytes:
        try:
            return self._seeds[ref]
        except KeyError:
            raise SeedIOError(f"Unknown seed reference: {ref}") from None


def combine_seeds(seed_a: bytes, seed_b: bytes, hash_module=SHA256) -> bytes:
    """Combine two quantum seeds with domain-separated framing."""
    h = hash_module.new()
    h.update(SEED_PREFIX)
    h.update(seed_a)
    h.update(SEED_SEPARATOR)
    h.update(seed_b)
    h.update(SEED_SUFFIX)
    return h.digest()


class _KeystreamGenerator:
    """ChaCha20 keystream used as a seeded deterministic generator."""

    def __init__(self, seed: bytes) -> None:
        self._cipher = ChaCha20.new(key=seed, nonce=bytes(8))

    def read(self, size: int) -> bytes:
        return self._cipher.encrypt(bytes(size))


class QuantumEntropyEngine:
    """Deterministic entropy engine seeded from two quantum seed buffers.

    Draws on one instance are serialized by an internal lock; the generator
    state advances on every draw.
    """

    def __init__(self, seed_a: bytes, seed_b: bytes, hash_module=SHA256) -> None:
        """Initialize the engine.

        Args:
            seed_a: First quantum seed buffer
            seed_b: Second quantum seed buffer
            hash_module: pycryptodome hash module used to combine seeds

        Raises:
            InvalidInputError: If a seed is empty or the digest is too short
        """
        for name, seed in (("seed_a", seed_a), ("seed_b", seed_b)):
            if not isinstance(seed, (bytes, bytearray)):
                raise InvalidInputError(f"{name} must be bytes, got {type(seed).__name__}")
            if not seed:
                raise InvalidInputError(f"{name} is empty")

        self._seed_a = bytes(seed_a)
        self._seed_b = bytes(seed_b)
        self._hash_module = hash_module
        self._lock = threading.RLock()
        self._generator = _KeystreamGenerator(self._generator_seed())

        logger.debug(
            "Quantum entropy engine seeded (seed_a=%d bytes, seed_b=%d bytes)",
            len(self._seed_a),
            len(self._seed_b),
        )

    @classmethod
    def from_source(
        cls,
        source: SeedSource,
        seed_a_ref: str,
        seed_b_ref: str,
        hash_module=SHA256,
    ) -> "QuantumEntropyEngine":
        """Load both seeds from a seed source and build an engine."""
        seed_a = source.load(seed_a_ref)
        seed_b = source.load(seed_b_ref)
        return cls(seed_a, seed_b, hash_module=hash_module)

    @property
    def seed_a(self) -> bytes:
        return self._seed_a

    @property
    def seed_b(self) -> bytes:
        return self._seed_b

    def combined_seed(self) -> bytes:
        """Domain-separated digest of both seeds."""
        return combine_seeds(self._seed_a, self._seed_b, self._hash_module)

    def _generator_seed(self) -> bytes:
        digest = self.combined_seed()
        if len(digest) < GENERATOR_SEED_SIZE:
            raise InvalidInputError(
                f"Combined seed is {len(digest)} bytes, need {GENERATOR_SEED_SIZE}"
            )
        return digest[:GENERATOR_SEED_SIZE]

    def generate(self, size: int) -> bytes:
        """Draw ``size`` bytes from the generator, advancing its state."""
        if size < 0:
            raise InvalidInputError(f"Entropy size must be non-negative, got {size}")
        with self._lock:
            return self._generator.read(size)

    def generate_refreshed(self, size: int) -> bytes:
        """Reseed from the combined quantum seed, then draw ``size`` bytes.

        The seeds are static, so the reseed always restores the same state:
        consecutive calls return identical output. Refreshing does not inject
        new randomness.
        """
        if size < 0:
            raise InvalidInputError(f"Entropy size must be non-negative, got {size}")
        with self._lock:
            self._generator = _KeystreamGenerator(self._generator_seed())
            return self.generate(size)

    def derive(self, device_id: str, size: int) -> bytes:
        """Derive device-bound entropy.

        Returns ``min(size, 32)`` bytes; larger requests are capped.
        """
        if not isinstance(device_id, str):
            raise InvalidInputError("device_id must be a string")
        if size <= 0:
            raise InvalidInputError(f"Entropy size must be positive, got {size}")

        with self._lock:
            base_entropy = self.generate_refreshed(size + 32)

        h = self._hash_module.new()
        h.update(DEVICE_PREFIX)
        h.update(device_id.encode("utf-8"))
        h.update(DEVICE_SEPARATOR)
        h.update(base_entropy)
        return h.digest()[: min(size, MAX_DEVICE_ENTROPY)]

    def seed_info(self) -> dict:
        """Get quantum seed information."""
        return {
            "seed_a_size": len(self._seed_a),
            "seed_b_size": len(self._seed_b),
            "combiner": self._hash_module.__name__.rsplit(".", 1)[-1],
            "generator": "ChaCha20",
        }
