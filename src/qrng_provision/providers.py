"""Post-quantum crypto providers for device provisioning.

The protocol layer talks to KEM and signature implementations only through
the ``KemProvider`` and ``SignatureProvider`` protocols. Two backends are
available:
- liboqs (Open Quantum Safe) when ``liboqs-python`` is installed
- Pure Python ``kyber-py`` / ``dilithium-py`` implementations

Supported algorithms:
- ML-KEM-1024 (Kyber1024): NIST Level 5 KEM
- ML-DSA-65 (Dilithium3): NIST Level 3 signatures
"""

import logging
from enum import Enum
from typing import Dict, Protocol, Tuple, runtime_checkable

from dilithium_py.ml_dsa import ML_DSA_65
from kyber_py.ml_kem import ML_KEM_1024

from .errors import InvalidInputError

# Try to import liboqs for the native PQC implementation
try:
    import oqs
    HAS_LIBOQS = True
except ImportError:
    HAS_LIBOQS = False

logger = logging.getLogger(__name__)


class KemAlgorithm(Enum):
    """Supported key-encapsulation algorithms."""

    ML_KEM_1024 = "ml-kem-1024"

    @classmethod
    def from_string(cls, value: str) -> "KemAlgorithm":
        """Convert string to algorithm enum."""
        mapping = {
            "ml-kem-1024": cls.ML_KEM_1024,
            "mlkem1024": cls.ML_KEM_1024,
            "kyber1024": cls.ML_KEM_1024,
        }
        try:
            return mapping[value.lower()]
        except KeyError:
            raise InvalidInputError(f"Unsupported KEM algorithm: {value}") from None

    @property
    def oqs_name(self) -> str:
        """Get liboqs algorithm name."""
        return {KemAlgorithm.ML_KEM_1024: "ML-KEM-1024"}[self]


class SignatureAlgorithm(Enum):
    """Supported signature algorithms."""

    ML_DSA_65 = "ml-dsa-65"

    @classmethod
    def from_string(cls, value: str) -> "SignatureAlgorithm":
        """Convert string to algorithm enum."""
        mapping = {
            "ml-dsa-65": cls.ML_DSA_65,
            "mldsa65": cls.ML_DSA_65,
            "dilithium3": cls.ML_DSA_65,
        }
        try:
            return mapping[value.lower()]
        except KeyError:
            raise InvalidInputError(f"Unsupported signature algorithm: {value}") from None

    @property
    def oqs_name(self) -> str:
        """Get liboqs algorithm name."""
        return {SignatureAlgorithm.ML_DSA_65: "ML-DSA-65"}[self]


# Key sizes from FIPS 203 / FIPS 204
KEM_SIZES = {
    KemAlgorithm.ML_KEM_1024: {
        "public_key": 1568,
        "secret_key": 3168,
        "ciphertext": 1568,
        "shared_secret": 32,
        "security_level": 5,
    },
}

SIGNATURE_SIZES = {
    SignatureAlgorithm.ML_DSA_65: {
        "public_key": 1952,
        "secret_key": 4032,
        "signature": 3309,
        "security_level": 3,
    },
}


@runtime_checkable
class KemProvider(Protocol):
    """Capability interface for key encapsulation."""

    algorithm: KemAlgorithm
    sizes: Dict[str, int]

    def keypair(self) -> Tuple[bytes, bytes]:
        """Generate a key pair. Returns (public_key, secret_key)."""
        ...

    def encapsulate(self, public_key: bytes) -> Tuple[bytes, bytes]:
        """Returns (ciphertext, shared_secret)."""
        ...

    def decapsulate(self, ciphertext: bytes, secret_key: bytes) -> bytes:
        """Recover the shared secret."""
        ...


@runtime_checkable
class SignatureProvider(Protocol):
    """Capability interface for signatures."""

    algorithm: SignatureAlgorithm
    sizes: Dict[str, int]

    def keypair(self) -> Tuple[bytes, bytes]:
        """Generate a key pair. Returns (public_key, secret_key)."""
        ...

    def sign(self, message: bytes, secret_key: bytes) -> bytes:
        """Sign a message."""
        ...

    def verify(self, message: bytes, signature: bytes, public_key: bytes) -> bool:
        """Verify a signature; False for a cryptographically invalid one."""
        ...


class OQSKemScheme:
    """liboqs-based KEM implementation."""

    backend = "liboqs"

    def __init__(self, algorithm: KemAlgorithm = KemAlgorithm.ML_KEM_1024) -> None:
        if not HAS_LIBOQS:
            raise RuntimeError("liboqs not available")
        self.algorithm = algorithm
        self.sizes = KEM_SIZES[algorithm]
        self.oqs_name = algorithm.oqs_name

    def keypair(self) -> Tuple[bytes, bytes]:
        with oqs.KeyEncapsulation(self.oqs_name) as kem:
            public_key = kem.generate_keypair()
            secret_key = kem.export_secret_key()
            return (bytes(public_key), bytes(secret_key))

    def encapsulate(self, public_key: bytes) -> Tuple[bytes, bytes]:
        with oqs.KeyEncapsulation(self.oqs_name) as kem:
            ciphertext, shared_secret = kem.encap_secret(public_key)
            return (bytes(ciphertext), bytes(shared_secret))

    def decapsulate(self, ciphertext: bytes, secret_key: bytes) -> bytes:
        with oqs.KeyEncapsulation(self.oqs_name, secret_key) as kem:
            return bytes(kem.decap_secret(ciphertext))


class OQSSignatureScheme:
    """liboqs-based signature implementation."""

    backend = "liboqs"

    def __init__(self, algorithm: SignatureAlgorithm = SignatureAlgorithm.ML_DSA_65) -> None:
        if not HAS_LIBOQS:
            raise RuntimeError("liboqs not available")
        self.algorithm = algorithm
        self.sizes = SIGNATURE_SIZES[algorithm]
        self.oqs_name = algorithm.oqs_name

    def keypair(self) -> Tuple[bytes, bytes]:
        with oqs.Signature(self.oqs_name) as sig:
            public_key = sig.generate_keypair()
            secret_key = sig.export_secret_key()
            return (bytes(public_key), bytes(secret_key))

    def sign(self, message: bytes, secret_key: bytes) -> bytes:
        with oqs.Signature(self.oqs_name, secret_key) as sig:
            return bytes(sig.sign(message))

    def verify(self, message: bytes, signature: bytes, public_key: bytes) -> bool:
        with oqs.Signature(self.oqs_name) as sig:
            return bool(sig.verify(message, signature, public_key))


class PythonKyberScheme:
    """Pure Python ML-KEM-1024 implementation (kyber-py)."""

    backend = "pure-python"

    def __init__(self, algorithm: KemAlgorithm = KemAlgorithm.ML_KEM_1024) -> None:
        self.algorithm = algorithm
        self.sizes = KEM_SIZES[algorithm]

    def keypair(self) -> Tuple[bytes, bytes]:
        ek, dk = ML_KEM_1024.keygen()
        return (ek, dk)

    def encapsulate(self, public_key: bytes) -> Tuple[bytes, bytes]:
        # kyber-py returns the shared key first
        shared_secret, ciphertext = ML_KEM_1024.encaps(public_key)
        return (ciphertext, shared_secret)

    def decapsulate(self, ciphertext: bytes, secret_key: bytes) -> bytes:
        return ML_KEM_1024.decaps(secret_key, ciphertext)


class PythonDilithiumScheme:
    """Pure Python ML-DSA-65 implementation (dilithium-py)."""

    backend = "pure-python"

    def __init__(self, algorithm: SignatureAlgorithm = SignatureAlgorithm.ML_DSA_65) -> None:
        self.algorithm = algorithm
        self.sizes = SIGNATURE_SIZES[algorithm]

    def keypair(self) -> Tuple[bytes, bytes]:
        pk, sk = ML_DSA_65.keygen()
        return (pk, sk)

    def sign(self, message: bytes, secret_key: bytes) -> bytes:
        return ML_DSA_65.sign(secret_key, message)

    def verify(self, message: bytes, signature: bytes, public_key: bytes) -> bool:
        try:
            return bool(ML_DSA_65.verify(public_key, message, signature))
        except ValueError:
            # dilithium-py rejects some malformed encodings by raising
            return False


BACKENDS = ("auto", "liboqs", "pure-python")


def _check_backend(backend: str) -> str:
    backend = backend.lower()
    if backend not in BACKENDS:
        raise InvalidInputError(f"Unknown crypto backend: {backend}")
    if backend == "liboqs" and not HAS_LIBOQS:
        raise InvalidInputError("liboqs backend requested but liboqs-python is not installed")
    return backend


def get_kem_provider(
    algorithm: KemAlgorithm = KemAlgorithm.ML_KEM_1024,
    backend: str = "auto",
) -> KemProvider:
    """Get a KEM provider.

    Priority for ``auto``:
    1. liboqs (if available)
    2. Pure Python kyber-py
    """
    backend = _check_backend(backend)
    if backend == "liboqs" or (backend == "auto" and HAS_LIBOQS):
        provider = OQSKemScheme(algorithm)
    else:
        provider = PythonKyberScheme(algorithm)
    logger.debug("Using %s KEM provider for %s", provider.backend, algorithm.value)
    return provider


def get_signature_provider(
    algorithm: SignatureAlgorithm = SignatureAlgorithm.ML_DSA_65,
    backend: str = "auto",
) -> SignatureProvider:
    """Get a signature provider.

    Priority for ``auto``:
    1. liboqs (if available)
    2. Pure Python dilithium-py
    """
    backend = _check_backend(backend)
    if backend == "liboqs" or (backend == "auto" and HAS_LIBOQS):
        provider = OQSSignatureScheme(algorithm)
    else:
        provider = PythonDilithiumScheme(algorithm)
    logger.debug("Using %s signature provider for %s", provider.backend, algorithm.value)
    return provider


def check_pqc_availability() -> dict:
    """Check which PQC implementations are available.

    Returns:
        Dictionary with availability status
    """
    result = {
        "liboqs": HAS_LIBOQS,
        "kyber_py": True,
        "dilithium_py": True,
        "default_backend": "liboqs" if HAS_LIBOQS else "pure-python",
        "kem_algorithms": [a.value for a in KemAlgorithm],
        "signature_algorithms": [a.value for a in SignatureAlgorithm],
    }
    if HAS_LIBOQS:
        result["liboqs_version"] = getattr(oqs, "__version__", "unknown")
    return result
