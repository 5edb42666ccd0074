"""Quantum Entropy Provisioning.

This package provisions quantum-resistant identities for edge devices and
delivers device-bound entropy, including:
- Quantum seed combination and per-device entropy derivation
- Post-quantum credential generation (ML-KEM/Kyber, ML-DSA/Dilithium)
- Hybrid KEM + AES-GCM entropy delivery
- Signed challenge-response authentication
"""

__version__ = "0.1.0"
__author__ = "Qbitel EdgeOS Team"

from .auth import AuthProtocol, AuthRequest
from .credentials import DeviceCredentialFactory, DeviceCredentials
from .envelope import EncryptedEntropy, EntropyEnvelope
from .qrng import FileSeedSource, MemorySeedSource, QuantumEntropyEngine, combine_seeds
from .service import QuantumEntropyService

__all__ = [
    "AuthProtocol",
    "AuthRequest",
    "DeviceCredentialFactory",
    "DeviceCredentials",
    "EncryptedEntropy",
    "EntropyEnvelope",
    "FileSeedSource",
    "MemorySeedSource",
    "QuantumEntropyEngine",
    "QuantumEntropyService",
    "combine_seeds",
]
