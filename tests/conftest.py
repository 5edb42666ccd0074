"""Pytest configuration and fixtures for qrng-provision tests."""

import json
import logging
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from qrng_provision.credentials import DeviceCredentialFactory, DeviceCredentials
from qrng_provision.providers import PythonDilithiumScheme, PythonKyberScheme
from qrng_provision.qrng import QuantumEntropyEngine


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def zero_seed() -> bytes:
    """256-byte all-zero seed."""
    return b"\x00" * 256


@pytest.fixture
def ff_seed() -> bytes:
    """256-byte all-0xFF seed."""
    return b"\xff" * 256


@pytest.fixture
def engine(zero_seed: bytes, ff_seed: bytes) -> QuantumEntropyEngine:
    """Engine seeded with the zero / 0xFF seed pair."""
    return QuantumEntropyEngine(zero_seed, ff_seed)


@pytest.fixture
def seed_files(temp_dir: Path) -> tuple:
    """Hex-encoded seed files in the reference loader format."""
    seed_a = temp_dir / "seed_a.bin"
    seed_b = temp_dir / "seed_b.bin"
    seed_a.write_text("0123456789abcdef" * 32 + "\n")
    seed_b.write_text("fedcba9876543210" * 32 + "\n")
    return seed_a, seed_b


@pytest.fixture(scope="session")
def kem_provider() -> PythonKyberScheme:
    """Pure Python ML-KEM-1024 provider."""
    return PythonKyberScheme()


@pytest.fixture(scope="session")
def signature_provider() -> PythonDilithiumScheme:
    """Pure Python ML-DSA-65 provider."""
    return PythonDilithiumScheme()


@pytest.fixture(scope="session")
def factory(kem_provider, signature_provider) -> DeviceCredentialFactory:
    """Credential factory on the pure Python providers."""
    return DeviceCredentialFactory(kem=kem_provider, signature=signature_provider)


@pytest.fixture(scope="session")
def credentials(factory: DeviceCredentialFactory) -> DeviceCredentials:
    """One device's credentials, shared across the session."""
    return factory.generate()


@pytest.fixture(scope="session")
def other_credentials(factory: DeviceCredentialFactory) -> DeviceCredentials:
    """A second, unrelated device's credentials."""
    return factory.generate()


@pytest.fixture(autouse=True)
def reset_package_logger() -> Generator[None, None, None]:
    """Undo handlers installed by the CLI so caplog sees package records."""
    yield
    logger = logging.getLogger("qrng_provision")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def sample_config_yaml(temp_dir: Path, seed_files: tuple) -> Path:
    """YAML configuration pointing at the seed files, pure Python backend."""
    seed_a, seed_b = seed_files
    config_path = temp_dir / "config.yaml"
    config_path.write_text(
        "crypto:\n"
        "  kem_algorithm: ml-kem-1024\n"
        "  signature_algorithm: ml-dsa-65\n"
        "  backend: pure-python\n"
        "entropy:\n"
        f"  seed_a_path: {seed_a}\n"
        f"  seed_b_path: {seed_b}\n"
        "  seed_encoding: hex\n"
        "logging:\n"
        "  level: WARNING\n"
    )
    return config_path


@pytest.fixture
def sample_config_json(temp_dir: Path, seed_files: tuple) -> Path:
    """JSON configuration pointing at the seed files, pure Python backend."""
    seed_a, seed_b = seed_files
    config_path = temp_dir / "config.json"
    config_path.write_text(json.dumps({
        "crypto": {"backend": "pure-python", "signature_algorithm": "dilithium3"},
        "entropy": {"seed_a_path": str(seed_a), "seed_b_path": str(seed_b)},
    }))
    return config_path
