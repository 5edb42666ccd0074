"""High-level quantum entropy service."""

import logging
from typing import Optional

from .aead import get_aead_provider
from .config import ProvisioningConfig
from .credentials import DeviceCredentialFactory, DeviceCredentials
from .envelope import EncryptedEntropy, EntropyEnvelope
from .errors import InvalidInputError
from .providers import (
    KemAlgorithm,
    SignatureAlgorithm,
    get_kem_provider,
    get_signature_provider,
)
from .qrng import FileSeedSource, QuantumEntropyEngine

logger = logging.getLogger(__name__)


class QuantumEntropyService:
    """Provisions devices and delivers device-bound quantum entropy."""

    def __init__(
        self,
        engine: QuantumEntropyEngine,
        factory: Optional[DeviceCredentialFactory] = None,
        envelope: Optional[EntropyEnvelope] = None,
        config: Optional[ProvisioningConfig] = None,
    ) -> None:
        self.engine = engine
        self.factory = factory or DeviceCredentialFactory()
        self.envelope = envelope or EntropyEnvelope(kem=self.factory.kem)
        self.config = config or ProvisioningConfig()

    @classmethod
    def from_config(cls, config: ProvisioningConfig) -> "QuantumEntropyService":
        """Build the service and its collaborators from configuration."""
        entropy = config.entropy
        if not entropy.seed_a_path or not entropy.seed_b_path:
            raise InvalidInputError("Both seed_a_path and seed_b_path must be configured")

        source = FileSeedSource(encoding=entropy.seed_encoding)
        engine = QuantumEntropyEngine.from_source(source, entropy.seed_a_path, entropy.seed_b_path)

        crypto = config.crypto
        kem = get_kem_provider(KemAlgorithm.from_string(crypto.kem_algorithm), crypto.backend)
        signature = get_signature_provider(
            SignatureAlgorithm.from_string(crypto.signature_algorithm), crypto.backend
        )
        factory = DeviceCredentialFactory(kem=kem, signature=signature)
        envelope = EntropyEnvelope(kem=kem, aead=get_aead_provider(crypto.aead_algorithm))
        return cls(engine, factory=factory, envelope=envelope, config=config)

    def generate_entropy_for_device(self, device_id: str, size: Optional[int] = None) -> bytes:
        """Generate quantum entropy bound to a device identifier."""
        if size is None:
            size = self.config.entropy.device_entropy_size
        return self.engine.derive(device_id, size)

    def provision_device(self, device_id: str) -> DeviceCredentials:
        """Create quantum-secured credentials for a device."""
        logger.info("Provisioning device '%s' with quantum entropy", device_id)

        device_entropy = self.generate_entropy_for_device(
            device_id, self.config.entropy.provisioning_entropy_size
        )
        logger.info("Generated %d bytes of quantum entropy", len(device_entropy))

        credentials = self.factory.generate_quantum_seeded(self.engine)
        logger.info("Generated quantum-seeded PQC credentials for '%s'", device_id)
        return credentials

    def deliver_entropy(
        self,
        device_id: str,
        recipient_kem_public_key: bytes,
        size: Optional[int] = None,
    ) -> EncryptedEntropy:
        """Derive entropy for a device and encrypt it to the device's KEM key."""
        entropy = self.generate_entropy_for_device(device_id, size)
        encrypted = self.envelope.encrypt_for(recipient_kem_public_key, entropy)
        logger.info("Delivered %d bytes of encrypted entropy to '%s'", len(entropy), device_id)
        return encrypted
