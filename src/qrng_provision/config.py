"""Configuration management for quantum entropy provisioning."""

import json
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator


class CryptoConfig(BaseModel):
    """Cryptographic configuration."""

    kem_algorithm: str = "ml-kem-1024"
    signature_algorithm: str = "ml-dsa-65"
    aead_algorithm: str = "aes-256-gcm"
    backend: str = "auto"  # auto, liboqs, pure-python


class EntropyConfig(BaseModel):
    """Quantum seed and entropy sizing configuration."""

    seed_a_path: Optional[str] = None
    seed_b_path: Optional[str] = None
    seed_encoding: str = "auto"  # auto, hex, raw
    device_entropy_size: int = Field(default=32, gt=0)
    provisioning_entropy_size: int = Field(default=64, gt=0)


LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    rich_tracebacks: bool = True

    @field_validator("level")
    @classmethod
    def check_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"level must be one of {', '.join(LOG_LEVELS)}")
        return level


class ProvisioningConfig(BaseModel):
    """Complete provisioning configuration."""

    crypto: CryptoConfig = CryptoConfig()
    entropy: EntropyConfig = EntropyConfig()
    logging: LoggingConfig = LoggingConfig()


def load_config(config_path: Path) -> ProvisioningConfig:
    """Load configuration from file.

    Supports YAML and JSON formats.

    Args:
        config_path: Path to configuration file

    Returns:
        ProvisioningConfig object
    """
    config_path = Path(config_path)
    with open(config_path) as f:
        if config_path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        elif config_path.suffix == ".json":
            data = json.load(f)
        else:
            raise ValueError(f"Unsupported config format: {config_path.suffix}")

    return ProvisioningConfig(**(data or {}))


def save_config(config: ProvisioningConfig, config_path: Path) -> None:
    """Save configuration to file.

    Args:
        config: Configuration to save
        config_path: Output path
    """
    config_path = Path(config_path)
    data = config.model_dump()

    with open(config_path, "w") as f:
        if config_path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        elif config_path.suffix == ".json":
            json.dump(data, f, indent=2)
        else:
            raise ValueError(f"Unsupported config format: {config_path.suffix}")


def generate_default_config(format: str = "yaml") -> str:
    """Generate default configuration content.

    Args:
        format: Output format ("yaml" or "json")

    Returns:
        Configuration file content as string
    """
    data = ProvisioningConfig().model_dump()

    if format == "yaml":
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    elif format == "json":
        return json.dumps(data, indent=2)
    else:
        raise ValueError(f"Unsupported format: {format}")


DEVELOPMENT_CONFIG = ProvisioningConfig(
    crypto=CryptoConfig(backend="pure-python"),
    logging=LoggingConfig(level="DEBUG"),
)

PRODUCTION_CONFIG = ProvisioningConfig(
    crypto=CryptoConfig(backend="liboqs"),
    entropy=EntropyConfig(seed_encoding="hex"),
    logging=LoggingConfig(level="WARNING", rich_tracebacks=False),
)
