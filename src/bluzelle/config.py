"""
Configuration management for the Bluzelle client.

Supports configuration via environment variables and .env files.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BluzelleConfig(BaseSettings):
    """
    Configuration settings for the Bluzelle client.

    All settings can be configured via environment variables with the BLUZELLE_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="BLUZELLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Node settings
    endpoint: str = Field(
        default="http://localhost:1317",
        description="Hostname and port of the REST server"
    )
    chain_id: str = Field(
        default="bluzelle",
        description="Chain id the account lives on"
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout applied to every HTTP request"
    )

    # Account settings
    mnemonic: Optional[str] = Field(
        default=None,
        description="Mnemonic of the account's private key"
    )
    uuid: Optional[str] = Field(
        default=None,
        description="Database uuid (defaults to the account address)"
    )
    address_prefix: str = Field(
        default="bluzelle",
        description="Bech32 prefix of account addresses"
    )
    hd_path: str = Field(
        default="44'/118'/0'/0/0",
        description="Key derivation path below the master key"
    )
    denom: str = Field(
        default="ubnt",
        description="Denomination used for fees and transfers"
    )

    # Submission settings
    max_send_attempts: int = Field(
        default=20,
        ge=1,
        description="Maximum signing attempts when the account sequence is stale"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format"
    )


# Global config instance
_config: Optional[BluzelleConfig] = None


def get_config() -> BluzelleConfig:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = BluzelleConfig()
    return _config


def set_config(config: BluzelleConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
