"""CLI configuration management for listproof using pydantic-settings.

Handles KMS API credentials, client setup and identity defaults
loaded from LISTPROOF_ environment variables with BaseSettings.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from listproof.sdk.kms import DEFAULT_BASE_URL, ApiKeyStamper, HttpKMSClient
from listproof.sdk.models import DEFAULT_APP_CONTEXT


class ListproofConfig(BaseSettings):
    """listproof configuration using pydantic-settings BaseSettings."""

    model_config = SettingsConfigDict(
        env_prefix='LISTPROOF_',
        env_file='.env',
        env_file_encoding='utf-8',
        secrets_dir='/run/secrets'
    )

    kms_base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="Custodial KMS API base URL"
    )
    kms_api_public_key: str | None = Field(
        default=None,
        description="Compressed P-256 API public key (hex)"
    )
    kms_api_private_key: str | None = Field(
        default=None,
        description="P-256 API private key scalar (hex)"
    )
    kms_organization_id: str | None = Field(
        default=None,
        description="Default custodial organization ID for CLI commands"
    )
    kms_timeout: float = Field(
        default=10.0,
        description="Per-request KMS timeout in seconds"
    )
    webvh_domain: str | None = Field(
        default=None,
        description="Default domain for user did:webvh identities"
    )
    credential_context: str = Field(
        default=DEFAULT_APP_CONTEXT,
        description="Application-specific JSON-LD context for credentials"
    )

    @field_validator('kms_timeout')
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError("KMS timeout must be positive")
        return v


def validate_config(config: ListproofConfig) -> None:
    """Validate configuration completeness for KMS operations."""
    if not config.kms_api_public_key:
        raise ValueError("KMS API public key required. Set LISTPROOF_KMS_API_PUBLIC_KEY environment variable.")
    if not config.kms_api_private_key:
        raise ValueError("KMS API private key required. Set LISTPROOF_KMS_API_PRIVATE_KEY environment variable.")


def resolve_org_id(config: ListproofConfig, org_id: str | None) -> str:
    """Organization ID from the command line, falling back to configuration."""
    org_id = org_id or config.kms_organization_id
    if not org_id:
        raise ValueError("Organization ID required. Pass it explicitly or set LISTPROOF_KMS_ORGANIZATION_ID.")
    return org_id


def create_kms_client(config: ListproofConfig) -> HttpKMSClient:
    """Create KMS client from configuration."""
    validate_config(config)
    stamper = ApiKeyStamper(config.kms_api_public_key, config.kms_api_private_key)  # type: ignore[arg-type]
    return HttpKMSClient(stamper, base_url=config.kms_base_url, timeout=config.kms_timeout)
