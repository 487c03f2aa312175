import os

from pathlib import Path
from typing import Any, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]

# shortstring("SN_SEPOLIA")
SN_SEPOLIA = "0x534e5f5345504f4c4941"
# shortstring("SN_MAIN")
SN_MAIN = "0x534e5f4d41494e"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Ensure we pick up legacy environment variable aliases."""

        super().model_post_init(__context)

        if not self.cosigner_api_key:
            fallback = os.getenv("ARGENT_API_KEY")
            if fallback:
                object.__setattr__(self, "cosigner_api_key", fallback)

    log_level: str = Field(default="INFO", description="Logging level")

    # Cosigner (guardian) service
    cosigner_base_url: str = Field(
        default="https://cloud.argent-api.com/v1",
        description="Base URL of the remote cosigning service",
        validation_alias=AliasChoices(
            "cosigner_base_url",
            "COSIGNER_BASE_URL",
            "ARGENT_SESSION_SERVICE_BASE_URL",
        ),
    )
    cosigner_api_key: str = Field(default="", description="Optional API key sent to the cosigner")
    cosigner_timeout_seconds: Optional[float] = Field(
        default=None,
        description="HTTP timeout for cosigner calls; None leaves timeouts to the caller",
    )

    # Protocol defaults
    default_chain_id: str = Field(
        default=SN_SEPOLIA,
        description="Chain id (hex-encoded shortstring) used when a session does not carry one",
    )


# Global settings instance
settings = Settings()
