from pathlib import Path
import logging

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (QtEmbedded; U; Linux; C) AppleWebKit/533.3 "
    "(KHTML, like Gecko) MAG200 stbapp ver:2 rev:250 Safari/533.3"
)


class CustomSettings(BaseSettings):
    """Client settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    portal_request_timeout_sec: float = 30.0
    portal_insecure_skip_tls_verify: bool = False  # Legacy portals with self-signed certs
    portal_handshake_delay_sec: float = 0.5  # Pause before handshake to avoid rate limiting
    portal_user_agent: str = DEFAULT_USER_AGENT
    portal_language: str = "en"
    portal_cache_ttl_sec: int = 300  # 5 minutes
    portal_keepalive_interval_sec: int = 60
    portal_vod_max_pages: int = 10

    profiles_path: str = "./data/profiles.json"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("portal_request_timeout_sec")
    @classmethod
    def validate_request_timeout(cls, value: float) -> float:
        """Validate per-request timeout (seconds)."""
        if value <= 0:
            raise ValueError("portal_request_timeout_sec must be > 0")
        return value

    @field_validator("portal_handshake_delay_sec")
    @classmethod
    def validate_handshake_delay(cls, value: float) -> float:
        """Validate handshake delay (seconds)."""
        if value < 0:
            raise ValueError("portal_handshake_delay_sec must be >= 0")
        return value

    @field_validator(
        "portal_cache_ttl_sec",
        "portal_keepalive_interval_sec",
        "portal_vod_max_pages",
    )
    @classmethod
    def validate_positive_ints(cls, value: int, info) -> int:
        """Ensure integer timing and paging settings are positive."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("portal_language")
    @classmethod
    def validate_language(cls, value: str) -> str:
        """Validate the stb_lang cookie value."""
        value = value.strip()
        if not value:
            raise ValueError("portal_language must not be empty")
        return value

    @field_validator("profiles_path")
    @classmethod
    def validate_profiles_path(cls, value: str) -> str:
        """Validate profile store path points at a file."""
        path = Path(value)
        if path.exists() and path.is_dir():
            raise ValueError(f"profiles_path must be a file, not a directory: '{value}'")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate logging level name."""
        normalized = value.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @model_validator(mode="after")
    def validate_tls_configuration(self):
        """Warn loudly when certificate validation is switched off."""
        if self.portal_insecure_skip_tls_verify:
            logger.warning(
                "TLS certificate validation is DISABLED for portal requests "
                "(PORTAL_INSECURE_SKIP_TLS_VERIFY=true)"
            )
        return self

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  Request Timeout: %ss", self.portal_request_timeout_sec)
        logger.info(
            "  TLS Verification: %s",
            "disabled" if self.portal_insecure_skip_tls_verify else "enabled",
        )
        logger.info("  Handshake Delay: %ss", self.portal_handshake_delay_sec)
        logger.info("  Language: %s", self.portal_language)
        logger.info("  Cache TTL: %ss", self.portal_cache_ttl_sec)
        logger.info("  Keepalive Interval: %ss", self.portal_keepalive_interval_sec)
        logger.info("  VOD Page Ceiling: %s", self.portal_vod_max_pages)
        logger.info("  Profiles: %s", self.profiles_path)


settings = CustomSettings()


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
