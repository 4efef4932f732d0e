"""Configuration management for NeoWatch."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # NASA NeoWs feed
    nasa_api_key: str = Field(default="DEMO_KEY")
    nasa_base_url: str = Field(default="https://api.nasa.gov/neo/rest/v1")
    lookahead_days: int = Field(default=7, description="Days after today to scan")

    # HTTP Client Defaults
    http_connect_timeout: float = Field(default=3.0)
    http_timeout_seconds: float = Field(default=30.0)

    # Message broker (Redis Streams)
    redis_url: str = Field(default="redis://localhost:6379/0")
    alerts_topic: str = Field(default="asteroid-alerts")
    consumer_group: str = Field(default="notification-service")
    consumer_name: str = Field(default="notification-service-1")
    broker_timeout_seconds: float = Field(default=5.0)
    consumer_block_ms: int = Field(default=2000)
    consumer_batch_size: int = Field(default=10)
    reclaim_idle_ms: int = Field(
        default=60000,
        description="Pending messages idle this long are redelivered",
    )
    stream_maxlen: Optional[int] = Field(default=None)

    # Database
    database_file: str = Field(default="neowatch.db")
    database_url: Optional[str] = Field(default=None)  # Postgres for production
    dedupe_notifications: bool = Field(
        default=True,
        description="Skip inserts for an already stored (asteroid, date) pair",
    )

    # Email Configuration (SMTP provider, e.g., SendGrid/SES/Gmail)
    smtp_host: Optional[str] = Field(default=None)
    smtp_port: int = Field(default=587)
    smtp_username: Optional[str] = Field(default=None)
    smtp_password: Optional[str] = Field(default=None)
    smtp_use_tls: bool = Field(default=True)
    smtp_timeout_seconds: float = Field(default=30.0)
    email_from_address: Optional[str] = Field(default=None)
    email_subject_prefix: str = Field(default="NeoWatch")

    # Dispatcher
    dispatch_interval_seconds: float = Field(default=10.0)

    # Runtime
    log_level: str = Field(default="INFO")
    dry_run: bool = Field(default=False)
    log_json: bool = Field(default=False, description="Emit logs as JSON lines")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def http_timeout(self) -> tuple[float, float]:
        """(connect, read) timeout tuple for requests."""
        return (self.http_connect_timeout, self.http_timeout_seconds)

    @property
    def dead_letter_topic(self) -> str:
        return f"{self.alerts_topic}.dlq"

    def validate_email_config(self) -> None:
        """Validate that the SMTP notifier can be built."""
        missing = [
            key
            for key, value in {
                "SMTP_HOST": self.smtp_host,
                "EMAIL_FROM_ADDRESS": self.email_from_address,
            }.items()
            if not value
        ]
        if missing:
            raise ValueError(
                "Email notifier misconfigured; missing: " + ", ".join(missing)
            )


# Global settings instance
settings = Settings()
