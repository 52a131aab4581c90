"""
config.py
Description: Process-wide settings for the training IVR, loaded once at start-up from the
environment (and an optional .env file). The alert settings are kept in their own frozen
object so they can be handed to the alert helper explicitly.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AlertSettings(BaseSettings):
    """Optional delivery channels for operational alerts."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    slack_webhook_url: Optional[str] = None
    alert_webhook_url: Optional[str] = None
    alert_email_to: Optional[str] = None
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_pass: Optional[str] = None
    alert_from: Optional[str] = None
    alert_timeout_seconds: float = 10.0

    @property
    def email_configured(self) -> bool:
        return bool(self.alert_email_to and self.smtp_host and self.smtp_user and self.smtp_pass)

    @property
    def sender(self) -> Optional[str]:
        return self.alert_from or self.smtp_user


class Settings(BaseSettings):
    """Main application settings."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    host: str = "0.0.0.0"
    port: int = 3000
    voice: str = "Google.en-US-Chirp3-HD"
    version: str = "scc-isa-voice v1.0 IVR gate flow"
    scenario_pause_seconds: int = 20

    alerts: AlertSettings = Field(default_factory=AlertSettings)
