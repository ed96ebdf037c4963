"""
Application settings and configuration.
"""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Clinic Booking Agent"
    app_version: str = "1.0.0"
    debug: bool = False
    clinic_name: str = "City Care Clinic"

    # Storage
    state_db_path: str = ""
    clinic_db_path: str = "clinic.db"
    appointment_settings_path: Optional[str] = None

    # Sessions
    session_ttl_seconds: int = 1800
    session_sweep_interval_seconds: int = 1800
    max_recent_messages: int = 10
    max_message_length: int = 1000

    # Language model providers
    groq_api_key: Optional[str] = None
    groq_base_url: str = "https://api.groq.com/openai/v1"
    groq_models: str = "llama-3.3-70b-versatile,llama-3.1-8b-instant"
    gemini_api_key: Optional[str] = None
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    gemini_models: str = "gemini-1.5-flash"
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    openai_models: str = "gpt-4o-mini"
    llm_timeout: float = 15.0

    # Retry policy for parser calls
    llm_max_attempts: int = Field(default=3, ge=1)
    llm_base_delay: float = 1.0
    llm_backoff_multiplier: float = 2.0
    llm_max_delay: float = 10.0

    # WhatsApp Cloud API
    whatsapp_access_token: Optional[str] = None
    whatsapp_phone_number_id: Optional[str] = None
    whatsapp_api_base: str = "https://graph.facebook.com/v19.0"
    whatsapp_country_code: str = "91"

    # SMTP
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = ""
    smtp_use_tls: bool = True

    # Timezone
    timezone: str = "Asia/Kolkata"

    # Logging
    log_level: str = "INFO"
    event_log_path: Optional[str] = None


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()
