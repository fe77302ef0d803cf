"""Application configuration."""
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI Realtime
    openai_api_key: str
    openai_realtime_url: str = (
        "wss://api.openai.com/v1/realtime?model=gpt-4o-realtime-preview-2024-10-01"
    )
    upstream_connect_timeout_seconds: float = 10.0

    # Voice agent session
    assistant_name: str = "Inari"
    agent_voice: str = "alloy"
    agent_temperature: float = 0.7
    tool_grace_period_seconds: float = 5.0

    # Twilio
    twilio_account_sid: str
    twilio_auth_token: str
    twilio_phone_number: str
    stream_url: Optional[str] = None  # Public wss:// URL of the media stream endpoint

    # Principal
    principal_name: str = "Harvey"
    principal_phone_number: Optional[str] = None  # Transfer destination
    scheduling_url: Optional[str] = None

    # Google Calendar
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    google_refresh_token: Optional[str] = None
    google_calendar_id: str = "primary"
    calendar_timezone: str = "America/New_York"

    # Server
    environment: str = "development"
    frontend_url: Optional[str] = None  # Only CORS origin allowed in production
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def cors_origins(self) -> List[str]:
        """Origins allowed to call the API: any outside production."""
        if self.environment == "production":
            return [self.frontend_url] if self.frontend_url else []
        return ["*"]


settings = Settings()
