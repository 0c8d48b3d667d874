"""Application configuration."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Application
    app_name: str = "EchoAudit"
    app_version: str = "0.1.0"
    debug: bool = False
    api_prefix: str = "/api/v1"

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Storage - defaults to the project root
    database_path: Path = Path(__file__).parent.parent.parent / "echo_audit.db"
    history_limit: int = 50

    # AI gateway (OpenAI-compatible chat completions)
    ai_gateway_url: str = "https://ai.gateway.lovable.dev/v1"
    ai_gateway_api_key: str = ""
    transcription_model: str = "google/gemini-2.5-flash"
    analysis_model: str = "google/gemini-3-flash-preview"
    transcription_temperature: float = 0.1
    analysis_temperature: float = 0.3

    # Uploads
    max_upload_bytes: int = 25 * 1024 * 1024

    # Live monitoring
    live_analysis_interval: float = 5.0
    live_min_transcript_length: int = 50
    live_max_sessions: int = 8
    # Seconds without client activity before a live session is stopped (0 disables)
    live_session_idle_timeout: float = 120.0


settings = Settings()
