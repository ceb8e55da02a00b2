"""Application settings from environment variables."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

# Load environment variables
load_dotenv()


class Settings(BaseSettings):
    """Application settings from environment."""

    # Kling (video)
    kling_access_key: str = ""
    kling_secret_key: str = ""
    kling_base_url: str = "https://api-singapore.klingai.com"
    kling_token_ttl_seconds: int = 300

    # Black Forest Labs (image)
    bfl_api_key: str = ""
    bfl_base_url: str = "https://api.us1.bfl.ai/v1"

    # AIML (audio)
    aiml_api_key: str = ""
    aiml_base_url: str = "https://api.aimlapi.com"

    # Replicate (image upscale)
    replicate_api_token: str = ""
    replicate_base_url: str = "https://api.replicate.com"

    # Prompt assistant
    openai_api_key: str = ""
    prompt_agent_model: str = "openai:gpt-4o-mini"

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    storage_bucket: str = "ai-generated-media"
    media_table: str = "ai_media_assets"

    # Polling
    poll_interval_seconds: float = 3.0
    audio_poll_interval_seconds: float = 5.0
    image_max_poll_attempts: int = 40
    video_max_poll_attempts: int = 90
    audio_max_poll_attempts: int = 20

    # Transport
    request_timeout_seconds: float = 30.0
    proxy_timeout_seconds: float = 50.0
    proxy_base_url: str = "http://localhost:8000/proxy"
    max_artifact_mb: int = 100

    # Configuration
    log_level: str = "INFO"
    max_retry_attempts: int = 3
    base_delay_seconds: float = 1.0

    model_config = {"env_file": ".env"}


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
