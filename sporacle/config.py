"""Application settings loaded from .env via pydantic-settings."""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration; values come from environment / .env file.

    Read once at startup and treated as read-only afterwards.
    """

    # Spotify
    spotify_client_id: str = ""
    spotify_client_secret: str = ""
    redirect_uri: str = "http://localhost:8888/callback"
    spotify_scopes: str = "user-read-private user-read-email user-top-read"

    # OpenAI
    openai_api_key: str = ""
    openai_model: str = "gpt-3.5-turbo"
    completion_max_tokens: int = 2000
    completion_temperature: float = 0.9

    # Backoff for the completion call
    backoff_max_retries: int = 5
    backoff_base_delay: float = 1.0  # seconds

    # Server
    host: str = "127.0.0.1"
    port: int = 8888
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def missing_credentials(self) -> List[str]:
        """Names of required credentials that are unset (values are never returned)."""
        required = {
            "SPOTIFY_CLIENT_ID": self.spotify_client_id,
            "SPOTIFY_CLIENT_SECRET": self.spotify_client_secret,
            "OPENAI_API_KEY": self.openai_api_key,
        }
        return [name for name, value in required.items() if not value]


@lru_cache
def get_settings() -> Settings:
    """Cached singleton so .env is read only once."""
    return Settings()
