# backend/app/core/config_loader.py

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    OPENAI_API_KEY: str = ""

    FIREBASE_PROJECT_ID: str = ""
    FIREBASE_CLIENT_EMAIL: str = ""
    FIREBASE_PRIVATE_KEY: str = ""
    FIREBASE_PRIVATE_KEY_ID: str = ""

    # LLM
    openai_model: str = "gpt-4o"
    openai_temperature: float = 0.7
    llm_max_attempts: int = 3
    retry_jitter_seconds: float = 0.5

    # Identity provider
    token_uri: str = "https://oauth2.googleapis.com/token"
    token_scope: str = "https://www.googleapis.com/auth/datastore"
    token_lifetime_seconds: int = 3600

    # Document store
    firestore_base_url: str = "https://firestore.googleapis.com/v1"
    firestore_collection: str = "itineraries"
    firestore_timeout_seconds: float = 15.0
    terminal_write_attempts: int = 3

    environment: str = "development"
    log_level: str = "DEBUG"
    log_dir: str = "logs"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @field_validator("FIREBASE_PRIVATE_KEY")
    @classmethod
    def _unescape_newlines(cls, value: str) -> str:
        # keys pasted into env vars arrive with literal "\n"
        return value.replace("\\n", "\n")


settings = Settings()
