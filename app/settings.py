import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load `.env` only for local development
load_dotenv()

DEFAULT_OPENAI_MODEL = "gpt-4.1-mini"
DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"


def _optional(name: str) -> Optional[str]:
    value = os.getenv(name)
    return value or None


@dataclass(frozen=True)
class Settings:
    # OpenAI. A missing key is reported per request, not at startup.
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = DEFAULT_OPENAI_MODEL
    OPENAI_BASE_URL: str = DEFAULT_OPENAI_BASE_URL
    OPENAI_TIMEOUT: float = 60.0

    # Service
    LOG_LEVEL: str = "INFO"

    @staticmethod
    def load() -> "Settings":
        return Settings(
            OPENAI_API_KEY=_optional("OPENAI_API_KEY"),
            OPENAI_MODEL=os.getenv("OPENAI_MODEL", DEFAULT_OPENAI_MODEL),
            OPENAI_BASE_URL=os.getenv("OPENAI_BASE_URL", DEFAULT_OPENAI_BASE_URL),
            OPENAI_TIMEOUT=float(os.getenv("OPENAI_TIMEOUT", "60")),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


settings = Settings.load()


def get_settings() -> Settings:
    """FastAPI dependency; tests swap it out via `app.dependency_overrides`."""
    return settings
