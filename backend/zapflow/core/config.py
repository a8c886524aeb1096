"""
Configuration settings using Pydantic
"""
from functools import lru_cache
from typing import Optional
from pathlib import Path
from pydantic_settings import BaseSettings

# Get the backend directory
BACKEND_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE = BACKEND_DIR / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # App
    APP_NAME: str = "Zapflow"
    DEBUG: bool = False

    # Supabase (flow storage). Empty values disable the repository.
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""

    # Evolution API (WhatsApp gateway)
    EVOLUTION_API_URL: str = "http://localhost:8080"
    EVOLUTION_API_KEY: str = ""
    EVOLUTION_DEFAULT_INSTANCE: Optional[str] = None

    # Product provider
    PRODUCT_API_URL: Optional[str] = None
    PRODUCT_API_KEY: Optional[str] = None
    PRODUCT_PROVIDER_NAME: str = "catalogo"

    # Sessions
    SESSION_TIMEOUT_SECONDS: int = 1800  # 30 minutos
    SESSION_SWEEP_INTERVAL_SECONDS: int = 300  # 5 minutos

    # Interactive list presentation
    LIST_BUTTON_TEXT: str = "Ver opções"
    LIST_FOOTER_TEXT: str = "Zapflow WhatsApp Flow"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    class Config:
        env_file = str(ENV_FILE)
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
