"""
Application configuration using pydantic-settings.
Loads from environment variables with .env file support.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Governance engine settings loaded from environment variables."""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )
    
    # Application
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR
    project_name: str = "Architecture Governance Engine"
    version: str = "1.0.0"

    # Startup catalogue
    seed_default_layers: bool = True     # five canonical tiers
    seed_default_policies: bool = True   # stability-first, abstraction-consistency, gradual-release

    # Feature lifecycle
    enforce_state_transitions: bool = False  # False = administrative overwrite allowed


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
