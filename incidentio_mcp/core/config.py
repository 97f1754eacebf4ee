from functools import lru_cache
from typing import Annotated, Any, List, Optional
import json
import os

from dotenv import load_dotenv
from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from incidentio_mcp.core.exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application configuration settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Upstream credential
    API_KEY: str

    # Server settings
    PROJECT_NAME: str = "incident.io MCP Adapter"
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    DEBUG: bool = False

    # CORS settings
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = ["*"]

    # Upstream API settings
    INCIDENT_IO_BASE_URL: str = "https://api.incident.io"
    REQUEST_TIMEOUT: Optional[float] = None  # no timeout unless configured

    # Reference data cache
    CACHE_REFRESH_INTERVAL: int = 3600  # seconds

    # Logging settings
    LOG_LEVEL: str = "INFO"
    ENABLE_STRUCTURED_LOGGING: bool = True

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Any) -> List[str]:
        """Parse CORS origins from string or list."""
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, str):
            return json.loads(v)
        elif isinstance(v, list):
            return v
        raise ValueError(v)

    @field_validator("API_KEY")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        """Reject blank credentials."""
        if not v or not v.strip():
            raise ValueError("API_KEY must not be empty")
        return v.strip()


def load_env_file(env_file: str = ".env") -> None:
    """
    Load environment variables from specified .env file.

    Args:
        env_file: Path to the .env file. Defaults to ".env".
    """
    env_path = os.path.join(os.getcwd(), env_file)
    if os.path.exists(env_path):
        load_dotenv(env_path)


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings with caching for efficiency.

    Returns:
        Settings: Application settings instance

    Raises:
        ConfigurationError: If the environment does not provide a usable API_KEY
    """
    load_env_file()
    try:
        return Settings()
    except ValidationError as e:
        fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
        detail = (
            "API_KEY environment variable is required"
            if "API_KEY" in fields
            else "Invalid configuration"
        )
        raise ConfigurationError(detail=detail, context={"fields": fields}) from e
