"""Application configuration settings.

This module defines the application-wide settings using Pydantic's BaseSettings.
It allows for loading configurations from environment variables and .env files,
providing type validation and default values.
"""

from pathlib import Path

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings

# Default list of CORS allowed origins
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:3001",
]


class Settings(BaseSettings):
    """Manages application settings, loading them from environment variables or an .env file.

    Attributes:
        ollama_api_url: Endpoint of the external text-generation service.
        ollama_model: Model identifier sent with every generation request.
        database_url: SQLAlchemy URL of the database holding generated materials.
        upload_dir: Directory where uploaded documents are held during a request.
        cleanup_ttl: Age in seconds after which orphaned uploads are swept.
        max_concurrent_generations: Upper bound on in-flight generation calls per process.
        port: Port used when running the app with ``python -m app.main``.
        cors_allowed_origins: List of allowed origins for CORS.
        LLM_CONNECT_TIMEOUT: Generation client connect timeout in seconds.
        LLM_READ_TIMEOUT: Generation client read timeout in seconds.
    """

    ollama_api_url: str = Field(default="http://localhost:11434/api/generate")
    ollama_model: str = Field(default="mistral")
    database_url: str = Field(default="sqlite:///./studyapp.db")
    upload_dir: Path = Field(default=Path("uploads"))
    cleanup_ttl: int = Field(default=900)
    max_concurrent_generations: int = Field(default=4, ge=1)
    port: int = Field(default=3001)

    cors_allowed_origins: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CORS_ORIGINS),
    )

    LLM_CONNECT_TIMEOUT: float = Field(default=10.0, description="Generation client connect timeout in seconds.")
    LLM_READ_TIMEOUT: float = Field(default=180.0, description="Generation client read timeout in seconds.")

    model_config = {
        "env_file": ".env",
        "protected_namespaces": ("settings_",),
        "env_prefix": "",  # No prefix for environment variables
        "extra": "ignore",
    }

    @field_validator("cors_allowed_origins", mode="before")  # type: ignore
    @classmethod
    def assemble_cors_origins(cls, v: str | list[str] | None) -> list[str]:
        """Assembles the list of CORS allowed origins.

        If 'v' is a string, it splits it by commas. If 'v' is already a list,
        it's used directly. Otherwise, returns the default list of origins.
        """
        if isinstance(v, str) and v:
            return [origin.strip() for origin in v.split(",")]
        elif isinstance(v, list):
            return v
        return list(DEFAULT_CORS_ORIGINS)


settings = Settings()
