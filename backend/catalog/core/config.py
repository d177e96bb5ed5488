"""Centralized application settings using pydantic settings."""

from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file
# Look for .env in the backend directory or project root
env_path = Path(__file__).parent.parent.parent / ".env"
if not env_path.exists():
    env_path = Path(__file__).parent.parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path, override=False)

DEFAULT_FORBIDDEN_WORDS = (
    "test",
    "demo",
    "trial",
    "temporary",
    "example",
    "prueba",
    "temporal",
    "ejemplo",
)


@dataclass(frozen=True)
class ValidationRules:
    """Immutable limits handed to the product validator."""

    forbidden_words: tuple[str, ...] = DEFAULT_FORBIDDEN_WORDS
    max_price: Decimal = Decimal("100000")
    max_stock: int = 10000
    max_batch_size: int = 50


class Settings(BaseSettings):
    """Environment-aware configuration (DB URL, catalog limits, paging)."""

    # Application settings
    app_name: str = "Product Catalog API"
    log_level: str = "INFO"

    # Database settings
    database_url: str = Field(
        default="sqlite:///./catalog.db",
        description="Database connection URL",
    )
    db_echo: bool = False

    # Catalog rules
    max_price: Decimal = Field(default=Decimal("100000"), gt=0)
    max_stock: int = Field(default=10000, ge=0)
    max_batch_size: int = Field(default=50, ge=1)
    forbidden_words_raw: str | None = Field(
        default=None,
        alias="FORBIDDEN_WORDS",
        description="Comma-separated list of words rejected in product names",
        exclude=True,
    )

    # Pagination
    max_page_size: int = Field(default=100, ge=1)
    low_stock_threshold: int = Field(default=10, ge=0)

    # CORS settings - stored as string, converted to list via property
    cors_origins_raw: str | None = Field(
        default=None,
        alias="CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins",
        exclude=True,
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS_ORIGINS from comma-separated string to list."""
        if self.cors_origins_raw is None or not self.cors_origins_raw.strip():
            return ["http://localhost:5173", "http://localhost:3000"]
        origins = [
            origin.strip().rstrip("/")
            for origin in self.cors_origins_raw.split(",")
            if origin.strip()
        ]
        return origins if origins else ["http://localhost:5173", "http://localhost:3000"]

    @property
    def forbidden_words(self) -> tuple[str, ...]:
        """Parse FORBIDDEN_WORDS, falling back to the built-in list."""
        if self.forbidden_words_raw is None or not self.forbidden_words_raw.strip():
            return DEFAULT_FORBIDDEN_WORDS
        words = tuple(
            word.strip().lower()
            for word in self.forbidden_words_raw.split(",")
            if word.strip()
        )
        return words or DEFAULT_FORBIDDEN_WORDS

    def validation_rules(self) -> ValidationRules:
        return ValidationRules(
            forbidden_words=self.forbidden_words,
            max_price=self.max_price,
            max_stock=self.max_stock,
            max_batch_size=self.max_batch_size,
        )

    @field_validator("database_url", mode="before")
    @classmethod
    def fix_database_url(cls, v: str | None) -> str:
        """Fix Heroku DATABASE_URL format (postgres:// -> postgresql+psycopg://)."""
        if v is None:
            return "sqlite:///./catalog.db"
        if isinstance(v, str) and v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql+psycopg://", 1)
        return v


@lru_cache
def get_settings() -> Settings:
    """Provide singleton-like access for dependency injection."""
    return Settings()
