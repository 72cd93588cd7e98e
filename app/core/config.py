from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE = BASE_DIR / ".env"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    PROJECT_NAME: str = "Product Catalog Service"
    API_V1_PREFIX: str = "/api/v1"

    DATABASE_URL: str
    REDIS_URL: Optional[str] = None

    AUTO_CREATE_SCHEMA: bool = Field(default=True)

    PRODUCT_IMAGE_DIR: str = Field(default="media/product_images")
    ALLOWED_IMAGE_EXTENSIONS: Annotated[list[str], NoDecode] = Field(default_factory=lambda: [".jpg", ".jpeg", ".png", ".webp", ".gif"])

    ORPHAN_GRACE_SECONDS: int = Field(default=3600, ge=0)

    CATALOG_CACHE_TTL: int = Field(default=60, ge=1)
    PRODUCT_LOCK_TTL_SECONDS: int = Field(default=30, ge=1)
    PRODUCT_LOCK_WAIT_SECONDS: int = Field(default=5, ge=0)

    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE_PATH: Optional[str] = None

    CORS_ORIGINS: Annotated[list[str], NoDecode] = Field(default_factory=list)

    @field_validator("CORS_ORIGINS", "ALLOWED_IMAGE_EXTENSIONS", mode="before")
    @classmethod
    def split_comma_separated(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, str):
            v = v.strip().strip('"\'')
            if v == "*":
                return ["*"]
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @property
    def product_image_root(self) -> Path:
        path = Path(self.PRODUCT_IMAGE_DIR)
        if not path.is_absolute():
            path = BASE_DIR / path
        return path


load_dotenv(ENV_FILE)


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()
