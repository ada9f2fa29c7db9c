"""Application configuration pulled from environment variables via pydantic."""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ecolife.domain.age_group import DEFAULT_USER_AGE
from utils.logging_utils import get_tagged_logger, mask_db_url
logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the EcoLife backend."""
    model_config = SettingsConfigDict(env_prefix="ECOLIFE_", extra="ignore")

    database_url: str = "sqlite:///./ecolife.db"
    auto_migrate: bool = True
    eco_tip_store: str = "sql"  # options: sql, memory

    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-3.5-turbo"
    openai_temperature: float = 0.7
    openai_max_tokens: int = 500

    eco_tip_timezone: str = "Asia/Seoul"
    eco_tip_retention_days: int = 7
    default_user_age: int = DEFAULT_USER_AGE

    citybikes_base_url: str = "http://api.citybik.es/v2"

    api_key: str | None = None
    api_key_redis_url: str | None = None
    api_key_redis_set: str = "api_keys"

    @field_validator("openai_base_url", "citybikes_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")

    @field_validator("eco_tip_store", mode="after")
    @classmethod
    def normalize_store(cls, v: str) -> str:
        return (v or "sql").strip().lower()


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    dumped = settings.model_dump(exclude={"openai_api_key", "api_key"})
    dumped["database_url"] = mask_db_url(settings.database_url)
    logger.debug(f"Loaded settings: {dumped}")
