from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


_PACKAGE_TEMPLATES = Path(__file__).parent / "templates"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    cookie_name: str = Field(default="vanity_id", alias="VANITY_COOKIE_NAME")
    cookie_days: int = Field(default=30, alias="VANITY_COOKIE_DAYS")
    query_param: str = Field(default="_vanity", alias="VANITY_QUERY_PARAM")
    reload_experiments: bool = Field(default=False, alias="VANITY_RELOAD_EXPERIMENTS")
    root: str = Field(default=".", alias="VANITY_ROOT")
    env: str = Field(default="development", alias="VANITY_ENV")
    redis_config: str = Field(default="config/redis.yml", alias="VANITY_REDIS_CONFIG")
    templates_dir: str = Field(default=str(_PACKAGE_TEMPLATES), alias="VANITY_TEMPLATES_DIR")
    log_json: bool = Field(default=False, alias="VANITY_LOG_JSON")

    @property
    def root_path(self) -> Path:
        return Path(self.root)

    @property
    def redis_config_path(self) -> Path:
        return self.root_path / self.redis_config

    @property
    def cookie_max_age(self) -> int:
        return self.cookie_days * 24 * 60 * 60


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
