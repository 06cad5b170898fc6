import re
from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    supabase_url: str = Field(default="http://localhost:54321", alias="SUPABASE_URL")
    supabase_anon_key: str = Field(default="", alias="SUPABASE_ANON_KEY")
    supabase_service_role_key: str = Field(default="", alias="SUPABASE_SERVICE_ROLE_KEY")
    supabase_jwt_secret: str = Field(default="", alias="SUPABASE_JWT_SECRET")
    supabase_jwt_audience: str = Field(default="authenticated", alias="SUPABASE_JWT_AUDIENCE")
    data_service_timeout_seconds: float = Field(default=10.0, alias="DATA_SERVICE_TIMEOUT_SECONDS")

    access_token_cookie: str = Field(default="sb-access-token", alias="ACCESS_TOKEN_COOKIE")
    refresh_token_cookie: str = Field(default="sb-refresh-token", alias="REFRESH_TOKEN_COOKIE")
    access_token_max_age: int = Field(default=60 * 60 * 24 * 7, alias="ACCESS_TOKEN_MAX_AGE")
    refresh_token_max_age: int = Field(default=60 * 60 * 24 * 30, alias="REFRESH_TOKEN_MAX_AGE")
    cookie_secure: bool = Field(default=False, alias="COOKIE_SECURE")

    default_organization_id: str = Field(
        default="11111111-1111-1111-1111-111111111111",
        alias="DEFAULT_ORGANIZATION_ID",
    )
    admin_emails: Annotated[list[str], NoDecode] = Field(default_factory=list, alias="ADMIN_EMAILS")
    field_encryption_key: str = Field(default="", alias="FIELD_ENCRYPTION_KEY")

    metrics_cache_ttl_seconds: float = Field(default=15.0, alias="METRICS_CACHE_TTL_SECONDS")
    metrics_stale_while_revalidate_seconds: int = Field(default=30, alias="METRICS_STALE_WHILE_REVALIDATE_SECONDS")

    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("supabase_url")
    @classmethod
    def _normalize_url(cls, value: str) -> str:
        url = re.sub(r"^(https?://)+(https?://)", r"\2", value.strip())
        if not url.startswith(("http://", "https://")):
            url = f"https://{url}"
        return url.rstrip("/")

    @field_validator("admin_emails", mode="before")
    @classmethod
    def _split_emails(cls, value: object) -> object:
        if isinstance(value, str):
            return [part.strip().lower() for part in value.split(",") if part.strip()]
        return value

    @property
    def rest_url(self) -> str:
        return f"{self.supabase_url}/rest/v1"

    @property
    def auth_url(self) -> str:
        return f"{self.supabase_url}/auth/v1"

    @property
    def service_key(self) -> str:
        return self.supabase_service_role_key or self.supabase_anon_key


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
