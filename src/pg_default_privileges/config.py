"""Provider configuration and process settings."""

from functools import lru_cache

from pydantic import BaseModel
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class SecretReference(BaseModel):
    """Where the connection credentials are stored."""

    namespace: str
    name: str


class ProviderConfig(BaseModel):
    """Connection configuration shared by every declared object that names it.

    Attributes:
        name: Name declared objects refer to this configuration by.
        default_database: Database used for cluster-wide lookups, and for declared
            objects that do not name a database. Falls back to ``Settings.default_database``.
        ssl_mode: libpq ``sslmode``. Falls back to ``Settings.ssl_mode``.
        credentials_secret_ref: Secret holding ``endpoint``, ``port``, ``username``
            and ``password``.
    """

    name: str = 'default'
    default_database: str | None = None
    ssl_mode: str | None = None
    credentials_secret_ref: SecretReference | None = None


class Settings(BaseSettings):
    """Process wide settings, read from ``PG_DEFAULT_PRIVILEGES_*`` environment variables."""

    default_database: str = 'postgres'
    ssl_mode: str = 'require'
    driver: str = 'postgresql+psycopg'
    statement_timeout_ms: int | None = None

    model_config = SettingsConfigDict(env_prefix='PG_DEFAULT_PRIVILEGES_', case_sensitive=False)


@lru_cache
def get_settings() -> Settings:
    return Settings()
