import json
from typing import Annotated, Any

from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Read raw from the environment and parsed by _parse_str_list
StrList = Annotated[list[str], NoDecode]


def _parse_str_list(value: Any) -> Any:
    """Parse a list setting given as a JSON array or a comma-separated string."""
    if isinstance(value, str):
        value = value.strip()
        if value.startswith("[") and value.endswith("]"):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return [str(item).strip() for item in parsed if str(item).strip()]
            except json.JSONDecodeError:
                pass
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class Settings(BaseSettings):
    """
    Application configuration loaded with Pydantic BaseSettings.
    Values come from environment variables and the optional .env file.
    """

    # API Configuration
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Clinic PMS Sync API"
    PROJECT_DESCRIPTION: str = "PMS synchronization and funding-quota engine for physiotherapy clinics"
    VERSION: str = "0.1.0"

    # PostgreSQL Database Settings
    DB_HOST: str = Field("localhost", description="PostgreSQL host")
    DB_PORT: int = Field(5432, description="PostgreSQL port")
    DB_NAME: str = Field("pms_sync", description="Database name")
    DB_USER: str = Field("postgres", description="PostgreSQL user")
    DB_PASSWORD: str | None = Field(None, description="PostgreSQL password")
    DB_ECHO: bool = Field(False, description="Log SQL queries (debug only)")

    # Database connection pool settings
    DB_POOL_SIZE: int = Field(20, description="Connection pool size")
    DB_MAX_OVERFLOW: int = Field(30, description="Maximum pool overflow")
    DB_POOL_RECYCLE: int = Field(3600, description="Recycle connections every N seconds")
    DB_POOL_TIMEOUT: int = Field(30, description="Timeout waiting for a pooled connection")

    # Credential vault
    PMS_ENCRYPTION_SECRET: str = Field(
        "change-me",
        description="Shared secret hashed with SHA-256 into the AES-256 key for stored PMS API keys",
    )

    # PMS HTTP clients
    PMS_REQUEST_TIMEOUT: float = Field(30.0, description="Timeout for PMS API requests in seconds")
    PMS_CONNECTION_TEST_TIMEOUT: float = Field(10.0, description="Timeout for PMS connection tests in seconds")
    PMS_USER_AGENT: str = Field("ClinicPMSSync/1.0", description="User-Agent sent to PMS APIs")
    PMS_MAX_PAGES: int = Field(50, description="Maximum pages fetched per paginated PMS endpoint")
    CLINIKO_DEFAULT_REGION: str = Field("au2", description="Cliniko shard used when the key carries no region")
    NOOKAL_API_URL: str = Field("https://api.nookal.com/production/v1", description="Nookal API base URL")
    HALAXY_API_URL: str = Field("https://api.halaxy.com/v1", description="Halaxy API base URL")

    # Retry policy for PMS calls
    PMS_RETRY_MAX_ATTEMPTS: int = Field(3, description="Maximum attempts per PMS call (including the first)")
    PMS_RETRY_BASE_DELAY: float = Field(0.5, description="Initial backoff delay in seconds")
    PMS_RETRY_MAX_DELAY: float = Field(8.0, description="Upper bound for a single backoff delay in seconds")
    PMS_RETRY_MULTIPLIER: float = Field(2.0, description="Exponential backoff multiplier")

    # Synchronization
    SYNC_BATCH_SIZE: int = Field(200, description="Rows per bulk upsert statement")
    SYNC_ADVISORY_LOCKS: bool = Field(True, description="Also take a PostgreSQL advisory lock per sync run")
    DEFAULT_SYNC_FREQUENCY_HOURS: int = Field(6, description="Default hours between scheduled syncs")

    # Funding schemes
    WC_DEFAULT_QUOTA: int = Field(8, description="Lifetime WC session quota")
    EPC_DEFAULT_QUOTA: int = Field(5, description="Calendar-year EPC session quota")
    DEFAULT_WC_TAGS: StrList = Field(default=["WC"], description="Default WC appointment-type tags")
    DEFAULT_EPC_TAGS: StrList = Field(default=["EPC"], description="Default EPC appointment-type tags")

    # Application Settings
    DEBUG: bool = Field(False, description="Debug mode")
    ENVIRONMENT: str = Field("production", description="Runtime environment")
    CORS_ORIGINS: StrList = Field(default=[], description="Allowed CORS origins outside debug mode")

    # Sentry Configuration
    SENTRY_DSN: str | None = Field(default=None, description="Sentry DSN for error tracking")

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown variables instead of failing
    )

    @field_validator("DEFAULT_WC_TAGS", "DEFAULT_EPC_TAGS", "CORS_ORIGINS", mode="before")
    @classmethod
    def parse_list_settings(cls, value):
        return _parse_str_list(value)

    @field_validator("DB_POOL_SIZE")
    @classmethod
    def validate_pool_size(cls, v):
        if v < 1:
            raise ValueError("DB_POOL_SIZE must be at least 1")
        if v > 100:
            raise ValueError("DB_POOL_SIZE should not exceed 100")
        return v

    @field_validator("DB_MAX_OVERFLOW")
    @classmethod
    def validate_max_overflow(cls, v):
        if v < 0:
            raise ValueError("DB_MAX_OVERFLOW must be 0 or greater")
        if v > 200:
            raise ValueError("DB_MAX_OVERFLOW should not exceed 200")
        return v

    @field_validator("SYNC_BATCH_SIZE")
    @classmethod
    def validate_batch_size(cls, v):
        if not 1 <= v <= 1000:
            raise ValueError("SYNC_BATCH_SIZE must be between 1 and 1000")
        return v

    @field_validator("PMS_RETRY_MAX_ATTEMPTS")
    @classmethod
    def validate_retry_attempts(cls, v):
        if v < 1:
            raise ValueError("PMS_RETRY_MAX_ATTEMPTS must be at least 1")
        return v

    @computed_field
    @property
    def database_url(self) -> str:
        """Synchronous PostgreSQL URL (used by Alembic)."""
        if self.DB_PASSWORD:
            return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        return f"postgresql://{self.DB_USER}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    @computed_field
    @property
    def is_development(self) -> bool:
        """Whether the app runs in a development environment."""
        return self.DEBUG or self.ENVIRONMENT.lower() in ["development", "dev", "local"]


# Settings singleton
_settings_instance = None


def get_settings() -> Settings:
    """
    Return the cached settings instance.
    Avoids re-reading the environment on every call.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
