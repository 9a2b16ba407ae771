from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pydantic import field_validator

class Settings(BaseSettings):
    # Database settings
    POSTGRES_USER: str = 'billing_user'
    POSTGRES_PASSWORD: str = 'billing_pass'
    POSTGRES_DB: str = 'billing_db'
    POSTGRES_HOST: str = 'postgres'
    POSTGRES_PORT: int = 5432

    # Redis settings
    REDIS_HOST: str = 'redis'
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None

    # Company / tax jurisdiction
    COMPANY_NAME: str = 'KVPL'
    COMPANY_ADDRESS: str = ''
    COMPANY_GSTIN: str = ''
    COMPANY_STATE: str = 'Gujarat'
    HOME_COUNTRY: str = 'India'
    HOME_CURRENCY: str = 'INR'

    # Numbering
    INVOICE_PREFIX: str = 'KVPL'
    PAYMENT_PREFIX: str = 'PAY'
    DEFAULT_DUE_DAYS: int = 30

    # Exchange rates (currencyapi.com)
    CURRENCY_API_URL: str = 'https://api.currencyapi.com/v3/latest'
    CURRENCY_API_KEY: str = ''
    CURRENCY_API_TIMEOUT: float = 5.0
    EXCHANGE_RATE_CACHE_TTL: int = 60 * 60  # 1 hour

    # Spreadsheet import
    IMPORT_MAX_ERRORS: int = 200
    MAX_IMPORT_FILE_SIZE: int = 10 * 1024 * 1024  # 10MB

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Email settings
    EMAIL_SMTP_SERVER: str = 'smtp.gmail.com'
    EMAIL_SMTP_PORT: int = 587
    EMAIL_USE_TLS: bool = True
    EMAIL_USERNAME: str = ''
    EMAIL_PASSWORD: str = ''
    EMAIL_FROM: str = ''
    EMAIL_FROM_NAME: str = 'KVPL Accounts'

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def redis_url(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", mode="before")
    @classmethod
    def parse_debug(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

    @field_validator("EMAIL_USE_TLS", mode="before")
    @classmethod
    def parse_email_tls(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

    @field_validator("HOME_CURRENCY", "INVOICE_PREFIX", "PAYMENT_PREFIX", mode="before")
    @classmethod
    def parse_upper(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

settings = Settings()
