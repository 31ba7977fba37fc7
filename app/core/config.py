from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pydantic import field_validator

class Settings(BaseSettings):
    # Database settings
    POSTGRES_USER: str = 'facturation_user'
    POSTGRES_PASSWORD: str = 'facturation_pass'
    POSTGRES_DB: str = 'facturation_db'
    POSTGRES_HOST: str = 'postgres'
    POSTGRES_PORT: int = 5432
    DATABASE_URL: Optional[str] = None  # Override completo (ej. sqlite:// para pruebas)

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Invoicing
    INVOICE_NUMBER_PREFIX: str = 'FAC-'
    STOCK_CONFLICT_RETRIES: int = 3

    # Company data handed to the rendering layer
    COMPANY_NAME: str = 'Mi Empresa'
    COMPANY_ADDRESS: str = ''
    COMPANY_EMAIL: str = ''
    COMPANY_PHONE: str = ''
    COMPANY_TAX_ID: str = ''
    CURRENCY: str = 'EUR'
    INVOICE_TEMPLATE: str = 'detailed'

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

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

    @field_validator("CURRENCY", mode="before")
    @classmethod
    def parse_currency(cls, v):
        value = str(v).strip().upper()
        if value not in ("EUR", "USD", "GBP", "XOF"):
            raise ValueError(f"Moneda no soportada: {v}")
        return value

    @field_validator("INVOICE_NUMBER_PREFIX")
    @classmethod
    def validate_prefix(cls, v):
        # Debe caber en invoice_sequences.prefix
        if not v or len(v) > 10:
            raise ValueError("INVOICE_NUMBER_PREFIX debe tener entre 1 y 10 caracteres")
        return v

    @field_validator("STOCK_CONFLICT_RETRIES")
    @classmethod
    def validate_retries(cls, v):
        if v < 1:
            raise ValueError("STOCK_CONFLICT_RETRIES debe ser al menos 1")
        return v

settings = Settings()
