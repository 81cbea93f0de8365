# app/core/config.py
from typing import List, Optional
from pydantic_settings import BaseSettings
from functools import lru_cache
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

class Settings(BaseSettings):
    PROJECT_NAME: str = "Quantum402 Gateway"
    API_PREFIX: str = "/api"
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"

    # Base64 encoded 32-byte Ed25519 seed. A fresh keypair is generated when unset.
    GATEWAY_SEED_BASE64: Optional[str] = None

    # Comma-separated list of browser origins allowed by CORS
    CORS_ORIGINS: str = "https://quantum402.dev"

    # Invoice defaults, applied when the caller omits a field
    INVOICE_DEFAULT_FEATURE: str = "api.translate"
    INVOICE_DEFAULT_AMOUNT: str = "0.01"
    INVOICE_DEFAULT_UNIT: str = "SOL"
    INVOICE_DEFAULT_TTL_SEC: int = 90
    INVOICE_DEFAULT_WALLET: str = "phantom"

    RECEIPT_ARCHIVE_MAX: int = 500
    RECEIPT_HEADER: str = "x402-receipt"
    TRANSLATE_FEATURE: str = "api.translate"

    # JSON lines audit trail; disabled when unset
    AUDIT_LOG_PATH: Optional[str] = None

    @property
    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields from .env

@lru_cache() # Cache the settings object for performance
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
