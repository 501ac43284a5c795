from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "MomoGateway"
    APP_ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    PORT: int = 8080

    # Numbers without a calling code are assumed to be Ivorian
    DEFAULT_COUNTRY_CODE: str = "+225"

    # Transport retries (timeouts / connection errors only)
    HTTP_RETRY_MAX_ATTEMPTS: int = 3
    HTTP_RETRY_BACKOFF_SEC: float = 0.5

    # --- MTN Mobile Money ---
    MTN_BASE_URL: str = "https://api.mtn.com/v1"
    MTN_API_KEY: Optional[str] = None
    MTN_MERCHANT_CODE: Optional[str] = None
    MTN_SECRET_KEY: Optional[str] = None
    MTN_TIMEOUT_SEC: float = 30

    # --- Orange Money ---
    ORANGE_BASE_URL: str = "https://api.orange.com/orangemoney"
    ORANGE_API_KEY: Optional[str] = None
    ORANGE_MERCHANT_CODE: Optional[str] = None
    ORANGE_SECRET_KEY: Optional[str] = None
    ORANGE_TIMEOUT_SEC: float = 30

    # --- Wave ---
    WAVE_BASE_URL: str = "https://api.wave.com/v1"
    WAVE_API_KEY: Optional[str] = None
    WAVE_MERCHANT_CODE: Optional[str] = None
    WAVE_SECRET_KEY: Optional[str] = None
    WAVE_TIMEOUT_SEC: float = 30

settings = Settings()
