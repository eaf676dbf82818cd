from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./data/space_booker.db"

    # JWT configuration
    JWT_SECRET_KEY: str = "secure-secret-key-1234567890"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Razorpay gateway
    RAZORPAY_KEY_ID: str = "rzp_test_key"
    RAZORPAY_KEY_SECRET: str = "rzp_test_secret"
    RAZORPAY_API_BASE_URL: str = "https://api.razorpay.com/v1"
    RAZORPAY_TIMEOUT_SECONDS: float = 30.0

    DEFAULT_CURRENCY: str = "INR"
    DEFAULT_HOURLY_RATE: float = 100

    # Reservation timing rules
    CANCELLATION_LEAD_MINUTES: int = 120
    CHECKIN_WINDOW_MINUTES: int = 15

    # Zone that defines "today" and interprets timestamps sent without an offset
    LOCAL_TZ: str = "UTC"

    CORS_ORIGINS: List[str] = ["http://localhost:3000"]
    LOG_LEVEL: str = "DEBUG"


settings = Settings()
