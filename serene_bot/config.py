"""Bot configuration from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    TELEGRAM_BOT_TOKEN: str = ""
    API_BASE_URL: str = "http://localhost:5000/api/v1"
    REDIS_URL: str = "redis://redis:6379/0"
    SESSION_TTL_SEC: int = 7 * 24 * 3600

    # Razorpay hosted checkout
    RAZORPAY_KEY_ID: str = ""
    CHECKOUT_SCRIPT_URL: str = "https://checkout.razorpay.com/v1/checkout.js"
    CHECKOUT_PUBLIC_URL: str = "http://localhost:8080"
    CHECKOUT_HOST: str = "0.0.0.0"
    CHECKOUT_PORT: int = 8080

    BRAND_NAME: str = "Serene Wellbeing Hub"
    THEME_COLOR: str = "#10B981"
    DEFAULT_CURRENCY: str = "INR"
    DEFAULT_TIMEZONE: str = "Asia/Kolkata"
    SUPPORT_URL: str = "https://t.me/SereneSupport"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "allow"


settings = Settings()
