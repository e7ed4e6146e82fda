import os
from pydantic import BaseModel

class Settings(BaseModel):
    # Basic
    ENV: str = os.getenv("ENV", "dev")
    DEFAULT_CURRENCY: str = os.getenv("CURRENCY", "EUR")
    HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "5"))

    # Pricing policy (regional defaults calibrated for the target market)
    DEFAULT_PRICE_PER_SQM_HOUSE: float = float(os.getenv("DEFAULT_PRICE_PER_SQM_HOUSE", "3800"))
    DEFAULT_PRICE_PER_SQM_APARTMENT: float = float(os.getenv("DEFAULT_PRICE_PER_SQM_APARTMENT", "4200"))
    MIN_COMPARABLES: int = int(os.getenv("MIN_COMPARABLES", "3"))
    MAX_COMPARABLES: int = int(os.getenv("MAX_COMPARABLES", "10"))

    # Data providers
    GEO_PROVIDER: str = os.getenv("GEO_PROVIDER", "mock")          # mock | http
    GEO_BASE_URL: str = os.getenv("GEO_BASE_URL", "https://api-adresse.data.gouv.fr")
    SALES_PROVIDER: str = os.getenv("SALES_PROVIDER", "mock")      # mock | http
    SALES_BASE_URL: str | None = os.getenv("SALES_BASE_URL")
    SALES_API_KEY: str | None = os.getenv("SALES_API_KEY")
    SALES_TABLE: str = os.getenv("SALES_TABLE", "property_sales")

    # Notifications
    MAIL_PROVIDER: str = os.getenv("MAIL_PROVIDER", "log")         # log | resend
    RESEND_API_KEY: str | None = os.getenv("RESEND_API_KEY")
    MAIL_FROM: str = os.getenv("MAIL_FROM", "onboarding@resend.dev")
    MAIL_TO: str = os.getenv("MAIL_TO", "team@example.com")
    NOTIFY_ON_ESTIMATE: bool = os.getenv("NOTIFY_ON_ESTIMATE", "false").lower() == "true"

    # Abuse protection for the public notification endpoints
    RATE_LIMIT_RPM: int = int(os.getenv("RATE_LIMIT_RPM", "10"))

    # CORS
    ALLOW_ORIGINS: str = os.getenv("ALLOW_ORIGINS", "*")

    # Metrics
    PROMETHEUS_ENABLED: bool = os.getenv("PROMETHEUS_ENABLED", "true").lower() == "true"

settings = Settings()
