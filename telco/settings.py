import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    API_KEY: str = os.getenv("API_KEY", "")
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")

    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    # Metrics are best-effort Redis counters; off unless explicitly enabled
    METRICS_ENABLED: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"
    METRICS_PREFIX: str = os.getenv("METRICS_PREFIX", "metrics:telco")

    # Redact client name / tax id in log lines
    ENABLE_PII_REDACTION: bool = os.getenv("ENABLE_PII_REDACTION", "true").lower() == "true"

    # Only the originator of an interactive communication may end it.
    # "false" lets any BUSY terminal holding the communication end it.
    END_REQUIRES_ORIGINATOR: bool = os.getenv("END_REQUIRES_ORIGINATOR", "true").lower() == "true"

    # Fraction of the interactive cost charged when calling a friend (0.5 = half price)
    FRIEND_DISCOUNT: float = float(os.getenv("FRIEND_DISCOUNT", "0.5"))

    DEFAULT_CLIENT_LEVEL: str = os.getenv("DEFAULT_CLIENT_LEVEL", "NORMAL").upper()

    # /admin routes; empty disables the admin key check
    ADMIN_API_KEY: str = os.getenv("ADMIN_API_KEY", "")

settings = Settings()
