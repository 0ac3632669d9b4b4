import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    API_KEY: str = os.getenv("API_KEY", "")
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")

    # Remote verification service (storefront backend)
    VERIFY_SERVICE_URL: str = os.getenv("VERIFY_SERVICE_URL", "http://localhost:5000").rstrip("/")
    VERIFY_TIMEOUT_SEC: float = float(os.getenv("VERIFY_TIMEOUT_SEC", "10.0"))
    # Cookie carrying the signed-in account for the email-verification flow
    AUTH_COOKIE_NAME: str = os.getenv("AUTH_COOKIE_NAME", "token")

    # Flow defaults (overridable per flow descriptor)
    CODE_LENGTH: int = int(os.getenv("CODE_LENGTH", "6"))
    COOLDOWN_SECONDS: int = int(os.getenv("COOLDOWN_SECONDS", "60"))
    MIN_SECRET_LENGTH: int = int(os.getenv("MIN_SECRET_LENGTH", "8"))

    # Session hosting
    MAX_NOTICES: int = int(os.getenv("MAX_NOTICES", "5"))
    SESSION_IDLE_TTL_SEC: int = int(os.getenv("SESSION_IDLE_TTL_SEC", "1800"))

    # Observability
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    REDIS_SOCKET_TIMEOUT_SEC: float = float(os.getenv("REDIS_SOCKET_TIMEOUT_SEC", "2.0"))
    METRICS_ENABLED: bool = os.getenv("METRICS_ENABLED", "true").lower() == "true"
    ENABLE_PII_REDACTION: bool = os.getenv("ENABLE_PII_REDACTION", "true").lower() == "true"

    # Admin console endpoints
    ADMIN_RBAC_ENABLED: bool = os.getenv("ADMIN_RBAC_ENABLED", "true").lower() == "true"
    ADMIN_API_KEY: str = os.getenv("ADMIN_API_KEY", "")
    # Admin console origin, where admin accounts go after verifying their email
    ADMIN_CONSOLE_URL: str = os.getenv("ADMIN_CONSOLE_URL", "http://localhost:5174")

settings = Settings()
