import os



def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
SQL_ECHO = _get_bool(os.getenv("SQL_ECHO"), default=False)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./vaccine_booking.db")

CORS_ALLOWED_ORIGINS = _get_list(os.getenv("CORS_ALLOWED_ORIGINS"), ["http://localhost:4200"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

# Slot reservation retries on write conflicts.
LEDGER_MAX_ATTEMPTS = int(os.getenv("LEDGER_MAX_ATTEMPTS", "3"))
LEDGER_BACKOFF_SECONDS = float(os.getenv("LEDGER_BACKOFF_SECONDS", "0.05"))
LEDGER_MAX_BACKOFF_SECONDS = float(os.getenv("LEDGER_MAX_BACKOFF_SECONDS", "1.0"))

CREDENTIAL_SIGNING_KEY = os.getenv("CREDENTIAL_SIGNING_KEY", "")
VERIFICATION_BASE_URL = os.getenv("VERIFICATION_BASE_URL", "http://localhost:4200").rstrip("/")

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if APP_ENV.lower() == "production" and not CREDENTIAL_SIGNING_KEY:
        raise RuntimeError("CREDENTIAL_SIGNING_KEY must be set in production.")
    if LEDGER_MAX_ATTEMPTS < 1:
        raise RuntimeError("LEDGER_MAX_ATTEMPTS must be at least 1.")
