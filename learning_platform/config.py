"""Runtime settings loaded from the environment (or a local .env file)."""

from decouple import Csv, config

SERVICE_NAME = "Sri Lankan Learning Platform API"

ENVIRONMENT = config("ENVIRONMENT", default="development")
LOG_LEVEL = config("LOG_LEVEL", default="INFO")

DATABASE_URL = config("DATABASE_URL", default="sqlite:///./learning_platform.db")
DATABASE_ECHO = config("DATABASE_ECHO", default=False, cast=bool)

FRONTEND_URL = config("FRONTEND_URL", default="http://localhost:5173")
CORS_EXTRA_ORIGINS = config("CORS_EXTRA_ORIGINS", default="", cast=Csv())

RATE_LIMIT_WINDOW_SECONDS = config("RATE_LIMIT_WINDOW_SECONDS", default=15 * 60, cast=int)
RATE_LIMIT_MAX_REQUESTS = config("RATE_LIMIT_MAX_REQUESTS", default=100, cast=int)

PAGINATION_DEFAULT_LIMIT = config("PAGINATION_DEFAULT_LIMIT", default=20, cast=int)
PAGINATION_MAX_LIMIT = config("PAGINATION_MAX_LIMIT", default=50, cast=int)

# Firebase service account; either the individual fields or a JSON file
FIREBASE_PROJECT_ID = config("FIREBASE_PROJECT_ID", default=None)
FIREBASE_PRIVATE_KEY_ID = config("FIREBASE_PRIVATE_KEY_ID", default=None)
FIREBASE_PRIVATE_KEY = config("FIREBASE_PRIVATE_KEY", default=None)
FIREBASE_CLIENT_EMAIL = config("FIREBASE_CLIENT_EMAIL", default=None)
FIREBASE_CLIENT_ID = config("FIREBASE_CLIENT_ID", default=None)
FIREBASE_SERVICE_ACCOUNT_FILE = config(
    "FIREBASE_SERVICE_ACCOUNT_FILE", default="firebase-service-account.json"
)

# Minting custom tokens is a testing aid; keep it off outside development
ALLOW_CUSTOM_TOKENS = config("ALLOW_CUSTOM_TOKENS", default=False, cast=bool)


def is_development() -> bool:
    return ENVIRONMENT == "development"
