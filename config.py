import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./wallet_auth.db")
    REDIS_URL = data.get("REDIS_URL", "redis://localhost:6379/0")
    API_PREFIX = data.get("API_PREFIX", "")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    ENVIRONMENT = data.get("ENVIRONMENT", "development")
    ENABLE_SENTRY = data.get("ENABLE_SENTRY", 0)
    DSN_SENTRY = data.get("DSN_SENTRY", "")
    SENTRY_ENVIRONMENT = data.get("SENTRY_ENVIRONMENT", "dev")
    CACHE_BACKEND = data.get("CACHE_BACKEND", "memory")
    # Upper bounds on a single cache command and on waiting for a locked SQLite file
    CACHE_TIMEOUT_SECONDS = data.get("CACHE_TIMEOUT_SECONDS", 2.0)
    DB_TIMEOUT_SECONDS = data.get("DB_TIMEOUT_SECONDS", 5.0)

    # Signing secrets have no defaults: the app refuses to start without them
    JWT_ACCESS_SECRET = data.get("JWT_ACCESS_SECRET")
    JWT_REFRESH_SECRET = data.get("JWT_REFRESH_SECRET")
    JWT_ISSUER = data.get("JWT_ISSUER", "wallet-auth")
    ACCESS_TOKEN_TTL_SECONDS = data.get("ACCESS_TOKEN_TTL_SECONDS", 900)
    REFRESH_TOKEN_TTL_SECONDS = data.get("REFRESH_TOKEN_TTL_SECONDS", 604800)

    CHALLENGE_TTL_SECONDS = data.get("CHALLENGE_TTL_SECONDS", 300)
    SIWE_DOMAIN = data.get("SIWE_DOMAIN", "wallet-auth.localhost")
    SIWE_URI = data.get("SIWE_URI", "http://localhost:8000")
    SIWE_STATEMENT = data.get(
        "SIWE_STATEMENT", "Sign this message to authenticate with Wallet Auth"
    )
    SIWE_VERSION = data.get("SIWE_VERSION", "1")
    SIWE_CHAIN_ID = data.get("SIWE_CHAIN_ID", "polkadot")
    SIWE_RESOURCES = data.get("SIWE_RESOURCES", [])
    SS58_PREFIX = data.get("SS58_PREFIX", 42)
    VERIFY_TIMEOUT_SECONDS = data.get("VERIFY_TIMEOUT_SECONDS", 5.0)

    # Per-endpoint overrides, e.g. {"verify": {"window_seconds": 60, "max_requests": 5}}
    RATE_LIMITS = data.get("RATE_LIMITS", {})
    BRUTE_FORCE_MAX_ATTEMPTS = data.get("BRUTE_FORCE_MAX_ATTEMPTS", 100)
    BRUTE_FORCE_WINDOW_SECONDS = data.get("BRUTE_FORCE_WINDOW_SECONDS", 3600)

    AUDIT_RETENTION_DAYS = data.get("AUDIT_RETENTION_DAYS", 90)
    CLEANUP_INTERVAL_SECONDS = data.get("CLEANUP_INTERVAL_SECONDS", 300)

    CLIENTS = data.get(
        "CLIENTS",
        [
            {
                "client_id": "demo-client",
                "name": "Demo Client App",
                "redirect_url": "http://localhost:3001/callback",
                "allowed_origins": ["http://localhost:3001"],
            }
        ],
    )
    ADMIN_API_KEY = data.get("ADMIN_API_KEY", "")
