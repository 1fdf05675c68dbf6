import os
from dotenv import load_dotenv
from loguru import logger

load_dotenv()

def _get_env(key: str, default: str | None = None) -> str:
    val = os.getenv(key, default)
    if val is None:
        raise RuntimeError(f"Missing required env var: {key}")
    return val

APP_ENV = _get_env("APP_ENV", "local")
DATABASE_URL = _get_env("DATABASE_URL", "sqlite:///./estatehub.db")
LOG_LEVEL = _get_env("LOG_LEVEL", "DEBUG")
LOG_FILE = _get_env("LOG_FILE", "logs/app.log")
DB_LOG_SQL = _get_env("DB_LOG_SQL", "false").lower() in ("1", "true", "yes")

# Auth
AUTH_JWT_SECRET = _get_env("AUTH_JWT_SECRET", "dev-secret-change-me" if APP_ENV == "local" else None)
AUTH_JWT_ALGORITHM = _get_env("AUTH_JWT_ALGORITHM", "HS256")
AUTH_DEBUG = _get_env("AUTH_DEBUG", "false").lower() in ("1", "true", "yes")

# Response cache
CACHE_DEFAULT_TTL_SECONDS = float(_get_env("CACHE_DEFAULT_TTL_SECONDS", "300"))
CACHE_MAX_SIZE = int(_get_env("CACHE_MAX_SIZE", "1000"))
CACHE_CLEANUP_INTERVAL_SECONDS = float(_get_env("CACHE_CLEANUP_INTERVAL_SECONDS", "300"))

# Server-sent events
SSE_HEARTBEAT_SECONDS = float(_get_env("SSE_HEARTBEAT_SECONDS", "30"))
SSE_QUEUE_SIZE = int(_get_env("SSE_QUEUE_SIZE", "100"))

logger.debug(f"Config loaded: APP_ENV={APP_ENV}, DATABASE_URL={DATABASE_URL}, LOG_LEVEL={LOG_LEVEL}")
