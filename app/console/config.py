import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    api_base_url: str
    api_timeout_seconds: int
    query_cache_max_entries: int
    default_stale_seconds: int | None


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getint(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _stale_default() -> int | None:
    # 0 refetches on every page load; "none" keeps reads until a mutation invalidates them.
    raw = _getenv("DEFAULT_STALE_SECONDS").lower()
    if raw in ("none", "inf", "infinity"):
        return None
    if not raw:
        return 0
    try:
        return max(int(raw), 0)
    except ValueError:
        return 0


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///console.db"),
        api_base_url=_getenv("API_BASE_URL", "http://localhost:5000"),
        api_timeout_seconds=_getint("API_TIMEOUT_SECONDS", 30),
        query_cache_max_entries=_getint("QUERY_CACHE_MAX_ENTRIES", 2000),
        default_stale_seconds=_stale_default(),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "API_BASE_URL": s.api_base_url,
        "API_TIMEOUT_SECONDS": s.api_timeout_seconds,
        "QUERY_CACHE_MAX_ENTRIES": s.query_cache_max_entries,
        "DEFAULT_STALE_SECONDS": s.default_stale_seconds,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        # forms only; no uploads pass through the console
        "MAX_CONTENT_LENGTH": 2 * 1024 * 1024,
    }
