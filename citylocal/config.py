# Configuration from environment variables (.env or deployment variables).

import logging
import os

from dotenv import load_dotenv

load_dotenv()


def _env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def _env_int(key: str, default: int) -> int:
    try:
        return int(_env(key, str(default)))
    except ValueError:
        return default


def _env_list(key: str, default: list = None) -> list:
    s = _env(key)
    if not s:
        return default or []
    return [x.strip() for x in s.split(",") if x.strip()]


# ============================================================================
# Database
# ============================================================================
_raw_url = _env("DATABASE_URL")

if _raw_url:
    # Hosting providers give postgres:// but asyncpg needs postgresql+asyncpg://
    if _raw_url.startswith("postgres://"):
        _raw_url = _raw_url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif _raw_url.startswith("postgresql://"):
        _raw_url = _raw_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    DATABASE_URL = _raw_url
else:
    # Local fallback: async sqlite via aiosqlite
    DATABASE_URL = _env("DATABASE_URL_FALLBACK", "sqlite+aiosqlite:///./citylocal.db")

# ============================================================================
# Auth
# ============================================================================
JWT_SECRET = _env("JWT_SECRET", "change-this-secret")
JWT_ALGORITHM = "HS256"
JWT_EXPIRE_MINUTES = _env_int("JWT_EXPIRE_MINUTES", 60 * 24 * 7)

# ============================================================================
# Mail relay (notifications)
# ============================================================================
ADMIN_EMAIL = _env("ADMIN_EMAIL", "admin@citylocal101.com")
MAIL_API_URL = _env("MAIL_API_URL")
MAIL_API_KEY = _env("MAIL_API_KEY")
MAIL_FROM = _env("MAIL_FROM", "CityLocal 101 <no-reply@citylocal101.com>")
MAIL_TIMEOUT = 10.0
FRONTEND_URL = _env("FRONTEND_URL", "http://localhost:5173")

# ============================================================================
# Listings
# ============================================================================
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = _env_int("MAX_PAGE_SIZE", 100)

# ============================================================================
# HTTP
# ============================================================================
CORS_ORIGINS = _env_list("CORS_ORIGINS", ["*"])
LOG_LEVEL = _env("LOG_LEVEL", "INFO").upper()


def configure_logging(level: str = LOG_LEVEL):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
