# wappy/core/config.py
"""
Application configuration - loads from environment variables.
Single source of truth for all settings.
"""
import os
from typing import List, Optional
from urllib.parse import quote_plus
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables FIRST
BASE_DIR = Path(__file__).resolve().parent.parent.parent
env_path = BASE_DIR / '.env'
load_dotenv(dotenv_path=env_path)


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.lower() not in ("0", "false", "no", "off")


# ────────────────────────────────────────────
# Registry Database (tenant → credentials)
# ────────────────────────────────────────────
REGISTRY_DB_USER = os.getenv("REGISTRY_DB_USER", "")
REGISTRY_DB_PASSWORD = os.getenv("REGISTRY_DB_PASSWORD", "")
REGISTRY_DB_HOST = os.getenv("REGISTRY_DB_HOST", "localhost")
REGISTRY_DB_PORT = os.getenv("REGISTRY_DB_PORT", "3306")
REGISTRY_DB_NAME = os.getenv("REGISTRY_DB_NAME", "")
REGISTRY_DATABASE_URL = os.getenv("REGISTRY_DATABASE_URL")

DB_CHARSET: str = os.getenv("DB_CHARSET", "utf8mb4")
DB_CONNECT_TIMEOUT: int = int(os.getenv("DB_CONNECT_TIMEOUT", "10"))
DB_TIMEZONE: str = os.getenv("DB_TIMEZONE", "UTC")

# Build REGISTRY_DATABASE_URL
if not REGISTRY_DATABASE_URL:
    encoded_password = quote_plus(REGISTRY_DB_PASSWORD)
    REGISTRY_DATABASE_URL = (
        f"mysql+pymysql://{REGISTRY_DB_USER}:{encoded_password}@"
        f"{REGISTRY_DB_HOST}:{REGISTRY_DB_PORT}/{REGISTRY_DB_NAME}?charset={DB_CHARSET}"
    )

# ────────────────────────────────────────────
# Tenant Databases
# ────────────────────────────────────────────
# All tenant databases live on one pinned server; empty means "use the
# host stored in the registry".
TENANT_DB_HOST: str = os.getenv("TENANT_DB_HOST", "")
TENANT_DB_PORT: int = int(os.getenv("TENANT_DB_PORT", "3306"))
TENANT_CODE_PREFIX: str = os.getenv("TENANT_CODE_PREFIX", "spotty")

# ────────────────────────────────────────────
# Kaleyra (WhatsApp BSP)
# ────────────────────────────────────────────
KALEYRA_API_BASE: str = os.getenv("KALEYRA_API_BASE", "https://api.kaleyra.io").rstrip("/")
KALEYRA_TIMEOUT: float = float(os.getenv("KALEYRA_TIMEOUT", "15"))
KALEYRA_CALLBACK_URL: str = os.getenv("KALEYRA_CALLBACK_URL", "")
DEFAULT_TEMPLATE_LANGUAGE: str = os.getenv("DEFAULT_TEMPLATE_LANGUAGE", "it")

MEDIA_BASE_URL: str = os.getenv("MEDIA_BASE_URL", "https://media.spottywifi.app/wa").rstrip("/")

# ────────────────────────────────────────────
# Session Window
# ────────────────────────────────────────────
SESSION_WINDOW_HOURS: int = int(os.getenv("SESSION_WINDOW_HOURS", "24"))
# "any": last message in either direction; "inbound": customer messages only
SESSION_WINDOW_POLICY: str = os.getenv("SESSION_WINDOW_POLICY", "any").lower()
ENFORCE_SESSION_WINDOW: bool = _as_bool(os.getenv("ENFORCE_SESSION_WINDOW"), True)

CHAT_LIST_CACHE_TTL: int = int(os.getenv("CHAT_LIST_CACHE_TTL", "30"))

# ────────────────────────────────────────────
# HTTP / Logging
# ────────────────────────────────────────────
CORS_ORIGINS: List[str] = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR: Path = Path(os.getenv("LOG_DIR", str(BASE_DIR / "logs")))
LOG_TO_FILE: bool = _as_bool(os.getenv("LOG_TO_FILE"), True)


# ────────────────────────────────────────────
# Settings Class
# ────────────────────────────────────────────
class Settings:
    REGISTRY_DATABASE_URL: str = REGISTRY_DATABASE_URL
    DB_CHARSET: str = DB_CHARSET
    DB_CONNECT_TIMEOUT: int = DB_CONNECT_TIMEOUT
    DB_TIMEZONE: str = DB_TIMEZONE
    TENANT_DB_HOST: str = TENANT_DB_HOST
    TENANT_DB_PORT: int = TENANT_DB_PORT
    TENANT_CODE_PREFIX: str = TENANT_CODE_PREFIX
    KALEYRA_API_BASE: str = KALEYRA_API_BASE
    KALEYRA_TIMEOUT: float = KALEYRA_TIMEOUT
    KALEYRA_CALLBACK_URL: str = KALEYRA_CALLBACK_URL
    DEFAULT_TEMPLATE_LANGUAGE: str = DEFAULT_TEMPLATE_LANGUAGE
    MEDIA_BASE_URL: str = MEDIA_BASE_URL
    SESSION_WINDOW_HOURS: int = SESSION_WINDOW_HOURS
    SESSION_WINDOW_POLICY: str = SESSION_WINDOW_POLICY
    ENFORCE_SESSION_WINDOW: bool = ENFORCE_SESSION_WINDOW
    CHAT_LIST_CACHE_TTL: int = CHAT_LIST_CACHE_TTL
    LOG_LEVEL: str = LOG_LEVEL

settings = Settings()
