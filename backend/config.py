"""Application-wide configuration, read from the environment (and .env)."""

import logging
import os

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()


def env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={value!r}, using {default}")
        return default


def env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={value!r}, using {default}")
        return default


def env_path(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return os.path.expanduser(value.strip())


# --- Networking ---
API_HOST = os.getenv("HOST", "0.0.0.0")
API_PORT = env_int("PORT", 8080)

# TLS is enabled only when both paths are set and loadable
SSL_KEY_PATH = env_path("SSL_KEY_PATH")
SSL_CERT_PATH = env_path("SSL_CERT_PATH")

# --- Connections ---
SEND_QUEUE_SIZE = env_int("SEND_QUEUE_SIZE", 256)  # frames per connection
CLOSE_TIMEOUT = env_float("CLOSE_TIMEOUT", 5.0)  # seconds

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
