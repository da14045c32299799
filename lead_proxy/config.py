"""
Configuration module for the Lead Proxy gateway
Contains logger setup and environment variables
"""

import os
import logging
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


# -------------------------
# Logger Setup
# -------------------------
def setup_logger(
    name: str = __name__,
    log_file: Optional[str] = None,
    level: str = "INFO",
) -> logging.Logger:
    """
    Set up and return a logger with a console handler and an optional file handler

    Args:
        name: Logger name (usually __name__)
        log_file: Path to log file, or None to log to the console only
        level: Console log level name

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)

    # Avoid adding duplicate handlers
    if logger.handlers:
        return logger

    # Create formatter
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


# Create the main application logger
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE")
logger = setup_logger("lead_proxy", log_file=LOG_FILE, level=LOG_LEVEL)

# -------------------------
# Environment Variables
# -------------------------
APP_VERSION = "1.0.0"

# origin gate
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", os.getenv("ALLOWED_ORIGIN", ""))
STRICT_ORIGINS = _env_bool("STRICT_ORIGINS")

# upstream workflow webhook
UPSTREAM_WEBHOOK_URL = os.getenv("UPSTREAM_WEBHOOK_URL") or os.getenv(
    "N8N_WEBHOOK_URL"
)
UPSTREAM_TIMEOUT_SECONDS = _env_float("UPSTREAM_TIMEOUT_SECONDS", 10.0)

# turnstile
TURNSTILE_SECRET = os.getenv("TURNSTILE_SECRET_KEY") or os.getenv("TURNSTILE_SECRET")
TURNSTILE_VERIFY_URL = os.getenv(
    "TURNSTILE_VERIFY_URL",
    "https://challenges.cloudflare.com/turnstile/v0/siteverify",
)
TURNSTILE_TIMEOUT_SECONDS = _env_float("TURNSTILE_TIMEOUT_SECONDS", 5.0)

# form fields
HONEYPOT_FIELD = os.getenv("HONEYPOT_FIELD", "website")
TURNSTILE_TOKEN_FIELD = os.getenv("TURNSTILE_TOKEN_FIELD", "turnstile_token")

# rate limiting
RATE_LIMIT_MAX_REQUESTS = _env_int("RATE_LIMIT_MAX_REQUESTS", 20)
RATE_LIMIT_WINDOW_SECONDS = _env_int("RATE_LIMIT_WINDOW_SECONDS", 60)
RATE_LIMIT_BACKEND = os.getenv("RATE_LIMIT_BACKEND", "memory").strip().lower()
RATE_LIMIT_TABLE = os.getenv("RATE_LIMIT_TABLE", "rate_limit_state")
RATE_LIMIT_MEMORY_MAXSIZE = _env_int("RATE_LIMIT_MEMORY_MAXSIZE", 100_000)

# client ip: X-Forwarded-For is only honoured behind a trusted proxy
TRUST_FORWARDED_FOR = _env_bool("TRUST_FORWARDED_FOR")

# server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = _env_int("PORT", 8000)

# supabase
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY")


# Log configuration status
logger.info("Configuration loaded successfully")
logger.debug(f"ALLOWED_ORIGINS configured: {bool(ALLOWED_ORIGINS)}")
logger.debug(f"STRICT_ORIGINS: {STRICT_ORIGINS}")
logger.debug(f"UPSTREAM_WEBHOOK_URL configured: {bool(UPSTREAM_WEBHOOK_URL)}")
logger.debug(f"TURNSTILE_SECRET configured: {bool(TURNSTILE_SECRET)}")
logger.debug(f"RATE_LIMIT_BACKEND: {RATE_LIMIT_BACKEND}")
logger.debug(f"TRUST_FORWARDED_FOR: {TRUST_FORWARDED_FOR}")
logger.debug(f"SUPABASE_URL configured: {bool(SUPABASE_URL)}")
logger.debug(f"SUPABASE_SERVICE_KEY configured: {bool(SUPABASE_SERVICE_KEY)}")

if not UPSTREAM_WEBHOOK_URL:
    logger.warning("UPSTREAM_WEBHOOK_URL is not set; submissions will be rejected")
