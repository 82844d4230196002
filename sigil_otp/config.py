"""Defaults, crypto parameters and logging setup."""

import logging
import os

# ==================== Account defaults ====================

DEFAULT_ALGORITHM = "SHA1"
DEFAULT_DIGITS = 6
DEFAULT_PERIOD = 30  # seconds
DEFAULT_TYPE = "totp"
UNKNOWN = "Unknown"

URI_ALGORITHMS = ("SHA1", "SHA256", "SHA512")
MAX_DIGITS = 8  # 10**digits must stay below 2**31

# ==================== Backup container ====================

BACKUP_VERSION = 1
SALT_SIZE = 16
IV_SIZE = 12
KEY_SIZE = 32  # AES-256
PBKDF2_ITERATIONS = 100_000

CSV_FIELDS = ("issuer", "label", "secret", "type", "algorithm", "digits", "period", "folder")

# Keys searched, in order, for the account array of a third-party JSON export
THIRD_PARTY_ARRAY_KEYS = ("services", "accounts", "entries", "tokens")

# ==================== Ticker ====================

TICK_INTERVAL = 1.0  # seconds

# ==================== Logging ====================

DEBUG_ENV = "SIGIL_OTP_DEBUG"
LOG_FORMAT = "[%(asctime)s] %(name)s %(levelname)s: %(message)s"


def debug_enabled() -> bool:
    """True when SIGIL_OTP_DEBUG is set to a truthy value"""
    return os.environ.get(DEBUG_ENV, "").lower() in ("1", "true", "yes", "on")


def configure_logging(level: int | None = None) -> logging.Logger:
    """Attach a stderr handler to the package logger.

    Applications embedding the library normally configure logging
    themselves; this is a convenience for scripts and debugging.
    """
    if level is None:
        level = logging.DEBUG if debug_enabled() else logging.WARNING

    logger = logging.getLogger("sigil_otp")
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger
