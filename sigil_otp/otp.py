"""
TOTP engine (RFC 4226 / RFC 6238).

Everything here is a pure function of its arguments, safe to call from any
thread. CodeTicker only drives the functions once a second; it keeps no
engine state.
"""

import base64
import binascii
import hashlib
import hmac
import logging
import struct
import threading
import time
from typing import Any, Callable, Iterable, NamedTuple

from . import config
from .errors import InvalidSecret, UnsupportedAlgorithm

_logger = logging.getLogger(__name__)

ALGORITHMS = {
    "SHA1": hashlib.sha1,
    "SHA256": hashlib.sha256,
    "SHA512": hashlib.sha512,
    "MD5": hashlib.md5,
}


class TotpDisplay(NamedTuple):
    account: dict
    code: str
    progress: float  # remaining fraction of the period, (0, 1]


# ==================== Core ====================

def get_digestmod(algorithm: str) -> Callable:
    try:
        return ALGORITHMS[str(algorithm).upper()]
    except KeyError:
        raise UnsupportedAlgorithm(algorithm) from None


def decode_secret(secret: str) -> bytes:
    """Decode a base32 secret, tolerating spaces, lowercase and missing padding"""
    secret_clean = secret.replace(" ", "").upper()
    padding = 8 - (len(secret_clean) % 8)
    if padding != 8:
        secret_clean += "=" * padding

    try:
        return base64.b32decode(secret_clean)
    except (binascii.Error, ValueError) as e:
        raise InvalidSecret(f"Invalid secret key format: {e}") from e


def hotp(secret: bytes, counter: int, digits: int = config.DEFAULT_DIGITS,
         algorithm: str = config.DEFAULT_ALGORITHM) -> str:
    """Generate HOTP code (RFC 4226)"""
    digestmod = get_digestmod(algorithm)

    counter_bytes = struct.pack(">Q", counter)
    hmac_hash = hmac.new(secret, counter_bytes, digestmod).digest()

    # Dynamic truncation. MD5 digests are only 16 bytes, so the window can
    # run past the end; missing bytes count as zero.
    offset = hmac_hash[-1] & 0x0F
    window = hmac_hash[offset:offset + 4].ljust(4, b"\0")
    truncated = struct.unpack(">I", window)[0] & 0x7FFFFFFF

    return str(truncated % (10 ** digits)).zfill(digits)


def generate(secret: bytes, algorithm: str = config.DEFAULT_ALGORITHM,
             digits: int = config.DEFAULT_DIGITS, period: int = config.DEFAULT_PERIOD,
             timestamp: int | None = None) -> tuple[str, float]:
    """Generate a TOTP code (RFC 6238).

    Args:
        secret: raw secret bytes
        algorithm: SHA1, SHA256, SHA512 or MD5
        digits: code length, at most 8
        period: time step in seconds
        timestamp: milliseconds since the epoch, defaults to now

    Returns:
        (code, remaining) where remaining is the fraction of the period
        left before the code rotates, in (0, 1].
    """
    if timestamp is None:
        timestamp = current_millis()

    seconds = int(timestamp) // 1000
    code = hotp(secret, seconds // period, digits, algorithm)
    remaining = period - (seconds % period)
    return code, remaining / period


def time_remaining(period: int = config.DEFAULT_PERIOD, timestamp: int | None = None) -> int:
    """Seconds remaining until the next TOTP rotation"""
    if timestamp is None:
        timestamp = current_millis()
    return period - ((int(timestamp) // 1000) % period)


def current_millis() -> int:
    return time.time_ns() // 1_000_000


# ==================== Accounts ====================

def code_for_account(account: dict[str, Any], timestamp: int | None = None) -> TotpDisplay:
    code, progress = generate(
        decode_secret(account["secret"]),
        algorithm=account.get("algorithm") or config.DEFAULT_ALGORITHM,
        digits=account.get("digits") or config.DEFAULT_DIGITS,
        period=account.get("period") or config.DEFAULT_PERIOD,
        timestamp=timestamp,
    )
    return TotpDisplay(account, code, progress)


def display_codes(accounts: Iterable[dict[str, Any]], timestamp: int | None = None) -> list[TotpDisplay]:
    """Codes for every account, all computed against the same instant"""
    if timestamp is None:
        timestamp = current_millis()
    return [code_for_account(account, timestamp) for account in accounts]


class CodeTicker:
    """Recompute display codes on a fixed interval.

    provider returns the accounts to display (usually the store's
    get_accounts); callback receives the resulting list of TotpDisplay.
    """

    def __init__(self, provider: Callable[[], Iterable[dict]],
                 callback: Callable[[list[TotpDisplay]], None],
                 interval: float = config.TICK_INTERVAL,
                 clock: Callable[[], int] = current_millis) -> None:
        self.provider = provider
        self.callback = callback
        self.interval = interval
        self.clock = clock
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def tick(self) -> list[TotpDisplay]:
        codes = display_codes(self.provider(), self.clock())
        self.callback(codes)
        return codes

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="sigil-otp-ticker", daemon=True)
        self._thread.start()
        _logger.debug("Ticker started (interval=%ss)", self.interval)

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        _logger.debug("Ticker stopped")

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self.tick()
            except Exception:
                _logger.exception("Ticker callback failed")
            self._stop.wait(self.interval)
