"""Account descriptor shape and helpers shared by the parsers and the store."""

from typing import Any, TypedDict

from . import config
from .errors import InvalidAccount


class Account(TypedDict, total=False):
    id: str
    issuer: str
    label: str
    secret: str  # base32, no padding
    algorithm: str
    digits: int
    period: int
    type: str
    folder: str
    created: int  # ms since epoch
    order: int


# Assigned by the store, never by the parsers
STORE_FIELDS = ("id", "created", "order")


def normalize_secret(secret: str) -> str:
    """Canonical base32 text: no spaces, uppercase, no padding"""
    return secret.replace(" ", "").upper().rstrip("=")


def normalize_account(data: dict[str, Any]) -> Account:
    """Build a descriptor ready for the store's add operation.

    Fills the same defaults the add path always has: unknown issuer/label,
    SHA1, 6 digits, 30 seconds, type totp.
    """
    secret = data.get("secret")
    if not secret or not isinstance(secret, str):
        raise InvalidAccount("Account has no secret")

    try:
        digits = int(data.get("digits") or config.DEFAULT_DIGITS)
        period = int(data.get("period") or config.DEFAULT_PERIOD)
    except (TypeError, ValueError) as e:
        raise InvalidAccount(f"Invalid digits or period: {e}") from e

    account: Account = {
        "issuer": data.get("issuer") or config.UNKNOWN,
        "label": data.get("label") or config.UNKNOWN,
        "secret": normalize_secret(secret),
        "algorithm": str(data.get("algorithm") or config.DEFAULT_ALGORITHM).upper(),
        "digits": digits,
        "period": period,
        "type": config.DEFAULT_TYPE,
    }
    if data.get("folder"):
        account["folder"] = data["folder"]
    return account


def strip_store_fields(account: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in account.items() if k not in STORE_FIELDS}


def account_identity(account: dict[str, Any]) -> tuple:
    """Exact, case-sensitive (issuer, label, secret) used for dedup"""
    return (account.get("issuer"), account.get("label"), account.get("secret"))
