"""
otpauth:// URI parsing and building.

    otpauth://totp/Issuer:account?secret=BASE32&issuer=Issuer&algorithm=SHA1&digits=6&period=30
"""

from urllib.parse import parse_qs, quote, unquote, urlencode, urlparse

from . import config
from .account import Account, normalize_secret
from .errors import InvalidSecret, InvalidUri, OnlyTotpSupported
from .migration import MIGRATION_SCHEME, migration_accounts
from .otp import decode_secret

OTPAUTH_PREFIX = "otpauth://"


def _int_param(params: dict, name: str, default: int) -> int:
    raw = params.get(name, [None])[0]
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidUri(f"Invalid {name}: {raw!r}") from None


def parse_otpauth_uri(uri: str) -> Account:
    """Parse a standard otpauth://totp/ URI into an account descriptor"""
    uri = uri.strip()
    if not uri.lower().startswith(OTPAUTH_PREFIX):
        raise InvalidUri("Expected otpauth:// URI")

    try:
        parsed = urlparse(uri)
        params = parse_qs(parsed.query, keep_blank_values=True)
    except ValueError as e:
        raise InvalidUri(f"Malformed URI: {e}") from e

    otp_type = parsed.netloc.lower()
    if otp_type != "totp":
        raise OnlyTotpSupported(otp_type)

    # Extract secret
    secret = params.get("secret", [None])[0]
    if not secret:
        raise InvalidUri("Missing secret parameter")
    secret = normalize_secret(secret)
    try:
        decode_secret(secret)
    except InvalidSecret as e:
        raise InvalidUri(str(e)) from e

    # Label contains issuer:account or just account
    label = unquote(parsed.path.lstrip("/"))
    if ":" in label:
        issuer_from_label, name = label.split(":", 1)
    else:
        issuer_from_label, name = "", label
    issuer = params.get("issuer", [issuer_from_label.strip()])[0]

    algorithm = params.get("algorithm", [config.DEFAULT_ALGORITHM])[0].upper()
    if algorithm not in config.URI_ALGORITHMS:
        raise InvalidUri(f"Unsupported algorithm: {algorithm}")

    digits = _int_param(params, "digits", config.DEFAULT_DIGITS)
    if not 1 <= digits <= config.MAX_DIGITS:
        raise InvalidUri(f"Invalid digits: {digits}")

    period = _int_param(params, "period", config.DEFAULT_PERIOD)
    if period <= 0:
        raise InvalidUri(f"Invalid period: {period}")

    return {
        "issuer": issuer.strip() or config.UNKNOWN,
        "label": name.strip() or config.UNKNOWN,
        "secret": secret,
        "algorithm": algorithm,
        "digits": digits,
        "period": period,
        "type": config.DEFAULT_TYPE,
    }


def parse_url(text: str) -> list[Account]:
    """Parse scanned or pasted text: a single otpauth:// URI or a migration export"""
    text = text.strip()
    if text.lower().startswith(MIGRATION_SCHEME + "://"):
        return migration_accounts(text)
    return [parse_otpauth_uri(text)]


def build_otpauth_uri(account: dict) -> str:
    """Generate the otpauth URI for an account (for export / QR display)"""
    issuer = account.get("issuer") or ""
    label = account.get("label") or ""
    path = quote(f"{issuer}:{label}" if issuer else label, safe=":@")

    params = {"secret": account["secret"]}
    if issuer:
        params["issuer"] = issuer
    params["algorithm"] = account.get("algorithm") or config.DEFAULT_ALGORITHM
    params["digits"] = account.get("digits") or config.DEFAULT_DIGITS
    params["period"] = account.get("period") or config.DEFAULT_PERIOD

    return f"{OTPAUTH_PREFIX}totp/{path}?{urlencode(params, quote_via=quote)}"
