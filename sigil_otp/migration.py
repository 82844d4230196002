"""
Decoder for Google Authenticator export URIs (otpauth-migration://offline?data=...).

The payload is protobuf wire format, but only two message shapes are ever
needed, so it is decoded by hand:

    MigrationPayload
        1: repeated OtpParameters otp_parameters
        2-5: version / batch metadata (skipped)

    OtpParameters
        1: bytes secret
        2: string name
        3: string issuer
        4: enum algorithm (1 SHA1, 2 SHA256, 3 SHA512, 4 MD5)
        5: enum digits (1 six, 2 eight)
        6: enum type (1 HOTP, 2 TOTP)
        7: int64 counter

Decoding is all or nothing: any structural problem raises
MalformedMigrationPayload and no entries are returned.
"""

import base64
import binascii
import logging
from dataclasses import dataclass
from urllib.parse import unquote, urlparse

from . import config
from .account import Account
from .errors import InvalidUri, MalformedMigrationPayload

_logger = logging.getLogger(__name__)

MIGRATION_SCHEME = "otpauth-migration"

WIRE_VARINT = 0
WIRE_FIXED64 = 1
WIRE_LENGTH_DELIMITED = 2
WIRE_START_GROUP = 3
WIRE_END_GROUP = 4
WIRE_FIXED32 = 5

MAX_VARINT_BYTES = 10
UINT64_MASK = (1 << 64) - 1

ALGORITHM_ENUM = {1: "SHA1", 2: "SHA256", 3: "SHA512", 4: "MD5"}
DIGITS_ENUM = {1: 6, 2: 8}
TYPE_HOTP = 1


@dataclass(frozen=True)
class MigrationEntry:
    secret: bytes
    name: str = ""
    issuer: str = ""
    algorithm: str = config.DEFAULT_ALGORITHM
    digits: int = config.DEFAULT_DIGITS
    type: str = "totp"
    counter: int = 0

    def to_account(self) -> Account:
        """Descriptor for the store, secret re-encoded as base32"""
        if self.type != "totp":
            _logger.warning("Importing %s entry '%s:%s' as TOTP", self.type.upper(), self.issuer, self.name)
        return {
            "issuer": self.issuer or config.UNKNOWN,
            "label": self.name or config.UNKNOWN,
            "secret": base64.b32encode(self.secret).decode().rstrip("="),
            "algorithm": self.algorithm,
            "digits": self.digits,
            "period": config.DEFAULT_PERIOD,
            "type": config.DEFAULT_TYPE,
        }


# ==================== Wire format ====================

def read_varint(data: bytes, offset: int) -> tuple[int, int]:
    """Parse a protobuf varint and return (value, new_offset)"""
    result = 0
    shift = 0
    for _ in range(MAX_VARINT_BYTES):
        if offset >= len(data):
            raise MalformedMigrationPayload("Truncated varint")
        byte = data[offset]
        result |= (byte & 0x7F) << shift
        offset += 1
        if not (byte & 0x80):
            return result & UINT64_MASK, offset
        shift += 7
    raise MalformedMigrationPayload("Varint longer than 64 bits")


def read_tag(data: bytes, offset: int) -> tuple[int, int, int]:
    """Return (field_number, wire_type, new_offset)"""
    tag, offset = read_varint(data, offset)
    return tag >> 3, tag & 0x07, offset


def read_length_delimited(data: bytes, offset: int) -> tuple[bytes, int]:
    length, offset = read_varint(data, offset)
    end = offset + length
    if end > len(data):
        raise MalformedMigrationPayload(
            f"Field length {length} exceeds remaining {len(data) - offset} bytes")
    return data[offset:end], end


def _skip_fixed(data: bytes, offset: int, size: int) -> int:
    end = offset + size
    if end > len(data):
        raise MalformedMigrationPayload(f"Truncated {size * 8}-bit field")
    return end


def skip_field(data: bytes, offset: int, wire_type: int) -> int:
    """Skip one field value of the given wire type and return the new offset"""
    if wire_type == WIRE_VARINT:
        _, offset = read_varint(data, offset)
        return offset
    if wire_type == WIRE_FIXED64:
        return _skip_fixed(data, offset, 8)
    if wire_type == WIRE_LENGTH_DELIMITED:
        _, offset = read_length_delimited(data, offset)
        return offset
    if wire_type == WIRE_START_GROUP:
        # Nested groups are tracked with a counter, not recursion
        depth = 1
        while depth:
            if offset >= len(data):
                raise MalformedMigrationPayload("Unterminated group")
            _, inner_type, offset = read_tag(data, offset)
            if inner_type == WIRE_START_GROUP:
                depth += 1
            elif inner_type == WIRE_END_GROUP:
                depth -= 1
            else:
                offset = skip_field(data, offset, inner_type)
        return offset
    if wire_type == WIRE_END_GROUP:
        return offset
    if wire_type == WIRE_FIXED32:
        return _skip_fixed(data, offset, 4)
    raise MalformedMigrationPayload(f"Unsupported wire type: {wire_type}")


def _decode_text(value: bytes) -> str:
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedMigrationPayload(f"Invalid UTF-8 string: {e}") from e


# ==================== Messages ====================

def decode_otp_parameters(data: bytes) -> MigrationEntry:
    """Decode a single OtpParameters message"""
    fields = {}
    offset = 0

    while offset < len(data):
        field_number, wire_type, offset = read_tag(data, offset)

        if wire_type == WIRE_LENGTH_DELIMITED and field_number in (1, 2, 3):
            value, offset = read_length_delimited(data, offset)
            if field_number == 1:
                fields["secret"] = value
            elif field_number == 2:
                fields["name"] = _decode_text(value)
            else:
                fields["issuer"] = _decode_text(value)
        elif wire_type == WIRE_VARINT and field_number in (4, 5, 6, 7):
            value, offset = read_varint(data, offset)
            if field_number == 4:
                fields["algorithm"] = ALGORITHM_ENUM.get(value, config.DEFAULT_ALGORITHM)
            elif field_number == 5:
                fields["digits"] = DIGITS_ENUM.get(value, config.DEFAULT_DIGITS)
            elif field_number == 6:
                fields["type"] = "hotp" if value == TYPE_HOTP else "totp"
            else:
                fields["counter"] = value
        else:
            offset = skip_field(data, offset, wire_type)

    if not fields.get("secret"):
        raise MalformedMigrationPayload("OTP entry has no secret")
    return MigrationEntry(**fields)


def decode_migration_payload(data: bytes) -> list[MigrationEntry]:
    """Decode a MigrationPayload message into its OTP entries, in order"""
    entries = []
    offset = 0

    while offset < len(data):
        field_number, wire_type, offset = read_tag(data, offset)

        if field_number == 1 and wire_type == WIRE_LENGTH_DELIMITED:
            entry_data, offset = read_length_delimited(data, offset)
            entries.append(decode_otp_parameters(entry_data))
        else:
            offset = skip_field(data, offset, wire_type)

    _logger.debug("Decoded %d migration entries", len(entries))
    return entries


# ==================== URI ====================

def _query_param(query: str, name: str) -> str | None:
    # parse_qs would turn '+' from the base64 alphabet into a space
    for pair in query.split("&"):
        key, sep, value = pair.partition("=")
        if sep and unquote(key) == name:
            return unquote(value)
    return None


def decode_base64(text: str) -> bytes:
    """Decode standard or URL-safe base64, padding optional"""
    normalized = text.strip().replace("-", "+").replace("_", "/")
    normalized += "=" * (-len(normalized) % 4)
    try:
        return base64.b64decode(normalized, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedMigrationPayload(f"Invalid base64 data: {e}") from e


def parse_migration_uri(uri: str) -> list[MigrationEntry]:
    """Parse an otpauth-migration:// URI into its OTP entries"""
    parsed = urlparse(uri.strip())
    if parsed.scheme.lower() != MIGRATION_SCHEME:
        raise InvalidUri("Invalid migration URI. Expected otpauth-migration:// format")

    data_b64 = _query_param(parsed.query, "data")
    if not data_b64:
        raise InvalidUri("No data parameter found in migration URI")

    return decode_migration_payload(decode_base64(data_b64))


def migration_accounts(uri: str) -> list[Account]:
    return [entry.to_account() for entry in parse_migration_uri(uri)]
