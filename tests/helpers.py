"""Builders for hand-made migration payloads used across the tests."""

from __future__ import annotations

import base64

# RFC 6238 appendix B seed for SHA1
RFC_SECRET = b"12345678901234567890"
RFC_SECRET_B32 = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"


def varint(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def tag(field_number: int, wire_type: int) -> bytes:
    return varint((field_number << 3) | wire_type)


def length_delimited(field_number: int, payload: bytes) -> bytes:
    return tag(field_number, 2) + varint(len(payload)) + payload


def otp_parameters(
    secret: bytes,
    name: str = "",
    issuer: str = "",
    algorithm: int = 1,
    digits: int = 1,
    otp_type: int = 2,
    counter: int | None = None,
) -> bytes:
    msg = length_delimited(1, secret)
    if name:
        msg += length_delimited(2, name.encode("utf-8"))
    if issuer:
        msg += length_delimited(3, issuer.encode("utf-8"))
    msg += tag(4, 0) + varint(algorithm)
    msg += tag(5, 0) + varint(digits)
    msg += tag(6, 0) + varint(otp_type)
    if counter is not None:
        msg += tag(7, 0) + varint(counter)
    return msg


def migration_payload(*entries: bytes) -> bytes:
    body = b"".join(length_delimited(1, e) for e in entries)
    # version, batch_size, batch_index, batch_id
    body += tag(2, 0) + varint(1)
    body += tag(3, 0) + varint(1)
    body += tag(4, 0) + varint(0)
    body += tag(5, 0) + varint(123456789)
    return body


def migration_uri(payload: bytes) -> str:
    return "otpauth-migration://offline?data=" + base64.b64encode(payload).decode()
