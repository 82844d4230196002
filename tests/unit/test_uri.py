from __future__ import annotations

import pytest

from sigil_otp.errors import InvalidUri, MalformedMigrationPayload, OnlyTotpSupported
from sigil_otp.uri import build_otpauth_uri, parse_otpauth_uri, parse_url
from tests.helpers import migration_payload, migration_uri, otp_parameters


def test_parse_full_uri() -> None:
    account = parse_otpauth_uri(
        "otpauth://totp/ACME%20Co:john.doe%40email.com"
        "?secret=HXDMVJECJJWSRB3HWIZR4IFUGFTMXBOZ&issuer=ACME%20Co"
        "&algorithm=SHA256&digits=8&period=60"
    )
    assert account == {
        "issuer": "ACME Co",
        "label": "john.doe@email.com",
        "secret": "HXDMVJECJJWSRB3HWIZR4IFUGFTMXBOZ",
        "algorithm": "SHA256",
        "digits": 8,
        "period": 60,
        "type": "totp",
    }


def test_defaults() -> None:
    account = parse_otpauth_uri("otpauth://totp/alice?secret=JBSWY3DPEHPK3PXP")
    assert account["algorithm"] == "SHA1"
    assert account["digits"] == 6
    assert account["period"] == 30
    assert account["label"] == "alice"
    assert account["issuer"] == "Unknown"


def test_label_issuer_is_trimmed() -> None:
    account = parse_otpauth_uri("otpauth://totp/GitHub%3A%20alice?secret=JBSWY3DPEHPK3PXP")
    assert account["issuer"] == "GitHub"
    assert account["label"] == "alice"


def test_issuer_param_overrides_label_issuer() -> None:
    account = parse_otpauth_uri("otpauth://totp/Old:alice?secret=JBSWY3DPEHPK3PXP&issuer=New")
    assert account["issuer"] == "New"
    assert account["label"] == "alice"


def test_blank_issuer_param_overrides_label_issuer() -> None:
    account = parse_otpauth_uri("otpauth://totp/Old:alice?secret=JBSWY3DPEHPK3PXP&issuer=")
    assert account["issuer"] == "Unknown"
    assert account["label"] == "alice"


@pytest.mark.parametrize("param", ["digits", "period", "algorithm"])
def test_blank_numeric_or_algorithm_param(param: str) -> None:
    with pytest.raises(InvalidUri):
        parse_otpauth_uri(f"otpauth://totp/alice?secret=JBSWY3DPEHPK3PXP&{param}=")



def test_only_first_colon_splits_label() -> None:
    account = parse_otpauth_uri("otpauth://totp/Corp:alice:work?secret=JBSWY3DPEHPK3PXP")
    assert account["issuer"] == "Corp"
    assert account["label"] == "alice:work"


def test_secret_is_normalized() -> None:
    account = parse_otpauth_uri("otpauth://totp/a?secret=jbswy3dpehpk3pxp")
    assert account["secret"] == "JBSWY3DPEHPK3PXP"


@pytest.mark.parametrize(
    "uri",
    [
        "otpauth://hotp/alice?secret=JBSWY3DPEHPK3PXP&counter=0",
        "otpauth://steam/alice?secret=JBSWY3DPEHPK3PXP",
    ],
)
def test_non_totp_type(uri: str) -> None:
    with pytest.raises(OnlyTotpSupported):
        parse_otpauth_uri(uri)


def test_only_totp_is_not_invalid_uri() -> None:
    with pytest.raises(OnlyTotpSupported) as exc_info:
        parse_otpauth_uri("otpauth://hotp/alice?secret=JBSWY3DPEHPK3PXP")
    assert not isinstance(exc_info.value, InvalidUri)


@pytest.mark.parametrize(
    "uri",
    [
        "https://example.com/totp/alice?secret=JBSWY3DPEHPK3PXP",
        "JBSWY3DPEHPK3PXP",
        "",
        "otpauth://totp/alice",
        "otpauth://totp/alice?issuer=x",
        "otpauth://totp/alice?secret=not-base32!",
        "otpauth://totp/alice?secret=JBSWY3DPEHPK3PXP&algorithm=SHA3",
        "otpauth://totp/alice?secret=JBSWY3DPEHPK3PXP&algorithm=MD5",
        "otpauth://totp/alice?secret=JBSWY3DPEHPK3PXP&digits=six",
        "otpauth://totp/alice?secret=JBSWY3DPEHPK3PXP&digits=12",
        "otpauth://totp/alice?secret=JBSWY3DPEHPK3PXP&period=0",
        "otpauth://totp/alice?secret=JBSWY3DPEHPK3PXP&period=abc",
    ],
)
def test_invalid_uri(uri: str) -> None:
    with pytest.raises(InvalidUri):
        parse_otpauth_uri(uri)


def test_parse_url_single_uri() -> None:
    accounts = parse_url("  otpauth://totp/GitHub:alice?secret=JBSWY3DPEHPK3PXP\n")
    assert len(accounts) == 1
    assert accounts[0]["issuer"] == "GitHub"


def test_parse_url_migration() -> None:
    payload = migration_payload(
        otp_parameters(b"Hello!\xde\xad\xbe\xef", name="alice", issuer="GitHub"),
        otp_parameters(b"12345678901234567890", name="bob", issuer="GitLab", digits=2),
    )
    accounts = parse_url(migration_uri(payload))
    assert [(a["issuer"], a["label"], a["secret"], a["digits"]) for a in accounts] == [
        ("GitHub", "alice", "JBSWY3DPEHPK3PXP", 6),
        ("GitLab", "bob", "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ", 8),
    ]


def test_parse_url_bad_migration() -> None:
    with pytest.raises(MalformedMigrationPayload):
        parse_url("otpauth-migration://offline?data=CgUKA2Fi")


def test_build_uri_parses_back(account: dict) -> None:
    account = dict(account, issuer="ACME Co", label="john doe@example.com", digits=8, period=60)
    uri = build_otpauth_uri(account)
    assert uri.startswith("otpauth://totp/ACME%20Co:john%20doe@example.com?")
    parsed = parse_otpauth_uri(uri)
    assert parsed == {k: account[k] for k in parsed}
