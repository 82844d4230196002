from __future__ import annotations

import pytest

from sigil_otp.store import MemoryAccountStore


@pytest.fixture
def account() -> dict:
    return {
        "issuer": "GitHub",
        "label": "alice@example.com",
        "secret": "JBSWY3DPEHPK3PXP",
        "algorithm": "SHA1",
        "digits": 6,
        "period": 30,
        "type": "totp",
    }


@pytest.fixture
def accounts() -> list[dict]:
    return [
        {
            "id": "1",
            "issuer": "Google",
            "label": "user1",
            "secret": "SECRETAAAAAAAAAA",
            "algorithm": "SHA1",
            "digits": 6,
            "period": 30,
            "type": "totp",
            "created": 123,
            "folder": "Work",
            "order": 0,
        },
        {
            "id": "2",
            "issuer": "ACME, Inc.",
            "label": 'bob "the builder"',
            "secret": "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ",
            "algorithm": "SHA256",
            "digits": 8,
            "period": 60,
            "type": "totp",
            "created": 456,
            "order": 1,
        },
    ]


@pytest.fixture
def store() -> MemoryAccountStore:
    return MemoryAccountStore()
