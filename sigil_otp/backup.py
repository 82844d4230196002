"""
Backup and import formats.

Encrypted backup (version 1):

    {"v": 1, "salt": b64(16 bytes), "iv": b64(12 bytes), "data": b64(ciphertext || tag)}

The key is PBKDF2-HMAC-SHA256 (100 000 iterations) over the password and
salt; data is AES-256-GCM over the JSON list of accounts, no associated data.

Plaintext formats: CSV with a fixed header, and generic JSON (a bare list of
accounts or a third-party export object holding one).
"""

import asyncio
import base64
import binascii
import csv
import io
import json
import logging
import os
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from . import config
from .account import Account, normalize_account
from .errors import (
    DecodedDataNotArray,
    IncorrectPasswordOrCorrupted,
    InvalidAccount,
    InvalidBackupFormat,
    UnsupportedBackupVersion,
)
from .store import AccountStore, RestoreResult, restore_accounts

_logger = logging.getLogger(__name__)


# ==================== Encryption ====================

def derive_key(password: str, salt: bytes) -> bytes:
    """Derive the 256-bit AES key from the backup password"""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=config.KEY_SIZE,
        salt=salt,
        iterations=config.PBKDF2_ITERATIONS,
    )
    return kdf.derive(password.encode("utf-8"))


def _b64decode_field(container: dict, name: str) -> bytes:
    value = container.get(name)
    if not isinstance(value, str):
        raise InvalidBackupFormat(f"Missing '{name}' field")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidBackupFormat(f"Invalid base64 in '{name}': {e}") from e


def build_backup(password: str, accounts: list) -> dict:
    """Encrypt accounts into a backup container"""
    salt = os.urandom(config.SALT_SIZE)
    iv = os.urandom(config.IV_SIZE)
    key = derive_key(password, salt)

    plaintext = json.dumps(accounts).encode("utf-8")
    encrypted = AESGCM(key).encrypt(iv, plaintext, None)

    _logger.info("Exported encrypted backup of %d accounts", len(accounts))
    return {
        "v": config.BACKUP_VERSION,
        "salt": base64.b64encode(salt).decode(),
        "iv": base64.b64encode(iv).decode(),
        "data": base64.b64encode(encrypted).decode(),
    }


def export_backup(password: str, accounts: list) -> str:
    """Encrypted backup as JSON text, ready to be written to a file"""
    return json.dumps(build_backup(password, accounts), indent=2)


def _load_container(container: str | bytes | dict) -> dict:
    if isinstance(container, dict):
        return container
    try:
        loaded = json.loads(container)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
        raise InvalidBackupFormat("Invalid backup file format") from e
    if not isinstance(loaded, dict):
        raise InvalidBackupFormat("Invalid backup file format")
    return loaded


def import_backup(container: str | bytes | dict, password: str) -> list:
    """Decrypt a backup container and return the stored account list as-is"""
    backup = _load_container(container)

    version = backup.get("v")
    # bool is an int subclass and 1.0 == 1, so compare the type too
    if type(version) is not int or version != config.BACKUP_VERSION:
        raise UnsupportedBackupVersion(version)

    salt = _b64decode_field(backup, "salt")
    iv = _b64decode_field(backup, "iv")
    encrypted = _b64decode_field(backup, "data")
    if len(salt) != config.SALT_SIZE:
        raise InvalidBackupFormat(f"Salt must be {config.SALT_SIZE} bytes, got {len(salt)}")
    if len(iv) != config.IV_SIZE:
        raise InvalidBackupFormat(f"IV must be {config.IV_SIZE} bytes, got {len(iv)}")

    key = derive_key(password, salt)
    try:
        plaintext = AESGCM(key).decrypt(iv, encrypted, None)
    except InvalidTag:
        # Wrong password and tampered data raise the same error
        raise IncorrectPasswordOrCorrupted() from None

    try:
        accounts = json.loads(plaintext.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidBackupFormat("Decrypted data is not valid JSON") from e

    if not isinstance(accounts, list):
        raise DecodedDataNotArray()
    for index, entry in enumerate(accounts):
        if not isinstance(entry, dict):
            raise InvalidBackupFormat(f"Entry {index} is not an object")

    _logger.info("Decrypted backup with %d accounts", len(accounts))
    return accounts


def is_encrypted_backup(text: str | bytes) -> bool:
    """True when text looks like an encrypted backup container"""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError):
        return False
    return isinstance(data, dict) and all(k in data for k in ("v", "salt", "data"))


async def export_backup_async(password: str, accounts: list) -> str:
    return await asyncio.to_thread(export_backup, password, accounts)


async def import_backup_async(container: str | bytes | dict, password: str) -> list:
    return await asyncio.to_thread(import_backup, container, password)


# ==================== CSV ====================

def export_csv(accounts: list) -> str:
    """Plaintext CSV export, one row per account"""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(config.CSV_FIELDS)
    for account in accounts:
        row = {
            "type": config.DEFAULT_TYPE,
            "algorithm": config.DEFAULT_ALGORITHM,
            "digits": config.DEFAULT_DIGITS,
            "period": config.DEFAULT_PERIOD,
            **{k: v for k, v in account.items() if v is not None},
        }
        writer.writerow([row.get(field, "") for field in config.CSV_FIELDS])
    return buffer.getvalue()


def import_csv(text: str) -> list[Account]:
    """Parse a CSV export back into account descriptors"""
    reader = csv.DictReader(io.StringIO(text))
    columns = reader.fieldnames or []
    missing = [c for c in ("issuer", "label", "secret") if c not in columns]
    if missing:
        raise InvalidBackupFormat(f"CSV is missing columns: {', '.join(missing)}")

    accounts = []
    line = 1
    try:
        for line, row in enumerate(reader, start=2):
            if not any(row.values()):
                continue
            accounts.append(normalize_account(row))
    except (InvalidAccount, csv.Error) as e:
        raise InvalidBackupFormat(f"Invalid CSV row {line}: {e}") from e
    return accounts


# ==================== Generic JSON ====================

def _find_account_array(data: dict) -> list:
    for key in config.THIRD_PARTY_ARRAY_KEYS:
        if isinstance(data.get(key), list):
            return data[key]
    for value in data.values():
        if isinstance(value, list):
            return value
    raise InvalidBackupFormat("No account list found in JSON file")


def _third_party_entry(entry: dict) -> dict[str, Any]:
    # 2FAS keeps account details in a nested "otp" object
    otp = entry.get("otp") if isinstance(entry.get("otp"), dict) else {}
    mapped = {
        "issuer": entry.get("issuer") or otp.get("issuer") or entry.get("name"),
        "label": entry.get("label") or entry.get("account") or otp.get("account") or otp.get("label"),
        "secret": entry.get("secret"),
        "folder": entry.get("folder"),
    }
    for key in ("algorithm", "digits", "period"):
        value = entry.get(key, otp.get(key))
        if key == "algorithm":
            if isinstance(value, str) and value.upper() in config.URI_ALGORITHMS:
                mapped[key] = value
        elif isinstance(value, int) and value > 0:
            mapped[key] = value
    return mapped


def import_json(text: str | bytes) -> list[Account]:
    """Parse a plaintext JSON list of accounts or a recognized third-party export"""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
        raise InvalidBackupFormat("Invalid JSON file") from e

    if isinstance(data, list):
        entries, mapper = data, dict
    elif isinstance(data, dict):
        entries, mapper = _find_account_array(data), _third_party_entry
    else:
        raise InvalidBackupFormat("Unsupported JSON import format")

    accounts = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise InvalidBackupFormat(f"Entry {index} is not an object")
        try:
            accounts.append(normalize_account(mapper(entry)))
        except InvalidAccount as e:
            raise InvalidBackupFormat(f"Entry {index}: {e}") from e

    _logger.debug("Parsed %d accounts from JSON import", len(accounts))
    return accounts


# ==================== Restore ====================

def restore_backup(store: AccountStore, container: str | bytes | dict, password: str) -> RestoreResult:
    return restore_accounts(store, import_backup(container, password))


def restore_csv(store: AccountStore, text: str) -> RestoreResult:
    return restore_accounts(store, import_csv(text))


def restore_json(store: AccountStore, text: str | bytes) -> RestoreResult:
    return restore_accounts(store, import_json(text))
