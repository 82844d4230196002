"""
sigil-otp - local two-factor authenticator core

TOTP code generation, otpauth:// and otpauth-migration:// parsing,
password-encrypted backups, and duplicate-aware restore.
"""

import logging

from .backup import (
    build_backup,
    export_backup,
    export_backup_async,
    export_csv,
    import_backup,
    import_backup_async,
    import_csv,
    import_json,
    is_encrypted_backup,
    restore_backup,
    restore_csv,
    restore_json,
)
from .errors import (
    DecodedDataNotArray,
    DuplicateAccount,
    IncorrectPasswordOrCorrupted,
    InvalidAccount,
    InvalidBackupFormat,
    InvalidSecret,
    InvalidUri,
    MalformedMigrationPayload,
    OnlyTotpSupported,
    SigilError,
    UnsupportedAlgorithm,
    UnsupportedBackupVersion,
)
from .migration import MigrationEntry, decode_migration_payload, parse_migration_uri
from .otp import CodeTicker, TotpDisplay, code_for_account, decode_secret, display_codes, generate, hotp
from .store import AccountStore, MemoryAccountStore, RestoreResult, add_account, add_accounts, restore_accounts
from .uri import build_otpauth_uri, parse_otpauth_uri, parse_url

__version__ = "1.0.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
