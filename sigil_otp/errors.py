"""Error kinds raised by sigil-otp.

Every public operation either succeeds completely or raises one of these.
Nothing is retried or swallowed inside the library.
"""


class SigilError(Exception):
    """Base class for all sigil-otp errors."""


# ==================== Accounts and secrets ====================

class InvalidSecret(SigilError, ValueError):
    """Secret is not valid base32 text."""


class InvalidAccount(SigilError, ValueError):
    """Account descriptor is missing required data."""


class DuplicateAccount(SigilError):
    """An account with the same issuer, label and secret already exists."""

    def __init__(self, issuer: str, label: str) -> None:
        super().__init__(f"Duplicate account: {issuer}:{label}")
        self.issuer = issuer
        self.label = label


# ==================== OTP engine ====================

class UnsupportedAlgorithm(SigilError, ValueError):
    def __init__(self, algorithm) -> None:
        super().__init__(f"Unsupported algorithm: {algorithm}")
        self.algorithm = algorithm


# ==================== URIs ====================

class InvalidUri(SigilError, ValueError):
    """URI is not a well-formed otpauth:// or otpauth-migration:// string."""


class OnlyTotpSupported(SigilError, ValueError):
    """otpauth:// URI of a type other than totp."""

    def __init__(self, otp_type: str) -> None:
        super().__init__(f"Only TOTP supported, got '{otp_type}'")
        self.otp_type = otp_type


class MalformedMigrationPayload(SigilError, ValueError):
    """Migration payload could not be decoded; no accounts were produced."""


# ==================== Backups ====================

class InvalidBackupFormat(SigilError, ValueError):
    """Backup or import file is not in a recognized format."""


class UnsupportedBackupVersion(SigilError):
    def __init__(self, version) -> None:
        super().__init__(f"Unsupported backup version: {version}")
        self.version = version


class IncorrectPasswordOrCorrupted(SigilError):
    """Authentication failed: the password is wrong or the data was altered."""

    def __init__(self) -> None:
        super().__init__("Incorrect password or corrupted file")


class DecodedDataNotArray(SigilError):
    def __init__(self) -> None:
        super().__init__("Decrypted data is not a list of accounts")
