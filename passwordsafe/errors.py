"""
PasswordSafe - Error Types

Every failure the core can report. The CLI maps these to messages and
exit codes; nothing below it catches them.
"""


class PasswordSafeError(Exception):
    """Base class for all password store errors."""


class NotFoundError(PasswordSafeError):
    """No store file exists at the configured path."""


class FormatError(PasswordSafeError):
    """Store file is malformed (too short, or payload doesn't decode)."""


class AuthenticationError(PasswordSafeError):
    """
    Tag verification failed.

    Wrong master password and corrupted ciphertext look exactly the same
    to AES-GCM, so both end up here.
    """

    def __init__(self, message: str = "incorrect master password or corrupted store"):
        super().__init__(message)


class KeyDerivationError(PasswordSafeError):
    """scrypt rejected its parameters."""


class EncryptionError(PasswordSafeError):
    """Cipher could not be initialized (usually a bad key length)."""
