"""
PasswordSafe - Store Module (Store Manager)

This file handles:
- The on-disk layout: salt (16 bytes) || ciphertext blob
- Creating a fresh store (empty record set + new salt)
- The read → decrypt → mutate → encrypt → write cycle for add/get/list

The whole record set is encrypted as one blob. The salt is fixed when the
store is first created and reused on every later save.

Plaintext payload (before encryption):
    {"passwords": {"<service>": "<password>", ...}}
"""

import json
import logging
import os
from typing import Dict, List, NamedTuple, Optional, Tuple, Union

from . import crypto
from .errors import AuthenticationError, FormatError, NotFoundError

logger = logging.getLogger(__name__)

RecordSet = Dict[str, str]
Password = Union[str, bytes]

DEFAULT_STORE_FILE = "passwords.safe"

# Authenticated with every store payload
STORE_AD = {
    "ctx": "password_store",
    "aead": "aes256gcm",
    "format_version": 1,
}


class AddResult(NamedTuple):
    created: bool   # store file didn't exist before this call
    updated: bool   # service already had a password, now overwritten


# =============================================================================
# Record Set Encoding
# =============================================================================

def encode_records(records: RecordSet) -> bytes:
    return json.dumps({"passwords": records}, sort_keys=True).encode('utf-8')


def decode_records(data: bytes) -> RecordSet:
    """
    Decode the decrypted payload back into a record set.

    Raises:
        FormatError: If it isn't {"passwords": {str: str}}
    """
    try:
        doc = json.loads(data.decode('utf-8'))
    except (UnicodeDecodeError, ValueError) as e:
        raise FormatError(f"Password store payload is not valid JSON: {e}") from e

    if not isinstance(doc, dict):
        raise FormatError("Password store payload must be a JSON object")

    # A valid but empty store may carry null here
    records = doc.get("passwords")
    if records is None:
        records = {}
    if not isinstance(records, dict):
        raise FormatError("'passwords' must be a JSON object")

    for service, password in records.items():
        if not isinstance(password, str):
            raise FormatError(f"Password for service {service!r} is not a string")

    return records


# =============================================================================
# STORE MANAGER
# =============================================================================

class StoreManager:
    """
    Owns the store file and every mutation of it.

    The master password is passed to each operation and never kept on the
    instance. Each call is a full load-decrypt-(mutate-encrypt-save) pass.

    Usage:
        store = StoreManager(FileStorage("passwords.safe"))
        store.add_or_update("master", "mail", "hunter2")
        store.get("master", "mail")        # -> "hunter2"
        store.get("master", "bank")        # -> None
        store.list_services("master")      # -> ["mail"]
    """

    def __init__(self, storage, kdf_n: int = crypto.SCRYPT_N):
        """
        Args:
            storage: Backend with read() and write(data)
            kdf_n: scrypt cost; a store can only be opened with the N it was written with
        """
        self.storage = storage
        self.kdf_n = kdf_n

    # -------------------------------------------------------------------------
    # File layout
    # -------------------------------------------------------------------------

    def initialize_new_store(self) -> Tuple[RecordSet, bytes]:
        """Empty record set plus a fresh random salt."""
        return {}, os.urandom(crypto.SALT_SIZE)

    def load_store(self) -> Tuple[bytes, bytes]:
        """
        Read the store and split it into (ciphertext, salt).

        Raises:
            NotFoundError: No store exists yet
            FormatError: File is shorter than the salt
        """
        data = self.storage.read()
        if len(data) < crypto.SALT_SIZE:
            raise FormatError(
                f"Password store is too short ({len(data)} bytes, "
                f"need at least {crypto.SALT_SIZE})"
            )
        salt = data[:crypto.SALT_SIZE]
        ciphertext = data[crypto.SALT_SIZE:]
        return ciphertext, salt

    def save_store(self, ciphertext: bytes, salt: bytes) -> None:
        """Replace the stored contents with salt || ciphertext."""
        if len(salt) != crypto.SALT_SIZE:
            raise ValueError(f"Salt must be {crypto.SALT_SIZE} bytes, got {len(salt)}")
        self.storage.write(salt + ciphertext)

    def read_salt(self) -> bytes:
        _, salt = self.load_store()
        return salt

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def add_or_update(self, master_password: Password, service: str, password: str) -> AddResult:
        """
        Insert or overwrite service → password (last write wins).

        Creates the store (with a new salt) if it doesn't exist yet. Nothing
        is written unless decode, encrypt and encode all succeeded.

        Raises:
            AuthenticationError: Wrong master password or corrupted store
            FormatError: Malformed store file or payload
        """
        try:
            ciphertext, salt = self.load_store()
        except NotFoundError:
            logger.info("Initializing new password store in %r", self.storage)
            records, salt = self.initialize_new_store()
            key = crypto.derive_key(master_password, salt, self.kdf_n)
            created = True
        else:
            key = crypto.derive_key(master_password, salt, self.kdf_n)
            records = self._open(ciphertext, key)
            created = False

        updated = service in records
        records[service] = password

        blob = crypto.encrypt(encode_records(records), key, STORE_AD)
        self.save_store(blob, salt)
        logger.debug("Saved %d records (%s %r)", len(records),
                     "updated" if updated else "added", service)
        return AddResult(created=created, updated=updated)

    def get(self, master_password: Password, service: str) -> Optional[str]:
        """
        Look up one service.

        Returns:
            The password, or None if the service isn't in the store

        Raises:
            NotFoundError: No store exists yet
            AuthenticationError: Wrong master password or corrupted store
        """
        return self._load_records(master_password).get(service)

    def list_services(self, master_password: Password) -> List[str]:
        """All service names, sorted."""
        return sorted(self._load_records(master_password))

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _load_records(self, master_password: Password) -> RecordSet:
        ciphertext, salt = self.load_store()
        key = crypto.derive_key(master_password, salt, self.kdf_n)
        return self._open(ciphertext, key)

    def _open(self, ciphertext: bytes, key: bytes) -> RecordSet:
        try:
            plaintext = crypto.decrypt(ciphertext, key, STORE_AD)
        except AuthenticationError:
            logger.debug("Failed to decrypt password store %r", self.storage)
            raise
        return decode_records(plaintext)
