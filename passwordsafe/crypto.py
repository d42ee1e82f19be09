"""
PasswordSafe - Cryptography Module (Cipher Engine)

All cryptographic operations for the password store live in this one file:
- Master password + salt → scrypt → 32-byte store key
- Store key encrypts the whole serialized record set with AES-256-GCM
- Random passwords for `add --generate`

Security Architecture:
    1. Master Password → scrypt(salt) → Store Key (32 bytes, never stored)
    2. Store Key + fresh random nonce → AES-GCM → nonce || ciphertext || tag
    3. Any change to nonce, ciphertext, tag or associated data fails decryption

Why this is secure:
    - scrypt is memory-hard (resists GPU attacks)
    - AES-256-GCM provides authenticated encryption (can't be tampered)
    - A new nonce is drawn for every encryption, so nonces never repeat
"""

import json
import logging
import os
import secrets
import string
from typing import Optional, Union

from cryptography.exceptions import InvalidTag, UnsupportedAlgorithm
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from .errors import AuthenticationError, EncryptionError, KeyDerivationError

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

KEY_SIZE = 32            # 256-bit key
SALT_SIZE = 16           # 128-bit salt, stored at the front of the store file
NONCE_SIZE = 12          # 96-bit nonce for AES-GCM
TAG_SIZE = 16            # 128-bit authentication tag
MIN_BLOB_SIZE = NONCE_SIZE + TAG_SIZE

# scrypt parameters
# N = CPU/memory cost (power of 2), r = block size, p = parallelization
# memory ~= 128 * r * N bytes, so 2**17 needs ~128 MB
SCRYPT_N = 2**17
SCRYPT_R = 8
SCRYPT_P = 1

PASSWORD_SYMBOLS = "!@#$%^&*()_+-="


# =============================================================================
# Key Derivation
# =============================================================================

def derive_key(password: Union[str, bytes], salt: bytes, n: int = SCRYPT_N) -> bytes:
    """
    Derive the store key from the master password using scrypt.

    Deterministic: the key is never written anywhere, so every invocation
    has to be able to re-derive exactly the same bytes from (password, salt).

    Args:
        password: Master password (str is UTF-8 encoded). Empty is allowed.
        salt: 16-byte random salt (stored in the file, NOT secret)
        n: scrypt cost parameter, must be a power of 2 greater than 1

    Returns:
        32-byte store key

    Raises:
        KeyDerivationError: If scrypt rejects the parameters or the password
            can't be UTF-8 encoded
    """
    try:
        if isinstance(password, str):
            password = password.encode('utf-8')
        kdf = Scrypt(
            salt=salt,
            length=KEY_SIZE,
            n=n,
            r=SCRYPT_R,
            p=SCRYPT_P,
        )
        return kdf.derive(password)
    except UnicodeEncodeError as e:
        raise KeyDerivationError("master password is not valid UTF-8 text") from e
    except (ValueError, UnsupportedAlgorithm, MemoryError) as e:
        raise KeyDerivationError(f"scrypt key derivation failed: {e}") from e


# =============================================================================
# Canonical Associated Data
# =============================================================================

def canonical_ad(ad: Optional[dict]) -> Optional[bytes]:
    """
    Convert associated data to canonical JSON bytes.

    Same dict ALWAYS produces same bytes (sorted keys, no whitespace,
    UTF-8 without escaping), which decryption depends on.
    """
    if ad is None:
        return None
    json_str = json.dumps(ad, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
    return json_str.encode('utf-8')


# =============================================================================
# Encryption (AES-256-GCM)
# =============================================================================

def _cipher(key: bytes) -> AESGCM:
    try:
        return AESGCM(key)
    except (ValueError, TypeError) as e:
        raise EncryptionError(f"cannot initialize AES-GCM: {e}") from e


def encrypt(plaintext: bytes, key: bytes, associated_data: Optional[dict] = None) -> bytes:
    """
    Encrypt data with AES-256-GCM (Authenticated Encryption).

    Args:
        plaintext: Data to encrypt
        key: 32-byte encryption key
        associated_data: Optional context dict, authenticated but not encrypted

    Returns:
        Self-describing blob: nonce (12) || ciphertext || tag (16)

    Raises:
        EncryptionError: If the key has an invalid length
    """
    aesgcm = _cipher(key)

    # Generate random nonce (NEVER reuse with same key!)
    nonce = os.urandom(NONCE_SIZE)

    sealed = aesgcm.encrypt(nonce, plaintext, canonical_ad(associated_data))
    return nonce + sealed


def decrypt(blob: bytes, key: bytes, associated_data: Optional[dict] = None) -> bytes:
    """
    Decrypt a blob produced by encrypt().

    Args:
        blob: nonce || ciphertext || tag
        key: Same 32-byte key used for encryption
        associated_data: MUST match encryption exactly, or decryption fails

    Returns:
        Plaintext bytes

    Raises:
        AuthenticationError: Wrong key, tampered/truncated blob or wrong AD
        EncryptionError: If the key has an invalid length
    """
    aesgcm = _cipher(key)

    if len(blob) < MIN_BLOB_SIZE:
        logger.debug("Ciphertext blob too short (%d bytes)", len(blob))
        raise AuthenticationError()

    nonce, sealed = blob[:NONCE_SIZE], blob[NONCE_SIZE:]
    try:
        return aesgcm.decrypt(nonce, sealed, canonical_ad(associated_data))
    except InvalidTag as e:
        logger.debug("AES-GCM tag verification failed")
        raise AuthenticationError() from e


# =============================================================================
# Password Generation
# =============================================================================

def generate_password(length: int = 20, use_symbols: bool = True) -> str:
    """
    Generate a strong random password.

    Character sets: A-Z, a-z, 0-9 and optionally !@#$%^&*()_+-=
    Uses secrets.choice() (backed by os.urandom).
    """
    if length < 1:
        raise ValueError("Password length must be at least 1")

    chars = string.ascii_letters + string.digits
    if use_symbols:
        chars += PASSWORD_SYMBOLS

    return ''.join(secrets.choice(chars) for _ in range(length))
