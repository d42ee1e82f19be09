"""
PasswordSafe - Single-File Encrypted Password Store

Keeps service → password entries in one encrypted file, unlocked by a
master password.

Key Features:
- Local only: the store never leaves your disk
- Strong crypto: scrypt + AES-256-GCM
- Tamper detection: any changed byte makes decryption fail
- Simple: one file, one blob, one master password

Components:
- crypto.py: Key derivation, encryption, password generation
- store.py: Store file layout and add/get/list
- storage.py: File and in-memory byte storage
- errors.py: Error types
- cli.py: Command-line interface (uses built-in argparse)

Usage:
    passwordsafe add --service mail                 # Prompt for the password
    passwordsafe add --service bank --generate      # Generate one
    passwordsafe get --service mail                 # Show password
    passwordsafe list                               # List services
"""

__version__ = "0.1.0"
__author__ = "PasswordSafe Team"
