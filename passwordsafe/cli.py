"""
PasswordSafe - Command-Line Interface

Commands:
    add   --service S [--password P | --generate]   Add or update a password
    get   --service S [--copy]                      Show (or copy) a password
    list                                            List stored services

The master password is asked for once per run (masked), after the
arguments have been validated.
"""

import argparse
import getpass
import logging
import os
import sys
from typing import List, Optional

import pyperclip

from . import __version__, crypto
from .errors import (
    AuthenticationError,
    EncryptionError,
    FormatError,
    KeyDerivationError,
    NotFoundError,
)
from .storage import FileStorage
from .store import DEFAULT_STORE_FILE, StoreManager

logger = logging.getLogger(__name__)

STORE_ENV_VAR = "PASSWORDSAFE_STORE"

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def default_store_path() -> str:
    return os.environ.get(STORE_ENV_VAR) or DEFAULT_STORE_FILE


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="passwordsafe",
        description="Store service passwords in a single encrypted file.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--store", default=None, metavar="PATH",
        help=f"Password store file (default: ${STORE_ENV_VAR} or ./{DEFAULT_STORE_FILE})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")

    sub = parser.add_subparsers(dest="command", metavar="<command>")
    sub.required = True

    add = sub.add_parser("add", help="Add a new password to the safe")
    add.add_argument("--service", required=True, help="The service to add a password for.")
    source = add.add_mutually_exclusive_group()
    source.add_argument(
        "--password",
        help="The password for the service. If omitted, you will be prompted.",
    )
    source.add_argument("--generate", action="store_true", help="Generate a random password")
    add.add_argument("--length", type=int, default=20, help="Generated password length [20]")
    add.add_argument("--no-symbols", action="store_true", help="Generate without symbols")

    get = sub.add_parser("get", help="Get a password from the safe")
    get.add_argument("--service", required=True, help="The service to get the password for.")
    get.add_argument("--copy", action="store_true", help="Copy to clipboard instead of printing")

    sub.add_parser("list", help="List all services in the safe")

    return parser


# =============================================================================
# Commands
# =============================================================================

def cmd_add(store: StoreManager, master_password: str, args) -> int:
    if args.generate:
        password = crypto.generate_password(args.length, not args.no_symbols)
        print(f"Generated password for '{args.service}'.")
    elif args.password:
        password = args.password
    else:
        password = getpass.getpass(f"Enter password for service '{args.service}': ")

    result = store.add_or_update(master_password, args.service, password)
    if result.created:
        print(f"Initialized new password store: {store.storage.path}")
    print(f"Password added/updated successfully for service: {args.service}")
    return EXIT_OK


def cmd_get(store: StoreManager, master_password: str, args) -> int:
    password = store.get(master_password, args.service)
    if password is None:
        print(f"No password found for service: {args.service}")
        return EXIT_OK

    if args.copy:
        pyperclip.copy(password)
        print(f"✓ Password for {args.service} copied to clipboard!")
    else:
        print(f"Password for {args.service}: {password}")
    return EXIT_OK


def cmd_list(store: StoreManager, master_password: str, args) -> int:
    services = store.list_services(master_password)
    if not services:
        print("No services found in the password store.")
        return EXIT_OK

    print("Stored services:")
    for i, name in enumerate(services, 1):
        print(f"{i}. {name}")
    return EXIT_OK


COMMANDS = {
    "add": cmd_add,
    "get": cmd_get,
    "list": cmd_list,
}


# =============================================================================
# Entry point
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if getattr(args, "service", None) is not None and not args.service.strip():
        parser.error("--service must not be empty")
    if args.command == "add" and args.generate and args.length < 1:
        parser.error("--length must be at least 1")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store_path = args.store or default_store_path()
    logger.debug("Using password store %s", store_path)
    store = StoreManager(FileStorage(store_path), kdf_n=crypto.SCRYPT_N)

    try:
        master_password = getpass.getpass("Enter master password: ")
        return COMMANDS[args.command](store, master_password, args)
    except NotFoundError:
        # Only reachable from get/list; add creates the store
        print("Password store not found. Add a password first using the 'add' command.")
        return EXIT_OK
    except AuthenticationError:
        print("ERROR: Incorrect master password or corrupted store.", file=sys.stderr)
    except FormatError as e:
        print(f"ERROR: Malformed password store: {e}", file=sys.stderr)
    except (KeyDerivationError, EncryptionError) as e:
        print(f"ERROR: Internal cryptographic failure: {e}", file=sys.stderr)
    except pyperclip.PyperclipException as e:
        print(f"ERROR: Clipboard unavailable: {e}", file=sys.stderr)
    except OSError as e:
        print(f"ERROR: Cannot access password store {store_path}: {e}", file=sys.stderr)
    except KeyboardInterrupt:
        print("\nExiting...", file=sys.stderr)
        return EXIT_INTERRUPTED
    except EOFError:
        print("\nERROR: No input available for password prompt.", file=sys.stderr)
    return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
