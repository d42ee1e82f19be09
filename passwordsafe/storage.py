"""
PasswordSafe - Storage Backends

The Store Manager only ever needs two things from storage: give me its
bytes (NotFoundError if there is no store yet) and replace its bytes.
Two backends:
- FileStorage: a single file on disk (the normal case)
- MemoryStorage: a bytes buffer, for tests
"""

import logging
import os
import tempfile
from typing import Optional

from .errors import NotFoundError

logger = logging.getLogger(__name__)


class FileStorage:
    """Store bytes in one file, replaced atomically on every write."""

    def __init__(self, path: str):
        self.path = path

    def read(self) -> bytes:
        try:
            with open(self.path, 'rb') as f:
                return f.read()
        except FileNotFoundError as e:
            raise NotFoundError(f"No password store at {self.path}") from e

    def write(self, data: bytes) -> None:
        """
        Replace the file contents with `data`.

        Writes to a temp file in the same directory, fsyncs it, then
        os.replace()s it over the target, so a crash leaves either the old
        store or the new one, never half of each.
        """
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(prefix=".passwordsafe-", dir=directory)
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            # Owner read/write only
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.debug("Wrote %d bytes to %s", len(data), self.path)

    def __repr__(self) -> str:
        return f"FileStorage({self.path!r})"


class MemoryStorage:
    """In-memory stand-in for FileStorage."""

    def __init__(self, data: Optional[bytes] = None):
        self.data = data

    def read(self) -> bytes:
        if self.data is None:
            raise NotFoundError("No password store in memory")
        return self.data

    def write(self, data: bytes) -> None:
        self.data = bytes(data)
