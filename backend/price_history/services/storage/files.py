# backend/price_history/services/storage/files.py
"""
File storage rooted at a single validated directory.

Every store in this package reads and writes through a FileStorage instance,
so the storage location is resolved once (see dependencies.get_file_storage)
and passed in at construction. Paths handed to the methods here are relative
to the root.

Writes are whole-file: content goes to a temporary file in the target
directory, which then replaces the destination atomically. There is no
locking; concurrent writers to the same file race and the last one wins.
"""

import logging
import os
import tempfile
from pathlib import Path

from price_history.services.exceptions import ConfigError

logger = logging.getLogger(__name__)

ENCODING = "utf-8"


def safe_name(symbol: str) -> str:
    """
    File-system safe form of a symbol.

    Example:
        >>> safe_name("2330:TWSE")
        '2330_TWSE'
    """
    return symbol.strip().replace(":", "_").replace("/", "_")


def symbol_from_name(stem: str) -> str:
    """
    Recover a symbol from a file stem produced by safe_name().

    Only the first underscore is turned back into the exchange delimiter.
    """
    return stem.replace("_", ":", 1)


class FileStorage:
    """
    Text file access under a storage root.

    Args:
        root: Directory that holds all persisted state. Created if missing.

    Raises:
        ConfigError: If the root cannot be created or is not writable
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).expanduser()

        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigError(
                f"Storage root '{self.root}' cannot be created: {e}",
                setting="storage_root",
            ) from e

        if not self.root.is_dir() or not os.access(self.root, os.W_OK):
            raise ConfigError(
                f"Storage root '{self.root}' is not a writable directory",
                setting="storage_root",
            )

        logger.debug(f"File storage rooted at {self.root}")

    def path(self, relative: str) -> Path:
        return self.root / relative

    def exists(self, relative: str) -> bool:
        return self.path(relative).is_file()

    def read_text(self, relative: str) -> str | None:
        """Read a whole file, or None when it does not exist."""
        target = self.path(relative)
        if not target.is_file():
            return None
        return target.read_text(encoding=ENCODING)

    def read_head(self, relative: str, lines: int) -> list[str] | None:
        """
        Read at most `lines` lines from the start of a file.

        Returns:
            Lines without their trailing newline, or None when the file
            does not exist
        """
        target = self.path(relative)
        if not target.is_file():
            return None

        head: list[str] = []
        with target.open("r", encoding=ENCODING) as handle:
            for line in handle:
                head.append(line.rstrip("\r\n"))
                if len(head) >= lines:
                    break
        return head

    def write_text(self, relative: str, content: str) -> Path:
        """
        Replace a file's content atomically.

        Returns:
            The absolute path written
        """
        target = self.path(relative)
        target.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
        )
        try:
            with os.fdopen(fd, "w", encoding=ENCODING, newline="") as handle:
                handle.write(content)
            os.replace(tmp_name, target)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        return target

    def append_text(self, relative: str, content: str) -> None:
        target = self.path(relative)
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("a", encoding=ENCODING) as handle:
            handle.write(content)

    def list_names(self, directory: str, suffix: str = "") -> list[str]:
        """
        File names (not paths) in a directory, sorted.

        Hidden files, including in-flight temporary files, are ignored.
        """
        folder = self.path(directory)
        if not folder.is_dir():
            return []
        return sorted(
            entry.name
            for entry in folder.iterdir()
            if entry.is_file()
            and not entry.name.startswith(".")
            and entry.name.endswith(suffix)
        )
