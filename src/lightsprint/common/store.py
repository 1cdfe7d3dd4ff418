"""
Atomic JSON file storage

Each hook invocation runs as a separate process, so the only state shared
between them is a handful of small JSON files. Files are always read whole,
changed in memory and rewritten whole through a temp file and a rename.
"""

import json
import os
import secrets
from pathlib import Path
from typing import Any, Callable, Dict


class JsonFileStore:
    """A single JSON object persisted to disk.

    Reads never fail: a missing, unreadable or corrupt file reads as an empty
    dict. Writes go to a uniquely named sibling temp file which then replaces
    the target, so readers never observe a partial document.
    """

    def __init__(self, path: Path) -> None:
        """Initialize the store

        Args:
            path: Location of the JSON file
        """
        self.path = Path(path)

    def read(self) -> Dict[str, Any]:
        """Read the whole document

        Returns:
            Parsed object, or an empty dict if the file is missing or corrupt
        """
        try:
            with self.path.open(encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            return {}
        return data if isinstance(data, dict) else {}

    def write(self, data: Dict[str, Any]) -> None:
        """Replace the whole document atomically

        Args:
            data: Object to persist
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_name(f"{self.path.name}.{secrets.token_hex(4)}")
        try:
            with temp_path.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self.path)
        except BaseException:
            try:
                temp_path.unlink()
            except OSError:
                pass
            raise

    def update(self, mutate: Callable[[Dict[str, Any]], None]) -> Dict[str, Any]:
        """Read, apply an in-place mutation and write back

        Concurrent writers are not coordinated; the last one to rename wins.

        Args:
            mutate: Function that changes the document in place

        Returns:
            The document as written
        """
        data = self.read()
        mutate(data)
        self.write(data)
        return data

    def clear(self) -> None:
        """Remove the file if present"""
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
