"""
Key/value persistence for the grocery ledger.

The ledger is stored as a JSON array of ``{"item", "brand", "available"}``
objects under a single fixed key. ``JsonStore`` keeps one file per key in a
data directory; ``MemoryStore`` keeps values in a dict.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Protocol

from .ledger import Entry, LedgerError

logger = logging.getLogger(__name__)

STORAGE_KEY = "tableData"
DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "grocery-ledger"


class Store(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """In-process store. Values are kept JSON-encoded, like on disk."""

    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Ignoring undecodable value for %s: %s", key, e)
            return None

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value, ensure_ascii=False)

    def set_raw(self, key: str, raw: str) -> None:
        """Store an already-encoded value, bypassing serialization."""
        self._data[key] = raw

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class JsonStore:
    """Directory-backed store: each key lives in ``<directory>/<key>.json``."""

    def __init__(self, directory: Path | str | None = None):
        self.directory = Path(directory).expanduser() if directory else DEFAULT_DATA_DIR

    def path_for(self, key: str) -> Path:
        safe_key = "".join(c if c.isalnum() or c in "-_" else "_" for c in key)
        return self.directory / f"{safe_key}.json"

    def get(self, key: str) -> Any | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Failed to read %s: %s", path, e)
            return None

    def set(self, key: str, value: Any) -> None:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a temp file in the same directory, then swap it in
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Wrote %s", path)

    def delete(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)


def encode_entries(entries: Iterable[Entry]) -> list[dict[str, Any]]:
    return [entry.to_dict() for entry in entries]


def decode_entries(data: Any) -> list[Entry]:
    """Decode a stored snapshot.

    Raises:
        LedgerError: If the snapshot is not a list of valid entry objects.
    """
    if not isinstance(data, list):
        raise LedgerError(f"Expected a list of entries, got {type(data).__name__}")
    entries = []
    for record in data:
        if not isinstance(record, dict):
            raise LedgerError(f"Expected an entry object, got {record!r}")
        entries.append(Entry.from_dict(record))
    return entries


def load_entries(store: Store, key: str = STORAGE_KEY) -> list[Entry]:
    """Load entries from the store.

    An absent or malformed snapshot is treated as no data.
    """
    data = store.get(key)
    if data is None:
        return []
    try:
        return decode_entries(data)
    except LedgerError as e:
        logger.warning("Ignoring stored snapshot %s: %s", key, e)
        return []


def save_entries(store: Store, entries: Iterable[Entry], key: str = STORAGE_KEY) -> None:
    store.set(key, encode_entries(entries))
