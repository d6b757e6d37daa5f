"""
Grocery ledger: the list of inventory entries and the rules for changing it.

An entry is identified by its exact ``(item, brand)`` pair. Submitting an
entry whose identity already exists merges into the existing line, either
adding to its quantity or replacing it depending on the mode. New identities
are appended, so the stored order is insertion order; display code should use
``Ledger.sorted_view()``.
"""
from __future__ import annotations

import enum
import logging
import re
import unicodedata
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .storage import Store

logger = logging.getLogger(__name__)

_INTEGER_RE = re.compile(r"^[+-]?\d+$")


class LedgerError(Exception):
    """Base class for ledger errors."""


class InvalidQuantityError(LedgerError, ValueError):
    """Raised when a quantity is not an integer."""

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"Invalid quantity: {value!r} (expected a whole number)")


class InvalidEntryError(LedgerError, ValueError):
    """Raised when an entry has no item name."""


class Mode(str, enum.Enum):
    """What to do when a submitted entry matches an existing one."""

    ADD = "add"
    REPLACE = "replace"

    @classmethod
    def parse(cls, value: Mode | str) -> Mode:
        """Convert a mode name to a Mode.

        ``update`` is accepted as an alias for ``replace``.

        Examples:
            >>> Mode.parse("add")
            <Mode.ADD: 'add'>
            >>> Mode.parse("update")
            <Mode.REPLACE: 'replace'>
        """
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        if name == "update":
            return cls.REPLACE
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"Unknown mode: {value!r}. Use 'add' or 'replace'") from None


def parse_quantity(value: Any) -> int:
    """Parse user input into an integer quantity.

    Args:
        value: An int, or a string holding an optionally signed whole number.

    Returns:
        The quantity as an int.

    Raises:
        InvalidQuantityError: For anything else, including empty strings,
            decimals and booleans.

    Examples:
        >>> parse_quantity(" 3 ")
        3
        >>> parse_quantity("-2")
        -2
        >>> parse_quantity("2.5")
        Traceback (most recent call last):
            ...
        grocery_ledger.ledger.InvalidQuantityError: Invalid quantity: '2.5' (expected a whole number)
    """
    if isinstance(value, bool):
        raise InvalidQuantityError(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if _INTEGER_RE.match(text):
            return int(text)
    raise InvalidQuantityError(value)


@dataclass
class Entry:
    """One inventory line."""

    item: str
    brand: str
    available: int

    @property
    def key(self) -> tuple[str, str]:
        return (self.item, self.brand)

    def to_dict(self) -> dict[str, Any]:
        return {"item": self.item, "brand": self.brand, "available": self.available}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Entry:
        """Build an entry from its stored form.

        Raises:
            InvalidEntryError: If ``item`` is missing or empty, or ``brand`` is not a string.
            InvalidQuantityError: If ``available`` is not a whole number.
        """
        item = data.get("item")
        brand = data.get("brand", "")
        if not isinstance(item, str) or not item or not isinstance(brand, str):
            raise InvalidEntryError(f"Malformed entry: {data!r}")
        available = data.get("available")
        # JSON numbers written by other tools may come back as 3.0
        if isinstance(available, float) and available.is_integer():
            available = int(available)
        return cls(item=item, brand=brand, available=parse_quantity(available))


def collation_key(text: str) -> tuple[str, str, str]:
    """Sort key approximating a locale-aware comparison.

    Accents and case are ignored first, then case-folded accented text breaks
    ties, then the raw string with lowercase ahead of uppercase, so the order
    is total and ``"apple"`` sorts before ``"Apple"``.
    """
    folded = text.casefold()
    base = "".join(
        ch for ch in unicodedata.normalize("NFKD", folded) if not unicodedata.combining(ch)
    )
    return (base, folded, text.swapcase())


def _sort_key(entry: Entry) -> tuple:
    return (collation_key(entry.item), collation_key(entry.brand))


class Ledger:
    """Ordered collection of entries with no duplicate ``(item, brand)`` pairs.

    If a store is given, every mutation is written through to it.
    """

    def __init__(
        self,
        entries: Iterable[Entry] | None = None,
        store: Store | None = None,
        key: str | None = None,
    ):
        from .storage import STORAGE_KEY

        self._entries: list[Entry] = []
        self._store = store
        self._key = key or STORAGE_KEY
        if entries:
            self._entries = _collapse(entries)

    @classmethod
    def load(cls, store: Store, key: str | None = None) -> Ledger:
        """Hydrate a ledger from the store; missing or bad data gives an empty ledger."""
        from .storage import STORAGE_KEY, load_entries

        key = key or STORAGE_KEY
        entries = load_entries(store, key)
        logger.debug("Loaded %d entries from %s", len(entries), key)
        return cls(entries, store=store, key=key)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    @property
    def entries(self) -> list[Entry]:
        """Copy of the entries in insertion order."""
        return [Entry(e.item, e.brand, e.available) for e in self._entries]

    def find(self, item: str, brand: str) -> Entry | None:
        entry = self._find(item, brand)
        return Entry(entry.item, entry.brand, entry.available) if entry else None

    def _find(self, item: str, brand: str) -> Entry | None:
        for entry in self._entries:
            if entry.item == item and entry.brand == brand:
                return entry
        return None

    def add_or_merge(self, new_entry: Entry, mode: Mode | str = Mode.ADD) -> Entry:
        """Add an entry, or merge it into the entry with the same identity.

        Args:
            new_entry: The submitted entry.
            mode: ``add`` sums quantities, ``replace`` overwrites.

        Returns:
            The entry as stored in the ledger after the change.

        Raises:
            InvalidQuantityError: If ``new_entry.available`` is not an int.
            InvalidEntryError: If ``new_entry.item`` is empty.
        """
        mode = Mode.parse(mode)
        if isinstance(new_entry.available, bool) or not isinstance(new_entry.available, int):
            raise InvalidQuantityError(new_entry.available)
        if not new_entry.item:
            raise InvalidEntryError("Item name must not be empty")

        existing = self._find(new_entry.item, new_entry.brand)
        if existing is None:
            existing = Entry(new_entry.item, new_entry.brand, new_entry.available)
            self._entries.append(existing)
            logger.debug("Added %s / %s = %d", existing.item, existing.brand, existing.available)
        elif mode is Mode.ADD:
            existing.available += new_entry.available
            logger.debug("Increased %s / %s to %d", existing.item, existing.brand, existing.available)
        else:
            existing.available = new_entry.available
            logger.debug("Set %s / %s to %d", existing.item, existing.brand, existing.available)

        self._persist()
        return Entry(existing.item, existing.brand, existing.available)

    def replace_all(self, entries: Iterable[Entry]) -> None:
        """Replace the whole ledger.

        Duplicate identities collapse into the first position, last quantity wins.
        """
        self._entries = _collapse(entries)
        self._persist()

    def clear(self) -> None:
        """Remove all entries and the stored snapshot."""
        self._entries = []
        if self._store is not None:
            self._store.delete(self._key)
            logger.debug("Removed stored snapshot %s", self._key)

    def sorted_view(self) -> Iterator[Entry]:
        """Entries ordered by item, then brand. Does not modify the ledger."""
        return iter(sorted(self.entries, key=_sort_key))

    def _persist(self) -> None:
        if self._store is None:
            return
        from .storage import save_entries

        save_entries(self._store, self._entries, self._key)


def _collapse(entries: Iterable[Entry]) -> list[Entry]:
    result: list[Entry] = []
    index: dict[tuple[str, str], int] = {}
    for entry in entries:
        if isinstance(entry.available, bool) or not isinstance(entry.available, int):
            raise InvalidQuantityError(entry.available)
        if not entry.item:
            raise InvalidEntryError("Item name must not be empty")
        if entry.key in index:
            result[index[entry.key]].available = entry.available
        else:
            index[entry.key] = len(result)
            result.append(Entry(entry.item, entry.brand, entry.available))
    return result
