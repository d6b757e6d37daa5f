"""
Grocery Ledger - track groceries on hand and print a shopping checklist

Features:
- Add items by name and brand, adding to or replacing existing quantities
- Sorted listing by item, then brand
- Data kept between sessions in a local JSON store
- Export to a landscape PDF with blank Used/Bought columns
- CLI and a small web form
"""

from ._version import __version__
from .ledger import (
    Entry,
    InvalidEntryError,
    InvalidQuantityError,
    Ledger,
    LedgerError,
    Mode,
    parse_quantity,
)
from .storage import STORAGE_KEY, JsonStore, MemoryStore, load_entries, save_entries

__all__ = [
    "__version__",
    "Entry",
    "Ledger",
    "Mode",
    "LedgerError",
    "InvalidQuantityError",
    "InvalidEntryError",
    "parse_quantity",
    "STORAGE_KEY",
    "JsonStore",
    "MemoryStore",
    "load_entries",
    "save_entries",
]
