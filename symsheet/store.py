"""
Symbol store shared by every statement of a worksheet.

Maps a symbol name to ``(value, given)``.  A *given* value was asserted by
the user and is never overwritten by propagation; a derived value was
solved by a statement and may be replaced.
"""

import logging
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SymbolEntry:
    value: Optional[float] = None
    given: bool = False


class SymbolStore:
    """Ordered name → :class:`SymbolEntry` mapping with change tracking.

    ``version`` goes up on every change, so a propagation pass can tell
    whether the store moved past the snapshot it read.
    """

    def __init__(self) -> None:
        self._entries: dict = {}
        self.version = 0

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def __iter__(self):
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def items(self):
        return self._entries.items()

    def get(self, name: str) -> SymbolEntry:
        return self._entries.get(name, SymbolEntry())

    def set_symbol(self, name: str, value: Optional[float], given: bool) -> bool:
        """Store ``(value, given)`` for *name*. Returns True if anything changed."""
        if value is not None:
            value = float(value)
            if not math.isfinite(value):
                raise ValueError(f"Value for '{name}' must be a finite number.")
        entry = SymbolEntry(value, bool(given))
        if self._entries.get(name) == entry:
            return False
        self._entries[name] = entry
        self.version += 1
        logger.debug("%s <- %s (given=%s)", name, value, entry.given)
        return True

    def change_symbols(self, names: Iterable[str]) -> bool:
        """Reconcile the keyspace to exactly *names*.

        Existing entries are kept, new names start as ``(None, False)`` and
        names no longer referenced are dropped.  Returns True if the
        keyspace changed.
        """
        names = set(names)
        if names == set(self._entries):
            return False
        self._entries = {name: self._entries.get(name, SymbolEntry()) for name in sorted(names)}
        self.version += 1
        return True

    def knowns(self, names: Iterable[str], view: Optional[Mapping] = None) -> dict:
        """Entries among *names* that currently hold a value."""
        source = self._entries if view is None else view
        return {
            name: source[name] for name in names
            if name in source and source[name].value is not None
        }

    def snapshot(self) -> Mapping:
        """Read-only copy for one propagation pass."""
        return MappingProxyType(dict(self._entries))

    def to_dict(self) -> dict:
        return {name: {"value": e.value, "given": e.given} for name, e in self._entries.items()}
