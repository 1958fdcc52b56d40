"""
Worksheet: the statements a user is working on plus their shared symbol
store, and the propagation loop that keeps the two consistent.

Every user action (markup edit, value entry, given toggle, picking a
simplification, committing a substitution) is handled to completion,
including the fan-out: statements that reference a symbol written during
a pass are evaluated again in the next pass, until a pass writes nothing.
"""

import logging
import math
from typing import Iterable, Optional

from symsheet.config import DEFAULT_SETTINGS, get_settings
from symsheet.statement import Statement
from symsheet.store import SymbolStore
from symsheet.substitution import substitute_markup

logger = logging.getLogger(__name__)


class WorksheetError(KeyError):
    """Raised for an unknown statement id, symbol name or candidate index."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class Worksheet:
    """Ordered statements sharing one :class:`SymbolStore`."""

    def __init__(self, settings: Optional[dict] = None) -> None:
        self.settings = dict(DEFAULT_SETTINGS)
        self.settings.update(get_settings() if settings is None else settings)
        self.store = SymbolStore()
        self._statements: dict = {}
        self._next_id = 1
        self.diagnostic = ""
        for _ in range(int(self.settings["default_statements"])):
            self.add_statement()

    # ── Statements ──────────────────────────────────────────────────────

    @property
    def statements(self) -> list:
        return list(self._statements.values())

    def statement(self, statement_id: int) -> Statement:
        try:
            return self._statements[statement_id]
        except KeyError:
            raise WorksheetError(f"No statement with id {statement_id}.") from None

    def add_statement(self, markup: str = "") -> Statement:
        stmt = Statement(markup, self._next_id, tolerance=self.settings["tolerance"])
        self._statements[stmt.id] = stmt
        self._next_id += 1
        self._reconcile_symbols()
        self.propagate(statements=[stmt])
        return stmt

    def edit_statement(self, statement_id: int, markup: str) -> Statement:
        stmt = self.statement(statement_id)
        stmt.set_markup(markup)
        self._reconcile_symbols()
        self.propagate(statements=[stmt])
        return stmt

    def remove_statement(self, statement_id: int) -> None:
        self.statement(statement_id)
        del self._statements[statement_id]
        self._reconcile_symbols()

    def apply_simplification(self, statement_id: int, index: int) -> Statement:
        """Replace the statement's markup with candidate *index*'s result."""
        stmt = self.statement(statement_id)
        if not 0 <= index < len(stmt.simplifications):
            raise WorksheetError(f"Statement {statement_id} has no simplification {index}.")
        return self.edit_statement(statement_id, stmt.simplifications[index].after)

    def substitute(self, held_id: int, target_id: int) -> Statement:
        """Rewrite the target statement using the held ``symbol = expression``."""
        held = self.statement(held_id)
        target = self.statement(target_id)
        if not held.is_substitutable:
            raise ValueError(f"Statement {held_id} is not of the form symbol = expression.")
        if target.node is None:
            raise ValueError(f"Statement {target_id} has nothing to substitute into.")
        return self.edit_statement(target_id, substitute_markup(held.node, target.node))

    # ── Symbols ─────────────────────────────────────────────────────────

    def _require_symbol(self, name: str) -> None:
        if name not in self.store:
            raise WorksheetError(f"Unknown symbol '{name}'.")

    def set_symbol(self, name: str, value: Optional[float], given: bool) -> None:
        """Direct user edit of a symbol's value and given flag."""
        self._require_symbol(name)
        if self.store.set_symbol(name, value, given):
            self.propagate(names={name})

    def enter_value(self, name: str, text: str) -> None:
        """Value typed into the symbol table.

        A number becomes a given value; erasing the field (or typing
        something that is not a number) clears both value and given flag.
        """
        try:
            value = float(text) if text.strip() else None
        except ValueError:
            value = None
        if value is not None and not math.isfinite(value):
            value = None
        self.set_symbol(name, value, value is not None)

    def set_given(self, name: str, given: bool) -> None:
        self._require_symbol(name)
        self.set_symbol(name, self.store.get(name).value, given)

    def _reconcile_symbols(self) -> None:
        names = set()
        for stmt in self._statements.values():
            names |= stmt.symbols
        self.store.change_symbols(names)

    # ── Propagation ─────────────────────────────────────────────────────

    def _referencing(self, names: Iterable[str]) -> list:
        names = set(names)
        return [s for s in self._statements.values() if s.symbols & names]

    def propagate(self, names: Optional[Iterable[str]] = None,
                  statements: Optional[list] = None) -> int:
        """Evaluate until no statement writes to the store.

        Starts from *statements*, or the statements referencing *names*, or
        every statement.  Returns the number of passes run.  Stops after
        ``max_propagation_passes`` and records a diagnostic if the store is
        still changing.
        """
        if statements is not None:
            pending = list(statements)
        elif names is not None:
            pending = self._referencing(names)
        else:
            pending = self.statements

        cap = int(self.settings["max_propagation_passes"])
        passes = 0
        written: set = set()
        while pending:
            if passes >= cap:
                self.diagnostic = (
                    f"Values did not settle after {cap} passes "
                    f"(still changing: {', '.join(sorted(written))})."
                )
                logger.warning(self.diagnostic)
                return passes
            passes += 1
            version = self.store.version
            view = self.store.snapshot()
            written = set()
            for stmt in pending:
                written |= stmt.evaluate(self.store, view)
            # A pass that left the store at the snapshot version has settled.
            pending = self._referencing(written) if self.store.version != version else []

        self.diagnostic = ""
        return passes

    # ── Surface ─────────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "statements": [s.to_dict() for s in self._statements.values()],
            "symbols": self.store.to_dict(),
            "diagnostic": self.diagnostic,
        }
