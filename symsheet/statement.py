"""
A single worksheet statement: markup, parsed node, symbols, warning,
simplification candidates, and the evaluation step that keeps the
symbol store consistent with it.
"""

import logging
from typing import Mapping, Optional

import numpy as np
from sympy import Symbol

from symsheet.config import DEFAULT_SETTINGS
from symsheet.markup import (
    Equation, MarkupParseError, classify, evaluate_tree, find_symbols, pretty_node,
)
from symsheet.simplification import simplify
from symsheet.steps import is_false, last_equation, solve_equation
from symsheet.store import SymbolStore
from symsheet.substitution import is_substitutable, substitute_values

logger = logging.getLogger(__name__)

PARSE_WARNING = "Failed to parse markup: "
FALSE_WARNING = "Equation is false"


class Statement:
    """One expression or equation entered by the user."""

    def __init__(self, markup: str = "", statement_id: int = 0,
                 tolerance: float = DEFAULT_SETTINGS["tolerance"]) -> None:
        self.id = statement_id
        self.tolerance = tolerance
        self.markup = ""
        self.node = None
        self.symbols: set = set()
        self.warning = ""
        self.simplifications: list = []
        self.result: Optional[float] = None
        self.set_markup(markup)

    # ── Parsing ─────────────────────────────────────────────────────────

    def set_markup(self, markup: str) -> None:
        """Re-parse from scratch; node, symbols, warning and candidates are replaced."""
        self.markup = markup
        self.result = None
        self.warning = ""
        self.node = None
        if markup.strip():
            try:
                self.node = classify(markup)
            except MarkupParseError as e:
                self.warning = PARSE_WARNING + str(e)

        if self.node is None:
            self.symbols = set()
            self.simplifications = []
            return
        self.symbols = find_symbols(self.node)
        self.simplifications = simplify(self.node)

    @property
    def kind(self) -> Optional[str]:
        if self.node is None:
            return None
        return "equation" if isinstance(self.node, Equation) else "expression"

    @property
    def is_substitutable(self) -> bool:
        return not self.warning and is_substitutable(self.node)

    # ── Evaluation ──────────────────────────────────────────────────────

    def evaluate(self, store: SymbolStore, view: Optional[Mapping] = None) -> set:
        """Evaluate against the store; returns the names written back to it.

        *view* is the snapshot the propagation pass reads from; writes
        always go to *store*.
        """
        if self.node is None:
            return set()
        if view is None:
            view = store.snapshot()
        knowns = store.knowns(self.symbols, view)

        if isinstance(self.node, Equation):
            return self._evaluate_equation(store, knowns)
        self._evaluate_expression(knowns)
        return set()

    def _evaluate_expression(self, knowns: dict) -> None:
        if len(knowns) != len(self.symbols):
            self.result = None
            return
        value = evaluate_tree(self.node.left, {name: e.value for name, e in knowns.items()})
        self.result = value if np.isfinite(value) else None

    def _evaluate_equation(self, store: SymbolStore, knowns: dict) -> set:
        symbols = self.symbols
        givens = {name: e for name, e in knowns.items() if e.given}

        if len(knowns) == len(symbols):
            left, right = substitute_values(self.node, {n: e.value for n, e in knowns.items()})
            if not is_false(solve_equation(left, right, self.tolerance)):
                self.warning = ""
                return set()
            if len(givens) == len(symbols) - 1:
                logger.info("Statement %d is false; re-solving from given values", self.id)
                solved = self._solve(givens)
                if solved is not None:
                    return self._write(store, *solved)
                logger.info("Statement %d could not be re-solved", self.id)
            self.warning = FALSE_WARNING
            return set()

        if self.warning == FALSE_WARNING:
            self.warning = ""
        if len(knowns) == len(symbols) - 1:
            solved = self._solve(knowns)
            if solved is not None:
                return self._write(store, *solved)
        return set()

    def _solve(self, knowns: dict) -> Optional[tuple]:
        """Isolate the one unknown; ``(name, value)`` or None when that fails."""
        left, right = substitute_values(self.node, {n: e.value for n, e in knowns.items()})
        steps = solve_equation(left, right, self.tolerance)
        left, right = last_equation(steps, left, right)

        if not isinstance(left, Symbol) or right.free_symbols:
            logger.debug("Statement %d: could not isolate a symbol (%s = %s)", self.id, left, right)
            return None
        name = left.name
        value = evaluate_tree(right, {})
        if not np.isfinite(value):
            logger.debug("Statement %d: %s has no finite value", self.id, name)
            return None
        return name, value

    def _write(self, store: SymbolStore, name: str, value: float) -> set:
        if store.get(name).given:
            logger.debug("Statement %d: keeping given %s, discarding %s", self.id, name, value)
            return set()
        if not store.set_symbol(name, value, False):
            return set()
        logger.info("Statement %d solved %s = %s", self.id, name, value)
        return {name}

    # ── Surface ─────────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "markup": self.markup,
            "kind": self.kind,
            "display": pretty_node(self.node) if self.node is not None else "",
            "warning": self.warning,
            "symbols": sorted(self.symbols),
            "simplifications": [
                {"name": s.name, "before": s.before, "after": s.after}
                for s in self.simplifications
            ],
            "result": self.result,
        }
