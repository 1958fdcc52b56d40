"""
Simplification candidates for a statement.

Candidates come from two stages, in this order:

1. the rule library: every rule in ``RULES`` applied on its own to the
   tree, kept only when it changes more than the order of terms;
2. the step-wise simplifier: its first step, and that step's first
   substep when there is one.

For an equation each side is handled separately with the other side
re-attached, and the first step of the step-wise solver is appended last.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Optional

from sympy import (
    Wild, apart, cancel, expand, expand_log, factor, logcombine, powsimp,
    radsimp, together, trigsimp,
)
from sympy import simplify as sym_simplify
from sympy.parsing.sympy_parser import parse_expr

from symsheet.markup import (
    TRANSFORMATIONS, Equation, equation_markup, to_canonical_string, to_markup,
    to_ordered_string,
)
from symsheet.steps import simplify_expression, solve_equation

logger = logging.getLogger(__name__)

STEPWISE = "Stepwise"
STEPWISE_SOLVE = "Stepwise solve"

# Pattern variables usable in pattern rules.
_WILDS = {"n": Wild("n"), "m": Wild("m")}


@dataclass(frozen=True)
class Simplification:
    name: str
    before: str
    after: str


@lru_cache(maxsize=None)
def _pattern(text: str):
    return parse_expr(text.replace("^", "**"), local_dict=dict(_WILDS),
                      transformations=TRANSFORMATIONS)


@dataclass(frozen=True)
class Rule:
    """A named rewrite function, or a ``left -> right`` pattern rewrite."""

    name: Optional[str] = None
    rewrite: Optional[Callable] = None
    left: Optional[str] = None
    right: Optional[str] = None

    @property
    def label(self) -> str:
        return self.name if self.name else f"{self.left} -> {self.right}"

    def apply(self, tree):
        if self.rewrite is not None:
            return self.rewrite(tree)
        return tree.replace(_pattern(self.left), _pattern(self.right))


RULES = (
    Rule("evaluate", lambda tree: tree.doit()),
    Rule("expand", expand),
    Rule("factor", factor),
    Rule("cancel", cancel),
    Rule("together", together),
    Rule("apart", apart),
    Rule("powsimp", powsimp),
    Rule("radsimp", radsimp),
    Rule("trigsimp", trigsimp),
    Rule("expand_log", lambda tree: expand_log(tree, force=True)),
    Rule("logcombine", lambda tree: logcombine(tree, force=True)),
    Rule(left="sqrt(n^2)", right="abs(n)"),
    Rule(left="log(n) + log(m)", right="log(n*m)"),
    Rule("simplify", sym_simplify),
)


def rule_simplifications(tree, rules=RULES) -> list:
    """Apply each rule on its own; a rule that raises is skipped."""
    before = to_markup(tree)
    canonical = to_canonical_string(tree)
    ordered = to_ordered_string(tree)
    results = []
    for rule in rules:
        try:
            new_tree = rule.apply(tree)
        except Exception as e:
            logger.debug("Rule %r skipped on %s: %s", rule.label, before, e)
            continue
        # Skip rewrites that only reorder terms.
        if to_canonical_string(new_tree) == canonical or to_ordered_string(new_tree) == ordered:
            continue
        results.append(Simplification(rule.label, before, to_markup(new_tree)))
    return results


def stepwise_simplifications(tree) -> list:
    steps = simplify_expression(tree)
    if not steps:
        return []
    before = to_markup(tree)
    results = [Simplification(STEPWISE, before, to_markup(steps[0].new_node))]
    if steps[0].substeps:
        results.append(Simplification(STEPWISE, before, to_markup(steps[0].substeps[0].new_node)))
    return results


def expression_simplifications(tree) -> list:
    return rule_simplifications(tree) + stepwise_simplifications(tree)


def equation_simplifications(left, right) -> list:
    left_markup, right_markup = to_markup(left), to_markup(right)

    # Left side changes with the right side re-attached, then the reverse.
    results = [
        Simplification(s.name, f"{s.before} = {right_markup}", f"{s.after} = {right_markup}")
        for s in expression_simplifications(left)
    ]
    results += [
        Simplification(s.name, f"{left_markup} = {s.before}", f"{left_markup} = {s.after}")
        for s in expression_simplifications(right)
    ]

    try:
        steps = solve_equation(left, right)
    except Exception as e:
        logger.debug("Step-wise solve skipped on %s = %s: %s", left_markup, right_markup, e)
        steps = []
    if steps:
        results.append(Simplification(
            STEPWISE_SOLVE,
            equation_markup(left, right),
            equation_markup(steps[0].left, steps[0].right),
        ))
    return results


def simplify(node) -> list:
    """Ordered candidates for an :class:`Expression` or :class:`Equation`."""
    if node is None:
        return []
    if isinstance(node, Equation):
        return equation_simplifications(node.left, node.right)
    return expression_simplifications(node.left)
