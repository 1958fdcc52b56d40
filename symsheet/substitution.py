"""Substitution rewrites for worksheet statements.

Two kinds of substitution live here:

* ``substitute`` takes a held equation such as ``x = y + 1`` and replaces
  every ``x`` in another statement with ``(y + 1)``, keeping the written
  structure of both trees.  The result is serialized back to markup and
  goes through the parse pipeline again.
* ``substitute_values`` puts known numeric values in place of symbols
  before an equation is checked or solved.
"""

from sympy import Float, Symbol
from sympy.core.parameters import evaluate

from symsheet.markup import Equation, Expression, node_markup


def is_substitutable(node) -> bool:
    """True for an equation whose left side is a single symbol."""
    if node is None or node.right is None:
        return False
    return isinstance(node.left, Symbol)


def _replace(tree, symbol, replacement):
    # Unevaluated rebuild so (y + 1) + 2 is not flattened to y + 3.
    with evaluate(False):
        return tree.xreplace({symbol: replacement})


def substitute(held: Equation, target):
    """Replace the held symbol by the held expression throughout *target*."""
    if not is_substitutable(held):
        raise ValueError(
            "Only an equation with a single symbol on the left can be substituted "
            "(e.g. x = y + 1)."
        )
    symbol, replacement = held.left, held.right
    left = _replace(target.left, symbol, replacement)
    if target.right is None:
        return Expression(left)
    return Equation(left, _replace(target.right, symbol, replacement))


def substitute_markup(held: Equation, target) -> str:
    """Markup text of :func:`substitute`, ready to re-enter the parser."""
    return node_markup(substitute(held, target))


def substitute_values(node, values: dict) -> tuple:
    """Put float constants for the symbols named in *values* into both sides.

    Returns ``(left, right)``; ``right`` is None for an expression.
    """
    mapping = {Symbol(name): Float(value) for name, value in values.items()}
    left = node.left.xreplace(mapping)
    right = node.right.xreplace(mapping) if node.right is not None else None
    return left, right
