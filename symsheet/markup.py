"""
Statement markup: normalization, parsing, classification and printing.

Markup is plain algebra text as typed on a keyboard (``2x + 3 = 7``,
``x^2``, ``3(x + 4)``, ``√``, ``π``, ``·``) or the LaTeX subset emitted
by a math input field (``\\cdot``, ``\\frac{a}{b}``, ``\\sqrt[n]{a}``,
``\\sin``, ``x_{1}``, ``\\left(``/``\\right)``).  Both are normalized to
one canonical operator form before SymPy builds the tree, and trees are
built with ``evaluate=False`` so the statement keeps the shape the user
wrote.
"""

import re
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np
import sympy
from sympy import Symbol, lambdify, preorder_traversal, sstr
from sympy.core.parameters import evaluate
from sympy.parsing.sympy_parser import (
    parse_expr, standard_transformations, implicit_multiplication_application,
    convert_xor, rationalize,
)

TRANSFORMATIONS = standard_transformations + (
    implicit_multiplication_application,
    convert_xor,
    rationalize,  # Convert decimals like "12.5" to exact Rational(25, 2)
)

# Names that are functions or constants rather than products of symbols.
_RESERVED = {
    'sin', 'cos', 'tan', 'cot', 'sec', 'csc',
    'asin', 'acos', 'atan', 'acot',
    'sinh', 'cosh', 'tanh',
    'log', 'ln', 'exp', 'sqrt', 'abs', 'Abs',
    'pi', 'E', 'oo', 'zoo', 'nan',
}


class MarkupParseError(ValueError):
    """Raised when statement markup cannot be turned into a tree."""


@dataclass(frozen=True)
class Expression:
    left: sympy.Expr
    right: None = None


@dataclass(frozen=True)
class Equation:
    left: sympy.Expr
    right: sympy.Expr


Node = Union[Expression, Equation]


# ── Normalization ───────────────────────────────────────────────────────

# Plain LaTeX commands, replaced before the brace-aware passes.
_LATEX_COMMANDS = (
    (r'\left', ''),
    (r'\right', ''),
    (r'\cdot', '*'),
    (r'\times', '*'),
    (r'\div', '/'),
    (r'\pi', '(pi)'),
    (r'\ ', ' '),
    (r'\arcsin', 'asin'),
    (r'\arccos', 'acos'),
    (r'\arctan', 'atan'),
    (r'\sin', 'sin'),
    (r'\cos', 'cos'),
    (r'\tan', 'tan'),
    (r'\cot', 'cot'),
    (r'\sec', 'sec'),
    (r'\csc', 'csc'),
    (r'\ln', 'ln'),
    (r'\log', 'log'),
    (r'\exp', 'exp'),
)

_UNICODE_OPERATORS = (
    ('\u00b7', '*'),     # ·
    ('\u00d7', '*'),     # ×
    ('\u00f7', '/'),     # ÷
    ('\u2212', '-'),     # −
    ('\u221a', 'sqrt'),  # √
    ('\u03c0', '(pi)'),  # π
)

_FRAC_RE = re.compile(r'\\frac\s*\{([^{}]*)\}\s*\{([^{}]*)\}')
_ROOT_RE = re.compile(r'\\sqrt\s*\[([^\[\]]*)\]\s*\{([^{}]*)\}')
_SQRT_RE = re.compile(r'\\sqrt\s*\{([^{}]*)\}')
_SUBSCRIPT_RE = re.compile(r'_\s*\{\s*([0-9]+|[A-Za-z])\s*\}')
_POWER_BRACE_RE = re.compile(r'\^\s*\{([^{}]*)\}')

_SUPERSCRIPT = str.maketrans("0123456789+-()", "⁰¹²³⁴⁵⁶⁷⁸⁹⁺⁻⁽⁾")
_FROM_SUPERSCRIPT = str.maketrans("⁰¹²³⁴⁵⁶⁷⁸⁹⁺⁻", "0123456789+-")
_SUPERSCRIPT_RUN_RE = re.compile(r'[⁰¹²³⁴⁵⁶⁷⁸⁹⁺⁻]+')


def _to_superscript(text: str) -> str:
    """Convert a string of digits / signs into Unicode superscript."""
    return text.translate(_SUPERSCRIPT)


def normalize_markup(markup: str) -> str:
    """Rewrite markup operator tokens to canonical ``*``, ``/`` and ``^``.

    ``\\frac{a}{b}`` becomes ``((a)/(b))``, ``\\cdot``/``·``/``×`` become
    ``*``, ``÷`` becomes ``/``, superscript digits become ``^(n)`` and any
    remaining braces or brackets become parentheses.
    """
    s = markup
    for token, replacement in _LATEX_COMMANDS:
        s = s.replace(token, replacement)
    for token, replacement in _UNICODE_OPERATORS:
        s = s.replace(token, replacement)

    # Innermost braces first so nested \frac / \sqrt / ^{..} unwind.
    while True:
        new = _POWER_BRACE_RE.sub(r'^(\1)', s)
        new = _ROOT_RE.sub(r'((\2)^(1/(\1)))', new)
        new = _SQRT_RE.sub(r'sqrt(\1)', new)
        new = _SUBSCRIPT_RE.sub(r'_\1', new)
        new = _FRAC_RE.sub(r'((\1)/(\2))', new)
        if new == s:
            break
        s = new

    s = _SUPERSCRIPT_RUN_RE.sub(
        lambda m: '^(' + m.group(0).translate(_FROM_SUPERSCRIPT) + ')', s)
    s = s.replace('{', '(').replace('}', ')')
    s = s.replace('[', '(').replace(']', ')')
    return s


def _validate_characters(text: str) -> None:
    """Reject normalized markup with characters outside the allowed set.

    Allowed: letters, digits, whitespace, ``_`` for subscripts, and the
    math symbols + - * / ^ ( ) .
    """
    allowed = set("abcdefghijklmnopqrstuvwxyz"
                  "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
                  "0123456789"
                  " \t+-*/^()._")
    bad = {ch for ch in text if ch not in allowed}
    if bad:
        bad_sorted = " ".join(sorted(bad))
        raise MarkupParseError(
            f"Invalid character(s): {bad_sorted}. "
            f"Only letters, numbers, subscripts and math symbols (+ - * / ^ ( ) .) are allowed."
        )


_SYMBOL_RUN_RE = re.compile(r'([A-Za-z]+)(_(?:[0-9]+|[A-Za-z]))?')
_SUBSCRIPTED_RE = re.compile(r'[A-Za-z]_(?:[0-9]+|[A-Za-z])')


def _expand_implicit_symbols(text: str) -> tuple:
    """Split alphabetic runs into single-letter symbols.

    ``xy`` means x·y, so every letter of a token that is not a reserved
    function or constant name becomes its own symbol and the letters are
    joined with explicit ``*``.  Python keywords (``as``, ``in``, ...)
    therefore never reach the parser.  A subscript (``x_1``, ``x_a``)
    stays with the letter before it.  Returns the rewritten text and the
    set of symbol names.
    """
    names = set()

    def _repl(m):
        tok, subscript = m.group(1), m.group(2) or ''
        if tok in _RESERVED and not subscript:
            return tok
        letters = list(tok)
        letters[-1] += subscript
        names.update(letters)
        return '*'.join(letters)

    expanded = _SYMBOL_RUN_RE.sub(_repl, text)
    if '_' in _SUBSCRIPTED_RE.sub('', expanded):
        raise MarkupParseError("A subscript must follow a letter, as in x_1.")
    return expanded, names


def parse_markup(markup: str) -> sympy.Expr:
    """Parse one side of a statement into an unevaluated SymPy tree."""
    text = normalize_markup(markup).strip()
    if not text:
        raise MarkupParseError("Expression is empty.")
    _validate_characters(text)
    expanded, names = _expand_implicit_symbols(text)
    local = {name: Symbol(name) for name in names}
    local['ln'] = sympy.log
    try:
        tree = parse_expr(expanded, local_dict=local,
                          transformations=TRANSFORMATIONS, evaluate=False)
    except Exception as e:
        raise MarkupParseError(
            f"Could not parse expression: '{markup.strip()}'. Error: {e}") from e
    if not isinstance(tree, sympy.Expr):
        raise MarkupParseError(
            f"Could not parse expression: '{markup.strip()}'. Not an algebraic expression.")
    return _fold_negative_constants(tree)


def _fold_negative_constants(tree):
    """Turn the parser's ``Mul(-1, n)`` for ``- n`` into the number ``-n``."""
    if not tree.args:
        return tree
    if (isinstance(tree, sympy.Mul) and len(tree.args) == 2
            and tree.args[0] == -1 and tree.args[1].is_Number):
        return -tree.args[1]
    args = [_fold_negative_constants(arg) for arg in tree.args]
    if args == list(tree.args):
        return tree
    with evaluate(False):
        return tree.func(*args)


# ── Classification ──────────────────────────────────────────────────────

def split_equation(markup: str) -> Optional[tuple]:
    """Return ``(left, right)`` markup when there is exactly one ``=``."""
    sides = markup.split('=')
    if len(sides) != 2:
        return None
    return sides[0], sides[1]


def classify(markup: str) -> Node:
    """Parse *markup* into an :class:`Expression` or :class:`Equation`."""
    if markup.count('=') > 1:
        raise MarkupParseError("Statement must contain at most one '=' sign.")
    sides = split_equation(markup)
    if sides is None:
        return Expression(parse_markup(markup))
    left, right = sides
    return Equation(parse_markup(left), parse_markup(right))


def _tree_symbols(tree) -> set:
    return {node.name for node in preorder_traversal(tree) if isinstance(node, Symbol)}


def find_symbols(node: Node) -> set:
    """Names of every symbol in the node; the union of both sides for equations."""
    symbols = _tree_symbols(node.left)
    if node.right is not None:
        symbols |= _tree_symbols(node.right)
    return symbols


# ── Printing ────────────────────────────────────────────────────────────

def to_canonical_string(tree) -> str:
    """Fully explicit SymPy string, argument order as written."""
    return sstr(tree, order='none')


def to_ordered_string(tree) -> str:
    """String with terms in SymPy's standard order.

    Trees that differ only in the order of their terms print the same.
    """
    return sstr(tree)


def to_markup(tree) -> str:
    """Markup text that re-enters :func:`classify` unchanged in meaning."""
    return to_canonical_string(tree).replace('**', '^')


def equation_markup(left, right) -> str:
    return f"{to_markup(left)} = {to_markup(right)}"


def node_markup(node: Node) -> str:
    if node.right is None:
        return to_markup(node.left)
    return equation_markup(node.left, node.right)


def pretty(tree) -> str:
    """Display form: superscript exponents, implied coefficients, ``·``, ``π``, ``√``."""
    s = to_canonical_string(tree)

    def _sup_repl(m):
        return _to_superscript(m.group(1))

    s = re.sub(r'\*\*\((-?\d+)\)', _sup_repl, s)
    s = re.sub(r'\*\*(-?\d+)', _sup_repl, s)
    # Remove * between coefficient and variable (e.g. 2*x → 2x)
    s = re.sub(r'(\d)\*([A-Za-z])', r'\1\2', s)
    s = re.sub(r'\)\*([A-Za-z])', r')\1', s)
    s = s.replace('*', '·')
    s = re.sub(r'(?<![a-zA-Z])pi(?![a-zA-Z])', 'π', s)
    return s.replace('sqrt(', '√(')


def pretty_node(node: Node) -> str:
    if node.right is None:
        return pretty(node.left)
    return f"{pretty(node.left)} = {pretty(node.right)}"


# ── Numeric evaluation ──────────────────────────────────────────────────

def evaluate_tree(tree, bindings: dict) -> float:
    """Evaluate *tree* in float64 with symbol values from *bindings*.

    Undefined arithmetic (division by zero, complex results) yields NaN.
    """
    names = sorted(bindings)
    func = lambdify([Symbol(name) for name in names], tree, modules="numpy")
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        try:
            value = func(*[np.float64(bindings[name]) for name in names])
            return float(value)
        except (ZeroDivisionError, OverflowError, TypeError, ValueError):
            return float("nan")
