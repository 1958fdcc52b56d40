""" Step-by-step equation solver and expression simplifier using SymPy."""

"""
solve_equation() isolates the single unknown of an equation (e.g.
"2x + 3 = 7" → "2x = 4" → "x = 2") or, when no unknown is left,
decides whether the arithmetic statement holds.  simplify_expression()
rewrites an expression one stage at a time.  Each step carries the
resulting tree(s) and a change type; STATEMENT_IS_FALSE marks an
equation whose sides cannot be equal.
"""

import logging
from dataclasses import dataclass, field

import numpy as np
import sympy
from sympy import S, cancel, expand
from sympy import solve as sym_solve
from sympy.core.parameters import evaluate

from symsheet.markup import pretty, to_canonical_string, to_ordered_string

logger = logging.getLogger(__name__)

ZERO_TOLERANCE = 1e-9

# ── Change types ────────────────────────────────────────────────────────
SIMPLIFY_ARITHMETIC = "SIMPLIFY_ARITHMETIC"
SIMPLIFY_BOTH_SIDES = "SIMPLIFY_BOTH_SIDES"
SWAP_SIDES = "SWAP_SIDES"
COLLECT_SYMBOL_TERMS = "COLLECT_SYMBOL_TERMS"
DIVIDE_FROM_BOTH_SIDES = "DIVIDE_FROM_BOTH_SIDES"
SOLVE_FOR_SYMBOL = "SOLVE_FOR_SYMBOL"
STATEMENT_IS_TRUE = "STATEMENT_IS_TRUE"
STATEMENT_IS_FALSE = "STATEMENT_IS_FALSE"

COLLECT_AND_COMBINE_LIKE_TERMS = "COLLECT_AND_COMBINE_LIKE_TERMS"
DISTRIBUTE = "DISTRIBUTE"
SIMPLIFY_FRACTIONS = "SIMPLIFY_FRACTIONS"
SIMPLIFY_TERM = "SIMPLIFY_TERM"


@dataclass
class EquationStep:
    left: sympy.Expr
    right: sympy.Expr
    change_type: str
    description: str = ""


@dataclass
class ExpressionStep:
    new_node: sympy.Expr
    change_type: str
    substeps: list = field(default_factory=list)
    description: str = ""


def _numeric(expr) -> float:
    try:
        return float(expr.evalf())
    except (TypeError, ValueError):
        return float("nan")


def _is_close(a: float, b: float, tolerance: float) -> bool:
    return bool(np.isclose(a, b, rtol=tolerance, atol=tolerance))


# ── Equations ───────────────────────────────────────────────────────────

def solve_equation(left, right, tolerance: float = ZERO_TOLERANCE) -> list:
    """Solve ``left = right`` step by step.

    With no free symbols the steps end in STATEMENT_IS_TRUE or
    STATEMENT_IS_FALSE; structurally identical sides produce no steps.
    With one free symbol the last step has that symbol alone on the left
    when it can be isolated.  Equations in more than one unknown are not
    attempted and produce no steps.
    """
    free = left.free_symbols | right.free_symbols
    if not free:
        return _check_statement(left, right, tolerance)
    if len(free) > 1:
        logger.debug("Not solving %s = %s: %d unknowns", left, right, len(free))
        return []
    var = next(iter(free))
    return _solve_for(var, left, right, tolerance)


def _check_statement(left, right, tolerance: float) -> list:
    if left == right:
        return []

    steps = []
    lhs, rhs = left.doit(), right.doit()
    if lhs != left or rhs != right:
        steps.append(EquationStep(
            lhs, rhs, SIMPLIFY_ARITHMETIC,
            f"Evaluate both sides: {pretty(lhs)} = {pretty(rhs)}",
        ))

    if _is_close(_numeric(lhs), _numeric(rhs), tolerance):
        steps.append(EquationStep(lhs, rhs, STATEMENT_IS_TRUE,
                                  "Both sides are equal"))
    else:
        steps.append(EquationStep(lhs, rhs, STATEMENT_IS_FALSE,
                                  f"{pretty(lhs)} is not equal to {pretty(rhs)}"))
    return steps


def _solve_for(var, left, right, tolerance: float) -> list:
    steps = []
    lhs, rhs = left, right

    # --- Step 1: Expand and combine like terms on both sides ---
    new_lhs, new_rhs = expand(lhs.doit()), expand(rhs.doit())
    if (to_ordered_string(new_lhs) != to_ordered_string(lhs)
            or to_ordered_string(new_rhs) != to_ordered_string(rhs)):
        steps.append(EquationStep(
            new_lhs, new_rhs, SIMPLIFY_BOTH_SIDES,
            "Expand and combine like terms on both sides",
        ))
    lhs, rhs = new_lhs, new_rhs

    if lhs == var and var not in rhs.free_symbols:
        return steps
    if rhs == var and var not in lhs.free_symbols:
        steps.append(EquationStep(rhs, lhs, SWAP_SIDES,
                                  f"Swap sides so that {var} is on the left"))
        return steps

    combined = expand(lhs - rhs)
    poly = combined.as_poly(var)
    if poly is None or poly.degree() > 1:
        return steps + _solve_nonlinear(var, lhs, rhs)

    if poly.degree() <= 0:
        # The unknown cancelled out, leaving an arithmetic statement.
        if _is_close(_numeric(combined), 0.0, tolerance):
            change_type, description = STATEMENT_IS_TRUE, f"{var} cancels out; the equation always holds"
        else:
            change_type, description = STATEMENT_IS_FALSE, f"{var} cancels out; the equation never holds"
        steps.append(EquationStep(combined, S.Zero, change_type, description))
        return steps

    # --- Step 2: Collect the unknown on the left, constants on the right ---
    coeff = poly.coeff_monomial(var)
    const = poly.coeff_monomial(1)
    moved_lhs = var if coeff == 1 else coeff * var
    moved_rhs = -const
    if moved_lhs != lhs or moved_rhs != rhs:
        steps.append(EquationStep(
            moved_lhs, moved_rhs, COLLECT_SYMBOL_TERMS,
            f"Move terms with {var} to the left and constants to the right",
        ))

    # --- Step 3: Divide both sides by the coefficient ---
    if coeff != 1:
        steps.append(EquationStep(
            var, moved_rhs / coeff, DIVIDE_FROM_BOTH_SIDES,
            f"Divide both sides by {pretty(coeff)}",
        ))
    return steps


def _solve_nonlinear(var, lhs, rhs) -> list:
    """Use SymPy's solver when the equation is not linear in *var*.

    A step is produced only when there is exactly one real solution.
    """
    try:
        solutions = sym_solve(lhs - rhs, var)
    except Exception as e:
        logger.debug("SymPy could not solve %s = %s for %s: %s", lhs, rhs, var, e)
        return []
    real = [sol for sol in solutions if sol.is_real]
    if len(real) != 1:
        logger.debug("%s = %s has %d real solutions for %s", lhs, rhs, len(real), var)
        return []
    return [EquationStep(var, real[0], SOLVE_FOR_SYMBOL,
                         f"Solve for {var}")]


# ── Expressions ─────────────────────────────────────────────────────────

def _combine(tree):
    return tree.doit()


_EXPRESSION_STAGES = (
    (COLLECT_AND_COMBINE_LIKE_TERMS, "Combine like terms and evaluate arithmetic", _combine),
    (DISTRIBUTE, "Distribute multiplication over addition", expand),
    (SIMPLIFY_FRACTIONS, "Cancel common factors", cancel),
)


def _term_substeps(tree) -> list:
    """One substep per top-level term that simplifies on its own."""
    if not tree.args or not isinstance(tree, (sympy.Add, sympy.Mul)):
        return []
    substeps = []
    args = list(tree.args)
    for i, arg in enumerate(args):
        new_arg = arg.doit()
        if to_canonical_string(new_arg) == to_canonical_string(arg):
            continue
        with evaluate(False):
            new_tree = tree.func(*(args[:i] + [new_arg] + args[i + 1:]))
        substeps.append(ExpressionStep(
            new_tree, SIMPLIFY_TERM, [],
            f"Simplify {pretty(arg)} to {pretty(new_arg)}",
        ))
    return substeps


def simplify_expression(tree) -> list:
    """Rewrite *tree* stage by stage; one step per stage that changes it."""
    steps = []
    current = tree
    for change_type, description, rewrite in _EXPRESSION_STAGES:
        try:
            new = rewrite(current)
        except Exception as e:
            logger.debug("Stage %s failed on %s: %s", change_type, current, e)
            continue
        if to_ordered_string(new) == to_ordered_string(current):
            continue
        substeps = _term_substeps(current) if change_type == COLLECT_AND_COMBINE_LIKE_TERMS else []
        steps.append(ExpressionStep(new, change_type, substeps, description))
        current = new
    return steps


def last_equation(steps: list, left, right) -> tuple:
    """Equation after the final step, or ``(left, right)`` when there are none."""
    if not steps:
        return left, right
    return steps[-1].left, steps[-1].right


def is_false(steps: list) -> bool:
    return bool(steps) and steps[-1].change_type == STATEMENT_IS_FALSE
