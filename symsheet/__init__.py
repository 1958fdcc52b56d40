"""SymSheet — a worksheet of algebraic statements sharing one set of symbol values."""

from symsheet.markup import Equation, Expression, MarkupParseError, classify, find_symbols
from symsheet.simplification import Simplification, simplify
from symsheet.statement import FALSE_WARNING, PARSE_WARNING, Statement
from symsheet.store import SymbolEntry, SymbolStore
from symsheet.substitution import is_substitutable, substitute
from symsheet.worksheet import Worksheet, WorksheetError
