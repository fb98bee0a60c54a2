"""
Safe arithmetic evaluation for derived-parameter formulas.

Formulas are plain arithmetic over numbers and parameter names, for example
``width * height / 144``. They are never passed to ``eval``: the text is
sanitized, tokenized and evaluated by a small recursive-descent parser, with
parameter names looked up in an explicit bindings map. Whole identifiers are
matched, so a binding for ``weight`` cannot leak into ``material_weight``.
"""

import logging
import math
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

# Anything that is not a digit, '.', parenthesis, whitespace, operator or
# identifier character is dropped before tokenizing.
_DISALLOWED = re.compile(r"[^0-9A-Za-z_+\-*/().\s]")

_TOKEN = re.compile(
    r"\s*(?:(?P<number>\d+\.?\d*|\.\d+)|(?P<name>[A-Za-z_][A-Za-z0-9_]*)|(?P<op>[+\-*/()]))"
)

_LEADING_NUMBER = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

_TRAILING_SPACE = re.compile(r"\s*\Z")

# Parentheses and unary signs nest at most this deep
MAX_NESTING = 100

Token = Tuple[str, str]


class ExpressionError(ValueError):
    """Raised internally when a formula cannot be parsed or evaluated."""


def sanitize(expression: str) -> str:
    return _DISALLOWED.sub("", expression or "")


def tokenize(expression: str) -> List[Token]:
    text = sanitize(expression)
    tokens: List[Token] = []
    pos = 0
    while pos < len(text):
        if _TRAILING_SPACE.match(text, pos):
            break
        match = _TOKEN.match(text, pos)
        if not match:
            raise ExpressionError(f"Unexpected character at {pos}: {text[pos:]!r}")
        kind = match.lastgroup
        tokens.append((kind, match.group(kind)))
        pos = match.end()
    return tokens


class _Parser:
    """
    Grammar:
        expr   := term (('+' | '-') term)*
        term   := factor (('*' | '/') factor)*
        factor := ('+' | '-') factor | NUMBER | NAME | '(' expr ')'
    """

    def __init__(self, tokens: List[Token], variables: Mapping[str, float]):
        self.tokens = tokens
        self.variables = variables
        self.pos = 0
        self.depth = 0

    def parse(self) -> float:
        if not self.tokens:
            raise ExpressionError("Empty expression")
        value = self._expr()
        if self.pos != len(self.tokens):
            raise ExpressionError(f"Unexpected token {self.tokens[self.pos][1]!r}")
        return value

    def _peek(self) -> Optional[Token]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _take(self) -> Token:
        token = self._peek()
        if token is None:
            raise ExpressionError("Unexpected end of expression")
        self.pos += 1
        return token

    def _expr(self) -> float:
        value = self._term()
        while self._peek() in (("op", "+"), ("op", "-")):
            _, op = self._take()
            right = self._term()
            value = value + right if op == "+" else value - right
        return value

    def _term(self) -> float:
        value = self._factor()
        while self._peek() in (("op", "*"), ("op", "/")):
            _, op = self._take()
            right = self._factor()
            if op == "*":
                value = value * right
            else:
                value = value / right  # ZeroDivisionError handled by evaluate()
        return value

    def _factor(self) -> float:
        self.depth += 1
        if self.depth > MAX_NESTING:
            raise ExpressionError(f"Formula nests deeper than {MAX_NESTING} levels")
        try:
            return self._operand()
        finally:
            self.depth -= 1

    def _operand(self) -> float:
        kind, text = self._take()
        if kind == "op" and text in "+-":
            operand = self._factor()
            return operand if text == "+" else -operand
        if kind == "number":
            return float(text)
        if kind == "name":
            if text not in self.variables:
                raise ExpressionError(f"Unknown variable '{text}'")
            return float(self.variables[text])
        if kind == "op" and text == "(":
            value = self._expr()
            if self._take() != ("op", ")"):
                raise ExpressionError("Missing closing parenthesis")
            return value
        raise ExpressionError(f"Unexpected token {text!r}")


def evaluate(expression: str, variables: Optional[Mapping[str, float]] = None) -> float:
    """
    Evaluate an arithmetic expression.

    Args:
        expression: Formula text, e.g. ``"(length * width) / 2"``
        variables: Values for the names the formula reads

    Returns:
        The result as a float, or 0.0 if the formula is malformed, references
        an unbound name, divides by zero or produces a non-finite number.
    """
    try:
        result = _Parser(tokenize(expression), variables or {}).parse()
    except (ExpressionError, ZeroDivisionError, OverflowError) as e:
        logger.debug(f"Formula '{expression}' evaluated to 0: {e}")
        return 0.0

    if not math.isfinite(result):
        logger.debug(f"Formula '{expression}' produced a non-finite result")
        return 0.0
    return result


def formula_variables(expression: str) -> List[str]:
    """List the parameter names a formula reads, in order of first use."""
    try:
        tokens = tokenize(expression)
    except ExpressionError:
        return []
    names: List[str] = []
    for kind, text in tokens:
        if kind == "name" and text not in names:
            names.append(text)
    return names


def parse_number(value: Any) -> Optional[float]:
    """
    Lenient ``parseFloat``-style conversion of a submitted field value.

    Numbers pass through, strings are read up to their leading numeric prefix
    ("15mm" -> 15.0). Booleans, blanks and non-finite numbers are not numbers.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None
    match = _LEADING_NUMBER.match(str(value))
    if not match:
        return None
    number = float(match.group(0))
    return number if math.isfinite(number) else None


def bind_numbers(names: List[str], values: Dict[str, Any]) -> Optional[Dict[str, float]]:
    """Parse every named value; None if any of them is missing or not a number."""
    bindings: Dict[str, float] = {}
    for name in names:
        number = parse_number(values.get(name))
        if number is None:
            return None
        bindings[name] = number
    return bindings
