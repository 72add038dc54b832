from __future__ import annotations

import logging
import math
import re
from functools import cached_property

from langchain_core.tools import tool

from mathstepper.core.config import get_settings
from mathstepper.models.expression import ParsedExpression
from mathstepper.services.errors import (
    EmptyExpression,
    ExpressionError,
    ExpressionTooLong,
    InvalidExpressionFormat,
    MismatchedParentheses,
    UnclosedParentheses,
)
from mathstepper.services.numbers import round_half_up
from mathstepper.services.postfix import evaluate_postfix, infix_to_postfix
from mathstepper.services.tokenizer import tokenize

logger = logging.getLogger("mathstepper.parser")


def normalize_expression(expression: str) -> str:
    # Percentages stay a first-class operator; only the division glyph is mapped.
    return expression.replace("÷", "/")


def check_parentheses(expression: str) -> None:
    depth = 0
    for char in expression:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                raise MismatchedParentheses()
    if depth != 0:
        raise UnclosedParentheses(depth)


class ExpressionParser:
    """Parses and evaluates an arithmetic expression without ever raising."""

    def __init__(self, max_length: int | None = None, decimal_places: int | None = None) -> None:
        settings = get_settings()
        self.max_length = max_length if max_length is not None else settings.max_expression_length
        self.decimal_places = (
            decimal_places if decimal_places is not None else settings.result_decimal_places
        )

    def parse(self, expression: str) -> ParsedExpression:
        try:
            return self._parse(expression)
        except ExpressionError as exc:
            logger.info(
                "parse.failed",
                extra={"error_type": exc.error_type, "error_message": exc.message},
            )
            return ParsedExpression(
                tokens=[], isValid=False, error=exc.message, errorType=exc.error_type
            )

    def _parse(self, expression: str) -> ParsedExpression:
        normalized = normalize_expression(expression)
        if not normalized.strip():
            raise EmptyExpression()
        if len(normalized.strip()) > self.max_length:
            raise ExpressionTooLong(self.max_length)

        check_parentheses(normalized)

        tokens = tokenize(normalized)
        value = evaluate_postfix(infix_to_postfix(tokens))
        if not math.isfinite(value):
            raise InvalidExpressionFormat("Result is out of range")

        return ParsedExpression(
            tokens=tokens,
            isValid=True,
            result=round_half_up(value, self.decimal_places),
        )

    @cached_property
    def langchain_tool(self):
        parser = self

        @tool("math_stepper")
        def _math_stepper(expression: str) -> int | float | str:
            """Evaluate an arithmetic expression using +, -, ×, ÷, % and parentheses."""
            parsed = parser.parse(expression)
            if not parsed.isValid:
                return parsed.error or "Invalid expression"
            return parsed.result

        return _math_stepper


_NUMBER = r"(\d+(?:\.\d+)?)"
_OPERATOR = r"([+\-×÷*/])"

_EXTRACTION_PATTERNS = (
    re.compile(rf"{_NUMBER}\s*{_OPERATOR}\s*{_NUMBER}\s*=\s*{_NUMBER}"),
    re.compile(rf"{_NUMBER}\s*{_OPERATOR}\s*{_NUMBER}"),
)
_GROUPED_PATTERN = re.compile(
    r"\([^)]+\)\s*[+\-×÷*/]\s*\d+|\([^)]+\)\s*[+\-×÷*/]\s*\([^)]+\)"
)


def extract_expression_from_text(text: str) -> str | None:
    """
    Find the first arithmetic expression in a piece of text.

    Handles "23 + 45 = 68", a bare "12 × 3", column layouts written over
    several lines and a parenthesised group combined with a number or
    another group. Simple matches come back as "left op right".
    """
    for pattern in _EXTRACTION_PATTERNS:
        match = pattern.search(text)
        if match:
            left, symbol, right = match.group(1, 2, 3)
            return f"{left} {symbol} {right}"

    match = _GROUPED_PATTERN.search(text)
    if match:
        return match.group(0)
    return None
