"""Lexer for the stepper's arithmetic grammar."""

from __future__ import annotations

from typing import List

from mathstepper.models.expression import Token, TokenType
from mathstepper.services.errors import InvalidCharacter

OPERATOR_SYMBOLS = frozenset("+-×*÷/%")
PARENTHESES = frozenset("()")
DIGITS = frozenset("0123456789")


def _is_unary_position(tokens: List[Token]) -> bool:
    if not tokens:
        return True
    previous = tokens[-1]
    if previous.type is TokenType.operator:
        return True
    return previous.type is TokenType.parenthesis and previous.value == "("


def tokenize(expression: str) -> List[Token]:
    """
    Split an expression into NUMBER, OPERATOR, PARENTHESIS and UNARY_MINUS tokens.

    Numbers absorb every following digit and '.', so "1.2.3" lexes as one
    token and is rejected by the evaluator instead.
    """
    tokens: List[Token] = []
    index = 0
    length = len(expression)

    while index < length:
        char = expression[index]

        if char.isspace():
            index += 1
            continue

        if char in DIGITS:
            start = index
            while index < length and (expression[index] in DIGITS or expression[index] == "."):
                index += 1
            tokens.append(Token(type=TokenType.number, value=expression[start:index], position=start))
            continue

        if char == "-" and _is_unary_position(tokens):
            tokens.append(Token(type=TokenType.unary_minus, value=char, position=index))
        elif char in OPERATOR_SYMBOLS:
            tokens.append(Token(type=TokenType.operator, value=char, position=index))
        elif char in PARENTHESES:
            tokens.append(Token(type=TokenType.parenthesis, value=char, position=index))
        else:
            raise InvalidCharacter(char, index)
        index += 1

    return tokens
