"""Shunting-yard conversion and stack evaluation of token sequences."""

from __future__ import annotations

import operator
from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence

from mathstepper.models.expression import Token, TokenType
from mathstepper.services.errors import DivisionByZero, InvalidExpressionFormat, MismatchedParentheses


@dataclass(frozen=True)
class OperatorSpec:
    precedence: int
    left_associative: bool = True


OPERATORS: Dict[str, OperatorSpec] = {
    "+": OperatorSpec(1),
    "-": OperatorSpec(1),
    "×": OperatorSpec(2),
    "*": OperatorSpec(2),
    "÷": OperatorSpec(2),
    "/": OperatorSpec(2),
    "%": OperatorSpec(3),
}

# Prefix negation binds tighter than any binary operator.
UNARY_MINUS_PRECEDENCE = 4


def _precedence(token: Token) -> int:
    if token.type is TokenType.unary_minus:
        return UNARY_MINUS_PRECEDENCE
    return OPERATORS[token.value].precedence


def _divide(left: float, right: float) -> float:
    if right == 0:
        raise DivisionByZero()
    return left / right


def _percentage_of(left: float, right: float) -> float:
    return left * (right / 100)


_BINARY_OPERATORS: Dict[str, Callable[[float, float], float]] = {
    "+": operator.add,
    "-": operator.sub,
    "×": operator.mul,
    "*": operator.mul,
    "÷": _divide,
    "/": _divide,
    "%": _percentage_of,
}


def infix_to_postfix(tokens: Sequence[Token]) -> List[Token]:
    output: List[Token] = []
    stack: List[Token] = []

    for token in tokens:
        if token.type is TokenType.number:
            output.append(token)
        elif token.type is TokenType.unary_minus:
            stack.append(token)
        elif token.type is TokenType.operator:
            incoming = OPERATORS[token.value]
            while stack and stack[-1].type is not TokenType.parenthesis:
                top_precedence = _precedence(stack[-1])
                if top_precedence > incoming.precedence or (
                    top_precedence == incoming.precedence and incoming.left_associative
                ):
                    output.append(stack.pop())
                else:
                    break
            stack.append(token)
        elif token.value == "(":
            stack.append(token)
        else:
            while stack and stack[-1].value != "(":
                output.append(stack.pop())
            if not stack:
                raise MismatchedParentheses()
            stack.pop()

    while stack:
        token = stack.pop()
        if token.type is TokenType.parenthesis:
            raise MismatchedParentheses()
        output.append(token)

    return output


def _to_float(token: Token) -> float:
    try:
        return float(token.value)
    except ValueError as exc:
        raise InvalidExpressionFormat(
            f"Invalid number '{token.value}'", details={"position": token.position}
        ) from exc


def evaluate_postfix(tokens: Sequence[Token]) -> float:
    stack: List[float] = []

    for token in tokens:
        if token.type is TokenType.number:
            stack.append(_to_float(token))
        elif token.type is TokenType.unary_minus:
            if not stack:
                raise InvalidExpressionFormat(
                    "Invalid expression: insufficient operands", details={"position": token.position}
                )
            stack.append(-stack.pop())
        elif token.type is TokenType.operator:
            if len(stack) < 2:
                raise InvalidExpressionFormat(
                    "Invalid expression: insufficient operands", details={"position": token.position}
                )
            right = stack.pop()
            left = stack.pop()
            stack.append(_BINARY_OPERATORS[token.value](left, right))
        else:
            raise InvalidExpressionFormat("Invalid expression", details={"position": token.position})

    if len(stack) != 1:
        raise InvalidExpressionFormat("Invalid expression")

    return stack[0]
