from __future__ import annotations

from mathstepper.core.exceptions import AppError


class ExpressionError(AppError):
    status_code = 400
    error_type = "EXPRESSION_ERROR"


class EmptyExpression(ExpressionError):
    error_type = "EMPTY_EXPRESSION"

    def __init__(self) -> None:
        super().__init__("Empty expression")


class ExpressionTooLong(ExpressionError):
    error_type = "EXPRESSION_TOO_LONG"

    def __init__(self, limit: int) -> None:
        super().__init__(f"Expression exceeds {limit} characters.", details={"limit": limit})


class MismatchedParentheses(ExpressionError):
    error_type = "MISMATCHED_PARENTHESES"

    def __init__(self) -> None:
        super().__init__("Mismatched parentheses")


class UnclosedParentheses(ExpressionError):
    error_type = "UNCLOSED_PARENTHESES"

    def __init__(self, depth: int) -> None:
        super().__init__("Unclosed parentheses", details={"open": depth})


class InvalidCharacter(ExpressionError):
    error_type = "INVALID_CHARACTER"

    def __init__(self, character: str, position: int) -> None:
        super().__init__(
            f"Invalid character '{character}' at position {position}",
            details={"character": character, "position": position},
        )
        self.character = character
        self.position = position


class InvalidExpressionFormat(ExpressionError):
    error_type = "INVALID_EXPRESSION_FORMAT"


class DivisionByZero(ExpressionError):
    error_type = "DIVISION_BY_ZERO"

    def __init__(self) -> None:
        super().__init__("Division by zero")


class StepGenerationError(AppError):
    status_code = 422
    error_type = "STEP_GENERATION_ERROR"
