from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, model_validator

Number = int | float


class TokenType(str, Enum):
    number = "NUMBER"
    operator = "OPERATOR"
    parenthesis = "PARENTHESIS"
    unary_minus = "UNARY_MINUS"


class Token(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: TokenType = Field(..., description="Lexical category of the token.")
    value: str = Field(..., description="Source text of the token.")
    position: int = Field(..., ge=0, description="Offset of the token in the normalized expression.")


class ParsedExpression(BaseModel):
    model_config = ConfigDict(frozen=True)

    tokens: List[Token] = Field(default_factory=list, description="Tokens in source order.")
    isValid: bool = Field(..., description="Whether the expression parsed and evaluated cleanly.")
    error: str | None = Field(default=None, description="Human-readable failure message.")
    errorType: str | None = Field(default=None, description="Machine-readable failure code.")
    result: Number | None = Field(default=None, description="Evaluated value rounded to 2 decimals.")

    @model_validator(mode="after")
    def validate_outcome(self) -> "ParsedExpression":
        if self.isValid:
            if self.error is not None or self.errorType is not None:
                raise ValueError("A valid expression cannot carry an error.")
            if self.result is None:
                raise ValueError("A valid expression must carry a result.")
        else:
            if not self.error:
                raise ValueError("An invalid expression must carry an error message.")
            if self.result is not None:
                raise ValueError("An invalid expression cannot carry a result.")
        return self


class ExtractionResponse(BaseModel):
    text: str = Field(..., description="Text that was searched.")
    expression: str | None = Field(
        default=None, description="First arithmetic expression found in the text, if any."
    )
