from __future__ import annotations

from enum import Enum
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

from mathstepper.models.expression import Number


class Operation(str, Enum):
    addition = "addition"
    subtraction = "subtraction"
    multiplication = "multiplication"
    division = "division"
    percentage = "percentage"
    unary = "unary"


VisualType = Literal["column", "grid", "long-division", "percentage", "unary"]


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class Highlight(_FrozenModel):
    row: int = Field(..., ge=0)
    column: int = Field(..., ge=0)
    color: str
    description: str = ""


class Carry(_FrozenModel):
    fromColumn: int = Field(..., ge=0)
    toColumn: int = Field(..., ge=0)
    value: int
    description: str


class Borrow(_FrozenModel):
    fromColumn: int = Field(..., ge=0)
    toColumn: int = Field(..., ge=0)
    value: int
    description: str


class StepLayout(_FrozenModel):
    rows: List[str] = Field(..., description="Fixed-width rows for a monospace display.")
    highlights: List[Highlight] | None = None
    carries: List[Carry] | None = None
    borrows: List[Borrow] | None = None


class VisualStepData(_FrozenModel):
    type: VisualType
    layout: StepLayout


class Operands(_FrozenModel):
    left: Number
    right: Number | None = None


class MathStep(_FrozenModel):
    stepNumber: int = Field(..., ge=1)
    description: str
    operation: Operation
    operands: Operands
    result: Number
    visualData: VisualStepData
    explanation: str


class StepRequest(BaseModel):
    operation: str = Field(..., min_length=1, description="Operator symbol, e.g. '+', '×', '÷', '%'.")
    left: float = Field(..., description="Left operand, or the value to negate.")
    right: float | None = Field(default=None, description="Right operand; omit for unary minus.")


class StepsResponse(BaseModel):
    expression: str | None = Field(default=None, description="Source expression, when stepping one.")
    steps: List[MathStep] = Field(default_factory=list)
