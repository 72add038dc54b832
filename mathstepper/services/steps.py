"""
Pedagogical step generation for single arithmetic operations.

Each operation family yields an ordered list of ``MathStep`` values that
follow the written method: column addition with carries, column subtraction
with borrows, long multiplication with partial products, long division with
a running remainder, percentages and negation. Digit work is done on digit
strings and ``Decimal`` values so no float error leaks into a column.

Visual rows are fixed-width strings. Column 0 of a column layout holds the
operator glyph (and, in the result row, a final carry or a minus sign); digit
columns start at 1. Cells that stand for an implicit leading zero stay blank.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import Decimal, localcontext
from typing import Callable, Dict, List, Sequence, Tuple

from mathstepper.models.expression import Number, ParsedExpression, TokenType
from mathstepper.models.steps import (
    Borrow,
    Carry,
    Highlight,
    MathStep,
    Operands,
    Operation,
    StepLayout,
    VisualStepData,
    VisualType,
)
from mathstepper.services.errors import StepGenerationError
from mathstepper.services.numbers import (
    as_number,
    divide_half_up,
    exact_precision,
    format_number,
    to_decimal,
)

logger = logging.getLogger("mathstepper.steps")

SOURCE_COLOR = "bg-blue-200"
TARGET_COLOR = "bg-green-200"

OPERATION_SYMBOLS: Dict[str, Operation] = {
    "+": Operation.addition,
    "-": Operation.subtraction,
    "×": Operation.multiplication,
    "*": Operation.multiplication,
    "÷": Operation.division,
    "/": Operation.division,
    "%": Operation.percentage,
}

_INTEGER_PLACES = (
    "ones",
    "tens",
    "hundreds",
    "thousands",
    "ten-thousands",
    "hundred-thousands",
    "millions",
)
_FRACTION_PLACES = ("tenths", "hundredths", "thousandths", "ten-thousandths")


def integer_place(index: int) -> str:
    return _INTEGER_PLACES[index] if index < len(_INTEGER_PLACES) else "column"


def fraction_place(index: int) -> str:
    return _FRACTION_PLACES[index] if index < len(_FRACTION_PLACES) else "column"


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def resolve_operation(symbol: str | Operation, right: Number | None) -> Operation:
    """Map an operator symbol (or operation name) to an ``Operation``; '-' alone is negation."""
    if isinstance(symbol, Operation):
        operation = symbol
    elif symbol == "-" and right is None:
        return Operation.unary
    elif symbol in OPERATION_SYMBOLS:
        operation = OPERATION_SYMBOLS[symbol]
    else:
        try:
            operation = Operation(symbol)
        except ValueError:
            raise StepGenerationError(
                f"Unsupported operation: {symbol}", details={"operation": symbol}
            ) from None

    if operation is Operation.unary:
        if right is not None:
            raise StepGenerationError("Negation takes a single operand.")
        return operation
    if right is None:
        raise StepGenerationError(
            f"{operation.value.capitalize()} needs a right operand.",
            details={"operation": operation.value},
        )
    return operation


@dataclass(frozen=True)
class _Digits:
    """Unsigned decimal digits of a number, split at the decimal point."""

    integer: str
    fraction: str

    @classmethod
    def of(cls, value: Number | Decimal) -> "_Digits":
        integer, _, fraction = format_number(value).lstrip("-").partition(".")
        return cls(integer=integer, fraction=fraction)

    @property
    def text(self) -> str:
        return f"{self.integer}.{self.fraction}" if self.fraction else self.integer

    @property
    def scaled(self) -> str:
        return self.integer + self.fraction


class _StepBuilder:
    def __init__(
        self,
        operation: Operation,
        left: Number,
        right: Number | None,
        result: Number | Decimal,
    ) -> None:
        self.operation = operation
        self.operands = Operands(
            left=as_number(left),
            right=None if right is None else as_number(right),
        )
        self.result = as_number(result)
        self._steps: List[MathStep] = []

    def add(
        self,
        description: str,
        visual_type: VisualType,
        rows: Sequence[str],
        explanation: str,
        *,
        highlights: Sequence[Highlight] | None = None,
        carries: Sequence[Carry] | None = None,
        borrows: Sequence[Borrow] | None = None,
    ) -> None:
        width = max(len(row) for row in rows)
        layout = StepLayout(
            rows=[row.ljust(width) for row in rows],
            highlights=list(highlights) if highlights is not None else None,
            carries=list(carries) if carries is not None else None,
            borrows=list(borrows) if borrows is not None else None,
        )
        self._steps.append(
            MathStep(
                stepNumber=len(self._steps) + 1,
                description=description,
                operation=self.operation,
                operands=self.operands,
                result=self.result,
                visualData=VisualStepData(type=visual_type, layout=layout),
                explanation=explanation,
            )
        )

    def build(self) -> List[MathStep]:
        return list(self._steps)


# Column pass shared by addition and subtraction.

ColumnRule = Callable[[int, int, int], Tuple[int, int]]


def carry_rule(top: int, bottom: int, carry_in: int) -> Tuple[int, int]:
    total = top + bottom + carry_in
    return total % 10, total // 10


def borrow_rule(top: int, bottom: int, borrow_in: int) -> Tuple[int, int]:
    borrow_out = 1 if top - borrow_in < bottom else 0
    return top + 10 * borrow_out - borrow_in - bottom, borrow_out


@dataclass(frozen=True)
class _ColumnLayout:
    top: str
    bottom: str
    integer_width: int
    fraction_width: int

    @classmethod
    def align(cls, top: _Digits, bottom: _Digits) -> "_ColumnLayout":
        integer_width = max(len(top.integer), len(bottom.integer))
        fraction_width = max(len(top.fraction), len(bottom.fraction))

        def render(digits: _Digits) -> str:
            text = digits.integer.rjust(integer_width)
            if fraction_width:
                point = "." if digits.fraction else " "
                text += point + digits.fraction.ljust(fraction_width)
            return text

        return cls(render(top), render(bottom), integer_width, fraction_width)

    @property
    def width(self) -> int:
        return len(self.top) + 1

    @property
    def point_column(self) -> int | None:
        return self.integer_width + 1 if self.fraction_width else None

    @property
    def units_column(self) -> int:
        return self.integer_width

    def digit_columns(self) -> List[int]:
        """Row columns holding digits, most significant first."""
        return [column for column in range(1, self.width) if column != self.point_column]

    def digit_at(self, text: str, column: int) -> int:
        char = text[column - 1]
        return 0 if char == " " else int(char)

    def place(self, column: int) -> str:
        if column <= self.integer_width:
            return integer_place(self.integer_width - column)
        return fraction_place(column - self.integer_width - 2)


@dataclass(frozen=True)
class ColumnResult:
    column: int
    next_column: int
    top: int
    bottom: int
    incoming: int
    digit: int
    outgoing: int


def column_pass(layout: _ColumnLayout, rule: ColumnRule) -> List[ColumnResult]:
    """Walk the digit columns right to left, threading the carry or borrow through ``rule``."""
    columns = layout.digit_columns()
    results: List[ColumnResult] = []
    incoming = 0
    for index in range(len(columns) - 1, -1, -1):
        column = columns[index]
        top = layout.digit_at(layout.top, column)
        bottom = layout.digit_at(layout.bottom, column)
        digit, outgoing = rule(top, bottom, incoming)
        results.append(
            ColumnResult(
                column=column,
                next_column=columns[index - 1] if index else 0,
                top=top,
                bottom=bottom,
                incoming=incoming,
                digit=digit,
                outgoing=outgoing,
            )
        )
        incoming = outgoing
    return results


@dataclass(frozen=True)
class _ColumnNarration:
    source: str
    target: str
    explanation: str


@dataclass(frozen=True)
class _ColumnFamily:
    symbol: str
    verb: str
    rule: ColumnRule
    narrate: Callable[[ColumnResult, _ColumnLayout], _ColumnNarration]
    annotate: Callable[[ColumnResult, _ColumnLayout], Carry | Borrow]
    uses_borrows: bool


def _narrate_addition(result: ColumnResult, layout: _ColumnLayout) -> _ColumnNarration:
    total = result.top + result.bottom + result.incoming
    terms = f"{result.top} + {result.bottom}"
    if result.incoming:
        terms += f" + {result.incoming}"
    explanation = f"{terms}{' (carry)' if result.incoming else ''} = {total}. Write {result.digit}"
    target = f"Write {result.digit}"
    if result.outgoing:
        explanation += f" and carry {result.outgoing}"
        target += f", carry {result.outgoing}"
    return _ColumnNarration(source=f"Add {terms} = {total}", target=target, explanation=explanation + ".")


def _annotate_carry(result: ColumnResult, layout: _ColumnLayout) -> Carry:
    destination = "the next column" if result.next_column == 0 else f"the {layout.place(result.next_column)} column"
    return Carry(
        fromColumn=result.column,
        toColumn=result.next_column,
        value=result.outgoing,
        description=f"Carry {result.outgoing} to {destination}",
    )


def _narrate_subtraction(result: ColumnResult, layout: _ColumnLayout) -> _ColumnNarration:
    available = result.top - result.incoming
    top_text = str(result.top)
    if result.incoming:
        top_text = f"{result.top} - 1 (lent) = {available}"
    if result.outgoing:
        borrowed = available + 10
        explanation = (
            f"{top_text} is smaller than {result.bottom}, so borrow 1 from the "
            f"{layout.place(result.next_column)} column: {borrowed} - {result.bottom} = {result.digit}."
        )
        source = f"{borrowed} - {result.bottom} = {result.digit}"
    else:
        explanation = f"{top_text}; {available} - {result.bottom} = {result.digit}." if result.incoming else (
            f"{available} - {result.bottom} = {result.digit}."
        )
        source = f"{available} - {result.bottom} = {result.digit}"
    return _ColumnNarration(source=source, target=f"Write {result.digit}", explanation=explanation)


def _annotate_borrow(result: ColumnResult, layout: _ColumnLayout) -> Borrow:
    return Borrow(
        fromColumn=result.next_column,
        toColumn=result.column,
        value=1,
        description=f"Borrow 1 from the {layout.place(result.next_column)} column",
    )


ADDITION = _ColumnFamily(
    symbol="+",
    verb="Add",
    rule=carry_rule,
    narrate=_narrate_addition,
    annotate=_annotate_carry,
    uses_borrows=False,
)
SUBTRACTION = _ColumnFamily(
    symbol="-",
    verb="Subtract",
    rule=borrow_rule,
    narrate=_narrate_subtraction,
    annotate=_annotate_borrow,
    uses_borrows=True,
)


def _finish_result_row(cells: List[str], layout: _ColumnLayout, negative: bool) -> str:
    finished = list(cells)
    for column in range(0, layout.units_column):
        if finished[column] not in ("0", " "):
            break
        finished[column] = " "
    if negative:
        first_digit = next(index for index, cell in enumerate(finished) if cell != " ")
        finished[first_digit - 1] = "-"
    return "".join(finished)


def _column_steps(
    builder: _StepBuilder,
    family: _ColumnFamily,
    top: _Digits,
    bottom: _Digits,
    swapped: bool,
) -> None:
    layout = _ColumnLayout.align(top, bottom)
    operator_row = family.symbol + layout.bottom
    header = [" " + layout.top, operator_row, "-" * layout.width]
    annotation_kind = "borrows" if family.uses_borrows else "carries"

    alignment_note = "Write the numbers one above the other, aligning the digits by place value."
    if swapped:
        alignment_note += (
            f" {format_number(builder.operands.left)} is smaller than "
            f"{format_number(builder.operands.right)}, so subtract the smaller number from the "
            "larger one and make the answer negative."
        )
    builder.add("Align the numbers vertically", "column", header, alignment_note)

    cells = [" "] * layout.width
    if layout.point_column is not None:
        cells[layout.point_column] = "."
    annotations: List[Carry | Borrow] = []

    for result in column_pass(layout, family.rule):
        cells[result.column] = str(result.digit)
        if result.outgoing:
            annotations.append(family.annotate(result, layout))
            if result.next_column == 0:
                cells[0] = str(result.outgoing)

        narration = family.narrate(result, layout)
        highlights = [
            Highlight(row=0, column=result.column, color=SOURCE_COLOR, description=narration.source),
            Highlight(row=1, column=result.column, color=SOURCE_COLOR, description=""),
            Highlight(row=3, column=result.column, color=TARGET_COLOR, description=narration.target),
        ]
        builder.add(
            f"{family.verb} the {layout.place(result.column)} column",
            "column",
            [*header, "".join(cells)],
            narration.explanation,
            highlights=highlights,
            **{annotation_kind: annotations},
        )

    answer = format_number(builder.result)
    if swapped:
        explanation = (
            f"{format_number(builder.operands.left)} is smaller than "
            f"{format_number(builder.operands.right)}, so the final answer is {answer}."
        )
    else:
        explanation = f"The final answer is {answer}."
    builder.add(
        "Final answer",
        "column",
        [*header, _finish_result_row(cells, layout, negative=swapped)],
        explanation,
        **{annotation_kind: annotations},
    )


# Long multiplication.


def multiply_by_digit(digits: str, factor: int) -> Tuple[str, List[Tuple[int, int]]]:
    """Product of a digit string and a single digit, plus the (digit index, carry) pairs produced."""
    carry = 0
    written: List[str] = []
    carries: List[Tuple[int, int]] = []
    for index in range(len(digits) - 1, -1, -1):
        total = int(digits[index]) * factor + carry
        written.append(str(total % 10))
        carry = total // 10
        if carry:
            carries.append((index, carry))
    if carry:
        written.append(str(carry))
    return "".join(reversed(written)).lstrip("0") or "0", carries


def add_digit_strings(numbers: Sequence[str]) -> str:
    width = max(len(number) for number in numbers)
    padded = [number.rjust(width, "0") for number in numbers]
    carry = 0
    written: List[str] = []
    for index in range(width - 1, -1, -1):
        total = carry + sum(int(number[index]) for number in padded)
        written.append(str(total % 10))
        carry = total // 10
    while carry:
        written.append(str(carry % 10))
        carry //= 10
    return "".join(reversed(written)).lstrip("0") or "0"


def _digit_columns(row: str) -> List[int]:
    return [column for column, char in enumerate(row) if char.isdigit()]


def _multiplication_steps(builder: _StepBuilder, left: _Digits, right: _Digits) -> None:
    scale = len(left.fraction) + len(right.fraction)
    multiplicand = left.scaled
    multiplier = right.scaled

    partials: List[Tuple[int, str, str, List[Tuple[int, int]]]] = []
    for shift, char in enumerate(reversed(multiplier)):
        digit = int(char)
        product, carries = multiply_by_digit(multiplicand, digit)
        shifted = product + "0" * shift if product != "0" else "0"
        partials.append((digit, product, shifted, carries))

    total_scaled = add_digit_strings([shifted for _, _, shifted, _ in partials])
    total_text = format_number(Decimal(int(total_scaled)).scaleb(-scale))

    width = 1 + max(
        len(left.text),
        len(right.text),
        len(total_scaled),
        len(total_text),
        *(len(shifted) for _, _, shifted, _ in partials),
    )
    header = [left.text.rjust(width), "×" + right.text.rjust(width - 1), "-" * width]
    left_columns = _digit_columns(header[0])
    right_columns = _digit_columns(header[1])

    builder.add(
        "Align the numbers vertically",
        "column",
        header,
        "Write the numbers one above the other, lining up the ones digits.",
    )

    def right_place(shift: int) -> str:
        if shift < len(right.fraction):
            return fraction_place(len(right.fraction) - 1 - shift)
        return integer_place(shift - len(right.fraction))

    partial_rows: List[str] = []
    for shift, (digit, product, shifted, carries) in enumerate(partials):
        row = shifted.rjust(width)
        partial_rows.append(row)
        row_index = len(header) + shift
        place = right_place(shift)

        highlights = [
            Highlight(
                row=1,
                column=right_columns[-1 - shift],
                color=SOURCE_COLOR,
                description=f"Multiply by {digit}",
            )
        ]
        filled = _digit_columns(row)
        for column in filled:
            highlights.append(
                Highlight(
                    row=row_index,
                    column=column,
                    color=TARGET_COLOR,
                    description=f"{left.text} × {digit} = {product}" if column == filled[-1] else "",
                )
            )
        carry_marks = [
            Carry(
                fromColumn=left_columns[index],
                toColumn=left_columns[index - 1] if index else left_columns[0] - 1,
                value=value,
                description=f"{multiplicand[index]} × {digit} carries {value} to the next column",
            )
            for index, value in carries
        ]

        explanation = f"{left.text} × {digit} = {product}."
        if shift and product != "0":
            explanation += (
                f" The {digit} is in the {place} place, so write the product followed by "
                f"{_plural(shift, 'zero')}: {shifted}."
            )
        builder.add(
            f"Multiply {left.text} by the {place} digit {digit}",
            "grid",
            [*header, *partial_rows],
            explanation,
            highlights=highlights,
            carries=carry_marks,
        )

    if len(partials) == 1:
        explanation = f"{left.text} × {right.text} = {total_text}."
    else:
        summands = " + ".join(shifted for _, _, shifted, _ in partials)
        explanation = f"Add the partial products: {summands} = {total_scaled}."
    if scale:
        explanation += (
            f" The two numbers have {_plural(scale, 'decimal place')} between them, "
            f"so the product is {total_text}."
        )
    builder.add(
        "Add the partial products",
        "grid",
        [*header, *partial_rows, "-" * width, total_text.rjust(width)],
        explanation,
    )


# Long division.

_QUOTIENT_PLACES = 2


def _quotient_row(quotient: Sequence[str], integer_length: int, offset: int) -> str:
    cells = [" "] * offset
    leading = True
    for index, digit in enumerate(quotient):
        if index == integer_length:
            cells.append(".")
        units = index >= integer_length - 1
        if leading and digit == "0" and not units:
            cells.append(" ")
        else:
            leading = False
            cells.append(digit)
    return "".join(cells)


def _shift_point(digits: _Digits, places: int) -> _Digits:
    integer = (digits.integer + digits.fraction[:places].ljust(places, "0")).lstrip("0") or "0"
    return _Digits(integer=integer, fraction=digits.fraction[places:])


def _fraction_to_bring_down(work: _Digits, divisor: int) -> str:
    """Every fractional digit of the dividend, then zeros up to one place past the rounded answer."""
    remainder = int(work.integer) % divisor
    for char in work.fraction:
        remainder = (remainder * 10 + int(char)) % divisor
    brought = work.fraction
    while remainder and len(brought) <= _QUOTIENT_PLACES:
        brought += "0"
        remainder = remainder * 10 % divisor
    return brought


def _division_steps(builder: _StepBuilder, dividend: Number, divisor: Number) -> None:
    divisor_digits = _Digits.of(divisor)
    shift = len(divisor_digits.fraction)
    whole_divisor = int(divisor_digits.scaled)
    work = _shift_point(_Digits.of(dividend), shift)
    divisor_text = str(whole_divisor)

    builder.add(
        "Set up long division",
        "long-division",
        [f"{format_number(divisor)}){format_number(dividend)}"],
        f"We need to divide {format_number(dividend)} by {format_number(divisor)}.",
    )
    if shift:
        builder.add(
            "Make the divisor a whole number",
            "long-division",
            [f"{divisor_text}){work.text}"],
            f"Move both decimal points {_plural(shift, 'place')} to the right: "
            f"{format_number(dividend)} ÷ {format_number(divisor)} becomes {work.text} ÷ {divisor_text}.",
        )

    fraction = _fraction_to_bring_down(work, whole_divisor)
    shown_places = max(len(fraction), _QUOTIENT_PLACES) if fraction else 0
    digits = work.integer + fraction
    bracket = f"{divisor_text}){work.integer}"
    if fraction:
        bracket += "." + fraction.ljust(shown_places, "0")
    offset = len(divisor_text) + 1
    integer_length = len(work.integer)

    quotient: List[str] = []
    remainder = 0
    for index, char in enumerate(digits):
        current = remainder * 10 + int(char)
        if current < whole_divisor:
            quotient.append("0")
            remainder = current
            continue

        digit, remainder = divmod(current, whole_divisor)
        quotient.append(str(digit))
        column = offset + index + (1 if index >= integer_length else 0)
        product = digit * whole_divisor

        if index >= integer_length:
            description = f"Bring down {char} and divide {current} by {divisor_text}"
        else:
            description = f"Divide {current} by {divisor_text}"
        builder.add(
            description,
            "long-division",
            [
                _quotient_row(quotient, integer_length, offset),
                bracket,
                str(current).rjust(column + 1),
                f"-{product}".rjust(column + 1),
                str(remainder).rjust(column + 1),
            ],
            f"{current} ÷ {divisor_text} = {digit} remainder {remainder}.",
            highlights=[
                Highlight(row=0, column=column, color=TARGET_COLOR, description=f"Write {digit}"),
                Highlight(row=1, column=column, color=SOURCE_COLOR, description=f"Bring down {char}"),
            ],
        )

    # The remainder belongs to the quotient digits written above the bracket,
    # in the place value of the last digit brought down.
    places = len(fraction)
    working = Decimal(f"{''.join(quotient)}E-{places}")
    left_over = Decimal(f"{remainder}E-{places + shift}")
    answer = format_number(builder.result)
    if remainder or places > _QUOTIENT_PLACES:
        worked = f"{format_number(dividend)} ÷ {format_number(divisor)} = {format_number(working)}"
        if remainder:
            worked += f" with remainder {format_number(left_over)}"
        explanation = (
            f"{worked}. Rounded to {_plural(_QUOTIENT_PLACES, 'decimal place')}, "
            f"the final answer is {answer}."
        )
    else:
        explanation = f"The final answer is {answer}."

    quotient.extend("0" * (shown_places - places))
    builder.add(
        "Final answer",
        "long-division",
        [_quotient_row(quotient, integer_length, offset), bracket],
        explanation,
    )


def _percentage_steps(builder: _StepBuilder, left: Number, right: Number) -> None:
    rate = to_decimal(right) / 100
    left_text = format_number(left)
    rate_text = format_number(rate)
    product_text = format_number(builder.result)

    rows = [f"{left_text} × {format_number(right)}%", f"{left_text} × {rate_text}", product_text]
    width = max(len(row) for row in rows)
    builder.add(
        "Convert percentage to decimal",
        "percentage",
        [row.rjust(width) for row in rows],
        f"Convert {format_number(right)}% to decimal: {format_number(right)}% = {rate_text}",
    )
    rows = [f"{left_text} × {rate_text}", product_text]
    width = max(len(row) for row in rows)
    builder.add(
        "Multiply",
        "percentage",
        [row.rjust(width) for row in rows],
        f"{left_text} × {rate_text} = {product_text}",
    )


def _negation_steps(builder: _StepBuilder, value: Number) -> None:
    value_text = format_number(value)
    negated = f"-({value_text})" if to_decimal(value) < 0 else f"-{value_text}"
    result_text = format_number(builder.result)
    width = max(len(negated), len(result_text))
    builder.add(
        "Apply negative sign",
        "unary",
        [negated.rjust(width), result_text.rjust(width)],
        f"The negative of {value_text} is {result_text}.",
    )


class StepGenerator:
    """Builds the written-method steps for one arithmetic operation."""

    def generate(
        self,
        operation: str | Operation,
        left: Number,
        right: Number | None = None,
    ) -> List[MathStep]:
        resolved = resolve_operation(operation, right)
        self._check_operands(resolved, left, right)

        operands = (left,) if right is None else (left, right)
        with localcontext() as context:
            context.prec = exact_precision(*operands)
            builder = self._build(resolved, left, right)

        steps = builder.build()
        logger.debug(
            "steps.generated",
            extra={"operation": resolved.value, "step_count": len(steps)},
        )
        return steps

    def _build(self, operation: Operation, left: Number, right: Number | None) -> _StepBuilder:
        if operation is Operation.unary:
            builder = _StepBuilder(operation, left, None, -to_decimal(left))
            _negation_steps(builder, left)
        elif operation is Operation.addition:
            builder = _StepBuilder(operation, left, right, to_decimal(left) + to_decimal(right))
            _column_steps(builder, ADDITION, _Digits.of(left), _Digits.of(right), swapped=False)
        elif operation is Operation.subtraction:
            builder = _StepBuilder(operation, left, right, to_decimal(left) - to_decimal(right))
            swapped = to_decimal(left) < to_decimal(right)
            top, bottom = (right, left) if swapped else (left, right)
            _column_steps(builder, SUBTRACTION, _Digits.of(top), _Digits.of(bottom), swapped=swapped)
        elif operation is Operation.multiplication:
            builder = _StepBuilder(operation, left, right, to_decimal(left) * to_decimal(right))
            _multiplication_steps(builder, _Digits.of(left), _Digits.of(right))
        elif operation is Operation.division:
            builder = _StepBuilder(
                operation, left, right, divide_half_up(left, right, _QUOTIENT_PLACES)
            )
            _division_steps(builder, left, right)
        else:
            builder = _StepBuilder(
                operation, left, right, to_decimal(left) * (to_decimal(right) / 100)
            )
            _percentage_steps(builder, left, right)
        return builder

    def for_expression(self, parsed: ParsedExpression) -> List[MathStep]:
        """
        Steps for the first binary operation of a parsed expression.

        Only the operator that appears first in the token list is broken
        down, so "2+3+4" yields the steps of 2 + 3. A lone number gets a
        single step and a negated number gets the negation step.
        """
        if not parsed.isValid:
            raise StepGenerationError(parsed.error or "Invalid expression")

        tokens = parsed.tokens
        numbers = [token for token in tokens if token.type is TokenType.number]
        operator_index = next(
            (index for index, token in enumerate(tokens) if token.type is TokenType.operator),
            None,
        )

        if operator_index is None:
            if not numbers:
                raise StepGenerationError("Invalid expression format")
            value = float(numbers[0].value)
            if any(token.type is TokenType.unary_minus for token in tokens):
                return self.generate("-", value)
            return self._single_number(value)

        left_token = tokens[operator_index - 1] if operator_index > 0 else None
        right_token = tokens[operator_index + 1] if operator_index + 1 < len(tokens) else None
        if (
            left_token is None
            or right_token is None
            or left_token.type is not TokenType.number
            or right_token.type is not TokenType.number
        ):
            raise StepGenerationError("Invalid expression format")

        return self.generate(
            tokens[operator_index].value,
            float(left_token.value),
            float(right_token.value),
        )

    def _single_number(self, value: float) -> List[MathStep]:
        builder = _StepBuilder(Operation.addition, value, None, to_decimal(value))
        text = format_number(value)
        builder.add("Single number", "column", [text], f"The number is {text}.")
        return builder.build()

    def _check_operands(self, operation: Operation, left: Number, right: Number | None) -> None:
        for value in (left, right):
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise StepGenerationError(f"Operands must be numbers, got {value!r}.")
            if not math.isfinite(value):
                raise StepGenerationError("Operands must be finite numbers.")

        if operation in (Operation.unary, Operation.percentage):
            return
        if left < 0 or (right is not None and right < 0):
            raise StepGenerationError(
                f"{operation.value.capitalize()} steps need non-negative operands.",
                details={"left": left, "right": right},
            )
        if operation is Operation.division and right == 0:
            raise StepGenerationError("Division by zero")


_default_generator = StepGenerator()


def generate_steps(
    operation: str | Operation,
    left: Number,
    right: Number | None = None,
) -> List[MathStep]:
    return _default_generator.generate(operation, left, right)


def generate_steps_for_expression(parsed: ParsedExpression) -> List[MathStep]:
    return _default_generator.for_expression(parsed)
