import math
from decimal import Decimal

import pytest

from mathstepper.models.steps import Borrow, Carry, MathStep, Operation
from mathstepper.services.errors import StepGenerationError
from mathstepper.services.steps import (
    StepGenerator,
    add_digit_strings,
    generate_steps,
    multiply_by_digit,
    resolve_operation,
)


def rows(step: MathStep) -> list[str]:
    return step.visualData.layout.rows


def assert_contiguous(steps: list[MathStep]) -> None:
    assert [step.stepNumber for step in steps] == list(range(1, len(steps) + 1))
    for step in steps:
        widths = {len(row) for row in rows(step)}
        assert len(widths) == 1


@pytest.mark.parametrize(
    ("symbol", "right", "expected"),
    [
        ("+", 1, Operation.addition),
        ("-", 1, Operation.subtraction),
        ("-", None, Operation.unary),
        ("×", 1, Operation.multiplication),
        ("*", 1, Operation.multiplication),
        ("÷", 1, Operation.division),
        ("/", 1, Operation.division),
        ("%", 1, Operation.percentage),
        ("division", 1, Operation.division),
        (Operation.unary, None, Operation.unary),
    ],
)
def test_resolve_operation(symbol, right, expected) -> None:
    assert resolve_operation(symbol, right) is expected


def test_addition_with_single_carry() -> None:
    steps = generate_steps("+", 48, 27)

    assert_contiguous(steps)
    assert len(steps) == 4
    assert rows(steps[0]) == [" 48", "+27", "---"]

    ones = steps[1]
    assert ones.description == "Add the ones column"
    assert rows(ones)[3] == "  5"
    assert ones.explanation == "8 + 7 = 15. Write 5 and carry 1."
    assert [(h.row, h.column) for h in ones.visualData.layout.highlights] == [(0, 2), (1, 2), (3, 2)]

    tens = steps[2]
    assert tens.description == "Add the tens column"
    assert tens.explanation == "4 + 2 + 1 (carry) = 7. Write 7."

    final = steps[-1]
    assert final.result == 75
    assert rows(final)[3] == " 75"
    assert final.explanation == "The final answer is 75."
    assert final.visualData.layout.carries == [
        Carry(fromColumn=2, toColumn=1, value=1, description="Carry 1 to the tens column")
    ]


def test_addition_writes_final_carry_into_result_row() -> None:
    steps = generate_steps("+", 99, 1)

    assert rows(steps[0]) == [" 99", "+ 1", "---"]
    assert rows(steps[-1])[3] == "100"
    assert steps[-1].result == 100
    assert [(c.fromColumn, c.toColumn) for c in steps[-1].visualData.layout.carries] == [(2, 1), (1, 0)]


def test_addition_pads_shorter_operand_with_blanks() -> None:
    steps = generate_steps("+", 1234, 5)

    assert rows(steps[0]) == [" 1234", "+   5", "-----"]
    assert steps[-1].result == 1239
    assert "0" not in rows(steps[0])[1]


def test_addition_aligns_decimal_points() -> None:
    steps = generate_steps("+", 1.5, 2.25)

    assert_contiguous(steps)
    assert rows(steps[0]) == [" 1.5 ", "+2.25", "-----"]
    assert [step.description for step in steps[1:-1]] == [
        "Add the hundredths column",
        "Add the tenths column",
        "Add the ones column",
    ]
    assert rows(steps[-1])[3] == " 3.75"
    assert steps[-1].result == 3.75


@pytest.mark.parametrize(("left", "right"), [(0, 0), (7, 8), (999, 999), (1005, 97), (123456, 654321)])
def test_addition_final_result_is_exact(left: int, right: int) -> None:
    steps = generate_steps("+", left, right)

    assert steps[-1].result == left + right
    assert rows(steps[-1])[3].strip() == str(left + right)


def test_subtraction_with_borrow_chain() -> None:
    steps = generate_steps("-", 502, 398)

    assert_contiguous(steps)
    assert len(steps) == 5
    assert rows(steps[0]) == [" 502", "-398", "----"]
    assert steps[1].explanation == "2 is smaller than 8, so borrow 1 from the tens column: 12 - 8 = 4."
    assert steps[3].explanation == "5 - 1 (lent) = 4; 4 - 3 = 1."

    final = steps[-1]
    assert final.result == 104
    assert rows(final)[3] == " 104"
    assert final.visualData.layout.borrows == [
        Borrow(fromColumn=2, toColumn=3, value=1, description="Borrow 1 from the tens column"),
        Borrow(fromColumn=1, toColumn=2, value=1, description="Borrow 1 from the hundreds column"),
    ]


def test_subtraction_blanks_leading_zeros_in_result() -> None:
    steps = generate_steps("-", 1000, 1)

    assert rows(steps[-1])[3] == "  999"
    assert len(steps[-1].visualData.layout.borrows) == 3


def test_subtraction_without_borrows() -> None:
    steps = generate_steps("-", 58, 23)

    assert steps[-1].result == 35
    assert steps[-1].visualData.layout.borrows == []
    assert steps[1].explanation == "8 - 3 = 5."


def test_subtraction_of_larger_number_gives_negative_answer() -> None:
    steps = generate_steps("-", 3, 5)

    assert rows(steps[0]) == [" 5", "-3", "--"]
    assert rows(steps[-1])[3] == "-2"
    assert steps[-1].result == -2
    assert steps[-1].operands.left == 3
    assert steps[-1].operands.right == 5
    assert steps[-1].explanation == "3 is smaller than 5, so the final answer is -2."


def test_whole_operand_has_no_decimal_point_beside_decimal_operand() -> None:
    steps = generate_steps("-", 3, 10.5)

    assert rows(steps[0]) == [" 10.5", "- 3  ", "-----"]
    assert rows(steps[-1])[3] == " -7.5"
    assert steps[-1].result == -7.5


@pytest.mark.parametrize(("left", "right"), [(10, 10), (1000, 999), (75, 48), (0.5, 0.25), (3, 7)])
def test_subtraction_final_result_is_exact(left: float, right: float) -> None:
    steps = generate_steps("-", left, right)

    assert steps[-1].result == pytest.approx(left - right)


def test_multiplication_with_one_digit_multiplier() -> None:
    steps = generate_steps("×", 12, 3)

    assert_contiguous(steps)
    assert len(steps) == 3
    assert rows(steps[0]) == [" 12", "× 3", "---"]
    assert steps[1].visualData.type == "grid"
    assert rows(steps[1]) == [" 12", "× 3", "---", " 36"]
    assert steps[-1].result == 36
    assert rows(steps[-1])[-1] == " 36"


def test_multiplication_partial_products_sum_to_product() -> None:
    steps = generate_steps("*", 123, 45)

    assert len(steps) == 4
    partial_rows = rows(steps[-1])[3:-2]
    assert [row.strip() for row in partial_rows] == ["615", "4920"]
    assert sum(int(row) for row in partial_rows) == 123 * 45
    assert steps[-1].result == 5535
    assert steps[-1].explanation == "Add the partial products: 615 + 4920 = 5535."

    first_partial = steps[1]
    assert [(c.fromColumn, c.toColumn, c.value) for c in first_partial.visualData.layout.carries] == [
        (4, 3, 1),
        (3, 2, 1),
    ]
    assert steps[2].description == "Multiply 123 by the tens digit 4"


def test_multiplication_with_zero_digit() -> None:
    steps = generate_steps("×", 12, 10)

    partial_rows = [row.strip() for row in rows(steps[-1])[3:-2]]
    assert partial_rows == ["0", "120"]
    assert steps[-1].result == 120


def test_multiplication_places_decimal_point() -> None:
    steps = generate_steps("×", 1.5, 2.5)

    assert steps[-1].result == 3.75
    assert rows(steps[-1])[-1].strip() == "3.75"
    assert "2 decimal places" in steps[-1].explanation


def test_multiply_by_digit_reports_carries() -> None:
    assert multiply_by_digit("48", 7) == ("336", [(1, 5), (0, 3)])
    assert multiply_by_digit("05", 3) == ("15", [(1, 1)])


def test_add_digit_strings() -> None:
    assert add_digit_strings(["615", "4920"]) == "5535"
    assert add_digit_strings(["0", "0"]) == "0"
    assert add_digit_strings(["99", "99", "99"]) == "297"


def test_long_division_exact() -> None:
    steps = generate_steps("÷", 100, 4)

    assert_contiguous(steps)
    assert len(steps) == 4
    assert rows(steps[0]) == ["4)100"]
    assert steps[1].description == "Divide 10 by 4"
    assert rows(steps[1]) == ["   2 ", "4)100", "  10 ", "  -8 ", "   2 "]
    assert steps[2].explanation == "20 ÷ 4 = 5 remainder 0."
    assert rows(steps[2])[0] == "   25"

    final = steps[-1]
    assert final.result == 25
    assert final.explanation == "The final answer is 25."
    assert rows(final) == ["   25", "4)100"]


def test_long_division_brings_down_decimal_places() -> None:
    steps = generate_steps("/", 10, 4)

    assert rows(steps[-1]) == ["   2.50", "4)10.00"]
    assert steps[-1].result == 2.5
    assert steps[2].description == "Bring down 0 and divide 20 by 4"


def test_long_division_rounds_and_reports_remainder() -> None:
    steps = generate_steps("÷", 7, 3)

    final = steps[-1]
    assert final.result == 2.33
    assert rows(final) == ["  2.333", "3)7.000"]
    assert final.explanation == (
        "7 ÷ 3 = 2.333 with remainder 0.001. "
        "Rounded to 2 decimal places, the final answer is 2.33."
    )
    assert Decimal("2.333") * 3 + Decimal("0.001") == 7


def test_long_division_rounds_up_from_guard_digit() -> None:
    steps = generate_steps("÷", 1, 8)

    final = steps[-1]
    assert final.result == 0.13
    assert rows(final) == ["  0.125", "8)1.000"]
    assert final.explanation == "1 ÷ 8 = 0.125. Rounded to 2 decimal places, the final answer is 0.13."
    assert Decimal("0.125") * 8 == 1


def test_long_division_brings_down_every_dividend_digit() -> None:
    steps = generate_steps("÷", 1.005, 1)

    final = steps[-1]
    assert rows(final) == ["  1.005", "1)1.005"]
    assert final.result == 1.01
    assert final.explanation == "1.005 ÷ 1 = 1.005. Rounded to 2 decimal places, the final answer is 1.01."


def test_long_division_remainder_uses_place_value_of_scaled_divisor() -> None:
    steps = generate_steps("÷", 1, 0.3)

    assert rows(steps[1]) == ["3)10"]
    final = steps[-1]
    assert final.result == 3.33
    assert final.explanation == (
        "1 ÷ 0.3 = 3.333 with remainder 0.0001. "
        "Rounded to 2 decimal places, the final answer is 3.33."
    )
    assert Decimal("3.333") * Decimal("0.3") + Decimal("0.0001") == 1


def test_long_division_of_very_large_dividend_is_exact() -> None:
    steps = generate_steps("÷", 10**30, 1)

    assert steps[-1].result == 10**30
    assert steps[-1].explanation == f"The final answer is {10**30}."


@pytest.mark.parametrize(("left", "right"), [(100, 4), (7, 3), (1, 8), (250, 7), (0, 5), (9, 9)])
def test_long_division_quotient_times_divisor_is_close_to_dividend(left: int, right: int) -> None:
    quotient = generate_steps("÷", left, right)[-1].result

    assert abs(quotient * right - left) <= 0.005 * right + 1e-9


def test_long_division_makes_divisor_whole() -> None:
    steps = generate_steps("÷", 1.5, 0.5)

    assert steps[1].description == "Make the divisor a whole number"
    assert rows(steps[1]) == ["5)15"]
    assert steps[-1].result == 3


def test_long_division_skips_steps_for_placeholder_digits() -> None:
    steps = generate_steps("÷", 100, 4)

    assert not any(step.description == "Divide 1 by 4" for step in steps)


def test_percentage_has_two_steps() -> None:
    steps = generate_steps("%", 200, 15)

    assert_contiguous(steps)
    assert len(steps) == 2
    assert steps[0].explanation == "Convert 15% to decimal: 15% = 0.15"
    assert rows(steps[0]) == [" 200 × 15%", "200 × 0.15", "        30"]
    assert steps[1].explanation == "200 × 0.15 = 30"
    assert steps[1].result == 30


def test_unary_minus_has_one_step() -> None:
    steps = generate_steps("-", 5)

    assert len(steps) == 1
    step = steps[0]
    assert step.operation is Operation.unary
    assert step.result == -5
    assert step.operands.right is None
    assert rows(step) == ["-5", "-5"]
    assert step.explanation == "The negative of 5 is -5."


def test_unary_minus_of_negative_value() -> None:
    step = generate_steps("-", -3)[0]

    assert step.result == 3
    assert rows(step) == ["-(-3)", "    3"]


@pytest.mark.parametrize(
    ("symbol", "left", "right"),
    [
        ("^", 1, 2),
        ("+", 1, None),
        ("÷", 5, 0),
        ("+", -1, 2),
        ("×", 2, -3),
        ("+", math.nan, 1),
        ("%", math.inf, 1),
        (Operation.unary, 1, 2),
    ],
)
def test_invalid_preconditions_raise(symbol, left, right) -> None:
    with pytest.raises(StepGenerationError):
        generate_steps(symbol, left, right)


def test_generation_is_deterministic() -> None:
    generator = StepGenerator()

    for symbol, left, right in [("+", 48, 27), ("-", 502, 398), ("×", 123, 45), ("÷", 7, 3), ("%", 80, 25)]:
        assert generator.generate(symbol, left, right) == generator.generate(symbol, left, right)


def test_steps_share_operation_and_operands() -> None:
    steps = generate_steps("×", 123, 45)

    assert {step.operation for step in steps} == {Operation.multiplication}
    assert {(step.operands.left, step.operands.right) for step in steps} == {(123, 45)}
