import logging

from fastapi import APIRouter, Depends, Query

from mathstepper.api.routes.parse import SupportsParse, get_expression_parser
from mathstepper.models.steps import StepRequest, StepsResponse
from mathstepper.services.errors import ExpressionError, StepGenerationError
from mathstepper.services.steps import StepGenerator

router = APIRouter(prefix="/steps", tags=["steps"])

logger = logging.getLogger("mathstepper.api.steps")


def get_step_generator() -> StepGenerator:
    return StepGenerator()


@router.post("", response_model=StepsResponse, response_model_exclude_none=True)
async def generate_operation_steps(
    request: StepRequest,
    generator: StepGenerator = Depends(get_step_generator),
) -> StepsResponse:
    try:
        steps = generator.generate(request.operation, request.left, request.right)
    except StepGenerationError as exc:
        logger.error(
            "steps.rejected",
            extra={"operation": request.operation, "error_message": exc.message},
        )
        raise
    return StepsResponse(steps=steps)


@router.get("", response_model=StepsResponse, response_model_exclude_none=True)
async def generate_expression_steps(
    query: str = Query(..., description="Single-operation expression to break into steps."),
    parser: SupportsParse = Depends(get_expression_parser),
    generator: StepGenerator = Depends(get_step_generator),
) -> StepsResponse:
    parsed = parser.parse(query)
    if not parsed.isValid:
        error = ExpressionError(parsed.error or "Invalid expression")
        if parsed.errorType:
            error.error_type = parsed.errorType
        raise error
    return StepsResponse(expression=query, steps=generator.for_expression(parsed))
