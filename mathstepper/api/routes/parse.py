from typing import Protocol

from fastapi import APIRouter, Query

from mathstepper.core.config import get_settings
from mathstepper.models.expression import ExtractionResponse, ParsedExpression
from mathstepper.services.parser import ExpressionParser, extract_expression_from_text
from mathstepper.services.parser_http import ExpressionParserHttpService

router = APIRouter(tags=["parse"])


class SupportsParse(Protocol):
    def parse(self, expression: str) -> ParsedExpression:
        ...


def get_expression_parser() -> SupportsParse:
    settings = get_settings()
    if settings.parser_mode == "http":
        return ExpressionParserHttpService.from_settings()
    return ExpressionParser()


@router.get("/parse", response_model=ParsedExpression, response_model_exclude_none=True)
async def parse_expression(
    query: str = Query(..., description="Arithmetic expression to parse and evaluate."),
) -> ParsedExpression:
    # Always answered locally; remote deployments call this endpoint themselves.
    return ExpressionParser().parse(query)


@router.get("/extract", response_model=ExtractionResponse)
async def extract_expression(
    text: str = Query(..., description="Text that may contain an arithmetic expression."),
) -> ExtractionResponse:
    return ExtractionResponse(text=text, expression=extract_expression_from_text(text))
