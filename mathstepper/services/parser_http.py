from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from mathstepper.core.config import get_settings
from mathstepper.core.exceptions import AppError
from mathstepper.models.expression import ParsedExpression
from mathstepper.services.errors import EmptyExpression

logger = logging.getLogger("mathstepper.parser_http")


class ExpressionParserHttpError(AppError):
    status_code = 502
    error_type = "PARSER_HTTP_ERROR"


@dataclass
class ExpressionParserHttpService:
    """Delegates parsing to a remote stepper deployment exposing ``GET /parse``."""

    base_url: str
    timeout: float = 5.0

    @classmethod
    def from_settings(cls) -> "ExpressionParserHttpService":
        settings = get_settings()
        if not settings.parser_http_base_url:
            raise ExpressionParserHttpError("PARSER_HTTP_BASE_URL is not configured.")
        return cls(
            base_url=settings.parser_http_base_url.rstrip("/"),
            timeout=float(settings.parser_http_timeout_sec),
        )

    def parse(self, expression: str) -> ParsedExpression:
        query = expression.strip()
        if not query:
            error = EmptyExpression()
            return ParsedExpression(isValid=False, error=error.message, errorType=error.error_type)

        url = f"{self.base_url}/parse"
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.get(url, params={"query": query})
        except httpx.RequestError as exc:
            logger.warning("parser_http.unavailable", extra={"url": url})
            raise ExpressionParserHttpError("Parser service is unavailable.") from exc

        if response.status_code != 200:
            message = "Parser request failed."
            try:
                payload = response.json()
            except ValueError:
                payload = None
            if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
                message = payload["error"].get("message", message)
            raise ExpressionParserHttpError(message, details={"status": response.status_code})

        try:
            return ParsedExpression.model_validate(response.json())
        except ValueError as exc:
            raise ExpressionParserHttpError("Parser response was not a valid parse result.") from exc
