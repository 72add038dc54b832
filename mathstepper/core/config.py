from functools import lru_cache
from typing import List, Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    api_title: str = "Math Stepper API"
    api_version: str = "0.1.0"
    log_level: str = "INFO"

    max_expression_length: int = Field(default=200, ge=1)
    result_decimal_places: int = Field(default=2, ge=0)

    parser_mode: Literal["local", "http"] = "local"
    parser_http_base_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("PARSER_HTTP_BASE_URL", "parser_http_base_url"),
    )
    parser_http_timeout_sec: float = 5.0

    cors_origins: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]
    )
    frontend_origin: str | None = Field(
        default=None,
        validation_alias=AliasChoices("FRONTEND_ORIGIN", "frontend_origin"),
    )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def resolved_cors_origins(self) -> List[str]:
        """Configured CORS origins plus the frontend origin, trailing slashes stripped, deduped."""
        candidates = [*self.cors_origins, self.frontend_origin]
        cleaned = [origin.rstrip("/") for origin in candidates if origin]
        return list(dict.fromkeys(cleaned))


@lru_cache
def get_settings() -> AppSettings:
    return AppSettings()
