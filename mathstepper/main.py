from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mathstepper.api.routes import parse, steps
from mathstepper.core.config import get_settings
from mathstepper.core.exceptions import register_exception_handlers
from mathstepper.core.logging import configure_logging
from mathstepper.core.middleware import RequestIdMiddleware


def create_app() -> FastAPI:
    """
    Application factory for the math stepper service.
    Exposes expression parsing and written-method step generation over HTTP.
    """

    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.api_title,
        description="Arithmetic parsing and step-by-step working for the math stepper.",
        version=settings.api_version,
    )

    cors_origins = settings.resolved_cors_origins
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_exception_handlers(app)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(parse.router)
    app.include_router(steps.router)

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
