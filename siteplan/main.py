"""FastAPI application entrypoint."""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from siteplan.api.router import api_router
from siteplan.core.config import get_settings
from siteplan.core.errors import STATUS_BY_KIND
from siteplan.core.logging import configure_logging, get_logger
from siteplan.scheduling.errors import SchedulingError

logger = get_logger(__name__)


async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    logger.warning("scheduling_error_unhandled", path=request.url.path, **exc.to_detail())
    return JSONResponse(status_code=STATUS_BY_KIND[exc.kind], content={"detail": exc.to_detail()})


def create_app() -> FastAPI:
    """Create the application with logging, CORS, engine error mapping and the versioned API router."""

    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(SchedulingError, scheduling_error_handler)

    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/", tags=["system"])
    def root() -> dict[str, str]:
        return {"service": settings.app_name, "status": "running"}

    logger.info("app_created", env=settings.app_env, api_prefix=settings.api_prefix)
    return app


app = create_app()
