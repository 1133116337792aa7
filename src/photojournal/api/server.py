"""FastAPI server wiring for photojournal."""

import time
from collections.abc import Awaitable, Callable

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from photojournal import __version__
from photojournal.api.errors import register_exception_handlers
from photojournal.api.routes import health, images
from photojournal.config import get_api_host, get_api_port, get_cors_origins
from photojournal.logging_config import configure_structured_logging, get_logger
from photojournal.services.auth import CloudIAPAuthService, get_auth_service
from photojournal.services.storage import StorageGateway, get_storage_gateway

logger = get_logger(__name__)


def register_routes(app: FastAPI) -> None:
    app.include_router(images.router)
    app.include_router(health.router)


def create_app(
    gateway: StorageGateway | None = None,
    auth_service: CloudIAPAuthService | None = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        gateway: Storage gateway to serve; defaults to the configured global one
        auth_service: Identity resolver; defaults to the configured global one
    """
    app = FastAPI(title="photojournal API", version=__version__)
    app.state.gateway = gateway or get_storage_gateway()
    app.state.auth_service = auth_service or get_auth_service()

    register_exception_handlers(app)
    register_routes(app)

    cors_origins = get_cors_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials="*" not in cors_origins,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def _log_requests(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "api_request",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return response

    return app


def main() -> None:
    """Run the API with uvicorn."""
    configure_structured_logging()
    host, port = get_api_host(), get_api_port()
    logger.info("api_server_starting", host=host, port=port)
    uvicorn.run(create_app(), host=host, port=port, access_log=False)


if __name__ == "__main__":
    main()
