"""FastAPI application for the payment router."""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from payroute import __version__
from payroute.api.deps import build_container
from payroute.api.endpoints import router
from payroute.errors import PayRouteError

logger = structlog.get_logger()

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("PAYROUTE_HOST", "0.0.0.0")
PORT = int(os.environ.get("PAYROUTE_PORT", "8000"))
DEBUG = os.environ.get("PAYROUTE_DEBUG", "false").lower() in ("true", "1", "yes")

# Maximum request body size (1 MB)
MAX_REQUEST_SIZE = 1024 * 1024


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the shared container on startup and release it on shutdown."""
    container = build_container()
    app.state.container = container
    logger.info("payroute_started", default_chain=container.settings.default_chain)
    if not container.settings.hook_routers:
        logger.warning("hook_routes_disabled", reason="PAYROUTE_HOOK_ROUTERS is empty")
    try:
        yield
    finally:
        await container.aclose()


app = FastAPI(
    title="PayRoute",
    description=(
        "Payment routing agent: chat in, ranked routes and unsigned transactions out. "
        "Same-chain hook routes are off until PAYROUTE_HOOK_ROUTERS names a router per chain."
    ),
    version=__version__,
    lifespan=lifespan,
)


@app.exception_handler(PayRouteError)
async def payroute_error_handler(request: Request, exc: PayRouteError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Schema errors use the same {error} envelope with status 400."""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid request: {field} {first.get('msg', '')}".strip()
    return JSONResponse(status_code=400, content={"error": message})


@app.middleware("http")
async def limit_request_size(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Reject requests with body larger than MAX_REQUEST_SIZE."""
    content_length = request.headers.get("content-length")
    if content_length and int(content_length) > MAX_REQUEST_SIZE:
        return JSONResponse(status_code=413, content={"error": "Request too large"})
    return await call_next(request)


app.include_router(router)


@app.get("/health")
async def health() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


def run() -> None:
    """Run the payment router API server.

    Configuration via environment variables:
    - PAYROUTE_HOST: Host to bind to (default: 0.0.0.0)
    - PAYROUTE_PORT: Port to bind to (default: 8000)
    - PAYROUTE_DEBUG: Enable debug/reload mode (default: false)
    """
    uvicorn.run(
        "payroute.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
