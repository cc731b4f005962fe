"""FastAPI application exposing pools and quotes.

The app serves a read-only view of one deployment; throttling belongs to
whatever proxy sits in front of it.
"""

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cpamm import __version__
from cpamm.api.endpoints import router
from cpamm.config import configure_logging, load_settings
from cpamm.errors import AMMError
from cpamm.models.api import ErrorResponse
from cpamm.safe_int import SafeIntError

logger = structlog.get_logger()

# Maximum request body size (1 MB)
MAX_REQUEST_SIZE = 1024 * 1024

app = FastAPI(
    title="CPAMM",
    description="Constant-product exchange engine: pools, quotes and pool addressing",
    version=__version__,
)


@app.middleware("http")
async def limit_request_size(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Answer 413 before reading a body that declares itself over the limit."""
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > MAX_REQUEST_SIZE:
        return JSONResponse(status_code=413, content={"detail": "Request too large"})
    return await call_next(request)


@app.exception_handler(AMMError)
async def engine_error_handler(request: Request, exc: AMMError) -> JSONResponse:
    """Engine rejections are client errors: report the stable code."""
    logger.info("request_rejected", path=request.url.path, code=exc.code, message=str(exc))
    body = ErrorResponse(code=exc.code, message=str(exc))
    return JSONResponse(status_code=422, content=body.model_dump())


@app.exception_handler(SafeIntError)
async def arithmetic_error_handler(request: Request, exc: SafeIntError) -> JSONResponse:
    """Amounts that overflow uint256 arithmetic are rejected like engine errors."""
    logger.info("request_rejected", path=request.url.path, code="ARITHMETIC", message=str(exc))
    body = ErrorResponse(code="ARITHMETIC", message=str(exc))
    return JSONResponse(status_code=422, content=body.model_dump())


app.include_router(router)


@app.get("/health")
async def health() -> dict[str, object]:
    """Liveness check reporting the package version."""
    return {"status": "ok", "version": __version__}


def run() -> None:
    """Serve the API with uvicorn.

    Settings come from the environment:
    - CPAMM_HOST: Host to bind to (default: 0.0.0.0)
    - CPAMM_PORT: Port to bind to (default: 8000)
    - CPAMM_DEBUG: Enable debug/reload mode (default: false)
    - CPAMM_LOG_LEVEL: Minimum log level (default: INFO)
    - CPAMM_GENESIS_FILE: JSON genesis to seed the served exchange (default: none)
    """
    settings = load_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        "cpamm.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
