"""Exception handlers for the Commerce API.

Protean's handlers map domain exceptions (400/404/409/422). Upstream
failures become 503 and a version conflict that outlasted its retries
becomes 409, so the caller, a payment webhook included, retries.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError
from protean.integrations.fastapi import register_exception_handlers

from commerce.errors import UpstreamError

logger = structlog.get_logger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)

    @app.exception_handler(UpstreamError)
    async def upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
        logger.warning("Upstream service failed", service=exc.service, path=request.url.path, error=str(exc))
        return JSONResponse(status_code=503, content={"error": str(exc)})

    @app.exception_handler(ExpectedVersionError)
    async def version_conflict_handler(request: Request, exc: ExpectedVersionError) -> JSONResponse:
        logger.warning("Write contention outlasted retries", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=409, content={"error": "Concurrent update, retry the request"})
