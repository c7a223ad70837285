"""
FastAPI application entry point for the storage service.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from vault.config import get_settings
from vault.errors import ErrorKind
from vault.results import OperationResult
from vault.routes import STATUS_BY_ERROR, router

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "Missing or invalid required fields."


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies get the same result shape as every operation."""
    fields = [".".join(str(part) for part in err["loc"]) for err in exc.errors()]
    logger.info("Rejected %s %s: %s", request.method, request.url.path, fields)
    message = MISSING_FIELDS_MESSAGE
    if fields:
        message += f" ({', '.join(fields)})"
    result = OperationResult.fail(ErrorKind.VALIDATION, message)
    return JSONResponse(
        status_code=STATUS_BY_ERROR[ErrorKind.VALIDATION], content=result.as_dict()
    )


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    app = FastAPI(title="Pocket Vault", version="0.1.0")
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
