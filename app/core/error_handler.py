"""
Global exception handler.
HTTPExceptions raised by services are rendered by FastAPI itself; anything
else reaching this handler is a bug and is logged with its traceback.
"""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "detail": "Internal server error"},
    )
