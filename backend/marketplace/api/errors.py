"""
Translate domain exceptions into HTTP responses.

SlotConflictError is the one callers are expected to act on ("pick another
slot"); everything else goes down the generic validation/error path.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from marketplace.core.exceptions import (
    ConflictError,
    DomainError,
    NotFoundError,
    SlotConflictError,
)
from marketplace.core.logging import get_logger

logger = get_logger(__name__)


def status_code_for(exc: DomainError) -> int:
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, ConflictError):
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status_code = status_code_for(exc)
    logger.info("domain_error", code=exc.code, status_code=status_code, message=exc.message)
    body = {"detail": exc.message, "code": exc.code, **exc.details}
    if isinstance(exc, SlotConflictError):
        body["retryable"] = True
    return JSONResponse(status_code=status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
