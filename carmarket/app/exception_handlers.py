"""Maps marketplace errors onto JSON responses of the form
``{"detail": ..., "code": ...}`` plus any error-specific fields."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .errors import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    MarketplaceError,
    NotFoundError,
    StatusTransitionError,
    StorageError,
    SubmissionError,
    WizardValidationError,
)

logger = logging.getLogger(__name__)


ERROR_STATUS: dict[type[MarketplaceError], int] = {
    ConfigurationError: status.HTTP_503_SERVICE_UNAVAILABLE,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    AuthorizationError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    WizardValidationError: 422,
    StatusTransitionError: status.HTTP_409_CONFLICT,
    StorageError: status.HTTP_502_BAD_GATEWAY,
    SubmissionError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(exc: MarketplaceError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return status.HTTP_400_BAD_REQUEST


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error("request_failed path=%s code=%s detail=%s", request.url.path, exc.code, exc.message)
    else:
        logger.info("request_rejected path=%s code=%s detail=%s", request.url.path, exc.code, exc.message)
    body = {"detail": exc.message, "code": exc.code}
    body.update({k: v for k, v in exc.details.items() if v is not None})
    return JSONResponse(status_code=code, content=body)


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MarketplaceError, marketplace_error_handler)
