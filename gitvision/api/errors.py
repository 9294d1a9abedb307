"""Unified error handling: ServiceError, GitHubError, StoreError and RequestValidationError to JSON."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from gitvision.core.store import StoreError
from gitvision.engines.github.errors import (
    AuthError,
    GitHubError,
    MissingCredentialError,
    NotFoundError as GitHubNotFoundError,
    RateLimitError,
)
from gitvision.services import NotFoundError, ServiceError, ValidationError

_STATUS_MAP: dict[type[Exception], int] = {
    NotFoundError: 404,
    ValidationError: 422,
    MissingCredentialError: 401,
    AuthError: 401,
    GitHubNotFoundError: 404,
    RateLimitError: 429,
    GitHubError: 502,
    StoreError: 503,
}


def status_for(exc: Exception) -> int:
    for cls in type(exc).__mro__:
        if cls in _STATUS_MAP:
            return _STATUS_MAP[cls]
    return 500


async def _domain_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_for(exc), content={"detail": str(exc)})


async def _validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    messages = []
    for err in errors:
        loc = " → ".join(str(part) for part in err["loc"])
        messages.append(f"{loc}: {err['msg']}")
    return JSONResponse(
        status_code=422,
        content={"detail": "; ".join(messages)},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register exception handlers on the app."""
    app.add_exception_handler(ServiceError, _domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(GitHubError, _domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StoreError, _domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
