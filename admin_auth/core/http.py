"""
Outcome -> HTTP mapping.

Services return `Failure` values; controllers hand them to
`raise_for_failure` (or `unwrap`) which raises an HTTPException carrying
`{"code": ..., "message": ...}` plus any structured details.  Request
body validation errors are rendered in the same shape.
"""

import logging
from typing import NoReturn, TypeVar

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from admin_auth.core.errors import ErrorCode, ErrorKind, Failure, Outcome

logger = logging.getLogger(__name__)

T = TypeVar("T")

_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.AUTHENTICATION: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.AUTHORIZATION: status.HTTP_403_FORBIDDEN,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
}

_STATUS_OVERRIDES: dict[ErrorCode, int] = {
    ErrorCode.ACCOUNT_LOCKED: status.HTTP_423_LOCKED,
    # policy violations the caller fixes by choosing another password
    ErrorCode.PASSWORD_REUSED: status.HTTP_400_BAD_REQUEST,
}


def status_for(failure: Failure) -> int:
    return _STATUS_OVERRIDES.get(failure.code, _STATUS_BY_KIND[failure.kind])


def raise_for_failure(failure: Failure) -> NoReturn:
    detail = {"code": failure.code.value, "message": failure.message}
    detail.update(failure.details)
    headers = None
    if failure.kind is ErrorKind.AUTHENTICATION:
        headers = {"WWW-Authenticate": "Bearer"}
    raise HTTPException(status_code=status_for(failure), detail=detail, headers=headers)


def unwrap(outcome: Outcome[T]) -> T:
    if not outcome.ok:
        raise_for_failure(outcome)
    return outcome.value


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed input -> 400 VALIDATION_ERROR, in the same shape as every other failure."""
    logger.info("Validation error on %s", request.url.path)
    failure = Failure(ErrorCode.VALIDATION_ERROR, "Invalid request payload")
    return JSONResponse(
        status_code=status_for(failure),
        content={
            "detail": {
                "code": failure.code.value,
                "message": failure.message,
                "errors": [
                    {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", "")}
                    for error in exc.errors()
                ],
            }
        },
    )
