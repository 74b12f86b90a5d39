"""
Result types & failure taxonomy.

Core services return an `Outcome` for every *expected* condition (wrong
password, locked account, expired session, reused password ...).
Exceptions are reserved for programmer errors (`ConfigurationError`)
and unexpected store failures, which propagate untouched.

The HTTP layer owns the mapping from `ErrorCode` to status codes; nothing
in here knows about transport.
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


class ConfigurationError(RuntimeError):
    """Required configuration is missing or unusable."""


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"


class ErrorCode(str, enum.Enum):
    # ── Token / session validation ───────────────────────────────────
    NO_TOKEN = "NO_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_PAYLOAD = "INVALID_PAYLOAD"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    ACCOUNT_DELETED = "ACCOUNT_DELETED"
    ACCOUNT_NOT_APPROVED = "ACCOUNT_NOT_APPROVED"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    INSUFFICIENT_PRIVILEGES = "INSUFFICIENT_PRIVILEGES"

    # ── Credentials ──────────────────────────────────────────────────
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INCORRECT_PASSWORD = "INCORRECT_PASSWORD"
    INVALID_RESET_CODE = "INVALID_RESET_CODE"

    # ── Input / policy ───────────────────────────────────────────────
    VALIDATION_ERROR = "VALIDATION_ERROR"
    PASSWORD_REUSED = "PASSWORD_REUSED"
    INVALID_STATE = "INVALID_STATE"
    CANNOT_MODIFY_PRINCIPAL = "CANNOT_MODIFY_PRINCIPAL"
    CANNOT_TARGET_SELF = "CANNOT_TARGET_SELF"

    # ── Lookup ───────────────────────────────────────────────────────
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"

    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"


_KIND_BY_CODE: dict[ErrorCode, ErrorKind] = {
    ErrorCode.NO_TOKEN: ErrorKind.AUTHENTICATION,
    ErrorCode.TOKEN_EXPIRED: ErrorKind.AUTHENTICATION,
    ErrorCode.INVALID_TOKEN: ErrorKind.AUTHENTICATION,
    ErrorCode.INVALID_PAYLOAD: ErrorKind.AUTHENTICATION,
    ErrorCode.USER_NOT_FOUND: ErrorKind.AUTHENTICATION,
    ErrorCode.SESSION_EXPIRED: ErrorKind.AUTHENTICATION,
    ErrorCode.INVALID_CREDENTIALS: ErrorKind.AUTHENTICATION,
    ErrorCode.ACCOUNT_DELETED: ErrorKind.AUTHORIZATION,
    ErrorCode.ACCOUNT_NOT_APPROVED: ErrorKind.AUTHORIZATION,
    ErrorCode.ACCOUNT_LOCKED: ErrorKind.AUTHORIZATION,
    ErrorCode.INSUFFICIENT_PRIVILEGES: ErrorKind.AUTHORIZATION,
    ErrorCode.CANNOT_MODIFY_PRINCIPAL: ErrorKind.AUTHORIZATION,
    ErrorCode.CANNOT_TARGET_SELF: ErrorKind.AUTHORIZATION,
    ErrorCode.VALIDATION_ERROR: ErrorKind.VALIDATION,
    ErrorCode.INCORRECT_PASSWORD: ErrorKind.VALIDATION,
    ErrorCode.INVALID_RESET_CODE: ErrorKind.VALIDATION,
    ErrorCode.PASSWORD_REUSED: ErrorKind.CONFLICT,
    ErrorCode.INVALID_STATE: ErrorKind.CONFLICT,
    ErrorCode.ACCOUNT_NOT_FOUND: ErrorKind.NOT_FOUND,
    ErrorCode.SESSION_NOT_FOUND: ErrorKind.NOT_FOUND,
    ErrorCode.RATE_LIMIT_EXCEEDED: ErrorKind.RATE_LIMITED,
}


@dataclass(frozen=True)
class Failure:
    code: ErrorCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> ErrorKind:
        return _KIND_BY_CODE[self.code]

    @property
    def ok(self) -> bool:
        return False


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


Outcome = Union[Success[T], Failure]
