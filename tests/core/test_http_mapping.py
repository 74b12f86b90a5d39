import pytest
from fastapi import HTTPException

from admin_auth.core.errors import ErrorCode, ErrorKind, Failure, Success
from admin_auth.core.http import raise_for_failure, status_for, unwrap


@pytest.mark.parametrize(
    "code, status",
    [
        (ErrorCode.INVALID_CREDENTIALS, 401),
        (ErrorCode.TOKEN_EXPIRED, 401),
        (ErrorCode.SESSION_EXPIRED, 401),
        (ErrorCode.ACCOUNT_NOT_APPROVED, 403),
        (ErrorCode.INSUFFICIENT_PRIVILEGES, 403),
        (ErrorCode.ACCOUNT_LOCKED, 423),
        (ErrorCode.ACCOUNT_NOT_FOUND, 404),
        (ErrorCode.INVALID_STATE, 409),
        (ErrorCode.PASSWORD_REUSED, 400),
        (ErrorCode.INVALID_RESET_CODE, 400),
        (ErrorCode.RATE_LIMIT_EXCEEDED, 429),
    ],
)
def test_status_for(code, status):
    assert status_for(Failure(code, "x")) == status


def test_every_code_has_a_kind():
    for code in ErrorCode:
        assert isinstance(Failure(code, "x").kind, ErrorKind)


def test_raise_for_failure_carries_code_and_details():
    failure = Failure(ErrorCode.ACCOUNT_LOCKED, "Locked", {"lockout_remaining_minutes": 4})
    with pytest.raises(HTTPException) as exc_info:
        raise_for_failure(failure)
    assert exc_info.value.status_code == 423
    assert exc_info.value.detail == {
        "code": "ACCOUNT_LOCKED",
        "message": "Locked",
        "lockout_remaining_minutes": 4,
    }
    assert exc_info.value.headers is None


def test_authentication_failures_advertise_bearer():
    with pytest.raises(HTTPException) as exc_info:
        raise_for_failure(Failure(ErrorCode.INVALID_TOKEN, "Invalid token"))
    assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}


def test_unwrap():
    assert unwrap(Success(7)) == 7
    with pytest.raises(HTTPException):
        unwrap(Failure(ErrorCode.SESSION_NOT_FOUND, "gone"))
