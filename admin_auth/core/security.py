"""
Password hashing & JWT helpers.

- Passwords are hashed with bcrypt directly (passlib is unmaintained
  and broken with bcrypt>=4.1).
- JWTs carry the account id (`sub`), the session id (`sid`) and role.
  The token alone never authorizes a request: the auth engine re-checks
  the embedded session against the account on every call.
- `TokenService` is constructed from settings at startup; there is no
  module-level secret.
"""

import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from fastapi import Request
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError, jwt

from admin_auth.core.config import Settings, settings
from admin_auth.core.errors import ConfigurationError, ErrorCode, Failure, Outcome, Success

# ── Password hashing ────────────────────────────────────────────────


def hash_password(plain: str, rounds: int | None = None) -> str:
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """bcrypt comparison; any malformed input is a mismatch, never an error."""
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# ── Token hashing (for one-time reset codes) ────────────────────────


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def token_matches(token: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    return hmac.compare_digest(hash_token(token), hashed)


# ── JWT ──────────────────────────────────────────────────────────────
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/admin/login", auto_error=False)


def extract_token(request: Request, cookie_name: str) -> str | None:
    """Cookie first, then the Authorization header (with or without `Bearer`)."""
    cookie_token = request.cookies.get(cookie_name)
    if cookie_token:
        return cookie_token

    header = request.headers.get("Authorization")
    if not header:
        return None
    header = header.strip()
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer":
        header = credentials.strip()
    return header or None


@dataclass(frozen=True)
class TokenClaims:
    account_id: str
    session_id: str | None
    role: str | None
    raw: dict[str, Any]


class TokenService:
    """Signs and verifies session-bound access tokens."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: int = 1440):
        if not secret_key:
            raise ConfigurationError("SECRET_KEY must be configured")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.expire_minutes = expire_minutes

    @classmethod
    def from_settings(cls, config: Settings) -> "TokenService":
        return cls(
            secret_key=config.SECRET_KEY,
            algorithm=config.JWT_ALGORITHM,
            expire_minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES,
        )

    def create_access_token(
        self,
        *,
        account_id: str,
        session_id: str,
        role: str,
        expires_delta: timedelta | None = None,
    ) -> str:
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self.expire_minutes))
        to_encode = {
            "sub": account_id,
            "sid": session_id,
            "role": role,
            "iat": now,
            "exp": expire,
        }
        return jwt.encode(to_encode, self._secret_key, algorithm=self._algorithm)

    def decode_access_token(self, token: str | None) -> Outcome[TokenClaims]:
        """Verify signature & expiry, distinguishing expired from malformed."""
        if not token:
            return Failure(ErrorCode.NO_TOKEN, "Authorization token required")
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except ExpiredSignatureError:
            return Failure(ErrorCode.TOKEN_EXPIRED, "Token expired")
        except JWTError:
            return Failure(ErrorCode.INVALID_TOKEN, "Invalid token")

        account_id = payload.get("sub")
        if not account_id or not isinstance(account_id, str):
            return Failure(ErrorCode.INVALID_PAYLOAD, "Invalid token payload")

        session_id = payload.get("sid")
        if session_id is not None and not isinstance(session_id, str):
            return Failure(ErrorCode.INVALID_PAYLOAD, "Invalid token payload")

        return Success(
            TokenClaims(
                account_id=account_id,
                session_id=session_id,
                role=payload.get("role"),
                raw=payload,
            )
        )
