from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Protocol

import jwt
from passlib.context import CryptContext


_pwd = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
_JWT_ALG = "HS256"


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("password_blank")
    return _pwd.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return _pwd.verify(password, password_hash)
    except Exception:
        # Malformed/unknown hash format counts as a failed verification.
        return False


class TokenError(Exception):
    """Raised when a session token is missing, malformed, expired or tampered with."""


@dataclass(frozen=True)
class SessionClaims:
    """Identity embedded in a session token."""

    id: int
    name: str
    email: str

    def as_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "email": self.email}


class TokenIssuer(Protocol):
    def issue(self, claims: SessionClaims) -> str:
        ...


class TokenVerifier(Protocol):
    def verify(self, token: str) -> SessionClaims:
        ...


class JWTSessionTokens:
    """HS256 JWT implementation of both TokenIssuer and TokenVerifier."""

    def __init__(self, *, secret: str, expires_minutes: int):
        if not secret:
            raise ValueError("jwt_secret_blank")
        self._secret = secret
        self._expires_minutes = max(1, int(expires_minutes))

    def issue(self, claims: SessionClaims) -> str:
        now = datetime.now(timezone.utc)
        exp = now + timedelta(minutes=self._expires_minutes)
        payload: Dict[str, Any] = {
            **claims.as_dict(),
            "iat": int(now.timestamp()),
            "exp": int(exp.timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=_JWT_ALG)

    def verify(self, token: str) -> SessionClaims:
        if not token:
            raise TokenError("token_blank")
        try:
            payload = jwt.decode(token, self._secret, algorithms=[_JWT_ALG])
        except jwt.ExpiredSignatureError as e:
            raise TokenError("token_expired") from e
        except jwt.InvalidTokenError as e:
            raise TokenError("token_invalid") from e

        try:
            return SessionClaims(
                id=int(payload["id"]),
                name=str(payload["name"]),
                email=str(payload["email"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise TokenError("token_claims_invalid") from e
