from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .security import SessionClaims, TokenError, TokenVerifier


_bearer = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def get_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> SessionClaims:
    """Authenticate a request and return the identity embedded in its token.

    Supports both:
      - Authorization: Bearer <jwt>
      - Cookie-based sessions (httpOnly cookie set by /api/auth/login)

    Sessions are stateless: a token is valid iff its signature verifies.
    """

    cfg = getattr(request.app.state, "cfg", None)
    verifier: TokenVerifier | None = getattr(request.app.state, "tokens", None)
    if cfg is None or verifier is None:
        raise HTTPException(status_code=500, detail="server_config_missing")

    token: str | None = None

    # Prefer Bearer token when explicitly provided.
    if credentials is not None and credentials.credentials:
        token = credentials.credentials

    if not token:
        token = request.cookies.get(cfg.AUTH_COOKIE_NAME)

    if not token:
        raise _unauthorized("missing_token")

    try:
        return verifier.verify(token)
    except TokenError as e:
        raise _unauthorized(str(e))
