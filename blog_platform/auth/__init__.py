"""Authentication helpers.

Auth is deliberately lightweight:

- Users table (name/email/password hash)
- Stateless JWT session tokens carrying {id, name, email}

The API accepts both:

- `Authorization: Bearer <token>` (scripts / API clients)
- An httpOnly `auth` cookie set by `/api/auth/login` (browsers)
"""

from .deps import get_session
from .security import JWTSessionTokens, SessionClaims, TokenError
from .service import IdentityService

__all__ = [
    "get_session",
    "IdentityService",
    "JWTSessionTokens",
    "SessionClaims",
    "TokenError",
]
