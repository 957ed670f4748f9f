from __future__ import annotations

from blog_platform.db import connect, integrity_errors
from blog_platform.result import ErrorKind, ServiceResult, service_operation

from .crud import get_user_by_email, insert_user, normalize_email, public_user
from .security import SessionClaims, TokenIssuer, hash_password, verify_password


# One message for both unknown email and wrong password.
INVALID_CREDENTIALS_MESSAGE = "Email or Password is incorrect"
EMAIL_TAKEN_MESSAGE = "Email already registered"


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


class IdentityService:
    """Registration and login.

    Login returns the signed token inside the result; how it reaches the client
    (cookie and/or response body) is decided by the API layer.
    """

    def __init__(self, *, db_dsn: str, tokens: TokenIssuer):
        self._db_dsn = db_dsn
        self._tokens = tokens

    @service_operation("auth")
    def register(self, *, name: str, email: str, password: str) -> ServiceResult:
        e = normalize_email(email)
        try:
            with connect(self._db_dsn) as conn:
                if get_user_by_email(conn, e) is not None:
                    return ServiceResult.fail(ErrorKind.CONFLICT, EMAIL_TAKEN_MESSAGE)

                row = insert_user(conn, name=name.strip(), email=e, password_hash=hash_password(password))
        except integrity_errors():
            # A concurrent registration took the email between the lookup and the insert.
            return ServiceResult.fail(ErrorKind.CONFLICT, EMAIL_TAKEN_MESSAGE)

        user = public_user(row)
        _debug(f"registered user id={user['id']}")
        return ServiceResult.ok("Register success", user)

    @service_operation("auth")
    def login(self, *, email: str, password: str) -> ServiceResult:
        with connect(self._db_dsn) as conn:
            row = get_user_by_email(conn, email)

        if row is None or not verify_password(password, str(row["password"])):
            return ServiceResult.fail(ErrorKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)

        user = public_user(row)
        token = self._tokens.issue(SessionClaims(id=user["id"], name=user["name"], email=user["email"]))
        return ServiceResult.ok("Login success", user, token_type="bearer", access_token=token)
