"""Service result type.

Every service operation returns a `ServiceResult`: either a success payload or a
tagged error. The API layer maps the tag to an HTTP status in one place.
"""

from __future__ import annotations

import functools
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, TypeVar


F = TypeVar("F", bound=Callable[..., Any])


class ErrorKind(str, Enum):
    VALIDATION = "validation_error"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_CREDENTIALS = "invalid_credentials"
    INTERNAL = "internal_error"


# NotFound is reported as 400 (not 404) to keep the API's established contract.
HTTP_STATUS: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.NOT_FOUND: 400,
    ErrorKind.CONFLICT: 400,
    ErrorKind.INVALID_CREDENTIALS: 400,
    ErrorKind.INTERNAL: 500,
}


@dataclass(frozen=True)
class ServiceResult:
    success: bool
    message: str
    data: Any = None
    error: ErrorKind | None = None
    # Extra top-level envelope keys (e.g. token_type/access_token on login).
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str, data: Any = None, **extra: Any) -> "ServiceResult":
        return cls(success=True, message=message, data=data, extra=extra)

    @classmethod
    def fail(cls, error: ErrorKind, message: str) -> "ServiceResult":
        return cls(success=False, message=message, error=error)

    @property
    def status_code(self) -> int:
        if self.success or self.error is None:
            return 200
        return HTTP_STATUS[self.error]

    def envelope(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.data is not None:
            body["data"] = self.data
        body.update(self.extra)
        return body


def service_operation(tag: str) -> Callable[[F], F]:
    """Catch unexpected exceptions at the boundary of a service operation.

    The trace is logged server-side and the caller gets an INTERNAL result.
    """

    def decorator(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> ServiceResult:
            try:
                return fn(*args, **kwargs)
            except Exception as e:
                print(f"[{tag}] {fn.__name__} failed: {e}\n{traceback.format_exc()}")
                return ServiceResult.fail(ErrorKind.INTERNAL, "Internal server error")

        return wrapper  # type: ignore[return-value]

    return decorator
