# app/core/errors.py
"""
Typed failures for the onboarding/profile actions.

Services raise these internally; `returns_result` turns them into an
`ActionError` at the action boundary so routers (and other callers) only
ever branch on a discriminated result. Anything that is not an
`OnboardingError` is unexpected and propagates as-is.
"""
from functools import wraps
from typing import Any, Callable

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.schemas.results import ActionError, ErrorKind

STATUS_BY_KIND: dict[str, int] = {
    "unauthenticated": status.HTTP_401_UNAUTHORIZED,
    "role_forbidden": status.HTTP_403_FORBIDDEN,
    "not_found": status.HTTP_404_NOT_FOUND,
    "role_mismatch": status.HTTP_409_CONFLICT,
    "validation_failed": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "store_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}


class OnboardingError(Exception):
    kind: ErrorKind
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_result(self) -> ActionError:
        return ActionError(error=self.kind, message=self.message, details=self.details)


class UnauthenticatedError(OnboardingError):
    kind = "unauthenticated"
    default_message = "Authentication required"


class RoleMismatchError(OnboardingError):
    kind = "role_mismatch"

    def __init__(self, stored_role: str, expected_role: str):
        self.stored_role = stored_role
        self.expected_role = expected_role
        super().__init__(
            f"This account is already registered as a {stored_role}",
            details={"stored_role": stored_role, "expected_role": expected_role},
        )


class RoleForbiddenError(OnboardingError):
    kind = "role_forbidden"

    def __init__(self, role_kind: str, bound_role: str | None):
        self.role_kind = role_kind
        self.bound_role = bound_role
        super().__init__(
            f"Only {role_kind}s can manage {role_kind} profiles",
            details={"role_kind": role_kind, "bound_role": bound_role},
        )


class ValidationFailedError(OnboardingError):
    kind = "validation_failed"
    default_message = "Validation failed"

    @classmethod
    def from_pydantic(cls, exc: ValidationError) -> "ValidationFailedError":
        """
        Collapse pydantic errors into {"field.path": ["message", ...]}.
        Model-level errors are reported under "__root__".
        """
        details: dict[str, list[str]] = {}
        for err in exc.errors():
            key = ".".join(str(p) for p in err["loc"]) or "__root__"
            details.setdefault(key, []).append(err["msg"])
        return cls(details=details)


class StoreUnavailableError(OnboardingError):
    kind = "store_unavailable"
    default_message = "Profile store is unavailable, please try again later"


class NotFoundError(OnboardingError):
    kind = "not_found"
    default_message = "Profile not found"


def returns_result(func: Callable) -> Callable:
    """
    Decorator for service actions: return `OnboardingError`s as
    `ActionError` instead of raising them.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except OnboardingError as err:
            return err.to_result()

    return wrapper


def to_response(result: Any) -> Any:
    """
    Router helper: failures become a JSONResponse with the mapped status,
    successes are returned unchanged for FastAPI to serialize.
    """
    if isinstance(result, ActionError):
        return JSONResponse(
            status_code=STATUS_BY_KIND[result.error],
            content=result.model_dump(mode="json"),
        )
    return result


# OpenAPI: failure bodies share one schema; status codes follow the kind.
ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    code: {"model": ActionError} for code in sorted(set(STATUS_BY_KIND.values()))
}
