"""Typed errors shared by every service boundary.

A TypedError carries a stable machine-readable code and a message key. It is
the only error type allowed to cross a service boundary; everything else is
mapped into one by ``to_typed_error`` at the component that caught it.
"""

from enum import Enum
from typing import Any

from protean.exceptions import ObjectNotFoundError, ValidationError


class ErrorCode(Enum):
    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS = {
    ErrorCode.BAD_REQUEST: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.CONFLICT: 409,
    ErrorCode.SERVICE_UNAVAILABLE: 503,
    ErrorCode.INTERNAL_SERVER_ERROR: 500,
}

# Jobs failing with these codes would fail the same way on every attempt
NON_RETRYABLE_CODES = frozenset({ErrorCode.CONFLICT, ErrorCode.BAD_REQUEST, ErrorCode.NOT_FOUND})


class MessageKey:
    ORDER_NOT_FOUND = "common.order.notFound"
    ORDER_CANCELLED = "common.order.cancelled"
    UNSUPPORTED_PAYMENT_METHOD = "common.order.unSupportedPaymentMethod"
    PAYMENT_NOT_FOUND = "common.payment.notFound"
    PAYMENT_REFUNDED = "common.payment.refunded"
    BALANCE_NOT_ENOUGH = "common.payment.balanceNotEnough"
    INVALID_SIGNATURE = "common.payment.invalidSignature"
    UNIQUE_CONSTRAINT = "common.errors.uniqueConstraint"
    RECORD_NOT_FOUND = "common.errors.recordNotFound"
    INVALID_INPUT = "common.errors.invalidInput"
    SERVICE_UNAVAILABLE = "common.errors.serviceUnavailable"
    INTERNAL_SERVER_ERROR = "common.errors.internalServerError"


class TypedError(Exception):
    """An error with a stable code and message key."""

    def __init__(self, code: ErrorCode, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details

    def __repr__(self) -> str:
        return f"TypedError(code={self.code.value!r}, message={self.message!r})"

    @property
    def retryable(self) -> bool:
        return self.code not in NON_RETRYABLE_CODES

    def to_dict(self) -> dict:
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TypedError":
        try:
            code = ErrorCode(data.get("code"))
        except ValueError:
            code = ErrorCode.INTERNAL_SERVER_ERROR
        return cls(
            code,
            data.get("message") or MessageKey.INTERNAL_SERVER_ERROR,
            data.get("details"),
        )


class UniqueConstraintError(Exception):
    """Raised by a store when a write would violate a uniqueness constraint."""


class UnavailableError(Exception):
    """Raised when a remote dependency timed out or could not be reached."""


# ---------------------------------------------------------------------------
# Mapping
# ---------------------------------------------------------------------------
def map_exception(exc: Exception) -> TypedError:
    """Translate an arbitrary exception into a TypedError."""
    if isinstance(exc, TypedError):
        return exc
    if isinstance(exc, UniqueConstraintError):
        return TypedError(ErrorCode.CONFLICT, MessageKey.UNIQUE_CONSTRAINT, str(exc))
    if isinstance(exc, ObjectNotFoundError):
        return TypedError(ErrorCode.NOT_FOUND, MessageKey.RECORD_NOT_FOUND)
    if isinstance(exc, ValidationError):
        return TypedError(ErrorCode.BAD_REQUEST, MessageKey.INVALID_INPUT, exc.messages)
    if isinstance(exc, UnavailableError):
        return TypedError(ErrorCode.SERVICE_UNAVAILABLE, MessageKey.SERVICE_UNAVAILABLE)
    return TypedError(ErrorCode.INTERNAL_SERVER_ERROR, MessageKey.INTERNAL_SERVER_ERROR)


def to_typed_error(exc: Exception, component: str, operation: str, log) -> TypedError:
    """Map ``exc`` to a TypedError, logging anything that was not already typed.

    Typed errors pass through untouched and are not logged again; whoever
    raised them already decided how they should surface.
    """
    if isinstance(exc, TypedError):
        return exc

    typed = map_exception(exc)
    log.error(
        f"[Error {component}.{operation}]",
        component=component,
        operation=operation,
        error=str(exc),
        error_type=type(exc).__name__,
        code=typed.code.value,
        exc_info=exc,
    )
    return typed
