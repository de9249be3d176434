"""Domain-level exceptions.

All checkout rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.
Failures reported by the storefront API are ApiError instances; they carry
the HTTP status and the server's error code so callers can classify them
without inspecting message text.
"""

from __future__ import annotations

CART_VALIDATION_FAILED = "CART_VALIDATION_FAILED"
NETWORK_ERROR = "NETWORK_ERROR"
OTP_EXPIRED = "OTP_EXPIRED"


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A business rule or invariant was violated."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class RequestInFlightError(DomainException):
    """A request of the same kind is still pending and must finish first."""


class CheckoutStateError(DomainException):
    """An intent was dispatched that the current checkout state does not allow."""


class ApiError(Exception):
    """Error object returned by the storefront API.

    Mirrors the wire shape ``{message, code?, details?}`` plus the HTTP
    status when one was received.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
        self.status = status

    @property
    def is_rate_limited(self) -> bool:
        return self.status == 429

    @property
    def is_not_found(self) -> bool:
        return self.status == 404

    @property
    def is_server_error(self) -> bool:
        return self.status is not None and self.status >= 500

    @property
    def is_cart_validation(self) -> bool:
        return self.code == CART_VALIDATION_FAILED

    def field_errors(self) -> dict[str, str]:
        """Flatten ``details`` into a field -> first message mapping.

        The API reports validation problems either as ``{field: [msg, ...]}``
        or ``{field: msg}``.
        """
        errors: dict[str, str] = {}
        for field, value in self.details.items():
            if isinstance(value, (list, tuple)):
                if value:
                    errors[field] = str(value[0])
            elif value:
                errors[field] = str(value)
        return errors


class RateLimitedError(ApiError):
    """HTTP 429: too many attempts."""

    def __init__(self, message: str = "Too many requests", **kwargs) -> None:
        kwargs.setdefault("status", 429)
        super().__init__(message, **kwargs)


class NetworkError(ApiError):
    """The request never produced an HTTP response."""

    def __init__(self, message: str = "Network error") -> None:
        super().__init__(message, code=NETWORK_ERROR)
