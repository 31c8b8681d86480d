# tastybroker/backend/broker/errors.py
from __future__ import annotations

from typing import Optional


class BrokerError(Exception):
    """Base error of the broker layer. Carries whatever the response told us."""

    def __init__(
        self,
        message: str = "",
        *,
        status: Optional[int] = None,
        code: Optional[str] = None,
        url: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.url = url

    def __str__(self) -> str:
        parts = [self.message or self.__class__.__name__]
        if self.status is not None:
            parts.append(f"(status={self.status})")
        if self.url:
            parts.append(f"for {self.url}")
        return " ".join(parts)


class MalformedQuantity(BrokerError):
    """Numeric token is not a valid integer or decimal numeral."""


class AuthenticationFailed(BrokerError):
    """Bad credentials, or the token is invalid/expired."""


class TwoFactorRequired(BrokerError):
    """Login needs a one-time code that was not supplied."""


class TransportError(BrokerError):
    """Network failure or an unreadable response body."""


class RateLimited(BrokerError):
    """Server answered 429. Not retried here."""

    def __init__(self, message: str = "", *, retry_after: Optional[float] = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class NotFound(BrokerError):
    """Missing resource or account."""


class SchemaMismatch(BrokerError):
    """Response decoded but its shape is not what we expect (API drift)."""


class ApiError(BrokerError):
    """Any other non-2xx answer; status and message preserved."""
