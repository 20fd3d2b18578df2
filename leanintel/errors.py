"""Exception taxonomy shared across lean-intel components."""

from __future__ import annotations

from typing import Optional


class InventoryError(RuntimeError):
    """Raised when the project root cannot be scanned at all."""


class GitError(RuntimeError):
    """Raised when the version-control collaborator fails."""


class ProviderError(RuntimeError):
    """Base class for completion provider failures.

    ``status`` carries the HTTP-ish status code reported by the vendor when one
    is known, and ``retry_after`` the server-suggested delay in seconds.
    """

    transient = False

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        retry_after: Optional[float] = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.retry_after = retry_after


class RateLimitError(ProviderError):
    transient = True


class ServerError(ProviderError):
    transient = True


class ProviderTimeoutError(ProviderError):
    transient = True


class ProviderConnectionError(ProviderError):
    transient = True


class AuthenticationError(ProviderError):
    """Invalid or missing credentials. Never retried."""


class InvalidRequestError(ProviderError):
    """The vendor rejected the request shape. Never retried."""


class UnsupportedProviderError(ValueError):
    """Raised when no provider is registered for the requested type."""


__all__ = [
    "AuthenticationError",
    "GitError",
    "InvalidRequestError",
    "InventoryError",
    "ProviderConnectionError",
    "ProviderError",
    "ProviderTimeoutError",
    "RateLimitError",
    "ServerError",
    "UnsupportedProviderError",
]
