"""Errors raised by the MELCloud Home client stack."""

from __future__ import annotations

HTTP_UNAUTHORIZED = 401


class MelCloudHomeError(Exception):
    """Base exception for MELCloud Home errors."""


class ApiError(MelCloudHomeError):
    """Raised when the cloud answers with an error status or an unusable body."""

    def __init__(self, status: int | None, message: str | None = None) -> None:
        """Store the HTTP status, None when only the body was unusable."""
        super().__init__(message or f"API error {status}")
        self.status = status


class UnauthorizedError(ApiError):
    """Raised when the session is missing or has expired (HTTP 401)."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(HTTP_UNAUTHORIZED, message)


class LoginPageError(MelCloudHomeError):
    """Raised when the login entry point does not resolve to a usable page."""

    def __init__(self, status: int) -> None:
        super().__init__(f"Login page returned unexpected status: {status}")
        self.status = status


class LoginFormParseError(MelCloudHomeError):
    """Raised when the CSRF token or the form action cannot be extracted.

    Attributes:
        snippet: Leading part of the page, kept for diagnosis.

    """

    def __init__(self, snippet: str) -> None:
        super().__init__(
            f"Unable to extract login form details. Page snippet: {snippet}"
        )
        self.snippet = snippet


class TooManyRedirectsError(MelCloudHomeError):
    """Raised when a redirect chain does not resolve within the hop budget."""

    def __init__(self, max_redirects: int) -> None:
        super().__init__(f"Too many redirects (max {max_redirects}).")
        self.max_redirects = max_redirects
