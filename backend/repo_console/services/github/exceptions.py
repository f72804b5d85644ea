"""Custom exceptions for the GitHub connection flow."""

from __future__ import annotations


class GithubError(Exception):
    """Base exception for GitHub connection failures."""


class GithubConfigurationError(GithubError):
    """Raised when required configuration is missing."""


class GithubOAuthError(GithubError):
    """Raised when GitHub rejects the authorization or the code exchange."""

    def __init__(self, error: str, description: str | None = None):
        super().__init__(description or error)
        self.error = error
        self.description = description


class GithubTokenMissingError(GithubError):
    """Raised when an exchange answer carries no access token."""


class GithubExchangeError(GithubError):
    """Raised for transport failures (network errors, timeouts)."""


class GithubApiError(GithubError):
    """Raised when an authenticated GitHub REST call fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class GithubTimeoutError(GithubExchangeError):
    """Raised when an outbound call exceeds its bounded timeout."""


class NotConnectedError(GithubError):
    """Raised when an action needs a connected GitHub account."""


class NotSignedInError(GithubError):
    """Raised when an action needs a local session."""
