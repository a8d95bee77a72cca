"""Typed failures raised by the router client."""

from __future__ import annotations


class RouterError(Exception):
    """
    Base class for every failure surfaced by a router backend.

    :param message: Human readable description.
    :param operation: Router operation that failed (e.g. ``list_online_clients``).
    :param endpoint: URL the failing request was sent to, if any.
    """

    def __init__(self, message, operation=None, endpoint=None):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.endpoint = endpoint

    def __str__(self) -> str:
        context = []
        if self.operation:
            context.append(f"operation={self.operation}")
        if self.endpoint:
            context.append(f"endpoint={self.endpoint}")
        if context:
            return f"{self.message} ({', '.join(context)})"
        return self.message


class TransportError(RouterError):
    """Connection, TLS or timeout failure. Never retried."""


class DecodingError(RouterError):
    """Response body was not the JSON shape the router is expected to return."""


class AuthenticationError(RouterError):
    """Credentials are missing, the login was rejected, or the retry after login was still unauthorized."""

    def __init__(self, message, operation=None, endpoint=None, status_code=None):
        super().__init__(message, operation=operation, endpoint=endpoint)
        self.status_code = status_code


class UnexpectedStatus(RouterError):
    """Non-success HTTP status other than the recoverable 401."""

    def __init__(self, message, status_code, operation=None, endpoint=None):
        super().__init__(message, operation=operation, endpoint=endpoint)
        self.status_code = status_code


class InternalInvariantError(RouterError):
    """A request could not be cloned before sending. Indicates a programming defect."""
