"""Exception hierarchy shared by the HTTP layer and the services."""

from __future__ import annotations


class LeadAgentError(Exception):
    """Base error carrying the HTTP status used when it reaches a route."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LeadAgentError):
    """Malformed or missing request fields."""

    status_code = 400


class ConfigurationError(LeadAgentError):
    """A credential required by the endpoint is not configured."""

    status_code = 500


class UpstreamError(LeadAgentError):
    """A dependency call did not succeed."""

    status_code = 500


class BookingFailed(UpstreamError):
    """The calendar provider rejected the invitee creation."""


class RateLimitExceeded(LeadAgentError):
    """Too many requests from one client in the current window."""

    status_code = 429
