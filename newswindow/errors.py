from __future__ import annotations


class NewsWindowError(Exception):
    """Base class for every error raised by the package."""


class SearchValidationError(NewsWindowError):
    """A search request is malformed; carries one message per offending field."""

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        super().__init__("; ".join(f"{field}: {msg}" for field, msg in self.errors.items()))


class ExternalServiceError(NewsWindowError):
    """The upstream news source failed to answer a search."""

    transient = False

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitedError(ExternalServiceError):
    pass


class UnauthorizedError(ExternalServiceError):
    pass


class ClientRequestError(ExternalServiceError):
    pass


class MalformedResponseError(ExternalServiceError):
    pass


class ServerError(ExternalServiceError):
    transient = True


class UpstreamTimeoutError(ExternalServiceError):
    transient = True


class UpstreamTransportError(ExternalServiceError):
    transient = True


class InternalError(NewsWindowError):
    """Unexpected failure while shaping a search result."""
