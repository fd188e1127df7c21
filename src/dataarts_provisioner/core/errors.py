"""Provider-side error types (client construction, HTTP calls, response decoding)."""

from __future__ import annotations


class ProviderError(Exception):
    """Base exception for errors raised while talking to DataArts Studio."""


class ClientInitError(ProviderError):
    """Raised when a region-scoped service client cannot be constructed."""


class RequestError(ProviderError):
    """Raised for a non-2xx response or a transport-level failure.

    ``status_code`` is ``None`` when no response was received at all.
    """

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class NotFoundError(RequestError):
    """The addressed object does not exist on the server."""


class MissingIdentifierError(ProviderError):
    """Raised when a create response does not carry the new object's identifier."""


class FieldAssignmentError(ProviderError):
    """One or more response fields could not be projected onto local state."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        msg = "Failed to read response fields:\n" + "\n".join(f"  - {e}" for e in errors)
        super().__init__(msg)
