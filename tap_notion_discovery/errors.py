"""Typed errors raised by the Notion client and the discovery engine.

Every failure surfaced by this package is a ``NotionAPIError``. The concrete
classes also derive from the Singer SDK's ``FatalAPIError`` or
``RetriableAPIError`` so the SDK's request loop (used by the REST streams in
``streams.py``) backs off on the same conditions our own retry wrapper does:

- ``TransportError``: connection failures and timeouts (retriable).
- ``AuthError``: 401/403, invalid or under-scoped integration token.
- ``NotFoundError``: 404, the object does not exist *or* is not shared with
  the integration. Notion does not distinguish the two.
- ``RateLimitError``: 429 (retriable), carries ``retry_after`` when sent.
- ``ValidationError``: 400, malformed request parameters.
- ``UnknownRemoteError``: any other non-2xx status, or a response envelope
  that does not match the documented shape. 5xx responses raise its
  retriable subclass ``ServerError``.
"""

from __future__ import annotations

import typing as t

from singer_sdk.exceptions import FatalAPIError, RetriableAPIError

if t.TYPE_CHECKING:
    import requests


class NotionAPIError(Exception):
    """Base class for all Notion API failures."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
        response: requests.Response | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        # Notion's machine-readable error code, e.g. "object_not_found"
        self.code = code
        self.response = response


class TransportError(NotionAPIError, RetriableAPIError):
    """The request never produced an HTTP response (connection, timeout)."""


class AuthError(NotionAPIError, FatalAPIError):
    """The token is invalid (401) or lacks access to the resource (403)."""


class NotFoundError(NotionAPIError, FatalAPIError):
    """The object does not exist or is not visible to the integration."""


class RateLimitError(NotionAPIError, RetriableAPIError):
    """Notion returned 429 Too Many Requests."""

    def __init__(
        self,
        message: str,
        *,
        retry_after: float | None = None,
        **kwargs: t.Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class ValidationError(NotionAPIError, FatalAPIError):
    """The request parameters were rejected (400)."""


class UnknownRemoteError(NotionAPIError, FatalAPIError):
    """Any other non-2xx status or an unexpected response shape."""


class ServerError(UnknownRemoteError, RetriableAPIError):
    """A 5xx response. Retriable, unlike other unknown remote errors."""


_STATUS_ERRORS: dict[int, type[NotionAPIError]] = {
    400: ValidationError,
    401: AuthError,
    403: AuthError,
    404: NotFoundError,
    429: RateLimitError,
}


def error_for_status(
    status_code: int,
    body: t.Any = None,
    *,
    reason: str = "",
    response: requests.Response | None = None,
) -> NotionAPIError:
    """Build the typed error for a non-2xx response.

    Notion error bodies look like
    ``{"object": "error", "status": 404, "code": "object_not_found", "message": "..."}``;
    the ``code`` and ``message`` are folded into the exception when present.

    Args:
        status_code: The HTTP status of the response.
        body: The decoded JSON body, if it could be decoded.
        reason: The HTTP reason phrase, used when the body has no message.
        response: The raw response, kept on the exception for inspection.

    Returns:
        An instance of the matching ``NotionAPIError`` subclass.
    """
    code = None
    detail = reason
    if isinstance(body, dict):
        code = body.get("code")
        detail = body.get("message") or reason

    message = f"{status_code} {code or 'error'}"
    if detail:
        message = f"{message}: {detail}"
    error_class = _STATUS_ERRORS.get(status_code, UnknownRemoteError)
    if status_code >= 500:  # noqa: PLR2004
        error_class = ServerError

    if error_class is RateLimitError:
        retry_after = None
        if response is not None:
            header = response.headers.get("Retry-After")
            try:
                retry_after = float(header) if header is not None else None
            except ValueError:
                retry_after = None
        return RateLimitError(
            message,
            retry_after=retry_after,
            status_code=status_code,
            code=code,
            response=response,
        )

    return error_class(
        message,
        status_code=status_code,
        code=code,
        response=response,
    )


def is_retriable(error: Exception) -> bool:
    """Return True for failures worth retrying (429, transport, 5xx)."""
    return isinstance(error, (RateLimitError, TransportError, ServerError))
