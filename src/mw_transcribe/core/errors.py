"""
Error Taxonomy and Global Error Handling

This module defines every exception raised by the transcription core and the
FastAPI exception handlers that translate them into HTTP responses.

Design Goals
------------
- One exception family per layer (codec, remote session, facade)
- Remote error codes are preserved verbatim so callers can decide on retry
- Never leak internal exception details to HTTP clients
- Log full stack traces internally for debugging
"""

from __future__ import annotations

import logging
from typing import Dict, Any, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger("mw_transcribe.errors")


# ---------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------

class TranscribeError(Exception):
    """Base class for all errors raised by mw_transcribe."""


# ---------------------------------------------------------------------
# Identity codec
# ---------------------------------------------------------------------

class IdentifierTooLong(TranscribeError, ValueError):
    """Raised when an encoded title exceeds the wiki's title byte limit."""


class MalformedTitle(TranscribeError, ValueError):
    """Raised when a wiki title cannot be decoded into document/page IDs."""


# ---------------------------------------------------------------------
# Remote session client
# ---------------------------------------------------------------------

class TransportError(TranscribeError):
    """Raised when the wiki API cannot be reached or returns garbage."""


class RemoteServiceError(TranscribeError):
    """
    Raised when the wiki API answers with an error envelope.

    Attributes
    ----------
    code : str
        The machine-readable MediaWiki error code (e.g. ``badtoken``).
    info : str
        The human-readable message supplied by the wiki.
    """

    def __init__(self, code: str, info: str = "") -> None:
        self.code = code
        self.info = info
        super().__init__(f"{code}: {info}" if info else code)


class AuthenticationError(RemoteServiceError):
    """Raised when a login attempt does not end in ``Success``."""

    MESSAGES: Dict[str, str] = {
        "NoName": "Username is empty.",
        "EmptyPass": "Password is empty.",
        "NotExists": "Username not found.",
        "WrongPass": "Password incorrect.",
        "WrongPluginPass": "Password incorrect.",
        "Throttled": "Too many recent login attempts. Please wait and retry.",
        "Blocked": "This user is blocked.",
        "NeedToken": "The wiki kept asking for a login token.",
        "Aborted": "Login was aborted by the wiki.",
    }

    def __init__(self, code: str, info: Optional[str] = None) -> None:
        message = self.MESSAGES.get(code) or info or f"Unknown login error: '{code}'"
        super().__init__(code, message)


class EditConflict(RemoteServiceError):
    """Raised when the wiki detects a newer revision than the edit's base."""


class PermissionDenied(RemoteServiceError):
    """Raised when the wiki rejects a mutation because of tokens or rights."""


# ---------------------------------------------------------------------
# Facade
# ---------------------------------------------------------------------

class PageNotSetError(TranscribeError):
    """Raised when a page-bound operation is called before ``set_page``."""


class DocumentNotFound(TranscribeError, LookupError):
    """Raised when the adapter does not know the requested document."""


class DocumentPageNotFound(TranscribeError, LookupError):
    """Raised when the adapter does not know the requested document page."""


# ---------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------

class AdapterError(TranscribeError):
    """Base class for failures raised by a document adapter."""


# ---------------------------------------------------------------------
# HTTP translation
# ---------------------------------------------------------------------

_STATUS_BY_ERROR = (
    (PageNotSetError, status.HTTP_409_CONFLICT, "page_not_set"),
    (DocumentNotFound, status.HTTP_404_NOT_FOUND, "document_not_found"),
    (DocumentPageNotFound, status.HTTP_404_NOT_FOUND, "page_not_found"),
    (IdentifierTooLong, status.HTTP_400_BAD_REQUEST, "identifier_too_long"),
    (MalformedTitle, status.HTTP_400_BAD_REQUEST, "malformed_title"),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED, "authentication_failed"),
    (EditConflict, status.HTTP_409_CONFLICT, "edit_conflict"),
    (PermissionDenied, status.HTTP_403_FORBIDDEN, "permission_denied"),
    (RemoteServiceError, status.HTTP_502_BAD_GATEWAY, "remote_error"),
    (AdapterError, status.HTTP_502_BAD_GATEWAY, "adapter_error"),
    (TransportError, status.HTTP_504_GATEWAY_TIMEOUT, "wiki_unreachable"),
)


def status_for(exc: TranscribeError) -> tuple[int, str]:
    """Return the HTTP status code and error slug for a domain error."""
    for error_type, status_code, slug in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code, slug
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_server_error"


async def transcribe_exception_handler(
    request: Request,
    exc: TranscribeError,
) -> JSONResponse:
    """
    Translate a domain error into a deterministic JSON error response.

    Remote error codes are surfaced so the front-end can tell a conflict
    (prompt to re-merge) from a permission rejection.
    """
    status_code, slug = status_for(exc)

    logger.info(
        "Request %s %s failed with %s: %s",
        request.method,
        request.url.path,
        type(exc).__name__,
        exc,
    )

    payload: Dict[str, Any] = {"error": slug, "detail": str(exc)}
    if isinstance(exc, RemoteServiceError):
        payload["code"] = exc.code

    return JSONResponse(status_code=status_code, content=payload)


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    Behavior
    --------
    - Logs the full exception stack trace for internal diagnostics.
    - Returns a generic 500 error to the client with no internal details.
    """
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    payload: Dict[str, Any] = {
        "error": "internal_server_error",
        "detail": "Internal server error",
    }

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=payload,
    )
