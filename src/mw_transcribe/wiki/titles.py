"""
Document Page Titles

Reversible mapping between external (document ID, page ID) pairs and the
MediaWiki page titles that hold their transcriptions.

A title has four parts:

1. A prefix that keeps MediaWiki from capitalizing the first character
2. The URL-safe Base64 encoded document ID
3. A delimiter between the encoded document ID and page ID
4. The URL-safe Base64 encoded page ID

Base64 padding is stripped on encode and tolerated as absent on decode.
Because the URL-safe alphabet never contains the delimiter, the split on
decode is unambiguous and encoding is injective.
"""

from __future__ import annotations

import base64
import binascii
import re
from typing import Tuple, Union

from ..core.errors import IdentifierTooLong, MalformedTitle


# ---------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------

TITLE_PREFIX = "."
TITLE_DELIMITER = "."

# MediaWiki stores titles in a 255 byte column (namespace excluded).
TITLE_BYTE_LIMIT = 255

TALK_NAMESPACE = "Talk"

_BASE64URL_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

Identifier = Union[str, int]


# ---------------------------------------------------------------------
# Base64url helpers
# ---------------------------------------------------------------------

def base64url_encode(value: str) -> str:
    """Encode a string to unpadded URL-safe Base64."""
    encoded = base64.urlsafe_b64encode(value.encode("utf-8"))
    return encoded.decode("ascii").rstrip("=")


def base64url_decode(value: str) -> str:
    """
    Decode unpadded URL-safe Base64 back to a string.

    Raises
    ------
    MalformedTitle
        If the value is not valid URL-safe Base64 or not UTF-8 once decoded.
    """
    if not _BASE64URL_PATTERN.match(value) or len(value) % 4 == 1:
        raise MalformedTitle(f"Not URL-safe Base64: {value!r}")

    padded = value + "=" * (-len(value) % 4)
    try:
        return base64.urlsafe_b64decode(padded).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise MalformedTitle(f"Not URL-safe Base64: {value!r}") from exc


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------

def encode_title(document_id: Identifier, page_id: Identifier) -> str:
    """
    Encode a document page into its MediaWiki title.

    Parameters
    ----------
    document_id : str | int
        Document identifier supplied by the external system.
    page_id : str | int
        Page identifier, unique within the document.

    Returns
    -------
    str
        The wiki title, e.g. ``.MTYzNDQ.Njc3OTk`` for ``(16344, 67799)``.

    Raises
    ------
    ValueError
        If either identifier is empty.
    IdentifierTooLong
        If the title would exceed ``TITLE_BYTE_LIMIT`` bytes.
    """
    document_id = str(document_id)
    page_id = str(page_id)

    if not document_id or not page_id:
        raise ValueError("Document and page IDs must be non-empty.")

    title = (
        TITLE_PREFIX
        + base64url_encode(document_id)
        + TITLE_DELIMITER
        + base64url_encode(page_id)
    )

    if len(title.encode("utf-8")) > TITLE_BYTE_LIMIT:
        raise IdentifierTooLong(
            "The document ID and/or page ID are too long to build a wiki "
            f"title ({len(title)} > {TITLE_BYTE_LIMIT} bytes)."
        )

    return title


def decode_title(title: str) -> Tuple[str, str]:
    """
    Decode a MediaWiki title back into ``(document_id, page_id)``.

    IDs always come back as strings, whatever type they were encoded from.

    Raises
    ------
    MalformedTitle
        If the prefix is missing, the title does not split into exactly two
        parts, or either part is not valid URL-safe Base64.
    """
    if not has_document_prefix(title):
        raise MalformedTitle(f"Title lacks the document prefix: {title!r}")

    parts = title[len(TITLE_PREFIX):].split(TITLE_DELIMITER, 1)
    if len(parts) != 2 or not all(parts):
        raise MalformedTitle(f"Title does not hold a document page: {title!r}")

    document_part, page_part = parts
    return base64url_decode(document_part), base64url_decode(page_part)


def has_document_prefix(title: str) -> bool:
    """Cheap test used to discard unrelated wiki pages before decoding."""
    return title.startswith(TITLE_PREFIX)


def talk_title(title: str) -> str:
    """Return the discussion page counterpart of a title."""
    return f"{TALK_NAMESPACE}:{title}"


def strip_namespace(title: str) -> str:
    """
    Remove a namespace qualifier such as ``Talk:`` from a title.

    Encoded titles never contain a colon, so anything before the first colon
    of a non-prefixed title is a namespace.
    """
    if has_document_prefix(title) or ":" not in title:
        return title
    return title.split(":", 1)[1]
