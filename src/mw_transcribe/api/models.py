"""
API Models

Pydantic models used for request/response validation across the auth,
document, and listing endpoints.

Design Goals
------------
- Strong typing
- Safe defaults (no shared mutable state)
- Explicit output contracts for the browser front-end
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


PageKind = Literal["transcription", "talk"]
TextFormat = Literal["html", "wikitext", "plain_text"]


# ---------------------------------------------------------------------
# Generic
# ---------------------------------------------------------------------

class OperationResult(BaseModel):
    """
    Standardized mutation operation result.
    """
    status: Literal["updated", "protected", "unprotected", "watched", "unwatched", "exported", "ok"]
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------

class LoginRequest(BaseModel):
    # Empty values are allowed through so the wiki reports NoName/EmptyPass.
    username: str = ""
    password: str = ""

    model_config = ConfigDict(extra="forbid")


class UserResponse(BaseModel):
    id: int
    name: str
    is_logged_in: bool
    can_protect: bool
    can_export: bool
    rights: List[str] = Field(default_factory=list)
    groups: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------

class DocumentPageSummary(BaseModel):
    page_id: str
    name: str


class DocumentResponse(BaseModel):
    document_id: str
    title: str
    pages: List[DocumentPageSummary] = Field(default_factory=list)
    exported: bool = False


class WikiPageStatus(BaseModel):
    mediawiki_title: str
    exists: bool
    protected: bool
    can_edit: bool
    last_revision_id: Optional[int] = None
    last_revision_timestamp: Optional[str] = None


class PageBindingResponse(BaseModel):
    document_id: str
    document_title: str
    page_id: str
    page_name: str
    file_url: str
    watched: bool
    exported: bool
    transcription: WikiPageStatus
    talk: WikiPageStatus


class PageTextResponse(BaseModel):
    kind: PageKind
    format: TextFormat
    text: Optional[str] = None
    # Send back as EditRequest.base_timestamp when saving an edit of this text.
    base_timestamp: Optional[str] = None


class EditRequest(BaseModel):
    """
    New wikitext for a page.

    ``base_timestamp`` is required: the timestamp of the revision the text
    was based on, or null if the page did not exist when it was loaded. The
    wiki rejects the save with a conflict if a newer revision exists.
    """
    text: str
    base_timestamp: Optional[str]
    summary: Optional[str] = Field(default=None, max_length=500)

    model_config = ConfigDict(extra="forbid")


class PreviewRequest(BaseModel):
    wikitext: str

    model_config = ConfigDict(extra="forbid")


class ExportRequest(BaseModel):
    kind: TextFormat = "plain_text"
    page_delimiter: str = "\n"

    model_config = ConfigDict(extra="forbid")


class DiffResponse(BaseModel):
    revision_id: int
    html: str
