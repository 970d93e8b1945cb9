"""
Wiki Models

Typed views over MediaWiki API responses and the records produced by the
bulk listings.

The API omits fields depending on server state (a missing page has no
revision, an actor without rights gets no token). Every such field is
Optional here and consumers must handle the absent case.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------

class UserInfo(BaseModel):
    """
    The current wiki user as reported by ``meta=userinfo``.

    Anonymous users have an ``id`` of 0.
    """
    id: int = 0
    name: str = ""
    rights: List[str] = Field(default_factory=list)
    groups: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def is_anonymous(self) -> bool:
        return self.id == 0

    @classmethod
    def anonymous(cls) -> "UserInfo":
        return cls(id=0, name="", rights=[], groups=["*"])


class SessionState(BaseModel):
    """
    Serializable authentication state of a MediaWikiClient.

    Persisting a session across requests or processes is the caller's
    responsibility: export it after login and pass it back to a new client.
    """
    cookies: Dict[str, str] = Field(default_factory=dict)
    user_info: Optional[UserInfo] = None

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------

class Protection(BaseModel):
    """A single protection entry of a page (``inprop=protection``)."""
    type: str
    level: str
    expiry: Optional[str] = None

    model_config = ConfigDict(extra="ignore", frozen=True)


class PageInfo(BaseModel):
    """
    Snapshot of a wiki page fetched on demand.

    Tokens are short-lived, so a PageInfo is never reused across page binds
    and must be refetched after any mutation of the page.
    """
    title: str
    exists: bool = False
    page_id: Optional[int] = None
    last_revision_id: Optional[int] = None
    last_revision_timestamp: Optional[str] = None
    length: Optional[int] = None
    edit_token: Optional[str] = None
    protect_token: Optional[str] = None
    watch_token: Optional[str] = None
    protections: List[Protection] = Field(default_factory=list)
    watched: bool = False

    model_config = ConfigDict(frozen=True)


class Revision(BaseModel):
    """One entry of a page history."""
    revision_id: int
    parent_id: Optional[int] = None
    user: Optional[str] = None
    timestamp: Optional[str] = None
    comment: Optional[str] = None
    size: Optional[int] = None

    model_config = ConfigDict(frozen=True)


class ListBatch(BaseModel):
    """
    One page of a continuation-based query.

    ``cursor`` holds the parameters to resubmit verbatim for the next page;
    ``None`` means the listing is exhausted.
    """
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    cursor: Optional[Dict[str, Any]] = None


# ---------------------------------------------------------------------
# Listing records
# ---------------------------------------------------------------------

class DocumentPageRef(BaseModel):
    """Fields every listing record carries about the external document page."""
    mediawiki_title: str
    namespace: int = 0
    document_id: str
    document_page_id: str
    document_title: str
    document_page_name: str

    model_config = ConfigDict(frozen=True)


class UserDocumentPage(DocumentPageRef):
    """A document page the user contributed to (newest contribution)."""
    page_id: int
    revision_id: Optional[int] = None
    timestamp: Optional[str] = None
    comment: Optional[str] = None
    size: Optional[int] = None


class RecentDocumentChange(DocumentPageRef):
    """A recent edit or creation of a document page."""
    type: str
    page_id: int
    revision_id: Optional[int] = None
    old_revision_id: Optional[int] = None
    timestamp: Optional[str] = None
    user: Optional[str] = None
    comment: Optional[str] = None
    new_length: Optional[int] = None
    old_length: Optional[int] = None


class WatchedDocumentPage(DocumentPageRef):
    """A change on a document page in the user's watchlist."""
    type: Optional[str] = None
    page_id: int
    revision_id: Optional[int] = None
    old_revision_id: Optional[int] = None
    timestamp: Optional[str] = None
    user: Optional[str] = None
    comment: Optional[str] = None


class DocumentPageEntry(DocumentPageRef):
    """A document page that has content on the wiki."""
    page_id: int


class DocumentSummary(BaseModel):
    """A document with at least one transcribed page on the wiki."""
    document_id: str
    document_title: str

    model_config = ConfigDict(frozen=True)
