"""
Transcriber Service

Connector object between the external system (via its adapter) and the
wiki (via a MediaWikiClient). Front-ends talk to this object: it hands out
bound Documents, manages the wiki login, and runs the bulk listings.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from .adapters.base import DocumentAdapter, DocumentId
from .documents import Document
from .wiki.api_client import MediaWikiClient
from .wiki.listings import DEFAULT_PAGE_SIZE, DocumentListings
from .wiki.models import (
    DocumentSummary,
    RecentDocumentChange,
    UserDocumentPage,
    UserInfo,
    WatchedDocumentPage,
)

DEFAULT_EXPORT_GROUPS = ("sysop", "bureaucrat")


class Transcriber:
    """
    Entry point for transcription front-ends.
    """

    def __init__(
        self,
        adapter: DocumentAdapter,
        client: MediaWikiClient,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._adapter = adapter
        self._client = client
        self._listings = DocumentListings(client, adapter, page_size=page_size)

    @property
    def client(self) -> MediaWikiClient:
        return self._client

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def document_exists(self, document_id: DocumentId) -> bool:
        return bool(self._adapter.document_exists(document_id))

    def get_document(self, document_id: DocumentId) -> Document:
        return Document(document_id, self._adapter, self._client)

    # ------------------------------------------------------------------
    # User
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> UserInfo:
        return self._client.login(username, password)

    def logout(self) -> None:
        self._client.logout()

    def is_logged_in(self) -> bool:
        return self._client.is_logged_in

    def user_name(self) -> str:
        return self._client.user_info.name

    def can_export(self, groups: Iterable[str] = DEFAULT_EXPORT_GROUPS) -> bool:
        """True if the user belongs to one of the groups allowed to export."""
        user_groups = set(self._client.user_info.groups)
        return any(group in user_groups for group in groups)

    def can_protect(self) -> bool:
        return "protect" in self._client.user_info.rights

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def user_document_pages(
        self,
        limit: Optional[int] = 10,
        username: Optional[str] = None,
    ) -> List[UserDocumentPage]:
        return self._listings.user_document_pages(username, limit)

    def recent_changes(self, limit: Optional[int] = 10) -> List[RecentDocumentChange]:
        return self._listings.recent_changes(limit)

    def watchlist(self, limit: Optional[int] = 10) -> List[WatchedDocumentPage]:
        return self._listings.watchlist(limit)

    def all_documents(self, limit: Optional[int] = None) -> List[DocumentSummary]:
        return self._listings.all_documents(limit)

    def get_revision_diff(self, revision_id: int, diff_to: str = "prev") -> str:
        return self._client.get_revision_diff(revision_id, diff_to)
