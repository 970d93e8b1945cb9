"""
Document Listings

Walks continuation-based MediaWiki listings (user contributions, recent
changes, watchlist, all pages), keeps the rows whose titles decode to a
document page, and joins them with metadata owned by the external system.

Traversal rules
---------------
- Rows whose title lacks the document prefix or fails to decode are skipped.
- Rows are de-duplicated on a per-listing key before any adapter call.
- Document titles and page names are cached for the duration of a single
  traversal only; titles can change between traversals.
- Existence is confirmed with the adapter before a title or name is looked
  up. Rows for documents or pages that no longer exist are dropped, as are
  rows whose existence check raises ``AdapterError``.
- An error raised while looking up the title or name of a row that exists
  propagates and aborts the traversal.
- ``limit`` counts surviving records; once reached, no further rows are
  examined and no further batches are fetched.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Hashable, Iterator, List, Optional, Set, Tuple

from ..adapters.base import AdapterError, DocumentAdapter
from ..core.errors import MalformedTitle
from .api_client import MediaWikiClient
from .models import (
    DocumentPageEntry,
    DocumentSummary,
    ListBatch,
    RecentDocumentChange,
    UserDocumentPage,
    WatchedDocumentPage,
)
from .titles import decode_title, has_document_prefix, strip_namespace

logger = logging.getLogger("mw_transcribe.listings")

Cursor = Optional[Dict[str, Any]]
Fetcher = Callable[[Cursor], ListBatch]
KeyFunc = Callable[[Dict[str, Any]], Hashable]
Builder = Callable[[Dict[str, Any], Dict[str, Any]], Any]

DEFAULT_PAGE_SIZE = 100


class _Traversal:
    """Per-traversal lookup caches. Never shared between traversals."""

    def __init__(self) -> None:
        self.document_titles: Dict[str, str] = {}
        self.page_names: Dict[Tuple[str, str], str] = {}
        self.missing_documents: Set[str] = set()
        self.missing_pages: Set[Tuple[str, str]] = set()
        self.seen: Set[Hashable] = set()


class DocumentListings:
    """
    Paginated query engine joining wiki listings with adapter metadata.
    """

    def __init__(
        self,
        client: MediaWikiClient,
        adapter: DocumentAdapter,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._client = client
        self._adapter = adapter
        self._page_size = page_size

    # ------------------------------------------------------------------
    # Traversal core
    # ------------------------------------------------------------------

    def _walk(
        self,
        fetch: Fetcher,
        key: KeyFunc,
        build: Builder,
        limit: Optional[int],
    ) -> Iterator[Any]:
        if limit is not None and limit <= 0:
            return

        state = _Traversal()
        produced = 0
        cursor: Cursor = None

        while True:
            batch = fetch(cursor)

            for row in batch.rows:
                ids = self._decode(row)
                if ids is None:
                    continue

                row_key = key(row)
                if row_key in state.seen:
                    continue
                state.seen.add(row_key)

                fields = self._resolve(state, *ids)
                if fields is None:
                    continue

                fields["mediawiki_title"] = row.get("title", "")
                fields["namespace"] = row.get("ns", 0)

                produced += 1
                yield build(row, fields)

                if limit is not None and produced >= limit:
                    return

            if not batch.cursor:
                return
            cursor = batch.cursor

    @staticmethod
    def _decode(row: Dict[str, Any]) -> Optional[Tuple[str, str]]:
        title = strip_namespace(row.get("title", ""))
        if not has_document_prefix(title):
            return None
        try:
            return decode_title(title)
        except MalformedTitle:
            logger.debug("Skipping undecodable title %r", row.get("title"))
            return None

    def _exists(self, check: Callable[..., bool], *ids: str) -> bool:
        try:
            return bool(check(*ids))
        except AdapterError as exc:
            logger.warning("Dropping listing row for %s: %s", ids, exc)
            return False

    def _resolve(
        self,
        state: _Traversal,
        document_id: str,
        page_id: str,
    ) -> Optional[Dict[str, Any]]:
        if document_id in state.missing_documents:
            return None

        if document_id not in state.document_titles:
            if not self._exists(self._adapter.document_exists, document_id):
                state.missing_documents.add(document_id)
                return None
            state.document_titles[document_id] = self._adapter.get_document_title(document_id)

        page_key = (document_id, page_id)
        if page_key in state.missing_pages:
            return None

        if page_key not in state.page_names:
            if not self._exists(self._adapter.document_page_exists, document_id, page_id):
                state.missing_pages.add(page_key)
                return None
            state.page_names[page_key] = self._adapter.get_document_page_name(
                document_id, page_id
            )

        return {
            "document_id": document_id,
            "document_page_id": page_id,
            "document_title": state.document_titles[document_id],
            "document_page_name": state.page_names[page_key],
        }

    # ------------------------------------------------------------------
    # User contributions
    # ------------------------------------------------------------------

    def iter_user_document_pages(
        self,
        username: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Iterator[UserDocumentPage]:
        """Document pages a user contributed to, most recent first."""
        if username is None:
            username = self._client.user_info.name

        def fetch(cursor: Cursor) -> ListBatch:
            return self._client.get_user_contributions(
                username, cursor=cursor, limit=self._page_size
            )

        def build(row: Dict[str, Any], fields: Dict[str, Any]) -> UserDocumentPage:
            return UserDocumentPage(
                page_id=row["pageid"],
                revision_id=row.get("revid"),
                timestamp=row.get("timestamp"),
                comment=row.get("comment"),
                size=row.get("size"),
                **fields,
            )

        # Contributions repeat a page once per edit; keep the newest.
        return self._walk(fetch, lambda row: row.get("pageid"), build, limit)

    def user_document_pages(
        self,
        username: Optional[str] = None,
        limit: Optional[int] = 10,
    ) -> List[UserDocumentPage]:
        return list(self.iter_user_document_pages(username, limit))

    # ------------------------------------------------------------------
    # Recent changes
    # ------------------------------------------------------------------

    def iter_recent_changes(self, limit: Optional[int] = None) -> Iterator[RecentDocumentChange]:
        def fetch(cursor: Cursor) -> ListBatch:
            return self._client.get_recent_changes(cursor=cursor, limit=self._page_size)

        def build(row: Dict[str, Any], fields: Dict[str, Any]) -> RecentDocumentChange:
            return RecentDocumentChange(
                type=row.get("type", "edit"),
                page_id=row["pageid"],
                revision_id=row.get("revid"),
                old_revision_id=row.get("old_revid"),
                timestamp=row.get("timestamp"),
                user=row.get("user"),
                comment=row.get("comment"),
                new_length=row.get("newlen"),
                old_length=row.get("oldlen"),
                **fields,
            )

        def key(row: Dict[str, Any]) -> Hashable:
            return row.get("rcid") or (row.get("revid"), row.get("title"))

        return self._walk(fetch, key, build, limit)

    def recent_changes(self, limit: Optional[int] = 10) -> List[RecentDocumentChange]:
        return list(self.iter_recent_changes(limit))

    # ------------------------------------------------------------------
    # Watchlist
    # ------------------------------------------------------------------

    def iter_watchlist(self, limit: Optional[int] = None) -> Iterator[WatchedDocumentPage]:
        def fetch(cursor: Cursor) -> ListBatch:
            return self._client.get_watchlist(cursor=cursor, limit=self._page_size)

        def build(row: Dict[str, Any], fields: Dict[str, Any]) -> WatchedDocumentPage:
            return WatchedDocumentPage(
                type=row.get("type"),
                page_id=row["pageid"],
                revision_id=row.get("revid"),
                old_revision_id=row.get("old_revid"),
                timestamp=row.get("timestamp"),
                user=row.get("user"),
                comment=row.get("comment"),
                **fields,
            )

        def key(row: Dict[str, Any]) -> Hashable:
            return row.get("revid") or (row.get("title"), row.get("timestamp"))

        return self._walk(fetch, key, build, limit)

    def watchlist(self, limit: Optional[int] = 10) -> List[WatchedDocumentPage]:
        return list(self.iter_watchlist(limit))

    # ------------------------------------------------------------------
    # All pages
    # ------------------------------------------------------------------

    def iter_all_document_pages(self, limit: Optional[int] = None) -> Iterator[DocumentPageEntry]:
        """Every document page with content on the wiki, in title order."""
        def fetch(cursor: Cursor) -> ListBatch:
            return self._client.get_all_pages(cursor=cursor, limit=self._page_size)

        def build(row: Dict[str, Any], fields: Dict[str, Any]) -> DocumentPageEntry:
            return DocumentPageEntry(page_id=row["pageid"], **fields)

        return self._walk(fetch, lambda row: row.get("pageid"), build, limit)

    def all_document_pages(self, limit: Optional[int] = None) -> List[DocumentPageEntry]:
        return list(self.iter_all_document_pages(limit))

    def all_documents(self, limit: Optional[int] = None) -> List[DocumentSummary]:
        """Distinct documents that have at least one page on the wiki."""
        documents: Dict[str, DocumentSummary] = {}
        if limit is not None and limit <= 0:
            return []

        for entry in self.iter_all_document_pages():
            if entry.document_id in documents:
                continue
            documents[entry.document_id] = DocumentSummary(
                document_id=entry.document_id,
                document_title=entry.document_title,
            )
            if limit is not None and len(documents) >= limit:
                break
        return list(documents.values())
