"""
Document Facade

Binds one external document, and one of its pages at a time, to the two
wiki pages that hold its transcription and its discussion (``Talk:``).

Every bind fetches a fresh PageInfo for both wiki pages. Mutations use the
bound PageInfo's tokens and base revision timestamp, then refetch the
PageInfo they made stale.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from .adapters.base import DocumentAdapter, DocumentId, PageId
from .core.errors import DocumentNotFound, DocumentPageNotFound, PageNotSetError
from .wiki.api_client import MediaWikiClient
from .wiki.models import PageInfo, Revision
from .wiki.permissions import can_edit, strictest_protection
from .wiki.titles import encode_title, talk_title

logger = logging.getLogger("mw_transcribe.documents")

EXPORT_KINDS = ("plain_text", "html", "wikitext")

# Edits default to the revision fetched when the page was bound.
BOUND_REVISION = object()


def html_to_plain_text(html: Optional[str]) -> Optional[str]:
    """Strip markup from rendered HTML."""
    if html is None:
        return None
    return BeautifulSoup(html, "html.parser").get_text()


def _is_protected(info: PageInfo) -> bool:
    # Existing pages are protected against editing, missing ones against creation.
    protection_type = "edit" if info.exists else "create"
    protection = strictest_protection(info.protections, protection_type)
    return protection is not None and protection.level not in ("", "all")


class Document:
    """
    A document of the external system and its currently bound page.
    """

    def __init__(
        self,
        document_id: DocumentId,
        adapter: DocumentAdapter,
        client: MediaWikiClient,
    ) -> None:
        if document_id is None or str(document_id) == "":
            raise ValueError("The document ID is invalid.")

        if not adapter.document_exists(document_id):
            raise DocumentNotFound(f"The specified document does not exist: {document_id}")

        self._id = document_id
        self._adapter = adapter
        self._client = client
        self._title = adapter.get_document_title(document_id)

        self._page_id: Optional[PageId] = None
        self._page_name: Optional[str] = None
        self._base_title: Optional[str] = None
        self._transcription_info: Optional[PageInfo] = None
        self._talk_info: Optional[PageInfo] = None

    # ------------------------------------------------------------------
    # Page binding
    # ------------------------------------------------------------------

    def set_page(self, page_id: Optional[PageId] = None) -> None:
        """
        Bind a page of this document; ``None`` binds the first page.

        Raises
        ------
        DocumentPageNotFound
            If the adapter does not know the page.
        IdentifierTooLong
            If the IDs cannot fit in a wiki title. No remote call is made.
        """
        if page_id is None:
            page_id = self.get_first_page_id()

        if not self._adapter.document_page_exists(self._id, page_id):
            raise DocumentPageNotFound(f"The specified page does not exist: {page_id}")

        base_title = encode_title(self._id, page_id)

        # A failed lookup leaves the previous binding untouched.
        page_name = self._adapter.get_document_page_name(self._id, page_id)
        transcription_info = self._client.get_page_info(base_title)
        talk_info = self._client.get_page_info(talk_title(base_title))

        self._page_id = page_id
        self._page_name = page_name
        self._base_title = base_title
        self._transcription_info = transcription_info
        self._talk_info = talk_info

        logger.debug("Bound document %s page %s to %s", self._id, page_id, base_title)

    def _require_page(self, action: str) -> str:
        if self._base_title is None:
            raise PageNotSetError(f"The document page must be set before {action}.")
        return self._base_title

    def _refresh_transcription_info(self) -> None:
        self._transcription_info = self._client.get_page_info(self.base_title)

    def _refresh_talk_info(self) -> None:
        self._talk_info = self._client.get_page_info(self.talk_title)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def id(self) -> DocumentId:
        return self._id

    @property
    def title(self) -> str:
        return self._title

    @property
    def page_id(self) -> Optional[PageId]:
        """The bound page ID, or None before ``set_page``."""
        return self._page_id

    @property
    def page_name(self) -> str:
        self._require_page("getting the page name")
        return self._page_name or ""

    @property
    def base_title(self) -> str:
        return self._require_page("getting the base title")

    @property
    def talk_title(self) -> str:
        return talk_title(self._require_page("getting the talk title"))

    @property
    def transcription_page_info(self) -> PageInfo:
        self._require_page("getting transcription page info")
        if self._transcription_info is None:
            raise PageNotSetError("The transcription page info is not loaded.")
        return self._transcription_info

    @property
    def talk_page_info(self) -> PageInfo:
        self._require_page("getting talk page info")
        if self._talk_info is None:
            raise PageNotSetError("The talk page info is not loaded.")
        return self._talk_info

    def get_pages(self) -> Dict[PageId, str]:
        return dict(self._adapter.get_document_pages(self._id))

    def get_first_page_id(self) -> PageId:
        return self._adapter.get_document_first_page_id(self._id)

    def get_page_file_url(self) -> str:
        self._require_page("getting the page file URL")
        return self._adapter.get_document_page_file_url(self._id, self._page_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_transcription_page_wikitext(self) -> Optional[str]:
        return self._client.get_page_wikitext(
            self._require_page("getting the transcription page wikitext")
        )

    def get_talk_page_wikitext(self) -> Optional[str]:
        self._require_page("getting the talk page wikitext")
        return self._client.get_page_wikitext(self.talk_title)

    def get_transcription_page_html(self) -> Optional[str]:
        return self._client.get_page_html(
            self._require_page("getting the transcription page HTML")
        )

    def get_talk_page_html(self) -> Optional[str]:
        self._require_page("getting the talk page HTML")
        return self._client.get_page_html(self.talk_title)

    def get_transcription_page_plain_text(self) -> Optional[str]:
        return html_to_plain_text(self.get_transcription_page_html())

    def get_talk_page_plain_text(self) -> Optional[str]:
        return html_to_plain_text(self.get_talk_page_html())

    def get_preview(self, wikitext: str) -> str:
        return self._client.get_preview(wikitext)

    def get_transcription_page_history(self, limit: int = 10) -> List[Revision]:
        return self._client.get_revision_history(
            self._require_page("getting the transcription page history"), limit
        )

    def get_talk_page_history(self, limit: int = 10) -> List[Revision]:
        self._require_page("getting the talk page history")
        return self._client.get_revision_history(self.talk_title, limit)

    # ------------------------------------------------------------------
    # Permissions and state
    # ------------------------------------------------------------------

    def can_edit_transcription_page(self) -> bool:
        info = self.transcription_page_info
        return can_edit(self._client.user_info.rights, info.protections)

    def can_edit_talk_page(self) -> bool:
        info = self.talk_page_info
        return can_edit(self._client.user_info.rights, info.protections)

    def is_protected_transcription_page(self) -> bool:
        return _is_protected(self.transcription_page_info)

    def is_protected_talk_page(self) -> bool:
        return _is_protected(self.talk_page_info)

    def is_watched_page(self) -> bool:
        return self.transcription_page_info.watched

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _edit(
        self,
        info: PageInfo,
        text: str,
        summary: Optional[str],
        base_timestamp: Any,
    ) -> None:
        if base_timestamp is BOUND_REVISION:
            base_timestamp = info.last_revision_timestamp
            create_only = not info.exists
        else:
            # None means the text was written while the page did not exist.
            create_only = base_timestamp is None

        self._client.edit_page(
            info.title,
            text,
            token=info.edit_token,
            base_timestamp=base_timestamp,
            create_only=create_only,
            summary=summary,
        )

    def edit_transcription_page(
        self,
        text: str,
        summary: Optional[str] = None,
        base_timestamp: Any = BOUND_REVISION,
    ) -> None:
        """
        Save new transcription wikitext.

        Parameters
        ----------
        text : str
            The new wikitext.
        summary : Optional[str]
            Edit summary.
        base_timestamp : Optional[str]
            Timestamp of the revision the text was based on, or None if the
            page did not exist yet. Defaults to the revision bound by
            ``set_page``.

        Raises
        ------
        EditConflict
            If the page changed after the base revision.
        """
        self._edit(self.transcription_page_info, text, summary, base_timestamp)
        self._refresh_transcription_info()

    def edit_talk_page(
        self,
        text: str,
        summary: Optional[str] = None,
        base_timestamp: Any = BOUND_REVISION,
    ) -> None:
        self._edit(self.talk_page_info, text, summary, base_timestamp)
        self._refresh_talk_info()

    def protect_transcription_page(self) -> None:
        info = self.transcription_page_info
        self._client.protect_page(info.title, token=info.protect_token)
        self._refresh_transcription_info()

    def unprotect_transcription_page(self) -> None:
        info = self.transcription_page_info
        self._client.unprotect_page(info.title, token=info.protect_token)
        self._refresh_transcription_info()

    def protect_talk_page(self) -> None:
        info = self.talk_page_info
        self._client.protect_page(info.title, token=info.protect_token)
        self._refresh_talk_info()

    def unprotect_talk_page(self) -> None:
        info = self.talk_page_info
        self._client.unprotect_page(info.title, token=info.protect_token)
        self._refresh_talk_info()

    def watch_page(self) -> None:
        """Watch the transcription page (MediaWiki watches its talk page too)."""
        info = self.transcription_page_info
        self._client.watch_page(info.title, token=info.watch_token)
        self._refresh_transcription_info()
        self._refresh_talk_info()

    def unwatch_page(self) -> None:
        info = self.transcription_page_info
        self._client.unwatch_page(info.title, token=info.watch_token)
        self._refresh_transcription_info()
        self._refresh_talk_info()

    # ------------------------------------------------------------------
    # Export to the external system
    # ------------------------------------------------------------------

    def _page_text(self, title: str, kind: str) -> str:
        if kind == "plain_text":
            text = html_to_plain_text(self._client.get_page_html(title))
        elif kind == "html":
            text = self._client.get_page_html(title)
        else:
            text = self._client.get_page_wikitext(title)
        return text or ""

    @staticmethod
    def _check_kind(kind: str) -> None:
        if kind not in EXPORT_KINDS:
            raise ValueError(f"The provided export kind is invalid: {kind}")

    def export_page(self, kind: str = "plain_text") -> bool:
        """Push the bound page's transcription into the external system."""
        self._check_kind(kind)
        base_title = self._require_page("exporting the page transcription")
        text = self._page_text(base_title, kind)
        return bool(self._adapter.import_document_page_transcription(self._id, self._page_id, text))

    def export_document(self, kind: str = "plain_text", page_delimiter: str = "\n") -> bool:
        """Stitch every page's transcription together and push it."""
        self._check_kind(kind)
        texts = [
            self._page_text(encode_title(self._id, page_id), kind)
            for page_id in self.get_pages()
        ]
        return bool(self._adapter.import_document_transcription(self._id, page_delimiter.join(texts)))

    def is_exported_page(self) -> bool:
        self._require_page("checking the page export")
        return bool(self._adapter.document_page_transcription_is_imported(self._id, self._page_id))

    def is_exported_document(self) -> bool:
        return bool(self._adapter.document_transcription_is_imported(self._id))
