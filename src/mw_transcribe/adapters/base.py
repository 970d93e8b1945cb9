"""
Document Adapter Interface

The external document-management system is the sole source of truth for
document and page identity and metadata. It plugs into the transcription
core by implementing this interface, bound at construction time.

Implementers must give every document a unique ID and every page an ID that
is unique within its document. Page IDs do not have to be in natural order,
but ``get_document_pages`` must list them in reading order. Page names do
not have to be unique.

All methods are synchronous. Failures should raise ``AdapterError`` (or a
subclass); the core passes them through unchanged.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Union

from ..core.errors import AdapterError

DocumentId = Union[str, int]
PageId = Union[str, int]

__all__ = ["AdapterError", "DocumentAdapter", "DocumentId", "PageId"]


class DocumentAdapter(ABC):
    """Capabilities the external system must provide."""

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    @abstractmethod
    def document_exists(self, document_id: DocumentId) -> bool:
        """Return True if the document exists in the external system."""

    @abstractmethod
    def get_document_title(self, document_id: DocumentId) -> str:
        """Return the document's title."""

    @abstractmethod
    def get_document_first_page_id(self, document_id: DocumentId) -> PageId:
        """Return the ID of the document's first page in reading order."""

    @abstractmethod
    def get_document_pages(self, document_id: DocumentId) -> Dict[PageId, str]:
        """
        Return ``{page_id: page_name}`` in reading order.

        Example::

            {2011: "Title Page", 1999: "Page 1", 4345: "Page 2"}
        """

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    @abstractmethod
    def document_page_exists(self, document_id: DocumentId, page_id: PageId) -> bool:
        """Return True if the page exists within the document."""

    @abstractmethod
    def get_document_page_name(self, document_id: DocumentId, page_id: PageId) -> str:
        """Return the page's display name."""

    @abstractmethod
    def get_document_page_file_url(self, document_id: DocumentId, page_id: PageId) -> str:
        """Return the URL of the page's image or file."""

    # ------------------------------------------------------------------
    # Transcription import
    # ------------------------------------------------------------------

    @abstractmethod
    def import_document_page_transcription(
        self,
        document_id: DocumentId,
        page_id: PageId,
        text: str,
    ) -> bool:
        """Store a single page's transcription. Return True on success."""

    @abstractmethod
    def import_document_transcription(self, document_id: DocumentId, text: str) -> bool:
        """Store a whole document's transcription. Return True on success."""

    @abstractmethod
    def document_page_transcription_is_imported(
        self,
        document_id: DocumentId,
        page_id: PageId,
    ) -> bool:
        """Return True if the page's transcription was already exported."""

    @abstractmethod
    def document_transcription_is_imported(self, document_id: DocumentId) -> bool:
        """Return True if the document's transcription was already exported."""
