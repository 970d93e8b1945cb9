"""
In-Memory Document Adapter

Reference implementation of ``DocumentAdapter`` holding documents in a
plain mapping. Useful for tests, demos, and small deployments that load
their catalogue from a JSON file.

Expected data shape::

    {
        "16344": {
            "title": "Return of articles received and expended",
            "pages": [
                {"id": "67799", "name": "Letter Outside", "file_url": "http://..."},
                {"id": "67800", "name": "Letter Body", "file_url": "http://..."}
            ]
        }
    }

IDs are normalized to strings, so ``16344`` and ``"16344"`` address the
same document. Page order follows the ``pages`` list.
"""

from __future__ import annotations

import json
from pathlib import Path
from threading import RLock
from typing import Any, Dict, Mapping, Tuple, Union

from .base import AdapterError, DocumentAdapter, DocumentId, PageId


class InMemoryAdapter(DocumentAdapter):
    """Adapter backed by an in-process mapping."""

    def __init__(self, documents: Mapping[Any, Mapping[str, Any]] | None = None) -> None:
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._page_transcriptions: Dict[Tuple[str, str], str] = {}
        self._document_transcriptions: Dict[str, str] = {}
        self._lock = RLock()

        for document_id, document in (documents or {}).items():
            self.add_document(
                document_id,
                document.get("title", str(document_id)),
                document.get("pages", []),
            )

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "InMemoryAdapter":
        with open(path, encoding="utf-8") as fh:
            return cls(json.load(fh))

    def add_document(self, document_id: DocumentId, title: str, pages: Any) -> None:
        """
        Register a document.

        ``pages`` is a list of ``{"id", "name", "file_url"}`` mappings in
        reading order.
        """
        ordered: Dict[str, Dict[str, str]] = {}
        for page in pages:
            ordered[str(page["id"])] = {
                "name": str(page.get("name", page["id"])),
                "file_url": str(page.get("file_url", "")),
            }
        with self._lock:
            self._documents[str(document_id)] = {"title": title, "pages": ordered}

    # ------------------------------------------------------------------
    # Internal lookups
    # ------------------------------------------------------------------

    def _document(self, document_id: DocumentId) -> Dict[str, Any]:
        try:
            return self._documents[str(document_id)]
        except KeyError:
            raise AdapterError(f"Unknown document: {document_id}") from None

    def _page(self, document_id: DocumentId, page_id: PageId) -> Dict[str, str]:
        try:
            return self._document(document_id)["pages"][str(page_id)]
        except KeyError:
            raise AdapterError(f"Unknown page {page_id} of document {document_id}") from None

    # ------------------------------------------------------------------
    # DocumentAdapter
    # ------------------------------------------------------------------

    def document_exists(self, document_id: DocumentId) -> bool:
        return str(document_id) in self._documents

    def get_document_title(self, document_id: DocumentId) -> str:
        return self._document(document_id)["title"]

    def get_document_first_page_id(self, document_id: DocumentId) -> PageId:
        pages = self._document(document_id)["pages"]
        if not pages:
            raise AdapterError(f"Document {document_id} has no pages")
        return next(iter(pages))

    def get_document_pages(self, document_id: DocumentId) -> Dict[PageId, str]:
        return {
            page_id: page["name"]
            for page_id, page in self._document(document_id)["pages"].items()
        }

    def document_page_exists(self, document_id: DocumentId, page_id: PageId) -> bool:
        document = self._documents.get(str(document_id))
        return document is not None and str(page_id) in document["pages"]

    def get_document_page_name(self, document_id: DocumentId, page_id: PageId) -> str:
        return self._page(document_id, page_id)["name"]

    def get_document_page_file_url(self, document_id: DocumentId, page_id: PageId) -> str:
        return self._page(document_id, page_id)["file_url"]

    def import_document_page_transcription(
        self,
        document_id: DocumentId,
        page_id: PageId,
        text: str,
    ) -> bool:
        self._page(document_id, page_id)
        with self._lock:
            self._page_transcriptions[(str(document_id), str(page_id))] = text
        return True

    def import_document_transcription(self, document_id: DocumentId, text: str) -> bool:
        self._document(document_id)
        with self._lock:
            self._document_transcriptions[str(document_id)] = text
        return True

    def document_page_transcription_is_imported(
        self,
        document_id: DocumentId,
        page_id: PageId,
    ) -> bool:
        return (str(document_id), str(page_id)) in self._page_transcriptions

    def document_transcription_is_imported(self, document_id: DocumentId) -> bool:
        return str(document_id) in self._document_transcriptions

    # ------------------------------------------------------------------
    # Inspection helpers
    # ------------------------------------------------------------------

    def get_page_transcription(self, document_id: DocumentId, page_id: PageId) -> str | None:
        return self._page_transcriptions.get((str(document_id), str(page_id)))

    def get_document_transcription(self, document_id: DocumentId) -> str | None:
        return self._document_transcriptions.get(str(document_id))
