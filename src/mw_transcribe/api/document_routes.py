"""
Document Routes

Endpoints of the transcription editor: bind a document page, read and edit
its transcription and talk pages, protect, watch, and export.

Every request binds the page afresh, so tokens come from that same request.
The base revision of an edit does not: reads return ``base_timestamp`` (the
latest revision when the text was read) and the client sends it back with
the edit, so a save over a revision it never saw is a 409 conflict.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from ..config import Settings, get_settings
from ..core.errors import PermissionDenied
from ..documents import Document
from ..service import Transcriber
from .dependencies import get_transcriber
from .models import (
    DocumentPageSummary,
    DocumentResponse,
    EditRequest,
    ExportRequest,
    OperationResult,
    PageBindingResponse,
    PageKind,
    PageTextResponse,
    PreviewRequest,
    TextFormat,
    WikiPageStatus,
)

router = APIRouter(prefix="/documents", tags=["documents"])

FIRST_PAGE = "_first"


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def _bind(transcriber: Transcriber, document_id: str, page_id: str) -> Document:
    document = transcriber.get_document(document_id)
    document.set_page(None if page_id == FIRST_PAGE else page_id)
    return document


def _require_export(transcriber: Transcriber, settings: Settings) -> None:
    if not transcriber.can_export(settings.export_group_list):
        raise PermissionDenied("exportdenied", "The current user may not export transcriptions.")


def _page_status(document: Document, kind: PageKind) -> WikiPageStatus:
    if kind == "transcription":
        info = document.transcription_page_info
        protected = document.is_protected_transcription_page()
        editable = document.can_edit_transcription_page()
    else:
        info = document.talk_page_info
        protected = document.is_protected_talk_page()
        editable = document.can_edit_talk_page()

    return WikiPageStatus(
        mediawiki_title=info.title,
        exists=info.exists,
        protected=protected,
        can_edit=editable,
        last_revision_id=info.last_revision_id,
        last_revision_timestamp=info.last_revision_timestamp,
    )


def _binding_response(document: Document) -> PageBindingResponse:
    return PageBindingResponse(
        document_id=str(document.id),
        document_title=document.title,
        page_id=str(document.page_id),
        page_name=document.page_name,
        file_url=document.get_page_file_url(),
        watched=document.is_watched_page(),
        exported=document.is_exported_page(),
        transcription=_page_status(document, "transcription"),
        talk=_page_status(document, "talk"),
    )


def _read_text(document: Document, kind: PageKind, text_format: TextFormat):
    readers = {
        ("transcription", "wikitext"): document.get_transcription_page_wikitext,
        ("transcription", "html"): document.get_transcription_page_html,
        ("transcription", "plain_text"): document.get_transcription_page_plain_text,
        ("talk", "wikitext"): document.get_talk_page_wikitext,
        ("talk", "html"): document.get_talk_page_html,
        ("talk", "plain_text"): document.get_talk_page_plain_text,
    }
    return readers[(kind, text_format)]()


# ---------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------

@router.get("/{document_id}", response_model=DocumentResponse)
def get_document(
    document_id: str,
    transcriber: Annotated[Transcriber, Depends(get_transcriber)],
) -> DocumentResponse:
    document = transcriber.get_document(document_id)
    return DocumentResponse(
        document_id=str(document.id),
        title=document.title,
        pages=[
            DocumentPageSummary(page_id=str(page_id), name=name)
            for page_id, name in document.get_pages().items()
        ],
        exported=document.is_exported_document(),
    )


@router.post("/{document_id}/export", response_model=OperationResult)
def export_document(
    document_id: str,
    req: ExportRequest,
    transcriber: Annotated[Transcriber, Depends(get_transcriber)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> OperationResult:
    """Stitch every page's transcription together and push it to the adapter."""
    _require_export(transcriber, settings)
    document = transcriber.get_document(document_id)
    imported = document.export_document(req.kind, req.page_delimiter)
    return OperationResult(status="exported", details={"imported": imported})


# ---------------------------------------------------------------------
# Bound page
# ---------------------------------------------------------------------

@router.get("/{document_id}/pages/{page_id}", response_model=PageBindingResponse)
def get_page(
    document_id: str,
    page_id: str,
    transcriber: Annotated[Transcriber, Depends(get_transcriber)],
) -> PageBindingResponse:
    """
    Bind a page and describe both of its wiki pages.

    ``_first`` as the page ID binds the document's first page.
    """
    return _binding_response(_bind(transcriber, document_id, page_id))


@router.post("/{document_id}/pages/{page_id}/preview", response_model=PageTextResponse)
def preview(
    document_id: str,
    page_id: str,
    req: PreviewRequest,
    transcriber: Annotated[Transcriber, Depends(get_transcriber)],
) -> PageTextResponse:
    document = _bind(transcriber, document_id, page_id)
    return PageTextResponse(
        kind="transcription",
        format="html",
        text=document.get_preview(req.wikitext),
    )


# watch/unwatch/export are registered before the "/{kind}" routes so the
# path parameter does not swallow them.

@router.post("/{document_id}/pages/{page_id}/watch", response_model=OperationResult)
def watch(
    document_id: str,
    page_id: str,
    transcriber: Annotated[Transcriber, Depends(get_transcriber)],
) -> OperationResult:
    document = _bind(transcriber, document_id, page_id)
    document.watch_page()
    return OperationResult(status="watched")


@router.post("/{document_id}/pages/{page_id}/unwatch", response_model=OperationResult)
def unwatch(
    document_id: str,
    page_id: str,
    transcriber: Annotated[Transcriber, Depends(get_transcriber)],
) -> OperationResult:
    document = _bind(transcriber, document_id, page_id)
    document.unwatch_page()
    return OperationResult(status="unwatched")


@router.post("/{document_id}/pages/{page_id}/export", response_model=OperationResult)
def export_page(
    document_id: str,
    page_id: str,
    req: ExportRequest,
    transcriber: Annotated[Transcriber, Depends(get_transcriber)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> OperationResult:
    _require_export(transcriber, settings)
    document = _bind(transcriber, document_id, page_id)
    imported = document.export_page(req.kind)
    return OperationResult(status="exported", details={"imported": imported})


@router.get("/{document_id}/pages/{page_id}/{kind}", response_model=PageTextResponse)
def get_page_text(
    document_id: str,
    page_id: str,
    kind: PageKind,
    transcriber: Annotated[Transcriber, Depends(get_transcriber)],
    text_format: Annotated[TextFormat, Query(alias="format")] = "wikitext",
) -> PageTextResponse:
    document = _bind(transcriber, document_id, page_id)
    info = document.transcription_page_info if kind == "transcription" else document.talk_page_info
    # The info is fetched before the text, so the base is never newer than the text.
    return PageTextResponse(
        kind=kind,
        format=text_format,
        text=_read_text(document, kind, text_format),
        base_timestamp=info.last_revision_timestamp,
    )


@router.post("/{document_id}/pages/{page_id}/{kind}", response_model=OperationResult)
def edit_page(
    document_id: str,
    page_id: str,
    kind: PageKind,
    req: EditRequest,
    transcriber: Annotated[Transcriber, Depends(get_transcriber)],
) -> OperationResult:
    """
    Save new wikitext to the transcription or talk page.

    The save is checked against ``req.base_timestamp``. A revision made
    after it surfaces as a 409 with ``code`` set to the wiki's conflict code.
    """
    document = _bind(transcriber, document_id, page_id)
    if kind == "transcription":
        document.edit_transcription_page(req.text, req.summary, req.base_timestamp)
        info = document.transcription_page_info
    else:
        document.edit_talk_page(req.text, req.summary, req.base_timestamp)
        info = document.talk_page_info

    return OperationResult(
        status="updated",
        details={"mediawiki_title": info.title, "revision_id": info.last_revision_id},
    )


@router.post("/{document_id}/pages/{page_id}/{kind}/protect", response_model=OperationResult)
def protect(
    document_id: str,
    page_id: str,
    kind: PageKind,
    transcriber: Annotated[Transcriber, Depends(get_transcriber)],
) -> OperationResult:
    document = _bind(transcriber, document_id, page_id)
    if kind == "transcription":
        document.protect_transcription_page()
    else:
        document.protect_talk_page()
    return OperationResult(status="protected")


@router.post("/{document_id}/pages/{page_id}/{kind}/unprotect", response_model=OperationResult)
def unprotect(
    document_id: str,
    page_id: str,
    kind: PageKind,
    transcriber: Annotated[Transcriber, Depends(get_transcriber)],
) -> OperationResult:
    document = _bind(transcriber, document_id, page_id)
    if kind == "transcription":
        document.unprotect_transcription_page()
    else:
        document.unprotect_talk_page()
    return OperationResult(status="unprotected")
