from typing import Annotated, List, Optional, Union

from fastapi import APIRouter, Depends, Query

from ..service import Transcriber
from ..wiki.models import (
    DocumentSummary,
    RecentDocumentChange,
    UserDocumentPage,
    WatchedDocumentPage,
)
from .dependencies import get_transcriber
from .models import DiffResponse

router = APIRouter(tags=["listings"])

Limit = Annotated[int, Query(ge=1, le=500)]


@router.get("/listings/contributions", response_model=List[UserDocumentPage])
def contributions(
    transcriber: Annotated[Transcriber, Depends(get_transcriber)],
    limit: Limit = 10,
    username: Optional[str] = None,
) -> List[UserDocumentPage]:
    """Document pages edited by ``username`` (default: the logged-in user)."""
    return transcriber.user_document_pages(limit=limit, username=username)


@router.get("/listings/recent-changes", response_model=List[RecentDocumentChange])
def recent_changes(
    transcriber: Annotated[Transcriber, Depends(get_transcriber)],
    limit: Limit = 10,
) -> List[RecentDocumentChange]:
    return transcriber.recent_changes(limit)


@router.get("/listings/watchlist", response_model=List[WatchedDocumentPage])
def watchlist(
    transcriber: Annotated[Transcriber, Depends(get_transcriber)],
    limit: Limit = 10,
) -> List[WatchedDocumentPage]:
    return transcriber.watchlist(limit)


@router.get("/listings/documents", response_model=List[DocumentSummary])
def documents(
    transcriber: Annotated[Transcriber, Depends(get_transcriber)],
    limit: Annotated[Optional[int], Query(ge=1)] = None,
) -> List[DocumentSummary]:
    """Documents with at least one transcribed page."""
    return transcriber.all_documents(limit)


@router.get("/revisions/{revision_id}/diff", response_model=DiffResponse)
def revision_diff(
    revision_id: int,
    transcriber: Annotated[Transcriber, Depends(get_transcriber)],
    to: Union[int, str] = "prev",
) -> DiffResponse:
    return DiffResponse(
        revision_id=revision_id,
        html=transcriber.get_revision_diff(revision_id, to),
    )
