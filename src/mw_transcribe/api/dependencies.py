from functools import lru_cache
from typing import Annotated, Generator, Optional

from fastapi import Depends, Request

from ..adapters import DocumentAdapter, InMemoryAdapter
from ..config import Settings, get_settings
from ..service import Transcriber
from ..sessions.store import SessionStore
from ..wiki.api_client import MediaWikiClient


@lru_cache
def get_session_store() -> SessionStore:
    return SessionStore(max_sessions=get_settings().max_sessions)


@lru_cache
def get_adapter() -> DocumentAdapter:
    # Deployments plug in their own adapter through dependency overrides.
    settings = get_settings()
    if settings.documents_file:
        return InMemoryAdapter.from_json(settings.documents_file)
    return InMemoryAdapter()


def get_session_id(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> Optional[str]:
    return request.cookies.get(settings.session_cookie_name)


def get_client(
    settings: Annotated[Settings, Depends(get_settings)],
    store: Annotated[SessionStore, Depends(get_session_store)],
    session_id: Annotated[Optional[str], Depends(get_session_id)],
) -> Generator[MediaWikiClient, None, None]:
    # One client per request; the cookie jar is never shared across threads.
    client = MediaWikiClient.from_settings(settings, session=store.get(session_id))
    try:
        yield client
    finally:
        client.close()


def get_transcriber(
    adapter: Annotated[DocumentAdapter, Depends(get_adapter)],
    client: Annotated[MediaWikiClient, Depends(get_client)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Transcriber:
    return Transcriber(adapter, client, page_size=settings.listing_page_size)
