from typing import Annotated

from fastapi import APIRouter, Depends

from ..config import Settings, get_settings
from ..wiki.api_client import MediaWikiClient
from .dependencies import get_client

router = APIRouter(tags=["health"])


@router.get("/health")
def health(settings: Annotated[Settings, Depends(get_settings)]):
    return {"status": "ok", "mw_api": str(settings.mw_api_url)}


@router.get("/health/wiki")
def wiki_health(client: Annotated[MediaWikiClient, Depends(get_client)]):
    general = client.get_site_info()
    return {
        "status": "ok",
        "sitename": general.get("sitename"),
        "generator": general.get("generator"),
    }
