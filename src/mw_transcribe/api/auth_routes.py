"""
Auth Routes

Log the browser session into and out of the wiki.

The wiki cookies never reach the browser. They are kept server-side in the
SessionStore under a random session ID, and only that ID is set as a cookie.
"""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Response, status

from ..config import Settings, get_settings
from ..service import Transcriber
from ..sessions.store import SessionStore
from .dependencies import get_session_id, get_session_store, get_transcriber
from .models import LoginRequest, UserResponse

router = APIRouter(prefix="/auth", tags=["auth"])


def _user_response(transcriber: Transcriber, settings: Settings) -> UserResponse:
    user = transcriber.client.user_info
    return UserResponse(
        id=user.id,
        name=user.name,
        is_logged_in=not user.is_anonymous,
        can_protect=transcriber.can_protect(),
        can_export=transcriber.can_export(settings.export_group_list),
        rights=list(user.rights),
        groups=list(user.groups),
    )


@router.post(
    "/login",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    summary="Log into the wiki",
)
def login(
    req: LoginRequest,
    response: Response,
    transcriber: Annotated[Transcriber, Depends(get_transcriber)],
    store: Annotated[SessionStore, Depends(get_session_store)],
    settings: Annotated[Settings, Depends(get_settings)],
    session_id: Annotated[Optional[str], Depends(get_session_id)],
) -> UserResponse:
    """
    Log into the wiki and remember the wiki session server-side.

    A failed login raises AuthenticationError, rendered as a 401 carrying
    the wiki's result code (``WrongPass``, ``NotExists``...).
    """
    transcriber.login(req.username, req.password)

    session_id = session_id or store.new_session_id()
    store.save(session_id, transcriber.client.export_session())
    response.set_cookie(
        settings.session_cookie_name,
        session_id,
        httponly=True,
        samesite="lax",
    )

    return _user_response(transcriber, settings)


@router.post(
    "/logout",
    response_model=UserResponse,
    status_code=status.HTTP_200_OK,
    summary="Log out of the wiki",
)
def logout(
    response: Response,
    transcriber: Annotated[Transcriber, Depends(get_transcriber)],
    store: Annotated[SessionStore, Depends(get_session_store)],
    settings: Annotated[Settings, Depends(get_settings)],
    session_id: Annotated[Optional[str], Depends(get_session_id)],
) -> UserResponse:
    transcriber.logout()

    if session_id:
        store.clear(session_id)
    response.delete_cookie(settings.session_cookie_name)

    return _user_response(transcriber, settings)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Describe the current wiki user",
)
def me(
    transcriber: Annotated[Transcriber, Depends(get_transcriber)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> UserResponse:
    return _user_response(transcriber, settings)
