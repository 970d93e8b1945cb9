"""
MediaWiki API Client

Synchronous, cookie-bearing client for the MediaWiki Action API.

Responsibilities
----------------
- Own the authenticated HTTP session (login handshake, logout, cookies)
- Allow only whitelisted actions and parameter names
- Fetch short-lived action tokens (edit, protect, watch) on demand
- Guard edits with ``basetimestamp`` optimistic concurrency
- Expose continuation-based bulk queries one batch at a time

All remote calls go through ``_request``, which raises
``RemoteServiceError`` for any error envelope and ``TransportError`` for
network or decoding failures. Nothing is retried except the single
``NeedToken`` step of the login handshake.

A client is not thread-safe: login and logout mutate its cookie jar in
place. Use one client per thread or request and move state between them
with ``export_session`` / ``session=``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, List, Optional

import httpx

from ..config import Settings
from ..core.errors import (
    AuthenticationError,
    EditConflict,
    PermissionDenied,
    RemoteServiceError,
    TransportError,
)
from .models import ListBatch, PageInfo, Protection, Revision, SessionState, UserInfo
from .titles import TITLE_PREFIX

logger = logging.getLogger("mw_transcribe.wiki")


# ---------------------------------------------------------------------
# Protocol Constants
# ---------------------------------------------------------------------

LOGIN_SUCCESS = "Success"
LOGIN_NEED_TOKEN = "NeedToken"

# Parameter names each action accepts. Continuation parameters returned by
# the wiki are accepted in addition (see _is_continuation_param).
ACTION_PARAMS: Dict[str, FrozenSet[str]] = {
    "login": frozenset({"lgname", "lgpassword", "lgtoken", "lgdomain"}),
    "logout": frozenset({"token"}),
    "query": frozenset({
        "titles", "prop", "list", "meta", "type",
        "inprop", "rvprop", "rvlimit", "rvslots", "rvdir",
        "uiprop", "siprop",
        "ucuser", "uclimit", "ucprop", "ucnamespace", "ucstart",
        "rclimit", "rctype", "rcprop", "rcnamespace", "rcstart",
        "wllimit", "wlprop", "wlnamespace", "wlstart",
        "aplimit", "apprefix", "apnamespace", "apminsize", "apfilterredir", "apfrom",
    }),
    "parse": frozenset({
        "page", "text", "title", "prop", "contentmodel",
        "disableeditsection", "disablelimitreport",
    }),
    "edit": frozenset({
        "title", "text", "token", "summary", "minor",
        "basetimestamp", "createonly",
    }),
    "protect": frozenset({"title", "token", "protections", "expiry", "reason"}),
    "watch": frozenset({"titles", "token", "unwatch"}),
    "compare": frozenset({"fromrev", "torev", "torelative", "prop"}),
}

# Token kinds and the meta=tokens type that serves them.
TOKEN_TYPES: Dict[str, str] = {
    "edit": "csrf",
    "protect": "csrf",
    "watch": "watch",
}

CONFLICT_CODES = frozenset({"editconflict", "articleexists", "pagedeleted"})

PERMISSION_CODES = frozenset({
    "badtoken",
    "notoken",
    "permissiondenied",
    "protectedpage",
    "protectedtitle",
    "protectednamespace",
    "protectednamespace-interface",
    "cascadeprotected",
    "cantcreate",
    "cantcreate-anon",
    "noedit",
    "noedit-anon",
    "blocked",
    "autoblocked",
    "writeapidenied",
    "cantedit",
    "notloggedin",
})

_LEGACY_CONTINUATION_PARAMS = frozenset({"ucstart", "rcstart", "wlstart", "apfrom"})


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def _is_continuation_param(name: str) -> bool:
    return name == "continue" or name.endswith("continue") or name in _LEGACY_CONTINUATION_PARAMS


def _encode_value(value: Any) -> Optional[str]:
    """Encode a parameter value the way the Action API expects it."""
    if isinstance(value, bool):
        # Boolean flags are true when present, whatever their value.
        return "1" if value else None
    if isinstance(value, (list, tuple, set, frozenset)):
        return "|".join(str(v) for v in value)
    return str(value)


def _continuation(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Extract the continuation cursor of a query response, if any."""
    if data.get("continue"):
        return dict(data["continue"])

    # Pre-1.26 wikis answer with query-continue: {module: {param: value}}.
    legacy = data.get("query-continue")
    if legacy:
        cursor: Dict[str, Any] = {}
        for params in legacy.values():
            cursor.update(params)
        return cursor

    return None


def _pages(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    pages = data.get("query", {}).get("pages", [])
    if isinstance(pages, dict):
        pages = list(pages.values())
    return pages


def _first_page(data: Dict[str, Any]) -> Dict[str, Any]:
    pages = _pages(data)
    return pages[0] if pages else {"missing": True}


def _page_exists(page: Dict[str, Any]) -> bool:
    return "missing" not in page and "invalid" not in page


def _translate_mutation_error(exc: RemoteServiceError) -> RemoteServiceError:
    if exc.code in CONFLICT_CODES:
        return EditConflict(exc.code, exc.info)
    if exc.code in PERMISSION_CODES:
        return PermissionDenied(exc.code, exc.info)
    return exc


# ---------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------

class MediaWikiClient:
    """
    Session-holding client for one MediaWiki installation.
    """

    def __init__(
        self,
        api_url: str,
        *,
        timeout: float = 15.0,
        user_agent: str = "mw-transcribe/1.0",
        http_client: Optional[httpx.Client] = None,
        session: Optional[SessionState] = None,
    ) -> None:
        """
        Parameters
        ----------
        api_url : str
            Full URL of the wiki's ``api.php``.
        timeout : float
            Per-request timeout in seconds.
        user_agent : str
            User-Agent header sent with every request.
        http_client : Optional[httpx.Client]
            Pre-configured client (e.g. with a mock transport for tests).
        session : Optional[SessionState]
            Previously exported session to resume.
        """
        self.api_url = str(api_url)
        self._http = http_client or httpx.Client(
            timeout=timeout,
            headers={"User-Agent": user_agent},
        )
        self._user_info: Optional[UserInfo] = None

        if session is not None:
            for name, value in session.cookies.items():
                self._http.cookies.set(name, value)
            self._user_info = session.user_info

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session: Optional[SessionState] = None,
    ) -> "MediaWikiClient":
        return cls(
            str(settings.mw_api_url),
            timeout=settings.mw_http_timeout,
            user_agent=settings.mw_user_agent,
            session=session,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "MediaWikiClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Request path
    # ------------------------------------------------------------------

    def _request(self, action: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Perform one whitelisted API action and return the decoded response.

        Raises
        ------
        ValueError
            If the action or a parameter name is not whitelisted.
        TransportError
            If the wiki cannot be reached or answers with non-JSON.
        RemoteServiceError
            If the response carries an error envelope.
        """
        allowed = ACTION_PARAMS.get(action)
        if allowed is None:
            raise ValueError(f"Action not allowed: {action}")

        unknown = sorted(
            name for name in (params or {})
            if name not in allowed and not _is_continuation_param(name)
        )
        if unknown:
            raise ValueError(f"Parameters not allowed for {action}: {', '.join(unknown)}")

        data: Dict[str, str] = {"action": action, "format": "json", "formatversion": "2"}
        for name, value in (params or {}).items():
            if value is None:
                continue
            encoded = _encode_value(value)
            if encoded is not None:
                data[name] = encoded

        logger.debug("MediaWiki request: action=%s", action)

        try:
            response = self._http.post(self.api_url, data=data)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                f"MediaWiki API returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(
                f"MediaWiki API request failed: {type(exc).__name__}"
            ) from exc
        except ValueError as exc:
            raise TransportError("MediaWiki API returned invalid JSON") from exc

        if not isinstance(payload, dict):
            raise TransportError("MediaWiki API returned an unexpected payload")

        error = payload.get("error")
        if error:
            raise RemoteServiceError(
                str(error.get("code", "unknown")),
                str(error.get("info", "")),
            )

        return payload

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> UserInfo:
        """
        Log in with the two-step handshake.

        The first attempt may answer ``NeedToken``; it is retried exactly once
        with the returned token. Any other result than ``Success`` raises.

        Raises
        ------
        AuthenticationError
            Carrying the wiki's login result code (``WrongPass``,
            ``NotExists``, ``EmptyPass``, ``NoName``...).
        """
        params: Dict[str, Any] = {"lgname": username, "lgpassword": password}

        result = self._request("login", params).get("login", {})
        if result.get("result") == LOGIN_NEED_TOKEN:
            params["lgtoken"] = result.get("token")
            result = self._request("login", params).get("login", {})

        code = result.get("result")
        if code != LOGIN_SUCCESS:
            logger.info("Login failed for %r: %s", username, code)
            raise AuthenticationError(str(code or "Failed"), result.get("reason"))

        user = self.refresh_user_info()
        logger.info("Logged in to %s as %s", self.api_url, user.name)
        return user

    def logout(self) -> None:
        """Invalidate the remote session and clear local cookies."""
        try:
            token = self._fetch_token("csrf")
            self._request("logout", {"token": token})
        finally:
            self._http.cookies.clear()
            self._user_info = None
        logger.info("Logged out of %s", self.api_url)

    def refresh_user_info(self) -> UserInfo:
        data = self._request("query", {"meta": "userinfo", "uiprop": "rights|groups"})
        info = data.get("query", {}).get("userinfo", {})
        self._user_info = UserInfo(
            id=info.get("id", 0),
            name=info.get("name", ""),
            rights=info.get("rights", []),
            groups=info.get("groups", []),
        )
        return self._user_info

    @property
    def user_info(self) -> UserInfo:
        """Cached information about the current user (fetched on first use)."""
        if self._user_info is None:
            return self.refresh_user_info()
        return self._user_info

    @property
    def is_logged_in(self) -> bool:
        return not self.user_info.is_anonymous

    def export_session(self) -> SessionState:
        """Snapshot the cookies and user info for later resumption."""
        return SessionState(
            cookies={cookie.name: cookie.value or "" for cookie in self._http.cookies.jar},
            user_info=self._user_info,
        )

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def _fetch_token(self, token_type: str) -> Optional[str]:
        data = self._request("query", {"meta": "tokens", "type": token_type})
        return data.get("query", {}).get("tokens", {}).get(f"{token_type}token")

    def get_token(self, kind: str, title: str) -> Optional[str]:
        """
        Fetch a fresh token for a mutating action on ``title``.

        Tokens are never cached here. A protect token is only handed out to
        users holding the ``protect`` right; ``None`` is returned otherwise.

        Parameters
        ----------
        kind : str
            One of ``edit``, ``protect``, ``watch``.
        title : str
            The page the token is going to be used on.
        """
        token_type = TOKEN_TYPES.get(kind)
        if token_type is None:
            raise ValueError(f"Unknown token kind: {kind}")

        if kind == "protect" and "protect" not in self.user_info.rights:
            logger.debug("No protect right; withholding protect token for %s", title)
            return None

        return self._fetch_token(token_type)

    # ------------------------------------------------------------------
    # Page reads
    # ------------------------------------------------------------------

    def get_page_info(self, title: str) -> PageInfo:
        """Fetch a fresh PageInfo (metadata, protections and tokens)."""
        data = self._request("query", {
            "titles": title,
            "prop": "info|revisions",
            "inprop": "protection|watched",
            "rvprop": "ids|timestamp",
            "meta": "tokens",
            "type": "csrf|watch",
        })

        page = _first_page(data)
        revisions = page.get("revisions") or []
        latest = revisions[0] if revisions else {}
        tokens = data.get("query", {}).get("tokens", {})
        csrf = tokens.get("csrftoken")

        return PageInfo(
            title=page.get("title", title),
            exists=_page_exists(page),
            page_id=page.get("pageid"),
            last_revision_id=page.get("lastrevid") or latest.get("revid"),
            last_revision_timestamp=latest.get("timestamp"),
            length=page.get("length"),
            edit_token=csrf,
            protect_token=csrf if "protect" in self.user_info.rights else None,
            watch_token=tokens.get("watchtoken"),
            protections=[Protection(**p) for p in page.get("protection", [])],
            watched=bool(page.get("watched", False)),
        )

    def page_created(self, title: str) -> bool:
        return _page_exists(_first_page(self._request("query", {"titles": title})))

    def get_page_protections(self, title: str) -> List[Protection]:
        data = self._request("query", {
            "titles": title,
            "prop": "info",
            "inprop": "protection",
        })
        return [Protection(**p) for p in _first_page(data).get("protection", [])]

    def get_latest_revision_timestamp(self, title: str) -> Optional[str]:
        data = self._request("query", {
            "titles": title,
            "prop": "revisions",
            "rvprop": "timestamp",
            "rvlimit": 1,
        })
        revisions = _first_page(data).get("revisions") or []
        return revisions[0].get("timestamp") if revisions else None

    def get_page_wikitext(self, title: str) -> Optional[str]:
        """Return the page's current wikitext, or None if it does not exist."""
        data = self._request("query", {
            "titles": title,
            "prop": "revisions",
            "rvprop": "content",
            "rvslots": "main",
        })
        page = _first_page(data)
        revisions = page.get("revisions") or []
        if not _page_exists(page) or not revisions:
            return None

        revision = revisions[0]
        if "slots" in revision:
            return revision["slots"]["main"].get("content")
        return revision.get("content")

    def get_page_html(self, title: str) -> Optional[str]:
        """Return the page rendered as HTML, or None if it does not exist."""
        try:
            data = self._request("parse", {
                "page": title,
                "prop": "text",
                "disableeditsection": True,
                "disablelimitreport": True,
            })
        except RemoteServiceError as exc:
            if exc.code == "missingtitle":
                return None
            raise
        return data.get("parse", {}).get("text")

    def get_preview(self, wikitext: str) -> str:
        """Render arbitrary wikitext as HTML without saving it."""
        data = self._request("parse", {
            "text": wikitext,
            "contentmodel": "wikitext",
            "prop": "text",
            "disableeditsection": True,
            "disablelimitreport": True,
        })
        return data.get("parse", {}).get("text", "")

    def get_revisions(
        self,
        title: str,
        cursor: Optional[Dict[str, Any]] = None,
        limit: int = 10,
    ) -> ListBatch:
        """Return one batch of a page's history, newest first."""
        params: Dict[str, Any] = {
            "titles": title,
            "prop": "revisions",
            "rvprop": "ids|user|timestamp|comment|size",
            "rvlimit": limit,
        }
        params.update(cursor or {})
        data = self._request("query", params)
        return ListBatch(
            rows=_first_page(data).get("revisions") or [],
            cursor=_continuation(data),
        )

    def get_revision_history(self, title: str, limit: int = 10) -> List[Revision]:
        """Walk a page's history up to ``limit`` revisions."""
        history: List[Revision] = []
        cursor: Optional[Dict[str, Any]] = None
        while True:
            batch = self.get_revisions(title, cursor=cursor, limit=min(limit, 500))
            for row in batch.rows:
                history.append(Revision(
                    revision_id=row["revid"],
                    parent_id=row.get("parentid"),
                    user=row.get("user"),
                    timestamp=row.get("timestamp"),
                    comment=row.get("comment"),
                    size=row.get("size"),
                ))
                if len(history) >= limit:
                    return history
            if batch.cursor is None:
                return history
            cursor = batch.cursor

    def get_revision_diff(self, revision_id: int, diff_to: Any = "prev") -> str:
        """
        Return an HTML diff table between a revision and another one.

        ``diff_to`` is a revision ID or one of ``prev``, ``next``, ``cur``.
        """
        params: Dict[str, Any] = {"fromrev": revision_id, "prop": "diff"}
        if diff_to in ("prev", "next", "cur"):
            params["torelative"] = diff_to
        else:
            params["torev"] = diff_to

        compare = self._request("compare", params).get("compare", {})
        body = compare.get("body", compare.get("*", ""))
        return f"<table>{body}</table>"

    def get_site_info(self) -> Dict[str, Any]:
        data = self._request("query", {"meta": "siteinfo", "siprop": "general"})
        return data.get("query", {}).get("general", {})

    # ------------------------------------------------------------------
    # Page mutations
    # ------------------------------------------------------------------

    def edit_page(
        self,
        title: str,
        text: str,
        *,
        token: Optional[str] = None,
        base_timestamp: Optional[str] = None,
        create_only: bool = False,
        summary: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Replace a page's wikitext.

        ``base_timestamp`` is the timestamp of the revision the new text was
        based on. When omitted, the latest revision timestamp is fetched just
        before writing. The wiki rejects the write if a newer revision exists;
        no merge is ever attempted. ``create_only`` states that the text was
        written against a page that did not exist, so any revision created
        meanwhile is a conflict.

        Raises
        ------
        EditConflict
            If the wiki detected a conflicting revision.
        PermissionDenied
            If the token or the user's rights were rejected.
        """
        if token is None:
            token = self.get_token("edit", title)
        if not token:
            raise PermissionDenied("notoken", "No edit token is available for this user.")

        if base_timestamp is None and not create_only:
            base_timestamp = self.get_latest_revision_timestamp(title)

        params: Dict[str, Any] = {
            "title": title,
            "text": text,
            "token": token,
            "summary": summary,
            "basetimestamp": None if create_only else base_timestamp,
            # Without a base revision, a concurrent creation is a conflict too.
            "createonly": create_only or base_timestamp is None,
        }

        try:
            result = self._request("edit", params).get("edit", {})
        except RemoteServiceError as exc:
            translated = _translate_mutation_error(exc)
            if translated is exc:
                raise
            raise translated from exc

        if result.get("result") != "Success":
            raise RemoteServiceError(
                "editfailure",
                f"Edit of {title} was not saved: {result.get('result')}",
            )

        logger.info("Edited %s (revision %s)", title, result.get("newrevid"))
        return result

    def protect_page(self, title: str, token: Optional[str] = None) -> Dict[str, Any]:
        """
        Protect a page.

        An existing page is protected from editing; a page that has not been
        created yet is protected from creation.
        """
        protections = "edit=sysop" if self.page_created(title) else "create=sysop"
        return self._protect(title, protections, token)

    def unprotect_page(self, title: str, token: Optional[str] = None) -> Dict[str, Any]:
        """
        Unprotect a page, mirroring ``protect_page``: existing pages lose
        their edit protection, missing pages their creation protection.
        """
        protections = "edit=all" if self.page_created(title) else "create=all"
        return self._protect(title, protections, token)

    def _protect(self, title: str, protections: str, token: Optional[str]) -> Dict[str, Any]:
        if token is None:
            token = self.get_token("protect", title)
        if not token:
            raise PermissionDenied("notoken", "No protect token is available for this user.")

        try:
            result = self._request("protect", {
                "title": title,
                "token": token,
                "protections": protections,
                "expiry": "infinite",
            })
        except RemoteServiceError as exc:
            translated = _translate_mutation_error(exc)
            if translated is exc:
                raise
            raise translated from exc

        logger.info("Set protections %s on %s", protections, title)
        return result.get("protect", {})

    def watch_page(self, title: str, token: Optional[str] = None) -> Dict[str, Any]:
        return self._watch(title, token, unwatch=False)

    def unwatch_page(self, title: str, token: Optional[str] = None) -> Dict[str, Any]:
        return self._watch(title, token, unwatch=True)

    def _watch(self, title: str, token: Optional[str], unwatch: bool) -> Dict[str, Any]:
        if token is None:
            token = self.get_token("watch", title)
        if not token:
            raise PermissionDenied("notoken", "No watch token is available for this user.")

        try:
            result = self._request("watch", {
                "titles": title,
                "token": token,
                "unwatch": unwatch,
            })
        except RemoteServiceError as exc:
            translated = _translate_mutation_error(exc)
            if translated is exc:
                raise
            raise translated from exc

        watched = result.get("watch", [])
        return watched[0] if isinstance(watched, list) and watched else watched

    # ------------------------------------------------------------------
    # Bulk listings (one continuation step per call)
    # ------------------------------------------------------------------

    def _list_batch(
        self,
        list_name: str,
        params: Dict[str, Any],
        cursor: Optional[Dict[str, Any]],
    ) -> ListBatch:
        request: Dict[str, Any] = {"list": list_name, **params}
        request.update(cursor or {})
        data = self._request("query", request)
        return ListBatch(
            rows=data.get("query", {}).get(list_name, []),
            cursor=_continuation(data),
        )

    def get_user_contributions(
        self,
        username: str,
        cursor: Optional[Dict[str, Any]] = None,
        limit: int = 100,
    ) -> ListBatch:
        return self._list_batch("usercontribs", {
            "ucuser": username,
            "uclimit": limit,
            "ucprop": "ids|title|timestamp|comment|size",
            "ucnamespace": "0|1",
        }, cursor)

    def get_recent_changes(
        self,
        cursor: Optional[Dict[str, Any]] = None,
        limit: int = 100,
    ) -> ListBatch:
        return self._list_batch("recentchanges", {
            "rclimit": limit,
            "rctype": "edit|new",
            "rcprop": "user|comment|timestamp|title|ids|sizes",
            "rcnamespace": "0|1",
        }, cursor)

    def get_watchlist(
        self,
        cursor: Optional[Dict[str, Any]] = None,
        limit: int = 100,
    ) -> ListBatch:
        return self._list_batch("watchlist", {
            "wllimit": limit,
            "wlprop": "ids|title|timestamp|user|comment",
            "wlnamespace": "0|1",
        }, cursor)

    def get_all_pages(
        self,
        cursor: Optional[Dict[str, Any]] = None,
        limit: int = 100,
        prefix: str = TITLE_PREFIX,
    ) -> ListBatch:
        """List non-empty, non-redirect main namespace pages under a prefix."""
        return self._list_batch("allpages", {
            "aplimit": limit,
            "apprefix": prefix,
            "apnamespace": 0,
            "apminsize": 1,
            "apfilterredir": "nonredirects",
        }, cursor)
