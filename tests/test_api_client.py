import httpx
import pytest

from conftest import make_client, userinfo_response

from mw_transcribe.core.errors import (
    AuthenticationError,
    EditConflict,
    PermissionDenied,
    RemoteServiceError,
    TransportError,
)
from mw_transcribe.wiki.models import SessionState, UserInfo

EDITOR = UserInfo(id=7, name="Editor", rights=["edit"], groups=["user"])
ADMIN = UserInfo(id=1, name="Admin", rights=["edit", "protect"], groups=["sysop"])


def existing_page(title, **extra):
    page = {"title": title, "pageid": 10, "ns": 0}
    page.update(extra)
    return {"query": {"pages": [page]}}


def missing_page(title):
    return {"query": {"pages": [{"title": title, "ns": 0, "missing": True}]}}


# ---------------------------------------------------------------------
# Request path
# ---------------------------------------------------------------------

def test_requests_are_json_formatversion_2_posts():
    client, wiki = make_client(lambda params: {"query": {"general": {"sitename": "Wiki"}}})

    assert client.get_site_info() == {"sitename": "Wiki"}
    assert wiki.requests[0]["format"] == "json"
    assert wiki.requests[0]["formatversion"] == "2"


def test_error_envelope_raises_remote_service_error():
    client, _ = make_client(
        lambda params: {"error": {"code": "readapidenied", "info": "You need read permission."}}
    )

    with pytest.raises(RemoteServiceError) as excinfo:
        client.get_site_info()

    assert excinfo.value.code == "readapidenied"
    assert excinfo.value.info == "You need read permission."


def test_unreachable_wiki_raises_transport_error():
    def responder(params):
        raise httpx.ConnectError("connection refused")

    client, _ = make_client(responder)
    with pytest.raises(TransportError):
        client.get_site_info()


@pytest.mark.parametrize(
    "response",
    [httpx.Response(503, text="down"), httpx.Response(200, text="<html>not json</html>")],
)
def test_bad_responses_raise_transport_error(response):
    client, _ = make_client(lambda params: response)
    with pytest.raises(TransportError):
        client.get_site_info()


def test_unknown_action_is_rejected_before_io():
    client, wiki = make_client(lambda params: {})

    with pytest.raises(ValueError):
        client._request("delete", {"title": "Main Page"})
    assert wiki.requests == []


def test_unknown_parameter_is_rejected_before_io():
    client, wiki = make_client(lambda params: {})

    with pytest.raises(ValueError):
        client._request("edit", {"title": "x", "appendtext": "y"})
    assert wiki.requests == []


def test_continuation_parameters_pass_the_whitelist():
    client, wiki = make_client(lambda params: {"query": {"recentchanges": []}})

    client.get_recent_changes(cursor={"rccontinue": "20240101|5", "continue": "-||"})
    assert wiki.requests[0]["rccontinue"] == "20240101|5"


# ---------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------

def test_login_retries_need_token_once():
    def responder(params):
        if params["action"] == "login":
            if "lgtoken" not in params:
                return {"login": {"result": "NeedToken", "token": "abc+\\"}}
            return {"login": {"result": "Success", "lguserid": 7, "lgusername": "Editor"}}
        return userinfo_response()

    client, wiki = make_client(responder)
    user = client.login("Editor", "secret")

    assert user.name == "Editor"
    assert client.is_logged_in
    assert wiki.actions == ["login", "login", "query"]
    assert wiki.requests[1]["lgtoken"] == "abc+\\"


def test_second_need_token_fails():
    client, wiki = make_client(lambda params: {"login": {"result": "NeedToken", "token": "abc"}})

    with pytest.raises(AuthenticationError) as excinfo:
        client.login("Editor", "secret")

    assert excinfo.value.code == "NeedToken"
    assert wiki.actions == ["login", "login"]


@pytest.mark.parametrize("code", ["WrongPass", "NotExists", "EmptyPass", "NoName"])
def test_login_failures_carry_the_result_code(code):
    client, _ = make_client(lambda params: {"login": {"result": code}})

    with pytest.raises(AuthenticationError) as excinfo:
        client.login("Editor", "secret")

    assert excinfo.value.code == code
    assert excinfo.value.info == AuthenticationError.MESSAGES[code]


def test_unknown_login_failure_uses_the_wiki_reason():
    client, _ = make_client(
        lambda params: {"login": {"result": "Failed", "reason": "Two factor required."}}
    )

    with pytest.raises(AuthenticationError) as excinfo:
        client.login("Editor", "secret")
    assert excinfo.value.info == "Two factor required."


def test_logout_clears_cookies_and_user():
    def responder(params):
        if params["action"] == "query":
            return {"query": {"tokens": {"csrftoken": "csrf+\\"}}}
        return {}

    session = SessionState(cookies={"wikiSession": "abc"}, user_info=EDITOR)
    client, wiki = make_client(responder, session=session)
    client.logout()

    assert wiki.actions == ["query", "logout"]
    assert wiki.requests[1]["token"] == "csrf+\\"
    assert client.export_session() == SessionState()


def test_logout_clears_cookies_even_when_the_wiki_fails():
    def responder(params):
        if params["action"] == "query":
            return {"query": {"tokens": {"csrftoken": "csrf+\\"}}}
        return {"error": {"code": "badtoken", "info": "Invalid CSRF token."}}

    client, _ = make_client(responder, session=SessionState(cookies={"wikiSession": "abc"}))
    with pytest.raises(RemoteServiceError):
        client.logout()
    assert client.export_session().cookies == {}


def test_logout_clears_cookies_when_the_token_fetch_fails():
    session = SessionState(cookies={"wikiSession": "abc"}, user_info=EDITOR)
    client, wiki = make_client(lambda params: httpx.Response(503, text="down"), session=session)

    with pytest.raises(TransportError):
        client.logout()

    assert wiki.actions == ["query"]
    assert client.export_session() == SessionState()


def test_session_resumes_from_exported_state():
    session = SessionState(cookies={"wikiSession": "abc"}, user_info=EDITOR)
    client, wiki = make_client(lambda params: {}, session=session)

    assert client.export_session() == session
    assert client.user_info == EDITOR
    assert wiki.requests == []


def test_user_info_is_fetched_lazily():
    client, wiki = make_client(lambda params: userinfo_response(name="Anne"))

    assert wiki.requests == []
    assert client.user_info.name == "Anne"
    assert client.user_info.name == "Anne"
    assert len(wiki.requests) == 1


# ---------------------------------------------------------------------
# Tokens and page reads
# ---------------------------------------------------------------------

def test_protect_token_withheld_without_protect_right():
    client, wiki = make_client(lambda params: {}, session=SessionState(user_info=EDITOR))

    assert client.get_token("protect", ".MTYzNDQ.Njc3OTk") is None
    assert wiki.requests == []


def test_unknown_token_kind():
    client, _ = make_client(lambda params: {})
    with pytest.raises(ValueError):
        client.get_token("delete", "Main Page")


def test_get_page_info_parses_metadata_and_tokens():
    def responder(params):
        return {
            "query": {
                "pages": [{
                    "title": ".MTYzNDQ.Njc3OTk",
                    "pageid": 10,
                    "lastrevid": 42,
                    "length": 120,
                    "watched": True,
                    "protection": [{"type": "edit", "level": "sysop", "expiry": "infinity"}],
                    "revisions": [{"revid": 42, "parentid": 41, "timestamp": "2024-05-01T10:00:00Z"}],
                }],
                "tokens": {"csrftoken": "csrf+\\", "watchtoken": "watch+\\"},
            }
        }

    client, _ = make_client(responder, session=SessionState(user_info=EDITOR))
    info = client.get_page_info(".MTYzNDQ.Njc3OTk")

    assert info.exists
    assert info.last_revision_id == 42
    assert info.last_revision_timestamp == "2024-05-01T10:00:00Z"
    assert info.edit_token == "csrf+\\"
    assert info.watch_token == "watch+\\"
    assert info.protect_token is None
    assert info.watched
    assert info.protections[0].level == "sysop"


def test_get_page_info_for_missing_page():
    client, _ = make_client(
        lambda params: missing_page(".eA.eQ"),
        session=SessionState(user_info=ADMIN),
    )
    info = client.get_page_info(".eA.eQ")

    assert not info.exists
    assert info.last_revision_timestamp is None
    assert info.protect_token is None


def test_get_page_wikitext_reads_the_main_slot():
    client, _ = make_client(lambda params: existing_page(
        ".eA.eQ",
        revisions=[{"slots": {"main": {"content": "Dear Sir,"}}}],
    ))
    assert client.get_page_wikitext(".eA.eQ") == "Dear Sir,"


def test_get_page_wikitext_of_missing_page():
    client, _ = make_client(lambda params: missing_page(".eA.eQ"))
    assert client.get_page_wikitext(".eA.eQ") is None


def test_get_page_html_of_missing_page():
    client, _ = make_client(
        lambda params: {"error": {"code": "missingtitle", "info": "The page doesn't exist."}}
    )
    assert client.get_page_html(".eA.eQ") is None


def test_revision_diff_is_wrapped_in_a_table():
    client, wiki = make_client(lambda params: {"compare": {"body": "<tr><td>x</td></tr>"}})

    assert client.get_revision_diff(42) == "<table><tr><td>x</td></tr></table>"
    assert wiki.requests[0]["torelative"] == "prev"


# ---------------------------------------------------------------------
# Edits
# ---------------------------------------------------------------------

def test_edit_sends_base_timestamp():
    client, wiki = make_client(lambda params: {"edit": {"result": "Success", "newrevid": 43}})

    client.edit_page(".eA.eQ", "text", token="csrf+\\", base_timestamp="2024-05-01T10:00:00Z")

    sent = wiki.requests[0]
    assert sent["basetimestamp"] == "2024-05-01T10:00:00Z"
    assert sent["token"] == "csrf+\\"
    assert "createonly" not in sent


def test_edit_conflict():
    client, _ = make_client(
        lambda params: {"error": {"code": "editconflict", "info": "Edit conflict."}}
    )

    with pytest.raises(EditConflict) as excinfo:
        client.edit_page(".eA.eQ", "text", token="t", base_timestamp="2024-05-01T10:00:00Z")
    assert excinfo.value.code == "editconflict"


def test_creation_race_is_a_conflict():
    client, wiki = make_client(
        lambda params: {"error": {"code": "articleexists", "info": "The page already exists."}}
    )

    with pytest.raises(EditConflict):
        client.edit_page(".eA.eQ", "text", token="t", create_only=True)
    assert wiki.requests[0]["createonly"] == "1"
    assert "basetimestamp" not in wiki.requests[0]


def test_edit_without_base_fetches_the_latest_timestamp():
    def responder(params):
        if params["action"] == "query":
            return missing_page(".eA.eQ")
        return {"edit": {"result": "Success"}}

    client, wiki = make_client(responder)
    client.edit_page(".eA.eQ", "text", token="t")

    assert wiki.actions == ["query", "edit"]
    assert wiki.requests[1]["createonly"] == "1"


@pytest.mark.parametrize("code", ["protectedpage", "badtoken", "permissiondenied"])
def test_rejected_edits_raise_permission_denied(code):
    client, _ = make_client(lambda params: {"error": {"code": code, "info": "No."}})

    with pytest.raises(PermissionDenied) as excinfo:
        client.edit_page(".eA.eQ", "text", token="t", base_timestamp="2024-05-01T10:00:00Z")
    assert excinfo.value.code == code


def test_edit_without_any_token():
    client, _ = make_client(lambda params: {"query": {"tokens": {}}})

    with pytest.raises(PermissionDenied):
        client.edit_page(".eA.eQ", "text")


def test_unsaved_edit_raises():
    client, _ = make_client(lambda params: {"edit": {"result": "Failure"}})

    with pytest.raises(RemoteServiceError) as excinfo:
        client.edit_page(".eA.eQ", "text", token="t", base_timestamp="2024-05-01T10:00:00Z")
    assert excinfo.value.code == "editfailure"


# ---------------------------------------------------------------------
# Protection and watching
# ---------------------------------------------------------------------

@pytest.mark.parametrize(
    "exists, protect, expected",
    [
        (True, True, "edit=sysop"),
        (False, True, "create=sysop"),
        (True, False, "edit=all"),
        (False, False, "create=all"),
    ],
)
def test_protection_targets_creation_of_missing_pages(exists, protect, expected):
    def responder(params):
        if params["action"] == "query":
            return existing_page(".eA.eQ") if exists else missing_page(".eA.eQ")
        return {"protect": {"title": ".eA.eQ"}}

    client, wiki = make_client(responder)
    if protect:
        client.protect_page(".eA.eQ", token="csrf+\\")
    else:
        client.unprotect_page(".eA.eQ", token="csrf+\\")

    assert wiki.requests[-1]["protections"] == expected
    assert wiki.requests[-1]["expiry"] == "infinite"


def test_protect_without_right_is_denied():
    client, _ = make_client(
        lambda params: existing_page(".eA.eQ"),
        session=SessionState(user_info=EDITOR),
    )
    with pytest.raises(PermissionDenied):
        client.protect_page(".eA.eQ")


def test_watch_and_unwatch():
    client, wiki = make_client(lambda params: {"watch": [{"title": ".eA.eQ", "watched": True}]})

    client.watch_page(".eA.eQ", token="w")
    client.unwatch_page(".eA.eQ", token="w")

    assert "unwatch" not in wiki.requests[0]
    assert wiki.requests[1]["unwatch"] == "1"


# ---------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------

def test_list_batch_exposes_the_continuation_cursor():
    client, _ = make_client(lambda params: {
        "continue": {"rccontinue": "20240101|5", "continue": "-||"},
        "query": {"recentchanges": [{"title": ".eA.eQ", "rcid": 5}]},
    })

    batch = client.get_recent_changes()
    assert batch.rows == [{"title": ".eA.eQ", "rcid": 5}]
    assert batch.cursor == {"rccontinue": "20240101|5", "continue": "-||"}


def test_legacy_query_continue_is_flattened():
    client, wiki = make_client(lambda params: {
        "query-continue": {"usercontribs": {"ucstart": "2024-01-01T00:00:00Z"}},
        "query": {"usercontribs": []},
    })

    batch = client.get_user_contributions("Editor")
    assert batch.cursor == {"ucstart": "2024-01-01T00:00:00Z"}

    client.get_user_contributions("Editor", cursor=batch.cursor)
    assert wiki.requests[1]["ucstart"] == "2024-01-01T00:00:00Z"


def test_last_batch_has_no_cursor():
    client, wiki = make_client(lambda params: {"query": {"allpages": []}})

    assert client.get_all_pages().cursor is None
    assert wiki.requests[0]["apprefix"] == "."
