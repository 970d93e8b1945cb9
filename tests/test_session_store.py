from mw_transcribe.sessions.store import SessionStore
from mw_transcribe.wiki.models import SessionState, UserInfo


def state(name):
    return SessionState(cookies={"wikiSession": name}, user_info=UserInfo(id=1, name=name))


def test_save_and_get():
    store = SessionStore()
    store.save("abc", state("Anne"))

    assert store.get("abc").user_info.name == "Anne"
    assert store.has_session("abc")
    assert store.get("missing") is None
    assert store.get(None) is None


def test_clear():
    store = SessionStore()
    store.save("abc", state("Anne"))
    store.clear("abc")
    store.clear("never-saved")

    assert len(store) == 0


def test_least_recently_used_session_is_evicted():
    store = SessionStore(max_sessions=2)
    store.save("a", state("Anne"))
    store.save("b", state("Ben"))
    store.get("a")
    store.save("c", state("Cleo"))

    assert store.has_session("a")
    assert not store.has_session("b")
    assert store.has_session("c")


def test_session_ids_are_random():
    assert SessionStore.new_session_id() != SessionStore.new_session_id()
