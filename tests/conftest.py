import os
from urllib.parse import parse_qsl

import httpx
import pytest

os.environ.setdefault("MW_API_URL", "http://wiki.test/w/api.php")

from mw_transcribe.adapters import InMemoryAdapter
from mw_transcribe.wiki.api_client import MediaWikiClient

API_URL = "http://wiki.test/w/api.php"


class FakeWiki:
    """
    Scripted api.php endpoint.

    ``responder`` receives the decoded form parameters of each request and
    returns either a JSON-able dict or an ``httpx.Response``. Every request
    is recorded in ``requests``.
    """

    def __init__(self, responder):
        self.responder = responder
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        params = dict(parse_qsl(request.content.decode("utf-8")))
        self.requests.append(params)
        result = self.responder(params)
        if isinstance(result, httpx.Response):
            return result
        return httpx.Response(200, json=result)

    @property
    def actions(self):
        return [params["action"] for params in self.requests]


def make_client(responder, **kwargs):
    wiki = FakeWiki(responder)
    http = httpx.Client(transport=httpx.MockTransport(wiki))
    return MediaWikiClient(API_URL, http_client=http, **kwargs), wiki


def userinfo_response(name="Editor", user_id=7, rights=("edit",), groups=("user",)):
    return {
        "query": {
            "userinfo": {
                "id": user_id,
                "name": name,
                "rights": list(rights),
                "groups": list(groups),
            }
        }
    }


DOCUMENTS = {
    "16344": {
        "title": "Return of articles received and expended",
        "pages": [
            {"id": "67799", "name": "Letter Outside", "file_url": "http://files.test/67799.jpg"},
            {"id": "67800", "name": "Letter Body", "file_url": "http://files.test/67800.jpg"},
        ],
    },
    "D2": {
        "title": "Muster roll",
        "pages": [
            {"id": "P1", "name": "Cover", "file_url": "http://files.test/p1.jpg"},
        ],
    },
}


@pytest.fixture
def adapter():
    return InMemoryAdapter(DOCUMENTS)
