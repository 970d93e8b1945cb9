import json

import pytest

from mw_transcribe.adapters import AdapterError, DocumentAdapter, InMemoryAdapter

from conftest import DOCUMENTS


def test_interface_cannot_be_instantiated():
    with pytest.raises(TypeError):
        DocumentAdapter()


def test_ids_are_normalized_to_strings():
    adapter = InMemoryAdapter({16344: {"title": "Return", "pages": [{"id": 67799, "name": "Outside"}]}})

    assert adapter.document_exists("16344")
    assert adapter.document_exists(16344)
    assert adapter.document_page_exists(16344, "67799")
    assert adapter.get_document_first_page_id("16344") == "67799"


def test_unknown_ids_raise_adapter_errors(adapter):
    assert not adapter.document_exists("404")
    assert not adapter.document_page_exists("404", "1")
    with pytest.raises(AdapterError):
        adapter.get_document_title("404")
    with pytest.raises(AdapterError):
        adapter.get_document_page_name("16344", "404")


def test_document_without_pages():
    adapter = InMemoryAdapter({"D": {"title": "Empty", "pages": []}})
    with pytest.raises(AdapterError):
        adapter.get_document_first_page_id("D")


def test_imports_are_recorded(adapter):
    assert not adapter.document_page_transcription_is_imported("16344", "67799")

    adapter.import_document_page_transcription("16344", "67799", "Dear Sir")
    adapter.import_document_transcription("16344", "Dear Sir\nYours")

    assert adapter.document_page_transcription_is_imported("16344", "67799")
    assert adapter.document_transcription_is_imported("16344")
    assert adapter.get_page_transcription("16344", "67799") == "Dear Sir"


def test_from_json(tmp_path):
    path = tmp_path / "documents.json"
    path.write_text(json.dumps(DOCUMENTS), encoding="utf-8")

    adapter = InMemoryAdapter.from_json(path)

    assert adapter.get_document_title("D2") == "Muster roll"
    assert adapter.get_document_pages("16344") == {"67799": "Letter Outside", "67800": "Letter Body"}
