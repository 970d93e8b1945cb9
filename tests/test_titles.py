import pytest
from hypothesis import assume, given, strategies as st

from mw_transcribe.core.errors import IdentifierTooLong, MalformedTitle
from mw_transcribe.wiki.titles import (
    TITLE_BYTE_LIMIT,
    decode_title,
    encode_title,
    has_document_prefix,
    strip_namespace,
    talk_title,
)

identifiers = st.text(min_size=1, max_size=20)


def test_known_title():
    assert encode_title(16344, 67799) == ".MTYzNDQ.Njc3OTk"
    assert decode_title(".MTYzNDQ.Njc3OTk") == ("16344", "67799")


def test_integer_and_string_ids_share_a_title():
    assert encode_title(16344, 67799) == encode_title("16344", "67799")


@given(identifiers, identifiers)
def test_decode_inverts_encode(document_id, page_id):
    assert decode_title(encode_title(document_id, page_id)) == (document_id, page_id)


@given(identifiers, identifiers, identifiers, identifiers)
def test_distinct_pairs_get_distinct_titles(doc_a, page_a, doc_b, page_b):
    assume((doc_a, page_a) != (doc_b, page_b))
    assert encode_title(doc_a, page_a) != encode_title(doc_b, page_b)


@given(identifiers, identifiers)
def test_titles_use_only_the_url_safe_alphabet(document_id, page_id):
    title = encode_title(document_id, page_id)
    assert has_document_prefix(title)
    assert "=" not in title
    assert ":" not in title
    assert title.count(".") == 2


@pytest.mark.parametrize(
    "title",
    [
        "Main Page",
        ".",
        ".MTYzNDQ",
        ".MTYzNDQ.",
        "..Njc3OTk",
        ".MT$zNDQ.Njc3OTk",
        ".MTYzNDQ.Njc3OTk.eA",
        ".a.Njc3OTk",
    ],
)
def test_malformed_titles_are_rejected(title):
    with pytest.raises(MalformedTitle):
        decode_title(title)


def test_non_utf8_payload_is_rejected():
    # "_w" decodes to the lone byte 0xFF.
    with pytest.raises(MalformedTitle):
        decode_title("._w.Njc3OTk")


def test_too_long_identifiers():
    with pytest.raises(IdentifierTooLong):
        encode_title("x" * TITLE_BYTE_LIMIT, "1")


def test_too_long_is_a_value_error():
    with pytest.raises(ValueError):
        encode_title("1", "y" * 200)


@pytest.mark.parametrize("document_id, page_id", [("", "1"), ("1", "")])
def test_empty_identifiers(document_id, page_id):
    with pytest.raises(ValueError):
        encode_title(document_id, page_id)


def test_namespace_helpers():
    title = encode_title(16344, 67799)
    assert talk_title(title) == "Talk:.MTYzNDQ.Njc3OTk"
    assert strip_namespace(talk_title(title)) == title
    assert strip_namespace(title) == title
    assert not has_document_prefix(talk_title(title))
