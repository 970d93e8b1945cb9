import pytest

from mw_transcribe.wiki.models import Protection
from mw_transcribe.wiki.permissions import can_edit, is_edit_protected, strictest_protection

SYSOP_EDIT = [Protection(type="edit", level="sysop", expiry="infinity")]


@pytest.mark.parametrize(
    "rights, protections, expected",
    [
        ([], [], False),
        (["protect"], SYSOP_EDIT, False),
        (["edit"], [], True),
        (["edit", "protect"], [], True),
        (["edit", "protect"], SYSOP_EDIT, True),
        (["edit"], SYSOP_EDIT, False),
    ],
)
def test_can_edit_truth_table(rights, protections, expected):
    assert can_edit(rights, protections) is expected


def test_other_protection_types_do_not_block_edits():
    protections = [
        Protection(type="move", level="sysop"),
        Protection(type="create", level="sysop"),
    ]
    assert not is_edit_protected(protections)
    assert can_edit(["edit"], protections)


def test_open_levels_are_not_protection():
    assert not is_edit_protected([Protection(type="edit", level="all")])


def test_strictest_level_wins():
    protections = [
        Protection(type="edit", level="autoconfirmed", expiry="infinity"),
        Protection(type="edit", level="sysop", expiry="2030-01-01T00:00:00Z"),
    ]
    assert strictest_protection(protections, "edit").level == "sysop"
    assert strictest_protection(protections, "create") is None


def test_unknown_levels_count_as_strictest():
    protections = [
        Protection(type="edit", level="sysop"),
        Protection(type="edit", level="editprotected"),
    ]
    assert strictest_protection(protections, "edit").level == "editprotected"
