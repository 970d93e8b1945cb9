"""
Edit Permission Policy

Pure decision functions over a user's rights and a page's protections.
No I/O happens here; callers fetch rights and protections first.
"""

from __future__ import annotations

from typing import Iterable, Optional

from .models import Protection


# Higher rank is more restrictive.
_LEVEL_RANK = {
    "": 0,
    "all": 0,
    "autoconfirmed": 1,
    "sysop": 2,
}


def _rank(level: str) -> int:
    # Unknown custom levels are treated as the strictest.
    return _LEVEL_RANK.get(level, max(_LEVEL_RANK.values()) + 1)


def strictest_protection(
    protections: Iterable[Protection],
    protection_type: str,
) -> Optional[Protection]:
    """
    Return the most restrictive protection of the given type, if any.

    A page can carry several entries of the same type (e.g. differing by
    expiry); the strictest level wins.
    """
    matching = [p for p in protections if p.type == protection_type]
    if not matching:
        return None
    return max(matching, key=lambda p: _rank(p.level))


def is_edit_protected(protections: Iterable[Protection]) -> bool:
    protection = strictest_protection(protections, "edit")
    return protection is not None and _rank(protection.level) > 0


def can_edit(rights: Iterable[str], protections: Iterable[Protection]) -> bool:
    """
    Decide whether an actor may edit a page.

    ===========  ===============  =============  ======
    edit right   edit-protected   protect right  result
    ===========  ===============  =============  ======
    no           any              any            False
    yes          no               any            True
    yes          yes              yes            True
    yes          yes              no             False
    ===========  ===============  =============  ======

    Protections of other types (``create``, ``move``, ``upload``) never block
    editing an existing page.
    """
    rights = set(rights)
    has_edit = "edit" in rights
    has_protect = "protect" in rights
    edit_protected = is_edit_protected(protections)

    decisions = {
        (False, False, False): False,
        (False, False, True): False,
        (False, True, False): False,
        (False, True, True): False,
        (True, False, False): True,
        (True, False, True): True,
        (True, True, True): True,
        (True, True, False): False,
    }
    return decisions[(has_edit, edit_protected, has_protect)]
