"""
Map LinkedIn profile payloads onto `NormalizedProfile`.

Two shapes show up in practice:
- OpenID Connect `userinfo`: sub, name, given_name, family_name, email, picture
- legacy passport-style profile: id, displayName, name{givenName,familyName}, emails[], photos[]

Everything here is pure: no I/O, same input -> same output.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Optional, Tuple

from coach.auth.errors import MissingSubjectError
from coach.auth.models import NormalizedProfile

_WS = re.compile(r"\s+")


def _str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


def _first_value(items: Any) -> str:
    """First `value` of a passport-style list like `emails: [{"value": "..."}]`."""
    if not isinstance(items, list) or not items:
        return ""
    head = items[0]
    if isinstance(head, dict):
        return _str(head.get("value"))
    return _str(head)


def split_name(name: Optional[str]) -> Tuple[str, str]:
    """
    Split a display name on the first whitespace run.

    "Jane Doe" -> ("Jane", "Doe"); "Mary  Ann   Smith" -> ("Mary", "Ann Smith");
    "Prince" -> ("Prince", "").
    """
    parts = _WS.split((name or "").strip())
    parts = [p for p in parts if p]
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def _names(raw: Dict[str, Any]) -> Tuple[str, str]:
    name = raw.get("name")
    if isinstance(name, str) and name.strip():
        return split_name(name)

    display = raw.get("displayName")
    if isinstance(display, str) and display.strip():
        return split_name(display)

    if isinstance(name, dict):
        given = _str(name.get("givenName"))
        family = _str(name.get("familyName"))
        if given or family:
            return given, family

    return _str(raw.get("given_name")), _str(raw.get("family_name"))


def normalize_profile(raw: Dict[str, Any]) -> NormalizedProfile:
    """
    Produce the canonical profile shape from either payload flavour.

    Raises:
        MissingSubjectError: when neither `sub` nor `id` is present.
    """
    if not isinstance(raw, dict):
        raise MissingSubjectError("Profile payload is not an object")

    external_id = _str(raw.get("sub")) or _str(raw.get("id"))
    if not external_id:
        raise MissingSubjectError("Profile payload has no subject id")

    first_name, last_name = _names(raw)

    email = _str(raw.get("email")) or _first_value(raw.get("emails"))
    picture = _str(raw.get("picture")) or _first_value(raw.get("photos"))

    headline = _str(raw.get("headline"))
    if not headline:
        extra = raw.get("_json")
        if isinstance(extra, dict):
            headline = _str(extra.get("headline"))

    return NormalizedProfile(
        external_id=external_id,
        first_name=first_name,
        last_name=last_name,
        email=email,
        profile_image=picture,
        headline=headline,
    )
