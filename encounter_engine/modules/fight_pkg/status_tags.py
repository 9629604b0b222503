"""Idempotent add/remove over a character's status tags.

Statuses are stored as a JSON list, so order is kept and these helpers
always return a fresh list; callers assign it back (and flag_modified) so
SQLAlchemy notices the change.
"""
from typing import Iterable, List, Optional

UP_CHECK_REQUIRED = "up_check_required"
OUT_OF_FIGHT = "out_of_fight"


def add_tags(current: Optional[Iterable[str]], new_tags: Optional[Iterable[str]]) -> List[str]:
    """
    Appends each tag that isn't already present.

    Existing tags keep their order; repeated tags in `new_tags` are only
    added once.
    """
    result = list(current or [])
    for tag in new_tags or []:
        if tag not in result:
            result.append(tag)
    return result


def remove_tags(current: Optional[Iterable[str]], tags: Optional[Iterable[str]]) -> List[str]:
    """Drops every occurrence of each named tag, leaving the rest untouched."""
    doomed = set(tags or [])
    return [tag for tag in (current or []) if tag not in doomed]


def has_tag(current: Optional[Iterable[str]], tag: str) -> bool:
    return tag in (current or [])
