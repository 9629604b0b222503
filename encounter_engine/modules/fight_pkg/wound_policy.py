"""Wound threshold policy.

Character type decides three things: where wounds are tracked, whether
(and when) the character must roll an Up Check, and how the character
sorts within a shot. All three live in one table here so nothing else
compares type strings.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Optional

from ...shared import to_int
from .status_tags import UP_CHECK_REQUIRED, add_tags, remove_tags

ACTION_VALUES = "action_values"
SHOT_COUNT = "shot_count"

OTHER_PRECEDENCE = 7


class CharacterType(str, Enum):
    PC = "PC"
    ALLY = "Ally"
    FEATURED_FOE = "Featured Foe"
    BOSS = "Boss"
    UBER_BOSS = "Uber-Boss"
    MOOK = "Mook"


@dataclass(frozen=True)
class WoundRule:
    channel: str
    threshold: Optional[int]
    precedence: int


# Allies, Featured Foes and Mooks go straight out of the fight; no Up Check.
WOUND_RULES = {
    CharacterType.UBER_BOSS: WoundRule(SHOT_COUNT, 50, 1),
    CharacterType.BOSS: WoundRule(SHOT_COUNT, 50, 2),
    CharacterType.PC: WoundRule(ACTION_VALUES, 35, 3),
    CharacterType.ALLY: WoundRule(ACTION_VALUES, None, 4),
    CharacterType.FEATURED_FOE: WoundRule(ACTION_VALUES, None, 5),
    CharacterType.MOOK: WoundRule(ACTION_VALUES, None, 6),
}

DEFAULT_RULE = WoundRule(ACTION_VALUES, None, OTHER_PRECEDENCE)


def parse_type(value: Any) -> Optional[CharacterType]:
    """Maps a stored type string to the enum; unknown or missing gives None."""
    try:
        return CharacterType(value)
    except ValueError:
        return None


def character_type(character) -> Optional[CharacterType]:
    if character is None:
        return None
    return parse_type((character.action_values or {}).get("Type"))


def rule_for(char_type: Optional[CharacterType]) -> WoundRule:
    return WOUND_RULES.get(char_type, DEFAULT_RULE)


def tracks_wounds_on_shot(char_type: Optional[CharacterType]) -> bool:
    return rule_for(char_type).channel == SHOT_COUNT


def sort_precedence(raw_type: Any) -> int:
    """
    Precedence used when ordering characters within a shot.

    A character with no type at all sorts with the Mooks; a type we don't
    know sorts after everyone.
    """
    if raw_type is None:
        return WOUND_RULES[CharacterType.MOOK].precedence
    char_type = parse_type(raw_type)
    if char_type is None:
        return OTHER_PRECEDENCE
    return WOUND_RULES[char_type].precedence


def current_wounds(character, shot) -> int:
    """Reads the wound total from whichever channel the type uses."""
    if tracks_wounds_on_shot(character_type(character)):
        return shot.count or 0
    return to_int((character.action_values or {}).get("Wounds"))


def requires_up_check(char_type: Optional[CharacterType], wounds: int) -> bool:
    threshold = rule_for(char_type).threshold
    return threshold is not None and wounds >= threshold


def enforce_up_check(
    status: Optional[Iterable[str]], char_type: Optional[CharacterType], wounds: int
) -> List[str]:
    """
    Returns `status` with up_check_required present iff the wounds call for it.

    Types without a threshold are left alone, so a GM-set tag on an Ally
    survives a wound action.
    """
    status = list(status or [])
    if rule_for(char_type).threshold is None:
        return status
    if requires_up_check(char_type, wounds):
        return add_tags(status, [UP_CHECK_REQUIRED])
    return remove_tags(status, [UP_CHECK_REQUIRED])
