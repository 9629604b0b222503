"""
Batched combat actions.

A GM or player turn usually touches several shots at once (attacker spends
shots, target takes wounds, a mook squad loses members). The whole batch
is applied in one transaction: either every update lands or none does.
"""
from typing import Any, Iterable, Optional, Tuple, Union
import logging

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from ...shared import safe_update, to_int
from . import crud, models, schemas
from . import wound_policy
from .errors import CommitFailure, NotFound
from .status_tags import UP_CHECK_REQUIRED, add_tags, has_tag, remove_tags

logger = logging.getLogger("encounter.combat")

SHOT_FIELDS = ("shot", "impairments", "count", "location", "color", "was_rammed_or_damaged")

RawUpdate = Union[schemas.ShotUpdate, dict]


def apply_combat_action(db: Session, fight: models.Fight, character_updates: Iterable[RawUpdate]) -> models.Fight:
    """
    Applies a batch of shot updates to a fight.

    Updates are processed in order. One without a shot_id, or naming a shot
    that isn't in this fight, is skipped and logged rather than failing the
    batch; clients routinely send stale shot ids after someone leaves.

    Returns the refreshed fight. Raises NotFound if the fight itself is
    gone and CommitFailure (or its ConstraintViolation subclass) if the
    transaction can't be committed, in which case nothing was changed.
    """
    character_updates = list(character_updates)
    logger.info(f"Processing {len(character_updates)} combat updates for fight {fight.id}")

    try:
        locked = crud.lock_fight(db, fight.id)
        if not locked:
            raise NotFound(f"Fight {fight.id} not found")
        applied, skipped = _apply_batch(db, locked, character_updates)
        crud.touch_fight(locked)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Combat action on fight {fight.id} failed: {e}")
        raise CommitFailure(f"Combat action on fight {fight.id} failed", reason=str(e))
    except Exception:
        db.rollback()
        raise

    crud.commit(db, f"Combat action on fight {fight.id}")
    logger.info(f"Combat action on fight {fight.id}: {applied} applied, {skipped} skipped")
    db.refresh(locked)
    return locked


def _apply_batch(db: Session, fight: models.Fight, character_updates) -> Tuple[int, int]:
    applied = 0
    skipped = 0
    for raw in character_updates:
        update = _parse_update(raw)
        if update is None:
            skipped += 1
            continue

        shot = crud.get_shot_in_fight(db, fight, update.shot_id)
        if not shot:
            logger.warning(f"Shot {update.shot_id} not found in fight {fight.id}, skipping update")
            skipped += 1
            continue

        _maybe_record_event(db, fight, update.event)
        _apply_shot_update(shot, update)
        applied += 1
    return applied, skipped


def _parse_update(raw: Any) -> Optional[schemas.ShotUpdate]:
    if isinstance(raw, schemas.ShotUpdate):
        update = raw
    else:
        try:
            update = schemas.ShotUpdate.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Malformed combat update skipped: {raw!r} ({e.error_count()} errors)")
            return None

    if not update.shot_id:
        logger.warning(f"Combat update missing shot_id, skipping: {raw!r}")
        return None
    return update


def _maybe_record_event(db: Session, fight: models.Fight, event: Optional[dict]) -> None:
    if not event:
        return
    crud.add_fight_event(
        db,
        fight,
        event_type=event.get("event_type") or event.get("type") or "combat_action",
        description=event.get("description") or "Combat action",
        details=event.get("details") or event,
    )


def _apply_shot_update(shot: models.Shot, update: schemas.ShotUpdate) -> None:
    name = _entity_name(shot)

    for field in SHOT_FIELDS:
        value = getattr(update, field)
        if value is not None:
            setattr(shot, field, value)
            logger.info(f"  Updated {name}: {field} = {value}")

    character = shot.character
    if character is None:
        if update.wounds is not None or update.action_values or update.add_status or update.remove_status:
            logger.warning(f"  {name} is not a character; ignoring wounds/action values/status in update")
        return

    wounds_touched = False
    if update.action_values:
        character.action_values = safe_update(character.action_values, update.action_values)
        flag_modified(character, "action_values")
        logger.info(f"  Updated {name}: action_values {update.action_values}")
        wounds_touched = "Wounds" in update.action_values

    # Read the type after the merge; action_values may change it.
    char_type = wound_policy.character_type(character)

    if update.wounds is not None:
        _apply_wounds(character, shot, char_type, update.wounds)
        wounds_touched = True
    elif update.count is not None and wound_policy.tracks_wounds_on_shot(char_type):
        wounds_touched = True

    old_status = list(character.status or [])
    status = remove_tags(old_status, update.remove_status)
    status = add_tags(status, update.add_status)

    if wounds_touched:
        wounds = wound_policy.current_wounds(character, shot)
        enforced = wound_policy.enforce_up_check(status, char_type, wounds)
        if has_tag(enforced, UP_CHECK_REQUIRED) and not has_tag(status, UP_CHECK_REQUIRED):
            logger.info(f"  {character.name} is at or above wound threshold ({wounds}), enforcing Up Check")
        status = enforced

    if status != old_status:
        character.status = status
        flag_modified(character, "status")
        logger.info(f"  Updated {character.name}: status = {status}")


def _apply_wounds(character: models.Character, shot: models.Shot, char_type, delta: int) -> None:
    """Routes a wound delta to the shot count or to action_values['Wounds']."""
    if wound_policy.tracks_wounds_on_shot(char_type):
        shot.count = (shot.count or 0) + delta
        logger.info(f"  Updated {character.name}: count = {shot.count}")
        return

    current = to_int((character.action_values or {}).get("Wounds"))
    character.action_values = safe_update(character.action_values, {"Wounds": current + delta})
    flag_modified(character, "action_values")
    logger.info(f"  Updated {character.name}: Wounds = {current + delta}")


def _entity_name(shot: models.Shot) -> str:
    if shot.character is not None:
        return shot.character.name
    if shot.vehicle is not None:
        return shot.vehicle.name
    return "Unknown"
