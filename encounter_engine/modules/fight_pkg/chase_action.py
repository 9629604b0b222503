"""
Vehicle chase actions.

Same transaction rules as combat actions: the batch lands whole or not at
all, and updates naming an unknown vehicle are skipped.
"""
from typing import Any, Dict, Iterable, Optional
import logging

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from ...shared import to_int
from . import chases, crud, models, schemas
from .errors import CommitFailure, NotFound

logger = logging.getLogger("encounter.chase")

# Added to the stored value instead of replacing it.
ADDITIVE_FIELDS = ("Chase Points", "Condition Points")


def apply_chase_action(db: Session, fight: models.Fight, vehicle_updates: Iterable[Any]) -> models.Fight:
    """
    Applies a batch of vehicle updates to a fight.

    Each update may merge action values into the vehicle, move the chase
    relationship with a target vehicle shot to near or far, and spend
    shots for the character taking the action.
    """
    vehicle_updates = list(vehicle_updates)
    logger.info(f"Applying chase action with {len(vehicle_updates)} updates for fight {fight.id}")

    try:
        locked = crud.lock_fight(db, fight.id)
        if not locked:
            raise NotFound(f"Fight {fight.id} not found")

        crud.add_fight_event(
            db,
            locked,
            event_type="chase_action",
            description=f"Chase action performed with {len(vehicle_updates)} updates",
            details={"updates_count": len(vehicle_updates)},
        )

        skipped = 0
        for raw in vehicle_updates:
            if not _apply_vehicle_update(db, locked, raw):
                skipped += 1
        crud.touch_fight(locked)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Chase action on fight {fight.id} failed: {e}")
        raise CommitFailure(f"Chase action on fight {fight.id} failed", reason=str(e))
    except Exception:
        db.rollback()
        raise

    crud.commit(db, f"Chase action on fight {fight.id}")
    logger.info(f"Chase action on fight {fight.id}: {len(vehicle_updates) - skipped} applied, {skipped} skipped")
    db.refresh(locked)
    return locked


def merge_action_values(current: Optional[Dict[str, Any]], changes: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(current or {})
    for key, value in changes.items():
        if key in ADDITIVE_FIELDS:
            existing = to_int(merged.get(key))
            merged[key] = existing + to_int(value)
            logger.info(f"  Adding {to_int(value)} to {key} (current: {existing}) = {merged[key]}")
        else:
            merged[key] = value
    return merged


def _apply_vehicle_update(db: Session, fight: models.Fight, raw: Any) -> bool:
    try:
        update = raw if isinstance(raw, schemas.VehicleUpdate) else schemas.VehicleUpdate.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"Malformed chase update skipped: {raw!r} ({e.error_count()} errors)")
        return False

    vehicle_id = update.vehicle_id or update.id
    vehicle = crud.get_vehicle(db, vehicle_id) if vehicle_id else None
    if not vehicle:
        logger.warning(f"Vehicle {vehicle_id} not found, skipping chase update")
        return False

    if update.action_values:
        vehicle.action_values = merge_action_values(vehicle.action_values, update.action_values)
        flag_modified(vehicle, "action_values")

    _maybe_update_position(db, fight, vehicle, update)
    _maybe_spend_shots(db, fight, update)
    return True


def _vehicle_shot(db: Session, fight: models.Fight, vehicle: models.Vehicle, shot_id: Optional[str]):
    if shot_id:
        return crud.get_shot_in_fight(db, fight, shot_id)
    return (
        db.query(models.Shot)
        .filter(models.Shot.fight_id == fight.id, models.Shot.vehicle_id == vehicle.id)
        .first()
    )


def _maybe_update_position(db: Session, fight: models.Fight, vehicle: models.Vehicle, update) -> None:
    if not (update.position and update.target_shot_id):
        return

    chases.validate_position(update.position)
    shot = _vehicle_shot(db, fight, vehicle, update.shot_id)
    target = crud.get_shot_in_fight(db, fight, update.target_shot_id)
    if not shot or not target:
        logger.warning(
            f"  Chase position for {vehicle.name} skipped: shot or target {update.target_shot_id} not in fight"
        )
        return

    if update.role == "evader":
        pursuer_id, evader_id = target.id, shot.id
    else:
        pursuer_id, evader_id = shot.id, target.id

    relationship = chases.get_or_create_relationship(db, fight, pursuer_id, evader_id)
    relationship.position = update.position
    logger.info(f"  Chase {relationship.id} position is now {update.position}")


def _maybe_spend_shots(db: Session, fight: models.Fight, update) -> None:
    if not update.character_id or not update.shot_cost or update.shot_cost <= 0:
        return

    shot = crud.find_character_shot(db, fight, update.character_id)
    if not shot:
        logger.warning(f"  Character {update.character_id} has no shot in fight {fight.id}")
        return
    if shot.shot is None:
        logger.warning(f"  Character {update.character_id} is hidden; no shots spent")
        return

    shot.shot = shot.shot - update.shot_cost
    logger.info(f"  Spent {update.shot_cost} shots for character {update.character_id}, now on {shot.shot}")
