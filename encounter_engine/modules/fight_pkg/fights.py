"""
Fight lifecycle: the shot counter, resets, ending a fight and driver links.
"""
from datetime import datetime, timezone
from typing import Optional
import logging

from sqlalchemy.orm import Session

from . import crud, effects, models
from .errors import InvalidAction, NotFound

logger = logging.getLogger("encounter.fight")

TOP_SHOT = 18


def advance_shot_counter(db: Session, fight: models.Fight) -> models.Fight:
    """
    Moves the shot counter down by one.

    At zero (or before the first sequence) it wraps to the top shot and a
    new sequence begins. Effects the fight has now outlived are removed in
    the same transaction.
    """
    locked = crud.lock_fight(db, fight.id, with_rows=False)
    if not locked:
        raise NotFound(f"Fight {fight.id} not found")
    fight = locked

    if fight.current_shot is None or fight.current_shot <= 0:
        fight.current_shot = TOP_SHOT
        fight.sequence = (fight.sequence or 0) + 1
        if fight.started_at is None:
            fight.started_at = datetime.now(timezone.utc)
        logger.info(f"Fight {fight.id} starts sequence {fight.sequence}")
    else:
        fight.current_shot -= 1

    expired = effects.expire_effects(db, fight)
    crud.touch_fight(fight)
    crud.commit(db, f"Advance shot counter for fight {fight.id}")
    logger.info(
        f"Fight {fight.id} now at sequence {fight.sequence}, shot {fight.current_shot}"
        f" ({len(expired)} effects expired)"
    )
    db.refresh(fight)
    return fight


def reset_fight(db: Session, fight: models.Fight, delete_events: bool = False) -> models.Fight:
    """Puts the fight back to its initial state; every shot goes back to hidden."""
    fight.sequence = 0
    fight.current_shot = None
    fight.started_at = None
    fight.ended_at = None
    fight.active = True

    db.query(models.Shot).filter(models.Shot.fight_id == fight.id).update(
        {
            models.Shot.shot: None,
            models.Shot.impairments: 0,
            models.Shot.count: 0,
            models.Shot.was_rammed_or_damaged: False,
        },
        synchronize_session=False,
    )
    if delete_events:
        db.query(models.FightEvent).filter(models.FightEvent.fight_id == fight.id).delete(
            synchronize_session=False
        )

    crud.touch_fight(fight)
    crud.commit(db, f"Reset fight {fight.id}")
    db.expire_all()
    logger.info(f"Fight {fight.id} reset (events deleted: {delete_events})")
    return crud.get_fight_with_shots(db, fight.id)


def end_fight(db: Session, fight: models.Fight) -> models.Fight:
    fight.active = False
    fight.ended_at = datetime.now(timezone.utc)
    crud.touch_fight(fight)
    crud.commit(db, f"End fight {fight.id}")
    db.refresh(fight)
    logger.info(f"Fight {fight.id} ended")
    return fight


def touch(db: Session, fight: models.Fight) -> models.Fight:
    crud.touch_fight(fight)
    crud.commit(db, f"Touch fight {fight.id}")
    db.refresh(fight)
    return fight


def create_fight_event(
    db: Session,
    fight: models.Fight,
    event_type: str,
    description: str,
    details: Optional[dict] = None,
) -> models.FightEvent:
    event = crud.add_fight_event(db, fight, event_type, description, details)
    crud.commit(db, f"Record {event_type} event")
    db.refresh(event)
    return event


def assign_driver(db: Session, driver_shot: models.Shot, vehicle_shot: models.Shot) -> models.Shot:
    """
    Puts a character behind the wheel of a vehicle.

    Both directions are written: the character shot's driving_id and the
    vehicle shot's driver_id. Anyone else driving that vehicle is unseated.
    """
    if driver_shot.character_id is None or vehicle_shot.vehicle_id is None:
        raise InvalidAction("A driver must be a character shot and the target a vehicle shot")
    if driver_shot.fight_id != vehicle_shot.fight_id:
        raise InvalidAction("Driver and vehicle must be in the same fight")

    _unlink_drivers(db, vehicle_shot.fight_id, vehicle_shot.id)
    driver_shot.driving_id = vehicle_shot.id
    vehicle_shot.driver_id = driver_shot.id
    crud.commit(db, f"Assign driver {driver_shot.id} to {vehicle_shot.id}")
    db.refresh(driver_shot)
    logger.info(f"Shot {driver_shot.id} is now driving {vehicle_shot.id}")
    return driver_shot


def clear_vehicle_drivers(db: Session, fight_id: str, vehicle_shot_id: str) -> int:
    """Unlinks every character driving the vehicle shot. Returns how many were unlinked."""
    count = _unlink_drivers(db, fight_id, vehicle_shot_id)
    crud.commit(db, f"Clear drivers of {vehicle_shot_id}")
    db.expire_all()
    if count:
        logger.info(f"Cleared {count} drivers from vehicle shot {vehicle_shot_id}")
    return count


def _unlink_drivers(db: Session, fight_id: str, vehicle_shot_id: str) -> int:
    count = (
        db.query(models.Shot)
        .filter(models.Shot.fight_id == fight_id, models.Shot.driving_id == vehicle_shot_id)
        .update({models.Shot.driving_id: None}, synchronize_session="fetch")
    )
    db.query(models.Shot).filter(models.Shot.id == vehicle_shot_id).update(
        {models.Shot.driver_id: None}, synchronize_session="fetch"
    )
    return count
