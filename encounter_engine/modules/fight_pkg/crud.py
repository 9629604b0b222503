# crud.py
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from . import models
from .errors import CommitFailure, ConstraintViolation, InvalidAction, NotFound

logger = logging.getLogger("encounter.crud")


def commit(db: Session, action: str) -> None:
    """
    Commits the session or rolls it back and raises.

    IntegrityError means the store refused the write (unique index, check
    constraint); anything else SQLAlchemy raises is a plain commit failure.
    Either way nothing from this transaction survives.
    """
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"{action} rejected by a store constraint: {e.orig}")
        raise ConstraintViolation(f"{action} violates a store constraint", reason=str(e.orig))
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"{action} failed to commit: {e}")
        raise CommitFailure(f"{action} could not be committed", reason=str(e))


# --- Fight ---
def lock_fight(db: Session, fight_id: str, with_rows: bool = True) -> Optional[models.Fight]:
    """
    Locks the fight and re-reads it from the store.

    Rows the session already holds are overwritten (populate_existing), so
    values loaded before the lock, e.g. by the route that looked the fight
    up, can't leak into a read-modify-write. with_rows also locks and
    re-reads the fight's shots and the characters and vehicles on them.
    Call it before staging any change: pending edits on those rows are lost.
    """
    fight = (
        db.query(models.Fight)
        .filter(models.Fight.id == fight_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not fight or not with_rows:
        return fight

    shots = (
        db.query(models.Shot)
        .filter(models.Shot.fight_id == fight_id)
        .with_for_update()
        .populate_existing()
        .all()
    )
    character_ids = [s.character_id for s in shots if s.character_id]
    vehicle_ids = [s.vehicle_id for s in shots if s.vehicle_id]
    # Results land in the identity map; shot.character/shot.vehicle resolve to them.
    for model, ids in ((models.Character, character_ids), (models.Vehicle, vehicle_ids)):
        if ids:
            db.query(model).filter(model.id.in_(ids)).with_for_update().populate_existing().all()
    return fight


def get_fight_with_shots(db: Session, fight_id: str) -> Optional[models.Fight]:
    """Loads a fight with everything the encounter view needs in a few queries."""
    return (
        db.query(models.Fight)
        .options(
            selectinload(models.Fight.shots).selectinload(models.Shot.character),
            selectinload(models.Fight.shots).selectinload(models.Shot.vehicle),
            selectinload(models.Fight.shots).selectinload(models.Shot.character_effects),
            selectinload(models.Fight.chase_relationships),
        )
        .filter(models.Fight.id == fight_id)
        .first()
    )


def require_fight(db: Session, fight_id: str) -> models.Fight:
    fight = get_fight_with_shots(db, fight_id)
    if not fight:
        raise NotFound(f"Fight {fight_id} not found")
    return fight


def create_fight(db: Session, name: str, campaign_id: Optional[str] = None, **fields) -> models.Fight:
    db_fight = models.Fight(name=name, campaign_id=campaign_id, **fields)
    db.add(db_fight)
    commit(db, f"Create fight '{name}'")
    db.refresh(db_fight)
    return db_fight


def touch_fight(fight: models.Fight) -> None:
    """Bumps updated_at; the caller's commit persists it."""
    fight.updated_at = datetime.now(timezone.utc)


# --- Shot ---
def get_shot(db: Session, shot_id: str) -> Optional[models.Shot]:
    return db.query(models.Shot).filter(models.Shot.id == shot_id).first()


def get_shot_in_fight(db: Session, fight: models.Fight, shot_id: Optional[str]) -> Optional[models.Shot]:
    """Returns the shot only if it belongs to this fight."""
    if not shot_id:
        return None
    return (
        db.query(models.Shot)
        .filter(models.Shot.id == shot_id, models.Shot.fight_id == fight.id)
        .first()
    )


def find_character_shot(db: Session, fight: models.Fight, character_id: str) -> Optional[models.Shot]:
    return (
        db.query(models.Shot)
        .filter(models.Shot.fight_id == fight.id, models.Shot.character_id == character_id)
        .first()
    )


def create_shot(
    db: Session,
    fight: models.Fight,
    character: Optional[models.Character] = None,
    vehicle: Optional[models.Vehicle] = None,
    **fields,
) -> models.Shot:
    """Adds a character or a vehicle (never both) to the fight."""
    if (character is None) == (vehicle is None):
        raise InvalidAction("A shot must have either a character or a vehicle")

    db_shot = models.Shot(
        fight_id=fight.id,
        character_id=character.id if character else None,
        vehicle_id=vehicle.id if vehicle else None,
        **fields,
    )
    db.add(db_shot)
    commit(db, "Create shot")
    db.refresh(db_shot)
    return db_shot


# --- Character / Vehicle ---
def get_character(db: Session, character_id: str) -> Optional[models.Character]:
    return db.query(models.Character).filter(models.Character.id == character_id).first()


def get_vehicle(db: Session, vehicle_id: str) -> Optional[models.Vehicle]:
    return db.query(models.Vehicle).filter(models.Vehicle.id == vehicle_id).first()


# --- Fight events ---
def add_fight_event(
    db: Session,
    fight: models.Fight,
    event_type: str,
    description: str,
    details: Optional[Dict[str, Any]] = None,
) -> models.FightEvent:
    """Stages an event in the current transaction; it commits with the action."""
    db_event = models.FightEvent(
        fight_id=fight.id,
        event_type=event_type,
        description=description,
        details=details or {},
    )
    db.add(db_event)
    return db_event


def list_fight_events(db: Session, fight_id: str) -> List[models.FightEvent]:
    """Lists a fight's events in the order they were recorded."""
    return (
        db.query(models.FightEvent)
        .filter(models.FightEvent.fight_id == fight_id)
        .order_by(models.FightEvent.id.asc())
        .all()
    )
