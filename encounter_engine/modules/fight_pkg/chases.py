"""
Chase relationships between vehicles in a fight.

Relationships point at vehicle *shots*, not vehicle records, so two
instances of the same vehicle template can chase different targets. The
"one active chase per pair" rule is a partial unique index in the store;
nothing here checks for duplicates before inserting, so two concurrent
creates can't both win.
"""
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import crud, models
from .errors import ConstraintViolation, InvalidAction, NotFound

logger = logging.getLogger("encounter.chase")

POSITIONS = ("near", "far")


def validate_position(position: str) -> None:
    if position not in POSITIONS:
        raise InvalidAction(f"Position must be one of {', '.join(POSITIONS)}, got '{position}'")


def _require_vehicle_shot(db: Session, fight: models.Fight, shot_id: str) -> models.Shot:
    shot = crud.get_shot_in_fight(db, fight, shot_id)
    if not shot:
        raise NotFound(f"Shot {shot_id} not found in fight {fight.id}")
    if shot.vehicle_id is None:
        raise InvalidAction(f"Shot {shot_id} is not a vehicle")
    return shot


def _pair_filter(fight_id: str, a: str, b: str):
    low, high = sorted([a, b])
    return (
        models.ChaseRelationship.fight_id == fight_id,
        models.ChaseRelationship.pair_low == low,
        models.ChaseRelationship.pair_high == high,
        models.ChaseRelationship.active.is_(True),
    )


def build_relationship(
    db: Session, fight: models.Fight, pursuer_id: str, evader_id: str, position: str = "far"
) -> models.ChaseRelationship:
    """
    Stages a new relationship in the current transaction and flushes it.

    Used inside larger transactions (chase actions); the store's unique
    index and check constraint fire on the flush.
    """
    validate_position(position)
    _require_vehicle_shot(db, fight, pursuer_id)
    _require_vehicle_shot(db, fight, evader_id)

    relationship = models.ChaseRelationship(
        fight_id=fight.id,
        pursuer_id=pursuer_id,
        evader_id=evader_id,
        position=position,
        active=True,
    )
    db.add(relationship)
    try:
        db.flush()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Chase {pursuer_id} -> {evader_id} rejected in fight {fight.id}: {e.orig}")
        raise ConstraintViolation(
            f"An active chase between {pursuer_id} and {evader_id} already exists or is invalid",
            reason=str(e.orig),
        )
    return relationship


def create_relationship(
    db: Session, fight: models.Fight, pursuer_id: str, evader_id: str, position: str = "far"
) -> models.ChaseRelationship:
    """Starts a chase. Raises ConstraintViolation for a duplicate active pair or a self chase."""
    relationship = build_relationship(db, fight, pursuer_id, evader_id, position)
    crud.touch_fight(fight)
    crud.commit(db, f"Create chase {pursuer_id} -> {evader_id}")
    db.refresh(relationship)
    logger.info(f"Chase started in fight {fight.id}: {pursuer_id} pursues {evader_id} ({position})")
    return relationship


def get_relationship(db: Session, fight: models.Fight, relationship_id: str) -> Optional[models.ChaseRelationship]:
    return (
        db.query(models.ChaseRelationship)
        .filter(
            models.ChaseRelationship.id == relationship_id,
            models.ChaseRelationship.fight_id == fight.id,
        )
        .first()
    )


def get_active_relationship(db: Session, fight: models.Fight, a: str, b: str) -> Optional[models.ChaseRelationship]:
    """Finds the active relationship for the unordered pair {a, b}."""
    return db.query(models.ChaseRelationship).filter(*_pair_filter(fight.id, a, b)).first()


def get_or_create_relationship(
    db: Session, fight: models.Fight, pursuer_id: str, evader_id: str
) -> models.ChaseRelationship:
    """
    Returns the active relationship for the pair, staging a new one at
    "far" if there isn't one. Does not commit.
    """
    existing = get_active_relationship(db, fight, pursuer_id, evader_id)
    if existing:
        return existing
    return build_relationship(db, fight, pursuer_id, evader_id, "far")


def list_relationships(
    db: Session,
    fight_id: Optional[str] = None,
    shot_id: Optional[str] = None,
    active: Optional[bool] = True,
) -> List[models.ChaseRelationship]:
    """
    Lists relationships, active ones only unless active is False or None.

    active=None returns both, which is what the fight history view wants.
    """
    query = db.query(models.ChaseRelationship)
    if fight_id:
        query = query.filter(models.ChaseRelationship.fight_id == fight_id)
    if shot_id:
        query = query.filter(
            or_(
                models.ChaseRelationship.pursuer_id == shot_id,
                models.ChaseRelationship.evader_id == shot_id,
            )
        )
    if active is not None:
        query = query.filter(models.ChaseRelationship.active.is_(active))
    return query.order_by(models.ChaseRelationship.created_at).all()


def relationship_view(relationship: models.ChaseRelationship, shot_id: str) -> Dict[str, Any]:
    return {
        "id": relationship.id,
        "position": relationship.position,
        "pursuer_id": relationship.pursuer_id,
        "evader_id": relationship.evader_id,
        "is_pursuer": relationship.pursuer_id == shot_id,
    }


def relationships_for_vehicle(db: Session, fight: models.Fight, shot_id: str) -> List[Dict[str, Any]]:
    """Active relationships involving the vehicle shot, tagged with is_pursuer."""
    return [
        relationship_view(r, shot_id)
        for r in list_relationships(db, fight_id=fight.id, shot_id=shot_id, active=True)
    ]


def update_position(db: Session, relationship: models.ChaseRelationship, position: str) -> models.ChaseRelationship:
    validate_position(position)
    relationship.position = position
    crud.commit(db, f"Update chase {relationship.id}")
    db.refresh(relationship)
    logger.info(f"Chase {relationship.id} position is now {position}")
    return relationship


def deactivate_relationship(db: Session, relationship: models.ChaseRelationship) -> models.ChaseRelationship:
    """Ends a chase. The row is kept for the fight's history."""
    relationship.active = False
    crud.commit(db, f"Deactivate chase {relationship.id}")
    db.refresh(relationship)
    logger.info(f"Chase {relationship.id} deactivated")
    return relationship
