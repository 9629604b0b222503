# effects.py
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from . import crud, models
from .errors import NotFound

logger = logging.getLogger("encounter.effects")


def create_character_effect(
    db: Session,
    shot: models.Shot,
    name: str,
    description: Optional[str] = None,
    severity: str = "info",
    action_value: Optional[str] = None,
    change: Optional[str] = None,
    end_sequence: Optional[int] = None,
    end_shot: Optional[int] = None,
) -> models.CharacterEffect:
    """Attaches an effect to a shot, scoped to whichever entity the shot holds."""
    effect = models.CharacterEffect(
        shot_id=shot.id,
        character_id=shot.character_id,
        vehicle_id=shot.vehicle_id,
        name=name,
        description=description,
        severity=severity,
        action_value=action_value,
        change=change,
        end_sequence=end_sequence,
        end_shot=end_shot,
    )
    db.add(effect)
    crud.commit(db, f"Create effect '{name}'")
    db.refresh(effect)
    return effect


def list_effects_for_fight(db: Session, fight_id: str) -> List[models.CharacterEffect]:
    return (
        db.query(models.CharacterEffect)
        .join(models.Shot, models.CharacterEffect.shot_id == models.Shot.id)
        .filter(models.Shot.fight_id == fight_id)
        .order_by(models.CharacterEffect.created_at)
        .all()
    )


def delete_character_effect(db: Session, fight: models.Fight, effect_id: str) -> None:
    effect = next((e for e in list_effects_for_fight(db, fight.id) if e.id == effect_id), None)
    if not effect:
        raise NotFound(f"Effect {effect_id} not found in fight {fight.id}")
    db.delete(effect)
    crud.commit(db, f"Delete effect {effect_id}")


def is_expired(effect: models.CharacterEffect, sequence: int, current_shot: Optional[int]) -> bool:
    """
    An effect lasts until the fight reaches its end sequence and end shot.

    Shots count down, so within the end sequence the effect is over once
    the counter is at or below end_shot. No end_sequence means it lasts
    until someone removes it.
    """
    if effect.end_sequence is None:
        return False
    sequence = sequence or 0
    if sequence > effect.end_sequence:
        return True
    if sequence < effect.end_sequence:
        return False
    if effect.end_shot is None:
        return True
    if current_shot is None:
        return False
    return current_shot <= effect.end_shot


def expire_effects(db: Session, fight: models.Fight) -> List[str]:
    """
    Deletes the fight's expired effects in the current transaction.

    Returns the removed effect ids. The caller commits.
    """
    expired = [
        e for e in list_effects_for_fight(db, fight.id)
        if is_expired(e, fight.sequence, fight.current_shot)
    ]
    for effect in expired:
        logger.info(f"Effect '{effect.name}' on shot {effect.shot_id} expired")
        db.delete(effect)
    return [e.id for e in expired]
