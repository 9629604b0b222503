"""Up Check resolution (the recovery roll after crossing the wound threshold)."""
from typing import Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from . import crud, models
from .errors import CommitFailure, NotFound
from .status_tags import OUT_OF_FIGHT, UP_CHECK_REQUIRED, add_tags, remove_tags

logger = logging.getLogger("encounter.up_check")


def apply_up_check(
    db: Session,
    fight: models.Fight,
    character_id: str,
    success: bool,
    result: Optional[int] = None,
) -> models.Fight:
    """
    Resolves an Up Check for a character in the fight.

    Passing keeps the character in the fight at its current wound total;
    nothing is healed. Failing takes it out of the fight. Either way the
    up_check_required tag is cleared and no other field changes.
    """
    logger.info(f"Applying up check for character {character_id} in fight {fight.id}")

    try:
        locked = crud.lock_fight(db, fight.id)
        if not locked:
            raise NotFound(f"Fight {fight.id} not found")
        character = crud.get_character(db, character_id)
        if not character or not crud.find_character_shot(db, locked, character_id):
            raise NotFound(f"Character {character_id} is not in fight {fight.id}")

        crud.add_fight_event(
            db,
            locked,
            event_type="up_check",
            description="Up check performed",
            details={"character_id": character_id, "result": result, "success": success},
        )

        status = remove_tags(character.status, [UP_CHECK_REQUIRED])
        if not success:
            status = add_tags(status, [OUT_OF_FIGHT])
        character.status = status
        flag_modified(character, "status")
        crud.touch_fight(locked)
    except SQLAlchemyError as e:
        db.rollback()
        raise CommitFailure(f"Up check in fight {fight.id} failed", reason=str(e))
    except Exception:
        db.rollback()
        raise

    crud.commit(db, f"Up check for {character.name}")
    if success:
        logger.info(f"UP CHECK SUCCESS: {character.name} stays in the fight")
    else:
        logger.info(f"UP CHECK FAILED: {character.name} is out of the fight")
    db.refresh(locked)
    return locked
