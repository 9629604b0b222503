# encounter_engine/modules/fight.py
"""
HTTP adapter for live fights.

Thin: each route loads the fight, calls one service, publishes
fight.updated (and campaign.updated when the fight belongs to one) as a
background task once the response is sent, and returns the projected
encounter. Routes are plain functions, so FastAPI runs them in its
threadpool.
"""
from typing import List, Optional
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from ..event_bus import CAMPAIGN_UPDATED, FIGHT_UPDATED, get_event_bus
from .fight_pkg import chase_action as chase_action_service
from .fight_pkg import chases, combat_action, crud, encounter, fights, schemas, up_check
from .fight_pkg import database as fight_db
from .fight_pkg.errors import CommitFailure, ConstraintViolation, EncounterError, InvalidAction, NotFound
from .fight_pkg.models import Fight

logger = logging.getLogger("encounter.api")

router = APIRouter(prefix="/fights", tags=["Fights"])


def get_db():
    db = fight_db.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _http_error(e: EncounterError) -> HTTPException:
    if isinstance(e, NotFound):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, (ConstraintViolation, InvalidAction)):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, CommitFailure):
        logger.error(f"Commit failure: {e.reason}")
        return HTTPException(status_code=500, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


def _load(db: Session, fight_id: str) -> Fight:
    try:
        return crud.require_fight(db, fight_id)
    except NotFound as e:
        raise _http_error(e)


async def _publish_updates(fight_id: str, campaign_id: Optional[str]) -> None:
    bus = get_event_bus()
    await bus.publish(FIGHT_UPDATED, {"fight_id": fight_id})
    if campaign_id:
        await bus.publish(CAMPAIGN_UPDATED, {"campaign_id": campaign_id})


def _render_after_write(
    db: Session, background_tasks: BackgroundTasks, fight_id: str, campaign_id: Optional[str]
) -> schemas.Encounter:
    background_tasks.add_task(_publish_updates, fight_id, campaign_id)
    db.expire_all()
    return encounter.project(_load(db, fight_id))


@router.get("/{fight_id}/encounter", response_model=schemas.Encounter)
def get_encounter(fight_id: str, db: Session = Depends(get_db)):
    return encounter.project(_load(db, fight_id))


@router.post("/{fight_id}/combat-actions", response_model=schemas.Encounter)
def post_combat_action(
    fight_id: str,
    request: schemas.CombatActionRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """Applies a batch of shot updates. All or nothing."""
    fight = _load(db, fight_id)
    campaign_id = fight.campaign_id
    try:
        combat_action.apply_combat_action(db, fight, request.character_updates)
    except EncounterError as e:
        raise _http_error(e)
    return _render_after_write(db, background_tasks, fight_id, campaign_id)


@router.post("/{fight_id}/up-checks", response_model=schemas.Encounter)
def post_up_check(
    fight_id: str,
    request: schemas.UpCheckRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    fight = _load(db, fight_id)
    campaign_id = fight.campaign_id
    try:
        up_check.apply_up_check(db, fight, request.character_id, request.success, request.result)
    except EncounterError as e:
        raise _http_error(e)
    return _render_after_write(db, background_tasks, fight_id, campaign_id)


@router.post("/{fight_id}/chase-actions", response_model=schemas.Encounter)
def post_chase_action(
    fight_id: str,
    request: schemas.ChaseActionRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    fight = _load(db, fight_id)
    campaign_id = fight.campaign_id
    try:
        chase_action_service.apply_chase_action(db, fight, request.vehicle_updates)
    except EncounterError as e:
        raise _http_error(e)
    return _render_after_write(db, background_tasks, fight_id, campaign_id)


@router.post("/{fight_id}/advance-shot", response_model=schemas.Encounter)
def post_advance_shot(fight_id: str, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    fight = _load(db, fight_id)
    campaign_id = fight.campaign_id
    try:
        fights.advance_shot_counter(db, fight)
    except EncounterError as e:
        raise _http_error(e)
    return _render_after_write(db, background_tasks, fight_id, campaign_id)


@router.post("/{fight_id}/reset", response_model=schemas.Encounter)
def post_reset(
    fight_id: str,
    background_tasks: BackgroundTasks,
    delete_events: bool = False,
    db: Session = Depends(get_db),
):
    fight = _load(db, fight_id)
    campaign_id = fight.campaign_id
    try:
        fights.reset_fight(db, fight, delete_events=delete_events)
    except EncounterError as e:
        raise _http_error(e)
    return _render_after_write(db, background_tasks, fight_id, campaign_id)


@router.post("/{fight_id}/end", response_model=schemas.Encounter)
def post_end(fight_id: str, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    fight = _load(db, fight_id)
    campaign_id = fight.campaign_id
    try:
        fights.end_fight(db, fight)
    except EncounterError as e:
        raise _http_error(e)
    return _render_after_write(db, background_tasks, fight_id, campaign_id)


@router.get("/{fight_id}/events", response_model=List[schemas.FightEvent])
def get_events(fight_id: str, db: Session = Depends(get_db)):
    _load(db, fight_id)
    return crud.list_fight_events(db, fight_id)


# --- Chase relationships ---
@router.get("/{fight_id}/chase-relationships", response_model=List[schemas.ChaseRelationship])
def get_chase_relationships(
    fight_id: str,
    shot_id: Optional[str] = None,
    active: Optional[bool] = True,
    db: Session = Depends(get_db),
):
    _load(db, fight_id)
    return chases.list_relationships(db, fight_id=fight_id, shot_id=shot_id, active=active)


@router.post("/{fight_id}/chase-relationships", response_model=schemas.ChaseRelationship, status_code=201)
def post_chase_relationship(
    fight_id: str,
    request: schemas.ChaseRelationshipCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    fight = _load(db, fight_id)
    campaign_id = fight.campaign_id
    try:
        relationship = chases.create_relationship(
            db, fight, request.pursuer_id, request.evader_id, request.position
        )
    except EncounterError as e:
        raise _http_error(e)
    background_tasks.add_task(_publish_updates, fight_id, campaign_id)
    return relationship


def _load_relationship(db: Session, fight: Fight, relationship_id: str):
    relationship = chases.get_relationship(db, fight, relationship_id)
    if not relationship:
        raise HTTPException(status_code=404, detail=f"Chase relationship {relationship_id} not found")
    return relationship


@router.patch("/{fight_id}/chase-relationships/{relationship_id}", response_model=schemas.ChaseRelationship)
def patch_chase_relationship(
    fight_id: str,
    relationship_id: str,
    request: schemas.ChaseRelationshipUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    fight = _load(db, fight_id)
    campaign_id = fight.campaign_id
    relationship = _load_relationship(db, fight, relationship_id)
    try:
        if request.active is True and not relationship.active:
            raise InvalidAction("A finished chase can't be reopened; start a new one")
        if request.position is not None:
            relationship = chases.update_position(db, relationship, request.position)
        if request.active is False:
            relationship = chases.deactivate_relationship(db, relationship)
    except EncounterError as e:
        raise _http_error(e)
    background_tasks.add_task(_publish_updates, fight_id, campaign_id)
    return relationship


@router.delete("/{fight_id}/chase-relationships/{relationship_id}", response_model=schemas.ChaseRelationship)
def delete_chase_relationship(
    fight_id: str,
    relationship_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """Ends the chase. The relationship is deactivated, not deleted."""
    fight = _load(db, fight_id)
    campaign_id = fight.campaign_id
    relationship = _load_relationship(db, fight, relationship_id)
    try:
        relationship = chases.deactivate_relationship(db, relationship)
    except EncounterError as e:
        raise _http_error(e)
    background_tasks.add_task(_publish_updates, fight_id, campaign_id)
    return relationship
