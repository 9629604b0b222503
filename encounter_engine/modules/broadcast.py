# encounter_engine/modules/broadcast.py
"""
Realtime fan-out.

Listens for fight/campaign updates and publishes the freshly rendered
encounter under encounter.rendered, keyed by fight id. Delivering that to
connected clients is up to whatever transport subscribes to it.
"""
from typing import Any, Callable, Dict, Optional
import logging

from sqlalchemy.orm import Session

from ..shared import with_db_session
from ..event_bus import CAMPAIGN_UPDATED, ENCOUNTER_RENDERED, FIGHT_UPDATED, EventBus
from .fight_pkg import crud, encounter, models
from .fight_pkg import database as fight_db

logger = logging.getLogger("encounter.broadcast")


def render_fight(db: Session, fight_id: str) -> Optional[Dict[str, Any]]:
    fight = crud.get_fight_with_shots(db, fight_id)
    if not fight:
        return None
    return encounter.project(fight).model_dump(mode="json")


def active_fight_ids(db: Session, campaign_id: str):
    rows = (
        db.query(models.Fight.id)
        .filter(models.Fight.campaign_id == campaign_id, models.Fight.active.is_(True))
        .all()
    )
    return [r[0] for r in rows]


def make_handlers(bus: EventBus, session_factory: Callable[[], Session]):
    @with_db_session(session_factory)
    def _render(fight_id: str, db: Session = None):
        return render_fight(db, fight_id)

    @with_db_session(session_factory)
    def _fight_ids(campaign_id: str, db: Session = None):
        return active_fight_ids(db, campaign_id)

    async def _on_fight_updated(topic: str, payload: Dict[str, Any]) -> None:
        fight_id = payload.get("fight_id")
        if not fight_id:
            logger.warning(f"[broadcast] {topic} without fight_id: {payload}")
            return
        rendered = _render(fight_id)
        if rendered is None:
            logger.warning(f"[broadcast] fight {fight_id} vanished before it could be rendered")
            return
        await bus.publish(ENCOUNTER_RENDERED, {"fight_id": fight_id, "encounter": rendered})

    async def _on_campaign_updated(topic: str, payload: Dict[str, Any]) -> None:
        campaign_id = payload.get("campaign_id")
        if not campaign_id:
            logger.warning(f"[broadcast] {topic} without campaign_id: {payload}")
            return
        fight_ids = _fight_ids(campaign_id)
        logger.info(f"[broadcast] campaign {campaign_id} updated, re-rendering {len(fight_ids)} fights")
        for fight_id in fight_ids:
            await _on_fight_updated(FIGHT_UPDATED, {"fight_id": fight_id})

    return _on_fight_updated, _on_campaign_updated


async def register(bus: EventBus, session_factory: Optional[Callable[[], Session]] = None) -> None:
    on_fight, on_campaign = make_handlers(bus, session_factory or fight_db.SessionLocal)
    await bus.subscribe(FIGHT_UPDATED, on_fight)
    await bus.subscribe(CAMPAIGN_UPDATED, on_campaign)
    logger.info("[broadcast] module registered")
