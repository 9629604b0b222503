"""
Encounter projection: the per-shot view clients render.

Works only on an already loaded fight (see crud.get_fight_with_shots) and
never writes. Driver and driving links are resolved through an index of
the fight's shots by id instead of following relationships, so a stale or
dangling link just renders as None.
"""
from typing import Dict, List, Optional
import logging

from ...shared import to_int
from . import models, schemas
from . import wound_policy
from .effects import is_expired
from .chases import relationship_view

logger = logging.getLogger("encounter.projection")


def project(fight: models.Fight) -> schemas.Encounter:
    shots = list(fight.shots or [])
    arena = {s.id: s for s in shots}

    return schemas.Encounter(
        id=fight.id,
        name=fight.name,
        description=fight.description,
        sequence=fight.sequence or 0,
        current_shot=fight.current_shot,
        started_at=fight.started_at,
        ended_at=fight.ended_at,
        character_ids=[s.character_id for s in shots if s.character_id],
        vehicle_ids=[s.vehicle_id for s in shots if s.vehicle_id],
        shots=_render_shots(fight, shots, arena),
        character_effects=_effects_map(fight, shots, "character_id"),
        vehicle_effects=_effects_map(fight, shots, "vehicle_id"),
    )


def shot_order(shots: List[models.Shot]) -> List[Optional[int]]:
    """Distinct shot values, highest first, hidden (None) last."""
    values = {s.shot for s in shots}
    ordered = sorted((v for v in values if v is not None), reverse=True)
    if None in values:
        ordered.append(None)
    return ordered


def _render_shots(fight, shots, arena) -> List[schemas.EncounterShot]:
    driven = {s.driving_id for s in shots if s.character_id and s.driving_id}

    groups: Dict[Optional[int], List[models.Shot]] = {}
    for s in shots:
        groups.setdefault(s.shot, []).append(s)

    rendered = []
    for value in shot_order(shots):
        group = groups[value]
        characters = [
            _render_character(s, fight, arena) for s in group if s.character_id
        ]
        characters.sort(key=character_sort_key)
        vehicles = [
            _render_vehicle(s, fight, arena)
            for s in group
            if s.vehicle_id and s.id not in driven
        ]
        rendered.append(schemas.EncounterShot(shot=value, characters=characters, vehicles=vehicles))
    return rendered


def character_sort_key(entry: schemas.EncounterCharacter):
    """(type precedence, fastest first, name)."""
    action_values = entry.action_values or {}
    precedence = wound_policy.sort_precedence(action_values.get("Type"))
    speed = to_int(action_values.get("Speed")) - (entry.impairments or 0)
    return (precedence, -speed, (entry.name or "").lower())


def _impairments(character: models.Character, shot: models.Shot) -> int:
    # PCs carry impairments across fights; everyone else's live on the shot.
    if wound_policy.character_type(character) == wound_policy.CharacterType.PC:
        return character.impairments or 0
    return shot.impairments or 0


def _render_character(shot: models.Shot, fight, arena) -> schemas.EncounterCharacter:
    character = shot.character
    if character is None:
        logger.warning(f"Shot {shot.id} has no loaded character")
        return schemas.EncounterCharacter(
            name="Character not loaded",
            count=shot.count,
            shot_id=shot.id,
            current_shot=shot.shot,
            location=shot.location,
            driving_id=shot.driving_id,
        )

    return schemas.EncounterCharacter(
        id=character.id,
        name=character.name,
        action_values=character.action_values or {},
        color=shot.color or character.color,
        count=shot.count,
        impairments=_impairments(character, shot),
        shot_id=shot.id,
        current_shot=shot.shot,
        location=shot.location,
        driving_id=shot.driving_id,
        driving=_driving(shot, fight, arena),
        status=list(character.status or []),
        effects=render_effects(shot, fight),
    )


def _driving(shot: models.Shot, fight, arena) -> Optional[schemas.EncounterVehicle]:
    vehicle_shot = arena.get(shot.driving_id) if shot.driving_id else None
    if vehicle_shot is None or vehicle_shot.vehicle_id is None:
        return None
    return _render_vehicle(vehicle_shot, fight, arena)


def _driver(shot: models.Shot, arena) -> Optional[schemas.DriverView]:
    driver_shot = arena.get(shot.driver_id) if shot.driver_id else None
    if driver_shot is None or driver_shot.character is None:
        return None
    return schemas.DriverView(
        id=driver_shot.character.id,
        name=driver_shot.character.name,
        shot_id=driver_shot.id,
    )


def _render_vehicle(shot: models.Shot, fight, arena) -> schemas.EncounterVehicle:
    vehicle = shot.vehicle
    return schemas.EncounterVehicle(
        id=vehicle.id if vehicle else shot.vehicle_id,
        name=vehicle.name if vehicle else None,
        action_values=(vehicle.action_values if vehicle else None) or {},
        shot_id=shot.id,
        current_shot=shot.shot,
        location=shot.location,
        driver_id=shot.driver_id,
        driver=_driver(shot, arena),
        was_rammed_or_damaged=bool(shot.was_rammed_or_damaged),
        chase_relationships=[
            schemas.ChaseRelationshipView(**relationship_view(r, shot.id))
            for r in (fight.chase_relationships or [])
            if r.active and shot.id in (r.pursuer_id, r.evader_id)
        ],
        effects=render_effects(shot, fight),
    )


def render_effects(shot: models.Shot, fight: models.Fight) -> List[schemas.EffectView]:
    """Effects still in force at the fight's current sequence and shot."""
    return [
        schemas.EffectView(
            id=e.id,
            name=e.name,
            description=e.description,
            severity=e.severity,
            action_value=e.action_value,
            change=e.change,
            shot_id=e.shot_id,
            character_id=e.character_id,
            vehicle_id=e.vehicle_id,
            end_sequence=e.end_sequence,
            end_shot=e.end_shot,
        )
        for e in (shot.character_effects or [])
        if not is_expired(e, fight.sequence, fight.current_shot)
    ]


def _effects_map(fight: models.Fight, shots: List[models.Shot], key: str) -> Dict[str, List[schemas.EffectView]]:
    """entity id -> effects, concatenated across that entity's shots."""
    result: Dict[str, List[schemas.EffectView]] = {}
    for s in shots:
        entity_id = getattr(s, key)
        if not entity_id:
            continue
        effects = render_effects(s, fight)
        if effects:
            result.setdefault(entity_id, []).extend(effects)
    return result
