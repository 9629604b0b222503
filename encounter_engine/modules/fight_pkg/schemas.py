from pydantic import BaseModel, Field
from typing import List, Optional, Any, Dict


# --- Batched combat actions ---
class ShotUpdate(BaseModel):
    """
    One entry of a combat action batch. Every field except shot_id is
    optional; a None value means "leave it alone".
    """
    shot_id: Optional[str] = None
    character_id: Optional[str] = None  # informational, shot_id is authoritative
    shot: Optional[int] = None
    count: Optional[int] = None
    wounds: Optional[int] = None  # delta, routed by character type
    action_values: Optional[Dict[str, Any]] = None  # merged into the character; "Wounds" is absolute
    impairments: Optional[int] = None
    location: Optional[str] = None
    color: Optional[str] = None
    was_rammed_or_damaged: Optional[bool] = None
    add_status: List[str] = Field(default_factory=list)
    remove_status: List[str] = Field(default_factory=list)
    event: Optional[Dict[str, Any]] = None


class CombatActionRequest(BaseModel):
    character_updates: List[Dict[str, Any]]


# --- Up checks ---
class UpCheckRequest(BaseModel):
    character_id: str
    success: bool
    result: Optional[int] = None


# --- Chases ---
class ChaseRelationshipCreate(BaseModel):
    pursuer_id: str
    evader_id: str
    position: str = "far"


class ChaseRelationshipUpdate(BaseModel):
    position: Optional[str] = None
    active: Optional[bool] = None


class ChaseRelationship(BaseModel):
    id: str
    fight_id: str
    pursuer_id: str
    evader_id: str
    position: str
    active: bool

    class Config:
        from_attributes = True


class VehicleUpdate(BaseModel):
    vehicle_id: Optional[str] = None
    id: Optional[str] = None
    shot_id: Optional[str] = None
    action_values: Dict[str, Any] = Field(default_factory=dict)
    position: Optional[str] = None
    target_shot_id: Optional[str] = None
    role: str = "pursuer"
    character_id: Optional[str] = None
    shot_cost: Optional[int] = None


class ChaseActionRequest(BaseModel):
    vehicle_updates: List[Dict[str, Any]]


# --- Fight events ---
class FightEvent(BaseModel):
    id: int
    fight_id: str
    event_type: Optional[str] = None
    description: Optional[str] = None
    details: Dict[str, Any] = {}

    class Config:
        from_attributes = True


# --- Encounter view ---
class EffectView(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    severity: Optional[str] = None
    action_value: Optional[str] = None
    change: Optional[str] = None
    shot_id: str
    character_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    end_sequence: Optional[int] = None
    end_shot: Optional[int] = None


class ChaseRelationshipView(BaseModel):
    id: str
    position: str
    pursuer_id: str
    evader_id: str
    is_pursuer: bool


class DriverView(BaseModel):
    id: str
    name: Optional[str] = None
    entity_class: str = "Character"
    shot_id: str


class EncounterVehicle(BaseModel):
    id: str
    name: Optional[str] = None
    entity_class: str = "Vehicle"
    action_values: Dict[str, Any] = {}
    shot_id: str
    current_shot: Optional[int] = None
    location: Optional[str] = None
    driver_id: Optional[str] = None
    driver: Optional[DriverView] = None
    was_rammed_or_damaged: bool = False
    chase_relationships: List[ChaseRelationshipView] = []
    effects: List[EffectView] = []


class EncounterCharacter(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    entity_class: str = "Character"
    action_values: Dict[str, Any] = {}
    color: Optional[str] = None
    count: Optional[int] = None
    impairments: int = 0
    shot_id: str
    current_shot: Optional[int] = None
    location: Optional[str] = None
    driving_id: Optional[str] = None
    driving: Optional[EncounterVehicle] = None
    status: List[str] = []
    effects: List[EffectView] = []


class EncounterShot(BaseModel):
    shot: Optional[int] = None
    characters: List[EncounterCharacter] = []
    vehicles: List[EncounterVehicle] = []


class Encounter(BaseModel):
    id: str
    entity_class: str = "Fight"
    name: Optional[str] = None
    description: Optional[str] = None
    sequence: int = 0
    current_shot: Optional[int] = None
    started_at: Optional[Any] = None
    ended_at: Optional[Any] = None
    character_ids: List[str] = []
    vehicle_ids: List[str] = []
    shots: List[EncounterShot] = []
    character_effects: Dict[str, List[EffectView]] = {}
    vehicle_effects: Dict[str, List[EffectView]] = {}
