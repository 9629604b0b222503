import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship, validates

from .database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Campaign(Base):
    """
    Only the parts of a campaign the engine touches: the shared progress
    counter that parallel background workers bump.
    """
    __tablename__ = "campaigns"
    id = Column(String, primary_key=True, index=True, default=_uuid)
    name = Column(String, default="Untitled Campaign")
    batch_status = Column(String, nullable=True)  # generating, complete
    batch_total = Column(Integer, nullable=True)
    batch_completed = Column(Integer, default=0)

    fights = relationship("Fight", back_populates="campaign")


class Character(Base):
    __tablename__ = "characters"
    id = Column(String, primary_key=True, index=True, default=_uuid)
    campaign_id = Column(String, ForeignKey("campaigns.id"), nullable=True, index=True)
    name = Column(String, index=True)
    action_values = Column(JSON, default=dict)  # {"Type": "PC", "Wounds": 0, "Speed": 7, ...}
    status = Column(JSON, default=list)  # ["up_check_required", "cheesing_it", ...]
    impairments = Column(Integer, default=0)
    color = Column(String, nullable=True)


class Vehicle(Base):
    __tablename__ = "vehicles"
    id = Column(String, primary_key=True, index=True, default=_uuid)
    campaign_id = Column(String, ForeignKey("campaigns.id"), nullable=True, index=True)
    name = Column(String, index=True)
    action_values = Column(JSON, default=dict)  # {"Chase Points": 0, "Condition Points": 0, ...}


class Fight(Base):
    __tablename__ = "fights"
    id = Column(String, primary_key=True, index=True, default=_uuid)
    campaign_id = Column(String, ForeignKey("campaigns.id"), nullable=True, index=True)
    name = Column(String)
    description = Column(Text, nullable=True)
    sequence = Column(Integer, default=0)
    current_shot = Column(Integer, nullable=True)
    active = Column(Boolean, default=True, index=True)
    archived = Column(Boolean, default=False)
    started_at = Column(DateTime(timezone=True), nullable=True)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow)

    campaign = relationship("Campaign", back_populates="fights")
    shots = relationship("Shot", back_populates="fight", cascade="all, delete-orphan")
    chase_relationships = relationship(
        "ChaseRelationship", back_populates="fight", cascade="all, delete-orphan"
    )
    events = relationship(
        "FightEvent",
        back_populates="fight",
        cascade="all, delete-orphan",
        order_by="FightEvent.id",
    )

    __table_args__ = (
        CheckConstraint("sequence >= 0", name="sequence_not_negative"),
    )


class Shot(Base):
    """
    One entity's slot in a fight's initiative track.

    A shot binds exactly one character or one vehicle. A character shot that
    drives a vehicle points at the vehicle's shot through driving_id and the
    vehicle shot points back through driver_id.
    """
    __tablename__ = "shots"
    id = Column(String, primary_key=True, index=True, default=_uuid)
    fight_id = Column(String, ForeignKey("fights.id", ondelete="CASCADE"), nullable=False, index=True)
    character_id = Column(String, ForeignKey("characters.id"), nullable=True, index=True)
    vehicle_id = Column(String, ForeignKey("vehicles.id"), nullable=True, index=True)
    shot = Column(Integer, nullable=True)  # NULL = hidden
    count = Column(Integer, default=0)
    impairments = Column(Integer, default=0)
    color = Column(String, nullable=True)
    location = Column(String, nullable=True)
    driver_id = Column(String, ForeignKey("shots.id", ondelete="SET NULL"), nullable=True)
    driving_id = Column(String, ForeignKey("shots.id", ondelete="SET NULL"), nullable=True)
    was_rammed_or_damaged = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    fight = relationship("Fight", back_populates="shots")
    character = relationship("Character")
    vehicle = relationship("Vehicle")
    character_effects = relationship(
        "CharacterEffect", back_populates="shot", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(
            "(character_id IS NULL) <> (vehicle_id IS NULL)",
            name="one_actor_per_shot",
        ),
    )


class ChaseRelationship(Base):
    """
    A pursuer/evader pairing between two vehicle shots in a fight.

    pair_low/pair_high hold the two shot ids in sorted order so the partial
    unique index can reject a second active row for the same unordered pair.
    """
    __tablename__ = "chase_relationships"
    id = Column(String, primary_key=True, index=True, default=_uuid)
    fight_id = Column(String, ForeignKey("fights.id", ondelete="CASCADE"), nullable=False, index=True)
    pursuer_id = Column(String, ForeignKey("shots.id", ondelete="CASCADE"), nullable=False, index=True)
    evader_id = Column(String, ForeignKey("shots.id", ondelete="CASCADE"), nullable=False, index=True)
    pair_low = Column(String, nullable=False)
    pair_high = Column(String, nullable=False)
    position = Column(String, default="far", nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    fight = relationship("Fight", back_populates="chase_relationships")
    pursuer = relationship("Shot", foreign_keys=[pursuer_id])
    evader = relationship("Shot", foreign_keys=[evader_id])

    __table_args__ = (
        CheckConstraint("pursuer_id <> evader_id", name="different_shots"),
        CheckConstraint("position IN ('near', 'far')", name="position_values"),
        Index(
            "unique_active_relationship",
            "fight_id",
            "pair_low",
            "pair_high",
            unique=True,
            sqlite_where=text("active"),
            postgresql_where=text("active"),
        ),
    )

    @validates("pursuer_id", "evader_id")
    def _normalise_pair(self, key, value):
        other = self.evader_id if key == "pursuer_id" else self.pursuer_id
        if value is not None and other is not None:
            self.pair_low, self.pair_high = sorted([value, other])
        return value


class CharacterEffect(Base):
    __tablename__ = "character_effects"
    id = Column(String, primary_key=True, index=True, default=_uuid)
    shot_id = Column(String, ForeignKey("shots.id", ondelete="CASCADE"), nullable=False, index=True)
    character_id = Column(String, ForeignKey("characters.id", ondelete="CASCADE"), nullable=True)
    vehicle_id = Column(String, ForeignKey("vehicles.id", ondelete="CASCADE"), nullable=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    severity = Column(String, default="info", nullable=False)
    action_value = Column(String, nullable=True)  # e.g. "Guns", "Defense"
    change = Column(String, nullable=True)  # e.g. "+1", "-2"
    end_sequence = Column(Integer, nullable=True)
    end_shot = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    shot = relationship("Shot", back_populates="character_effects")


class FightEvent(Base):
    __tablename__ = "fight_events"
    id = Column(Integer, primary_key=True, index=True)
    fight_id = Column(String, ForeignKey("fights.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type = Column(String, index=True)
    description = Column(String, nullable=True)
    details = Column(JSON, default=dict)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    fight = relationship("Fight", back_populates="events")
