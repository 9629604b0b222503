"""create campaign, fight, shot, chase and effect tables

Revision ID: 001_create_fight_tables
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_create_fight_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    existing = inspector.get_table_names()

    if 'campaigns' not in existing:
        op.create_table('campaigns',
            sa.Column('id', sa.String(), nullable=False),
            sa.Column('name', sa.String(), nullable=True),
            sa.Column('batch_status', sa.String(), nullable=True),
            sa.Column('batch_total', sa.Integer(), nullable=True),
            sa.Column('batch_completed', sa.Integer(), server_default='0', nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_campaigns_id'), 'campaigns', ['id'], unique=False)

    if 'characters' not in existing:
        op.create_table('characters',
            sa.Column('id', sa.String(), nullable=False),
            sa.Column('campaign_id', sa.String(), nullable=True),
            sa.Column('name', sa.String(), nullable=True),
            sa.Column('action_values', sa.JSON(), nullable=True),
            sa.Column('status', sa.JSON(), nullable=True),
            sa.Column('impairments', sa.Integer(), server_default='0', nullable=True),
            sa.Column('color', sa.String(), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id'], )
        )
        op.create_index(op.f('ix_characters_id'), 'characters', ['id'], unique=False)
        op.create_index(op.f('ix_characters_campaign_id'), 'characters', ['campaign_id'], unique=False)
        op.create_index(op.f('ix_characters_name'), 'characters', ['name'], unique=False)

    if 'vehicles' not in existing:
        op.create_table('vehicles',
            sa.Column('id', sa.String(), nullable=False),
            sa.Column('campaign_id', sa.String(), nullable=True),
            sa.Column('name', sa.String(), nullable=True),
            sa.Column('action_values', sa.JSON(), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id'], )
        )
        op.create_index(op.f('ix_vehicles_id'), 'vehicles', ['id'], unique=False)
        op.create_index(op.f('ix_vehicles_campaign_id'), 'vehicles', ['campaign_id'], unique=False)
        op.create_index(op.f('ix_vehicles_name'), 'vehicles', ['name'], unique=False)

    if 'fights' not in existing:
        op.create_table('fights',
            sa.Column('id', sa.String(), nullable=False),
            sa.Column('campaign_id', sa.String(), nullable=True),
            sa.Column('name', sa.String(), nullable=True),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('sequence', sa.Integer(), server_default='0', nullable=True),
            sa.Column('current_shot', sa.Integer(), nullable=True),
            sa.Column('active', sa.Boolean(), server_default=sa.true(), nullable=True),
            sa.Column('archived', sa.Boolean(), server_default=sa.false(), nullable=True),
            sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id'], ),
            sa.CheckConstraint('sequence >= 0', name='sequence_not_negative')
        )
        op.create_index(op.f('ix_fights_id'), 'fights', ['id'], unique=False)
        op.create_index(op.f('ix_fights_campaign_id'), 'fights', ['campaign_id'], unique=False)
        op.create_index(op.f('ix_fights_active'), 'fights', ['active'], unique=False)

    if 'shots' not in existing:
        op.create_table('shots',
            sa.Column('id', sa.String(), nullable=False),
            sa.Column('fight_id', sa.String(), nullable=False),
            sa.Column('character_id', sa.String(), nullable=True),
            sa.Column('vehicle_id', sa.String(), nullable=True),
            sa.Column('shot', sa.Integer(), nullable=True),
            sa.Column('count', sa.Integer(), server_default='0', nullable=True),
            sa.Column('impairments', sa.Integer(), server_default='0', nullable=True),
            sa.Column('color', sa.String(), nullable=True),
            sa.Column('location', sa.String(), nullable=True),
            sa.Column('driver_id', sa.String(), nullable=True),
            sa.Column('driving_id', sa.String(), nullable=True),
            sa.Column('was_rammed_or_damaged', sa.Boolean(), server_default=sa.false(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['fight_id'], ['fights.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['character_id'], ['characters.id'], ),
            sa.ForeignKeyConstraint(['vehicle_id'], ['vehicles.id'], ),
            sa.ForeignKeyConstraint(['driver_id'], ['shots.id'], ondelete='SET NULL'),
            sa.ForeignKeyConstraint(['driving_id'], ['shots.id'], ondelete='SET NULL'),
            sa.CheckConstraint('(character_id IS NULL) <> (vehicle_id IS NULL)', name='one_actor_per_shot')
        )
        op.create_index(op.f('ix_shots_id'), 'shots', ['id'], unique=False)
        op.create_index(op.f('ix_shots_fight_id'), 'shots', ['fight_id'], unique=False)
        op.create_index(op.f('ix_shots_character_id'), 'shots', ['character_id'], unique=False)
        op.create_index(op.f('ix_shots_vehicle_id'), 'shots', ['vehicle_id'], unique=False)

    if 'chase_relationships' not in existing:
        op.create_table('chase_relationships',
            sa.Column('id', sa.String(), nullable=False),
            sa.Column('fight_id', sa.String(), nullable=False),
            sa.Column('pursuer_id', sa.String(), nullable=False),
            sa.Column('evader_id', sa.String(), nullable=False),
            sa.Column('pair_low', sa.String(), nullable=False),
            sa.Column('pair_high', sa.String(), nullable=False),
            sa.Column('position', sa.String(), server_default='far', nullable=False),
            sa.Column('active', sa.Boolean(), server_default=sa.true(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['fight_id'], ['fights.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['pursuer_id'], ['shots.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['evader_id'], ['shots.id'], ondelete='CASCADE'),
            sa.CheckConstraint('pursuer_id <> evader_id', name='different_shots'),
            sa.CheckConstraint("position IN ('near', 'far')", name='position_values')
        )
        op.create_index(op.f('ix_chase_relationships_id'), 'chase_relationships', ['id'], unique=False)
        op.create_index(op.f('ix_chase_relationships_fight_id'), 'chase_relationships', ['fight_id'], unique=False)
        op.create_index(op.f('ix_chase_relationships_pursuer_id'), 'chase_relationships', ['pursuer_id'], unique=False)
        op.create_index(op.f('ix_chase_relationships_evader_id'), 'chase_relationships', ['evader_id'], unique=False)
        op.create_index(
            'unique_active_relationship',
            'chase_relationships',
            ['fight_id', 'pair_low', 'pair_high'],
            unique=True,
            sqlite_where=sa.text('active'),
            postgresql_where=sa.text('active'),
        )

    if 'character_effects' not in existing:
        op.create_table('character_effects',
            sa.Column('id', sa.String(), nullable=False),
            sa.Column('shot_id', sa.String(), nullable=False),
            sa.Column('character_id', sa.String(), nullable=True),
            sa.Column('vehicle_id', sa.String(), nullable=True),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('severity', sa.String(), server_default='info', nullable=False),
            sa.Column('action_value', sa.String(), nullable=True),
            sa.Column('change', sa.String(), nullable=True),
            sa.Column('end_sequence', sa.Integer(), nullable=True),
            sa.Column('end_shot', sa.Integer(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['shot_id'], ['shots.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['character_id'], ['characters.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['vehicle_id'], ['vehicles.id'], ondelete='CASCADE')
        )
        op.create_index(op.f('ix_character_effects_id'), 'character_effects', ['id'], unique=False)
        op.create_index(op.f('ix_character_effects_shot_id'), 'character_effects', ['shot_id'], unique=False)

    if 'fight_events' not in existing:
        op.create_table('fight_events',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('fight_id', sa.String(), nullable=False),
            sa.Column('event_type', sa.String(), nullable=True),
            sa.Column('description', sa.String(), nullable=True),
            sa.Column('details', sa.JSON(), server_default='{}', nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['fight_id'], ['fights.id'], ondelete='CASCADE')
        )
        op.create_index(op.f('ix_fight_events_id'), 'fight_events', ['id'], unique=False)
        op.create_index(op.f('ix_fight_events_fight_id'), 'fight_events', ['fight_id'], unique=False)
        op.create_index(op.f('ix_fight_events_event_type'), 'fight_events', ['event_type'], unique=False)


def downgrade() -> None:
    op.drop_table('fight_events')
    op.drop_table('character_effects')
    op.drop_index('unique_active_relationship', table_name='chase_relationships')
    op.drop_table('chase_relationships')
    op.drop_table('shots')
    op.drop_table('fights')
    op.drop_table('vehicles')
    op.drop_table('characters')
    op.drop_table('campaigns')
