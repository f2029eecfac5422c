"""Initial migration

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create clients table
    op.create_table(
        'clients',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('first_name', sa.String(length=255), nullable=False),
        sa.Column('last_name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_clients_id'), 'clients', ['id'], unique=False)
    op.create_index(op.f('ix_clients_type'), 'clients', ['type'], unique=False)

    # Create buyers table
    op.create_table(
        'buyers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=False),
        sa.Column('min_size', sa.Integer(), nullable=True, comment='Минимальная площадь, м²'),
        sa.Column('max_price', sa.Integer(), nullable=True, comment='Максимальный бюджет, EUR'),
        sa.Column('property_type', sa.String(length=50), nullable=True),
        sa.Column('rooms', sa.Integer(), nullable=True),
        sa.Column('search_area', sa.JSON(), nullable=True),
        sa.Column('search_area_status', sa.String(length=20), nullable=True),
        sa.Column('search_area_updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_buyers_id'), 'buyers', ['id'], unique=False)
    op.create_index(op.f('ix_buyers_client_id'), 'buyers', ['client_id'], unique=True)

    # Create shared_properties table
    op.create_table(
        'shared_properties',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('address', sa.String(length=500), nullable=False),
        sa.Column('city', sa.String(length=255), nullable=True),
        sa.Column('price', sa.Integer(), nullable=True),
        sa.Column('size', sa.Float(), nullable=True),
        sa.Column('type', sa.String(length=50), nullable=True),
        sa.Column('rooms', sa.Integer(), nullable=True),
        sa.Column('floor', sa.String(length=20), nullable=True),
        sa.Column('location', sa.JSON(), nullable=True),
        sa.Column('agencies', sa.JSON(), nullable=False),
        sa.Column('is_multiagency', sa.Boolean(), nullable=True),
        sa.Column('is_ignored', sa.Boolean(), nullable=True),
        sa.Column('is_acquired', sa.Boolean(), nullable=True),
        sa.Column('is_favorite', sa.Boolean(), nullable=True),
        sa.Column('match_buyers', sa.Boolean(), nullable=True, comment='Участвует ли карточка в подборе покупателей'),
        sa.Column('stage', sa.String(length=50), nullable=True),
        sa.Column('stage_result', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_shared_properties_id'), 'shared_properties', ['id'], unique=False)
    op.create_index(op.f('ix_shared_properties_is_multiagency'), 'shared_properties', ['is_multiagency'], unique=False)
    op.create_index(op.f('ix_shared_properties_is_ignored'), 'shared_properties', ['is_ignored'], unique=False)
    op.create_index(op.f('ix_shared_properties_is_acquired'), 'shared_properties', ['is_acquired'], unique=False)

    # Create shared_property_notes table
    op.create_table(
        'shared_property_notes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shared_property_id', sa.Integer(), nullable=False),
        sa.Column('subject', sa.String(length=255), nullable=False),
        sa.Column('notes', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['shared_property_id'], ['shared_properties.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_shared_property_notes_id'), 'shared_property_notes', ['id'], unique=False)
    op.create_index(
        op.f('ix_shared_property_notes_shared_property_id'), 'shared_property_notes', ['shared_property_id'], unique=False
    )

    # Create properties table
    op.create_table(
        'properties',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('address', sa.String(length=500), nullable=True),
        sa.Column('city', sa.String(length=255), nullable=True),
        sa.Column('price', sa.Integer(), nullable=True),
        sa.Column('size', sa.Float(), nullable=True, comment='Площадь, м²'),
        sa.Column('type', sa.String(length=50), nullable=True),
        sa.Column('rooms', sa.Integer(), nullable=True),
        sa.Column('bedrooms', sa.Integer(), nullable=True),
        sa.Column('floor', sa.String(length=20), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('owner_type', sa.String(length=20), nullable=True),
        sa.Column('agency_name', sa.String(length=255), nullable=True),
        sa.Column('portal', sa.String(length=100), nullable=True),
        sa.Column('source', sa.String(length=100), nullable=True),
        sa.Column('external_id', sa.String(length=255), nullable=True),
        sa.Column('external_link', sa.String(length=1000), nullable=True),
        sa.Column('url', sa.String(length=1000), nullable=True),
        sa.Column('location', sa.JSON(), nullable=True),
        sa.Column('geocode_status', sa.String(length=20), nullable=True),
        sa.Column('is_shared', sa.Boolean(), nullable=True),
        sa.Column('is_multiagency', sa.Boolean(), nullable=True),
        sa.Column('exclusivity_hint', sa.Boolean(), nullable=True),
        sa.Column('shared_property_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['shared_property_id'], ['shared_properties.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_properties_id'), 'properties', ['id'], unique=False)
    op.create_index(op.f('ix_properties_city'), 'properties', ['city'], unique=False)
    op.create_index(op.f('ix_properties_type'), 'properties', ['type'], unique=False)
    op.create_index(op.f('ix_properties_status'), 'properties', ['status'], unique=False)
    op.create_index(op.f('ix_properties_owner_type'), 'properties', ['owner_type'], unique=False)
    op.create_index(op.f('ix_properties_external_id'), 'properties', ['external_id'], unique=False)
    op.create_index(op.f('ix_properties_is_multiagency'), 'properties', ['is_multiagency'], unique=False)
    op.create_index(op.f('ix_properties_shared_property_id'), 'properties', ['shared_property_id'], unique=False)

    # Create matches table
    op.create_table(
        'matches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=False),
        sa.Column('shared_property_id', sa.Integer(), nullable=True),
        sa.Column('property_id', sa.Integer(), nullable=True),
        sa.Column('score', sa.Integer(), nullable=False, comment='Оценка совпадения (1-100)'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('score > 0 AND score <= 100', name='ck_matches_score_range'),
        sa.CheckConstraint('(shared_property_id IS NULL) <> (property_id IS NULL)', name='ck_matches_single_ref'),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['shared_property_id'], ['shared_properties.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['property_id'], ['properties.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_matches_id'), 'matches', ['id'], unique=False)
    op.create_index(op.f('ix_matches_client_id'), 'matches', ['client_id'], unique=False)
    op.create_index(op.f('ix_matches_shared_property_id'), 'matches', ['shared_property_id'], unique=False)
    op.create_index(op.f('ix_matches_property_id'), 'matches', ['property_id'], unique=False)


def downgrade() -> None:
    op.drop_table('matches')
    op.drop_table('properties')
    op.drop_table('shared_property_notes')
    op.drop_table('shared_properties')
    op.drop_table('buyers')
    op.drop_table('clients')
