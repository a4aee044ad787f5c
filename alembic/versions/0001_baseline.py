"""Baseline migration - companies, reservations, bookings, leads, conversion metrics

Revision ID: 0001_baseline
Revises:
Create Date: 2026-01-05

Creates the scheduling and lead tracking tables.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    """Create scheduling and lead tables."""

    # ==========================================================================
    # Companies
    # ==========================================================================
    op.create_table(
        'companies',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('available_days', JSONType, nullable=False),
        sa.Column('available_hours_start', sa.Time(), nullable=False),
        sa.Column('available_hours_end', sa.Time(), nullable=False),
        sa.Column('time_slot_duration', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('max_bookings_per_day', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('advance_booking_days', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('name', name='uq_company_name'),
        sa.CheckConstraint('available_hours_start < available_hours_end', name='ck_company_hours'),
        sa.CheckConstraint('time_slot_duration > 0', name='ck_company_slot_duration'),
    )
    op.create_index('idx_companies_status', 'companies', ['status'])

    # ==========================================================================
    # Bookings
    # ==========================================================================
    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('reference', sa.String(32), nullable=False),
        sa.Column('service_type', sa.String(100), nullable=False),
        sa.Column('customer_name', sa.String(255), nullable=False),
        sa.Column('customer_email', sa.String(255), nullable=False),
        sa.Column('customer_phone', sa.String(50), nullable=False),
        sa.Column('customer_address', sa.Text(), nullable=False),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('state', sa.String(50), nullable=True),
        sa.Column('zip_code', sa.String(20), nullable=True),
        sa.Column(
            'company_id', sa.Integer(),
            sa.ForeignKey('companies.id', ondelete='RESTRICT'), nullable=False,
        ),
        sa.Column('company_name', sa.String(255), nullable=False),
        sa.Column('appointment_date', sa.Date(), nullable=False),
        sa.Column('appointment_time', sa.Time(), nullable=False),
        sa.Column('appointments', JSONType, nullable=False),
        sa.Column('service_details', JSONType, nullable=False),
        sa.Column('marketing_source', JSONType, nullable=False),
        sa.Column('session_id', sa.String(100), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('reference', name='uq_booking_reference'),
    )
    op.create_index('idx_bookings_company_date', 'bookings', ['company_id', 'appointment_date'])
    op.create_index('idx_bookings_session', 'bookings', ['session_id'])

    # ==========================================================================
    # Reservations (one row per claimed slot)
    # ==========================================================================
    op.create_table(
        'reservations',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            'company_id', sa.Integer(),
            sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('slot_date', sa.Date(), nullable=False),
        sa.Column('slot_time', sa.Time(), nullable=False),
        sa.Column(
            'booking_id', sa.Integer(),
            sa.ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('company_id', 'slot_date', 'slot_time', name='uq_reservation_slot'),
    )
    op.create_index('idx_reservations_booking', 'reservations', ['booking_id'])

    # ==========================================================================
    # Leads
    # ==========================================================================
    op.create_table(
        'leads',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('session_id', sa.String(100), nullable=False),
        sa.Column('customer_name', sa.String(255), nullable=True),
        sa.Column('customer_email', sa.String(255), nullable=True),
        sa.Column('customer_phone', sa.String(50), nullable=True),
        sa.Column('customer_address', sa.Text(), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('state', sa.String(50), nullable=True),
        sa.Column('zip_code', sa.String(20), nullable=True),
        sa.Column('service_type', sa.String(100), nullable=True),
        sa.Column('company_name', sa.String(255), nullable=True),
        sa.Column('company_id', sa.Integer(), nullable=True),
        sa.Column('booking_date', sa.String(20), nullable=True),
        sa.Column('booking_time', sa.String(20), nullable=True),
        sa.Column('form_data', JSONType, nullable=False),
        sa.Column('final_form_data', JSONType, nullable=True),
        sa.Column('completion_percentage', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('lead_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('lead_type', sa.String(20), nullable=False, server_default='Processing'),
        sa.Column('status', sa.String(20), nullable=False, server_default='new'),
        sa.Column('is_complete', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('converted_to_booking', sa.Boolean(), nullable=False, server_default=sa.false()),
        # No FK: conversion tracking tolerates deleted bookings
        sa.Column('booking_id', sa.Integer(), nullable=True),
        sa.Column('conversion_timestamp', sa.DateTime(timezone=True), nullable=True),
        sa.Column('conversion_session_id', sa.String(100), nullable=True),
        sa.Column('utm_source', sa.String(255), nullable=True),
        sa.Column('utm_medium', sa.String(255), nullable=True),
        sa.Column('utm_campaign', sa.String(255), nullable=True),
        sa.Column('utm_term', sa.String(255), nullable=True),
        sa.Column('utm_content', sa.String(255), nullable=True),
        sa.Column('gclid', sa.String(255), nullable=True),
        sa.Column('referrer', sa.Text(), nullable=True),
        sa.Column('traffic_source', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_updated', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            'completion_percentage >= 0 AND completion_percentage <= 100',
            name='ck_lead_completion',
        ),
    )
    op.create_index('idx_leads_session', 'leads', ['session_id'])
    op.create_index('idx_leads_created', 'leads', ['created_at'])
    op.create_index('idx_leads_status_created', 'leads', ['status', 'created_at'])

    # ==========================================================================
    # Conversion Metrics (rolling log)
    # ==========================================================================
    op.create_table(
        'conversion_metrics',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('lead_id', sa.Integer(), nullable=True),
        sa.Column('booking_id', sa.Integer(), nullable=True),
        sa.Column('session_id', sa.String(100), nullable=True),
        sa.Column('service_type', sa.String(100), nullable=False, server_default='unknown'),
        sa.Column('utm_source', sa.String(255), nullable=False, server_default='unknown'),
        sa.Column('time_to_conversion_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('time_to_conversion_hours', sa.Float(), nullable=False, server_default='0'),
        sa.Column('time_to_conversion_days', sa.Float(), nullable=False, server_default='0'),
        sa.Column('completion_percentage', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('lead_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('conversion_value', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_retroactive', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('idx_conversion_metrics_created', 'conversion_metrics', ['created_at'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('conversion_metrics')
    op.drop_table('leads')
    op.drop_table('reservations')
    op.drop_table('bookings')
    op.drop_table('companies')
