"""Ticketing schema: events, ticket types, tickets, registrations, orders.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=True, unique=True),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("time", sa.String(50), nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=True),
        # NULL = uncapped; never below zero
        sa.Column("available_tickets", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "available_tickets IS NULL OR available_tickets >= 0",
            name="check_available_tickets_non_negative",
        ),
    )
    op.create_index("ix_events_date", "events", ["date"])

    op.create_table(
        "ticket_types",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("quantity_available", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("quantity_sold", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.CheckConstraint("quantity_sold >= 0", name="check_quantity_sold_non_negative"),
    )
    op.create_index("ix_ticket_types_event_id", "ticket_types", ["event_id"])

    op.create_table(
        "tickets",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("ticket_type_id", sa.String(36), sa.ForeignKey("ticket_types.id"), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'active'")),
        sa.Column(
            "check_in_status", sa.String(20), nullable=False, server_default=sa.text("'not_checked_in'")
        ),
        # Checkout session that paid for the ticket; one ticket per session
        sa.Column("payment_id", sa.String(255), nullable=True, unique=True),
        sa.Column("payment_metadata", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("quantity > 0", name="check_ticket_quantity_positive"),
        sa.CheckConstraint("status IN ('active', 'cancelled')", name="check_ticket_status"),
        sa.CheckConstraint(
            "check_in_status IN ('not_checked_in', 'checked_in')", name="check_ticket_check_in_status"
        ),
    )
    op.create_index("ix_tickets_user_id", "tickets", ["user_id"])
    op.create_index("ix_tickets_event_id", "tickets", ["event_id"])

    op.create_table(
        "event_registrations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'registered'")),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("stripe_session_id", sa.String(255), nullable=True),
        *_timestamps(),
        # Upsert conflict target for confirmations
        sa.UniqueConstraint("user_id", "event_id", name="uq_event_registrations_user_event"),
        sa.CheckConstraint("quantity > 0", name="check_registration_quantity_positive"),
        sa.CheckConstraint("status IN ('registered', 'cancelled')", name="check_registration_status"),
        sa.CheckConstraint("payment_status IN ('paid', 'pending')", name="check_registration_payment_status"),
    )
    op.create_index("ix_event_registrations_user_id", "event_registrations", ["user_id"])
    op.create_index("ix_event_registrations_event_id", "event_registrations", ["event_id"])

    op.create_table(
        "event_ticket_orders",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("amount_pence", sa.Integer(), nullable=True),
        sa.Column("currency", sa.String(3), nullable=False, server_default=sa.text("'gbp'")),
        sa.Column("stripe_session_id", sa.String(255), nullable=False, unique=True),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        *_timestamps(),
        sa.CheckConstraint("status IN ('pending', 'paid')", name="check_order_status"),
    )
    op.create_index("ix_event_ticket_orders_event_id", "event_ticket_orders", ["event_id"])
    op.create_index("ix_event_ticket_orders_user_id", "event_ticket_orders", ["user_id"])


def downgrade() -> None:
    op.drop_table("event_ticket_orders")
    op.drop_table("event_registrations")
    op.drop_table("tickets")
    op.drop_table("ticket_types")
    op.drop_table("events")
