"""Initial schema: profiles, contact records, match groups and connection requests.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

OPEN_STATUS_SQL = "status IN ('pending', 'approved', 'matched')"


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False, length=32)


def upgrade() -> None:
    op.create_table(
        "profile",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("display_name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("roles", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_profile")),
    )
    op.create_table(
        "profile_contact",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("profile_id", sa.Uuid(), nullable=False),
        sa.Column(
            "source",
            _enum(
                "contactsource",
                "applicant_form",
                "peer_profile",
                "property",
                "employer_profile",
            ),
            nullable=False,
        ),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.ForeignKeyConstraint(
            ["profile_id"],
            ["profile.id"],
            name=op.f("fk_profile_contact_profile_id_profile"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_profile_contact")),
        sa.UniqueConstraint("profile_id", "source", name="uq_profile_contact_source"),
    )
    op.create_table(
        "match_group",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "kind",
            _enum("groupkind", "peer_support", "roommate", "employment", "housing"),
            nullable=False,
        ),
        sa.Column("status", _enum("groupstatus", "forming", "active", "ended"), nullable=False),
        sa.Column("applicant_1_id", sa.Uuid(), nullable=True),
        sa.Column("applicant_2_id", sa.Uuid(), nullable=True),
        sa.Column("peer_support_id", sa.Uuid(), nullable=True),
        sa.Column("employer_id", sa.Uuid(), nullable=True),
        sa.Column("landlord_id", sa.Uuid(), nullable=True),
        sa.Column("property_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("activated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ended_by", sa.Uuid(), nullable=True),
        sa.Column("end_reason", sa.String(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_match_group")),
    )
    for slot_column in (
        "applicant_1_id",
        "applicant_2_id",
        "peer_support_id",
        "employer_id",
        "landlord_id",
    ):
        op.create_index(
            op.f(f"ix_match_group_{slot_column}"), "match_group", [slot_column], unique=False
        )

    op.create_table(
        "connection_request",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("requester_id", sa.Uuid(), nullable=False),
        sa.Column("target_id", sa.Uuid(), nullable=False),
        sa.Column(
            "request_type",
            _enum("requesttype", "roommate", "peer_support", "employment", "housing"),
            nullable=False,
        ),
        sa.Column(
            "status",
            _enum(
                "requeststatus",
                "pending",
                "approved",
                "matched",
                "rejected",
                "cancelled",
                "unmatched",
            ),
            nullable=False,
        ),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("match_score", sa.Integer(), nullable=True),
        sa.Column("target_approved", sa.Boolean(), nullable=False),
        sa.Column("match_group_id", sa.Uuid(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("unmatched_by", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("matched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("unmatched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["match_group_id"],
            ["match_group.id"],
            name=op.f("fk_connection_request_match_group_id_match_group"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_connection_request")),
    )
    op.create_index(
        op.f("ix_connection_request_requester_id"),
        "connection_request",
        ["requester_id"],
        unique=False,
    )
    op.create_index(
        op.f("ix_connection_request_target_id"),
        "connection_request",
        ["target_id"],
        unique=False,
    )
    # at most one open request per (requester, target, type)
    op.create_index(
        "uq_connection_request_open_pair",
        "connection_request",
        ["requester_id", "target_id", "request_type"],
        unique=True,
        sqlite_where=sa.text(OPEN_STATUS_SQL),
        postgresql_where=sa.text(OPEN_STATUS_SQL),
    )


def downgrade() -> None:
    op.drop_index("uq_connection_request_open_pair", table_name="connection_request")
    op.drop_index(op.f("ix_connection_request_target_id"), table_name="connection_request")
    op.drop_index(op.f("ix_connection_request_requester_id"), table_name="connection_request")
    op.drop_table("connection_request")
    for slot_column in (
        "landlord_id",
        "employer_id",
        "peer_support_id",
        "applicant_2_id",
        "applicant_1_id",
    ):
        op.drop_index(op.f(f"ix_match_group_{slot_column}"), table_name="match_group")
    op.drop_table("match_group")
    op.drop_table("profile_contact")
    op.drop_table("profile")
