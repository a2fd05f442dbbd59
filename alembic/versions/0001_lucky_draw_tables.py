"""Create participants, prizes and lucky draw outcome tables

Revision ID: 0001_lucky_draw_tables
Revises:
Create Date: 2026-10-19

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0001_lucky_draw_tables"
down_revision = None
branch_labels = None
depends_on = None

ID_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "participants",
        sa.Column("id", ID_TYPE, primary_key=True, autoincrement=True),
        sa.Column("employee_id", sa.String(length=50), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("department", sa.String(length=255), nullable=True),
        sa.Column("dietary", sa.String(length=100), nullable=True),
        sa.Column("remark", sa.Text(), nullable=True),
        sa.Column("checked_in", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("registered_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_participants"),
    )
    op.create_index("ix_participants_id", "participants", ["id"])
    op.create_index("ix_participants_employee_id", "participants", ["employee_id"], unique=True)

    op.create_table(
        "prizes",
        sa.Column("id", ID_TYPE, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "category",
            sa.Enum(
                "SMALL",
                "MEDIUM",
                "BIG",
                "GRAND",
                name="prize_category",
                native_enum=False,
                length=16,
            ),
            nullable=False,
        ),
        sa.Column("stock", sa.Integer(), nullable=False),
        sa.Column("remaining", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_prizes"),
        sa.CheckConstraint("stock >= 0", name="ck_prizes_stock_non_negative"),
        sa.CheckConstraint("remaining >= 0", name="ck_prizes_remaining_non_negative"),
        sa.CheckConstraint("remaining <= stock", name="ck_prizes_remaining_within_stock"),
    )
    op.create_index("ix_prizes_id", "prizes", ["id"])

    op.create_table(
        "lucky_draw_outcomes",
        sa.Column("id", ID_TYPE, primary_key=True, autoincrement=True),
        sa.Column("prize_id", ID_TYPE, nullable=False),
        sa.Column("participant_id", ID_TYPE, nullable=False),
        sa.Column("is_redraw", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("voided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("replaces_outcome_id", ID_TYPE, nullable=True),
        sa.Column("idempotency_key", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_lucky_draw_outcomes"),
        sa.ForeignKeyConstraint(
            ["prize_id"],
            ["prizes.id"],
            name="fk_lucky_draw_outcomes_prize_id_prizes",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["participant_id"],
            ["participants.id"],
            name="fk_lucky_draw_outcomes_participant_id_participants",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["replaces_outcome_id"],
            ["lucky_draw_outcomes.id"],
            name="fk_lucky_draw_outcomes_replaces_outcome_id_lucky_draw_outcomes",
            ondelete="SET NULL",
        ),
        sa.UniqueConstraint(
            "idempotency_key", name="uq_lucky_draw_outcomes_idempotency_key"
        ),
    )
    op.create_index("ix_lucky_draw_outcomes_id", "lucky_draw_outcomes", ["id"])
    op.create_index("ix_lucky_draw_outcomes_prize_id", "lucky_draw_outcomes", ["prize_id"])
    op.create_index(
        "ix_lucky_draw_outcomes_participant_id", "lucky_draw_outcomes", ["participant_id"]
    )
    op.create_index(
        "ix_lucky_draw_outcomes_live_created",
        "lucky_draw_outcomes",
        ["is_redraw", "created_at"],
    )
    op.create_index(
        "uq_lucky_draw_outcomes_live_participant",
        "lucky_draw_outcomes",
        ["participant_id"],
        unique=True,
        sqlite_where=sa.text("NOT is_redraw"),
        postgresql_where=sa.text("NOT is_redraw"),
    )


def downgrade() -> None:
    op.drop_index("uq_lucky_draw_outcomes_live_participant", table_name="lucky_draw_outcomes")
    op.drop_index("ix_lucky_draw_outcomes_live_created", table_name="lucky_draw_outcomes")
    op.drop_index("ix_lucky_draw_outcomes_participant_id", table_name="lucky_draw_outcomes")
    op.drop_index("ix_lucky_draw_outcomes_prize_id", table_name="lucky_draw_outcomes")
    op.drop_index("ix_lucky_draw_outcomes_id", table_name="lucky_draw_outcomes")
    op.drop_table("lucky_draw_outcomes")
    op.drop_index("ix_prizes_id", table_name="prizes")
    op.drop_table("prizes")
    op.drop_index("ix_participants_employee_id", table_name="participants")
    op.drop_index("ix_participants_id", table_name="participants")
    op.drop_table("participants")
