"""Initial migration: create tournament, category, court, match tables

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tournament",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "category",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("format", sa.String(), nullable=False),
        sa.Column("group_count", sa.Integer(), nullable=True),
        sa.Column("advance_per_group", sa.Integer(), nullable=True),
        sa.Column("knockout_size", sa.Integer(), nullable=True),
        sa.Column("enable_third_place", sa.Boolean(), nullable=False),
        sa.Column("rule_config", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.UniqueConstraint("tournament_id", "name", name="uq_tournament_category"),
    )
    op.create_index("ix_category_tournament_id", "category", ["tournament_id"])

    op.create_table(
        "court",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("current_match_id", sa.String(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
    )
    op.create_index("ix_court_tournament_id", "court", ["tournament_id"])
    op.create_index("ix_court_current_match_id", "court", ["current_match_id"])

    op.create_table(
        "match",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column("stage", sa.String(), nullable=False),
        sa.Column("round", sa.Float(), nullable=False),
        sa.Column("match_order", sa.Integer(), nullable=False),
        sa.Column("group_label", sa.String(), nullable=True),
        sa.Column("round_label", sa.String(), nullable=True),
        sa.Column("player1_id", sa.String(), nullable=True),
        sa.Column("player1_name", sa.String(), nullable=True),
        sa.Column("player1_placeholder", sa.String(), nullable=True),
        sa.Column("player2_id", sa.String(), nullable=True),
        sa.Column("player2_name", sa.String(), nullable=True),
        sa.Column("player2_placeholder", sa.String(), nullable=True),
        sa.Column("winner_id", sa.String(), nullable=True),
        sa.Column("next_match_id", sa.String(), nullable=True),
        sa.Column("next_match_slot", sa.String(), nullable=True),
        sa.Column("loser_next_match_id", sa.String(), nullable=True),
        sa.Column("loser_next_match_slot", sa.String(), nullable=True),
        sa.Column("court_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("score_json", sa.JSON(), nullable=False),
        sa.Column("timeline_json", sa.JSON(), nullable=False),
        sa.Column("rule_config", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["category_id"], ["category.id"]),
        sa.ForeignKeyConstraint(["next_match_id"], ["match.id"]),
        sa.ForeignKeyConstraint(["loser_next_match_id"], ["match.id"]),
        sa.ForeignKeyConstraint(["court_id"], ["court.id"]),
    )
    op.create_index("ix_match_tournament_id", "match", ["tournament_id"])
    op.create_index("ix_match_category_id", "match", ["category_id"])
    op.create_index("ix_match_court_id", "match", ["court_id"])
    op.create_index("ix_match_status", "match", ["status"])


def downgrade() -> None:
    op.drop_table("match")
    op.drop_table("court")
    op.drop_table("category")
    op.drop_table("tournament")
