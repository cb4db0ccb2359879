"""Initial migration: create tournament, pool, team and game tables

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
    # Create tournament table (settings consumed by the scheduler live here)
    op.create_table(
        "tournament",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("season", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="setup"),
        sa.Column("start_time", sa.String(), nullable=False, server_default="09:00"),
        sa.Column("end_time", sa.String(), nullable=False, server_default="17:00"),
        sa.Column("game_duration_minutes", sa.Integer(), nullable=False, server_default="45"),
        sa.Column("break_duration_minutes", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("round_break_minutes", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("field_names", sa.JSON(), nullable=True),
        sa.Column("wildcard_count", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    # Create pool table
    op.create_table(
        "pool",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.UniqueConstraint("tournament_id", "name", name="uq_tournament_pool_name"),
    )
    op.create_index("ix_pool_tournament_id", "pool", ["tournament_id"])

    # Create team table
    op.create_table(
        "team",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("captain", sa.String(), nullable=True),
        sa.Column("contact_email", sa.String(), nullable=True),
        sa.Column("pool_id", sa.Integer(), nullable=True),
        sa.Column("fair_play_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["pool_id"], ["pool.id"]),
        sa.UniqueConstraint("tournament_id", "name", name="uq_tournament_team_name"),
    )
    op.create_index("ix_team_tournament_id", "team", ["tournament_id"])
    op.create_index("ix_team_pool_id", "team", ["pool_id"])

    # Create game table (pool games and playoff games)
    op.create_table(
        "game",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("pool_id", sa.Integer(), nullable=True),
        sa.Column("home_team_id", sa.Integer(), nullable=True),
        sa.Column("away_team_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="scheduled"),
        sa.Column("home_score", sa.Integer(), nullable=True),
        sa.Column("away_score", sa.Integer(), nullable=True),
        sa.Column("field", sa.String(), nullable=True),
        sa.Column("scheduled_start_time", sa.String(), nullable=True),
        sa.Column("playoff_round", sa.String(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournament.id"]),
        sa.ForeignKeyConstraint(["pool_id"], ["pool.id"]),
        sa.ForeignKeyConstraint(["home_team_id"], ["team.id"]),
        sa.ForeignKeyConstraint(["away_team_id"], ["team.id"]),
        sa.UniqueConstraint("tournament_id", "playoff_round", "position", name="uq_tournament_round_position"),
    )
    op.create_index("ix_game_tournament_id", "game", ["tournament_id"])
    op.create_index("ix_game_pool_id", "game", ["pool_id"])
    op.create_index("ix_game_playoff_round", "game", ["playoff_round"])


def downgrade() -> None:
    op.drop_index("ix_game_playoff_round", table_name="game")
    op.drop_index("ix_game_pool_id", table_name="game")
    op.drop_index("ix_game_tournament_id", table_name="game")
    op.drop_table("game")
    op.drop_index("ix_team_pool_id", table_name="team")
    op.drop_index("ix_team_tournament_id", table_name="team")
    op.drop_table("team")
    op.drop_index("ix_pool_tournament_id", table_name="pool")
    op.drop_table("pool")
    op.drop_table("tournament")
