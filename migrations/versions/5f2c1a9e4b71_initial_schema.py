"""initial schema: calendar, drivers, users, predictions, api cache

Revision ID: 5f2c1a9e4b71
Revises:
Create Date: 2025-03-02 10:14:22.418305

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5f2c1a9e4b71'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _session_columns(*names):
    cols = []
    for name in names:
        cols.append(sa.Column(f"{name}_date", sa.Date(), nullable=True))
        cols.append(sa.Column(f"{name}_time", sa.Time(), nullable=True))
    return cols


def upgrade() -> None:
    op.create_table(
        "constructors",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("nationality", sa.String(), nullable=False),
        sa.Column("url", sa.String(), nullable=False),
    )
    op.create_table(
        "drivers",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("permanent_number", sa.String(), nullable=True),
        sa.Column("given_name", sa.String(), nullable=False),
        sa.Column("family_name", sa.String(), nullable=False),
        sa.Column("date_of_birth", sa.String(), nullable=False),
        sa.Column("nationality", sa.String(), nullable=False),
        sa.Column("url", sa.String(), nullable=False),
        sa.Column("profile_picture_url", sa.String(), nullable=True),
        sa.Column("constructor_id", sa.String(),
                  sa.ForeignKey("constructors.id", ondelete="SET NULL"), nullable=True),
    )
    op.create_table(
        "races",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("season", sa.Integer(), nullable=False),
        sa.Column("round", sa.Integer(), nullable=False),
        sa.Column("race_name", sa.String(), nullable=False),
        sa.Column("circuit_id", sa.String(), nullable=False),
        sa.Column("circuit_name", sa.String(), nullable=False),
        sa.Column("country", sa.String(), nullable=False),
        sa.Column("locality", sa.String(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.Time(), nullable=False),
        *_session_columns("practice1", "practice2", "practice3", "qualifying"),
        sa.Column("is_sprint_weekend", sa.Boolean(), nullable=True),
        *_session_columns("sprint", "sprint_qualifying"),
        sa.Column("first_place_driver_id", sa.String(), nullable=True),
        sa.Column("second_place_driver_id", sa.String(), nullable=True),
        sa.Column("third_place_driver_id", sa.String(), nullable=True),
        sa.Column("fastest_lap_driver_id", sa.String(), nullable=True),
        sa.Column("driver_of_the_day_id", sa.String(), nullable=True),
        sa.Column("race_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("season", "round", name="unique_races_season_round"),
    )
    # Speeds season listings and the completed-race stats
    op.create_index("idx_races_season", "races", ["season"], unique=False)
    op.create_index("idx_races_race_completed", "races", ["race_completed"], unique=False)

    op.create_table(
        "sprint_races",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("season", sa.Integer(), nullable=False),
        sa.Column("round", sa.Integer(), nullable=False),
        sa.Column("race_name", sa.String(), nullable=False),
        sa.Column("circuit_id", sa.String(), nullable=False),
        sa.Column("circuit_name", sa.String(), nullable=False),
        sa.Column("country", sa.String(), nullable=False),
        sa.Column("locality", sa.String(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.Time(), nullable=False),
        *_session_columns("sprint_qualifying"),
        sa.Column("first_place_driver_id", sa.String(), nullable=True),
        sa.Column("second_place_driver_id", sa.String(), nullable=True),
        sa.Column("third_place_driver_id", sa.String(), nullable=True),
        sa.Column("sprint_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("season", "round", name="unique_sprint_races_season_round"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("facebook_id", sa.String(), nullable=False, unique=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("profile_picture_url", sa.String(), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_users_id", "users", ["id"], unique=False)
    op.create_index("idx_users_email", "users", ["email"], unique=False)

    op.create_table(
        "predictions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("race_id", sa.String(), sa.ForeignKey("races.id", ondelete="CASCADE"), nullable=False),
        sa.Column("first_place_driver_id", sa.String(), nullable=False, server_default=""),
        sa.Column("second_place_driver_id", sa.String(), nullable=False, server_default=""),
        sa.Column("third_place_driver_id", sa.String(), nullable=False, server_default=""),
        sa.Column("fastest_lap_driver_id", sa.String(), nullable=False, server_default=""),
        sa.Column("driver_of_the_day_id", sa.String(), nullable=False, server_default=""),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "race_id", name="idx_predictions_user_race"),
    )
    op.create_index("ix_predictions_id", "predictions", ["id"], unique=False)
    op.create_index("ix_predictions_race_id", "predictions", ["race_id"], unique=False)

    op.create_table(
        "sprint_predictions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sprint_race_id", sa.String(),
                  sa.ForeignKey("sprint_races.id", ondelete="CASCADE"), nullable=False),
        sa.Column("first_place_driver_id", sa.String(), nullable=False, server_default=""),
        sa.Column("second_place_driver_id", sa.String(), nullable=False, server_default=""),
        sa.Column("third_place_driver_id", sa.String(), nullable=False, server_default=""),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "sprint_race_id", name="idx_sprint_predictions_user_race"),
    )
    op.create_index("ix_sprint_predictions_id", "sprint_predictions", ["id"], unique=False)
    op.create_index("ix_sprint_predictions_sprint_race_id", "sprint_predictions", ["sprint_race_id"], unique=False)

    op.create_table(
        "api_cache",
        sa.Column("url", sa.String(), primary_key=True),
        sa.Column("response_data", sa.Text(), nullable=False),
        sa.Column("last_fetched", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("response_size", sa.Integer(), nullable=False),
        sa.Column("http_status", sa.Integer(), nullable=False, server_default="200"),
        sa.Column("error_message", sa.String(), nullable=True),
    )
    op.create_index("ix_api_cache_expires_at", "api_cache", ["expires_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_api_cache_expires_at", table_name="api_cache")
    op.drop_table("api_cache")
    op.drop_index("ix_sprint_predictions_sprint_race_id", table_name="sprint_predictions")
    op.drop_index("ix_sprint_predictions_id", table_name="sprint_predictions")
    op.drop_table("sprint_predictions")
    op.drop_index("ix_predictions_race_id", table_name="predictions")
    op.drop_index("ix_predictions_id", table_name="predictions")
    op.drop_table("predictions")
    op.drop_index("idx_users_email", table_name="users")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")
    op.drop_table("sprint_races")
    op.drop_index("idx_races_race_completed", table_name="races")
    op.drop_index("idx_races_season", table_name="races")
    op.drop_table("races")
    op.drop_table("drivers")
    op.drop_table("constructors")
