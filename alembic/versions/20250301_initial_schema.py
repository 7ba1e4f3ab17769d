"""initial schema: users, progress, training and diet plans, analyses

Revision ID: 20250301_initial_schema
Revises:
Create Date: 2025-03-01
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import mysql


# revision identifiers, used by Alembic.
revision = "20250301_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

# Millisecond precision on MySQL so creation timestamps match the document store
STAMP = sa.DateTime().with_variant(mysql.DATETIME(fsp=3), "mysql")


def _owner_column():
    return sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="client"),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("gender", sa.String(20), nullable=True),
        sa.Column("weight", sa.Float(), nullable=True),
        sa.Column("height", sa.Float(), nullable=True),
        sa.Column("created_at", STAMP, nullable=True),
        sa.Column("updated_at", STAMP, nullable=True),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_id", "users", ["id"])

    op.create_table(
        "progress",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _owner_column(),
        sa.Column("weight", sa.Float(), nullable=False),
        sa.Column("training_time", sa.Integer(), nullable=False),
        sa.Column("date", STAMP, nullable=False),
        sa.Column("created_at", STAMP, nullable=False),
        sa.Column("updated_at", STAMP, nullable=True),
    )
    op.create_index("ix_progress_user_id", "progress", ["user_id"])
    op.create_index("ix_progress_created_at", "progress", ["created_at"])

    for prefix, item_table in (("training", "training_exercises"), ("diet", "diet_meals")):
        op.create_table(
            f"{prefix}_plans",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            _owner_column(),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=True),
            sa.Column("date_created", STAMP, nullable=False),
            sa.Column("date_updated", STAMP, nullable=True),
            sa.UniqueConstraint("user_id", "name", name=f"uq_{prefix}_plans_user_name"),
        )
        op.create_index(f"ix_{prefix}_plans_user_id", f"{prefix}_plans", ["user_id"])
        op.create_index(f"ix_{prefix}_plans_date_created", f"{prefix}_plans", ["date_created"])

        op.create_table(
            f"{prefix}_days",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column(
                "plan_id", sa.Integer(),
                sa.ForeignKey(f"{prefix}_plans.id", ondelete="CASCADE"), nullable=False,
            ),
            sa.Column("day_of_week", sa.String(20), nullable=False),
            sa.Column("name", sa.String(255), nullable=True),
            sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        )
        op.create_index(f"ix_{prefix}_days_plan_id", f"{prefix}_days", ["plan_id"])

    op.create_table(
        "training_exercises",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("day_id", sa.Integer(), sa.ForeignKey("training_days.id", ondelete="CASCADE"), nullable=False),
        sa.Column("exercise_id", sa.String(64), nullable=False),
        sa.Column("exercise_name", sa.String(255), nullable=True),
        sa.Column("sets", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("reps", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("weight", sa.Float(), nullable=True),
        sa.Column("rest_time", sa.Integer(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("gif_url", sa.String(512), nullable=True),
        sa.Column("equipment", sa.String(100), nullable=True),
        sa.Column("target", sa.String(100), nullable=True),
        sa.Column("body_part", sa.String(100), nullable=True),
    )
    op.create_index("ix_training_exercises_day_id", "training_exercises", ["day_id"])

    op.create_table(
        "diet_meals",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("day_id", sa.Integer(), sa.ForeignKey("diet_days.id", ondelete="CASCADE"), nullable=False),
        sa.Column("recipe_id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("calories", sa.Float(), nullable=True),
        sa.Column("protein", sa.Float(), nullable=True),
        sa.Column("carbs", sa.Float(), nullable=True),
        sa.Column("fat", sa.Float(), nullable=True),
        sa.Column("image", sa.String(512), nullable=True),
        sa.Column("recipe_url", sa.String(512), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_diet_meals_day_id", "diet_meals", ["day_id"])

    op.create_table(
        "analyses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _owner_column(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("analysis_type", sa.String(64), nullable=False),
        sa.Column("country_code", sa.String(8), nullable=False),
        sa.Column("country_name", sa.String(255), nullable=False),
        sa.Column("period_start", sa.Integer(), nullable=False),
        sa.Column("period_end", sa.Integer(), nullable=False),
        sa.Column("correlation_value", sa.Float(), nullable=True),
        sa.Column("correlation_interpretation", sa.String(255), nullable=True),
        sa.Column("result", sa.Text(), nullable=True),
        sa.Column("datasets", sa.JSON(), nullable=True),
        sa.Column("raw_data", sa.JSON(), nullable=True),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", STAMP, nullable=False),
        sa.Column("updated_at", STAMP, nullable=True),
    )
    op.create_index("ix_analyses_user_id", "analyses", ["user_id"])
    op.create_index("ix_analyses_created_at", "analyses", ["created_at"])


def downgrade() -> None:
    for table in (
        "analyses", "diet_meals", "diet_days", "diet_plans",
        "training_exercises", "training_days", "training_plans",
        "progress", "users",
    ):
        op.drop_table(table)
