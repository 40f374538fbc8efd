"""initial teamhub schema

Revision ID: 0001_initial_teamhub
Revises:
Create Date: 2024-05-20 10:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_initial_teamhub"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SCOPE_XOR = "(team_id IS NULL) <> (player_id IS NULL)"


def _scope_columns() -> list:
    return [
        sa.Column("team_id", sa.Integer, sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=True, index=True),
        sa.Column(
            "player_id",
            sa.String(length=128),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=True,
            index=True,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("avatar_url", sa.String(length=1024), nullable=True),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="player"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "player_profiles",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column(
            "user_id",
            sa.String(length=128),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("jersey_number", sa.String(length=8), nullable=True),
        sa.Column("position", sa.String(length=64), nullable=True),
        sa.Column("grade", sa.String(length=32), nullable=True),
        sa.Column("height", sa.String(length=32), nullable=True),
        sa.Column("weight", sa.String(length=32), nullable=True),
        sa.Column("bats", sa.String(length=8), nullable=True),
        sa.Column("throws", sa.String(length=8), nullable=True),
    )

    op.create_table(
        "user_contacts",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("user_id", sa.String(length=128), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("contact_type", sa.String(length=16), nullable=False),
        sa.Column("value", sa.String(length=320), nullable=False),
        sa.Column("label", sa.String(length=64), nullable=True),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
    )
    op.create_index("ix_user_contacts_user_id", "user_contacts", ["user_id"])
    op.create_index("ix_user_contacts_user_type", "user_contacts", ["user_id", "contact_type"])

    op.create_table(
        "teams",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("photo_url", sa.String(length=1024), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "team_members",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("team_id", sa.Integer, sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column(
            "user_id",
            sa.String(length=128),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="player"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("team_id", "user_id", name="uq_team_member"),
    )

    op.create_table(
        "performance_stats",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column(
            "player_id",
            sa.String(length=128),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("exit_velocity", sa.Float, nullable=True),
        sa.Column("launch_angle", sa.Float, nullable=True),
        sa.Column("spin_rate", sa.Float, nullable=True),
        sa.Column("avg_distance", sa.Float, nullable=True),
        sa.Column("hard_hit_rate", sa.Float, nullable=True),
        sa.Column("line_drive_rate", sa.Float, nullable=True),
        sa.Column("recovery_score", sa.Float, nullable=True),
        sa.Column("strain", sa.Float, nullable=True),
        sa.Column("sleep_hours", sa.Float, nullable=True),
    )
    op.create_index("ix_performance_stats_player_date", "performance_stats", ["player_id", "date"])

    op.create_table(
        "conversations",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("type", sa.String(length=32), nullable=False, index=True),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("team_id", sa.Integer, sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=True, index=True),
        sa.Column("created_by", sa.String(length=128), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_pinned", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("replies_disabled", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "conversation_participants",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column(
            "conversation_id",
            sa.Integer,
            sa.ForeignKey("conversations.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "user_id",
            sa.String(length=128),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("conversation_id", "user_id", name="uq_conversation_participant"),
    )

    op.create_table(
        "messages",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column(
            "conversation_id",
            sa.Integer,
            sa.ForeignKey("conversations.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "sender_id",
            sa.String(length=128),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column(
            "parent_message_id",
            sa.Integer,
            sa.ForeignKey("messages.id", ondelete="CASCADE"),
            nullable=True,
            index=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_messages_conversation_created", "messages", ["conversation_id", "created_at"])

    op.create_table(
        "message_reads",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("message_id", sa.Integer, sa.ForeignKey("messages.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column(
            "user_id",
            sa.String(length=128),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("message_id", "user_id", name="uq_message_read"),
    )

    op.create_table(
        "training_programs",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("duration_weeks", sa.Integer, nullable=True),
        sa.Column("created_by", sa.String(length=128), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "training_days",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column(
            "program_id",
            sa.Integer,
            sa.ForeignKey("training_programs.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("day_number", sa.Integer, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
    )

    op.create_table(
        "training_exercises",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("day_id", sa.Integer, sa.ForeignKey("training_days.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("category", sa.String(length=32), nullable=False, server_default="other"),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("sets", sa.Integer, nullable=True),
        sa.Column("reps", sa.String(length=32), nullable=True),
        sa.Column("weight", sa.String(length=64), nullable=True),
        sa.Column("video_url", sa.String(length=1024), nullable=True),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
    )

    op.create_table(
        "meals",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("meal_type", sa.String(length=16), nullable=False, server_default="breakfast"),
        sa.Column("calories", sa.Integer, nullable=True),
        sa.Column("protein_g", sa.Float, nullable=True),
        sa.Column("carbs_g", sa.Float, nullable=True),
        sa.Column("fat_g", sa.Float, nullable=True),
        sa.Column("created_by", sa.String(length=128), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "schedule_events",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("event_type", sa.String(length=16), nullable=False),
        sa.Column("event_date", sa.Date, nullable=False),
        sa.Column("event_time", sa.Time, nullable=True),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("opponent", sa.String(length=255), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("address", sa.String(length=512), nullable=True),
        sa.Column("home_away", sa.String(length=8), nullable=True),
        sa.Column("is_optional", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("team_id", sa.Integer, sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=True),
        sa.Column("player_id", sa.String(length=128), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=True),
        sa.Column(
            "training_day_id",
            sa.Integer,
            sa.ForeignKey("training_days.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("meal_id", sa.Integer, sa.ForeignKey("meals.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(SCOPE_XOR, name="ck_schedule_events_scope"),
    )
    op.create_index("ix_schedule_events_team_date", "schedule_events", ["team_id", "event_date"])
    op.create_index("ix_schedule_events_player_date", "schedule_events", ["player_id", "event_date"])

    op.create_table(
        "training_program_assignments",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column(
            "program_id",
            sa.Integer,
            sa.ForeignKey("training_programs.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        *_scope_columns(),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("end_date", sa.Date, nullable=True),
        sa.Column("assigned_by", sa.String(length=128), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(SCOPE_XOR, name="ck_training_program_assignments_scope"),
    )

    op.create_table(
        "meal_plans",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("created_by", sa.String(length=128), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "meal_plan_items",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column(
            "meal_plan_id",
            sa.Integer,
            sa.ForeignKey("meal_plans.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("meal_id", sa.Integer, sa.ForeignKey("meals.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
    )

    op.create_table(
        "meal_plan_assignments",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column(
            "meal_plan_id",
            sa.Integer,
            sa.ForeignKey("meal_plans.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        *_scope_columns(),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("end_date", sa.Date, nullable=True),
        sa.Column("assigned_by", sa.String(length=128), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(SCOPE_XOR, name="ck_meal_plan_assignments_scope"),
    )

    op.create_table(
        "knowledge_categories",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("color", sa.String(length=32), nullable=True),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
    )

    op.create_table(
        "knowledge_articles",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column(
            "category_id",
            sa.Integer,
            sa.ForeignKey("knowledge_categories.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column("author_id", sa.String(length=128), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("summary", sa.Text, nullable=True),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("tags", sa.JSON, nullable=False),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
        sa.Column("video_url", sa.String(length=1024), nullable=True),
        sa.Column("is_published", sa.Boolean, nullable=False, server_default=sa.false(), index=True),
        sa.Column("view_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "article_views",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column(
            "article_id",
            sa.Integer,
            sa.ForeignKey("knowledge_articles.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "user_id",
            sa.String(length=128),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("viewed_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "ai_conversations",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column(
            "user_id",
            sa.String(length=128),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "ai_messages",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column(
            "conversation_id",
            sa.Integer,
            sa.ForeignKey("ai_conversations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_ai_messages_conversation_created", "ai_messages", ["conversation_id", "created_at"])

    op.create_table(
        "stored_objects",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("bucket", sa.String(length=64), nullable=False),
        sa.Column("path", sa.String(length=512), nullable=False),
        sa.Column("content_type", sa.String(length=128), nullable=False),
        sa.Column("data", sa.LargeBinary, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("bucket", "path", name="uq_stored_object_path"),
    )


def downgrade() -> None:
    for table in (
        "stored_objects",
        "ai_messages",
        "ai_conversations",
        "article_views",
        "knowledge_articles",
        "knowledge_categories",
        "meal_plan_assignments",
        "meal_plan_items",
        "meal_plans",
        "training_program_assignments",
        "schedule_events",
        "meals",
        "training_exercises",
        "training_days",
        "training_programs",
        "message_reads",
        "messages",
        "conversation_participants",
        "conversations",
        "performance_stats",
        "team_members",
        "teams",
        "user_contacts",
        "player_profiles",
        "users",
    ):
        op.drop_table(table)
