"""Initial Heelo schema: profiles, interest actions, matches, threads, messages, notifications

Revision ID: 5c1e7a9d2b30
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "5c1e7a9d2b30"
down_revision = None
branch_labels = None
depends_on = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
    )


def upgrade() -> None:
    op.create_table(
        "clan_families",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
    )
    op.create_table(
        "subclans",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "clan_family_id",
            sa.Integer(),
            sa.ForeignKey("clan_families.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(100), nullable=False),
        sa.UniqueConstraint("clan_family_id", "name", name="uq_subclans_family_name"),
    )

    op.create_table(
        "profiles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("identity_id", sa.String(128), nullable=False, unique=True),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("age", sa.Integer(), nullable=False),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column(
            "photo_refs",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("location_category", sa.String(20), nullable=True),
        sa.Column("location_value", sa.String(100), nullable=True),
        sa.Column(
            "clan_family_id",
            sa.Integer(),
            sa.ForeignKey("clan_families.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "subclan_id",
            sa.Integer(),
            sa.ForeignKey("subclans.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_complete", sa.Boolean(), nullable=False, server_default="false"),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("age >= 18", name="ck_profiles_adult"),
    )
    op.create_index("ix_profiles_discovery", "profiles", ["is_complete", "age"])

    op.create_table(
        "interest_actions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "sender_id",
            sa.String(36),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "receiver_id",
            sa.String(36),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("kind", sa.String(10), nullable=False),
        sa.Column("status", sa.String(10), nullable=False, server_default="pending"),
        _created_at(),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("sender_id", "receiver_id", name="uq_interest_actions_pair"),
        sa.CheckConstraint("sender_id <> receiver_id", name="ck_interest_actions_not_self"),
    )
    op.create_index(
        "ix_interest_actions_receiver_status",
        "interest_actions",
        ["receiver_id", "status"],
    )

    op.create_table(
        "matches",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_low_id",
            sa.String(36),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_high_id",
            sa.String(36),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("origin", sa.String(10), nullable=False, server_default="mutual"),
        _created_at(),
        sa.UniqueConstraint("user_low_id", "user_high_id", name="uq_matches_pair"),
        sa.CheckConstraint("user_low_id < user_high_id", name="ck_matches_canonical"),
    )
    op.create_index("ix_matches_high", "matches", ["user_high_id"])

    op.create_table(
        "conversation_threads",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "match_id",
            sa.String(36),
            sa.ForeignKey("matches.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        _created_at(),
        sa.Column("last_message_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "messages",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "thread_id",
            sa.String(36),
            sa.ForeignKey("conversation_threads.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("sender_id", sa.String(36), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("kind", sa.String(10), nullable=False, server_default="text"),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default="false"),
        _created_at(),
    )
    op.create_index("ix_messages_thread_time", "messages", ["thread_id", "created_at"])
    op.create_index(
        "uq_messages_thread_system",
        "messages",
        ["thread_id"],
        unique=True,
        postgresql_where=sa.text("kind = 'system'"),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "target_profile_id",
            sa.String(36),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column(
            "related_profile_id",
            sa.String(36),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default="false"),
        _created_at(),
    )
    op.create_index(
        "ix_notifications_target_unread",
        "notifications",
        ["target_profile_id", "is_read"],
    )


def downgrade() -> None:
    op.drop_index("ix_notifications_target_unread", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("uq_messages_thread_system", table_name="messages")
    op.drop_index("ix_messages_thread_time", table_name="messages")
    op.drop_table("messages")
    op.drop_table("conversation_threads")
    op.drop_index("ix_matches_high", table_name="matches")
    op.drop_table("matches")
    op.drop_index("ix_interest_actions_receiver_status", table_name="interest_actions")
    op.drop_table("interest_actions")
    op.drop_index("ix_profiles_discovery", table_name="profiles")
    op.drop_table("profiles")
    op.drop_table("subclans")
    op.drop_table("clan_families")
