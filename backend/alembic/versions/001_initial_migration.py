"""Initial migration: session snapshot, location history, player directory, sync queue, host settings

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
    # Current session document (single row, slot "current")
    op.create_table(
        "sessionsnapshot",
        sa.Column("slot", sa.String(), nullable=False),
        sa.Column("session_id", sa.String(), nullable=False),
        sa.Column("document", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("slot"),
    )
    op.create_index("ix_sessionsnapshot_session_id", "sessionsnapshot", ["session_id"])

    # Recently used venues
    op.create_table(
        "locationhistory",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("courts", sa.Integer(), nullable=False),
        sa.Column("last_used_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index("ix_locationhistory_last_used_at", "locationhistory", ["last_used_at"])

    # Lifetime player stats
    op.create_table(
        "directoryplayer",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name_key", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("skill", sa.Integer(), nullable=True),
        sa.Column("lifetime_wins", sa.Integer(), nullable=False),
        sa.Column("lifetime_losses", sa.Integer(), nullable=False),
        sa.Column("lifetime_games", sa.Integer(), nullable=False),
        sa.Column("last_played_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_directoryplayer_name_key", "directoryplayer", ["name_key"], unique=True)

    # Cloud sync retry queue
    op.create_table(
        "syncqueueitem",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.String(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("last_error", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_syncqueueitem_session_id", "syncqueueitem", ["session_id"])

    # Host key/value settings (announcer mute)
    op.create_table(
        "hostsetting",
        sa.Column("key", sa.String(), nullable=False),
        sa.Column("value", sa.String(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )


def downgrade() -> None:
    op.drop_table("hostsetting")
    op.drop_index("ix_syncqueueitem_session_id", table_name="syncqueueitem")
    op.drop_table("syncqueueitem")
    op.drop_index("ix_directoryplayer_name_key", table_name="directoryplayer")
    op.drop_table("directoryplayer")
    op.drop_index("ix_locationhistory_last_used_at", table_name="locationhistory")
    op.drop_table("locationhistory")
    op.drop_index("ix_sessionsnapshot_session_id", table_name="sessionsnapshot")
    op.drop_table("sessionsnapshot")
