"""initial world schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 00:00:00
"""
from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "servers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("hostname", sa.String(64), nullable=False),
        sa.Column("max_ram", sa.Float(), nullable=False),
        sa.Column("ram_used", sa.Float(), nullable=False),
        sa.Column("has_root", sa.Boolean(), nullable=False),
        sa.Column("is_home", sa.Boolean(), nullable=False),
        sa.Column("purchased_by_player", sa.Boolean(), nullable=False),
        sa.Column("required_skill", sa.Integer(), nullable=False),
        sa.Column("ports_required", sa.Integer(), nullable=False),
        sa.Column("security", sa.Float(), nullable=False),
        sa.Column("min_security", sa.Float(), nullable=False),
        sa.Column("money", sa.Float(), nullable=False),
        sa.Column("max_money", sa.Float(), nullable=False),
        sa.Column("growth", sa.Float(), nullable=False),
    )
    op.create_index("ix_servers_hostname", "servers", ["hostname"], unique=True)

    op.create_table(
        "players",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("hacking_skill", sa.Integer(), nullable=False),
        sa.Column("hacking_exp", sa.Float(), nullable=False),
        sa.Column("money", sa.Float(), nullable=False),
        sa.Column("port_openers", sa.Integer(), nullable=False),
    )

    op.create_table(
        "running_scripts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("script", sa.String(64), nullable=False),
        sa.Column("action", sa.String(16), nullable=False),
        sa.Column("host_id", sa.Integer(), sa.ForeignKey("servers.id"), nullable=False),
        sa.Column("target_id", sa.Integer(), sa.ForeignKey("servers.id"), nullable=False),
        sa.Column("threads", sa.Integer(), nullable=False),
        sa.Column("ram", sa.Float(), nullable=False),
        sa.Column("started_at_ms", sa.Float(), nullable=False),
        sa.Column("finish_at_ms", sa.Float(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("running_scripts")
    op.drop_table("players")
    op.drop_index("ix_servers_hostname", table_name="servers")
    op.drop_table("servers")
