"""Initial database schema.

Revision ID: 001
Revises:
Create Date: 2026-10-19

Schema for proxy host import:
- Proxy hosts with optimistic version counter
- Proxy host domain index (one host per normalized domain)
- Import sessions with a single active slot
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import mysql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables."""

    # Proxy hosts table
    op.create_table(
        "proxy_hosts",
        sa.Column("id", mysql.CHAR(36), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("domain_names", sa.Text(), nullable=False),
        sa.Column("forward_scheme", sa.Enum("http", "https", name="forwardscheme"), nullable=True),
        sa.Column("forward_host", sa.String(255), nullable=False),
        sa.Column("forward_port", sa.Integer(), nullable=False),
        sa.Column("ssl_forced", sa.Boolean(), default=False, server_default="0"),
        sa.Column("http2_support", sa.Boolean(), default=False, server_default="0"),
        sa.Column("hsts_enabled", sa.Boolean(), default=False, server_default="0"),
        sa.Column("hsts_subdomains", sa.Boolean(), default=False, server_default="0"),
        sa.Column("block_exploits", sa.Boolean(), default=False, server_default="0"),
        sa.Column("websocket_support", sa.Boolean(), default=False, server_default="0"),
        sa.Column("advanced_config", sa.Text(), nullable=True),
        sa.Column("enabled", sa.Boolean(), default=True, server_default="1"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )

    # Domain index: each normalized domain belongs to at most one host
    op.create_table(
        "proxy_host_domains",
        sa.Column("id", mysql.CHAR(36), nullable=False),
        sa.Column("proxy_host_id", mysql.CHAR(36), nullable=False),
        sa.Column("domain", sa.String(253), nullable=False),
        sa.Column("position", sa.Integer(), default=0, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["proxy_host_id"], ["proxy_hosts.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("domain", name="uq_proxy_host_domain"),
    )
    op.create_index(
        "ix_proxy_host_domains_proxy_host_id", "proxy_host_domains", ["proxy_host_id"]
    )

    # Import sessions table
    op.create_table(
        "import_sessions",
        sa.Column("id", mysql.CHAR(36), nullable=False),
        sa.Column(
            "state",
            sa.Enum(
                "pending",
                "reviewing",
                "completed",
                "cancelled",
                "failed",
                name="importsessionstate",
            ),
            nullable=False,
        ),
        sa.Column("source_file", sa.String(1024), nullable=True),
        sa.Column("candidates", sa.JSON(), nullable=True),
        sa.Column("conflicts", sa.JSON(), nullable=True),
        sa.Column("parse_errors", sa.JSON(), nullable=True),
        sa.Column("resolutions", sa.JSON(), nullable=True),
        sa.Column("commit_result", sa.JSON(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("active_slot", sa.String(16), nullable=True),
        sa.Column("commit_started_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("committed_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        # NULLs never collide, so only one row can hold the "active" slot
        sa.UniqueConstraint("active_slot", name="uq_import_session_active_slot"),
    )
    op.create_index("ix_import_sessions_state", "import_sessions", ["state"])
    op.create_index("ix_import_sessions_created_at", "import_sessions", ["created_at"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("import_sessions")
    op.drop_table("proxy_host_domains")
    op.drop_table("proxy_hosts")
