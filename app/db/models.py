"""SQLAlchemy database models."""

import enum
from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.mysql import CHAR
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys.

    Returns:
        str: UUID as 36-character string.
    """
    return str(uuid4())


# Value stored in ImportSession.active_slot while a session is non-terminal.
ACTIVE_SLOT = "active"


class ImportSessionState(str, enum.Enum):
    """Import session lifecycle states."""

    PENDING = "pending"  # Created at upload, transient while parsing
    REVIEWING = "reviewing"  # Parsed, waiting for the operator to resolve conflicts
    COMPLETED = "completed"  # Committed without failures
    CANCELLED = "cancelled"  # Discarded by the operator
    FAILED = "failed"  # Fatal parse error or at least one candidate failed to commit

    @property
    def is_terminal(self) -> bool:
        """Whether the session can no longer change state."""
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset(
    {ImportSessionState.COMPLETED, ImportSessionState.CANCELLED, ImportSessionState.FAILED}
)


class ForwardScheme(str, enum.Enum):
    """Scheme used to reach the upstream."""

    HTTP = "http"
    HTTPS = "https"


class ProxyHost(Base):
    """Proxy host model: one routing rule for one or more domains.

    Attributes:
        id: Primary key UUID. Never replaced once assigned.
        name: Display name.
        domain_names: Comma-separated domains as shown to users.
        forward_scheme: Upstream scheme (http, https).
        forward_host: Upstream host name or address.
        forward_port: Upstream port.
        ssl_forced: Redirect clients to HTTPS.
        http2_support: Speak HTTP/2 to the upstream.
        hsts_enabled: Send Strict-Transport-Security.
        hsts_subdomains: Add includeSubDomains to the HSTS header.
        block_exploits: Block common exploit request patterns.
        websocket_support: Allow websocket upgrades.
        advanced_config: Raw Caddyfile directives appended to the site block.
        enabled: Whether the host is routed.
        version: Optimistic concurrency counter, bumped on every update.
        created_at: Creation timestamp.
        updated_at: Last modification timestamp.
    """

    __tablename__ = "proxy_hosts"

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    domain_names: Mapped[str] = mapped_column(Text, nullable=False)
    forward_scheme: Mapped[ForwardScheme] = mapped_column(
        Enum(ForwardScheme, values_callable=lambda x: [e.value for e in x]),
        default=ForwardScheme.HTTP,
    )
    forward_host: Mapped[str] = mapped_column(String(255), nullable=False)
    forward_port: Mapped[int] = mapped_column(Integer, nullable=False)
    ssl_forced: Mapped[bool] = mapped_column(Boolean, default=False)
    http2_support: Mapped[bool] = mapped_column(Boolean, default=False)
    hsts_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    hsts_subdomains: Mapped[bool] = mapped_column(Boolean, default=False)
    block_exploits: Mapped[bool] = mapped_column(Boolean, default=False)
    websocket_support: Mapped[bool] = mapped_column(Boolean, default=False)
    advanced_config: Mapped[str | None] = mapped_column(Text, nullable=True)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    domains: Mapped[list["ProxyHostDomain"]] = relationship(
        "ProxyHostDomain",
        back_populates="proxy_host",
        cascade="all, delete-orphan",
        order_by="ProxyHostDomain.position",
    )

    __mapper_args__ = {"version_id_col": version}


class ProxyHostDomain(Base):
    """Domain index entry for a proxy host.

    Each normalized domain belongs to at most one proxy host; the unique
    constraint is what lets conflict detection look domains up directly.

    Attributes:
        id: Primary key UUID.
        proxy_host_id: FK to the owning proxy host.
        domain: Normalized (trimmed, lowercased) domain name.
        position: Order of the domain within the host's domain list.
    """

    __tablename__ = "proxy_host_domains"
    __table_args__ = (
        UniqueConstraint("domain", name="uq_proxy_host_domain"),
        Index("ix_proxy_host_domains_proxy_host_id", "proxy_host_id"),
    )

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    proxy_host_id: Mapped[str] = mapped_column(
        CHAR(36), ForeignKey("proxy_hosts.id", ondelete="CASCADE"), nullable=False
    )
    domain: Mapped[str] = mapped_column(String(253), nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0)

    # Relationships
    proxy_host: Mapped["ProxyHost"] = relationship("ProxyHost", back_populates="domains")


class ImportSession(Base):
    """A single Caddyfile import attempt and its review state.

    Attributes:
        id: Primary key UUID.
        state: Lifecycle state.
        source_file: Original file name or mounted path, if known.
        candidates: Parsed host candidates (JSON list).
        conflicts: Conflicts keyed by normalized domain (JSON object).
        parse_errors: Non-fatal parse errors (JSON list).
        resolutions: Resolutions submitted at commit (JSON object).
        commit_result: Applied/skipped/failed summary (JSON object).
        error_message: Summary of why the session failed.
        active_slot: "active" while non-terminal, NULL otherwise. Unique, so the
            database allows only one non-terminal session at a time.
        commit_started_at: Set when a commit claims the session.
        created_at: Creation timestamp.
        updated_at: Last modification timestamp.
        committed_at: When the commit finished.
    """

    __tablename__ = "import_sessions"
    __table_args__ = (
        UniqueConstraint("active_slot", name="uq_import_session_active_slot"),
        Index("ix_import_sessions_state", "state"),
        Index("ix_import_sessions_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(CHAR(36), primary_key=True, default=generate_uuid)
    state: Mapped[ImportSessionState] = mapped_column(
        Enum(ImportSessionState, values_callable=lambda x: [e.value for e in x]),
        default=ImportSessionState.PENDING,
        nullable=False,
    )
    source_file: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    candidates: Mapped[list | None] = mapped_column(JSON, nullable=True)
    conflicts: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    parse_errors: Mapped[list | None] = mapped_column(JSON, nullable=True)
    resolutions: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    commit_result: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    active_slot: Mapped[str | None] = mapped_column(String(16), nullable=True)
    commit_started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )
    committed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
