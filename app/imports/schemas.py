"""Pydantic schemas for the Caddyfile import workflow."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.db.models import ForwardScheme, ImportSessionState
from app.proxy_hosts.schemas import ExistingHost


# --- Parser output ---


class ForwardTarget(BaseModel):
    """Upstream a host candidate proxies to.

    Attributes:
        scheme: Scheme used to reach the upstream.
        host: Upstream host name or address.
        port: Upstream port.
    """

    scheme: ForwardScheme = ForwardScheme.HTTP
    host: str
    port: int = Field(..., ge=1, le=65535)


class HostCandidate(BaseModel):
    """A parsed, not yet committed proxy host.

    Recognized directives map onto a closed set of fields; anything else in
    the site block is kept verbatim in ``extra_directives``.

    Attributes:
        domains: Normalized domain names covered by this candidate, in order.
        forward: Forward target from the reverse_proxy directive.
        ssl_forced: Force HTTPS (tls directive or https:// address).
        http2_support: HTTP/2 towards the upstream.
        hsts_enabled: Strict-Transport-Security header set.
        hsts_subdomains: HSTS header includes subdomains.
        block_exploits: Exploit-blocking snippet imported.
        websocket_support: Websocket upgrade handling configured.
        extra_directives: Unrecognized directives, verbatim.
        line: Line where the site block starts.
        warnings: Notices about directives kept but not interpreted.
    """

    domains: list[str] = Field(..., min_length=1)
    forward: ForwardTarget
    ssl_forced: bool = False
    http2_support: bool = False
    hsts_enabled: bool = False
    hsts_subdomains: bool = False
    block_exploits: bool = False
    websocket_support: bool = False
    extra_directives: str = ""
    line: int = 0
    warnings: list[str] = Field(default_factory=list)

    @property
    def domain_names(self) -> str:
        """Domains joined the way proxy hosts display them."""
        return ", ".join(self.domains)


class ParseError(BaseModel):
    """A non-fatal problem with one block of the imported document.

    Attributes:
        line: Line where the problem was found.
        block: Label of the offending site block, if known.
        message: Human-readable description.
    """

    line: int
    block: Optional[str] = None
    message: str


# --- Conflict detection ---


class ConflictResolution(str, Enum):
    """What to do with a domain that already exists in the inventory."""

    UNRESOLVED = "unresolved"
    KEEP = "keep"  # Leave the existing host alone (same effect as skip)
    OVERWRITE = "overwrite"  # Update the existing host in place
    SKIP = "skip"  # Do not import this candidate


class ConflictEntry(BaseModel):
    """A domain present in both an import candidate and the inventory.

    Attributes:
        domain: Normalized domain name.
        candidate_index: Index of the colliding candidate in the session.
        existing: Snapshot of the inventory record owning the domain.
        resolution: Operator's choice, unresolved until commit.
    """

    domain: str
    candidate_index: int
    existing: ExistingHost
    resolution: ConflictResolution = ConflictResolution.UNRESOLVED


class CandidateStatus(str, Enum):
    """Classification of a candidate against the inventory."""

    NEW = "new"  # No domain exists yet, always created on commit
    CONFLICT = "conflict"  # At least one domain needs a resolution


class CandidatePreview(HostCandidate):
    """Host candidate as presented for review.

    Attributes:
        index: Position of the candidate in the session.
        status: Whether the candidate is new or conflicting.
        conflicting_domains: Domains that need a resolution.
    """

    index: int
    status: CandidateStatus = CandidateStatus.NEW
    conflicting_domains: list[str] = Field(default_factory=list)


# --- Commit ---


class CommitAction(str, Enum):
    """What commit did with a candidate."""

    CREATED = "created"
    UPDATED = "updated"


class AppliedCandidate(BaseModel):
    """A candidate written to the inventory."""

    index: int
    domains: list[str]
    action: CommitAction
    host_id: str


class SkippedCandidate(BaseModel):
    """A candidate left out because the operator chose keep/skip."""

    index: int
    domains: list[str]
    reason: str


class FailedCandidate(BaseModel):
    """A candidate that could not be written.

    Attributes:
        index: Candidate index.
        domains: Candidate domains, so a corrected re-upload can target them.
        error: Error class name (StaleConflictError, PersistenceError).
        message: Human-readable description.
    """

    index: int
    domains: list[str]
    error: str
    message: str


class CommitResult(BaseModel):
    """Summary of a commit."""

    applied: list[AppliedCandidate] = Field(default_factory=list)
    skipped: list[SkippedCandidate] = Field(default_factory=list)
    failed: list[FailedCandidate] = Field(default_factory=list)


# --- API payloads ---


class ImportSessionResponse(BaseModel):
    """Projection of an import session for clients.

    Attributes:
        id: Session UUID.
        state: Lifecycle state.
        source_file: Original file name, if any.
        candidate_count: Number of parsed candidates.
        conflict_count: Number of conflicting domains.
        error_count: Number of parse errors.
        error_message: Why the session failed, if it did.
        commit_result: Commit summary once committed.
        created_at: Creation timestamp.
        updated_at: Last modification timestamp.
        committed_at: Commit completion timestamp.
    """

    id: str
    state: ImportSessionState
    source_file: Optional[str] = None
    candidate_count: int = 0
    conflict_count: int = 0
    error_count: int = 0
    error_message: Optional[str] = None
    commit_result: Optional[CommitResult] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    committed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ImportStatusResponse(BaseModel):
    """Whether an import is waiting for review.

    Attributes:
        has_pending: True while a pending/reviewing session exists.
        session: The active session, if any.
        last_session: Most recent terminal session, for after-the-fact errors.
    """

    has_pending: bool = False
    session: Optional[ImportSessionResponse] = None
    last_session: Optional[ImportSessionResponse] = None


class ImportPreviewResponse(BaseModel):
    """Review payload of the session being reviewed.

    Empty when no session is in the reviewing state.
    """

    session: Optional[ImportSessionResponse] = None
    candidates: list[CandidatePreview] = Field(default_factory=list)
    conflicts: dict[str, ConflictEntry] = Field(default_factory=dict)
    errors: list[ParseError] = Field(default_factory=list)


class ImportUploadRequest(BaseModel):
    """Request body for uploading Caddyfile text.

    Attributes:
        content: Caddyfile contents.
        filename: Optional original file name.
    """

    content: str = Field(..., min_length=1)
    filename: Optional[str] = Field(None, max_length=1024)


class ImportCommitRequest(BaseModel):
    """Request body for committing the session under review.

    Attributes:
        resolutions: Conflicting domain -> resolution.
        session_id: Optional guard; must match the session under review.
    """

    resolutions: dict[str, ConflictResolution] = Field(default_factory=dict)
    session_id: Optional[str] = None


class ImportCancelResponse(BaseModel):
    """Result of a cancel request."""

    cancelled: bool
    session: Optional[ImportSessionResponse] = None


class ImportCommitResponse(BaseModel):
    """Result of a commit.

    Attributes:
        session: Session after commit (completed or failed).
        result: Applied/skipped/failed candidates.
    """

    session: ImportSessionResponse
    result: CommitResult
