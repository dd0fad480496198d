"""Import session service layer.

Owns the persisted import session: upload creates it, preview and status
read it, commit and cancel end it. At most one session is pending or under
review at a time; the unique ``active_slot`` column enforces this in the
database, so it holds across workers and restarts.
"""

import logging
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from pathlib import Path

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.db.models import (
    ACTIVE_SLOT,
    TERMINAL_STATES,
    ImportSession,
    ImportSessionState,
    generate_uuid,
)
from app.imports.applier import ResolutionApplier
from app.imports.conflict_detectors import (
    build_detection_context,
    classify_candidates,
    get_conflict_detector,
)
from app.imports.exceptions import (
    ActiveSessionExistsError,
    CommitInProgressError,
    ConflictUnresolvedError,
    FatalParseError,
    ImportSessionError,
    InvalidResolutionError,
    InvalidTransitionError,
    NoActiveSessionError,
    UploadTooLargeError,
)
from app.imports.parsers import parse_caddyfile
from app.imports.schemas import (
    CommitResult,
    ConflictEntry,
    ConflictResolution,
    HostCandidate,
    ImportPreviewResponse,
    ImportSessionResponse,
    ImportStatusResponse,
    ParseError,
)
from app.imports.state import can_transition, transition
from app.proxy_hosts.service import ProxyHostService
from app.proxy_hosts.utils import normalize_domain

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored in DateTime columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def session_to_response(session: ImportSession) -> ImportSessionResponse:
    """Project an import session for clients.

    Args:
        session: Import session model.

    Returns:
        ImportSessionResponse: Session summary with counts.
    """
    return ImportSessionResponse(
        id=session.id,
        state=session.state,
        source_file=session.source_file,
        candidate_count=len(session.candidates or []),
        conflict_count=len(session.conflicts or {}),
        error_count=len(session.parse_errors or []),
        error_message=session.error_message,
        commit_result=session.commit_result,
        created_at=session.created_at,
        updated_at=session.updated_at,
        committed_at=session.committed_at,
    )


class ImportService:
    """Service class for Caddyfile import operations."""

    def __init__(self, db: Session, settings: Settings | None = None):
        """Initialize import service.

        Args:
            db: Database session.
            settings: Application settings (defaults to cached settings).
        """
        self.db = db
        self.settings = settings or get_settings()
        self.inventory = ProxyHostService(db)

    # --- Queries ---

    def get_active_session(self) -> ImportSession | None:
        """Get the pending or reviewing session, if any."""
        return (
            self.db.query(ImportSession)
            .filter(ImportSession.active_slot == ACTIVE_SLOT)
            .first()
        )

    def get_last_finished_session(self) -> ImportSession | None:
        """Get the most recent terminal session, if any."""
        return (
            self.db.query(ImportSession)
            .filter(ImportSession.state.in_(TERMINAL_STATES))
            .order_by(ImportSession.created_at.desc())
            .first()
        )

    def status(self) -> ImportStatusResponse:
        """Report whether an import is waiting. Never changes anything.

        Returns:
            ImportStatusResponse: Active and last finished sessions.
        """
        active = self.get_active_session()
        last = self.get_last_finished_session()
        return ImportStatusResponse(
            has_pending=active is not None,
            session=session_to_response(active) if active else None,
            last_session=session_to_response(last) if last else None,
        )

    def preview(self) -> ImportPreviewResponse:
        """Get the review payload of the session under review.

        Returns:
            ImportPreviewResponse: Populated only while a session is
                reviewing; an empty payload otherwise.
        """
        session = self.get_active_session()
        if session is None or session.state != ImportSessionState.REVIEWING:
            return ImportPreviewResponse()
        return self.build_preview(session)

    def build_preview(self, session: ImportSession) -> ImportPreviewResponse:
        """Build the review payload for a session."""
        candidates = self._load_candidates(session)
        conflicts = self._load_conflicts(session)
        return ImportPreviewResponse(
            session=session_to_response(session),
            candidates=classify_candidates(candidates, conflicts),
            conflicts=conflicts,
            errors=[ParseError.model_validate(e) for e in session.parse_errors or []],
        )

    # --- Upload ---

    def upload(self, content: str | bytes, filename: str | None = None) -> ImportSession:
        """Parse a Caddyfile and open a session for review.

        Args:
            content: Caddyfile text (bytes are decoded as UTF-8).
            filename: Original file name, stored for reference.

        Returns:
            ImportSession: The new session, in the reviewing state.

        Raises:
            UploadTooLargeError: If the document exceeds IMPORT_MAX_BYTES.
            ActiveSessionExistsError: If a session is pending or reviewing.
            FatalParseError: If no usable candidate was found. A failed
                session is recorded for reference.
        """
        raw = content.encode("utf-8") if isinstance(content, str) else content
        if len(raw) > self.settings.import_max_bytes:
            raise UploadTooLargeError(len(raw), self.settings.import_max_bytes)

        active = self.get_active_session()
        if active is not None:
            raise ActiveSessionExistsError(active.id)

        session = ImportSession(
            id=generate_uuid(),
            state=ImportSessionState.PENDING,
            source_file=filename,
            active_slot=ACTIVE_SLOT,
            created_at=utcnow(),
        )

        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            candidates = []
            errors = [ParseError(line=0, message="Document is not valid UTF-8 text")]
        else:
            candidates, errors = parse_caddyfile(text)

        session.candidates = [c.model_dump(mode="json") for c in candidates]
        session.parse_errors = [e.model_dump(mode="json") for e in errors]

        if not candidates:
            raise self._record_fatal_parse(session, errors)

        context = build_detection_context(candidates, self.inventory)
        conflicts = get_conflict_detector().detect_all(candidates, context)
        session.conflicts = {d: c.model_dump(mode="json") for d, c in conflicts.items()}

        transition(session, ImportSessionState.REVIEWING)
        self.db.add(session)
        try:
            self.db.commit()
        except IntegrityError as e:
            # Another upload took the active slot between our check and insert
            self.db.rollback()
            winner = self.get_active_session()
            raise ActiveSessionExistsError(winner.id if winner else None) from e

        self.db.refresh(session)
        logger.info(
            "Import session %s ready for review: %d candidates, %d conflicts, %d parse errors",
            session.id,
            len(candidates),
            len(conflicts),
            len(errors),
        )
        return session

    def _record_fatal_parse(
        self, session: ImportSession, errors: list[ParseError]
    ) -> FatalParseError:
        """Store the session as failed and return the error to raise."""
        transition(session, ImportSessionState.FAILED)
        session.conflicts = {}
        error = FatalParseError(errors, session_id=session.id)
        session.error_message = str(error)
        self.db.add(session)
        self.db.commit()
        logger.warning(
            "Import session %s failed: no usable site blocks (%d parse errors)",
            session.id,
            len(errors),
        )
        return error

    # --- Commit ---

    def commit(
        self,
        resolutions: Mapping[str, ConflictResolution | str],
        session_id: str | None = None,
    ) -> tuple[ImportSession, CommitResult]:
        """Apply the session under review to the inventory.

        Args:
            resolutions: Resolution per conflicting domain. Keys are
                normalized; keys that are not conflicts are ignored.
            session_id: If given, must be the session under review.

        Returns:
            tuple: (session in completed or failed state, commit result).

        Raises:
            NoActiveSessionError: If no session is under review.
            ConflictUnresolvedError: If a conflict has no resolution. The
                session stays under review.
            InvalidResolutionError: If a conflict is given an unknown action.
            CommitInProgressError: If another commit holds the session.
        """
        session = self.get_active_session()
        if session is None or session.state != ImportSessionState.REVIEWING:
            raise NoActiveSessionError("No import session is under review")
        if session_id and session_id != session.id:
            raise NoActiveSessionError(f"Import session {session_id} is not under review")

        conflicts = self._load_conflicts(session)
        chosen: dict[str, ConflictResolution] = {}
        for domain, resolution in resolutions.items():
            domain = normalize_domain(domain)
            if domain not in conflicts:
                continue
            try:
                chosen[domain] = ConflictResolution(resolution)
            except ValueError as e:
                raise InvalidResolutionError(domain, resolution) from e

        unresolved = sorted(
            d
            for d in conflicts
            if chosen.get(d, ConflictResolution.UNRESOLVED) == ConflictResolution.UNRESOLVED
        )
        if unresolved:
            raise ConflictUnresolvedError(unresolved)

        self._claim(session.id)
        session_id = session.id
        candidates = self._load_candidates(session)

        try:
            result = ResolutionApplier(self.db, self.inventory).apply(candidates, conflicts, chosen)
        except Exception:
            self.db.rollback()
            self._release_claim(session_id)
            raise

        session = self.db.get(ImportSession, session_id, populate_existing=True)
        for domain, entry in conflicts.items():
            entry.resolution = chosen[domain]
        session.conflicts = {d: c.model_dump(mode="json") for d, c in conflicts.items()}
        session.resolutions = {d: r.value for d, r in chosen.items()}
        session.commit_result = result.model_dump(mode="json")
        session.committed_at = utcnow()

        if result.failed:
            transition(session, ImportSessionState.FAILED)
            session.error_message = (
                f"{len(result.failed)} of {len(candidates)} candidates failed to import"
            )
        else:
            transition(session, ImportSessionState.COMPLETED)

        self.db.commit()
        self.db.refresh(session)
        return session, result

    def _claim(self, session_id: str) -> None:
        """Atomically mark the session as being committed.

        Raises:
            CommitInProgressError: If a fresh claim already exists.
        """
        now = utcnow()
        claimed = (
            self.db.query(ImportSession)
            .filter(
                ImportSession.id == session_id,
                ImportSession.state == ImportSessionState.REVIEWING,
                self._claim_is_stale(now),
            )
            .update({ImportSession.commit_started_at: now}, synchronize_session=False)
        )
        self.db.commit()
        if claimed != 1:
            raise CommitInProgressError("A commit is already running for this import session")

    def _release_claim(self, session_id: str) -> None:
        self.db.query(ImportSession).filter(ImportSession.id == session_id).update(
            {ImportSession.commit_started_at: None}, synchronize_session=False
        )
        self.db.commit()

    def _claim_is_stale(self, now: datetime):
        stale_before = now - timedelta(seconds=self.settings.import_commit_timeout_seconds)
        return or_(
            ImportSession.commit_started_at.is_(None),
            ImportSession.commit_started_at < stale_before,
        )

    # --- Cancel ---

    def cancel(self) -> ImportSession | None:
        """Discard the active session without touching the inventory.

        Returns:
            ImportSession | None: The cancelled session, or None when there
                was nothing to cancel.

        Raises:
            CommitInProgressError: If a commit holds the session.
        """
        session = self.get_active_session()
        if session is None:
            return None

        current = ImportSessionState(session.state)
        if not can_transition(current, ImportSessionState.CANCELLED):
            raise InvalidTransitionError(f"Cannot cancel an import session that is {current.value}")

        cancelled = (
            self.db.query(ImportSession)
            .filter(
                ImportSession.id == session.id,
                ImportSession.state == current,
                self._claim_is_stale(utcnow()),
            )
            .update(
                {
                    ImportSession.state: ImportSessionState.CANCELLED,
                    ImportSession.active_slot: None,
                    ImportSession.commit_started_at: None,
                },
                synchronize_session=False,
            )
        )
        self.db.commit()
        if cancelled != 1:
            raise CommitInProgressError("The import session is being committed and cannot be cancelled")

        self.db.refresh(session)
        logger.info("Import session %s: %s -> cancelled", session.id, current.value)
        return session

    # --- Helpers ---

    @staticmethod
    def _load_candidates(session: ImportSession) -> list[HostCandidate]:
        return [HostCandidate.model_validate(c) for c in session.candidates or []]

    @staticmethod
    def _load_conflicts(session: ImportSession) -> dict[str, ConflictEntry]:
        return {
            domain: ConflictEntry.model_validate(entry)
            for domain, entry in (session.conflicts or {}).items()
        }


def import_mounted_caddyfile(db: Session, settings: Settings | None = None) -> ImportSession | None:
    """Upload the Caddyfile mounted at IMPORT_CADDYFILE, once.

    Skipped when the path is unset or missing, or when a pending, reviewing
    or completed session already came from the same file. Import errors are
    logged; they never stop the application from starting.

    Args:
        db: Database session.
        settings: Application settings (defaults to cached settings).

    Returns:
        ImportSession | None: The new session, if one was created.
    """
    settings = settings or get_settings()
    if not settings.import_caddyfile:
        return None

    path = Path(settings.import_caddyfile)
    if not path.is_file():
        logger.warning("Mounted Caddyfile %s does not exist; skipping import", path)
        return None

    seen = (
        db.query(ImportSession)
        .filter(
            ImportSession.source_file == str(path),
            ImportSession.state.in_(
                [
                    ImportSessionState.PENDING,
                    ImportSessionState.REVIEWING,
                    ImportSessionState.COMPLETED,
                ]
            ),
        )
        .first()
    )
    if seen is not None:
        logger.info("Mounted Caddyfile %s already imported (session %s)", path, seen.id)
        return None

    try:
        session = ImportService(db, settings).upload(path.read_bytes(), filename=str(path))
    except (ImportSessionError, OSError) as e:
        logger.warning("Mounted Caddyfile %s was not imported: %s", path, e)
        return None

    logger.info("Mounted Caddyfile %s imported as session %s", path, session.id)
    return session
