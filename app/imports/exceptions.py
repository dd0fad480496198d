"""Errors raised by the import workflow."""

from app.imports.schemas import ParseError


class ImportSessionError(Exception):
    """Base class for import workflow errors."""


class FatalParseError(ImportSessionError):
    """The document contained no usable host candidates."""

    def __init__(self, errors: list[ParseError], session_id: str | None = None):
        super().__init__("No valid site blocks with a reverse_proxy directive were found")
        self.errors = errors
        self.session_id = session_id


class UploadTooLargeError(ImportSessionError):
    """The uploaded document exceeds the configured size limit."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"Import document is {size} bytes; the limit is {limit} bytes")
        self.size = size
        self.limit = limit


class ActiveSessionExistsError(ImportSessionError):
    """Another import session is still pending or under review."""

    def __init__(self, session_id: str | None):
        super().__init__(
            "An import session is already in progress; resume or cancel it before uploading"
        )
        self.session_id = session_id


class NoActiveSessionError(ImportSessionError):
    """No session is in a state that allows the requested operation."""


class InvalidTransitionError(ImportSessionError):
    """The requested state change is not allowed from the current state."""


class CommitInProgressError(ImportSessionError):
    """A commit is already running for the session."""


class ConflictUnresolvedError(ImportSessionError):
    """Commit was requested while some conflicts have no resolution."""

    def __init__(self, domains: list[str]):
        super().__init__(f"Conflicts still need a resolution: {', '.join(domains)}")
        self.domains = domains


class InvalidResolutionError(ImportSessionError):
    """A conflict was given an action that does not exist."""

    def __init__(self, domain: str, resolution: object):
        super().__init__(f"Unknown resolution '{resolution}' for {domain}")
        self.domain = domain
        self.resolution = resolution


class CandidateError(ImportSessionError):
    """A single candidate could not be committed.

    Recorded on the session; never aborts the rest of the commit.
    """


class StaleConflictError(CandidateError):
    """The inventory changed since the preview was generated."""


class PersistenceError(CandidateError):
    """Storing the candidate failed."""
