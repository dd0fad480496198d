"""Imports module for Caddyfile import."""

from app.imports.applier import ResolutionApplier
from app.imports.conflict_detectors import (
    CompositeDetector,
    ConflictDetector,
    DetectionContext,
    DomainCollisionDetector,
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
    PersistenceError,
    StaleConflictError,
    UploadTooLargeError,
)
from app.imports.parsers import parse_caddyfile
from app.imports.router import router
from app.imports.schemas import (
    CommitResult,
    ConflictEntry,
    ConflictResolution,
    HostCandidate,
    ParseError,
)
from app.imports.service import ImportService, import_mounted_caddyfile

__all__ = [
    "router",
    "parse_caddyfile",
    "ImportService",
    "import_mounted_caddyfile",
    "ResolutionApplier",
    "HostCandidate",
    "ParseError",
    "CommitResult",
    # Conflict detection
    "ConflictEntry",
    "ConflictResolution",
    "DetectionContext",
    "ConflictDetector",
    "DomainCollisionDetector",
    "CompositeDetector",
    "get_conflict_detector",
    # Errors
    "ImportSessionError",
    "FatalParseError",
    "UploadTooLargeError",
    "ActiveSessionExistsError",
    "NoActiveSessionError",
    "InvalidResolutionError",
    "InvalidTransitionError",
    "CommitInProgressError",
    "ConflictUnresolvedError",
    "StaleConflictError",
    "PersistenceError",
]
