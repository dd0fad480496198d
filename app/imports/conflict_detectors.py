"""Conflict detection between import candidates and the proxy host inventory.

A conflict is a candidate domain that is already served by an existing
proxy host. Detection is keyed by domain, so a candidate with three
domains may produce up to three conflicts, each with its own resolution.

Example usage:
    context = build_detection_context(candidates, ProxyHostService(db))
    conflicts = get_conflict_detector().detect_all(candidates, context)
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from app.imports.schemas import (
    CandidatePreview,
    CandidateStatus,
    ConflictEntry,
    HostCandidate,
)
from app.proxy_hosts.schemas import ExistingHost


class InventoryIndex(Protocol):
    """Domain-indexed view of the inventory.

    ``ProxyHostService`` satisfies this protocol.
    """

    def lookup_domains(self, domains: Iterable[str], refresh: bool = False) -> Mapping[str, Any]:
        """Return normalized domain -> owning record for domains that exist."""
        ...


@dataclass
class DetectionContext:
    """Context passed to all detectors.

    Attributes:
        existing: Normalized domain -> snapshot of the record owning it.
    """

    existing: dict[str, ExistingHost] = field(default_factory=dict)


class ConflictDetector(Protocol):
    """Protocol for conflict detection strategies."""

    def detect(
        self,
        candidate: HostCandidate,
        candidate_index: int,
        context: DetectionContext,
    ) -> list[ConflictEntry]:
        """Detect conflicts for a single candidate.

        Args:
            candidate: Parsed host candidate.
            candidate_index: 0-based index of the candidate in the session.
            context: Detection context.

        Returns:
            List of detected conflicts (empty if none).
        """
        ...


class DomainCollisionDetector:
    """Flags every candidate domain that an existing host already serves."""

    def detect(
        self,
        candidate: HostCandidate,
        candidate_index: int,
        context: DetectionContext,
    ) -> list[ConflictEntry]:
        conflicts = []
        for domain in candidate.domains:
            existing = context.existing.get(domain)
            if existing is None:
                continue
            conflicts.append(
                ConflictEntry(domain=domain, candidate_index=candidate_index, existing=existing)
            )
        return conflicts


class CompositeDetector:
    """Runs several detectors and merges their results by domain."""

    def __init__(self, detectors: list[ConflictDetector]):
        """Initialize with list of detectors.

        Args:
            detectors: Detector instances to run, in order.
        """
        self.detectors = detectors

    def detect(
        self,
        candidate: HostCandidate,
        candidate_index: int,
        context: DetectionContext,
    ) -> list[ConflictEntry]:
        """Run all detectors and combine results."""
        all_conflicts = []
        for detector in self.detectors:
            all_conflicts.extend(detector.detect(candidate, candidate_index, context))
        return all_conflicts

    def detect_all(
        self,
        candidates: list[HostCandidate],
        context: DetectionContext,
    ) -> dict[str, ConflictEntry]:
        """Detect conflicts for all candidates.

        Args:
            candidates: Parsed candidates in session order.
            context: Detection context.

        Returns:
            dict[str, ConflictEntry]: Conflicting domain -> entry. The first
                detector to report a domain wins.
        """
        conflicts: dict[str, ConflictEntry] = {}
        for index, candidate in enumerate(candidates):
            for entry in self.detect(candidate, index, context):
                conflicts.setdefault(entry.domain, entry)
        return conflicts


def build_detection_context(
    candidates: list[HostCandidate],
    inventory: InventoryIndex,
) -> DetectionContext:
    """Look up all candidate domains in one batched index query.

    Args:
        candidates: Parsed candidates.
        inventory: Domain index to query.

    Returns:
        DetectionContext: Snapshots of the records owning candidate domains.
    """
    domains = [domain for candidate in candidates for domain in candidate.domains]
    found = inventory.lookup_domains(domains)
    return DetectionContext(
        existing={domain: ExistingHost.model_validate(host) for domain, host in found.items()}
    )


def classify_candidates(
    candidates: list[HostCandidate],
    conflicts: Mapping[str, ConflictEntry],
) -> list[CandidatePreview]:
    """Mark each candidate as new or conflicting.

    Args:
        candidates: Parsed candidates in session order.
        conflicts: Conflict map from detection.

    Returns:
        list[CandidatePreview]: One preview per candidate, same order.
    """
    previews = []
    for index, candidate in enumerate(candidates):
        conflicting = [d for d in candidate.domains if d in conflicts]
        previews.append(
            CandidatePreview(
                **candidate.model_dump(),
                index=index,
                status=CandidateStatus.CONFLICT if conflicting else CandidateStatus.NEW,
                conflicting_domains=conflicting,
            )
        )
    return previews


def get_conflict_detector() -> CompositeDetector:
    """Factory function to create the conflict detector.

    Returns:
        CompositeDetector configured with the domain collision detector.
    """
    detectors: list[ConflictDetector] = [DomainCollisionDetector()]
    return CompositeDetector(detectors)
