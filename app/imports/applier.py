"""Applies reviewed import candidates to the proxy host inventory.

Each candidate is re-validated against the live domain index and written
in its own transaction. A failing candidate is recorded and the next one
is attempted; nothing already committed is rolled back.
"""

import logging
from collections.abc import Mapping

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.imports.exceptions import CandidateError, PersistenceError, StaleConflictError
from app.imports.schemas import (
    AppliedCandidate,
    CommitAction,
    CommitResult,
    ConflictEntry,
    ConflictResolution,
    FailedCandidate,
    HostCandidate,
    SkippedCandidate,
)
from app.db.models import ProxyHost
from app.proxy_hosts.schemas import ProxyHostFields
from app.proxy_hosts.service import ProxyHostService, StaleRecordError
from app.proxy_hosts.utils import split_domain_names

logger = logging.getLogger(__name__)

_SKIPPING = {ConflictResolution.KEEP, ConflictResolution.SKIP}


def candidate_to_fields(candidate: HostCandidate) -> ProxyHostFields:
    """Convert a candidate into writable proxy host fields.

    Raises:
        ValidationError: If the candidate does not form a valid host.
    """
    return ProxyHostFields(
        domains=candidate.domains,
        forward_scheme=candidate.forward.scheme,
        forward_host=candidate.forward.host,
        forward_port=candidate.forward.port,
        ssl_forced=candidate.ssl_forced,
        http2_support=candidate.http2_support,
        hsts_enabled=candidate.hsts_enabled,
        hsts_subdomains=candidate.hsts_subdomains,
        block_exploits=candidate.block_exploits,
        websocket_support=candidate.websocket_support,
        advanced_config=candidate.extra_directives or None,
    )


class ResolutionApplier:
    """Writes candidates according to the operator's resolutions."""

    def __init__(self, db: Session, inventory: ProxyHostService | None = None):
        """Initialize applier.

        Args:
            db: Database session. Committed/rolled back once per candidate.
            inventory: Proxy host service; defaults to one bound to ``db``.
        """
        self.db = db
        self.inventory = inventory or ProxyHostService(db)
        # Host ID -> version after a write committed by this applier
        self._written: dict[str, int] = {}

    def apply(
        self,
        candidates: list[HostCandidate],
        conflicts: Mapping[str, ConflictEntry],
        resolutions: Mapping[str, ConflictResolution],
    ) -> CommitResult:
        """Apply every candidate, best effort.

        Args:
            candidates: Candidates in session order.
            conflicts: Conflicts keyed by domain, as detected at upload.
            resolutions: Resolution per conflicting domain. Must cover every
                conflict; the caller checks this.

        Returns:
            CommitResult: Applied, skipped and failed candidates.
        """
        result = CommitResult()

        for index, candidate in enumerate(candidates):
            conflicting = [d for d in candidate.domains if d in conflicts]

            skipped_by = [d for d in conflicting if resolutions.get(d) in _SKIPPING]
            if skipped_by:
                choice = resolutions[skipped_by[0]].value
                result.skipped.append(
                    SkippedCandidate(
                        index=index,
                        domains=candidate.domains,
                        reason=f"'{choice}' chosen for {skipped_by[0]}",
                    )
                )
                continue

            try:
                if conflicting:
                    host = self._overwrite(candidate, conflicting, conflicts)
                    action = CommitAction.UPDATED
                else:
                    host = self._create(candidate)
                    action = CommitAction.CREATED
                self.db.commit()
                host_id = host.id
                self._written[host_id] = host.version
            except CandidateError as e:
                self.db.rollback()
                self._record_failure(result, index, candidate, e)
            except StaleRecordError as e:
                self.db.rollback()
                self._record_failure(result, index, candidate, StaleConflictError(str(e)))
            except (ValueError, ValidationError, SQLAlchemyError) as e:
                self.db.rollback()
                self._record_failure(result, index, candidate, PersistenceError(str(e)))
            else:
                result.applied.append(
                    AppliedCandidate(
                        index=index, domains=candidate.domains, action=action, host_id=host_id
                    )
                )

        logger.info(
            "Import applied: %d applied, %d skipped, %d failed",
            len(result.applied),
            len(result.skipped),
            len(result.failed),
        )
        return result

    def _create(self, candidate: HostCandidate) -> ProxyHost:
        live = self.inventory.lookup_domains(candidate.domains, refresh=True)
        if live:
            raise StaleConflictError(
                f"Domain created since the preview was generated: {', '.join(sorted(live))}"
            )

        return self.inventory.create_host(candidate_to_fields(candidate), commit=False)

    def _overwrite(
        self,
        candidate: HostCandidate,
        conflicting: list[str],
        conflicts: Mapping[str, ConflictEntry],
    ) -> ProxyHost:
        """Update the conflicting host in place.

        The host keeps every domain it already had; domains of the candidate
        it did not have are added. A host written earlier in this commit is
        compared against the version that write produced, not the preview's.
        """
        targets = {conflicts[d].existing.id: conflicts[d].existing for d in conflicting}
        if len(targets) > 1:
            raise PersistenceError(
                f"Domains of this candidate belong to {len(targets)} different existing hosts; "
                "it cannot overwrite them as one host"
            )
        (snapshot,) = targets.values()
        expected_version = self._written.get(snapshot.id, snapshot.version)

        live = self.inventory.lookup_domains(candidate.domains, refresh=True)
        for domain in candidate.domains:
            owner = live.get(domain)
            if domain in conflicting:
                if owner is None:
                    raise StaleConflictError(f"{domain} no longer exists in the inventory")
                if owner.id != snapshot.id or owner.version != expected_version:
                    raise StaleConflictError(
                        f"{domain} was modified since the preview was generated"
                    )
            elif owner is not None and owner.id != snapshot.id:
                raise StaleConflictError(
                    f"{domain} was added to another host since the preview was generated"
                )

        existing = live[conflicting[0]]
        domains = split_domain_names(existing.domain_names)
        domains += [d for d in candidate.domains if d not in domains]
        fields = candidate_to_fields(candidate).model_copy(update={"domains": domains})

        return self.inventory.update_host(
            snapshot.id,
            fields,
            expected_version=expected_version,
            commit=False,
        )

    @staticmethod
    def _record_failure(
        result: CommitResult, index: int, candidate: HostCandidate, error: CandidateError
    ) -> None:
        logger.warning(
            "Import candidate %d (%s) failed: %s", index, candidate.domain_names, error
        )
        result.failed.append(
            FailedCandidate(
                index=index,
                domains=candidate.domains,
                error=type(error).__name__,
                message=str(error),
            )
        )
