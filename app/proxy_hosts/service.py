"""Proxy host service layer.

This is the inventory the importer reconciles against. It exposes the
operations the import core relies on: a domain-indexed lookup, create,
update-by-identity, and change detection through the host's version.
"""

import logging
from collections.abc import Iterable
from datetime import UTC, datetime

from sqlalchemy.orm import Session, joinedload
from sqlalchemy.orm.exc import StaleDataError

from app.db.models import ProxyHost, ProxyHostDomain
from app.proxy_hosts.schemas import ProxyHostFields
from app.proxy_hosts.utils import normalize_domain

logger = logging.getLogger(__name__)

# Keep IN (...) lists well below database parameter limits
_LOOKUP_CHUNK_SIZE = 500


class StaleRecordError(Exception):
    """The proxy host was deleted or modified since it was last read."""

    def __init__(self, host_id: str, message: str):
        super().__init__(message)
        self.host_id = host_id


class ProxyHostService:
    """Service class for proxy host operations."""

    def __init__(self, db: Session):
        """Initialize proxy host service.

        Args:
            db: Database session.
        """
        self.db = db

    def lookup_domains(self, domains: Iterable[str], refresh: bool = False) -> dict[str, ProxyHost]:
        """Find the proxy hosts that own the given domains.

        Uses the unique domain index, so the cost depends on the number of
        domains asked for, not on the size of the inventory.

        Args:
            domains: Domain names (normalized here).
            refresh: Reload hosts from the database instead of trusting the
                session's identity map.

        Returns:
            dict[str, ProxyHost]: Normalized domain -> owning host, only for
                domains that exist.
        """
        wanted = list(dict.fromkeys(normalize_domain(d) for d in domains if d.strip()))
        found: dict[str, ProxyHost] = {}

        for start in range(0, len(wanted), _LOOKUP_CHUNK_SIZE):
            chunk = wanted[start : start + _LOOKUP_CHUNK_SIZE]
            query = (
                self.db.query(ProxyHostDomain)
                .options(joinedload(ProxyHostDomain.proxy_host))
                .filter(ProxyHostDomain.domain.in_(chunk))
            )
            if refresh:
                query = query.execution_options(populate_existing=True)
            for row in query.all():
                found[row.domain] = row.proxy_host

        return found

    def get_host(self, host_id: str, refresh: bool = False) -> ProxyHost | None:
        """Get a proxy host by ID.

        Args:
            host_id: Proxy host UUID.
            refresh: Reload from the database and lock the row where supported.

        Returns:
            ProxyHost | None: Host if found.
        """
        if refresh:
            return self.db.get(ProxyHost, host_id, populate_existing=True, with_for_update=True)
        return self.db.get(ProxyHost, host_id)

    def create_host(self, data: ProxyHostFields, commit: bool = True) -> ProxyHost:
        """Create a new proxy host.

        Args:
            data: Host fields.
            commit: Commit the transaction (otherwise only flush).

        Returns:
            ProxyHost: Created host.

        Raises:
            ValueError: If any of the domains already belongs to a host.
        """
        taken = self.lookup_domains(data.domains)
        if taken:
            raise ValueError(f"Domain already exists: {', '.join(sorted(taken))}")

        host = ProxyHost(name=data.name or data.domains[0])
        self._apply_fields(host, data)
        host.domains = [
            ProxyHostDomain(domain=domain, position=position)
            for position, domain in enumerate(data.domains)
        ]

        self.db.add(host)
        self._finish(host, commit)
        logger.info("Created proxy host %s for %s", host.id, host.domain_names)
        return host

    def update_host(
        self,
        host_id: str,
        data: ProxyHostFields,
        expected_version: int | None = None,
        commit: bool = True,
    ) -> ProxyHost:
        """Overwrite a proxy host in place.

        The host keeps its ID; its domain set is replaced by ``data.domains``.

        Args:
            host_id: Proxy host UUID.
            data: New host fields.
            expected_version: Version the caller last saw. When given, the
                update only happens if the stored host still has it.
            commit: Commit the transaction (otherwise only flush).

        Returns:
            ProxyHost: Updated host.

        Raises:
            StaleRecordError: If the host is gone or was modified meanwhile.
            ValueError: If a new domain already belongs to another host.
        """
        host = self.get_host(host_id, refresh=True)
        if host is None:
            raise StaleRecordError(host_id, f"Proxy host {host_id} no longer exists")
        if expected_version is not None and host.version != expected_version:
            raise StaleRecordError(
                host_id,
                f"Proxy host {host_id} changed since it was read "
                f"(version {expected_version} -> {host.version})",
            )

        taken = self.lookup_domains(data.domains)
        others = sorted(d for d, owner in taken.items() if owner.id != host.id)
        if others:
            raise ValueError(f"Domain already exists: {', '.join(others)}")

        # Drop removed domains first so a unique domain is never inserted
        # while its old row is still present
        current = {row.domain: row for row in host.domains}
        for row in list(host.domains):
            if row.domain not in data.domains:
                host.domains.remove(row)
        self.db.flush()

        for position, domain in enumerate(data.domains):
            row = current.get(domain)
            if row is not None:
                row.position = position
            else:
                host.domains.append(ProxyHostDomain(domain=domain, position=position))

        if data.name:
            host.name = data.name
        self._apply_fields(host, data)
        # Always touch the row so the version counter moves
        host.updated_at = datetime.now(UTC).replace(tzinfo=None)

        try:
            self._finish(host, commit)
        except StaleDataError as e:
            raise StaleRecordError(host_id, f"Proxy host {host_id} was modified concurrently") from e

        logger.info("Updated proxy host %s (version %s)", host.id, host.version)
        return host

    def delete_host(self, host_id: str) -> bool:
        """Delete a proxy host.

        Args:
            host_id: Proxy host UUID.

        Returns:
            bool: True if deleted, False if not found.
        """
        host = self.get_host(host_id)
        if not host:
            return False

        self.db.delete(host)
        self.db.commit()
        return True

    @staticmethod
    def _apply_fields(host: ProxyHost, data: ProxyHostFields) -> None:
        """Copy writable fields onto a host model."""
        host.domain_names = ", ".join(data.domains)
        host.forward_scheme = data.forward_scheme
        host.forward_host = data.forward_host
        host.forward_port = data.forward_port
        host.ssl_forced = data.ssl_forced
        host.http2_support = data.http2_support
        host.hsts_enabled = data.hsts_enabled
        host.hsts_subdomains = data.hsts_subdomains
        host.block_exploits = data.block_exploits
        host.websocket_support = data.websocket_support
        host.advanced_config = data.advanced_config
        host.enabled = data.enabled

    def _finish(self, host: ProxyHost, commit: bool) -> None:
        if commit:
            self.db.commit()
            self.db.refresh(host)
        else:
            self.db.flush()
