"""Proxy host inventory used as the import target."""

from app.proxy_hosts.schemas import ExistingHost, ProxyHostFields
from app.proxy_hosts.service import ProxyHostService, StaleRecordError
from app.proxy_hosts.utils import is_valid_domain, normalize_domain, split_domain_names

__all__ = [
    "ProxyHostService",
    "StaleRecordError",
    "ProxyHostFields",
    "ExistingHost",
    "normalize_domain",
    "split_domain_names",
    "is_valid_domain",
]
