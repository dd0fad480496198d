"""Pydantic schemas for proxy hosts."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.db.models import ForwardScheme
from app.proxy_hosts.utils import is_valid_domain, normalize_domain


class ProxyHostFields(BaseModel):
    """Writable fields of a proxy host.

    Used both for creating a host and for overwriting one in place.
    """

    name: str | None = Field(None, max_length=255)
    domains: list[str] = Field(..., min_length=1)
    forward_scheme: ForwardScheme = ForwardScheme.HTTP
    forward_host: str = Field(..., min_length=1, max_length=255)
    forward_port: int = Field(..., ge=1, le=65535)
    ssl_forced: bool = False
    http2_support: bool = False
    hsts_enabled: bool = False
    hsts_subdomains: bool = False
    block_exploits: bool = False
    websocket_support: bool = False
    advanced_config: str | None = None
    enabled: bool = True

    @field_validator("domains")
    @classmethod
    def validate_domains(cls, value: list[str]) -> list[str]:
        """Normalize domains and reject names that cannot be routed."""
        normalized = []
        for domain in value:
            domain = normalize_domain(domain)
            if not is_valid_domain(domain):
                raise ValueError(f"Invalid domain name: '{domain}'")
            if domain not in normalized:
                normalized.append(domain)
        return normalized


class ExistingHost(BaseModel):
    """Snapshot of an inventory record taken when a conflict was detected.

    The version is what commit compares against to notice that the record
    changed after the preview was generated.
    """

    id: str
    name: str
    domain_names: str
    forward_scheme: ForwardScheme
    forward_host: str
    forward_port: int
    enabled: bool
    version: int

    model_config = ConfigDict(from_attributes=True)
