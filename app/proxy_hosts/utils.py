"""Domain name helpers shared by the inventory and the importer."""

import re

# Hostname labels, an optional leading wildcard label, or an IPv4 address.
_LABEL = r"(?!-)[a-z0-9_-]{1,63}(?<!-)"
DOMAIN_PATTERN = re.compile(rf"^(\*\.)?{_LABEL}(\.{_LABEL})*\.?$")


def normalize_domain(domain: str) -> str:
    """Normalize a domain name for comparison.

    Trims surrounding whitespace and case-folds ASCII letters. Unicode/IDN
    forms are left as written.

    Args:
        domain: Domain name as entered.

    Returns:
        str: Normalized domain.
    """
    return domain.strip().lower()


def split_domain_names(value: str | None) -> list[str]:
    """Split a comma/space separated domain list into normalized domains.

    Order is preserved and duplicates are dropped.

    Examples:
        "a.com, B.com" -> ["a.com", "b.com"]
        "a.com a.com" -> ["a.com"]

    Args:
        value: Domain list string.

    Returns:
        list[str]: Normalized domain names.
    """
    if not value:
        return []

    seen: set[str] = set()
    domains = []
    for part in value.replace(",", " ").split():
        domain = normalize_domain(part)
        if domain and domain not in seen:
            seen.add(domain)
            domains.append(domain)
    return domains


def is_valid_domain(domain: str) -> bool:
    """Check that a normalized domain is a plausible host name.

    Args:
        domain: Normalized domain name.

    Returns:
        bool: True if the name can be stored as a proxy host domain.
    """
    return len(domain) <= 253 and bool(DOMAIN_PATTERN.match(domain))
