"""
backend/addresses.py

IP address helpers shared by the validator, node identifier, edge aggregator
and analysis stages.

"Private" here means exactly the three RFC 1918 ranges. Other non-global
space (loopback, link-local, CGNAT …) is neither private nor external; the
node identifier classifies it as unknown.
"""

from __future__ import annotations

import ipaddress
from functools import lru_cache

_PRIVATE_NETWORKS = (
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
)


@lru_cache(maxsize=65_536)
def parse_ip(value: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    """Parse an address string; None if it is not a valid IPv4/IPv6 address."""
    if not isinstance(value, str):
        return None
    try:
        return ipaddress.ip_address(value.strip())
    except ValueError:
        return None


def is_valid_ip(value: object) -> bool:
    return isinstance(value, str) and parse_ip(value) is not None


def is_private_ip(value: str) -> bool:
    """True for addresses in 10/8, 172.16/12 or 192.168/16."""
    addr = parse_ip(value)
    if addr is None or addr.version != 4:
        return False
    return any(addr in net for net in _PRIVATE_NETWORKS)


def is_external_ip(value: str) -> bool:
    """True for globally routable addresses."""
    addr = parse_ip(value)
    return addr is not None and addr.is_global


def address_node_id(value: str) -> str:
    """
    Node id for an address endpoint.

    Globally routable addresses become 'external-<addr>', everything else
    'ip-<addr>', with '.' and ':' replaced by '-'.
    """
    slug = value.strip().replace(".", "-").replace(":", "-")
    if is_external_ip(value):
        return f"external-{slug}"
    return f"ip-{slug}"


def ip_pattern(value: str) -> str:
    """Coarse address pattern: 'a.b.x.x' for private IPv4, else 'external'."""
    if is_private_ip(value):
        first, second = value.strip().split(".")[:2]
        return f"{first}.{second}.x.x"
    return "external"
