"""
backend/models.py

Shared dataclasses for every stage of the pipeline.

FlowRecord is the single input type: one observed connection summary as
produced by the record-acquisition layer (VPC / Transit Gateway flow logs).
Defining it here locks the contract between validation, topology
construction and traffic analysis.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping


# ---------------------------------------------------------------------------
# Verdict
# ---------------------------------------------------------------------------

class Verdict(str, Enum):
    ACCEPT = "ACCEPT"
    REJECT = "REJECT"


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------

# IANA protocol numbers for the protocols flow logs commonly report.
PROTOCOL_NUMBERS: dict[str, str] = {
    "1":   "ICMP",
    "6":   "TCP",
    "17":  "UDP",
    "47":  "GRE",
    "50":  "ESP",
    "51":  "AH",
    "58":  "ICMPv6",
    "132": "SCTP",
}

KNOWN_PROTOCOLS: frozenset[str] = frozenset(
    name.upper() for name in PROTOCOL_NUMBERS.values()
)

# Upper-cased name or number -> canonical name
_CANONICAL_PROTOCOLS: dict[str, str] = {
    **{name.upper(): name for name in PROTOCOL_NUMBERS.values()},
    **PROTOCOL_NUMBERS,
}


def protocol_name(token: str) -> str:
    """
    Canonical protocol name for a token: "tcp", "TCP" and "6" all give "TCP",
    and "icmpv6" gives "ICMPv6". Unknown tokens come back stripped and upper-cased.
    """
    key = token.strip().upper()
    return _CANONICAL_PROTOCOLS.get(key, key)


# ---------------------------------------------------------------------------
# FlowRecord
# ---------------------------------------------------------------------------

REQUIRED_FIELDS: tuple[str, ...] = (
    "timestamp",
    "src_ip",
    "dst_ip",
    "src_port",
    "dst_port",
    "protocol",
    "action",
    "byte_count",
    "packet_count",
)

TAG_FIELDS: tuple[str, ...] = (
    "account_id",
    "vpc_id",
    "subnet_id",
    "instance_id",
    "region",
    "availability_zone",
    "transit_gateway_id",
    "transit_gateway_attachment_id",
)


@dataclass(frozen=True, slots=True)
class FlowRecord:
    """One observed connection summary."""

    timestamp: datetime
    """Start of the capture window. Naive values are interpreted as UTC."""

    src_ip: str
    dst_ip: str
    src_port: int
    dst_port: int

    protocol: str
    """Protocol token — a name ('TCP') or an IANA number as string ('6')."""

    action: str
    """'ACCEPT' | 'REJECT'."""

    byte_count: int
    packet_count: int

    # Optional resource tags
    account_id: str | None = None
    vpc_id: str | None = None
    subnet_id: str | None = None
    instance_id: str | None = None
    region: str | None = None
    availability_zone: str | None = None
    transit_gateway_id: str | None = None
    transit_gateway_attachment_id: str | None = None

    def __post_init__(self) -> None:
        if self.timestamp.tzinfo is None:
            object.__setattr__(
                self, "timestamp", self.timestamp.replace(tzinfo=timezone.utc)
            )

    @property
    def is_rejected(self) -> bool:
        return self.action == Verdict.REJECT

    @property
    def timestamp_ms(self) -> int:
        return int(self.timestamp.timestamp() * 1000)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], timestamp: datetime) -> "FlowRecord":
        """
        Build a FlowRecord from an already-validated mapping.

        `timestamp` is the parsed instant (the validator accepts several
        representations); unknown keys in `data` are ignored.
        """
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        kwargs["timestamp"] = timestamp
        action = data["action"]
        kwargs["action"] = action.value if isinstance(action, Verdict) else action
        return cls(**kwargs)

    def __repr__(self) -> str:
        return (
            f"FlowRecord({self.src_ip}:{self.src_port}"
            f"→{self.dst_ip}:{self.dst_port}/{self.protocol} "
            f"{self.action} bytes={self.byte_count} pkts={self.packet_count})"
        )


# ---------------------------------------------------------------------------
# TimeRange
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class TimeRange:
    start: datetime
    end: datetime

    @property
    def duration_seconds(self) -> float:
        return (self.end - self.start).total_seconds()


# Business hours are 06:00–22:00 UTC
BUSINESS_HOURS_START = 6
BUSINESS_HOURS_END = 22


def is_off_hours(ts: datetime) -> bool:
    hour = ts.astimezone(timezone.utc).hour
    return not BUSINESS_HOURS_START <= hour < BUSINESS_HOURS_END
