"""
validation/validator.py

Structural validation of flow records.

validate_record() never raises: every problem becomes an error string, and
suspicious-but-legal values become warnings. validate_batch() partitions a
batch into typed FlowRecords and rejected inputs (kept with their reasons).

Accepted input shapes:
    - a FlowRecord (re-checked field by field)
    - any Mapping with the FlowRecord field names (e.g. decoded JSON)

Timestamp representations:
    - datetime (naive = UTC)
    - epoch seconds as int / float
    - ISO-8601 string ('Z' suffix accepted)
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from ..addresses import is_external_ip, is_valid_ip
from ..metrics import METRICS
from ..models import (
    KNOWN_PROTOCOLS,
    PROTOCOL_NUMBERS,
    REQUIRED_FIELDS,
    FlowRecord,
    Verdict,
)

logger = logging.getLogger(__name__)

_MAX_PORT = 65_535
_VERDICTS = frozenset(v.value for v in Verdict)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(slots=True)
class InvalidRecord:
    """A rejected input with the reasons it was rejected."""

    record: Any
    errors: list[str]
    index: int
    """Position in the submitted batch."""


@dataclass(slots=True)
class BatchValidation:
    valid_records: list[FlowRecord] = field(default_factory=list)
    invalid_records: list[InvalidRecord] = field(default_factory=list)
    warnings: dict[int, list[str]] = field(default_factory=dict)
    """Batch index → warnings, for records that were accepted with warnings."""

    @property
    def summary(self) -> dict[str, int]:
        valid = len(self.valid_records)
        invalid = len(self.invalid_records)
        return {"total": valid + invalid, "valid": valid, "invalid": invalid}


# ---------------------------------------------------------------------------
# Timestamp parsing
# ---------------------------------------------------------------------------

def parse_timestamp(value: Any) -> datetime | None:
    """Return an aware datetime for `value`, or None if it is not an instant."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _verdict_token(value: Any) -> Any:
    return value.value if isinstance(value, Verdict) else value


_KNOWN_PROTOCOL_TOKENS = frozenset(KNOWN_PROTOCOLS) | frozenset(PROTOCOL_NUMBERS)


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------

class FlowRecordValidator:
    """Stateless record validator; one instance can be shared freely."""

    def validate_record(self, record: Mapping[str, Any] | FlowRecord) -> ValidationResult:
        data = self._as_mapping(record)
        if data is None:
            return ValidationResult(
                valid=False,
                errors=[f"Record must be a mapping, got {type(record).__name__}"],
            )

        errors: list[str] = []
        warnings: list[str] = []

        missing = [name for name in REQUIRED_FIELDS if data.get(name) is None]
        if missing:
            return ValidationResult(
                valid=False,
                errors=[f"Missing required field: {name}" for name in missing],
            )

        if parse_timestamp(data["timestamp"]) is None:
            errors.append(f"Invalid timestamp: {data['timestamp']!r}")

        for name in ("src_ip", "dst_ip"):
            if not is_valid_ip(data[name]):
                errors.append(f"Invalid IP address in {name}: {data[name]!r}")

        for name in ("src_port", "dst_port"):
            port = data[name]
            if not _is_int(port) or not 0 <= port <= _MAX_PORT:
                errors.append(f"Invalid port in {name}: {port!r}")

        protocol = data["protocol"]
        if not isinstance(protocol, str) or not protocol.strip():
            errors.append(f"Invalid protocol: {protocol!r}")
        elif protocol.strip().upper() not in _KNOWN_PROTOCOL_TOKENS:
            warnings.append(f"Unusual protocol: {protocol}")

        action = _verdict_token(data["action"])
        if not isinstance(action, str) or action not in _VERDICTS:
            errors.append(f"Invalid action: {action!r} (expected ACCEPT or REJECT)")

        for name in ("byte_count", "packet_count"):
            count = data[name]
            if not _is_int(count) or count < 0:
                errors.append(f"Invalid {name}: {count!r} (must be a non-negative integer)")

        if not errors:
            byte_count = data["byte_count"]
            packet_count = data["packet_count"]
            if byte_count == 0 and packet_count > 0:
                warnings.append("Zero bytes with non-zero packets")
            elif packet_count == 0 and byte_count > 0:
                warnings.append("Zero packets with non-zero bytes")

            if is_external_ip(data["src_ip"]) and is_external_ip(data["dst_ip"]):
                warnings.append("Both endpoints are external addresses")

        return ValidationResult(valid=not errors, errors=errors, warnings=warnings)

    def validate_batch(self, records: Iterable[Mapping[str, Any] | FlowRecord]) -> BatchValidation:
        batch = BatchValidation()
        for index, record in enumerate(records):
            result = self.validate_record(record)
            if not result.valid:
                batch.invalid_records.append(
                    InvalidRecord(record=record, errors=result.errors, index=index)
                )
                continue
            if result.warnings:
                batch.warnings[index] = result.warnings
            batch.valid_records.append(self._to_flow_record(record))

        summary = batch.summary
        METRICS.records_valid.inc(summary["valid"])
        METRICS.records_invalid.inc(summary["invalid"])
        logger.debug(
            "Validated batch: total=%d valid=%d invalid=%d warned=%d",
            summary["total"], summary["valid"], summary["invalid"], len(batch.warnings),
        )
        return batch

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _as_mapping(record: Any) -> Mapping[str, Any] | None:
        if isinstance(record, FlowRecord):
            data = asdict(record)
            data["action"] = _verdict_token(record.action)
            return data
        if isinstance(record, Mapping):
            return record
        return None

    @staticmethod
    def _to_flow_record(record: Mapping[str, Any] | FlowRecord) -> FlowRecord:
        if isinstance(record, FlowRecord):
            return record
        data = dict(record)
        data["protocol"] = data["protocol"].strip()
        data["action"] = _verdict_token(data["action"])
        return FlowRecord.from_mapping(data, parse_timestamp(record["timestamp"]))
