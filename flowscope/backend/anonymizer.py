"""
backend/anonymizer.py

Consistent pseudonymisation of topologies, flow records and free text, for
exports and screenshots that must not leak addresses or cloud resource ids.

Replaced, each behind its own AnonymizationOptions switch:
    IPv4 / full IPv6 addresses, and the ip-/external- node ids built from them
    12-digit account ids
    instance, VPC, subnet, security-group and transit-gateway ids
    IAM user and role names inside ARNs (off by default)

Every distinct value gets one replacement for the lifetime of the mapping
table, so ids stay joinable across nodes, edges and records. With
preserve_structure the replacement keeps the value's shape (`vpc-` + 8 hex,
an address in 10.0.0.0/8, 12 digits) and is derived from a salted SHA-256,
so two anonymizers with the same salt agree. Without it, replacements are
sequential per kind (`ip-001`, `vpc-002`, ...).

Not thread-safe; use one instance per request or per export.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping

from pydantic_core import to_jsonable_python

from .errors import MappingImportError
from .metrics import METRICS
from .models import FlowRecord
from .options import AnonymizationOptions, coerce_options

logger = logging.getLogger(__name__)

CIRCULAR_REFERENCE = "[Circular Reference]"

_OCTET = r"(?:25[0-5]|2[0-4]\d|1\d\d|[1-9]?\d)"

_IPV4 = re.compile(rf"\b(?P<value>{_OCTET}(?:\.{_OCTET}){{3}})\b")
_IPV6 = re.compile(r"\b(?P<value>(?:[0-9a-fA-F]{1,4}:){7}[0-9a-fA-F]{1,4})\b")
_ADDRESS_NODE_ID = re.compile(rf"\b(?P<prefix>ip|external)-(?P<address>{_OCTET}(?:-{_OCTET}){{3}})\b")
_ACCOUNT_ID = re.compile(r"\b(?P<value>\d{12})\b")


def _resource(prefix: str) -> re.Pattern[str]:
    return re.compile(rf"\b(?P<value>{prefix}-[0-9a-f]{{8,17}})\b")


def _iam(kind: str) -> re.Pattern[str]:
    return re.compile(rf"arn:aws:iam::[^:\s]*:{kind}/(?P<value>[A-Za-z0-9+=,.@_-]+)")


_STRUCTURED_ID = re.compile(r"(i|vpc|subnet|sg|tgw)-[0-9a-f]+")
_DOTTED_IPV4 = re.compile(r"\d+\.\d+\.\d+\.\d+")
_TWELVE_DIGITS = re.compile(r"\d{12}")


@dataclass(slots=True)
class AnonymizedData:
    original: Any
    anonymized: Any
    mappings: dict[str, str] = field(default_factory=dict)


class DataAnonymizer:
    """Replaces sensitive values through one shared mapping table."""

    def __init__(
        self,
        options: AnonymizationOptions | Mapping[str, Any] | None = None,
    ) -> None:
        self.options = coerce_options(AnonymizationOptions, options)
        self._mappings: dict[str, str] = {}

        opts = self.options
        # (pattern, kind), applied in order
        self._passes: list[tuple[re.Pattern[str], str]] = []
        if opts.anonymize_account_ids:
            self._passes.append((_ACCOUNT_ID, "account"))
        if opts.anonymize_instance_ids:
            self._passes.append((_resource("i"), "instance"))
        if opts.anonymize_vpc_ids:
            self._passes.append((_resource("vpc"), "vpc"))
        if opts.anonymize_subnet_ids:
            self._passes.append((_resource("subnet"), "subnet"))
        if opts.anonymize_security_group_ids:
            self._passes.append((_resource("sg"), "sg"))
        if opts.anonymize_transit_gateway_ids:
            self._passes.append((_resource("tgw"), "tgw"))
        if opts.anonymize_usernames:
            self._passes.append((_iam("user"), "user"))
        if opts.anonymize_role_names:
            self._passes.append((_iam("role"), "role"))
        self._custom = [(re.compile(p), r) for p, r in opts.custom_patterns]

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def anonymize_text(self, text: str) -> str:
        if self.options.anonymize_ips:
            text = _ADDRESS_NODE_ID.sub(self._replace_address_node_id, text)
            text = self._substitute(_IPV4, "ip", text)
            text = self._substitute(_IPV6, "ipv6", text)
        for pattern, kind in self._passes:
            text = self._substitute(pattern, kind, text)
        for pattern, replacement in self._custom:
            text = pattern.sub(replacement, text)
        return text

    def anonymize_data(self, data: Any) -> AnonymizedData:
        """Anonymize a JSON-like structure against a fresh mapping table."""
        self._mappings.clear()
        anonymized = self._process(data, set())
        return AnonymizedData(original=data, anonymized=anonymized, mappings=self.mappings)

    def anonymize_topology(self, topology: Any) -> Any:
        """A NetworkTopology (or its JSON form) with every sensitive value replaced."""
        return self._process(to_jsonable_python(topology), set())

    def anonymize_flow_logs(self, records: Iterable[FlowRecord | Mapping[str, Any]]) -> list[Any]:
        return [self._process(to_jsonable_python(record), set()) for record in records]

    # ------------------------------------------------------------------
    # Mapping table
    # ------------------------------------------------------------------

    @property
    def mappings(self) -> dict[str, str]:
        return dict(self._mappings)

    def create_mapping(self, original: str, kind: str) -> str:
        """Return the replacement for `original`, creating it on first sight."""
        existing = self._mappings.get(original)
        if existing is not None:
            return existing

        if self.options.preserve_structure:
            replacement = self._structured_replacement(original, kind)
        else:
            taken = sum(1 for v in self._mappings.values() if v.startswith(f"{kind}-"))
            replacement = f"{kind}-{taken + 1:03d}"

        self._mappings[original] = replacement
        METRICS.values_anonymized.inc()
        return replacement

    def clear_mappings(self) -> None:
        logger.debug("Cleared %d anonymization mapping(s)", len(self._mappings))
        self._mappings.clear()

    def export_mappings(self) -> str:
        return json.dumps(self._mappings, indent=2)

    def import_mappings(self, mappings_json: str) -> None:
        """
        Replace the mapping table with one produced by export_mappings().

        Raises:
            MappingImportError: the text is not a JSON object of strings.
        """
        try:
            loaded = json.loads(mappings_json)
        except ValueError as exc:
            raise MappingImportError(f"Failed to import mappings: {exc}") from exc
        self.load_mappings(loaded)

    def load_mappings(self, mappings: Mapping[str, str]) -> None:
        if not isinstance(mappings, Mapping) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in mappings.items()
        ):
            raise MappingImportError(
                "Failed to import mappings: expected an object of string to string"
            )
        self._mappings = dict(mappings)
        logger.debug("Loaded %d anonymization mapping(s)", len(self._mappings))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _process(self, value: Any, active: set[int]) -> Any:
        if isinstance(value, str):
            return self.anonymize_text(value)
        if value is None or isinstance(value, (bool, int, float, datetime)):
            return value

        if isinstance(value, Mapping):
            if id(value) in active:
                return CIRCULAR_REFERENCE
            active.add(id(value))
            try:
                return {
                    self.anonymize_text(k) if isinstance(k, str) else k: self._process(v, active)
                    for k, v in value.items()
                }
            finally:
                active.discard(id(value))

        if isinstance(value, (list, tuple, set, frozenset)):
            if id(value) in active:
                return CIRCULAR_REFERENCE
            active.add(id(value))
            try:
                return [self._process(item, active) for item in value]
            finally:
                active.discard(id(value))

        return value

    def _substitute(self, pattern: re.Pattern[str], kind: str, text: str) -> str:
        def replace(match: re.Match[str]) -> str:
            whole = match.group(0)
            start, end = match.start("value") - match.start(), match.end("value") - match.start()
            return whole[:start] + self.create_mapping(match.group("value"), kind) + whole[end:]

        return pattern.sub(replace, text)

    def _replace_address_node_id(self, match: re.Match[str]) -> str:
        # Shares the mapping of the dotted address it was built from
        address = match.group("address").replace("-", ".")
        replacement = self.create_mapping(address, "ip")
        return f"{match.group('prefix')}-{replacement.replace('.', '-')}"

    def _digest(self, value: str) -> str:
        return hashlib.sha256((value + self.options.hash_salt).encode()).hexdigest()[:8]

    def _structured_replacement(self, original: str, kind: str) -> str:
        digest = self._digest(original)

        resource = _STRUCTURED_ID.fullmatch(original)
        if resource:
            return f"{resource.group(1)}-{digest}"

        if _DOTTED_IPV4.fullmatch(original):
            n = int(digest[:6], 16)
            return f"10.{(n >> 16) & 0xFF}.{(n >> 8) & 0xFF}.{n & 0xFF}"

        if _TWELVE_DIGITS.fullmatch(original):
            return str(int(digest, 16)).zfill(12)[:12]

        return f"{kind}-{digest}"
