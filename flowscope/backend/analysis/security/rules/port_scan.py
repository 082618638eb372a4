"""
analysis/security/rules/port_scan.py

Port Scan Detection Rule.

Detects a single source address contacting many distinct destination ports
within the batch — a horizontal or vertical scan.

Detection strategy:
    For each src_ip collect the distinct dst_ports it contacted.
    > 10 ports → high, > 50 ports → critical. One issue per offending source,
    in first-seen order; node_ids carries the source's endpoint node id.
"""

from __future__ import annotations

from typing import Sequence

from ....models import FlowRecord
from ....topology.classifier import source_node_id
from ...models import IssueSeverity, IssueType, SecurityIssue
from ..base import BaseSecurityRule


class PortScanRule(BaseSecurityRule):
    """Detects port scanning by a single source IP."""

    name = "port_scan"
    issue_type = IssueType.PORT_SCAN
    severity = IssueSeverity.HIGH

    # ------------------------------------------------------------------
    # Thresholds (distinct dst_ports per src_ip per batch)
    # ------------------------------------------------------------------
    min_ports: int = 10
    critical_ports: int = 50

    def _analyze(self, records: Sequence[FlowRecord]) -> list[SecurityIssue]:
        ports_per_src: dict[str, set[int]] = {}
        records_per_src: dict[str, list[FlowRecord]] = {}
        for record in records:
            ports_per_src.setdefault(record.src_ip, set()).add(record.dst_port)
            records_per_src.setdefault(record.src_ip, []).append(record)

        issues: list[SecurityIssue] = []
        for src_ip, ports in ports_per_src.items():
            if len(ports) <= self.min_ports:
                continue
            severity = (
                IssueSeverity.CRITICAL if len(ports) > self.critical_ports
                else IssueSeverity.HIGH
            )
            issues.append(self.make_issue(
                records_per_src[src_ip],
                description=(
                    f"Potential port scanning from {src_ip}: "
                    f"{len(ports)} different ports accessed"
                ),
                recommendation="Investigate source IP for potential scanning activity",
                severity=severity,
                id_suffix=src_ip,
                node_ids=[source_node_id(records_per_src[src_ip][0])],
                source_ip=src_ip,
            ))
        return issues
