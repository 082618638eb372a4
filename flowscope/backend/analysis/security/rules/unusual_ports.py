"""
analysis/security/rules/unusual_ports.py

Unusual Destination Port Rule.

Flags traffic to registered/dynamic ports (> 1024) outside the common-service
set. Severity escalates to high once such records exceed 10% of the batch.
"""

from __future__ import annotations

from typing import Sequence

from ....models import FlowRecord
from ....statistics.calculator import COMMON_PORTS
from ...models import IssueSeverity, IssueType, SecurityIssue
from ..base import BaseSecurityRule


class UnusualPortRule(BaseSecurityRule):
    name = "unusual_port"
    issue_type = IssueType.UNUSUAL_PORT
    severity = IssueSeverity.MEDIUM

    min_port: int = 1024
    high_share: float = 0.1

    def _analyze(self, records: Sequence[FlowRecord]) -> list[SecurityIssue]:
        flagged = [
            r for r in records
            if r.dst_port > self.min_port and r.dst_port not in COMMON_PORTS
        ]
        if not flagged:
            return []

        ports = list(dict.fromkeys(r.dst_port for r in flagged))
        severity = (
            IssueSeverity.HIGH
            if len(flagged) > len(records) * self.high_share
            else IssueSeverity.MEDIUM
        )
        return [self.make_issue(
            flagged,
            description=f"Unusual ports detected: {', '.join(str(p) for p in ports)}",
            recommendation="Review traffic to unusual ports for potential security risks",
            severity=severity,
        )]
