"""
analysis/security/rules/rejection_rate.py

High Rejection Rate Rule.

A batch where more than 30% of connections were rejected points at scanning,
misconfigured security groups, or a broken client. Above 50% it is critical.
"""

from __future__ import annotations

from typing import Sequence

from ....models import FlowRecord
from ....numeric import share
from ...models import IssueSeverity, IssueType, SecurityIssue
from ..base import BaseSecurityRule


class HighRejectionRateRule(BaseSecurityRule):
    name = "high_rejection_rate"
    issue_type = IssueType.HIGH_REJECTION_RATE
    severity = IssueSeverity.HIGH

    high_rate: float = 0.3
    critical_rate: float = 0.5

    def _analyze(self, records: Sequence[FlowRecord]) -> list[SecurityIssue]:
        rejected = [r for r in records if r.is_rejected]
        rate = share(len(rejected), len(records))
        if rate <= self.high_rate:
            return []

        return [self.make_issue(
            rejected,
            description=f"High rejection rate: {rate * 100:.1f}%",
            recommendation=(
                "Investigate rejected connections for potential security threats "
                "or misconfigurations"
            ),
            severity=IssueSeverity.CRITICAL if rate > self.critical_rate else IssueSeverity.HIGH,
        )]
