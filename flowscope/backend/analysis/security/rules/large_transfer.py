"""
analysis/security/rules/large_transfer.py

Large Transfer Rule — any single record above 10 MB raises one medium issue
covering all of them (possible exfiltration or bulk copy).
"""

from __future__ import annotations

from typing import Sequence

from ....models import FlowRecord
from ...models import IssueSeverity, IssueType, SecurityIssue
from ..base import BaseSecurityRule


class LargeTransferRule(BaseSecurityRule):
    name = "large_transfer"
    issue_type = IssueType.LARGE_TRANSFER
    severity = IssueSeverity.MEDIUM

    min_bytes: int = 10_000_000

    def _analyze(self, records: Sequence[FlowRecord]) -> list[SecurityIssue]:
        large = [r for r in records if r.byte_count > self.min_bytes]
        if not large:
            return []
        return [self.make_issue(
            large,
            description=f"{len(large)} large data transfers detected (>10MB each)",
            recommendation="Review large data transfers for potential data exfiltration",
        )]
