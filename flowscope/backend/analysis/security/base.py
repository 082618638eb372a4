"""
analysis/security/base.py

Abstract base class that every security rule implements.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Sequence

from ...models import FlowRecord
from ..models import EVIDENCE_SAMPLE_SIZE, IssueSeverity, IssueType, SecurityIssue

logger = logging.getLogger(__name__)


class BaseSecurityRule(ABC):
    """
    Contract that every security rule must satisfy.

    Class-level attributes:
        name       — unique snake_case identifier, used in logs
        issue_type — IssueType of the issues the rule raises
        severity   — default IssueSeverity; rules may escalate per issue
        enabled    — False to keep a rule out of discovery

    analyze() never raises: failures inside _analyze() are logged and the
    rule contributes no issues for that batch.
    """

    name: str = ""
    issue_type: IssueType
    severity: IssueSeverity = IssueSeverity.MEDIUM
    enabled: bool = True

    def analyze(self, records: Sequence[FlowRecord]) -> list[SecurityIssue]:
        try:
            return self._analyze(records)
        except Exception as exc:
            logger.exception("%s.analyze() raised: %s", type(self).__name__, exc)
            return []

    @abstractmethod
    def _analyze(self, records: Sequence[FlowRecord]) -> list[SecurityIssue]:
        ...

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    def make_issue(
        self,
        records: Sequence[FlowRecord],
        description: str,
        recommendation: str,
        severity: IssueSeverity | None = None,
        id_suffix: str | None = None,
        **extra,
    ) -> SecurityIssue:
        """Issue spanning `records` (first/last seen), with an evidence sample."""
        first, last = _bounds(records)
        first_ms = int(first.timestamp() * 1000) if first else 0
        parts = [self.issue_type.value] + ([id_suffix] if id_suffix else []) + [str(first_ms)]
        return SecurityIssue(
            id="-".join(parts),
            type=self.issue_type,
            severity=severity or self.severity,
            description=description,
            recommendation=recommendation,
            first_detected=first,
            last_seen=last,
            evidence=list(records[:EVIDENCE_SAMPLE_SIZE]),
            **extra,
        )

    def __repr__(self) -> str:
        return f"<SecurityRule:{self.name} enabled={self.enabled}>"


def _bounds(records: Sequence[FlowRecord]) -> tuple[datetime | None, datetime | None]:
    if not records:
        return None, None
    stamps = [r.timestamp for r in records]
    return min(stamps), max(stamps)
