"""
analysis/security/analyzer.py

SecurityAnalyzer — runs every discovered security rule over a batch.

Rules are discovered once, at construction, from the rules/ package: every
BaseSecurityRule subclass defined in a module there is instantiated if
enabled. A rule that fails to import, instantiate, or analyze is logged and
skipped; the remaining rules still run.
"""

from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
import time
from typing import Iterable, Sequence

from ...models import FlowRecord
from ..models import SecurityIssue
from .base import BaseSecurityRule

logger = logging.getLogger(__name__)

_RULES_PACKAGE = "flowscope.backend.analysis.security.rules"
_RULE_TIMEOUT_MS = 50.0


class SecurityAnalyzer:
    def __init__(self, rules: Iterable[BaseSecurityRule] | None = None) -> None:
        self.rules: list[BaseSecurityRule] = (
            list(rules) if rules is not None else self._load_rules()
        )
        self.stats: dict[str, int] = {
            "batches_analyzed": 0,
            "issues_raised": 0,
        }
        logger.debug(
            "SecurityAnalyzer loaded %d rule(s): %s",
            len(self.rules),
            [r.name for r in self.rules],
        )

    def analyze(self, records: Sequence[FlowRecord]) -> list[SecurityIssue]:
        self.stats["batches_analyzed"] += 1
        issues: list[SecurityIssue] = []
        if not records:
            return issues

        for rule in self.rules:
            issues.extend(self._safe_analyze(rule, records))

        self.stats["issues_raised"] += len(issues)
        return issues

    def _safe_analyze(
        self, rule: BaseSecurityRule, records: Sequence[FlowRecord]
    ) -> list[SecurityIssue]:
        t0 = time.monotonic()
        try:
            result = rule.analyze(records)
        except Exception as exc:
            logger.exception("Rule %r raised an unhandled exception: %s", rule.name, exc)
            result = []
        elapsed_ms = (time.monotonic() - t0) * 1000
        if elapsed_ms > _RULE_TIMEOUT_MS:
            logger.warning("Rule %r took %.1fms on %d records", rule.name, elapsed_ms, len(records))
        return result

    def _load_rules(self) -> list[BaseSecurityRule]:
        rules_pkg = importlib.import_module(_RULES_PACKAGE)
        rules: list[BaseSecurityRule] = []
        for _, module_name, _ in sorted(pkgutil.iter_modules(rules_pkg.__path__), key=lambda m: m[1]):
            try:
                module = importlib.import_module(f"{_RULES_PACKAGE}.{module_name}")
            except Exception as exc:
                logger.error("Failed to import rule module %r: %s", module_name, exc)
                continue
            for _, obj in inspect.getmembers(module, inspect.isclass):
                if (
                    issubclass(obj, BaseSecurityRule)
                    and obj is not BaseSecurityRule
                    and obj.__module__ == module.__name__
                ):
                    try:
                        instance: BaseSecurityRule = obj()
                        if instance.enabled:
                            rules.append(instance)
                    except Exception as exc:
                        logger.error("Failed to instantiate rule %r: %s", obj, exc)
        return rules
