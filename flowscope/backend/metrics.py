"""
backend/metrics.py

Lightweight thread-safe counters for the topology / analysis pipeline.
No external dependencies — uses Python's threading.Lock.

Usage:
    from flowscope.backend.metrics import METRICS
    METRICS.records_valid.inc(len(batch))
    print(METRICS.as_dict())
"""

import threading


class Counter:
    """A thread-safe integer counter."""

    __slots__ = ("_value", "_lock")

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def inc(self, amount: int = 1) -> None:
        with self._lock:
            self._value += amount

    def reset(self) -> None:
        with self._lock:
            self._value = 0

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def __repr__(self) -> str:  # pragma: no cover
        return f"Counter({self._value})"


class Metrics:
    """Singleton holding all pipeline counters."""

    def __init__(self) -> None:
        # --- Validation ---
        self.records_valid: Counter = Counter()
        """Records that passed validation."""

        self.records_invalid: Counter = Counter()
        """Records rejected by the validator (kept, with reasons, in the batch result)."""

        # --- Topology ---
        self.topologies_built: Counter = Counter()

        # --- Analysis ---
        self.analyses_run: Counter = Counter()
        self.anomalies_detected: Counter = Counter()
        self.security_issues_raised: Counter = Counter()

        # --- Anonymization ---
        self.values_anonymized: Counter = Counter()
        """Distinct sensitive values given a replacement."""

    def as_dict(self) -> dict:
        """Return all counters as a plain dict (safe for JSON serialisation)."""
        return {
            "records_valid": self.records_valid.value,
            "records_invalid": self.records_invalid.value,
            "topologies_built": self.topologies_built.value,
            "analyses_run": self.analyses_run.value,
            "anomalies_detected": self.anomalies_detected.value,
            "security_issues_raised": self.security_issues_raised.value,
            "values_anonymized": self.values_anonymized.value,
        }

    def reset_all(self) -> None:
        """Reset every counter to zero (useful in tests)."""
        for attr in vars(self).values():
            if isinstance(attr, Counter):
                attr.reset()


# Module-level singleton; import from here everywhere
METRICS = Metrics()
