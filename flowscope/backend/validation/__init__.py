"""validation/__init__.py"""
from .validator import (
    BatchValidation,
    FlowRecordValidator,
    InvalidRecord,
    ValidationResult,
    parse_timestamp,
)

__all__ = [
    "BatchValidation",
    "FlowRecordValidator",
    "InvalidRecord",
    "ValidationResult",
    "parse_timestamp",
]
