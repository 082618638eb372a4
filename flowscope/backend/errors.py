"""
backend/errors.py

Exceptions raised by the backend.

Only configuration mistakes and unreadable mapping tables raise. Malformed
individual records are reported by the validator and never abort a batch.
"""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Invalid topology / analysis options, raised before any processing."""


class MappingImportError(ValueError):
    """An anonymization mapping table could not be loaded."""
