"""analysis/security/__init__.py"""
from .analyzer import SecurityAnalyzer
from .base import BaseSecurityRule

__all__ = ["SecurityAnalyzer", "BaseSecurityRule"]
