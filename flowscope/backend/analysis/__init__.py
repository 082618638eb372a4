"""analysis/__init__.py"""
from .analyzer import TrafficAnalyzer, analyze_traffic_patterns
from .baseline import AnomalyDetector, establish_baseline
from .connections import analyze_connections
from .models import (
    AnomalyDetectionResult,
    AnomalyType,
    IssueSeverity,
    IssueType,
    PatternType,
    SecurityIssue,
    TrafficAnalysisResult,
    TrafficAnomaly,
    TrafficBaseline,
    TrafficPattern,
)
from .patterns import PatternDetector, detect_patterns
from .volume import analyze_volume

__all__ = [
    "TrafficAnalyzer",
    "analyze_traffic_patterns",
    "AnomalyDetector",
    "establish_baseline",
    "analyze_connections",
    "AnomalyDetectionResult",
    "AnomalyType",
    "IssueSeverity",
    "IssueType",
    "PatternType",
    "SecurityIssue",
    "TrafficAnalysisResult",
    "TrafficAnomaly",
    "TrafficBaseline",
    "TrafficPattern",
    "PatternDetector",
    "detect_patterns",
    "analyze_volume",
]
