"""statistics/__init__.py"""
from .calculator import (
    COMMON_PORTS,
    calculate_edge_statistics,
    calculate_traffic_statistics,
)
from .models import (
    EdgeTrafficStatistics,
    IPStatistic,
    PortStatistic,
    ProtocolDistribution,
    RecordFilter,
    TimeSeriesPoint,
    TrafficStatistics,
)
from .processor import (
    filter_records,
    generate_time_series,
    top_destination_ips,
    top_source_ips,
)

__all__ = [
    "COMMON_PORTS",
    "calculate_edge_statistics",
    "calculate_traffic_statistics",
    "EdgeTrafficStatistics",
    "IPStatistic",
    "PortStatistic",
    "ProtocolDistribution",
    "RecordFilter",
    "TimeSeriesPoint",
    "TrafficStatistics",
    "filter_records",
    "generate_time_series",
    "top_destination_ips",
    "top_source_ips",
]
