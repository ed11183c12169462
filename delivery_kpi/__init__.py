"""Rule-based classification and KPI aggregation for last-mile delivery data."""

__version__ = "0.1.0"
