"""
Process performance metrics.
"""

from .calculator import (
    ActivityMetrics,
    BOTTLENECK_FACTOR,
    MetricsMemo,
    ProcessMetrics,
    calculate_activity_metrics,
    calculate_process_metrics,
    calculate_throughput,
    collect_activity_durations,
    collect_transition_durations,
    identify_bottlenecks,
)

__all__ = [
    "ActivityMetrics",
    "BOTTLENECK_FACTOR",
    "MetricsMemo",
    "ProcessMetrics",
    "calculate_activity_metrics",
    "calculate_process_metrics",
    "calculate_throughput",
    "collect_activity_durations",
    "collect_transition_durations",
    "identify_bottlenecks",
]
