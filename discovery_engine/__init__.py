"""
Process Discovery Engine

This engine ingests timestamped business events, groups them into cases,
discovers the underlying workflow with an alpha-style miner, and measures
performance and conformance of the observed executions.
"""

__version__ = "0.1.0"
__author__ = "Process Discovery Team"

from pathlib import Path

# Package root directory
PACKAGE_ROOT = Path(__file__).parent

# Default configuration
DEFAULT_CONFIG = {
    "random_seed": 42,
    "max_events": 100_000,
    "min_case_count": 5,
    "min_activity_frequency": 3,
    "include_metrics": True,
    "save_to_dashboard": True,
    "correlation_keys": ("thread_id", "conversation_id", "case_id", "correlation_id"),
}
