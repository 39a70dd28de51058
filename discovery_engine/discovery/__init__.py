"""
Process discovery: footprint relations, the alpha-style miner and the
discovery service.

Example Usage:
    from discovery_engine.discovery import AlphaMiner

    model = AlphaMiner(min_case_count=5).mine(event_log)
    if model is not None:
        for source, target, frequency in model.edges():
            print(f"{source} -> {target} ({frequency})")
"""

from .relations import Footprint, Relation, compute_footprint
from .models import DiscoveryResult, DiscoveryStatistics, ProcessModel, ProcessStep
from .miner import AlphaMiner, discover_process_model
from .service import (
    DiscoveryOptions,
    ProcessDiscoveryService,
    build_steps,
    discover_processes,
)

__all__ = [
    # Relations
    "Footprint",
    "Relation",
    "compute_footprint",
    # Models
    "DiscoveryResult",
    "DiscoveryStatistics",
    "ProcessModel",
    "ProcessStep",
    # Miner
    "AlphaMiner",
    "discover_process_model",
    # Service
    "DiscoveryOptions",
    "ProcessDiscoveryService",
    "build_steps",
    "discover_processes",
]
