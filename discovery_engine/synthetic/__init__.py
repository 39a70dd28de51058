"""
Synthetic event-log generation for demos and tests.
"""

from .config import GeneratorConfig, PRESETS, apply_preset
from .generator import EventLogGenerator

__all__ = [
    "EventLogGenerator",
    "GeneratorConfig",
    "PRESETS",
    "apply_preset",
]
