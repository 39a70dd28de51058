"""
Configuration settings for the synthetic event-log generator.

The defaults describe a support-ticket workflow with a dominant happy path,
an escalation branch, a rework loop and a shortcut that skips triage, so
discovery, metrics and conformance all have something to find.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple


@dataclass
class GeneratorConfig:
    """Main configuration for the synthetic event-log generator."""

    # Random seed for reproducibility
    seed: int = 42

    # Output counts
    num_cases: int = 200
    num_actors: int = 12

    organization_id: str = "org-demo"
    source_ids: List[str] = field(default_factory=lambda: ["helpdesk"])

    # Process variants: name -> (activities, probability)
    variants: Dict[str, Tuple[List[str], float]] = field(default_factory=lambda: {
        "happy_path": (
            ["Ticket Created", "Triage", "Assign Agent", "Resolve", "Close"], 0.60
        ),
        "escalation": (
            ["Ticket Created", "Triage", "Assign Agent", "Escalate", "Resolve", "Close"], 0.20
        ),
        "rework": (
            ["Ticket Created", "Triage", "Assign Agent", "Resolve", "Reopen", "Resolve", "Close"], 0.12
        ),
        "skip_triage": (
            ["Ticket Created", "Assign Agent", "Resolve", "Close"], 0.08
        ),
    })

    # Mean hours until the next event, by activity
    mean_step_hours: Dict[str, float] = field(default_factory=lambda: {
        "Ticket Created": 0.5,
        "Triage": 2.0,
        "Assign Agent": 6.0,
        "Escalate": 24.0,
        "Resolve": 3.0,
        "Reopen": 8.0,
    })
    default_step_hours: float = 4.0

    # Share of extra events without a correlation key
    uncorrelated_rate: float = 0.02
    uncorrelated_activity: str = "Note Added"

    # Date range for case start times
    start_date: str = "2024-01-01"
    span_days: int = 90

    # Output
    output_file: str = "events.json"
    indent: int = 2

    def __post_init__(self):
        if self.num_cases < 0:
            raise ValueError(f"num_cases must be >= 0, got {self.num_cases}")
        if self.num_actors < 1:
            raise ValueError(f"num_actors must be >= 1, got {self.num_actors}")
        if not self.source_ids:
            raise ValueError("At least one source id is required")
        if not 0.0 <= self.uncorrelated_rate <= 1.0:
            raise ValueError(f"uncorrelated_rate must be in [0, 1], got {self.uncorrelated_rate}")


PRESETS = {
    "small": {"num_cases": 50, "num_actors": 5},
    "medium": {"num_cases": 200, "num_actors": 12},
    "large": {"num_cases": 2000, "num_actors": 40},
}


def apply_preset(config: GeneratorConfig, preset_name: str) -> GeneratorConfig:
    """Apply a preset configuration."""
    if preset_name not in PRESETS:
        raise ValueError(f"Unknown preset: {preset_name}. Available: {list(PRESETS.keys())}")

    for key, value in PRESETS[preset_name].items():
        setattr(config, key, value)

    return config
