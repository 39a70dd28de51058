"""
Conformance checking of event logs against a reference activity sequence.

Example Usage:
    from discovery_engine.conformance import calculate_conformance

    result = calculate_conformance(event_log, ["Received", "Reviewed", "Approved"])
    print(f"Conformance Rate: {result.conformance_rate:.0%}")
    for deviation in result.deviations:
        print(deviation.case_id, deviation.deviation_type.value, deviation.description)
"""

from .deviations import (
    Deviation,
    DeviationSummary,
    DeviationType,
)

from .checker import (
    CaseConformanceResult,
    ConformanceChecker,
    ConformanceResult,
    calculate_conformance,
    calculate_conformance_rate,
)

__all__ = [
    # Deviations
    "Deviation",
    "DeviationSummary",
    "DeviationType",
    # Checker
    "CaseConformanceResult",
    "ConformanceChecker",
    "ConformanceResult",
    "calculate_conformance",
    "calculate_conformance_rate",
]
