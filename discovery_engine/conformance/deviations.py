"""
Deviation records for conformance checking.

Deviation Types:
- MISSING_ACTIVITY: Expected activity never executed in the case
- EXTRA_ACTIVITY: Executed activity that is not in the expected sequence
- WRONG_ORDER: Expected activity executed after a later expected activity
- LOOP: Expected activity executed more often than the sequence allows
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class DeviationType(Enum):
    """Types of process deviations."""

    MISSING_ACTIVITY = "missing_activity"
    EXTRA_ACTIVITY = "extra_activity"
    WRONG_ORDER = "wrong_order"
    LOOP = "loop"


@dataclass(frozen=True)
class Deviation:
    """
    A detected deviation from the expected activity sequence.

    Attributes:
        case_id: Identifier for the process instance
        deviation_type: Type of deviation detected
        description: Human-readable explanation
        activity: Activity involved
        position: Index in the observed sequence, where one applies
        details: Additional context (e.g. excess count of a loop)
    """
    case_id: str
    deviation_type: DeviationType
    description: str
    activity: Optional[str] = None
    position: Optional[int] = None
    details: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "case_id": self.case_id,
            "type": self.deviation_type.value,
            "description": self.description,
            "activity": self.activity,
            "position": self.position,
            "details": dict(self.details),
        }


@dataclass
class DeviationSummary:
    """
    Summary statistics for deviations across multiple cases.

    Attributes:
        total_deviations: Total number of deviations detected
        by_type: Count of deviations by type
        by_activity: Count of deviations by activity
        most_common: Up to five (deviation_type, count) tuples
    """
    total_deviations: int = 0
    by_type: Dict[str, int] = field(default_factory=dict)
    by_activity: Dict[str, int] = field(default_factory=dict)
    most_common: List[Tuple[str, int]] = field(default_factory=list)

    @classmethod
    def from_deviations(cls, deviations: List[Deviation]) -> "DeviationSummary":
        """
        Create a summary from a list of deviations.

        Args:
            deviations: List of deviations to summarize

        Returns:
            DeviationSummary instance
        """
        by_type = Counter(d.deviation_type.value for d in deviations)
        by_activity = Counter(d.activity for d in deviations if d.activity is not None)

        return cls(
            total_deviations=len(deviations),
            by_type=dict(by_type),
            by_activity=dict(by_activity),
            most_common=sorted(by_type.items(), key=lambda x: (-x[1], x[0]))[:5],
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "total_deviations": self.total_deviations,
            "by_type": self.by_type,
            "by_activity": self.by_activity,
            "most_common": [list(item) for item in self.most_common],
        }
