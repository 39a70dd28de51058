"""
Footprint relations for alpha-style process discovery.

The footprint classifies every pair of activities by how they directly
follow each other across all traces of a log:

- Direct succession a > b: some trace has a immediately followed by b
- Causality a -> b: a > b and not b > a
- Parallelism a || b: a > b and b > a
- Choice a # b: neither a > b nor b > a

References:
- van der Aalst, W.M.P., Weijters, A.J.M.M., & Maruster, L. (2004).
  Workflow mining: Discovering process models from event logs.
  IEEE Transactions on Knowledge and Data Engineering, 16(9).
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Sequence, Tuple


class Relation(Enum):
    """Footprint relation between an ordered pair of activities."""

    CAUSALITY = "causality"          # a -> b
    REVERSE_CAUSALITY = "reverse"    # b -> a
    PARALLEL = "parallel"            # a || b
    CHOICE = "choice"                # a # b


@dataclass(frozen=True)
class Footprint:
    """
    Direct-succession counts and the relations derived from them.

    Attributes:
        activities: All activity labels, sorted
        succession: Count of each directly-follows pair (a, b)
        activity_counts: Occurrences of each activity
        start_counts: How many traces start with each activity
        end_counts: How many traces end with each activity
    """
    activities: Tuple[str, ...]
    succession: Dict[Tuple[str, str], int] = field(default_factory=dict)
    activity_counts: Dict[str, int] = field(default_factory=dict)
    start_counts: Dict[str, int] = field(default_factory=dict)
    end_counts: Dict[str, int] = field(default_factory=dict)

    def follows(self, a: str, b: str) -> bool:
        """True if a > b (b directly follows a somewhere)."""
        return (a, b) in self.succession

    def relation(self, a: str, b: str) -> Relation:
        """Classify the ordered pair (a, b)."""
        forward = self.follows(a, b)
        backward = self.follows(b, a)
        if forward and backward:
            return Relation.PARALLEL
        if forward:
            return Relation.CAUSALITY
        if backward:
            return Relation.REVERSE_CAUSALITY
        return Relation.CHOICE

    def is_causal(self, a: str, b: str) -> bool:
        return self.relation(a, b) == Relation.CAUSALITY

    def is_parallel(self, a: str, b: str) -> bool:
        return self.relation(a, b) == Relation.PARALLEL

    def is_choice(self, a: str, b: str) -> bool:
        return self.relation(a, b) == Relation.CHOICE

    def causal_pairs(self) -> List[Tuple[str, str]]:
        """All (a, b) with a -> b, sorted."""
        return sorted(
            (a, b) for (a, b) in self.succession
            if (b, a) not in self.succession
        )

    def parallel_pairs(self) -> List[Tuple[str, str]]:
        """Unordered parallel pairs as (a, b) with a <= b, sorted."""
        return sorted(
            (a, b) for (a, b) in self.succession
            if a <= b and (b, a) in self.succession
        )

    def choice_pairs(self) -> List[Tuple[str, str]]:
        """Unordered pairs of distinct activities that never directly follow each other."""
        pairs = []
        for i, a in enumerate(self.activities):
            for b in self.activities[i + 1:]:
                if not self.follows(a, b) and not self.follows(b, a):
                    pairs.append((a, b))
        return pairs

    def to_matrix(self) -> Dict[str, Dict[str, str]]:
        """
        Render the footprint as a nested dict of relation symbols.

        Returns:
            matrix[a][b] in {'->', '<-', '||', '#'}
        """
        symbols = {
            Relation.CAUSALITY: "->",
            Relation.REVERSE_CAUSALITY: "<-",
            Relation.PARALLEL: "||",
            Relation.CHOICE: "#",
        }
        return {
            a: {b: symbols[self.relation(a, b)] for b in self.activities}
            for a in self.activities
        }


def compute_footprint(traces: Iterable[Sequence[str]]) -> Footprint:
    """
    Compute the footprint of a set of traces.

    Every trace is scanned; nothing is sampled, so the result depends only
    on the multiset of traces.

    Args:
        traces: Activity-label sequences

    Returns:
        Footprint with succession, activity, start and end counts
    """
    succession: Counter = Counter()
    activity_counts: Counter = Counter()
    start_counts: Counter = Counter()
    end_counts: Counter = Counter()

    for trace in traces:
        if not trace:
            continue
        activity_counts.update(trace)
        start_counts[trace[0]] += 1
        end_counts[trace[-1]] += 1
        for a, b in zip(trace, trace[1:]):
            succession[(a, b)] += 1

    return Footprint(
        activities=tuple(sorted(activity_counts)),
        succession=dict(sorted(succession.items())),
        activity_counts=dict(sorted(activity_counts.items())),
        start_counts=dict(sorted(start_counts.items())),
        end_counts=dict(sorted(end_counts.items())),
    )

