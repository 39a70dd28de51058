"""
Synthetic event-log generator.

Produces raw event rows in the shape an event source returns: one row per
event with organization, source, event type, timestamp, actor and a
metadata block carrying the thread_id correlation key. A configurable share
of extra rows carries no correlation key at all.

Usage:
    generator = EventLogGenerator(GeneratorConfig(num_cases=100, seed=7))
    rows = generator.generate()
    generator.save_output(rows, "sample_output/events.json")
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
from faker import Faker

from .config import GeneratorConfig

logger = logging.getLogger(__name__)


class EventLogGenerator:
    """Generates realistic event rows for a configured set of process variants."""

    def __init__(self, config: Optional[GeneratorConfig] = None):
        self.config = config or GeneratorConfig()
        self.rng = np.random.default_rng(self.config.seed)

        self.faker = Faker()
        self.faker.seed_instance(self.config.seed)

        self.start = datetime.fromisoformat(self.config.start_date).replace(tzinfo=timezone.utc)
        self.actors = self._generate_actors(self.config.num_actors)

        self._variant_names = list(self.config.variants)
        weights = np.array([self.config.variants[n][1] for n in self._variant_names], dtype=float)
        self._variant_weights = weights / weights.sum()
        self._event_counter = 0

    def _generate_actors(self, num_actors: int) -> List[Dict[str, str]]:
        actors = []
        seen = set()
        while len(actors) < num_actors:
            username = self.faker.user_name()
            if username in seen:
                continue
            seen.add(username)
            actors.append({"actor_id": username, "name": self.faker.name()})
        return actors

    def _next_event_id(self) -> str:
        self._event_counter += 1
        return f"evt-{self._event_counter:07d}"

    def _random_start(self) -> datetime:
        offset_hours = self.rng.uniform(0, self.config.span_days * 24)
        return self.start + timedelta(hours=float(offset_hours))

    def _step_hours(self, activity: str) -> float:
        mean = self.config.mean_step_hours.get(activity, self.config.default_step_hours)
        return float(self.rng.exponential(mean))

    def _row(
        self,
        activity: str,
        timestamp: datetime,
        source_id: str,
        metadata: Dict[str, Any],
    ) -> Dict[str, Any]:
        actor = self.actors[int(self.rng.integers(0, len(self.actors)))]
        return {
            "id": self._next_event_id(),
            "organization_id": self.config.organization_id,
            "source_id": source_id,
            "event_type": activity,
            "timestamp": timestamp.isoformat(),
            "actor_id": actor["actor_id"],
            "metadata": {**metadata, "actor_name": actor["name"]},
        }

    def generate_case(self, case_number: int) -> List[Dict[str, Any]]:
        """Generate the rows of one case."""
        variant = self._variant_names[
            int(self.rng.choice(len(self._variant_names), p=self._variant_weights))
        ]
        activities = self.config.variants[variant][0]
        source_id = str(self.rng.choice(self.config.source_ids))
        thread_id = f"thread-{case_number:05d}"

        rows = []
        timestamp = self._random_start()
        for activity in activities:
            rows.append(self._row(
                activity,
                timestamp,
                source_id,
                {"thread_id": thread_id, "variant": variant},
            ))
            timestamp += timedelta(hours=self._step_hours(activity))
        return rows

    def generate(self) -> List[Dict[str, Any]]:
        """
        Generate all rows.

        Returns:
            Event rows sorted by timestamp
        """
        rows: List[Dict[str, Any]] = []
        for case_number in range(1, self.config.num_cases + 1):
            rows.extend(self.generate_case(case_number))

        num_uncorrelated = int(round(len(rows) * self.config.uncorrelated_rate))
        for _ in range(num_uncorrelated):
            rows.append(self._row(
                self.config.uncorrelated_activity,
                self._random_start(),
                str(self.rng.choice(self.config.source_ids)),
                {},
            ))

        rows.sort(key=lambda r: (r["timestamp"], r["id"]))
        logger.info(
            f"Generated {len(rows)} events for {self.config.num_cases} cases "
            f"({num_uncorrelated} uncorrelated)"
        )
        return rows

    def save_output(self, rows: List[Dict[str, Any]], output_path: Union[str, Path]) -> Path:
        """
        Save rows to a JSON file with an "events" wrapper.

        Args:
            rows: Generated rows
            output_path: File to write

        Returns:
            Path to the created file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        payload = {
            "metadata": {
                "generated_at": datetime.now(timezone.utc).isoformat(),
                "seed": self.config.seed,
                "num_cases": self.config.num_cases,
                "organization_id": self.config.organization_id,
            },
            "events": rows,
        }
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=self.config.indent)

        logger.info(f"Wrote {len(rows)} events: {output_path}")
        return output_path
