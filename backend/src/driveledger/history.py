"""In-memory record of finished simulations."""

import uuid
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from .schema import SimulationSummary


class SimulationHistory:
    """Sealed summaries keyed by simulation id, oldest evicted first."""

    def __init__(self, max_entries: int = 100):
        self.max_entries = max_entries
        self._summaries: "OrderedDict[str, SimulationSummary]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._summaries)

    def record(self, summary: SimulationSummary) -> str:
        """Store a summary and return its new simulation id."""
        simulation_id = uuid.uuid4().hex
        self._summaries[simulation_id] = summary
        while len(self._summaries) > self.max_entries:
            self._summaries.popitem(last=False)
        return simulation_id

    def get(self, simulation_id: str) -> Optional[SimulationSummary]:
        return self._summaries.get(simulation_id)

    def list(self) -> List[Dict[str, Any]]:
        """Newest first."""
        return [
            {
                "simulation_id": sid,
                "route_type": summary.route_type,
                "route_name": summary.route_name,
                "data_points_collected": summary.data_points_collected,
                "potential_reward": summary.potential_reward,
                "ended_at": summary.ended_at,
            }
            for sid, summary in reversed(self._summaries.items())
        ]
