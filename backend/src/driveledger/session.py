"""Lifecycle of the active drive simulation."""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from .catalog import get_route
from .config import DEFAULT_TICK_INTERVAL_MS, RECENT_METRICS_WINDOW, SAMPLE_PERIOD_S
from .errors import (
    DataLoadError,
    DriveLedgerError,
    NotRunningError,
    SessionAlreadyActiveError,
)
from .history import SimulationHistory
from .samples import SampleStore
from .schema import SimulationSummary, TelemetrySample
from .scoring import efficiency_score, generate_summary
from .stream import StreamGenerator

_logger = logging.getLogger("driveledger.session")


def _iso(dt: datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


@dataclass
class SimulationSession:
    """One bounded run; appended to on every tick, sealed on stop."""

    route_type: str
    duration_minutes: float
    started_at: datetime
    started_monotonic: float
    ended_at: Optional[datetime] = None
    points: List[TelemetrySample] = field(default_factory=list)
    active: bool = True

    @property
    def elapsed_minutes(self) -> float:
        """Simulated driving time covered by the collected points."""
        return len(self.points) * SAMPLE_PERIOD_S / 60


@dataclass
class SessionResult:
    """Outcome of a start or stop request."""

    success: bool
    message: str
    route: Optional[str] = None
    estimated_duration: Optional[float] = None
    summary: Optional[SimulationSummary] = None
    simulation_id: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def started(cls, route_name: str, duration_minutes: float) -> "SessionResult":
        return cls(
            success=True,
            route=route_name,
            estimated_duration=duration_minutes,
            message=f"Started a {route_name} simulation for {duration_minutes:g} minutes",
        )

    @classmethod
    def stopped(cls, summary: SimulationSummary, simulation_id: str) -> "SessionResult":
        return cls(
            success=True,
            message="Simulation completed successfully",
            summary=summary,
            simulation_id=simulation_id,
        )

    @classmethod
    def failure(cls, error: DriveLedgerError, message: Optional[str] = None) -> "SessionResult":
        return cls(success=False, message=message or error.message, error=error.code)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.error:
            data["error"] = self.error
        if self.route is not None:
            data["route"] = self.route
            data["estimated_duration"] = self.estimated_duration
        if self.success and self.summary is not None:
            data["summary"] = self.summary.model_dump()
            data["simulation_id"] = self.simulation_id
        return data


class SessionController:
    """
    Owns at most one running SimulationSession.

    IDLE -> RUNNING on start, back to IDLE on stop or once the simulated
    duration is covered (checked on every emitted point).
    """

    def __init__(self, store: SampleStore, generator: Optional[StreamGenerator] = None,
                 history: Optional[SimulationHistory] = None,
                 interval_ms: int = DEFAULT_TICK_INTERVAL_MS,
                 monotonic: Callable[[], float] = time.monotonic):
        self.store = store
        self.generator = generator or StreamGenerator(store)
        self.history = history if history is not None else SimulationHistory()
        self.interval_ms = interval_ms
        self.monotonic = monotonic
        self._session: Optional[SimulationSession] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self.last_result: Optional[SessionResult] = None

    @property
    def is_running(self) -> bool:
        return self._session is not None and self._session.active

    @property
    def state(self) -> str:
        return "RUNNING" if self.is_running else "IDLE"

    @property
    def points(self) -> Tuple[TelemetrySample, ...]:
        """Snapshot of the current (or last) session's points."""
        return tuple(self._session.points) if self._session else ()

    def start(self, route_type: str, duration_minutes: float = 10) -> SessionResult:
        """Start streaming for a route; rejected while another session runs."""
        try:
            if self.is_running:
                raise SessionAlreadyActiveError()
            route = get_route(route_type)
            if self.store.is_empty():
                self.store.load()

            session = SimulationSession(
                route_type=route_type,
                duration_minutes=duration_minutes,
                started_at=datetime.now(timezone.utc),
                started_monotonic=self.monotonic(),
            )
            unsubscribe = self.generator.subscribe(self._on_point)
            try:
                self.generator.start(route_type, self.interval_ms)
            except Exception:
                unsubscribe()
                raise
        except DataLoadError as e:
            _logger.error("Failed to load synthetic data: %s", e)
            return SessionResult.failure(e, "Failed to load simulation data")
        except DriveLedgerError as e:
            _logger.info("Simulation start rejected: %s", e.message)
            return SessionResult.failure(e)

        self._session = session
        self._unsubscribe = unsubscribe
        _logger.info("Simulation started: route=%s duration=%sm", route_type, duration_minutes)
        return SessionResult.started(route.name, duration_minutes)

    def stop(self) -> SessionResult:
        """Stop the running session and seal its summary."""
        if not self.is_running:
            return SessionResult.failure(NotRunningError())

        session = self._session
        self.generator.stop()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        session.ended_at = datetime.now(timezone.utc)
        session.active = False
        summary = generate_summary(
            session.route_type,
            session.points,
            started_at=_iso(session.started_at),
            ended_at=_iso(session.ended_at),
        )
        simulation_id = self.history.record(summary)
        _logger.info(
            "Simulation %s stopped: %d points, reward %s",
            simulation_id, summary.data_points_collected, summary.potential_reward,
        )
        self.last_result = SessionResult.stopped(summary, simulation_id)
        return self.last_result

    def status(self) -> Dict[str, Any]:
        """Live view of the running session."""
        if not self.is_running:
            return {"is_active": False, "message": "No simulation running"}

        session = self._session
        route = get_route(session.route_type)
        points = session.points
        count = len(points)
        elapsed = self.monotonic() - session.started_monotonic
        estimated_points = route.estimated_minutes * 60
        avg_speed = sum(p.speed_kmph for p in points) / count if count else 0.0

        status: Dict[str, Any] = {
            "is_active": True,
            "route_type": session.route_type,
            "route_name": route.name,
            "elapsed_seconds": int(elapsed),
            "elapsed_minutes": round(elapsed / 60, 1),
            "data_points": count,
            "progress": min(100, round(count / estimated_points * 100)),
            "distance_covered_km": round(count / 3600 * route.average_speed, 2),
            "average_speed": round(avg_speed, 2),
            "current_data": points[-1].model_dump() if points else None,
        }
        if points:
            recent = points[-RECENT_METRICS_WINDOW:]
            status["recent_metrics"] = {
                "avg_speed": round(sum(p.speed_kmph for p in recent) / len(recent), 2),
                "avg_rpm": round(sum(p.engine_rpm for p in recent) / len(recent)),
                "efficiency_score": efficiency_score(recent),
            }
        return status

    def _on_point(self, point: TelemetrySample) -> None:
        session = self._session
        if session is None or not session.active:
            return
        session.points.append(point)
        if session.elapsed_minutes >= session.duration_minutes:
            _logger.info("Simulation duration (%s minutes) reached, stopping", session.duration_minutes)
            self.stop()
