"""Tests for the simulation session lifecycle."""

import random

import pytest

from driveledger.history import SimulationHistory
from driveledger.samples import SampleStore
from driveledger.session import SessionController
from driveledger.stream import StreamGenerator

from test_helpers import SAMPLES_JSON, make_sample

HOUR_MS = 3600000


class FakeMonotonic:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now


def _controller(store=None, monotonic=None):
    if store is None:
        store = SampleStore.from_samples(
            [make_sample(speed_kmph=40.0 + i, fuel_level_pct=60.0 - i) for i in range(20)]
        )
    generator = StreamGenerator(store, rng=random.Random(11))
    return SessionController(
        store,
        generator=generator,
        history=SimulationHistory(),
        interval_ms=HOUR_MS,
        monotonic=monotonic or FakeMonotonic(),
    )


class TestStart:
    @pytest.mark.asyncio
    async def test_start_success(self):
        controller = _controller()
        result = controller.start("URBAN", 10)

        try:
            assert result.success
            assert result.route == "Urban City Drive"
            assert result.estimated_duration == 10
            assert result.message == "Started a Urban City Drive simulation for 10 minutes"
            assert controller.state == "RUNNING"
            assert controller.generator.running
        finally:
            controller.stop()

    @pytest.mark.asyncio
    async def test_second_start_is_rejected(self):
        controller = _controller()
        controller.start("URBAN", 10)
        for _ in range(4):
            controller.generator.tick()

        result = controller.start("HIGHWAY", 10)
        points = controller.points
        status = controller.status()
        controller.generator.tick()
        after = len(controller.points)
        controller.stop()

        assert not result.success
        assert len(points) == 4
        assert status["route_type"] == "URBAN"
        assert status["data_points"] == 4
        assert after == 5
        assert all(p.route_type == "URBAN" for p in controller.points)
        assert result.error == "session_already_active"
        assert result.message == "A simulation is already running."

    @pytest.mark.asyncio
    async def test_unknown_route(self):
        controller = _controller()
        result = controller.start("OFFROAD", 10)

        assert not result.success
        assert result.error == "unknown_route"
        assert controller.state == "IDLE"
        assert not controller.generator.running

    @pytest.mark.asyncio
    async def test_lazy_load_on_first_start(self):
        store = SampleStore(str(SAMPLES_JSON))
        controller = _controller(store)

        result = controller.start("RURAL", 5)
        controller.stop()

        assert result.success
        assert len(store) == 30

    @pytest.mark.asyncio
    async def test_load_failure(self, tmp_path):
        store = SampleStore(str(tmp_path / "none.json"), str(tmp_path / "none.csv"))
        controller = _controller(store)

        result = controller.start("URBAN", 10)

        assert not result.success
        assert result.error == "data_load_error"
        assert result.message == "Failed to load simulation data"
        assert controller.state == "IDLE"


class TestStop:
    def test_stop_when_idle(self):
        controller = _controller()
        result = controller.stop()

        assert not result.success
        assert result.error == "not_running"
        assert result.message == "No simulation is running."
        assert result.to_dict() == {
            "success": False,
            "message": "No simulation is running.",
            "error": "not_running",
        }

    @pytest.mark.asyncio
    async def test_stop_seals_summary(self):
        controller = _controller()
        controller.start("HIGHWAY", 10)
        for _ in range(5):
            controller.generator.tick()

        result = controller.stop()

        assert result.success
        assert result.message == "Simulation completed successfully"
        assert result.summary.data_points_collected == 5
        assert result.summary.route_name == "Highway Cruise"
        assert result.summary.duration_minutes == 0.08
        assert controller.history.get(result.simulation_id) == result.summary
        assert controller.state == "IDLE"
        assert not controller.generator.running

    @pytest.mark.asyncio
    async def test_stop_without_points(self):
        controller = _controller()
        controller.start("URBAN", 10)

        result = controller.stop()

        assert result.success
        assert result.summary.data_points_collected == 0
        assert result.summary.potential_reward == 0.0
        data = result.to_dict()
        assert data["summary"]["route_type"] == "URBAN"
        assert data["simulation_id"] == result.simulation_id

    @pytest.mark.asyncio
    async def test_points_after_stop_are_ignored(self):
        controller = _controller()
        controller.start("URBAN", 10)
        controller.generator.tick()
        controller.stop()

        assert controller.generator.tick() is None
        assert len(controller.points) == 1


class TestAutoStop:
    @pytest.mark.asyncio
    async def test_stops_when_duration_covered(self):
        controller = _controller()
        # three one-second points cover 0.05 minutes
        controller.start("MOUNTAIN", 0.05)

        controller.generator.tick()
        controller.generator.tick()
        assert controller.is_running

        controller.generator.tick()
        assert not controller.is_running
        assert len(controller.history) == 1
        assert controller.last_result.summary.data_points_collected == 3
        assert controller.generator.tick() is None

    @pytest.mark.asyncio
    async def test_restart_after_auto_stop(self):
        controller = _controller()
        controller.start("URBAN", 0.05)
        for _ in range(3):
            controller.generator.tick()

        result = controller.start("URBAN", 10)
        controller.stop()

        assert result.success
        assert len(controller.history) == 2


class TestStatus:
    def test_idle_status(self):
        assert _controller().status() == {"is_active": False, "message": "No simulation running"}

    @pytest.mark.asyncio
    async def test_running_status(self):
        clock = FakeMonotonic(100.0)
        controller = _controller(monotonic=clock)
        controller.start("URBAN", 10)
        for _ in range(3):
            controller.generator.tick()
        clock.now = 190.0

        status = controller.status()
        points = controller.points
        controller.stop()

        assert status["is_active"] is True
        assert status["route_type"] == "URBAN"
        assert status["route_name"] == "Urban City Drive"
        assert status["elapsed_seconds"] == 90
        assert status["elapsed_minutes"] == 1.5
        assert status["data_points"] == 3
        assert status["progress"] == 0
        assert status["distance_covered_km"] == round(3 / 3600 * 35, 2)
        assert status["current_data"] == points[-1].model_dump()
        expected_speed = round(sum(p.speed_kmph for p in points) / 3, 2)
        assert status["average_speed"] == expected_speed
        assert status["recent_metrics"]["avg_speed"] == expected_speed
        assert status["recent_metrics"]["efficiency_score"] == 0

    @pytest.mark.asyncio
    async def test_running_status_before_first_point(self):
        controller = _controller()
        controller.start("HIGHWAY", 10)

        status = controller.status()
        controller.stop()

        assert status["data_points"] == 0
        assert status["current_data"] is None
        assert "recent_metrics" not in status

    @pytest.mark.asyncio
    async def test_progress_capped(self):
        controller = _controller()
        controller.start("URBAN", 60)
        # URBAN is estimated at 25 minutes = 1500 points
        for _ in range(1600):
            controller.generator.tick()

        status = controller.status()
        controller.stop()

        assert status["progress"] == 100
