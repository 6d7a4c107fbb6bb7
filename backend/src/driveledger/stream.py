"""Time-paced replay of the recorded corpus with jitter and route shaping."""

import asyncio
import logging
import math
import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence, Tuple

from .catalog import get_route
from .config import DEFAULT_TICK_INTERVAL_MS
from .errors import AlreadyStreamingError, NoDataLoadedError
from .samples import SampleStore
from .schema import TelemetrySample

_logger = logging.getLogger("driveledger.stream")

Subscriber = Callable[[TelemetrySample], None]


@dataclass(frozen=True)
class RouteDynamics:
    """How a route reshapes a replayed sample."""

    speed_scale: float
    min_speed: float
    speed_offset: Callable[[random.Random, float], float]
    rpm_base: float
    rpm_per_kmh: float
    dtc_probability: float
    dtc_pool: Tuple[Tuple[str, float], ...]
    temp_factor: float = 1.0


def _uniform_offset(low: float, high: float) -> Callable[[random.Random, float], float]:
    """Random speed offset; the timestamp is not used."""
    return lambda rng, now_ms: rng.uniform(low, high)


def _grade_offset(rng: random.Random, now_ms: float) -> float:
    """Slow +-25 km/h swing over time; draws nothing from rng."""
    return 25 * math.sin(now_ms / 5000)


ROUTE_DYNAMICS = {
    "URBAN": RouteDynamics(
        speed_scale=0.6,
        min_speed=15,
        speed_offset=_uniform_offset(-10, 10),
        rpm_base=1000,
        rpm_per_kmh=30,
        dtc_probability=0.10,
        dtc_pool=(("P0420", 0.7), ("P0171", 0.3)),
    ),
    "HIGHWAY": RouteDynamics(
        speed_scale=1.2,
        min_speed=70,
        speed_offset=_uniform_offset(-5, 5),
        rpm_base=1500,
        rpm_per_kmh=20,
        dtc_probability=0.03,
        dtc_pool=(("P0420", 1.0),),
    ),
    "MOUNTAIN": RouteDynamics(
        speed_scale=0.8,
        min_speed=20,
        speed_offset=_grade_offset,
        rpm_base=2000,
        rpm_per_kmh=35,
        dtc_probability=0.07,
        dtc_pool=(("P0300", 0.4), ("P0171", 0.6)),
        temp_factor=1.1,
    ),
    "RURAL": RouteDynamics(
        speed_scale=0.9,
        min_speed=40,
        speed_offset=_uniform_offset(-5, 10),
        rpm_base=1200,
        rpm_per_kmh=25,
        dtc_probability=0.02,
        dtc_pool=(("P0171", 1.0),),
    ),
}


def _pick_code(pool: Sequence[Tuple[str, float]], rng: random.Random) -> str:
    r = rng.random()
    acc = 0.0
    for code, weight in pool:
        acc += weight
        if r < acc:
            return code
    return pool[-1][0]


def add_random_variation(sample: TelemetrySample, rng: random.Random) -> TelemetrySample:
    """
    Return a jittered clone of a sample.

    Speed +-5%, RPM +-4%, fuel +-1% and temperature +-2.5% are scaled;
    GPS moves by up to 0.0001 degrees. Zero (missing) fields are left alone.
    """
    update = {}
    if sample.speed_kmph:
        update["speed_kmph"] = round(sample.speed_kmph * (1 + rng.uniform(-0.05, 0.05)), 2)
    if sample.engine_rpm:
        update["engine_rpm"] = int(round(sample.engine_rpm * (1 + rng.uniform(-0.04, 0.04))))
    if sample.fuel_level_pct:
        update["fuel_level_pct"] = round(sample.fuel_level_pct * (1 + rng.uniform(-0.01, 0.01)), 2)
    if sample.engine_temp_c:
        update["engine_temp_c"] = round(sample.engine_temp_c * (1 + rng.uniform(-0.025, 0.025)), 1)
    if sample.lat:
        update["lat"] = round(sample.lat + rng.uniform(-0.0001, 0.0001), 6)
    if sample.lon:
        update["lon"] = round(sample.lon + rng.uniform(-0.0001, 0.0001), 6)
    return sample.model_copy(update=update)


def apply_route_profile(sample: TelemetrySample, route_type: str, rng: random.Random,
                        now_ms: Optional[float] = None) -> TelemetrySample:
    """
    Reshape a sample for a route: speed, RPM, temperature, injected DTCs and fuel burn.

    Speed is clamped to [route floor, route max speed]. Fuel burn is cheaper
    strictly between 40 and 90 km/h.
    """
    route = get_route(route_type)
    dynamics = ROUTE_DYNAMICS[route_type]
    if now_ms is None:
        now_ms = time.time() * 1000

    speed = sample.speed_kmph * dynamics.speed_scale + dynamics.speed_offset(rng, now_ms)
    speed = min(max(dynamics.min_speed, speed), route.max_speed)
    rpm = dynamics.rpm_base + speed * dynamics.rpm_per_kmh
    temp = sample.engine_temp_c * dynamics.temp_factor

    dtc_code = sample.dtc_code
    if rng.random() < dynamics.dtc_probability:
        dtc_code = _pick_code(dynamics.dtc_pool, rng)

    speed = round(speed, 2)
    rpm = int(round(rpm))
    temp = round(temp, 1)

    fuel_factor = 0.9 if 40 < speed < 90 else 1.2
    fuel = max(0.0, sample.fuel_level_pct - 0.01 * fuel_factor * (rpm / 2000))

    return sample.model_copy(update={
        "speed_kmph": speed,
        "engine_rpm": rpm,
        "engine_temp_c": temp,
        "dtc_code": dtc_code,
        "fuel_level_pct": round(fuel, 2),
    })


class StreamHandle:
    """Returned by StreamGenerator.start; scoped view of the running stream."""

    def __init__(self, generator: "StreamGenerator", route_type: str, interval_ms: int):
        self._generator = generator
        self.route_type = route_type
        self.interval_ms = interval_ms

    @property
    def running(self) -> bool:
        return self._generator.running

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        return self._generator.subscribe(callback)

    def stop(self) -> bool:
        return self._generator.stop()


class StreamGenerator:
    """
    Replays a SampleStore as a live feed on the running asyncio loop.

    Each tick clones the sample under the cursor, jitters it, reshapes it for
    the active route and hands it to every subscriber in subscription order.
    The cursor wraps to 0 past the end of the corpus.
    """

    def __init__(self, store: SampleStore, rng: Optional[random.Random] = None,
                 clock: Callable[[], float] = time.time):
        self.store = store
        self.rng = rng or random.Random()
        self.clock = clock
        self._subscribers: List[Subscriber] = []
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._cursor = 0
        self._route_type: Optional[str] = None
        self._generation = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def route_type(self) -> Optional[str]:
        return self._route_type

    def start(self, route_type: str, interval_ms: int = DEFAULT_TICK_INTERVAL_MS) -> StreamHandle:
        """
        Begin emitting one point every interval_ms on the running event loop.

        Raises:
            AlreadyStreamingError: If the stream is already running
            NoDataLoadedError: If the sample store is empty
            UnknownRouteError: If route_type is not a known route
        """
        if self._running:
            raise AlreadyStreamingError()
        if self.store.is_empty():
            raise NoDataLoadedError("No synthetic data loaded. Load the sample store first.")
        get_route(route_type)
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        loop = asyncio.get_running_loop()

        self._route_type = route_type
        self._cursor = 0
        self._running = True
        self._generation += 1
        self._task = loop.create_task(self._run(interval_ms / 1000, self._generation))
        _logger.info("Stream started: route=%s interval=%dms", route_type, interval_ms)
        return StreamHandle(self, route_type, interval_ms)

    def stop(self) -> bool:
        """Cancel emission. Returns False when nothing was running."""
        if not self._running:
            return False
        self._running = False
        task, self._task = self._task, None
        if task is not None and task is not _current_task():
            task.cancel()
        _logger.info("Stream stopped at cursor %d", self._cursor)
        return True

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; the returned function removes it."""
        if not callable(callback):
            raise TypeError("callback must be callable")
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass

        return unsubscribe

    def tick(self) -> Optional[TelemetrySample]:
        """Emit one point. Does nothing once the stream is stopped."""
        if not self._running or self.store.is_empty():
            return None
        if self._cursor >= len(self.store):
            self._cursor = 0

        now = self.clock()
        point = add_random_variation(self.store[self._cursor], self.rng)
        point = apply_route_profile(point, self._route_type, self.rng, now_ms=now * 1000)
        point = point.model_copy(update={
            "timestamp": datetime.fromtimestamp(now, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "route_type": self._route_type,
        })

        self._publish(point)
        self._cursor += 1
        return point

    def _publish(self, point: TelemetrySample) -> None:
        for callback in list(self._subscribers):
            try:
                callback(point)
            except Exception:
                _logger.exception("Error in stream subscriber %r", callback)

    async def _run(self, interval_s: float, generation: int) -> None:
        while self._running and self._generation == generation:
            await asyncio.sleep(interval_s)
            if not self._running or self._generation != generation:
                break
            self.tick()


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
