"""Reward, efficiency and valuation metrics over telemetry sequences.

All functions are pure: they read the samples they are given and keep no state.
"""

import math
from typing import Dict, Optional, Sequence

from .catalog import diagnostic_info, get_category, get_route
from .config import BASE_POINT_REWARD, BATCH_BONUS_MIN_POINTS, EFFICIENCY_WINDOW, SAMPLE_PERIOD_S
from .schema import (
    DiagnosticIssue,
    DiagnosticIssues,
    FuelConsumption,
    SimulationSummary,
    TelemetrySample,
)


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _mean(vals: Sequence[float]) -> float:
    return sum(vals) / len(vals) if vals else 0.0


def _decimals(value: float) -> int:
    text = repr(float(value))
    if "." not in text or "e" in text:
        return 0
    return len(text.split(".")[1])


def point_reward(sample: TelemetrySample) -> float:
    """
    Token reward for one data point.

    Base 0.01, x1.2 at 40-80 km/h, x1.15 at 1500-2500 RPM, then scaled by
    the trouble code's reward impact when the code is in the catalog.
    """
    reward = BASE_POINT_REWARD
    if 40 <= sample.speed_kmph <= 80:
        reward *= 1.2
    if 1500 <= sample.engine_rpm <= 2500:
        reward *= 1.15
    if sample.has_dtc:
        info = diagnostic_info(sample.dtc_code)
        if info is not None and info.reward_impact:
            reward *= 1 + info.reward_impact / 100
    return round(reward, 4)


def batch_reward(samples: Sequence[TelemetrySample]) -> float:
    """Sum of point rewards with a 10% bonus above ten points."""
    if not samples:
        return 0.0
    total = sum(point_reward(s) for s in samples)
    if len(samples) > BATCH_BONUS_MIN_POINTS:
        total *= 1.1
    return round(total, 4)


def efficiency_score(samples: Sequence[TelemetrySample], window: int = EFFICIENCY_WINDOW) -> int:
    """
    0-100 speed-per-RPM score over the trailing window.

    Fewer than five points in the window scores 0; any trouble code in the
    window costs 30%.
    """
    recent = list(samples[-window:]) if window > 0 else []
    if len(recent) < 5:
        return 0

    avg_rpm = _mean([s.engine_rpm for s in recent])
    if avg_rpm <= 0:
        return 0
    avg_speed = _mean([s.speed_kmph for s in recent])

    score = avg_speed / (avg_rpm / 1000) * 10
    if any(s.has_dtc for s in recent):
        score *= 0.7
    return min(max(_round_half_up(score), 0), 100)


def estimate_value(samples: Sequence[TelemetrySample], data_type: str = "COMPLETE") -> float:
    """
    Market value of a sample set for a data category.

    Raises:
        UnknownCategoryError: If data_type is not a known category
    """
    category = get_category(data_type)
    if not samples:
        return 0.0

    value = len(samples) * category.base_value

    if data_type == "LOCATION":
        # high-precision fixes are worth more
        if any(_decimals(s.lat) > 5 and _decimals(s.lon) > 5 for s in samples):
            value *= 1.3
    elif data_type == "DIAGNOSTIC":
        if any(s.has_dtc for s in samples):
            value *= 1.5
    elif data_type == "PERFORMANCE":
        speeds = [s.speed_kmph for s in samples]
        if max(speeds) - min(speeds) > 30:
            value *= 1.2
    elif data_type == "COMPLETE":
        if len(samples) > 100:
            value *= 1.1

    return round(value, 4)


def fuel_consumption(samples: Sequence[TelemetrySample], window: int = 60) -> Optional[FuelConsumption]:
    """Fuel use over the trailing window, each point counted as one minute."""
    if not samples or len(samples) < 2:
        return None

    recent = list(samples[-window:])
    fuel_used = max(0.0, recent[0].fuel_level_pct - recent[-1].fuel_level_pct)
    avg_speed = _mean([s.speed_kmph for s in recent])
    distance = avg_speed * (len(recent) * 60) / 3600

    return FuelConsumption(
        fuel_used_percent=round(fuel_used, 2),
        distance_km=round(distance, 2),
        avg_consumption=round(fuel_used / distance, 2) if distance > 0 else 0.0,
        efficiency=round(distance / fuel_used, 2) if fuel_used > 0 else 0.0,
    )


def diagnostic_histogram(samples: Sequence[TelemetrySample]) -> DiagnosticIssues:
    """Occurrences per trouble code with catalog details."""
    counts: Dict[str, int] = {}
    for s in samples:
        if s.has_dtc:
            counts[s.dtc_code] = counts.get(s.dtc_code, 0) + 1

    by_code = {}
    for code, count in counts.items():
        info = diagnostic_info(code)
        by_code[code] = DiagnosticIssue(
            count=count,
            description=info.description if info else "Unknown issue",
            severity=info.severity if info else "Unknown",
            impact=info.impact if info else "Unknown",
        )
    return DiagnosticIssues(total_occurrences=sum(counts.values()), by_code=by_code)


def generate_summary(route_type: str, samples: Sequence[TelemetrySample],
                     started_at: Optional[str] = None, ended_at: Optional[str] = None,
                     sample_period_s: float = SAMPLE_PERIOD_S) -> SimulationSummary:
    """Seal a finished run's points into a SimulationSummary."""
    route = get_route(route_type)
    n = len(samples)
    duration = n * sample_period_s / 60

    if n:
        avg_speed = _mean([s.speed_kmph for s in samples])
        max_speed = max(s.speed_kmph for s in samples)
        # jitter can raise the level between ticks
        fuel_used = max(0.0, samples[0].fuel_level_pct - samples[-1].fuel_level_pct)
    else:
        avg_speed = max_speed = fuel_used = 0.0
    distance = avg_speed * duration / 60

    return SimulationSummary(
        route_type=route_type,
        route_name=route.name,
        data_points_collected=n,
        duration_minutes=round(duration, 2),
        distance_km=round(distance, 2),
        average_speed_kmph=round(avg_speed, 2),
        max_speed_kmph=round(max_speed, 2),
        fuel_used_percent=round(fuel_used, 2),
        fuel_efficiency=round(distance / fuel_used, 2) if fuel_used > 0 else 0.0,
        diagnostic_issues=diagnostic_histogram(samples),
        efficiency_score=efficiency_score(samples),
        potential_reward=batch_reward(samples),
        started_at=started_at,
        ended_at=ended_at,
    )
