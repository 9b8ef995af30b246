"""
Recommendation Engine
Turns an evaluated system into an ordered list of suggested actions.

Rules dispatch on the elected bottleneck tier; a separate tail-latency check
runs regardless of which tier is the bottleneck.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from system_design_model import (
    HEALTHY_LIMIT,
    OVERLOAD_LIMIT,
    SimulationResult,
    SystemConfig,
    Tier,
    normalize_config,
)

READ_HEAVY_RATIO = 0.6
TAIL_TO_MEDIAN_LIMIT = 2.0


@dataclass(frozen=True)
class Recommendation:
    title: str
    reason: str
    actions: Tuple[str, ...]
    tier: Optional[Tier] = None  # None for system-wide advice


def _app_rule(result: SimulationResult, config: SystemConfig) -> Recommendation:
    return Recommendation(
        title="App tier is the bottleneck",
        reason="App saturation is limiting throughput and increasing latency.",
        actions=(
            "Increase app instances",
            "Optimize per-request compute",
            "Check downstream DB saturation" if config.cache_enabled
            else "Enable cache for read-heavy traffic",
        ),
        tier=Tier.APP,
    )


def _cache_rule(result: SimulationResult, config: SystemConfig) -> Recommendation:
    return Recommendation(
        title="Cache is saturated",
        reason="Cache throughput is limiting read scalability.",
        actions=(
            "Increase cache capacity",
            "Improve cache hit rate",
            "Reduce payload size if possible",
        ),
        tier=Tier.CACHE,
    )


def _db_rule(result: SimulationResult, config: SystemConfig) -> Recommendation:
    if config.read_ratio > READ_HEAVY_RATIO:
        actions = (
            "Increase cache hit rate",
            "Increase DB capacity" if config.replication_enabled
            else "Enable replication for read scalability",
        )
    else:
        actions = (
            "Increase DB capacity" if config.partitioning_enabled
            else "Enable partitioning to improve write throughput",
            "Reduce write amplification",
        )
    return Recommendation(
        title="Database is the bottleneck",
        reason="DB saturation is driving tail latency and errors.",
        actions=actions,
        tier=Tier.DB,
    )


BOTTLENECK_RULES: Dict[Tier, Callable[[SimulationResult, SystemConfig], Recommendation]] = {
    Tier.APP: _app_rule,
    Tier.CACHE: _cache_rule,
    Tier.DB: _db_rule,
}

HEALTHY = Recommendation(
    title="System is healthy",
    reason="All tiers have sufficient headroom.",
    actions=("No immediate scaling required", "Monitor traffic growth"),
)

TAIL_LATENCY = Recommendation(
    title="High tail latency detected",
    reason="p95 is elevated even before full saturation.",
    actions=(
        "Introduce rate limiting or buffering",
        "Reduce request variance",
        "Investigate uneven traffic distribution",
    ),
)


def get_recommendations(result: SimulationResult, config: SystemConfig) -> List[Recommendation]:
    """
    Suggest actions for the evaluated system, most important first.

    A healthy system gets a single all-clear. Otherwise the bottleneck tier
    gets one recommendation, followed by tail-latency advice when p95 is more
    than twice p50 while still below overload.
    """
    config = normalize_config(config)
    worst = result.saturation.worst

    if worst < HEALTHY_LIMIT:
        return [HEALTHY]

    rule = BOTTLENECK_RULES[result.saturation.bottleneck]
    recs = [rule(result, config)]

    if result.latency.p95 > result.latency.p50 * TAIL_TO_MEDIAN_LIMIT and worst < OVERLOAD_LIMIT:
        recs.append(TAIL_LATENCY)

    return recs
