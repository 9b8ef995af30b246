"""
Presets and component reference material for the System Design Simulator.
"""

from dataclasses import dataclass, replace
from typing import Dict, List, Tuple

from system_design_model import ConfigError, SimulationResult, SystemConfig, normalize_config

# ============================================================================
# PRESETS
# ============================================================================

@dataclass(frozen=True)
class Preset:
    name: str
    description: str
    config: SystemConfig


BASELINE = SystemConfig()

PRESETS: Dict[str, Preset] = {
    'baseline': Preset(
        name="Baseline",
        description="Balanced workload with cache + DB replication.",
        config=BASELINE,
    ),
    'read_heavy': Preset(
        name="Read-heavy",
        description="High read ratio; cache helps a lot.",
        config=replace(BASELINE, rps=500, read_ratio=0.92, base_cache_hit_rate=0.82,
                       app_instances=6, db_qps_capacity=320),
    ),
    'write_heavy': Preset(
        name="Write-heavy",
        description="Writes stress DB; partitioning helps.",
        config=replace(BASELINE, rps=380, read_ratio=0.45, base_cache_hit_rate=0.55,
                       db_write_penalty=1.65, partitioning_enabled=True,
                       app_instances=6, db_qps_capacity=320),
    ),
    'spiky_traffic': Preset(
        name="Spiky traffic",
        description="Short bursts exceed capacity; errors rise quickly.",
        config=replace(BASELINE, rps=820, read_ratio=0.75, app_instances=5,
                       base_cache_hit_rate=0.68, cache_rps_capacity=650, db_qps_capacity=320),
    ),
    'high_scale': Preset(
        name="High scale",
        description="Scaled out app + cache; DB kept stable.",
        config=replace(BASELINE, rps=1200, read_ratio=0.86, app_instances=14,
                       cache_rps_capacity=2500, db_qps_capacity=650,
                       replication_enabled=True, partitioning_enabled=True,
                       base_latency_ms=48),
    ),
}


def get_preset(key: str) -> Preset:
    try:
        return PRESETS[key]
    except KeyError:
        raise ConfigError(f"unknown preset {key!r} (choose from {', '.join(PRESETS)})") from None


# ============================================================================
# COMPONENT INFO
# ============================================================================

@dataclass(frozen=True)
class ComponentInfo:
    id: str
    title: str
    overview: str
    affected_by: Tuple[str, ...]
    affects: Tuple[str, ...]
    symptoms: Tuple[str, ...]
    fixes: Tuple[str, ...]
    notes: Tuple[str, ...] = ()


COMPONENT_INFO: Dict[str, ComponentInfo] = {
    # Diagram nodes
    'client': ComponentInfo(
        id='client',
        title="Clients",
        overview="Traffic source for the system. Controls how many requests enter and the read/write mix.",
        affected_by=("RPS", "Read ratio", "Payload size"),
        affects=("Load on App tier", "Cache/DB volume", "Latency & errors once downstream saturates"),
        symptoms=("Not a bottleneck itself; exposes downstream bottlenecks as load increases",),
        fixes=("Rate limit", "Smooth bursts (queue)", "Use CDN/edge caching"),
        notes=("This is a simplified single-service traffic model.",),
    ),
    'lb': ComponentInfo(
        id='lb',
        title="Load Balancer",
        overview="Routes traffic to the app tier. LB effects show up indirectly through app saturation and tail latency.",
        affected_by=("Total RPS", "App tier health"),
        affects=("Distribution to app tier", "Tail latency under overload"),
        symptoms=("Usually not the first bottleneck in the simplified model",),
        fixes=("Fix the app/DB bottleneck (the LB alone won't solve it)", "Health checks and circuit breakers"),
        notes=("Real LBs can bottleneck on TLS or connection limits; omitted here.",),
    ),
    'app': ComponentInfo(
        id='app',
        title="App Servers",
        overview="Processes requests (compute + business logic). Capacity is driven by instances and per-instance throughput.",
        affected_by=("Instances", "RPS per instance", "Autoscaling toggle", "Incoming RPS"),
        affects=("Latency via queueing", "Downstream load (cache/DB)", "Errors when overloaded"),
        symptoms=("High saturation → p95 increases early", "Overload → queue overflow/timeouts → errors rise"),
        fixes=("Add instances", "Increase per-instance capacity (optimize)", "Rate limiting/queueing"),
        notes=("Assumes near-linear scaling with instances.",),
    ),
    'cache': ComponentInfo(
        id='cache',
        title="Cache",
        overview="Speeds up reads and reduces DB read load. Effectiveness depends on hit rate and cache capacity.",
        affected_by=("Cache enabled", "Hit rate", "Cache capacity", "Payload size (can reduce hit rate)"),
        affects=("DB reads (misses become DB reads)", "Latency (hits fast, misses slow)", "Bottleneck shifts"),
        symptoms=("Low hit rate → DB saturates", "Cache saturation → cascading misses/timeouts"),
        fixes=("Increase cache capacity", "Improve hit rate (keys/TTL/warmup)", "Multi-layer caching"),
        notes=("Cache helps reads; it doesn't remove write load from the DB.",),
    ),
    'db': ComponentInfo(
        id='db',
        title="Database",
        overview="Persists data and serves cache-miss reads + writes. Usually hardest to scale and often the bottleneck.",
        affected_by=("DB capacity (QPS)", "Write penalty", "Replication (read boost)",
                     "Partitioning (write boost)", "Cache hit rate (reduces reads)"),
        affects=("Tail latency strongly near saturation", "Errors (timeouts) when overloaded", "Overall bottleneck"),
        symptoms=("Near 100% → p95 spikes", "Overload → timeouts → errors", "Scaling app doesn't fix a DB bottleneck"),
        fixes=("Increase DB capacity", "Replication for reads", "Partitioning for writes", "Improve cache hit rate"),
        notes=("Locks, IO and indexes are approximated via QPS + penalties.",),
    ),

    # Control panel sections
    'preset_section': ComponentInfo(
        id='preset_section',
        title="Quick Presets",
        overview="Curated configurations representing common system profiles.",
        affected_by=("Preset selection",),
        affects=("Updates all knobs at once (traffic + tiers + toggles)",),
        symptoms=("A mismatched preset may hide the bottleneck you want to study",),
        fixes=("Start with the closest preset, then tune one knob at a time",),
    ),
    'traffic_section': ComponentInfo(
        id='traffic_section',
        title="Traffic",
        overview="Incoming demand: total throughput (RPS), read/write split, and payload size.",
        affected_by=("RPS slider", "Read ratio slider", "Payload size slider"),
        affects=("App saturation (direct)", "Cache load (reads)", "DB load (writes + cache misses)",
                 "p95 tail latency and errors as saturation grows"),
        symptoms=("Increasing RPS usually first reveals the weakest tier", "High load makes p95 climb before p50"),
        fixes=("Shape traffic (rate limiting, queues)", "Increase capacity at the bottleneck tier",
               "Improve caching for read-heavy traffic"),
        notes=("Traffic is modeled uniformly across requests (no endpoint-level mix).",),
    ),
    'app_section': ComponentInfo(
        id='app_section',
        title="App Tier",
        overview="Compute capacity: number of instances and throughput per instance.",
        affected_by=("Instances", "RPS/instance", "Autoscaling toggle"),
        affects=("Latency p50/p95", "Downstream pressure on cache/DB", "System status"),
        symptoms=("p95 rises early as app nears saturation", "Overload causes timeouts/queue overflow"),
        fixes=("Add instances", "Optimize work per request", "Add caching or async processing"),
        notes=("App scaling does not help if the DB is already the bottleneck.",),
    ),
    'cache_section': ComponentInfo(
        id='cache_section',
        title="Cache",
        overview="Cache reduces DB reads by serving a fraction of read traffic.",
        affected_by=("Cache enabled", "Hit rate", "Cache capacity"),
        affects=("DB read load", "Latency improvements for reads", "Bottleneck shift toward cache when undersized"),
        symptoms=("Low hit rate keeps DB hot", "Cache saturation can cause cascading misses/timeouts"),
        fixes=("Increase cache capacity", "Improve hit rate (key design, TTL, warmup)", "Use layered caches"),
        notes=("Cache affects reads, not writes.",),
    ),
    'db_section': ComponentInfo(
        id='db_section',
        title="Database",
        overview="DB handles writes and read misses. It strongly drives tail latency and errors near saturation.",
        affected_by=("DB QPS capacity", "Write penalty", "Replication toggle", "Partitioning toggle"),
        affects=("p95 latency", "Error rate/timeouts", "Overall bottleneck"),
        symptoms=("DB saturation causes p95 spikes", "Overload produces timeouts and errors"),
        fixes=("Scale DB capacity", "Replication for reads", "Partitioning for writes", "Increase cache hit rate"),
    ),
    'latency_section': ComponentInfo(
        id='latency_section',
        title="Baseline Latency",
        overview="Network + serialization + base compute cost when nothing is saturated.",
        affected_by=("Base latency slider",),
        affects=("p50 and p95 baseline floor", "Perceived responsiveness even when healthy"),
        symptoms=("High baseline latency makes the system feel slow even without bottlenecks",),
        fixes=("Reduce network hops", "Optimize serialization/compression", "Move closer to users/CDN"),
        notes=("Saturation-driven latency is multiplied on top of this baseline.",),
    ),
}


# ============================================================================
# LIVE METRICS
# ============================================================================

def fmt_ms(n: float) -> str:
    return f"{round(n)} ms"


def fmt_money(n: float) -> str:
    return f"${round(n):,}"


def fmt_pct(n: float) -> str:
    return f"{round(n * 100)}%"


def _on_off(flag: bool) -> str:
    return "ON" if flag else "OFF"


def live_metrics(component_id: str, result: SimulationResult, config: SystemConfig) -> List[Tuple[str, str]]:
    """Current values relevant to one component, for the info panel"""
    config = normalize_config(config)
    sat = result.saturation
    metrics = [
        ("Status", result.status.value.upper()),
        ("RPS", str(round(result.traffic.rps))),
        ("p95", fmt_ms(result.latency.p95)),
        ("Errors", f"{result.errors.rate * 100:.2f}%"),
        ("Monthly", fmt_money(result.cost.monthly_total)),
    ]

    if component_id in ('client', 'traffic_section'):
        metrics += [
            ("Reads", str(round(result.traffic.reads))),
            ("Writes", str(round(result.traffic.writes))),
            ("Payload", f"{round(config.payload_kb)} KB"),
        ]
    elif component_id in ('app', 'app_section'):
        metrics += [
            ("App sat", fmt_pct(sat.app)),
            ("Instances", f"{config.app_instances:g}"),
            ("RPS/inst", f"{config.app_rps_per_instance:g}"),
            ("Autoscale", _on_off(config.autoscale)),
        ]
    elif component_id in ('cache', 'cache_section'):
        metrics += [
            ("Cache sat", fmt_pct(sat.cache)),
            ("Enabled", _on_off(config.cache_enabled)),
            ("Hit rate", fmt_pct(result.capacity.hit_rate) if config.cache_enabled else "—"),
            ("Cap", f"{round(result.capacity.cache_capacity)} rps"),
        ]
    elif component_id in ('db', 'db_section'):
        metrics += [
            ("DB sat", fmt_pct(sat.db)),
            ("DB cap", f"{round(config.db_qps_capacity)} qps"),
            ("Write penalty", f"{config.db_write_penalty:.2f}×"),
            ("Replication", _on_off(config.replication_enabled)),
            ("Partitioning", _on_off(config.partitioning_enabled)),
        ]
    elif component_id == 'lb':
        metrics += [
            ("Bottleneck", sat.bottleneck.value.upper()),
            ("Worst sat", fmt_pct(sat.worst)),
        ]
    elif component_id == 'latency_section':
        metrics += [
            ("Base latency", fmt_ms(config.base_latency_ms)),
            ("p50", fmt_ms(result.latency.p50)),
            ("p95", fmt_ms(result.latency.p95)),
        ]

    return metrics
