"""
System Design Model
Closed-form evaluation of a layered request path:
client → load balancer → app tier → cache → database.

Maps a configuration snapshot to throughput, saturation, latency, error rate
and monthly cost. The curves are illustrative heuristics, not a queueing-exact
model: they are tuned to show how bottlenecks move as knobs change.

Key Concepts:
- Saturation: offered load / effective capacity (> 1.0 means overload)
- Bottleneck: the tier with the highest saturation
- Tail amplification: p95 pulls away from p50 as saturation approaches 1.0
"""

import math
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

# ============================================================================
# CONFIGURATION
# ============================================================================

class ConfigError(ValueError):
    """Raised when raw configuration data has the wrong shape or types"""


@dataclass(frozen=True)
class SystemConfig:
    """Configuration snapshot for one evaluation (defaults match the Baseline preset)"""
    # Traffic
    rps: float = 250.0  # total requests per second
    read_ratio: float = 0.8  # 0..1
    payload_kb: float = 12.0

    # App tier
    app_instances: int = 4
    app_rps_per_instance: float = 120.0
    autoscale: bool = True

    # Cache
    cache_enabled: bool = True
    base_cache_hit_rate: float = 0.72  # 0..0.95
    cache_rps_capacity: float = 800.0

    # Database
    db_enabled: bool = True
    db_qps_capacity: float = 280.0  # reads + writes
    db_write_penalty: float = 1.35  # >= 1, extra latency cost of writes
    replication_enabled: bool = True  # boosts read capacity
    partitioning_enabled: bool = False  # boosts write capacity

    # Network / base compute
    base_latency_ms: float = 55.0


_FLAG_FIELDS = {f.name for f in fields(SystemConfig) if f.type is bool}


def config_from_mapping(data: Mapping[str, Any], base: Optional[SystemConfig] = None) -> SystemConfig:
    """
    Build a SystemConfig from plain data (UI state, JSON, presets).

    Missing keys fall back to `base` (or the defaults). Unknown keys,
    non-numeric values, non-bool flags and non-finite numbers raise
    ConfigError. Ranges are NOT checked here; evaluate() clamps them.
    """
    if not isinstance(data, Mapping):
        raise ConfigError(f"configuration must be a mapping, got {type(data).__name__}")

    known = {f.name for f in fields(SystemConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"unknown configuration keys: {', '.join(unknown)}")

    values = {}
    for key, value in data.items():
        if key in _FLAG_FIELDS:
            if not isinstance(value, bool):
                raise ConfigError(f"{key} must be a bool, got {value!r}")
        else:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"{key} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise ConfigError(f"{key} must be finite, got {value!r}")
        values[key] = value

    return replace(base or SystemConfig(), **values)


def config_to_dict(config: SystemConfig) -> Dict[str, Any]:
    return {f.name: getattr(config, f.name) for f in fields(SystemConfig)}


# ============================================================================
# RESULT TYPES
# ============================================================================

class SystemStatus(Enum):
    """Overall health, monotone in the worst tier saturation"""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    OVERLOADED = "overloaded"


class Tier(Enum):
    """Scalable tiers whose saturation is modeled independently"""
    APP = "app"
    CACHE = "cache"
    DB = "db"


class Severity(Enum):
    LOW = "low"
    MED = "med"
    HIGH = "high"


@dataclass(frozen=True)
class TrafficBreakdown:
    rps: float
    reads: float
    writes: float


@dataclass(frozen=True)
class TierCapacity:
    """Effective capacities and the loads routed to each tier"""
    app_capacity: float
    cache_capacity: float
    hit_rate: float  # 0 when cache disabled
    cache_reads: float
    cache_hits: float
    cache_misses: float
    db_read_load: float
    db_write_load: float
    db_read_capacity: float
    db_write_capacity: float
    db_read_saturation: float
    db_write_saturation: float


@dataclass(frozen=True)
class Saturation:
    app: float
    cache: float
    db: float
    worst: float
    bottleneck: Tier


@dataclass(frozen=True)
class LatencyReport:
    p50: float  # ms
    p95: float  # ms
    notes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ErrorReport:
    rate: float  # 0..0.25
    reason: str


@dataclass(frozen=True)
class CostReport:
    monthly_compute: float
    monthly_cache: float
    monthly_db: float
    monthly_total: float
    breakdown: Tuple[Tuple[str, float], ...] = ()


@dataclass(frozen=True)
class DiagramNode:
    id: str
    title: str
    subtitle: str
    status: SystemStatus
    metrics: Tuple[Tuple[str, str], ...] = ()


@dataclass(frozen=True)
class DiagramEdge:
    source: str
    target: str
    label: str


@dataclass(frozen=True)
class Hotspot:
    label: str
    severity: Severity


@dataclass(frozen=True)
class DiagramSnapshot:
    nodes: Tuple[DiagramNode, ...]
    edges: Tuple[DiagramEdge, ...]
    hotspots: Tuple[Hotspot, ...]

    def node(self, node_id: str) -> DiagramNode:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(node_id)


@dataclass(frozen=True)
class SimulationResult:
    """Everything derived from one configuration snapshot"""
    status: SystemStatus
    traffic: TrafficBreakdown
    capacity: TierCapacity
    saturation: Saturation
    latency: LatencyReport
    errors: ErrorReport
    cost: CostReport
    diagram: DiagramSnapshot


# ============================================================================
# PRICING
# ============================================================================

@dataclass(frozen=True)
class CostTable:
    """Monthly pricing assumptions. Swap in another table for a different provider."""
    app_instance_monthly: float = 32.0
    cache_monthly: float = 55.0  # base cache
    cache_scale_per_k: float = 18.0  # per 1000 rps of cache capacity
    db_monthly: float = 140.0  # base db
    db_scale_per_100: float = 35.0  # per 100 qps of db capacity
    replication_monthly: float = 55.0
    partitioning_monthly: float = 35.0


DEFAULT_COSTS = CostTable()

# ============================================================================
# MODEL CONSTANTS
# ============================================================================

HEALTHY_LIMIT = 0.75
OVERLOAD_LIMIT = 1.0
HOTSPOT_LIMIT = 0.9

AUTOSCALE_HEADROOM = 1.08
REPLICATION_READ_BOOST = 1.35
PARTITIONING_WRITE_BOOST = 1.25
LB_SATURATION_PROXY = 0.85

MAX_HIT_RATE = 0.95
MIN_EFFECTIVE_HIT_RATE = 0.1
LOW_HIT_RATE = 0.55


def clamp(n: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, n))


def status_from_saturation(saturation: float) -> SystemStatus:
    if saturation < HEALTHY_LIMIT:
        return SystemStatus.HEALTHY
    if saturation < OVERLOAD_LIMIT:
        return SystemStatus.DEGRADED
    return SystemStatus.OVERLOADED


# ============================================================================
# NORMALIZER & TRAFFIC SPLITTER
# ============================================================================

def normalize_config(config: SystemConfig) -> SystemConfig:
    """Clamp every numeric knob into its valid range. Never rejects."""
    return replace(
        config,
        rps=max(0.0, config.rps),
        read_ratio=clamp(config.read_ratio, 0.0, 1.0),
        payload_kb=max(0.0, config.payload_kb),
        app_instances=max(1, config.app_instances),
        app_rps_per_instance=max(1.0, config.app_rps_per_instance),
        base_cache_hit_rate=clamp(config.base_cache_hit_rate, 0.0, MAX_HIT_RATE),
        cache_rps_capacity=max(1.0, config.cache_rps_capacity),
        db_qps_capacity=max(1.0, config.db_qps_capacity),
        db_write_penalty=max(1.0, config.db_write_penalty),
        base_latency_ms=max(0.0, config.base_latency_ms),
    )


def split_traffic(config: SystemConfig) -> TrafficBreakdown:
    rps = max(0.0, config.rps)
    reads = rps * clamp(config.read_ratio, 0.0, 1.0)
    return TrafficBreakdown(rps=rps, reads=reads, writes=rps - reads)


# ============================================================================
# CAPACITY & SATURATION
# ============================================================================

def model_capacity(config: SystemConfig, traffic: TrafficBreakdown) -> TierCapacity:
    """
    Work out effective capacity per tier and the load that reaches it.

    Expects a normalized config. The cache only sees reads; the database sees
    writes plus cache misses (all reads when the cache is off).
    """
    app_capacity = (config.app_instances * config.app_rps_per_instance
                    * (AUTOSCALE_HEADROOM if config.autoscale else 1.0))
    app_saturation = traffic.rps / app_capacity

    # Hit rate erodes with large payloads and a hot app tier (very rough)
    payload_penalty = clamp((config.payload_kb - 8) / 80, 0.0, 0.25)
    saturation_penalty = clamp((app_saturation - 0.7) * 0.22, 0.0, 0.18)
    if config.cache_enabled:
        hit_rate = clamp(config.base_cache_hit_rate - payload_penalty - saturation_penalty,
                         MIN_EFFECTIVE_HIT_RATE, MAX_HIT_RATE)
        cache_reads = traffic.reads
    else:
        hit_rate = 0.0
        cache_reads = 0.0

    cache_hits = cache_reads * hit_rate
    cache_misses = cache_reads - cache_hits

    db_read_load = cache_misses if config.cache_enabled else traffic.reads
    db_write_load = traffic.writes
    db_read_capacity = config.db_qps_capacity * (REPLICATION_READ_BOOST if config.replication_enabled else 1.0)
    db_write_capacity = config.db_qps_capacity * (PARTITIONING_WRITE_BOOST if config.partitioning_enabled else 1.0)

    if config.db_enabled:
        db_read_saturation = db_read_load / db_read_capacity
        db_write_saturation = db_write_load / db_write_capacity
    else:
        db_read_saturation = db_write_saturation = 0.0

    return TierCapacity(
        app_capacity=app_capacity,
        cache_capacity=config.cache_rps_capacity,
        hit_rate=hit_rate,
        cache_reads=cache_reads,
        cache_hits=cache_hits,
        cache_misses=cache_misses,
        db_read_load=db_read_load,
        db_write_load=db_write_load,
        db_read_capacity=db_read_capacity,
        db_write_capacity=db_write_capacity,
        db_read_saturation=db_read_saturation,
        db_write_saturation=db_write_saturation,
    )


def compute_saturation(config: SystemConfig, traffic: TrafficBreakdown,
                       capacity: TierCapacity) -> Saturation:
    app = traffic.rps / capacity.app_capacity
    cache = capacity.cache_reads / capacity.cache_capacity if config.cache_enabled else 0.0
    db = max(capacity.db_read_saturation, capacity.db_write_saturation)
    worst = max(app, cache, db)

    # Ties go to the database, then the cache; disabled tiers sit out
    contenders = [(Tier.DB, db, config.db_enabled),
                  (Tier.CACHE, cache, config.cache_enabled),
                  (Tier.APP, app, True)]
    bottleneck = next((tier for tier, value, active in contenders if active and value == worst), Tier.APP)

    return Saturation(app=app, cache=cache, db=db, worst=worst, bottleneck=bottleneck)


# ============================================================================
# LATENCY
# ============================================================================

class LatencyModel:
    """
    Heuristic latency curves.

    Each tier multiplies the baseline by an amplification factor that grows
    quadratically with saturation (input capped at 2.5). Writes add a
    penalty proportional to their share of traffic.
    """

    FLOOR_MS = 5.0

    @staticmethod
    def amplify(saturation: float) -> float:
        return 1 + clamp(saturation, 0.0, 2.5) ** 2 * 0.7

    @staticmethod
    def tail_amplification(worst: float) -> float:
        return 1.35 + clamp((worst - 0.7) * 1.25, 0.0, 1.8)

    @staticmethod
    def write_penalty_factor(traffic: TrafficBreakdown, write_penalty: float) -> float:
        write_share = traffic.writes / max(1.0, traffic.rps)
        return 1 + write_share * (max(1.0, write_penalty) - 1)

    @classmethod
    def evaluate(cls, config: SystemConfig, traffic: TrafficBreakdown,
                 capacity: TierCapacity, saturation: Saturation) -> LatencyReport:
        app_factor = cls.amplify(saturation.app)
        # A saturated cache still beats no cache
        cache_factor = cls.amplify(saturation.cache) * 0.35 + 0.85 if config.cache_enabled else 1.0
        db_factor = cls.amplify(saturation.db) if config.db_enabled else 1.0
        write_factor = cls.write_penalty_factor(traffic, config.db_write_penalty)

        base = max(cls.FLOOR_MS, config.base_latency_ms)
        p50 = base * app_factor * cache_factor * db_factor * write_factor
        p95 = p50 * cls.tail_amplification(saturation.worst)

        return LatencyReport(p50=p50, p95=p95, notes=tuple(latency_notes(config, capacity, saturation)))


def latency_notes(config: SystemConfig, capacity: TierCapacity, saturation: Saturation) -> List[str]:
    notes = []
    if saturation.bottleneck is Tier.DB:
        if capacity.db_write_saturation > capacity.db_read_saturation:
            notes.append("Write pressure is dominating DB saturation.")
        else:
            notes.append("Read pressure (cache misses) is dominating DB saturation.")
    if not config.cache_enabled:
        notes.append("Cache disabled; DB reads will increase.")
    elif capacity.hit_rate < LOW_HIT_RATE:
        notes.append("Cache hit rate is low; consider bigger cache or better keys.")
    if config.autoscale and saturation.app > 0.85:
        notes.append("Autoscaling helps slightly; add instances for more headroom.")
    return notes


# ============================================================================
# ERRORS
# ============================================================================

OVERLOAD_CAUSES = {
    Tier.DB: "DB saturation",
    Tier.APP: "App queue overflow",
    Tier.CACHE: "Cache saturation",
}


def model_errors(saturation: Saturation) -> ErrorReport:
    """Modeled request failures: steep once overloaded, a trickle when degraded."""
    worst = saturation.worst
    if worst >= OVERLOAD_LIMIT:
        rate = clamp((worst - 1) * 0.22 + 0.02, 0.02, 0.25)
        return ErrorReport(rate=rate, reason=OVERLOAD_CAUSES[saturation.bottleneck])
    if worst >= 0.85:
        return ErrorReport(rate=clamp((worst - 0.85) * 0.05, 0.0, 0.03), reason="Tail latency spikes")
    return ErrorReport(rate=0.0, reason="None")


# ============================================================================
# COST
# ============================================================================

def model_cost(config: SystemConfig, costs: CostTable = DEFAULT_COSTS) -> CostReport:
    """Monthly cost from provisioned capacity only. Traffic never enters."""
    compute = config.app_instances * costs.app_instance_monthly

    cache = 0.0
    if config.cache_enabled:
        cache = costs.cache_monthly + config.cache_rps_capacity / 1000 * costs.cache_scale_per_k

    db = 0.0
    if config.db_enabled:
        db = costs.db_monthly + config.db_qps_capacity / 100 * costs.db_scale_per_100
        if config.replication_enabled:
            db += costs.replication_monthly
        if config.partitioning_enabled:
            db += costs.partitioning_monthly

    return CostReport(
        monthly_compute=compute,
        monthly_cache=cache,
        monthly_db=db,
        monthly_total=compute + cache + db,
        breakdown=(
            ("Compute (App tier)", compute),
            ("Cache", cache),
            ("Database", db),
        ),
    )


# ============================================================================
# DIAGRAM PROJECTOR
# ============================================================================

def _pct(n: float) -> str:
    return f"{round(n * 100)}%"


def project_diagram(config: SystemConfig, traffic: TrafficBreakdown, capacity: TierCapacity,
                    saturation: Saturation, latency: LatencyReport) -> DiagramSnapshot:
    """Describe each node for display. Renderers use this verbatim."""
    cache_on = config.cache_enabled
    db_on = config.db_enabled

    if db_on:
        db_subtitle = "{} · {}".format(
            "Replicated" if config.replication_enabled else "Single",
            "Partitioned" if config.partitioning_enabled else "No partitions",
        )
    else:
        db_subtitle = "Disabled"

    nodes = (
        DiagramNode("client", "Clients", "Mobile/Web", SystemStatus.HEALTHY,
                    (("RPS", str(round(traffic.rps))),)),
        DiagramNode("lb", "Load Balancer", "TLS + routing",
                    status_from_saturation(saturation.app * LB_SATURATION_PROXY),
                    (("Tail", f"{round(latency.p95)} ms"),)),
        DiagramNode("app", "App Servers", f"{config.app_instances:g} instances",
                    status_from_saturation(saturation.app),
                    (("Sat", _pct(saturation.app)), ("Cap", f"{round(capacity.app_capacity)} rps"))),
        DiagramNode("cache", "Cache", f"Hit {_pct(capacity.hit_rate)}" if cache_on else "Disabled",
                    status_from_saturation(saturation.cache) if cache_on else SystemStatus.HEALTHY,
                    (("Sat", _pct(saturation.cache)), ("Cap", f"{round(capacity.cache_capacity)} rps"))
                    if cache_on else (("Note", "—"),)),
        DiagramNode("db", "Database", db_subtitle,
                    status_from_saturation(saturation.db) if db_on else SystemStatus.HEALTHY,
                    (("Sat", _pct(saturation.db)),
                     ("QPS", str(round(capacity.db_read_load + capacity.db_write_load))))
                    if db_on else (("Note", "—"),)),
    )

    edges = (
        DiagramEdge("client", "lb", "HTTP"),
        DiagramEdge("lb", "app", "route"),
        DiagramEdge("app", "cache", "read" if cache_on else "—"),
        DiagramEdge("app", "db", "write + miss"),
        DiagramEdge("cache", "db", "miss" if cache_on else "—"),
    )

    return DiagramSnapshot(nodes=nodes, edges=edges, hotspots=tuple(find_hotspots(saturation)))


def find_hotspots(saturation: Saturation) -> List[Hotspot]:
    hotspots = []
    for label, value in (("DB saturation", saturation.db),
                         ("Cache capacity", saturation.cache),
                         ("App tier saturation", saturation.app)):
        if value > HOTSPOT_LIMIT:
            hotspots.append(Hotspot(label, Severity.HIGH if value > OVERLOAD_LIMIT else Severity.MED))
    if not hotspots:
        hotspots.append(Hotspot("No hotspots", Severity.LOW))
    return hotspots


# ============================================================================
# EVALUATION
# ============================================================================

def evaluate(config: SystemConfig, costs: CostTable = DEFAULT_COSTS) -> SimulationResult:
    """
    Evaluate one configuration snapshot.

    Pure and total: out-of-range values are clamped, the same input always
    gives the same result, and nothing is cached between calls.
    """
    config = normalize_config(config)
    traffic = split_traffic(config)
    capacity = model_capacity(config, traffic)
    saturation = compute_saturation(config, traffic, capacity)
    latency = LatencyModel.evaluate(config, traffic, capacity, saturation)

    return SimulationResult(
        status=status_from_saturation(saturation.worst),
        traffic=traffic,
        capacity=capacity,
        saturation=saturation,
        latency=latency,
        errors=model_errors(saturation),
        cost=model_cost(config, costs),
        diagram=project_diagram(config, traffic, capacity, saturation, latency),
    )


# ============================================================================
# PARAMETER SWEEP
# ============================================================================

SWEEP_COLUMNS = ["value", "app_sat", "cache_sat", "db_sat", "worst", "bottleneck",
                 "status", "p50_ms", "p95_ms", "error_rate", "monthly_total"]


def sweep(config: SystemConfig, field_name: str, values: Iterable[float],
          costs: CostTable = DEFAULT_COSTS) -> pd.DataFrame:
    """Evaluate `config` once per value of one numeric field."""
    if field_name in _FLAG_FIELDS or field_name not in {f.name for f in fields(SystemConfig)}:
        raise ConfigError(f"cannot sweep over {field_name!r}")

    rows = []
    for value in values:
        value = float(value)
        if field_name == "app_instances":
            value = int(round(value))
        result = evaluate(replace(config, **{field_name: value}), costs)
        rows.append({
            "value": value,
            "app_sat": result.saturation.app,
            "cache_sat": result.saturation.cache,
            "db_sat": result.saturation.db,
            "worst": result.saturation.worst,
            "bottleneck": result.saturation.bottleneck.value,
            "status": result.status.value,
            "p50_ms": result.latency.p50,
            "p95_ms": result.latency.p95,
            "error_rate": result.errors.rate,
            "monthly_total": result.cost.monthly_total,
        })

    return pd.DataFrame(rows, columns=SWEEP_COLUMNS)
