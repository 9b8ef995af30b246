import math
from dataclasses import replace

import pytest

from system_design_model import (
    ConfigError,
    CostTable,
    LatencyModel,
    Severity,
    SystemConfig,
    SystemStatus,
    Tier,
    TrafficBreakdown,
    config_from_mapping,
    compute_saturation,
    config_to_dict,
    evaluate,
    model_capacity,
    model_cost,
    normalize_config,
    split_traffic,
    status_from_saturation,
    sweep,
)


# ---------------------------------------------------------------------------
# Normalizer & traffic
# ---------------------------------------------------------------------------

def test_split_traffic_baseline(baseline):
    traffic = split_traffic(baseline)
    assert traffic.reads == pytest.approx(200)
    assert traffic.writes == pytest.approx(50)


def test_normalize_clamps_out_of_range_values():
    raw = SystemConfig(rps=-100, read_ratio=1.5, payload_kb=-3, app_instances=0,
                       app_rps_per_instance=0, base_cache_hit_rate=2.0,
                       cache_rps_capacity=-5, db_qps_capacity=0, db_write_penalty=0.2,
                       base_latency_ms=-10)
    cfg = normalize_config(raw)
    assert cfg.rps == 0
    assert cfg.read_ratio == 1.0
    assert cfg.payload_kb == 0
    assert cfg.app_instances == 1
    assert cfg.app_rps_per_instance == 1
    assert cfg.base_cache_hit_rate == 0.95
    assert cfg.cache_rps_capacity == 1
    assert cfg.db_qps_capacity == 1
    assert cfg.db_write_penalty == 1
    assert cfg.base_latency_ms == 0


def test_zero_capacities_never_divide_by_zero():
    result = evaluate(SystemConfig(rps=100, app_instances=0, app_rps_per_instance=0,
                                   cache_rps_capacity=0, db_qps_capacity=0))
    assert result.status is SystemStatus.OVERLOADED
    for value in (result.latency.p50, result.latency.p95, result.errors.rate, result.cost.monthly_total):
        assert math.isfinite(value)


def test_read_ratio_above_one_sends_everything_to_reads():
    traffic = evaluate(SystemConfig(rps=100, read_ratio=3.0)).traffic
    assert traffic.reads == 100
    assert traffic.writes == 0


# ---------------------------------------------------------------------------
# Capacity & saturation
# ---------------------------------------------------------------------------

def test_baseline_example(baseline):
    result = evaluate(baseline)
    assert result.traffic.reads == pytest.approx(200)
    assert result.traffic.writes == pytest.approx(50)
    assert result.capacity.app_capacity == pytest.approx(518.4)
    assert result.saturation.app == pytest.approx(0.482, abs=1e-3)
    assert result.capacity.hit_rate == pytest.approx(0.67)
    assert result.saturation.cache == pytest.approx(0.25)
    assert result.saturation.db == pytest.approx(50 / 280)
    assert result.saturation.bottleneck is Tier.APP
    assert result.status is SystemStatus.HEALTHY
    assert result.errors.rate == 0
    assert result.errors.reason == "None"


def test_high_rps_overloads(overloaded):
    result = evaluate(overloaded)
    assert result.saturation.worst > 1.0
    assert result.status is SystemStatus.OVERLOADED
    assert result.errors.rate > 0.02
    assert result.errors.rate <= 0.25


def test_zero_rps_is_idle(baseline):
    result = evaluate(replace(baseline, rps=0))
    assert result.traffic.reads == 0
    assert result.traffic.writes == 0
    assert result.saturation.app == 0
    assert result.saturation.cache == 0
    assert result.saturation.db == 0
    assert result.status is SystemStatus.HEALTHY
    assert result.errors.rate == 0


def test_disabled_db_has_zero_saturation(baseline):
    result = evaluate(replace(baseline, db_enabled=False))
    assert result.saturation.db == 0
    assert result.saturation.bottleneck is Tier.APP


def test_disabled_db_sits_out_of_bottleneck_election(baseline):
    result = evaluate(replace(baseline, rps=0, db_enabled=False))
    assert result.saturation.bottleneck is Tier.CACHE

    result = evaluate(replace(baseline, rps=0, db_enabled=False, cache_enabled=False))
    assert result.saturation.bottleneck is Tier.APP


def test_disabled_cache_routes_all_reads_to_db(baseline):
    result = evaluate(replace(baseline, cache_enabled=False))
    assert result.saturation.cache == 0
    assert result.capacity.hit_rate == 0
    assert result.capacity.db_read_load == pytest.approx(result.traffic.reads)
    assert result.capacity.db_read_saturation == pytest.approx(200 / (280 * 1.35))


def test_tie_break_prefers_db():
    cfg = SystemConfig(rps=100, read_ratio=0.5, app_instances=1, app_rps_per_instance=100,
                       autoscale=False, cache_rps_capacity=50, db_qps_capacity=50,
                       partitioning_enabled=False)
    sat = evaluate(cfg).saturation
    assert sat.app == sat.cache == sat.db == 1.0
    assert sat.bottleneck is Tier.DB


def test_tie_at_zero_load_prefers_db(baseline):
    assert evaluate(replace(baseline, rps=0)).saturation.bottleneck is Tier.DB


def test_unmatched_worst_falls_back_to_app(baseline):
    # NaN load never compares equal to the worst value
    capacity = model_capacity(baseline, split_traffic(baseline))
    sat = compute_saturation(baseline, TrafficBreakdown(rps=float("nan"), reads=200, writes=50), capacity)
    assert math.isnan(sat.worst)
    assert sat.bottleneck is Tier.APP


def test_more_instances_never_raise_app_saturation(baseline):
    sats = [evaluate(replace(baseline, rps=900, app_instances=n)).saturation.app for n in range(1, 21)]
    assert all(later <= earlier for earlier, later in zip(sats, sats[1:]))


def test_more_db_capacity_never_raises_db_saturation(baseline):
    sats = [evaluate(replace(baseline, rps=900, db_qps_capacity=c)).saturation.db
            for c in range(50, 1050, 50)]
    assert all(later <= earlier for earlier, later in zip(sats, sats[1:]))


def test_hit_rate_penalties(baseline):
    # Large payloads cap out at a 0.25 penalty
    big = evaluate(replace(baseline, payload_kb=500)).capacity
    assert big.hit_rate == pytest.approx(0.72 - 0.25)

    # A hot app tier costs up to 0.18 more, floored at 0.1
    hot = evaluate(replace(baseline, rps=5000, payload_kb=500)).capacity
    assert hot.hit_rate == pytest.approx(0.72 - 0.25 - 0.18)

    floor = evaluate(replace(baseline, base_cache_hit_rate=0.05)).capacity
    assert floor.hit_rate == pytest.approx(0.1)


def test_replication_and_partitioning_boost_db_capacity(write_bound):
    plain = evaluate(write_bound).capacity
    partitioned = evaluate(replace(write_bound, partitioning_enabled=True)).capacity
    assert partitioned.db_write_capacity == pytest.approx(plain.db_write_capacity * 1.25)
    assert partitioned.db_write_saturation < plain.db_write_saturation

    replicated = evaluate(replace(write_bound, replication_enabled=True)).capacity
    unreplicated = evaluate(replace(write_bound, replication_enabled=False)).capacity
    assert replicated.db_read_capacity == pytest.approx(unreplicated.db_read_capacity * 1.35)


@pytest.mark.parametrize("worst,expected", [
    (0.0, SystemStatus.HEALTHY),
    (0.7499, SystemStatus.HEALTHY),
    (0.75, SystemStatus.DEGRADED),
    (0.9999, SystemStatus.DEGRADED),
    (1.0, SystemStatus.OVERLOADED),
    (4.0, SystemStatus.OVERLOADED),
])
def test_status_thresholds(worst, expected):
    assert status_from_saturation(worst) is expected


# ---------------------------------------------------------------------------
# Latency
# ---------------------------------------------------------------------------

def test_amplify_curve():
    assert LatencyModel.amplify(0) == 1
    assert LatencyModel.amplify(1) == pytest.approx(1.7)
    assert LatencyModel.amplify(10) == LatencyModel.amplify(2.5)
    assert LatencyModel.amplify(-1) == 1


def test_healthy_tail_is_fixed_ratio(baseline):
    latency = evaluate(baseline).latency
    assert latency.p95 == pytest.approx(latency.p50 * 1.35)


def test_baseline_p50(baseline):
    app = 1 + (250 / 518.4) ** 2 * 0.7
    cache = (1 + 0.25 ** 2 * 0.7) * 0.35 + 0.85
    db = 1 + (50 / 280) ** 2 * 0.7
    write = 1 + 0.2 * 0.35
    assert evaluate(baseline).latency.p50 == pytest.approx(55 * app * cache * db * write)


def test_base_latency_floor(baseline):
    idle = evaluate(replace(baseline, rps=0, base_latency_ms=0)).latency
    assert idle.p50 == pytest.approx(5 * (1 * 0.35 + 0.85))


def test_tail_amplification_is_capped():
    assert LatencyModel.tail_amplification(0.5) == pytest.approx(1.35)
    assert LatencyModel.tail_amplification(1.0) == pytest.approx(1.35 + 0.375)
    assert LatencyModel.tail_amplification(50) == pytest.approx(1.35 + 1.8)


def test_latency_notes(write_bound, read_bound, degraded, baseline):
    assert "Write pressure is dominating DB saturation." in evaluate(write_bound).latency.notes

    notes = evaluate(read_bound).latency.notes
    assert "Read pressure (cache misses) is dominating DB saturation." in notes
    assert "Cache disabled; DB reads will increase." in notes

    assert "Autoscaling helps slightly; add instances for more headroom." in evaluate(degraded).latency.notes

    low_hit = evaluate(replace(baseline, base_cache_hit_rate=0.4)).latency.notes
    assert "Cache hit rate is low; consider bigger cache or better keys." in low_hit

    assert evaluate(baseline).latency.notes == ()


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

def test_degraded_errors(degraded):
    result = evaluate(degraded)
    assert result.status is SystemStatus.DEGRADED
    assert result.errors.reason == "Tail latency spikes"
    assert result.errors.rate == pytest.approx((result.saturation.worst - 0.85) * 0.05)


def test_overload_cause_follows_bottleneck(write_bound, cache_bound, overloaded):
    assert evaluate(write_bound).errors.reason == "DB saturation"
    assert evaluate(cache_bound).errors.reason == "Cache saturation"
    assert evaluate(overloaded).errors.reason == "App queue overflow"


def test_error_rate_ceiling(baseline):
    assert evaluate(replace(baseline, rps=100000)).errors.rate == 0.25


# ---------------------------------------------------------------------------
# Cost
# ---------------------------------------------------------------------------

def test_baseline_cost(baseline):
    cost = evaluate(baseline).cost
    assert cost.monthly_compute == pytest.approx(128)
    assert cost.monthly_cache == pytest.approx(69.4)
    assert cost.monthly_db == pytest.approx(293)
    assert cost.monthly_total == pytest.approx(490.4)
    assert [label for label, _ in cost.breakdown] == ["Compute (App tier)", "Cache", "Database"]


def test_cost_ignores_traffic(baseline):
    quiet = evaluate(replace(baseline, rps=1, read_ratio=0.1)).cost
    busy = evaluate(replace(baseline, rps=9000, read_ratio=0.9)).cost
    assert quiet == busy


def test_disabled_tiers_cost_nothing(baseline):
    cost = evaluate(replace(baseline, cache_enabled=False, db_enabled=False)).cost
    assert cost.monthly_cache == 0
    assert cost.monthly_db == 0
    assert cost.monthly_total == cost.monthly_compute


def test_custom_cost_table(baseline):
    table = CostTable(app_instance_monthly=100, replication_monthly=0)
    cost = model_cost(baseline, table)
    assert cost.monthly_compute == 400
    assert cost.monthly_db == pytest.approx(140 + 2.8 * 35)
    assert evaluate(baseline, table).cost == cost


# ---------------------------------------------------------------------------
# Diagram
# ---------------------------------------------------------------------------

def test_diagram_nodes(baseline):
    diagram = evaluate(baseline).diagram
    assert [n.id for n in diagram.nodes] == ["client", "lb", "app", "cache", "db"]
    assert diagram.node("cache").subtitle == "Hit 67%"
    assert diagram.node("app").subtitle == "4 instances"
    assert diagram.node("db").subtitle == "Replicated · No partitions"
    assert dict(diagram.node("app").metrics) == {"Sat": "48%", "Cap": "518 rps"}
    assert dict(diagram.node("client").metrics) == {"RPS": "250"}
    assert len(diagram.edges) == 5


def test_disabled_nodes_are_healthy(overloaded):
    diagram = evaluate(replace(overloaded, cache_enabled=False, db_enabled=False)).diagram
    for node_id in ("cache", "db"):
        node = diagram.node(node_id)
        assert node.subtitle == "Disabled"
        assert node.status is SystemStatus.HEALTHY
        assert node.metrics == (("Note", "—"),)


def test_load_balancer_status_uses_scaled_app_saturation():
    cfg = SystemConfig(rps=100, app_instances=1, app_rps_per_instance=100, autoscale=False)
    diagram = evaluate(cfg).diagram
    assert diagram.node("app").status is SystemStatus.OVERLOADED
    assert diagram.node("lb").status is SystemStatus.DEGRADED


def test_hotspots(baseline, overloaded, degraded):
    assert [(h.label, h.severity) for h in evaluate(baseline).diagram.hotspots] == [
        ("No hotspots", Severity.LOW)]
    assert evaluate(degraded).diagram.hotspots[0].label == "No hotspots"

    hotspots = evaluate(overloaded).diagram.hotspots
    assert [h.label for h in hotspots] == ["DB saturation", "Cache capacity", "App tier saturation"]
    assert all(h.severity is Severity.HIGH for h in hotspots)


def test_medium_hotspot(baseline):
    # App tier at ~96%
    hotspots = evaluate(replace(baseline, rps=500)).diagram.hotspots
    assert ("App tier saturation", Severity.MED) in [(h.label, h.severity) for h in hotspots]


# ---------------------------------------------------------------------------
# Purity
# ---------------------------------------------------------------------------

def test_evaluation_is_idempotent(overloaded):
    assert evaluate(overloaded) == evaluate(overloaded)


def test_evaluation_does_not_mutate_input():
    cfg = SystemConfig(rps=-5, read_ratio=2.0)
    evaluate(cfg)
    assert cfg.rps == -5
    assert cfg.read_ratio == 2.0


# ---------------------------------------------------------------------------
# Config boundary
# ---------------------------------------------------------------------------

def test_config_from_mapping(baseline):
    cfg = config_from_mapping({"rps": 900, "cache_enabled": False})
    assert cfg == replace(baseline, rps=900, cache_enabled=False)
    assert config_from_mapping(config_to_dict(cfg)) == cfg


@pytest.mark.parametrize("data", [
    {"rps": "100"},
    {"rps": True},
    {"cache_enabled": 1},
    {"db_qps_capacity": float("nan")},
    {"rps": float("inf")},
    {"requests": 10},
])
def test_config_from_mapping_rejects_bad_data(data):
    with pytest.raises(ConfigError):
        config_from_mapping(data)


def test_config_error_is_value_error():
    with pytest.raises(ValueError):
        config_from_mapping(["rps", 10])


# ---------------------------------------------------------------------------
# Sweep
# ---------------------------------------------------------------------------

def test_sweep_over_rps(baseline):
    df = sweep(baseline, "rps", [0, 250, 2000])
    assert len(df) == 3
    assert list(df["status"]) == ["healthy", "healthy", "overloaded"]
    assert df["monthly_total"].nunique() == 1
    assert df.iloc[1]["app_sat"] == pytest.approx(250 / 518.4)


def test_sweep_over_instances_uses_whole_instances(baseline):
    df = sweep(baseline, "app_instances", [1.2, 2.7])
    assert list(df["value"]) == [1, 3]


def test_sweep_rejects_flags_and_unknown_fields(baseline):
    with pytest.raises(ConfigError):
        sweep(baseline, "autoscale", [0, 1])
    with pytest.raises(ConfigError):
        sweep(baseline, "nope", [1])
