import pytest
from dataclasses import replace

from system_design_model import SystemConfig


@pytest.fixture
def baseline():
    return SystemConfig()


@pytest.fixture
def overloaded(baseline):
    return replace(baseline, rps=2000)


@pytest.fixture
def degraded(baseline):
    # App tier at ~87% saturation, everything else comfortable
    return replace(baseline, rps=450)


@pytest.fixture
def write_bound(baseline):
    return replace(baseline, rps=300, read_ratio=0.2, app_instances=10,
                   db_qps_capacity=100, partitioning_enabled=False)


@pytest.fixture
def read_bound(baseline):
    return replace(baseline, rps=300, read_ratio=0.9, app_instances=10,
                   cache_enabled=False, db_qps_capacity=100, replication_enabled=False)


@pytest.fixture
def cache_bound(baseline):
    return replace(baseline, rps=300, read_ratio=1.0, app_instances=10, cache_rps_capacity=200)
