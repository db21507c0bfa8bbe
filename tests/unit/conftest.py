"""Pytest unit test fixtures."""

import itertools

import pytest

from pizza_metrics.metrics.encoder import OtlpEncoder
from pizza_metrics.metrics.store import MetricsStore
from pizza_metrics.metrics.tracking import MetricsTracker


@pytest.fixture()
def store():
    return MetricsStore()


@pytest.fixture()
def encoder():
    ticks = itertools.count(1_700_000_000_000_000_000, 1_000)
    return OtlpEncoder("pizza-test", clock=lambda: next(ticks))


@pytest.fixture()
def tracker(store):
    # Each clock read advances 5 ms.
    readings = itertools.count(0.0, 0.005)
    return MetricsTracker(store, clock=lambda: next(readings))
