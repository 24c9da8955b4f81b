from datetime import datetime, timedelta, timezone

import pytest

from backend.vision import CostTracker, estimate_cost


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def test_estimate_cost_known_and_unknown_model():
    assert estimate_cost("gpt-4o-mini", 1000, 1000) == pytest.approx(0.00075)
    assert estimate_cost("some-new-model", 1000, 0) == pytest.approx(0.0025)


def test_budget_is_per_day():
    clock = FakeClock(datetime(2026, 10, 17, 23, 0, tzinfo=timezone.utc))
    tracker = CostTracker(daily_budget=0.01, clock=clock)

    tracker.add_cost(0.006)
    assert not tracker.is_over_budget()
    tracker.add_cost(0.006)
    assert tracker.is_over_budget()

    clock.now += timedelta(hours=2)
    assert not tracker.is_over_budget()
    assert tracker.get_total_cost(days=7) == pytest.approx(0.012)


def test_no_budget_never_blocks():
    tracker = CostTracker()
    tracker.add_cost(100.0)
    assert not tracker.is_over_budget()
    assert tracker.get_stats()["today_calls"] == 1
