from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from insights_client.app.feature_gates import InsightCounter, QuotaGate, QuotaSnapshot


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 8, 1, 9, tzinfo=timezone.utc))


@pytest.fixture
def gate(clock: FakeClock) -> QuotaGate:
    return QuotaGate(3, clock=clock)


def test_three_free_views_then_login_prompt(gate: QuotaGate) -> None:
    assert gate.remaining() == 3

    results = []
    remaining = []
    for _ in range(3):
        results.append(gate.record_view())
        remaining.append(gate.remaining())

    assert results == [True, True, True]
    assert remaining == [2, 1, 0]
    assert gate.show_login_modal is False

    assert gate.record_view() is False
    assert gate.show_login_modal is True
    assert gate.remaining() == 0
    assert gate.requires_login() is True


def test_record_view_after_exhaustion_leaves_counter_unchanged(gate: QuotaGate) -> None:
    for _ in range(3):
        gate.record_view()

    for _ in range(5):
        assert gate.record_view() is False
        assert gate.count == 3
        assert gate.remaining() == 0
        assert gate.show_login_modal is True


def test_dismissed_prompt_is_raised_again_on_denied_view(gate: QuotaGate) -> None:
    for _ in range(4):
        gate.record_view()
    gate.dismiss_login()
    assert gate.show_login_modal is False

    assert gate.record_view() is False
    assert gate.show_login_modal is True


def test_remaining_is_non_increasing_and_never_negative(gate: QuotaGate) -> None:
    previous = gate.remaining()
    for _ in range(10):
        gate.record_view()
        current = gate.remaining()
        assert 0 <= current <= previous
        previous = current


def test_authenticated_viewer_is_unlimited(gate: QuotaGate) -> None:
    gate.set_authenticated(True)

    for _ in range(10):
        assert gate.can_view() is True
        assert gate.record_view() is True

    assert gate.is_unlimited is True
    assert gate.count == 0
    assert gate.requires_login() is False


def test_login_clears_counter_and_prompt(gate: QuotaGate) -> None:
    for _ in range(4):
        gate.record_view()
    assert gate.show_login_modal is True

    gate.set_authenticated(True)
    assert gate.show_login_modal is False
    gate.set_authenticated(False)

    assert gate.count == 0
    assert gate.remaining() == 3


def test_counter_resets_on_new_day(gate: QuotaGate, clock: FakeClock) -> None:
    for _ in range(3):
        gate.record_view()
    assert gate.can_view() is False

    clock.advance(hours=16)

    assert gate.can_view() is True
    assert gate.remaining() == 3
    assert gate.record_view() is True


def test_same_day_does_not_reset(gate: QuotaGate, clock: FakeClock) -> None:
    gate.record_view()
    clock.advance(hours=5)

    assert gate.remaining() == 2


def test_reset_restores_full_quota(gate: QuotaGate) -> None:
    for _ in range(3):
        gate.record_view()

    gate.reset()

    assert gate.remaining() == 3
    assert gate.can_view() is True


def test_snapshot_serializes_state(gate: QuotaGate, clock: FakeClock) -> None:
    gate.record_view()

    snapshot = gate.snapshot()

    assert isinstance(snapshot, QuotaSnapshot)
    assert snapshot.to_dict() == {
        "count": 1,
        "limit": 3,
        "remaining": 2,
        "is_unlimited": False,
        "period_start": clock.now.isoformat(),
        "show_login_modal": False,
    }


def test_counter_rejects_non_positive_limit(clock: FakeClock) -> None:
    with pytest.raises(ValueError):
        InsightCounter(limit=0, period_start=clock.now)
