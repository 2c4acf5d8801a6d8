from __future__ import annotations

from datetime import UTC, datetime

from receipt_split.domain.billing_period import (
    FREE_BILLS_PER_PERIOD,
    AllowanceSource,
    StoredUsage,
    add_months_clamped,
    consume_allowance,
    current_window,
    derive_usage_state,
)


def _at(year: int, month: int, day: int, hour: int = 9) -> datetime:
    return datetime(year, month, day, hour, 30, tzinfo=UTC)


def test_month_arithmetic_clamps_day_and_keeps_time() -> None:
    assert add_months_clamped(_at(2025, 1, 31), 1) == _at(2025, 2, 28)
    assert add_months_clamped(_at(2024, 1, 31), 1) == _at(2024, 2, 29)
    assert add_months_clamped(_at(2025, 12, 15), 1) == _at(2026, 1, 15)


def test_window_advances_from_clamped_start() -> None:
    window = current_window(_at(2025, 1, 31), _at(2025, 3, 15))

    assert window.start == _at(2025, 2, 28)
    assert window.end == _at(2025, 3, 28)


def test_window_without_anchor_starts_now() -> None:
    now = _at(2025, 5, 2)

    window = current_window(None, now)

    assert window.start == now
    assert window.end == _at(2025, 6, 2)


def test_naive_timestamps_are_treated_as_utc() -> None:
    window = current_window(datetime(2025, 1, 31, 9, 30), _at(2025, 3, 15))

    assert window.start == _at(2025, 2, 28)


def test_stale_stored_window_resets_free_usage() -> None:
    stored = StoredUsage(
        anchor=_at(2025, 1, 31),
        free_bills_used_in_period=4,
        current_period_start_at=_at(2025, 1, 31),
        current_period_end_at=_at(2025, 2, 28),
        bill_credits_balance=2,
    )

    state = derive_usage_state(stored, _at(2025, 3, 15))

    assert state.free_bills_used_in_period == 0
    assert state.current_period_start_at == _at(2025, 2, 28)
    assert state.bill_credits_balance == 2


def test_matching_stored_window_keeps_usage() -> None:
    stored = StoredUsage(
        anchor=_at(2025, 1, 31),
        free_bills_used_in_period=3,
        current_period_start_at=_at(2025, 2, 28),
        current_period_end_at=_at(2025, 3, 28),
        bill_credits_balance=-5,
    )

    state = derive_usage_state(stored, _at(2025, 3, 15))

    assert state.free_bills_used_in_period == 3
    assert state.free_bills_remaining == 1
    assert state.bill_credits_balance == 0


def test_consume_prefers_free_then_credit_then_none() -> None:
    state = derive_usage_state(
        StoredUsage(anchor=_at(2025, 1, 1), bill_credits_balance=1),
        _at(2025, 1, 10),
    )
    sources = []
    for _ in range(FREE_BILLS_PER_PERIOD + 2):
        consumption = consume_allowance(state)
        sources.append(consumption.source)
        state = consumption.updated

    assert sources == [AllowanceSource.FREE] * FREE_BILLS_PER_PERIOD + [
        AllowanceSource.CREDIT,
        AllowanceSource.NONE,
    ]
    assert state.free_bills_used_in_period == FREE_BILLS_PER_PERIOD
    assert state.bill_credits_balance == 0
    assert not state.can_host_new_bill
