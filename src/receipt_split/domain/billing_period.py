"""Monthly usage window and allowance consumption.

Everything here is pure: callers pass the stored counters and a clock value
and persist the returned :class:`UsageState` as a whole.
"""

from __future__ import annotations

import calendar
import enum
from dataclasses import dataclass, replace
from datetime import datetime

from receipt_split.domain.clock import as_utc

FREE_BILLS_PER_PERIOD = 4


class AllowanceSource(enum.StrEnum):
    FREE = "free"
    CREDIT = "credit"
    NONE = "none"


@dataclass(slots=True, frozen=True)
class BillingWindow:
    start: datetime
    end: datetime


@dataclass(slots=True, frozen=True)
class StoredUsage:
    """Usage fields as persisted on the user profile."""

    anchor: datetime | None
    free_bills_used_in_period: int | None = None
    current_period_start_at: datetime | None = None
    current_period_end_at: datetime | None = None
    bill_credits_balance: int | None = None


@dataclass(slots=True, frozen=True)
class UsageState:
    free_bills_used_in_period: int
    current_period_start_at: datetime
    current_period_end_at: datetime
    bill_credits_balance: int

    @property
    def free_bills_remaining(self) -> int:
        return max(0, FREE_BILLS_PER_PERIOD - self.free_bills_used_in_period)

    @property
    def can_host_new_bill(self) -> bool:
        return self.free_bills_remaining > 0 or self.bill_credits_balance > 0


@dataclass(slots=True, frozen=True)
class AllowanceConsumption:
    updated: UsageState
    source: AllowanceSource


def add_months_clamped(value: datetime, months: int) -> datetime:
    """Shift by calendar months in UTC, clamping the day to the target month."""

    value = as_utc(value)
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return value.replace(year=year, month=month, day=min(value.day, last_day))


def current_window(anchor: datetime | None, now: datetime) -> BillingWindow:
    """Return the monthly window anchored at ``anchor`` that contains ``now``."""

    now = as_utc(now)
    if anchor is None:
        return BillingWindow(start=now, end=add_months_clamped(now, 1))

    start = as_utc(anchor)
    end = add_months_clamped(start, 1)
    while end <= now:
        start = end
        end = add_months_clamped(start, 1)
    return BillingWindow(start=start, end=end)


def _non_negative(value: int | None) -> int:
    if value is None or value <= 0:
        return 0
    return int(value)


def derive_usage_state(stored: StoredUsage, now: datetime) -> UsageState:
    """Recompute the window and reset free usage when the stored one is stale."""

    window = current_window(stored.anchor, now)
    in_stored_period = (
        stored.current_period_start_at is not None
        and stored.current_period_end_at is not None
        and as_utc(stored.current_period_start_at) == window.start
        and as_utc(stored.current_period_end_at) == window.end
    )
    return UsageState(
        free_bills_used_in_period=(
            _non_negative(stored.free_bills_used_in_period) if in_stored_period else 0
        ),
        current_period_start_at=window.start,
        current_period_end_at=window.end,
        bill_credits_balance=_non_negative(stored.bill_credits_balance),
    )


def consume_allowance(state: UsageState) -> AllowanceConsumption:
    """Spend a free slot first, then a purchased credit."""

    if state.free_bills_used_in_period < FREE_BILLS_PER_PERIOD:
        return AllowanceConsumption(
            updated=replace(
                state,
                free_bills_used_in_period=state.free_bills_used_in_period + 1,
            ),
            source=AllowanceSource.FREE,
        )
    if state.bill_credits_balance > 0:
        return AllowanceConsumption(
            updated=replace(
                state,
                bill_credits_balance=state.bill_credits_balance - 1,
            ),
            source=AllowanceSource.CREDIT,
        )
    return AllowanceConsumption(updated=state, source=AllowanceSource.NONE)
