from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.enums import OrderStatus, PayoutStatus
from app.services.payout import PayoutDecision, payout_status

T = datetime(2025, 3, 10, 14, 0, tzinfo=timezone.utc)
DAY = timedelta(days=1)


def test_scheduled_thirty_minutes_after_delivery():
    assert payout_status(OrderStatus.delivered, T, T + timedelta(minutes=30)) == PayoutDecision(
        status=PayoutStatus.scheduled, payout_date=T + DAY
    )


def test_completed_twenty_five_hours_after_delivery():
    decision = payout_status(OrderStatus.delivered, T, T + timedelta(hours=25))
    assert decision.status == PayoutStatus.completed
    assert decision.payout_date == T + DAY


@pytest.mark.parametrize(
    "offset",
    [timedelta(0), timedelta(seconds=1), timedelta(hours=12), DAY - timedelta(microseconds=1)],
)
def test_inside_hold_window_is_scheduled(offset):
    assert payout_status("delivered", T, T + offset).status == PayoutStatus.scheduled


@pytest.mark.parametrize("offset", [DAY, DAY + timedelta(microseconds=1), timedelta(days=30)])
def test_after_hold_window_is_completed(offset):
    assert payout_status("delivered", T, T + offset).status == PayoutStatus.completed


@pytest.mark.parametrize(
    "status",
    [s for s in OrderStatus if s != OrderStatus.delivered],
)
@pytest.mark.parametrize("offset", [timedelta(0), timedelta(hours=2), timedelta(days=3)])
def test_not_delivered_is_pending_regardless_of_time(status, offset):
    # delivered_at present on a non-delivered order still means pending
    assert payout_status(status, T, T + offset) == PayoutDecision(status=PayoutStatus.pending)


def test_delivered_without_timestamp_is_pending():
    assert payout_status(OrderStatus.delivered, None, T) == PayoutDecision(
        status=PayoutStatus.pending
    )


def test_custom_hold_length():
    decision = payout_status(OrderStatus.delivered, T, T + timedelta(hours=3), hold=timedelta(hours=2))
    assert decision == PayoutDecision(status=PayoutStatus.completed, payout_date=T + timedelta(hours=2))


def test_naive_database_timestamps_are_treated_as_utc():
    naive = T.replace(tzinfo=None)
    decision = payout_status(OrderStatus.delivered, naive, T + timedelta(hours=1))
    assert decision == PayoutDecision(status=PayoutStatus.scheduled, payout_date=T + DAY)
