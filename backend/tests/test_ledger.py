from __future__ import annotations

from decimal import Decimal

import pytest

from app.api.errors import InvalidAmount
from app.services.ledger import Split, apply_minimum_order_floor, compute_split


def test_five_percent_of_ten_thousand():
    assert compute_split(10000, 5) == Split(platform_fee=500, seller_amount=9500)


@pytest.mark.parametrize("total", [1, 7, 99, 101, 12345, 400_000, 999_999_999, 2**53 + 1])
@pytest.mark.parametrize("rate", [0, 1, Decimal("2.5"), 5, Decimal("7.35"), 33, 50, 100])
def test_fee_and_seller_amount_always_add_up(total, rate):
    split = compute_split(total, rate)
    assert split.platform_fee + split.seller_amount == total
    assert 0 <= split.platform_fee <= total


def test_half_kobo_rounds_up():
    # 10 * 5% = 0.5 kobo
    assert compute_split(10, 5) == Split(platform_fee=1, seller_amount=9)
    # 30 * 5% = 1.5 kobo
    assert compute_split(30, 5) == Split(platform_fee=2, seller_amount=28)


def test_boundary_rates():
    assert compute_split(4321, 0) == Split(platform_fee=0, seller_amount=4321)
    assert compute_split(4321, 100) == Split(platform_fee=4321, seller_amount=0)


def test_fee_rate_accepts_string():
    assert compute_split(10000, "2.5") == Split(platform_fee=250, seller_amount=9750)


@pytest.mark.parametrize("total", [0, -1, -10000, 10.5, True])
def test_rejects_non_positive_or_non_integer_total(total):
    with pytest.raises(InvalidAmount) as exc_info:
        compute_split(total, 5)
    assert exc_info.value.code == 400101
    assert exc_info.value.status_code == 400


@pytest.mark.parametrize("rate", [-1, Decimal("100.01"), 150, "NaN"])
def test_rejects_rate_out_of_range(rate):
    with pytest.raises(InvalidAmount):
        compute_split(10000, rate)


def test_invalid_amount_is_logged(caplog):
    with caplog.at_level("WARNING", logger="app.services.ledger"):
        with pytest.raises(InvalidAmount):
            compute_split(0, 5)
    assert "Rejected non-positive amount" in caplog.text


def test_floor_tops_up_first_item():
    assert apply_minimum_order_floor([150_000, 100_000], 400_000) == [300_000, 100_000]


def test_floor_leaves_larger_orders_alone():
    subtotals = [300_000, 200_000]
    assert apply_minimum_order_floor(subtotals, 400_000) == [300_000, 200_000]
    assert apply_minimum_order_floor([400_000], 400_000) == [400_000]


def test_floor_does_not_mutate_input():
    subtotals = [1000]
    apply_minimum_order_floor(subtotals, 400_000)
    assert subtotals == [1000]


def test_floor_rejects_empty_and_non_positive():
    with pytest.raises(InvalidAmount):
        apply_minimum_order_floor([], 400_000)
    with pytest.raises(InvalidAmount):
        apply_minimum_order_floor([1000, 0], 400_000)
