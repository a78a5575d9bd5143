from datetime import datetime, timezone
from decimal import Decimal

import pytest

from engine.chart import Candle, InvalidTradeError, PriceUpdate, VolumeOnlyUpdate
from engine.chart.candle import check_volume, to_price

BUCKET = datetime(2023, 7, 27, 10, 1, tzinfo=timezone.utc)


def test_open_at_seeds_all_prices() -> None:
    candle = Candle.open_at(BUCKET, Decimal("12"), 3)
    assert candle.open == candle.high == candle.low == candle.close == Decimal("12")
    assert candle.volume == 3
    assert candle.bucket_start == BUCKET
    assert not candle.is_empty


def test_open_at_without_price_is_empty() -> None:
    candle = Candle.open_at(BUCKET)
    assert candle.is_empty
    assert candle.open is None and candle.close is None
    assert candle.volume == 0
    assert candle.turnover is None


def test_add_trade_tracks_extremes_close_and_volume() -> None:
    candle = Candle.open_at(BUCKET, Decimal("12"))
    for price, volume in [("15", 2), ("9", 1), ("11", 4)]:
        candle = candle.add_trade(Decimal(price), volume)

    assert candle.open == Decimal("12")
    assert candle.high == Decimal("15")
    assert candle.low == Decimal("9")
    assert candle.close == Decimal("11")
    assert candle.volume == 7
    assert candle.turnover == Decimal("30") + Decimal("9") + Decimal("44")


def test_first_trade_on_empty_candle_sets_open() -> None:
    candle = Candle.open_at(BUCKET).add_volume(5).add_trade(Decimal("7.5"), 1)
    assert candle.open == candle.high == candle.low == candle.close == Decimal("7.5")
    assert candle.volume == 6


def test_volume_only_update_leaves_prices() -> None:
    candle = Candle.open_at(BUCKET, Decimal("12")).apply(VolumeOnlyUpdate(volume=10))
    assert candle.open == candle.high == candle.low == candle.close == Decimal("12")
    assert candle.volume == 10
    assert candle.turnover is None


def test_zero_price_is_a_real_trade() -> None:
    candle = Candle.open_at(BUCKET, Decimal("12")).apply(PriceUpdate(Decimal("0"), 1))
    assert candle.low == Decimal("0")
    assert candle.close == Decimal("0")
    assert candle.high == Decimal("12")


def test_candle_is_immutable() -> None:
    candle = Candle.open_at(BUCKET, Decimal("1"))
    updated = candle.add_trade(Decimal("2"), 1)
    assert candle.close == Decimal("1")
    assert updated.close == Decimal("2")
    with pytest.raises(AttributeError):
        candle.bucket_start = datetime(2020, 1, 1, tzinfo=timezone.utc)


def test_apply_rejects_unknown_update() -> None:
    with pytest.raises(TypeError):
        Candle.open_at(BUCKET).apply(("12", 1))


def test_to_price_accepts_common_inputs() -> None:
    assert to_price("101.25") == Decimal("101.25")
    assert to_price(7) == Decimal("7")
    assert to_price(0.1) == Decimal("0.1")


@pytest.mark.parametrize("value", ["abc", None, True, float("nan"), "Infinity"])
def test_to_price_rejects_garbage(value) -> None:
    with pytest.raises(InvalidTradeError):
        to_price(value)


@pytest.mark.parametrize("volume", [-1, 1.5, "3", True])
def test_check_volume_rejects_invalid(volume) -> None:
    with pytest.raises(InvalidTradeError):
        check_volume(volume)
