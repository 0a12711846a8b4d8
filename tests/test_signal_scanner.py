import datetime as dt
import math

import numpy as np
import pytest

from stocklab.core.signal_scanner import (
    detect_signals_from_data,
    extract_signal_points,
    find_active_position,
    find_recent_buy_signals,
    get_exit_levels,
    lookback_days_for,
    trail_stop_levels,
)
from stocklab.models.config import ScannerConfig
from stocklab.models.signals import PeriodType, Signal, SignalAction
from stocklab.strategies import build_default_registry

B, S, H = Signal.BUY, Signal.SELL, Signal.HOLD


def test_active_position_is_last_unclosed_buy(make_bars):
    bars = make_bars([10.0, 11.0, 12.0, 13.0, 14.0, 15.0])

    position = find_active_position(bars, [B, H, S, B, B, H])

    assert position.buy_index == 3
    assert position.buy_price == 13.0
    assert position.buy_date == bars[3].date


def test_no_active_position_after_sell(make_bars):
    bars = make_bars([10.0, 11.0, 12.0])

    assert find_active_position(bars, [B, S, H]) is None
    assert find_active_position(bars, [H, S, H]) is None


def test_recent_buys_newest_first(make_bars):
    bars = make_bars([10.0, 11.0, 12.0, 13.0, 14.0], start=dt.date(2024, 1, 1))
    signals = [B, S, B, S, B]

    points = find_recent_buy_signals(bars, signals, lookback_days=90)

    assert [p.index for p in points] == [4, 2, 0]
    assert all(p.action == SignalAction.BUY for p in points)


def test_recent_buys_respect_cutoff(make_bars):
    bars = make_bars([10.0] * 5, start=dt.date(2024, 1, 1))
    signals = [B, H, H, H, B]

    assert [p.index for p in find_recent_buy_signals(bars, signals, lookback_days=3)] == [4]
    assert find_recent_buy_signals(bars, signals, 30, as_of=dt.date(2025, 1, 1)) == []


def test_lookback_days_by_period():
    config = ScannerConfig(daily_lookback_days=30, weekly_lookback_days=100)

    assert lookback_days_for(PeriodType.DAILY, config) == 30
    assert lookback_days_for("weekly", config) == 100
    assert lookback_days_for("daily") == 90


def test_exit_levels_fixed_percentages(make_bars):
    bars = make_bars([100.0] * 5)

    levels = get_exit_levels("tabata_cwh", bars, 2, 100.0, {"takeProfitPct": 20, "stopLossPct": 7})

    assert levels.take_profit_price == pytest.approx(120.0)
    assert levels.stop_loss_price == pytest.approx(93.0)
    assert levels.take_profit_label == "+20%"


def test_exit_levels_rsi_uses_tighter_stop(make_bars):
    bars = make_bars([100.0] * 20, highs=[101.0] * 20, lows=[99.0] * 20)
    params = {"overbought": 70, "atrPeriod": 14, "atrMultiple": 2, "stopLossPct": 10}

    levels = get_exit_levels("rsi_reversal", bars, 15, 100.0, params)

    # ATR is 2, so the ATR stop (96) is tighter than the 10% stop (90)
    assert levels.stop_loss_price == pytest.approx(96.0)
    assert levels.stop_loss_label.startswith("Stop: ATR(14)x2")


def test_exit_levels_crossover_strategies_have_labels_only(make_bars):
    levels = get_exit_levels("ma_cross", make_bars([1.0, 2.0]), 1, 2.0, {"shortPeriod": 5, "longPeriod": 25})

    assert levels.take_profit_price is None
    assert levels.stop_loss_price is None
    assert levels.stop_loss_label == "Sell on MA5/MA25 dead cross"


def test_exit_levels_unknown_strategy(make_bars):
    levels = get_exit_levels("dca", make_bars([1.0]), 0, 1.0, {})

    assert levels.take_profit_price is None
    assert levels.stop_loss_label == ""


def test_signal_points_classify_sells(make_bars):
    bars = make_bars([10.0, 12.0, 11.0, 9.0])

    points = extract_signal_points("dip_buy", bars, [B, S, B, S])

    assert [p.action for p in points] == [
        SignalAction.BUY, SignalAction.TAKE_PROFIT, SignalAction.BUY, SignalAction.STOP_LOSS
    ]


def test_signal_points_dead_cross(make_bars):
    points = extract_signal_points("ma_cross", make_bars([10.0, 12.0]), [B, S])

    assert points[0].label == "GC"
    assert points[1].action == SignalAction.DEAD_CROSS


def test_trail_stop_levels_shape(wavy_bars):
    levels = trail_stop_levels(wavy_bars)

    assert levels.shape == (len(wavy_bars),)
    assert np.isnan(levels[:34]).all()


def test_detect_signals_reports_open_dip_buy(make_bars):
    bars = make_bars([100.0] * 10 + [95.0, 89.0, 88.0])

    result = detect_signals_from_data(
        bars,
        PeriodType.DAILY,
        build_default_registry(),
        strategy_ids=["dip_buy", "not_registered"],
        preset="default",
    )

    assert len(result.active) == 1
    info = result.active[0]
    assert info.strategy_id == "dip_buy"
    assert info.buy_price == 89.0
    assert info.current_price == 88.0
    assert info.pnl_pct == pytest.approx(-1.12)
    assert info.exit_levels.take_profit_price == pytest.approx(102.35)
    assert info.exit_levels.stop_loss_price == pytest.approx(75.65)
    assert [(r.strategy_id, r.date) for r in result.recent] == [("dip_buy", bars[11].date)]


def test_detect_signals_empty_input():
    result = detect_signals_from_data([], "daily", build_default_registry())

    assert result.active == []
    assert result.recent == []


def test_detect_signals_default_strategies(wavy_bars):
    result = detect_signals_from_data(wavy_bars, "daily", build_default_registry())
    scanned = set(ScannerConfig().strategy_ids)

    assert {info.strategy_id for info in result.active} <= scanned
    for info in result.active:
        assert not math.isnan(info.pnl_pct)
    cutoff = wavy_bars[-1].date - dt.timedelta(days=90)
    assert all(r.date >= cutoff for r in result.recent)
