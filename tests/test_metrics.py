import datetime as dt
import math

import pytest

from stocklab.core.metrics import MetricsCalculator, pair_round_trips
from stocklab.models.results import BacktestStats, EquityPoint, Trade, TradeType


D0 = dt.date(2024, 1, 1)


def _trade(day, kind, price, shares=10):
    return Trade(
        date=D0 + dt.timedelta(days=day),
        type=kind,
        price=price,
        shares=shares,
        value=price * shares,
    )


def _curve(values, drawdowns=None):
    drawdowns = drawdowns or [0.0] * len(values)
    return [
        EquityPoint(date=D0 + dt.timedelta(days=i), equity=v, cash=v, position=0.0, drawdown=dd)
        for i, (v, dd) in enumerate(zip(values, drawdowns))
    ]


def test_pair_round_trips_matches_buy_with_next_sell():
    trades = [
        _trade(0, TradeType.BUY, 100),
        _trade(3, TradeType.SELL, 110),
        _trade(5, TradeType.SELL, 120),
        _trade(6, TradeType.BUY, 50),
        _trade(8, TradeType.BUY, 60),
        _trade(10, TradeType.SELL, 54),
        _trade(12, TradeType.BUY, 70),
    ]

    round_trips = pair_round_trips(trades)

    assert len(round_trips) == 2
    assert round_trips[0].profit == pytest.approx(100.0)
    assert round_trips[0].holding_days == 3
    assert round_trips[1].entry_price == 60
    assert round_trips[1].return_pct == pytest.approx(-10.0)
    assert not round_trips[1].is_win


def test_profit_factor_sentinels():
    calc = MetricsCalculator()

    assert math.isinf(calc._calculate_profit_factor(100.0, 0.0))
    assert calc._calculate_profit_factor(0.0, 0.0) == 0.0
    assert calc._calculate_profit_factor(30.0, 10.0) == pytest.approx(3.0)


def test_recovery_factor_sentinels():
    calc = MetricsCalculator()

    assert math.isinf(calc._calculate_recovery_factor(12.0, 0.0))
    assert calc._calculate_recovery_factor(-5.0, 0.0) == 0.0
    assert calc._calculate_recovery_factor(20.0, 10.0) == pytest.approx(2.0)


def test_losing_round_trip_counts_zero_profit_as_loss():
    trades = [
        _trade(0, TradeType.BUY, 100),
        _trade(1, TradeType.SELL, 100),
        _trade(2, TradeType.BUY, 100),
        _trade(4, TradeType.SELL, 130),
    ]

    stats = MetricsCalculator().calculate_metrics(trades, _curve([1000, 1000, 1000, 1000, 1300]), 1000, 1300)

    assert stats.num_trades == 2
    assert stats.num_wins == 1
    assert stats.num_losses == 1
    assert stats.win_rate == pytest.approx(50.0)
    assert math.isinf(stats.profit_factor)
    assert stats.avg_loss == 0.0
    assert stats.max_trade_return_pct == pytest.approx(30.0)
    assert math.isinf(stats.recovery_factor)


def test_average_loss_is_positive_magnitude():
    trades = [
        _trade(0, TradeType.BUY, 100),
        _trade(1, TradeType.SELL, 90),
        _trade(2, TradeType.BUY, 100),
        _trade(3, TradeType.SELL, 80),
        _trade(4, TradeType.BUY, 100),
        _trade(5, TradeType.SELL, 160),
    ]

    stats = MetricsCalculator().calculate_metrics(trades, _curve([1000, 900, 900, 700, 700, 1300]), 1000, 1300)

    assert stats.num_losses == 2
    assert stats.avg_loss == pytest.approx(150.0)
    assert stats.avg_win == pytest.approx(600.0)
    assert stats.profit_factor == pytest.approx(2.0)


def test_sharpe_ratio_annualized():
    calc = MetricsCalculator()

    sharpe = calc._calculate_sharpe_ratio(_curve([100.0, 110.0, 110.0]))

    assert sharpe == pytest.approx(math.sqrt(250) / math.sqrt(2))


def test_sharpe_ratio_degenerate_cases():
    calc = MetricsCalculator()

    assert calc._calculate_sharpe_ratio(_curve([100.0, 110.0])) == 0.0
    assert calc._calculate_sharpe_ratio(_curve([100.0, 100.0, 100.0, 100.0])) == 0.0


def test_drawdowns_in_percent():
    stats = MetricsCalculator().calculate_metrics(
        [], _curve([100, 80, 90, 100], drawdowns=[0.0, 0.2, 0.1, 0.0]), 100, 100
    )

    assert stats.max_drawdown_pct == pytest.approx(20.0)
    assert stats.avg_drawdown_pct == pytest.approx(7.5)
    assert stats.max_drawdown == pytest.approx(20.0)
    assert stats.recovery_factor == 0.0


def test_holding_day_percentiles_interpolate():
    q = MetricsCalculator()._calculate_holding_percentiles([1, 2, 3, 4])

    assert q == pytest.approx((2.5, 1.0, 1.75, 2.5, 3.25, 4.0))


def test_empty_curve_gives_empty_stats():
    stats = MetricsCalculator().calculate_metrics([], [], 1000, 1000)

    assert stats == BacktestStats.empty()
    assert stats.profit_factor == 0.0
