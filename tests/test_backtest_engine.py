import datetime as dt
import math

import pytest

from stocklab.core.backtest_engine import BacktestEngine, run_backtest, run_signals
from stocklab.models.config import AppConfig, BacktestConfig
from stocklab.models.results import TradeType
from stocklab.models.signals import ExecutionMode, Signal
from stocklab.strategies import DCAStrategy, DipBuyStrategy, MACrossStrategy, build_default_registry


def test_buy_and_hold_spends_all_cash(make_bars):
    closes = [100.0 + i for i in range(30)]
    bars = make_bars(closes)
    signals = [Signal.BUY] + [Signal.HOLD] * 29

    result = run_signals(bars, signals, initial_capital=1_000_000)

    assert len(result.trades) == 1
    assert result.trades[0].shares == 10_000
    assert result.equity[0].cash == 0
    assert result.final_equity == pytest.approx(10_000 * closes[-1])
    assert result.stats.num_trades == 0


def test_flat_series_ma_cross_has_no_trades(make_bars):
    bars = make_bars([100.0] * 20)

    result = run_backtest(bars, MACrossStrategy(), {"shortPeriod": 5, "longPeriod": 25})

    assert result.trades == []
    assert result.stats.total_return_pct == 0
    assert result.final_equity == 1_000_000


def test_empty_input_returns_zero_stats():
    result = run_backtest([], MACrossStrategy())

    assert result.trades == []
    assert result.equity == []
    assert result.final_equity == result.initial_capital
    assert result.stats.num_trades == 0
    assert result.stats.sharpe_ratio == 0


def test_signal_length_mismatch(make_bars):
    with pytest.raises(ValueError, match="does not match bar count"):
        run_signals(make_bars([1.0, 2.0]), [Signal.HOLD])


def test_round_trip_profit(make_bars):
    bars = make_bars([100.0, 110.0, 120.0, 130.0])
    signals = [Signal.BUY, Signal.HOLD, Signal.SELL, Signal.HOLD]

    result = run_signals(bars, signals, initial_capital=1_000)

    assert [t.type for t in result.trades] == [TradeType.BUY, TradeType.SELL]
    assert result.trades[1].value == pytest.approx(1_200.0)
    assert result.final_equity == pytest.approx(1_200.0)
    assert result.stats.num_trades == 1
    assert result.stats.num_wins == 1
    assert result.stats.win_rate == 100
    assert math.isinf(result.stats.profit_factor)


def test_all_in_out_ignores_repeated_signals(make_bars):
    bars = make_bars([10.0, 11.0, 12.0, 13.0, 14.0])
    signals = [Signal.SELL, Signal.BUY, Signal.BUY, Signal.SELL, Signal.SELL]

    result = run_signals(bars, signals, initial_capital=100)

    assert [t.type for t in result.trades] == [TradeType.BUY, TradeType.SELL]
    assert result.trades[0].shares == 9


def test_buy_skipped_when_cash_below_price(make_bars):
    bars = make_bars([500.0, 510.0])

    result = run_signals(bars, [Signal.BUY, Signal.HOLD], initial_capital=100)

    assert result.trades == []
    assert result.final_equity == 100


def test_fixed_amount_accumulates_and_ignores_sells(make_bars):
    bars = make_bars([100.0, 100.0, 100.0, 100.0])
    signals = [Signal.BUY, Signal.SELL, Signal.BUY, Signal.BUY]

    result = run_signals(
        bars, signals, mode=ExecutionMode.FIXED_AMOUNT, initial_capital=25_000, fixed_amount=10_000
    )

    assert [t.shares for t in result.trades] == [100, 100, 50]
    assert all(t.type == TradeType.BUY for t in result.trades)
    assert result.equity[-1].cash == pytest.approx(0.0)
    assert result.equity[-1].position == pytest.approx(25_000)


def test_dca_uses_monthly_amount(make_bars):
    bars = make_bars([100.0] * 45, start=dt.date(2024, 1, 29))

    result = run_backtest(bars, DCAStrategy(), {"monthlyAmount": 50_000}, initial_capital=1_000_000)

    assert [t.shares for t in result.trades] == [500, 500, 500]


def test_equity_invariants_hold(wavy_bars):
    result = run_backtest(wavy_bars, DipBuyStrategy(), {"dipPct": 5, "recoveryPct": 5})

    assert len(result.equity) == len(wavy_bars)
    for point, bar in zip(result.equity, wavy_bars):
        assert point.cash >= 0
        assert 0 <= point.drawdown < 1
        assert point.equity == pytest.approx(point.cash + point.position)
        assert point.date == bar.date
    assert result.final_equity == result.equity[-1].equity


def test_peak_equity_never_decreases(wavy_bars):
    result = run_backtest(wavy_bars, DipBuyStrategy(), {"dipPct": 5, "recoveryPct": 5})

    assert result.trades
    peak = result.initial_capital
    for point in result.equity:
        implied_peak = point.equity / (1 - point.drawdown)
        assert implied_peak >= peak * (1 - 1e-9)
        peak = max(peak, point.equity)
        assert implied_peak == pytest.approx(peak)


@pytest.mark.parametrize("strategy_id", ["ma_cross", "macd_trail", "dip_kairi", "tabata_cwh", "dca"])
def test_backtest_is_repeatable(wavy_bars, strategy_id):
    strategy = build_default_registry().get(strategy_id)

    first = run_backtest(wavy_bars, strategy)
    second = run_backtest(wavy_bars, strategy)

    assert first.to_dict() == second.to_dict()


def test_engine_uses_configured_capital(make_bars):
    bars = make_bars([100.0 + i for i in range(10)])
    engine = BacktestEngine(AppConfig(backtest=BacktestConfig(initial_capital=10_000)))

    result = engine.run_signals(bars, [Signal.BUY] + [Signal.HOLD] * 9)

    assert result.initial_capital == 10_000
    assert result.trades[0].shares == 100


def test_backtest_config_rejects_non_positive_capital():
    with pytest.raises(ValueError, match="initial_capital must be positive"):
        BacktestConfig(initial_capital=0)
