# stocklab/core/backtest_engine.py
"""
Bar-by-bar backtest simulation of a signal sequence.
"""

import logging
import math
from typing import TYPE_CHECKING, List, Mapping, Optional, Sequence

from ..models.config import AppConfig
from ..models.market_data import PriceBar
from ..models.results import BacktestResult, BacktestStats, EquityPoint, Trade
from ..models.signals import ExecutionMode, Signal
from .metrics import MetricsCalculator
from .portfolio import Portfolio

if TYPE_CHECKING:
    from ..strategies.base_strategy import BaseStrategy


logger = logging.getLogger(__name__)

DEFAULT_INITIAL_CAPITAL = 1_000_000.0
DEFAULT_FIXED_AMOUNT = 100_000.0


def _empty_result(initial_capital: float) -> BacktestResult:
    return BacktestResult(
        trades=[],
        equity=[],
        stats=BacktestStats.empty(),
        initial_capital=initial_capital,
        final_equity=initial_capital,
    )


def run_signals(
    bars: Sequence[PriceBar],
    signals: Sequence[Signal],
    mode: ExecutionMode = ExecutionMode.ALL_IN_OUT,
    initial_capital: float = DEFAULT_INITIAL_CAPITAL,
    fixed_amount: float = DEFAULT_FIXED_AMOUNT,
    reason: str = "",
    metrics: Optional[MetricsCalculator] = None
) -> BacktestResult:
    """
    Simulate execution of a precomputed signal sequence at bar closes.

    all_in_out: a buy while flat spends all cash on whole shares, a sell while
    long liquidates. fixed_amount: every buy spends up to fixed_amount, sells
    are ignored.

    Args:
        bars: Ascending price bars
        signals: One signal per bar
        mode: Capital allocation policy
        initial_capital: Starting cash
        fixed_amount: Per-buy amount in fixed_amount mode
        reason: Label attached to every trade
        metrics: Statistics calculator

    Returns:
        BacktestResult; an empty input gives zero statistics and
        final_equity == initial_capital

    Raises:
        ValueError: If signals and bars differ in length
    """
    if len(signals) != len(bars):
        raise ValueError(f"Signal count {len(signals)} does not match bar count {len(bars)}")
    if not bars:
        return _empty_result(initial_capital)

    portfolio = Portfolio(initial_capital)
    trades: List[Trade] = []
    equity: List[EquityPoint] = []
    mode = ExecutionMode(mode)

    for bar, signal in zip(bars, signals):
        price = bar.close
        if mode == ExecutionMode.ALL_IN_OUT:
            if signal == Signal.BUY and portfolio.is_flat and portfolio.cash > 0:
                shares = math.floor(portfolio.cash / price)
                if shares > 0:
                    trades.append(portfolio.buy(bar.date, price, shares, reason))
            elif signal == Signal.SELL and not portfolio.is_flat:
                trades.append(portfolio.sell_all(bar.date, price, reason))
        elif signal == Signal.BUY and portfolio.cash >= price:
            shares = math.floor(min(fixed_amount, portfolio.cash) / price)
            if shares > 0:
                trades.append(portfolio.buy(bar.date, price, shares, reason))

        equity.append(portfolio.mark(bar.date, price))

    final_equity = equity[-1].equity
    stats = (metrics or MetricsCalculator()).calculate_metrics(trades, equity, initial_capital, final_equity)

    return BacktestResult(
        trades=trades,
        equity=equity,
        stats=stats,
        initial_capital=initial_capital,
        final_equity=final_equity,
    )


def run_backtest(
    bars: Sequence[PriceBar],
    strategy: "BaseStrategy",
    params: Optional[Mapping[str, float]] = None,
    initial_capital: float = DEFAULT_INITIAL_CAPITAL
) -> BacktestResult:
    """
    Compute a strategy's signals and simulate them.

    Fixed-amount strategies spend their `monthlyAmount` parameter per buy.
    """
    if not bars:
        return _empty_result(initial_capital)

    resolved = strategy.resolve_params(params)
    signals = strategy.compute(bars, resolved)
    fixed_amount = resolved.get("monthlyAmount", DEFAULT_FIXED_AMOUNT)

    return run_signals(
        bars,
        signals,
        mode=strategy.execution_mode,
        initial_capital=initial_capital,
        fixed_amount=fixed_amount,
        reason=strategy.id,
    )


class BacktestEngine:
    """
    Configured front end to run_backtest.

    Holds no per-run state, so one engine can run any number of backtests.
    """

    def __init__(self, config: Optional[AppConfig] = None):
        """
        Initialize backtest engine.

        Args:
            config: Application configuration; defaults when omitted
        """
        self.config = config or AppConfig()
        self.initial_capital = self.config.backtest.initial_capital
        self.metrics_calculator = MetricsCalculator()
        logger.debug(f"Backtest engine initialized with capital {self.initial_capital:,.0f}")

    def run(
        self,
        bars: Sequence[PriceBar],
        strategy: "BaseStrategy",
        params: Optional[Mapping[str, float]] = None
    ) -> BacktestResult:
        """Run one strategy over one series."""
        logger.info(f"Running {strategy.id} over {len(bars)} bars")
        result = run_backtest(bars, strategy, params, self.initial_capital)
        logger.info(
            f"{strategy.id}: {result.stats.num_trades} round trips, "
            f"return {result.stats.total_return_pct:.2f}%"
        )
        return result

    def run_signals(
        self,
        bars: Sequence[PriceBar],
        signals: Sequence[Signal],
        mode: ExecutionMode = ExecutionMode.ALL_IN_OUT
    ) -> BacktestResult:
        """Simulate a precomputed signal sequence with the configured capital."""
        return run_signals(
            bars,
            signals,
            mode=mode,
            initial_capital=self.initial_capital,
            fixed_amount=self.config.backtest.fixed_amount,
            metrics=self.metrics_calculator,
        )
