# stocklab/core/metrics.py
"""
Performance statistics for backtest results.
"""

import logging
import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..models.results import BacktestStats, EquityPoint, RoundTrip, Trade, TradeType


logger = logging.getLogger(__name__)

TRADING_DAYS_PER_YEAR = 250


def pair_round_trips(trades: Sequence[Trade]) -> List[RoundTrip]:
    """
    Pair each buy with the next sell.

    A later buy replaces a still-pending one; a buy with no following sell
    produces no round trip.
    """
    round_trips: List[RoundTrip] = []
    pending: Optional[Trade] = None

    for trade in trades:
        if trade.type == TradeType.BUY:
            pending = trade
        elif pending is not None:
            profit = (trade.price - pending.price) * trade.shares
            return_pct = (trade.price - pending.price) / pending.price * 100 if pending.price else 0.0
            round_trips.append(RoundTrip(
                entry_date=pending.date,
                exit_date=trade.date,
                entry_price=pending.price,
                exit_price=trade.price,
                shares=trade.shares,
                profit=profit,
                return_pct=return_pct,
                holding_days=(trade.date - pending.date).days,
            ))
            pending = None

    return round_trips


class MetricsCalculator:
    """
    Calculate summary statistics for a backtest run.

    Degenerate inputs resolve to sentinels instead of raising: profit factor
    and recovery factor are +inf when there is gain and nothing to divide by,
    and 0 when there is neither.
    """

    def __init__(self, periods_per_year: int = TRADING_DAYS_PER_YEAR):
        """
        Initialize metrics calculator.

        Args:
            periods_per_year: Bars per year used to annualize the Sharpe ratio
        """
        self.periods_per_year = periods_per_year

    def calculate_metrics(
        self,
        trades: Sequence[Trade],
        equity_curve: Sequence[EquityPoint],
        initial_capital: float,
        final_equity: float
    ) -> BacktestStats:
        """
        Calculate statistics for one run.

        Args:
            trades: Executed fills in order
            equity_curve: Per-bar equity points
            initial_capital: Starting capital
            final_equity: Equity after the last bar

        Returns:
            BacktestStats
        """
        if not equity_curve:
            return BacktestStats.empty()

        total_return = final_equity - initial_capital
        total_return_pct = total_return / initial_capital * 100 if initial_capital else 0.0

        round_trips = pair_round_trips(trades)
        profits = [rt.profit for rt in round_trips]
        wins = [p for p in profits if p > 0]
        losses = [p for p in profits if p <= 0]

        num_trades = len(round_trips)
        win_rate = len(wins) / num_trades * 100 if num_trades else 0.0

        gross_profit = sum(wins)
        gross_loss = abs(sum(losses))
        profit_factor = self._calculate_profit_factor(gross_profit, gross_loss)

        max_drawdown_pct, avg_drawdown_pct = self._calculate_drawdowns(equity_curve)
        max_drawdown = max_drawdown_pct / 100 * initial_capital

        holding = self._calculate_holding_percentiles([rt.holding_days for rt in round_trips])

        stats = BacktestStats(
            total_return=total_return,
            total_return_pct=total_return_pct,
            win_rate=win_rate,
            num_trades=num_trades,
            num_wins=len(wins),
            num_losses=len(losses),
            profit_factor=profit_factor,
            avg_win=float(np.mean(wins)) if wins else 0.0,
            avg_loss=abs(float(np.mean(losses))) if losses else 0.0,
            max_trade_return_pct=max((rt.return_pct for rt in round_trips), default=0.0),
            max_drawdown=max_drawdown,
            max_drawdown_pct=max_drawdown_pct,
            avg_drawdown_pct=avg_drawdown_pct,
            sharpe_ratio=self._calculate_sharpe_ratio(equity_curve),
            recovery_factor=self._calculate_recovery_factor(total_return_pct, max_drawdown_pct),
            avg_holding_days=holding[0],
            holding_days_min=holding[1],
            holding_days_q1=holding[2],
            holding_days_median=holding[3],
            holding_days_q3=holding[4],
            holding_days_max=holding[5],
        )

        logger.debug(
            f"Metrics calculated - trades: {num_trades}, win rate: {win_rate:.1f}%, "
            f"return: {total_return_pct:.2f}%, max DD: {max_drawdown_pct:.2f}%"
        )
        return stats

    def _calculate_profit_factor(self, gross_profit: float, gross_loss: float) -> float:
        if gross_loss > 0:
            return gross_profit / gross_loss
        return math.inf if gross_profit > 0 else 0.0

    def _calculate_drawdowns(self, equity_curve: Sequence[EquityPoint]) -> Tuple[float, float]:
        """Max and mean drawdown percentages."""
        drawdowns = np.array([p.drawdown for p in equity_curve], dtype=float)
        return float(drawdowns.max() * 100), float(drawdowns.mean() * 100)

    def _calculate_sharpe_ratio(self, equity_curve: Sequence[EquityPoint]) -> float:
        """
        Annualized Sharpe ratio of per-bar equity returns.

        Bars whose previous equity is not positive are skipped. Fewer than
        two returns or zero dispersion give 0.
        """
        equity = np.array([p.equity for p in equity_curve], dtype=float)
        prev = equity[:-1]
        valid = prev > 0
        returns = (equity[1:][valid] - prev[valid]) / prev[valid]

        if returns.shape[0] < 2:
            return 0.0
        std = float(np.std(returns, ddof=1))
        if std == 0:
            return 0.0
        return float(np.mean(returns) / std * math.sqrt(self.periods_per_year))

    def _calculate_recovery_factor(self, total_return_pct: float, max_drawdown_pct: float) -> float:
        if max_drawdown_pct > 0:
            return total_return_pct / max_drawdown_pct
        return math.inf if total_return_pct > 0 else 0.0

    def _calculate_holding_percentiles(self, holding_days: List[int]) -> Tuple[float, ...]:
        """(mean, min, q1, median, q3, max) with linear interpolation."""
        if not holding_days:
            return (0.0,) * 6
        days = np.array(holding_days, dtype=float)
        q1, median, q3 = np.percentile(days, [25, 50, 75])
        return (
            float(days.mean()),
            float(days.min()),
            float(q1),
            float(median),
            float(q3),
            float(days.max()),
        )
