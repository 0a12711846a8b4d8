# stocklab/core/signal_scanner.py
"""
Open-position and recent-signal scanning over strategy signal sequences.
"""

import datetime as dt
import logging
from typing import Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np

from ..models.config import ScannerConfig
from ..models.market_data import PriceBar
from ..models.signals import (
    ActivePosition,
    ActiveSignalInfo,
    ExitLevels,
    PeriodType,
    RecentSignalInfo,
    ScanResult,
    Signal,
    SignalAction,
    SignalPoint,
    StrategyParams,
)
from ..strategies.oscillator import rsi_stop_level
from ..strategies.presets import PresetTable, get_preset_params
from ..strategies.registry import StrategyRegistry
from ..strategies.trend import MACDTrailStrategy, TrailingExit, crossed_above
from . import indicators


logger = logging.getLogger(__name__)

SIGNAL_LABELS = {
    "rsi_reversal": ("RSI buy", "RSI take profit", "RSI stop"),
    "ma_cross": ("GC", "DC", "DC"),
    "macd_signal": ("MACD buy", "MACD take profit", "MACD stop"),
    "macd_trail": ("MACD buy", "Trail take profit", "Trail stop"),
}
DEFAULT_LABELS = ("Buy", "Take profit", "Stop loss")


def _round2(value: float) -> float:
    return round(float(value), 2)


def find_active_position(
    bars: Sequence[PriceBar],
    signals: Sequence[Signal]
) -> Optional[ActivePosition]:
    """
    Most recent buy that no later sell has closed.

    A buy opens a position only while flat and a sell closes it only while
    long, matching all-in-out execution.
    """
    in_position = False
    last_buy = -1

    for i, signal in enumerate(signals):
        if signal == Signal.BUY and not in_position:
            in_position = True
            last_buy = i
        elif signal == Signal.SELL and in_position:
            in_position = False

    if not in_position or last_buy < 0:
        return None
    bar = bars[last_buy]
    return ActivePosition(buy_date=bar.date, buy_price=bar.close, buy_index=last_buy)


def find_recent_buy_signals(
    bars: Sequence[PriceBar],
    signals: Sequence[Signal],
    lookback_days: int,
    as_of: Optional[dt.date] = None
) -> List[SignalPoint]:
    """
    Buy signals dated within lookback_days of as_of, most recent first.

    Args:
        bars: Price bars
        signals: One signal per bar
        lookback_days: Calendar-day window
        as_of: Reference date; the last bar's date when omitted

    Returns:
        Buy markers with prices rounded to 2 decimals
    """
    if not bars:
        return []

    reference = as_of or bars[-1].date
    cutoff = reference - dt.timedelta(days=lookback_days)
    results = []

    for i in range(len(signals) - 1, -1, -1):
        bar = bars[i]
        if bar.date < cutoff:
            break
        if signals[i] == Signal.BUY:
            results.append(SignalPoint(
                index=i,
                date=bar.date,
                price=_round2(bar.close),
                action=SignalAction.BUY,
            ))
    return results


def lookback_days_for(period_type: Union[PeriodType, str], config: Optional[ScannerConfig] = None) -> int:
    """Recent-signal window for a bar period."""
    config = config or ScannerConfig()
    if PeriodType(period_type) == PeriodType.WEEKLY:
        return config.weekly_lookback_days
    return config.daily_lookback_days


def get_exit_levels(
    strategy_id: str,
    bars: Sequence[PriceBar],
    buy_index: int,
    buy_price: float,
    params: Mapping[str, float]
) -> ExitLevels:
    """
    Take-profit and stop-loss levels for an open position.

    Strategies whose exits are indicator crossovers only carry a label.
    Unknown strategies get empty levels.
    """
    if strategy_id == "choruko_bb":
        middle = indicators.bollinger_bands(bars, 25).middle
        current_ma25 = middle[-1] if len(middle) else np.nan
        return ExitLevels(
            take_profit_price=None if np.isnan(current_ma25) else _round2(current_ma25),
            take_profit_label="MA25 touch",
            stop_loss_price=_round2(bars[buy_index].low),
            stop_loss_label="Close below entry low",
        )

    if strategy_id == "choruko_shitabanare":
        gap_upper = bars[buy_index - 2].low if buy_index >= 2 else None
        return ExitLevels(
            take_profit_price=None if gap_upper is None else _round2(gap_upper),
            take_profit_label="Gap filled",
            stop_loss_price=_round2(bars[buy_index].low),
            stop_loss_label="Close below entry low",
        )

    if strategy_id == "tabata_cwh":
        tp = params.get("takeProfitPct", 20)
        sl = params.get("stopLossPct", 8)
        return ExitLevels(
            take_profit_price=_round2(buy_price * (1 + tp / 100)),
            take_profit_label=f"+{tp:g}%",
            stop_loss_price=_round2(buy_price * (1 - sl / 100)),
            stop_loss_label=f"-{sl:g}%",
        )

    if strategy_id == "ma_cross":
        short = params.get("shortPeriod", 5)
        long = params.get("longPeriod", 25)
        return ExitLevels(stop_loss_label=f"Sell on MA{short:g}/MA{long:g} dead cross")

    if strategy_id == "macd_signal":
        sp = params.get("shortPeriod", 12)
        lp = params.get("longPeriod", 26)
        sig = params.get("signalPeriod", 9)
        return ExitLevels(stop_loss_label=f"Sell on MACD({sp:g},{lp:g},{sig:g}) dead cross")

    if strategy_id == "rsi_reversal":
        overbought = params.get("overbought", 70)
        atr_period = int(params.get("atrPeriod", 14))
        atr_multiple = params.get("atrMultiple", 2)
        stop_pct = params.get("stopLossPct", 10)

        atr_values = indicators.atr(bars, atr_period)
        atr_at_entry = atr_values[buy_index] if buy_index < len(atr_values) else np.nan
        stop_price = rsi_stop_level(buy_price, atr_at_entry, atr_multiple, stop_pct)
        pct_stop = buy_price * (1 - stop_pct / 100)
        if not np.isnan(atr_at_entry) and buy_price - atr_at_entry * atr_multiple >= pct_stop:
            stop_label = f"ATR({atr_period})x{atr_multiple:g} = -{(buy_price - stop_price) / buy_price * 100:.1f}%"
        else:
            stop_label = f"-{stop_pct:g}%"
        return ExitLevels(
            take_profit_label=f"Take profit at RSI > {overbought:g}",
            stop_loss_price=_round2(stop_price),
            stop_loss_label=f"Stop: {stop_label}",
        )

    if strategy_id == "dip_buy":
        recovery = params.get("recoveryPct", 15)
        stop_pct = params.get("stopLossPct", 15)
        return ExitLevels(
            take_profit_price=_round2(buy_price * (1 + recovery / 100)),
            take_profit_label=f"+{recovery:g}% recovery",
            stop_loss_price=_round2(buy_price * (1 - stop_pct / 100)),
            stop_loss_label=f"-{stop_pct:g}%",
        )

    if strategy_id in ("macd_trail", "cwh_trail"):
        trail = params.get("trailPct", 12)
        stop_pct = params.get("stopLossPct", 5)
        return ExitLevels(
            take_profit_label=f"Trailing stop {trail:g}% from highest close",
            stop_loss_price=_round2(buy_price * (1 - stop_pct / 100)),
            stop_loss_label=f"-{stop_pct:g}% initial stop",
        )

    if strategy_id == "dip_bb3sigma":
        stop_pct = params.get("stopLossPct", 5)
        lower2 = indicators.bollinger_bands(bars, 25).lower2
        current_lower2 = lower2[-1] if len(lower2) else np.nan
        return ExitLevels(
            take_profit_price=None if np.isnan(current_lower2) else _round2(current_lower2),
            take_profit_label="Back to BB -2σ",
            stop_loss_price=_round2(buy_price * (1 - stop_pct / 100)),
            stop_loss_label=f"-{stop_pct:g}%",
        )

    return ExitLevels()


def extract_signal_points(
    strategy_id: str,
    bars: Sequence[PriceBar],
    signals: Sequence[Signal]
) -> List[SignalPoint]:
    """
    Chart markers for a signal sequence.

    Sells are take-profit when the close is at or above the entry close and
    stop-loss otherwise; moving-average cross sells are dead crosses.
    """
    buy_label, tp_label, sl_label = SIGNAL_LABELS.get(strategy_id, DEFAULT_LABELS)
    points: List[SignalPoint] = []
    last_buy_price = 0.0

    for i, signal in enumerate(signals):
        bar = bars[i]
        if signal == Signal.BUY:
            last_buy_price = bar.close
            points.append(SignalPoint(index=i, date=bar.date, price=bar.close, action=SignalAction.BUY, label=buy_label))
        elif signal == Signal.SELL and last_buy_price > 0:
            if strategy_id == "ma_cross":
                action, label = SignalAction.DEAD_CROSS, "DC"
            elif bar.close >= last_buy_price:
                action, label = SignalAction.TAKE_PROFIT, tp_label
            else:
                action, label = SignalAction.STOP_LOSS, sl_label
            points.append(SignalPoint(index=i, date=bar.date, price=bar.close, action=action, label=label))
            last_buy_price = 0.0

    return points


def trail_stop_levels(bars: Sequence[PriceBar], params: Optional[Mapping[str, float]] = None) -> np.ndarray:
    """
    Per-bar trailing stop of the MACD trailing strategy while a position is open.

    NaN where no position is held.
    """
    strategy = MACDTrailStrategy()
    resolved: StrategyParams = strategy.resolve_params(params)
    result = indicators.macd(
        bars,
        int(resolved["shortPeriod"]),
        int(resolved["longPeriod"]),
        int(resolved["signalPeriod"]),
    )
    exit_rule = TrailingExit(resolved["trailPct"], resolved["stopLossPct"])
    levels = np.full(len(bars), np.nan)
    in_position = False

    for i, bar in enumerate(bars):
        if not in_position:
            if crossed_above(result.macd, result.signal, i):
                in_position = True
                exit_rule.enter(bar.close)
                levels[i] = _round2(exit_rule.level())
        else:
            exited = exit_rule.update(bar.close)
            levels[i] = _round2(exit_rule.level())
            if exited:
                in_position = False
    return levels


def detect_signals_from_data(
    bars: Sequence[PriceBar],
    period_type: Union[PeriodType, str],
    registry: StrategyRegistry,
    strategy_ids: Optional[Iterable[str]] = None,
    preset: str = "optimized",
    presets: Optional[PresetTable] = None,
    config: Optional[ScannerConfig] = None,
    as_of: Optional[dt.date] = None
) -> ScanResult:
    """
    Open positions and recent buys for every scanned strategy.

    Args:
        bars: Price bars of one symbol
        period_type: Bar period, selects presets and the lookback window
        registry: Strategy table
        strategy_ids: Strategies to scan; configured defaults when omitted
        preset: "default" or "optimized"
        presets: Preset table; built-in when omitted
        config: Scanner configuration
        as_of: Reference date for the recent window

    Returns:
        ScanResult with prices and P&L rounded to 2 decimals
    """
    config = config or ScannerConfig()
    if not bars:
        return ScanResult()

    ids = list(strategy_ids) if strategy_ids is not None else config.strategy_ids
    lookback = lookback_days_for(period_type, config)
    current_price = bars[-1].close
    active: List[ActiveSignalInfo] = []
    recent: List[RecentSignalInfo] = []

    for strategy_id in ids:
        if strategy_id not in registry:
            logger.warning(f"Skipping unregistered strategy '{strategy_id}'")
            continue
        strategy = registry.get(strategy_id)
        params = get_preset_params(strategy, preset, period_type, presets)
        signals = strategy.compute(bars, params)

        position = find_active_position(bars, signals)
        if position is not None:
            pnl_pct = (current_price - position.buy_price) / position.buy_price * 100
            active.append(ActiveSignalInfo(
                strategy_id=strategy_id,
                strategy_name=strategy.name,
                buy_date=position.buy_date,
                buy_price=_round2(position.buy_price),
                current_price=_round2(current_price),
                pnl_pct=_round2(pnl_pct),
                exit_levels=get_exit_levels(strategy_id, bars, position.buy_index, position.buy_price, params),
            ))

        for point in find_recent_buy_signals(bars, signals, lookback, as_of):
            recent.append(RecentSignalInfo(
                strategy_id=strategy_id,
                strategy_name=strategy.name,
                date=point.date,
                price=point.price,
            ))

    logger.debug(f"Scan: {len(active)} open positions, {len(recent)} recent buys over {len(ids)} strategies")
    return ScanResult(active=active, recent=recent)
