# stocklab/core/patterns.py
"""
Chart pattern recognition on raw price bars.

Detectors here work directly on bar geometry and are independent of the
strategy registry. The breakout strategies consume their event indices.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..models.config import CupWithHandleConfig
from ..models.market_data import PriceBar
from ..models.patterns import (
    CupFormingPattern,
    CupGeometry,
    FormingStage,
    MarketSentiment,
    PatternEvent,
    PatternType,
    Sentiment,
)
from .indicators import bollinger_bands


logger = logging.getLogger(__name__)

BB_PERIOD = 25
NEAR_LOWER_BAND_RATIO = 1.10
UPTREND_MA_SHORT = 50
UPTREND_MA_LONG = 200
FORMING_MIN_PULLBACK = 0.005
HANDLE_READY_DISTANCE = 0.05
SENTIMENT_MA_PERIOD = 25
SENTIMENT_THRESHOLD_PCT = 1.0

# Filters used by the cup-with-handle breakout strategies.
BREAKOUT_CONFIG = CupWithHandleConfig(
    breakout_volume_ratio=1.5,
    require_52_week_high=True,
    require_uptrend=True,
)


def find_peaks(bars: Sequence[PriceBar], window: int, last_index: int) -> List[int]:
    """
    Indices whose high is not exceeded by any bar within `window` on either side.

    Args:
        bars: Price bars
        window: Bars on each side
        last_index: Largest candidate index (inclusive)

    Returns:
        Ascending list of peak indices
    """
    n = len(bars)
    highs = np.array([b.high for b in bars], dtype=float)
    peaks = []
    for i in range(window, last_index + 1):
        lo = max(0, i - window)
        hi = min(n - 1, i + window)
        if highs[lo:hi + 1].max() <= highs[i]:
            peaks.append(i)
    return peaks


def _in_uptrend(bars: Sequence[PriceBar], left: int) -> bool:
    """Left rim above MA50 and MA50 above MA200, measured before the rim."""
    if left < UPTREND_MA_LONG:
        return True
    closes = np.array([b.close for b in bars[left - UPTREND_MA_LONG:left]], dtype=float)
    ma50 = closes[-UPTREND_MA_SHORT:].mean()
    ma200 = closes.mean()
    return not (bars[left].high < ma50 or ma50 <= ma200)


def _measure_cup(
    bars: Sequence[PriceBar],
    left: int,
    right: int,
    config: CupWithHandleConfig
) -> Optional[Tuple[int, float, float]]:
    """
    Validate rim similarity, depth and bottom position of a candidate cup.

    Returns:
        (bottom_idx, bottom_low, depth) or None when the cup does not qualify
    """
    cup_days = right - left
    if cup_days < config.cup_min_days or cup_days > config.cup_max_days:
        return None

    left_high = bars[left].high
    right_high = bars[right].high

    if config.require_uptrend and not _in_uptrend(bars, left):
        return None

    rim_diff = abs(left_high - right_high) / max(left_high, right_high)
    if rim_diff > config.rim_tolerance:
        return None

    bottom_idx = left + 1
    bottom_low = float('inf')
    for j in range(left + 1, right):
        if bars[j].low < bottom_low:
            bottom_low = bars[j].low
            bottom_idx = j

    rim_level = max(left_high, right_high)
    depth = (rim_level - bottom_low) / rim_level
    if depth < config.cup_min_depth or depth > config.cup_max_depth:
        return None

    bottom_pos = (bottom_idx - left) / cup_days
    if bottom_pos < config.bottom_min_position or bottom_pos > config.bottom_max_position:
        return None

    return bottom_idx, bottom_low, depth


def _passes_breakout_filters(
    bars: Sequence[PriceBar],
    h: int,
    config: CupWithHandleConfig
) -> bool:
    if config.breakout_volume_ratio is not None:
        start = max(0, h - config.volume_lookback)
        avg_volume = float(np.mean([b.volume for b in bars[start:h]])) if h > start else 0.0
        if avg_volume > 0 and bars[h].volume < avg_volume * config.breakout_volume_ratio:
            return False

    if config.require_52_week_high:
        start = max(0, h - config.high_lookback)
        high_52w = max((b.high for b in bars[start:h]), default=0.0)
        if bars[h].close < high_52w:
            return False

    return True


def detect_cup_with_handle(
    bars: Sequence[PriceBar],
    config: Optional[CupWithHandleConfig] = None
) -> List[PatternEvent]:
    """
    Detect cup-with-handle breakouts.

    A cup is a pair of local peaks of similar height around a rounded bottom.
    The handle is a shallow pullback after the right rim, and the breakout is
    the first bullish bar closing above the right rim high.

    Args:
        bars: Ascending price bars
        config: Geometry thresholds and optional breakout filters

    Returns:
        Breakout events in index order, deduplicated so that kept events are
        more than `dedup_bars` apart
    """
    config = config or CupWithHandleConfig()
    n = len(bars)
    if n < config.min_bars:
        return []

    peaks = find_peaks(bars, config.peak_window, n - 2)
    events: List[PatternEvent] = []

    for p1, left in enumerate(peaks):
        for right in peaks[p1 + 1:]:
            measured = _measure_cup(bars, left, right, config)
            if measured is None:
                continue
            bottom_idx, bottom_low, depth = measured

            right_high = bars[right].high
            search_end = min(right + config.handle_max_days, n - 1)
            handle_low = float('inf')

            for h in range(right + 1, search_end + 1):
                bar = bars[h]
                handle_low = min(handle_low, bar.low)
                if h - right < config.handle_min_days:
                    continue

                pullback = (right_high - handle_low) / right_high
                if pullback > config.handle_max_pullback:
                    break
                if pullback < config.handle_min_pullback:
                    continue

                if bar.close > right_high and bar.close > bar.open:
                    if not _passes_breakout_filters(bars, h, config):
                        continue

                    cup_days = right - left
                    cup = CupGeometry(
                        left_rim_idx=left,
                        bottom_idx=bottom_idx,
                        right_rim_idx=right,
                        left_rim_high=bars[left].high,
                        bottom_low=bottom_low,
                        right_rim_high=right_high,
                        cup_days=cup_days,
                        depth_pct=depth * 100,
                        handle_days=h - right,
                        pullback_pct=pullback * 100,
                    )
                    events.append(PatternEvent(
                        index=h,
                        date=bar.date,
                        price=bar.close,
                        type=PatternType.CUP_WITH_HANDLE,
                        label="CWH",
                        description=(
                            f"cup {cup_days} bars, depth {depth * 100:.0f}%, "
                            f"handle pullback {pullback * 100:.1f}%"
                        ),
                        cup=cup,
                    ))
                    break

    events.sort(key=lambda e: e.index)
    deduped: List[PatternEvent] = []
    for event in events:
        if not deduped or event.index - deduped[-1].index > config.dedup_bars:
            deduped.append(event)

    logger.debug(f"Cup-with-handle: {len(peaks)} peaks, {len(events)} raw events, {len(deduped)} kept")
    return deduped


def detect_cup_with_handle_forming(
    bars: Sequence[PriceBar],
    config: Optional[CupWithHandleConfig] = None
) -> List[CupFormingPattern]:
    """
    Detect a completed cup whose handle is still forming.

    Only the pattern closest to its breakout price is returned.
    """
    config = config or CupWithHandleConfig()
    n = len(bars)
    if n < config.min_bars:
        return []

    last_idx = n - 1
    peaks = find_peaks(bars, config.peak_window, n - config.peak_window - 1)
    current_price = bars[last_idx].close
    results: List[CupFormingPattern] = []

    for p1, left in enumerate(peaks):
        for right in peaks[p1 + 1:]:
            if last_idx - right > config.handle_max_days:
                continue
            measured = _measure_cup(bars, left, right, config)
            if measured is None:
                continue
            bottom_idx, bottom_low, depth = measured

            if right >= last_idx:
                continue
            handle_low = min(b.low for b in bars[right + 1:])
            right_high = bars[right].high

            pullback = (right_high - handle_low) / right_high
            if pullback > config.handle_max_pullback:
                continue
            if current_price > right_high:
                continue
            if pullback < FORMING_MIN_PULLBACK:
                continue

            distance = (right_high - current_price) / right_high
            if distance < HANDLE_READY_DISTANCE and current_price > handle_low:
                stage = FormingStage.HANDLE_READY
            else:
                stage = FormingStage.HANDLE_FORMING

            handle_days = last_idx - right
            cup = CupGeometry(
                left_rim_idx=left,
                bottom_idx=bottom_idx,
                right_rim_idx=right,
                left_rim_high=bars[left].high,
                bottom_low=bottom_low,
                right_rim_high=right_high,
                cup_days=right - left,
                depth_pct=depth * 100,
                handle_days=handle_days,
                pullback_pct=pullback * 100,
            )
            results.append(CupFormingPattern(
                cup=cup,
                current_price=current_price,
                handle_days=handle_days,
                pullback_pct=pullback * 100,
                breakout_price=right_high,
                distance_to_breakout_pct=distance * 100,
                cup_depth_pct=depth * 100,
                cup_days=right - left,
                left_rim_date=bars[left].date,
                right_rim_date=bars[right].date,
                bottom_date=bars[bottom_idx].date,
                stage=stage,
            ))

    if len(results) <= 1:
        return results
    return [min(results, key=lambda r: r.distance_to_breakout_pct)]


def detect_bb_reversal(bars: Sequence[PriceBar]) -> List[PatternEvent]:
    """Bullish candle after a close below the -2 sigma band."""
    lower2 = bollinger_bands(bars, BB_PERIOD).lower2
    events = []
    below_band = False

    for i in range(1, len(bars)):
        if np.isnan(lower2[i]):
            continue
        bar = bars[i]
        if bar.close < lower2[i]:
            below_band = True
            continue

        if below_band and bar.is_bullish:
            events.append(PatternEvent(
                index=i,
                date=bar.date,
                price=bar.low,
                type=PatternType.BB_REVERSAL,
                label="BB reversal",
                description=f"bullish candle after -2σ break (close {bar.close:,.2f})",
            ))
            below_band = False

        if bar.close > lower2[i]:
            below_band = False

    return events


def is_gap_down_reversal(bars: Sequence[PriceBar], i: int, lower2: float) -> bool:
    """
    Gap down into two bearish candles near the -2 sigma band.

    The bar before i opens below the low two bars back, both it and bar i
    close below their opens, and bar i closes within 10% above lower2.
    """
    if i < 2 or np.isnan(lower2):
        return False
    gap_bar = bars[i - 1]
    return (
        gap_bar.open < bars[i - 2].low
        and gap_bar.is_bearish
        and bars[i].is_bearish
        and bars[i].close <= lower2 * NEAR_LOWER_BAND_RATIO
    )


def detect_gap_down_reversal(bars: Sequence[PriceBar]) -> List[PatternEvent]:
    lower2 = bollinger_bands(bars, BB_PERIOD).lower2
    events = []
    for i in range(2, len(bars)):
        if is_gap_down_reversal(bars, i, lower2[i]):
            bar = bars[i]
            events.append(PatternEvent(
                index=i,
                date=bar.date,
                price=bar.low,
                type=PatternType.GAP_DOWN_REVERSAL,
                label="Gap-down reversal",
                description=f"gap down with two bearish candles near -2σ (close {bar.close:,.2f})",
            ))
    return events


def detect_buy_signals(bars: Sequence[PriceBar]) -> List[PatternEvent]:
    """
    All reversal buy signals, ordered by index with one signal per date.

    Returns an empty list for fewer than 25 bars.
    """
    if len(bars) < BB_PERIOD:
        return []

    combined = detect_bb_reversal(bars) + detect_gap_down_reversal(bars)
    combined.sort(key=lambda e: e.index)

    seen = set()
    unique = []
    for event in combined:
        if event.date in seen:
            continue
        seen.add(event.date)
        unique.append(event)
    return unique


def detect_market_sentiment(bars: Sequence[PriceBar]) -> Optional[MarketSentiment]:
    """Latest close against its 25-bar average; None with fewer than 25 bars."""
    if len(bars) < SENTIMENT_MA_PERIOD:
        return None

    last = bars[-1]
    ma25 = float(np.mean([b.close for b in bars[-SENTIMENT_MA_PERIOD:]]))
    diff = last.close - ma25
    diff_pct = diff / ma25 * 100

    if diff_pct > SENTIMENT_THRESHOLD_PCT:
        sentiment = Sentiment.BULLISH
    elif diff_pct < -SENTIMENT_THRESHOLD_PCT:
        sentiment = Sentiment.BEARISH
    else:
        sentiment = Sentiment.NEUTRAL

    return MarketSentiment(
        sentiment=sentiment,
        price=last.close,
        ma25=round(ma25, 2),
        diff=round(diff, 2),
        diff_pct=round(diff_pct, 2),
    )
