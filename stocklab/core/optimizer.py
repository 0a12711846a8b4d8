# stocklab/core/optimizer.py
"""
Parameter grids, in-sample sweeps, walk-forward analysis and stability scoring.

Every unit of work is a pure compute -> backtest -> stats call, so units are
fanned out over a bounded process pool and gathered into one list. Nothing
is shared between workers.
"""

import datetime as dt
import itertools
import logging
import math
import re
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from pydantic import BaseModel, Field
from tqdm import tqdm

from ..models.config import OptimizerConfig
from ..models.market_data import PriceBar
from ..models.signals import StrategyParam
from ..strategies.base_strategy import BaseStrategy
from ..strategies.registry import StrategyRegistry
from .backtest_engine import DEFAULT_INITIAL_CAPITAL, run_backtest


logger = logging.getLogger(__name__)

PROFIT_FACTOR_CAP = 5.0
NO_LOSS_PROFIT_FACTOR = 999.0
ORDERED_PAIRS = (("shortPeriod", "longPeriod"), ("entryKairi", "exitKairi"))

KEY_ABBREVIATIONS = (
    ("short", "S"), ("long", "L"), ("signal", "Sig"), ("oversold", "OS"),
    ("overbought", "OB"), ("entry", "E"), ("exit", "X"), ("recovery", "Rec"),
    ("dip", "Dip"), ("trail", "Tr"), ("stopLoss", "SL"), ("takeProfit", "TP"),
    ("atr", "ATR"), ("volume", "Vol"), ("rsi", "RSI"), ("monthly", "Mon"),
    ("timeStop", "TS"),
)


class ParamCombo(BaseModel):
    """One point of a parameter grid."""
    key: str = Field(..., description="Short label such as S5/L25")
    params: Dict[str, float] = Field(default_factory=dict, description="Parameter values")


class SweepTask(BaseModel):
    """One symbol x strategy x parameter combination."""
    index: int = Field(..., description="Position in the task list")
    symbol: str = Field(..., description="Series identifier")
    strategy: Any = Field(..., description="Strategy instance")
    combo: ParamCombo = Field(..., description="Parameters under test")
    bars: List[PriceBar] = Field(..., description="Price series")
    initial_capital: float = Field(default=DEFAULT_INITIAL_CAPITAL, description="Starting capital")


class SweepRecord(BaseModel):
    """Backtest outcome of one sweep task."""
    index: int
    symbol: str
    strategy_id: str
    param_key: str
    params: Dict[str, float]
    total_return_pct: float
    win_rate: float
    num_trades: int
    num_wins: int
    num_losses: int
    max_drawdown_pct: float
    sharpe_ratio: float
    profit_factor: float


class RankedCombo(BaseModel):
    """Pooled sweep results of one parameter combination across symbols."""
    strategy_id: str
    param_key: str
    params: Dict[str, float]
    total_trades: int
    total_wins: int
    total_losses: int
    total_return_pct: float = Field(..., description="Sum of per-symbol return percentages")
    win_rate: float
    score: float


class WalkForwardWindow(BaseModel):
    """Train/test calendar split."""
    id: int
    train_start: dt.date
    train_end: dt.date
    test_start: dt.date
    test_end: dt.date
    train_label: str
    test_label: str


class WalkForwardTask(BaseModel):
    """One strategy x window x combination over every symbol."""
    index: int
    strategy: Any
    window: WalkForwardWindow
    combo: ParamCombo
    slices: List[Tuple[List[PriceBar], List[PriceBar]]] = Field(..., description="(train, test) bars per symbol")
    initial_capital: float = DEFAULT_INITIAL_CAPITAL
    min_train_bars: int = 30
    min_test_bars: int = 20


class WalkForwardRecord(BaseModel):
    """Median out-of-sample results of a combination in one window."""
    index: int
    strategy_id: str
    strategy_name: str
    param_key: str
    params: Dict[str, float]
    window_id: int
    train_label: str
    test_label: str
    train_return: float
    test_return: float
    test_win_rate: float
    test_trades: int
    test_max_drawdown: float
    test_sharpe: float


class StabilityScore(BaseModel):
    """Cross-window stability of one parameter combination."""
    strategy_id: str
    strategy_name: str
    param_key: str
    params: Dict[str, float]
    test_return_median: float
    test_return_min: float
    test_return_std: float
    train_return_median: float
    overfit_degree: float
    composite_score: float
    window_returns: List[float]


# ---------------------------------------------------------------------------
# Statistics helpers


def median(values: Sequence[float]) -> float:
    """Median, 0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return float(np.median(values))


def stddev(values: Sequence[float]) -> float:
    """Sample standard deviation, 0 with fewer than two values."""
    if len(values) < 2:
        return 0.0
    return float(np.std(values, ddof=1))


def normalize(values: Sequence[float], higher_is_better: bool) -> List[float]:
    """Min-max scale to [0, 1]; all 0.5 when every value is equal."""
    lo, hi = min(values), max(values)
    if hi == lo:
        return [0.5] * len(values)
    span = hi - lo
    if higher_is_better:
        return [(v - lo) / span for v in values]
    return [(hi - v) / span for v in values]


def rank_score(num_wins: int, num_losses: int, total_return_pct: float, min_trades: int = 3) -> float:
    """
    In-sample ranking score.

    win rate + min(wins/losses, 5) * 2 + clamp(return, 0, 100) * 0.1, with
    -inf below min_trades round trips.
    """
    trades = num_wins + num_losses
    if trades < min_trades:
        return -math.inf
    win_rate = num_wins / trades * 100 if trades else 0.0
    pf = num_wins / num_losses if num_losses > 0 else NO_LOSS_PROFIT_FACTOR
    return win_rate + min(pf, PROFIT_FACTOR_CAP) * 2 + min(max(total_return_pct, 0.0), 100.0) * 0.1


# ---------------------------------------------------------------------------
# Parameter grids


def max_values_per_param(num_params: int) -> int:
    if num_params <= 2:
        return 8
    if num_params <= 4:
        return 5
    return 4


def generate_values(param: StrategyParam, max_count: int) -> List[float]:
    """
    Values from min to max by step, subsampled to about max_count values.

    Subsampling always keeps min, max and the default (when in range).
    """
    lo = param.min if param.min is not None else param.default
    hi = param.max if param.max is not None else param.default
    step = param.step or 1

    count = int(math.floor((hi - lo) / step + 1e-3)) + 1
    all_values = [round(lo + i * step, 3) for i in range(max(count, 1))]
    if len(all_values) <= max_count:
        return all_values

    picked = {all_values[0], all_values[-1]}
    default = round(param.default, 3)
    if lo <= default <= hi:
        picked.add(default)
    for i in range(1, max_count - 1):
        picked.add(all_values[round(i * (len(all_values) - 1) / (max_count - 1))])
    return sorted(picked)


def _abbreviate(key: str) -> str:
    short = re.sub(r"Period|Pct|Multiple|Threshold", "", key)
    for word, abbr in KEY_ABBREVIATIONS:
        short = short.replace(word, abbr, 1)
    return short


def combo_key(strategy: BaseStrategy, params: Mapping[str, float]) -> str:
    """Short label like S5/L25 in schema order."""
    if not strategy.params:
        return "default"
    return "/".join(f"{_abbreviate(p.key)}{params[p.key]:g}" for p in strategy.params)


def generate_param_grid(strategy: BaseStrategy) -> List[ParamCombo]:
    """
    Cartesian grid over the strategy's parameter schema.

    Combinations with shortPeriod >= longPeriod or entryKairi >= exitKairi are
    dropped. Strategies without parameters yield a single default combo.
    """
    if not strategy.params:
        return [ParamCombo(key="default", params={})]

    max_count = max_values_per_param(len(strategy.params))
    keys = [p.key for p in strategy.params]
    value_lists = [generate_values(p, max_count) for p in strategy.params]

    combos = []
    for values in itertools.product(*value_lists):
        params = dict(zip(keys, values))
        if any(a in params and b in params and params[a] >= params[b] for a, b in ORDERED_PAIRS):
            continue
        combos.append(ParamCombo(key=combo_key(strategy, params), params=params))
    return combos


# ---------------------------------------------------------------------------
# Execution


def _run_tasks(func: Callable, tasks: Sequence[Any], max_workers: int, desc: str) -> List[Any]:
    """
    Evaluate tasks, in a process pool when max_workers > 1.

    Results are returned in task order.
    """
    results: List[Any] = [None] * len(tasks)
    if not tasks:
        return []

    with tqdm(total=len(tasks), desc=desc, disable=len(tasks) < 2) as pbar:
        if max_workers <= 1:
            for i, task in enumerate(tasks):
                results[i] = func(task)
                pbar.update(1)
        else:
            with ProcessPoolExecutor(max_workers=max_workers) as executor:
                futures = {executor.submit(func, task): i for i, task in enumerate(tasks)}
                for future in as_completed(futures):
                    results[futures[future]] = future.result()
                    pbar.update(1)
    return results


def evaluate_task(task: SweepTask) -> SweepRecord:
    """Backtest one sweep task."""
    result = run_backtest(task.bars, task.strategy, task.combo.params, task.initial_capital)
    stats = result.stats
    return SweepRecord(
        index=task.index,
        symbol=task.symbol,
        strategy_id=task.strategy.id,
        param_key=task.combo.key,
        params=task.combo.params,
        total_return_pct=stats.total_return_pct,
        win_rate=stats.win_rate,
        num_trades=stats.num_trades,
        num_wins=stats.num_wins,
        num_losses=stats.num_losses,
        max_drawdown_pct=stats.max_drawdown_pct,
        sharpe_ratio=stats.sharpe_ratio,
        profit_factor=stats.profit_factor,
    )


def _resolve_strategies(registry: StrategyRegistry, strategy_ids: Optional[Iterable[str]]) -> List[BaseStrategy]:
    if strategy_ids is None:
        return [s for s in registry if s.id != "dca"]
    return [registry.get(sid) for sid in strategy_ids]


def run_parameter_sweep(
    datasets: Mapping[str, Sequence[PriceBar]],
    registry: StrategyRegistry,
    strategy_ids: Optional[Iterable[str]] = None,
    initial_capital: float = DEFAULT_INITIAL_CAPITAL,
    max_workers: int = 1
) -> List[SweepRecord]:
    """
    Backtest every grid combination of every strategy on every symbol.

    Args:
        datasets: Symbol -> price bars
        registry: Strategy table
        strategy_ids: Strategies to sweep; every registered strategy except dca when omitted
        initial_capital: Starting capital per backtest
        max_workers: Worker processes; <= 1 runs inline

    Returns:
        One record per task, in task order
    """
    tasks: List[SweepTask] = []
    for strategy in _resolve_strategies(registry, strategy_ids):
        for combo in generate_param_grid(strategy):
            for symbol, bars in datasets.items():
                tasks.append(SweepTask(
                    index=len(tasks),
                    symbol=symbol,
                    strategy=strategy,
                    combo=combo,
                    bars=list(bars),
                    initial_capital=initial_capital,
                ))

    logger.info(f"Parameter sweep: {len(tasks)} tasks over {len(datasets)} symbols, {max_workers} workers")
    return _run_tasks(evaluate_task, tasks, max_workers, "Sweep")


def rank_combos(records: Iterable[SweepRecord], min_trades: int = 3) -> List[RankedCombo]:
    """
    Pool sweep records per strategy and combination and rank by score.

    Returns:
        Ranked combos, best first within each strategy; strategies keep their
        first-seen order
    """
    pooled: Dict[Tuple[str, str], Dict[str, Any]] = {}
    for r in records:
        entry = pooled.setdefault((r.strategy_id, r.param_key), {
            "params": r.params, "wins": 0, "losses": 0, "ret": 0.0,
        })
        entry["wins"] += r.num_wins
        entry["losses"] += r.num_losses
        entry["ret"] += r.total_return_pct

    ranked: Dict[str, List[RankedCombo]] = {}
    for (strategy_id, param_key), entry in pooled.items():
        trades = entry["wins"] + entry["losses"]
        ranked.setdefault(strategy_id, []).append(RankedCombo(
            strategy_id=strategy_id,
            param_key=param_key,
            params=entry["params"],
            total_trades=trades,
            total_wins=entry["wins"],
            total_losses=entry["losses"],
            total_return_pct=entry["ret"],
            win_rate=entry["wins"] / trades * 100 if trades else 0.0,
            score=rank_score(entry["wins"], entry["losses"], entry["ret"], min_trades),
        ))

    result: List[RankedCombo] = []
    for combos in ranked.values():
        result.extend(sorted(combos, key=lambda c: c.score, reverse=True))
    return result


# ---------------------------------------------------------------------------
# Walk-forward


def generate_wf_windows(
    start_year: int,
    end_year: int,
    train_years: int = 3,
    test_years: int = 1
) -> List[WalkForwardWindow]:
    """Windows sliding by one year from start_year while the test fits in end_year."""
    windows = []
    year = start_year
    while year + train_years + test_years - 1 <= end_year:
        train_end = year + train_years - 1
        test_start = train_end + 1
        test_end = test_start + test_years - 1
        windows.append(WalkForwardWindow(
            id=len(windows) + 1,
            train_start=dt.date(year, 1, 1),
            train_end=dt.date(train_end, 12, 31),
            test_start=dt.date(test_start, 1, 1),
            test_end=dt.date(test_end, 12, 31),
            train_label=str(year) if train_years == 1 else f"{year}-{train_end}",
            test_label=str(test_start) if test_years == 1 else f"{test_start}-{test_end}",
        ))
        year += 1
    return windows


def slice_bars(bars: Sequence[PriceBar], start: dt.date, end: dt.date) -> List[PriceBar]:
    """Bars dated within [start, end]."""
    return [b for b in bars if start <= b.date <= end]


def evaluate_window_task(task: WalkForwardTask) -> Optional[WalkForwardRecord]:
    """
    Train and test one combination on every symbol of one window.

    Returns None when no symbol has a usable test slice.
    """
    train_returns, test_returns = [], []
    win_rates, trades, drawdowns, sharpes = [], [], [], []

    for train, test in task.slices:
        if len(train) < task.min_train_bars:
            continue
        train_result = run_backtest(train, task.strategy, task.combo.params, task.initial_capital)
        train_returns.append(train_result.stats.total_return_pct)

        if len(test) >= task.min_test_bars:
            stats = run_backtest(test, task.strategy, task.combo.params, task.initial_capital).stats
            test_returns.append(stats.total_return_pct)
            win_rates.append(stats.win_rate)
            trades.append(stats.num_trades)
            drawdowns.append(stats.max_drawdown_pct)
            sharpes.append(stats.sharpe_ratio)

    if not test_returns:
        return None

    return WalkForwardRecord(
        index=task.index,
        strategy_id=task.strategy.id,
        strategy_name=task.strategy.name,
        param_key=task.combo.key,
        params=task.combo.params,
        window_id=task.window.id,
        train_label=task.window.train_label,
        test_label=task.window.test_label,
        train_return=median(train_returns),
        test_return=median(test_returns),
        test_win_rate=median(win_rates),
        test_trades=int(sum(trades)),
        test_max_drawdown=median(drawdowns),
        test_sharpe=median(sharpes),
    )


def run_walk_forward(
    datasets: Mapping[str, Sequence[PriceBar]],
    registry: StrategyRegistry,
    windows: Sequence[WalkForwardWindow],
    strategy_ids: Optional[Iterable[str]] = None,
    initial_capital: float = DEFAULT_INITIAL_CAPITAL,
    config: Optional[OptimizerConfig] = None
) -> List[WalkForwardRecord]:
    """
    Walk-forward evaluation of every grid combination.

    Args:
        datasets: Symbol -> price bars
        registry: Strategy table
        windows: Train/test windows
        strategy_ids: Strategies to evaluate; all but dca when omitted
        initial_capital: Starting capital per backtest
        config: Worker count and minimum slice lengths

    Returns:
        Records in strategy, window, combination order; combinations without
        any usable test slice are omitted
    """
    config = config or OptimizerConfig()
    slices_by_window = {
        w.id: [
            (slice_bars(bars, w.train_start, w.train_end), slice_bars(bars, w.test_start, w.test_end))
            for bars in datasets.values()
        ]
        for w in windows
    }

    tasks: List[WalkForwardTask] = []
    for strategy in _resolve_strategies(registry, strategy_ids):
        grid = generate_param_grid(strategy)
        logger.info(f"Walk-forward {strategy.id}: {len(grid)} combos x {len(windows)} windows")
        for window in windows:
            for combo in grid:
                tasks.append(WalkForwardTask(
                    index=len(tasks),
                    strategy=strategy,
                    window=window,
                    combo=combo,
                    slices=slices_by_window[window.id],
                    initial_capital=initial_capital,
                    min_train_bars=config.min_train_bars,
                    min_test_bars=config.min_test_bars,
                ))

    results = _run_tasks(evaluate_window_task, tasks, config.max_workers, "Walk-forward")
    return [r for r in results if r is not None]


def evaluate_stability(
    records: Sequence[WalkForwardRecord],
    windows: Sequence[WalkForwardWindow] = ()
) -> List[StabilityScore]:
    """
    Score each combination's consistency across windows.

    composite = 0.4 * median test return + 0.3 * worst test return
              + 0.2 * low dispersion + 0.1 * low overfit,
    each min-max normalized within the strategy.

    Returns:
        Scores grouped by strategy, best first within each strategy
    """
    by_strategy: Dict[str, Dict[str, List[WalkForwardRecord]]] = {}
    for r in records:
        by_strategy.setdefault(r.strategy_id, {}).setdefault(r.param_key, []).append(r)

    scores: List[StabilityScore] = []
    for strategy_id, by_param in by_strategy.items():
        raw = []
        for param_key, recs in by_param.items():
            test_returns = [r.test_return for r in recs]
            train_median = median([r.train_return for r in recs])
            test_median = median(test_returns)
            by_window = {r.window_id: r.test_return for r in recs}
            raw.append({
                "strategy_id": strategy_id,
                "strategy_name": recs[0].strategy_name,
                "param_key": param_key,
                "params": recs[0].params,
                "test_return_median": test_median,
                "test_return_min": min(test_returns),
                "test_return_std": stddev(test_returns),
                "train_return_median": train_median,
                "overfit_degree": train_median - test_median,
                "window_returns": [by_window.get(w.id, 0.0) for w in windows],
            })

        med_norm = normalize([s["test_return_median"] for s in raw], True)
        min_norm = normalize([s["test_return_min"] for s in raw], True)
        std_norm = normalize([s["test_return_std"] for s in raw], False)
        ofit_norm = normalize([s["overfit_degree"] for s in raw], False)

        strategy_scores = [
            StabilityScore(
                composite_score=0.4 * med_norm[i] + 0.3 * min_norm[i] + 0.2 * std_norm[i] + 0.1 * ofit_norm[i],
                **s,
            )
            for i, s in enumerate(raw)
        ]
        strategy_scores.sort(key=lambda s: s.composite_score, reverse=True)
        scores.extend(strategy_scores)

    return scores
