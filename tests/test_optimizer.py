import datetime as dt
import math

import pytest

from stocklab.core.optimizer import (
    combo_key,
    evaluate_stability,
    generate_param_grid,
    generate_values,
    generate_wf_windows,
    max_values_per_param,
    median,
    rank_combos,
    rank_score,
    run_parameter_sweep,
    run_walk_forward,
    slice_bars,
    stddev,
    WalkForwardRecord,
)
from stocklab.models.config import OptimizerConfig
from stocklab.models.signals import StrategyParam
from stocklab.strategies import (
    BBReversalStrategy,
    DipKairiStrategy,
    MACrossStrategy,
    RSIReversalStrategy,
    build_default_registry,
)


def test_generate_values_small_range_is_complete():
    param = StrategyParam(key="x", label="x", default=3, min=1, max=5, step=1)

    assert generate_values(param, 8) == [1, 2, 3, 4, 5]


def test_generate_values_subsample_keeps_bounds_and_default():
    param = StrategyParam(key="x", label="x", default=37, min=0, max=100, step=1)

    assert generate_values(param, 5) == [0, 25, 37, 50, 75, 100]


def test_generate_values_fractional_step():
    param = StrategyParam(key="x", label="x", default=2, min=1, max=4, step=0.5)

    assert generate_values(param, 8) == [1.0, 1.5, 2.0, 2.5, 3.0, 3.5, 4.0]


def test_max_values_per_param():
    assert max_values_per_param(2) == 8
    assert max_values_per_param(3) == 5
    assert max_values_per_param(6) == 4


def test_ma_cross_grid_keeps_short_below_long():
    grid = generate_param_grid(MACrossStrategy())

    assert grid
    assert all(c.params["shortPeriod"] < c.params["longPeriod"] for c in grid)
    assert "S5/L25" in {c.key for c in grid}


def test_dip_kairi_grid_keeps_entry_below_exit():
    grid = generate_param_grid(DipKairiStrategy())

    assert all(c.params["entryKairi"] < c.params["exitKairi"] for c in grid)


def test_strategy_without_params_has_default_combo():
    grid = generate_param_grid(BBReversalStrategy())

    assert [(c.key, c.params) for c in grid] == [("default", {})]


def test_combo_key_abbreviations():
    params = RSIReversalStrategy().default_params()

    assert combo_key(RSIReversalStrategy(), params) == "period14/OS30/OB70/ATR14/ATR2/SL10"


def test_rank_score():
    assert rank_score(2, 0, 50.0) == -math.inf
    assert rank_score(3, 0, 50.0) == pytest.approx(100 + 10 + 5)
    assert rank_score(2, 2, 200.0) == pytest.approx(50 + 2 + 10)
    assert rank_score(1, 3, -20.0) == pytest.approx(25 + 2 / 3)


def test_median_and_stddev():
    assert median([]) == 0.0
    assert median([3.0, 1.0, 2.0, 10.0]) == pytest.approx(2.5)
    assert stddev([5.0]) == 0.0
    assert stddev([10.0, 20.0]) == pytest.approx(math.sqrt(50))


def test_walk_forward_windows():
    windows = generate_wf_windows(2015, 2020, train_years=3, test_years=1)

    assert [w.id for w in windows] == [1, 2, 3]
    first = windows[0]
    assert first.train_start == dt.date(2015, 1, 1)
    assert first.train_end == dt.date(2017, 12, 31)
    assert first.test_start == dt.date(2018, 1, 1)
    assert first.test_end == dt.date(2018, 12, 31)
    assert (first.train_label, first.test_label) == ("2015-2017", "2018")
    assert windows[-1].test_label == "2020"


def test_walk_forward_windows_too_short_range():
    assert generate_wf_windows(2020, 2021, train_years=3, test_years=1) == []


def test_slice_bars_inclusive(make_bars):
    bars = make_bars([1.0] * 10, start=dt.date(2024, 1, 1))

    sliced = slice_bars(bars, dt.date(2024, 1, 2), dt.date(2024, 1, 5))

    assert [b.date.day for b in sliced] == [2, 3, 4, 5]


def test_parameter_sweep_inline(wavy_bars):
    registry = build_default_registry()

    records = run_parameter_sweep({"A": wavy_bars, "B": wavy_bars[:400]}, registry, ["dip_bb3sigma"], max_workers=1)

    assert len(records) == 16
    assert [r.index for r in records] == list(range(16))
    assert {r.symbol for r in records} == {"A", "B"}
    assert all(r.strategy_id == "dip_bb3sigma" for r in records)

    ranked = rank_combos(records, min_trades=0)
    assert len(ranked) == 8
    scores = [c.score for c in ranked]
    assert scores == sorted(scores, reverse=True)
    assert all(c.total_trades == c.total_wins + c.total_losses for c in ranked)


def test_walk_forward_and_stability(wavy_bars):
    registry = build_default_registry()
    windows = generate_wf_windows(2020, 2022, train_years=1, test_years=1)

    records = run_walk_forward(
        {"A": wavy_bars}, registry, windows, ["dip_bb3sigma"], config=OptimizerConfig(max_workers=1)
    )

    assert len(windows) == 2
    assert len(records) == 16
    assert {r.window_id for r in records} == {1, 2}

    scores = evaluate_stability(records, windows)
    assert len(scores) == 8
    assert all(0.0 <= s.composite_score <= 1.0 for s in scores)
    assert all(len(s.window_returns) == 2 for s in scores)


def _wf_record(param_key, window_id, train_return, test_return):
    return WalkForwardRecord(
        index=0,
        strategy_id="x",
        strategy_name="X",
        param_key=param_key,
        params={},
        window_id=window_id,
        train_label="train",
        test_label="test",
        train_return=train_return,
        test_return=test_return,
        test_win_rate=0.0,
        test_trades=0,
        test_max_drawdown=0.0,
        test_sharpe=0.0,
    )


def test_evaluate_stability_composite():
    records = [
        _wf_record("A", 1, 15.0, 10.0),
        _wf_record("A", 2, 15.0, 20.0),
        _wf_record("B", 1, 30.0, 5.0),
        _wf_record("B", 2, 30.0, 5.0),
    ]
    windows = generate_wf_windows(2018, 2021, train_years=2, test_years=1)

    scores = evaluate_stability(records, windows)

    assert [s.param_key for s in scores] == ["A", "B"]
    assert scores[0].composite_score == pytest.approx(0.8)
    assert scores[1].composite_score == pytest.approx(0.2)
    assert scores[0].overfit_degree == pytest.approx(0.0)
    assert scores[1].overfit_degree == pytest.approx(25.0)
    assert scores[0].window_returns == [10.0, 20.0]


def test_evaluate_stability_single_combo_scores_half():
    scores = evaluate_stability([_wf_record("A", 1, 1.0, 2.0)])

    assert scores[0].composite_score == pytest.approx(0.5)
