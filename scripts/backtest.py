# scripts/backtest.py
"""
CLI script for running backtests, pattern scans and signal scans.
"""

import sys
import json
import datetime as dt
from pathlib import Path

# Add parent directory to path
sys.path.append(str(Path(__file__).parent.parent))

import click
from stocklab.core.backtest_engine import BacktestEngine
from stocklab.core.optimizer import (
    evaluate_stability,
    generate_wf_windows,
    rank_combos,
    run_parameter_sweep,
    run_walk_forward,
)
from stocklab.core.patterns import (
    detect_buy_signals,
    detect_cup_with_handle,
    detect_cup_with_handle_forming,
    detect_market_sentiment,
)
from stocklab.core.signal_scanner import detect_signals_from_data
from stocklab.data import SyntheticDataProvider, load_bars_csv, resample_weekly
from stocklab.models.signals import PeriodType
from stocklab.strategies import build_default_registry, get_preset_params, load_presets
from stocklab.utils.config_loader import get_default_config, load_config
from stocklab.utils.logging_config import setup_logging_from_config


def _init(config_path, verbose):
    """Load configuration and set up logging."""
    if config_path and Path(config_path).exists():
        app_config = load_config(config_path)
    else:
        app_config = get_default_config()

    setup_logging_from_config(app_config.logging, level="DEBUG" if verbose else None)
    return app_config


def _load_bars(csv_path, seed, days, period):
    """Bars from a CSV file, or synthetic bars when no file is given."""
    if csv_path:
        bars = load_bars_csv(csv_path)
    else:
        click.echo(f"Using synthetic data (seed={seed}, {days} business days)")
        bars = SyntheticDataProvider(seed=seed).generate_bars(start=dt.date(2018, 1, 1), periods=days)

    if PeriodType(period) == PeriodType.WEEKLY:
        bars = resample_weekly(bars)

    if not bars:
        click.echo("ERROR: No market data available", err=True)
        sys.exit(1)

    click.echo(f"Loaded {len(bars)} {period} bars ({bars[0].date} to {bars[-1].date})")
    return bars


def _write_json(output, payload):
    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(payload, f, indent=2, default=str)
    click.echo(f"\nResults saved to: {path}")


data_options = [
    click.option('--config', '-c', 'config_path', default='configs/config.yaml', help='Configuration file path'),
    click.option('--csv', 'csv_path', default=None, help='CSV with date/open/high/low/close/volume columns'),
    click.option('--seed', default=42, show_default=True, help='Seed for synthetic data'),
    click.option('--days', default=1500, show_default=True, help='Business days of synthetic data'),
    click.option('--period', type=click.Choice(['daily', 'weekly']), default='daily', show_default=True),
    click.option('--output', '-o', default=None, help='Write results as JSON to this file'),
    click.option('--verbose', '-v', is_flag=True, help='Verbose logging'),
]


def with_data_options(func):
    for option in reversed(data_options):
        func = option(func)
    return func


@click.group()
def cli():
    """Stock research backtesting tools."""


@cli.command()
@click.option('--strategy', '-s', 'strategy_id', default='ma_cross', show_default=True, help='Strategy id')
@click.option('--preset', type=click.Choice(['default', 'optimized']), default=None, help='Parameter preset')
@click.option('--presets-file', default='configs/presets.yaml', help='Preset overrides file')
@with_data_options
def backtest(strategy_id, preset, presets_file, config_path, csv_path, seed, days, period, output, verbose):
    """Run one strategy over a price series."""
    try:
        app_config = _init(config_path, verbose)
        bars = _load_bars(csv_path, seed, days, period)

        registry = build_default_registry()
        strategy = registry.get(strategy_id)
        params = get_preset_params(
            strategy,
            preset or app_config.backtest.preset,
            period,
            load_presets(presets_file),
        )
        click.echo(f"Strategy: {strategy.name} ({strategy.id}) params={params}")

        result = BacktestEngine(app_config).run(bars, strategy, params)
        stats = result.stats

        click.echo("\n" + "="*50)
        click.echo("BACKTEST RESULTS")
        click.echo("="*50)
        click.echo(f"Total Return: {stats.total_return:,.0f} ({stats.total_return_pct:.2f}%)")
        click.echo(f"Max Drawdown: {stats.max_drawdown:,.0f} ({stats.max_drawdown_pct:.2f}%)")
        click.echo(f"Sharpe Ratio: {stats.sharpe_ratio:.3f}")
        click.echo(f"Round Trips: {stats.num_trades} ({stats.num_wins} won / {stats.num_losses} lost)")
        click.echo(f"Win Rate: {stats.win_rate:.1f}%")
        click.echo(f"Profit Factor: {stats.profit_factor:.2f}")
        click.echo(f"Holding Days: median {stats.holding_days_median:.1f}, max {stats.holding_days_max:.0f}")

        if output:
            payload = result.to_dict()
            payload['strategy_id'] = strategy.id
            payload['params'] = params
            _write_json(output, payload)

    except Exception as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)


@cli.command()
@with_data_options
def patterns(config_path, csv_path, seed, days, period, output, verbose):
    """List cup-with-handle and reversal events."""
    try:
        app_config = _init(config_path, verbose)
        bars = _load_bars(csv_path, seed, days, period)

        cups = detect_cup_with_handle(bars, app_config.patterns)
        forming = detect_cup_with_handle_forming(bars, app_config.patterns)
        reversals = detect_buy_signals(bars)
        sentiment = detect_market_sentiment(bars)

        click.echo(f"\nCup-with-handle breakouts: {len(cups)}")
        for event in cups:
            click.echo(f"  {event.date}  {event.price:>10.2f}  {event.description}")
        click.echo(f"\nReversal signals: {len(reversals)}")
        for event in reversals:
            click.echo(f"  {event.date}  {event.price:>10.2f}  {event.label}")
        for pattern in forming:
            click.echo(
                f"\nForming cup: breakout {pattern.breakout_price:.2f} "
                f"({pattern.distance_to_breakout_pct:.1f}% away, {pattern.stage.value})"
            )
        if sentiment is not None:
            click.echo(f"\nSentiment: {sentiment.sentiment.value} ({sentiment.diff_pct:+.2f}% vs MA25)")

        if output:
            _write_json(output, {
                'cup_with_handle': [e.model_dump(mode='json') for e in cups],
                'forming': [p.model_dump(mode='json') for p in forming],
                'reversals': [e.model_dump(mode='json') for e in reversals],
                'sentiment': sentiment.model_dump(mode='json') if sentiment else None,
            })

    except Exception as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option('--presets-file', default='configs/presets.yaml', help='Preset overrides file')
@with_data_options
def signals(presets_file, config_path, csv_path, seed, days, period, output, verbose):
    """Show open positions and recent entries per strategy."""
    try:
        app_config = _init(config_path, verbose)
        bars = _load_bars(csv_path, seed, days, period)

        result = detect_signals_from_data(
            bars,
            period,
            build_default_registry(),
            preset=app_config.backtest.preset,
            presets=load_presets(presets_file),
            config=app_config.scanner,
        )

        click.echo(f"\nOpen positions: {len(result.active)}")
        for info in result.active:
            levels = info.exit_levels
            click.echo(
                f"  {info.strategy_name:<28} since {info.buy_date} @ {info.buy_price:.2f}  "
                f"P&L {info.pnl_pct:+.2f}%  TP {levels.take_profit_price}  SL {levels.stop_loss_price}"
            )
        click.echo(f"\nRecent buys: {len(result.recent)}")
        for info in result.recent:
            click.echo(f"  {info.strategy_name:<28} {info.date} @ {info.price:.2f}")

        if output:
            _write_json(output, result.model_dump(mode='json'))

    except Exception as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option('--strategy', '-s', 'strategy_ids', multiple=True, help='Strategy id (repeatable); all but dca by default')
@click.option('--symbols', default=3, show_default=True, help='Synthetic symbols to generate')
@click.option('--walk-forward', is_flag=True, help='Run walk-forward stability analysis instead of a sweep')
@click.option('--config', '-c', 'config_path', default='configs/config.yaml', help='Configuration file path')
@click.option('--seed', default=42, show_default=True, help='Seed of the first synthetic symbol')
@click.option('--days', default=1500, show_default=True, help='Business days of synthetic data')
@click.option('--output', '-o', default=None, help='Write results as JSON to this file')
@click.option('--verbose', '-v', is_flag=True, help='Verbose logging')
def optimize(strategy_ids, symbols, walk_forward, config_path, seed, days, output, verbose):
    """Search strategy parameters over synthetic symbols."""
    try:
        app_config = _init(config_path, verbose)
        opt = app_config.optimizer
        datasets = {
            f"SYN{i + 1}": SyntheticDataProvider(seed=seed + i).generate_bars(start=dt.date(2018, 1, 1), periods=days)
            for i in range(symbols)
        }
        registry = build_default_registry()
        ids = list(strategy_ids) or None

        if walk_forward:
            first = min(bars[0].date for bars in datasets.values())
            last = max(bars[-1].date for bars in datasets.values())
            windows = generate_wf_windows(first.year, last.year, opt.train_years, opt.test_years)
            click.echo(f"Walk-forward over {len(windows)} windows")
            records = run_walk_forward(
                datasets, registry, windows, ids,
                initial_capital=app_config.backtest.initial_capital,
                config=opt,
            )
            scores = evaluate_stability(records, windows)
            best = {}
            for score in scores:
                best.setdefault(score.strategy_id, score)
            click.echo("\nMost stable parameters:")
            for score in best.values():
                click.echo(
                    f"  {score.strategy_id:<22} {score.param_key:<40} "
                    f"median {score.test_return_median:+.2f}%  composite {score.composite_score:.3f}"
                )
            payload = [s.model_dump(mode='json') for s in scores]
        else:
            records = run_parameter_sweep(
                datasets, registry, ids,
                initial_capital=app_config.backtest.initial_capital,
                max_workers=opt.max_workers,
            )
            ranked = rank_combos(records, opt.min_trades)
            best = {}
            for combo in ranked:
                best.setdefault(combo.strategy_id, combo)
            click.echo("\nBest parameters:")
            for combo in best.values():
                click.echo(
                    f"  {combo.strategy_id:<22} {combo.param_key:<40} "
                    f"win {combo.win_rate:.1f}%  trades {combo.total_trades}  return {combo.total_return_pct:+.1f}%"
                )
            payload = [c.model_dump(mode='json') for c in ranked if c.score != float('-inf')]

        if output:
            _write_json(output, payload)

    except Exception as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)


if __name__ == '__main__':
    cli()
