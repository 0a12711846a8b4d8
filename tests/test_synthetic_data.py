import datetime as dt
from pathlib import Path

import pytest

from stocklab.data import SyntheticDataProvider, load_bars_csv, resample_weekly
from stocklab.models.market_data import bars_to_frame


def test_same_seed_same_bars():
    first = SyntheticDataProvider(seed=11).generate_bars(dt.date(2023, 1, 2), periods=50)
    second = SyntheticDataProvider(seed=11).generate_bars(dt.date(2023, 1, 2), periods=50)

    assert first == second


def test_bars_are_business_days_with_valid_ohlc():
    bars = SyntheticDataProvider(seed=3).generate_bars(dt.date(2023, 1, 2), end=dt.date(2023, 3, 31))

    assert bars
    assert all(b.date.weekday() < 5 for b in bars)
    assert [b.date for b in bars] == sorted(b.date for b in bars)
    for bar in bars:
        assert bar.low <= min(bar.open, bar.close)
        assert bar.high >= max(bar.open, bar.close)
        assert bar.volume > 0


def test_generate_requires_end_or_periods():
    with pytest.raises(ValueError, match="end or periods"):
        SyntheticDataProvider(seed=1).generate_bars(dt.date(2023, 1, 2))


def test_load_bars_csv(tmp_path: Path):
    csv_path = tmp_path / "prices.csv"
    csv_path.write_text(
        "Date,Open,High,Low,Close,Volume\n"
        "2024-01-03,11,12,10,11.5,200\n"
        "2024-01-02,10,11,9,10.5,100\n",
        encoding="utf-8",
    )

    bars = load_bars_csv(str(csv_path))

    assert [b.date for b in bars] == [dt.date(2024, 1, 2), dt.date(2024, 1, 3)]
    assert bars[1].close == 11.5
    assert bars[0].volume == 100


def test_load_bars_csv_missing_column(tmp_path: Path):
    csv_path = tmp_path / "prices.csv"
    csv_path.write_text("date,open,close\n2024-01-02,1,2\n", encoding="utf-8")

    with pytest.raises(ValueError, match="missing columns: high, low"):
        load_bars_csv(str(csv_path))


def test_resample_weekly(make_bars):
    bars = make_bars(
        [10.0, 11.0, 12.0, 13.0, 14.0, 15.0, 16.0],
        start=dt.date(2024, 1, 1),
        highs=[10.5, 11.5, 20.0, 13.5, 14.5, 15.5, 16.5],
        lows=[9.5, 8.0, 11.5, 12.5, 13.5, 14.5, 15.5],
    )

    weekly = resample_weekly(bars)

    assert len(weekly) == 2
    first = weekly[0]
    assert first.date == dt.date(2024, 1, 5)
    assert (first.open, first.high, first.low, first.close) == (10.0, 20.0, 8.0, 14.0)
    assert first.volume == 5000.0
    assert weekly[1].date == dt.date(2024, 1, 9)


def test_bars_to_frame_indexed_by_date(make_bars):
    df = bars_to_frame(make_bars([1.0, 2.0]))

    assert list(df.columns) == ["open", "high", "low", "close", "volume"]
    assert df["close"].tolist() == [1.0, 2.0]
