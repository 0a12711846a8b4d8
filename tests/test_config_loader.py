from pathlib import Path

import pytest

from stocklab.core.errors import ConfigurationError
from stocklab.models.signals import PeriodType
from stocklab.utils.config_loader import get_default_config, load_config, save_config, substitute_env_vars


def test_substitute_env_vars(monkeypatch):
    monkeypatch.setenv("STOCKLAB_TEST_LEVEL", "DEBUG")
    monkeypatch.delenv("STOCKLAB_MISSING", raising=False)

    text = "level: ${STOCKLAB_TEST_LEVEL}\nfile: ${STOCKLAB_MISSING:out.log}\nkeep: ${STOCKLAB_MISSING}"

    assert substitute_env_vars(text) == "level: DEBUG\nfile: out.log\nkeep: ${STOCKLAB_MISSING}"


def test_load_config_partial_file_keeps_defaults(tmp_path: Path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
backtest:
  initial_capital: 500000
  period_type: weekly
logging:
  level: debug
""".strip(),
        encoding="utf-8",
    )

    config = load_config(str(config_path))

    assert config.backtest.initial_capital == 500000
    assert config.backtest.period_type == PeriodType.WEEKLY
    assert config.logging.level == "DEBUG"
    assert config.scanner.daily_lookback_days == 90
    assert config.patterns.cup_min_days == 15


def test_load_config_merges_base_file(tmp_path: Path):
    base_path = tmp_path / "base.yaml"
    base_path.write_text("optimizer:\n  max_workers: 8\n  min_trades: 5\n", encoding="utf-8")
    config_path = tmp_path / "config.yaml"
    config_path.write_text("optimizer:\n  max_workers: 2\n", encoding="utf-8")

    config = load_config(str(config_path), base_config_path=str(base_path))

    assert config.optimizer.max_workers == 2
    assert config.optimizer.min_trades == 5


def test_load_config_uses_env_default(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("STOCKLAB_CAPITAL", raising=False)
    config_path = tmp_path / "config.yaml"
    config_path.write_text("backtest:\n  initial_capital: ${STOCKLAB_CAPITAL:250000}\n", encoding="utf-8")

    assert load_config(str(config_path)).backtest.initial_capital == 250000


def test_load_config_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"))


def test_load_config_rejects_invalid_values(tmp_path: Path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("backtest:\n  preset: best\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Error loading configuration"):
        load_config(str(config_path))


def test_load_config_rejects_non_mapping(tmp_path: Path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="YAML mapping"):
        load_config(str(config_path))


def test_load_config_rejects_bad_yaml(tmp_path: Path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("backtest: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="Invalid YAML"):
        load_config(str(config_path))


def test_save_and_reload_round_trip(tmp_path: Path):
    config = get_default_config()
    config.optimizer.max_workers = 1
    target = tmp_path / "nested" / "config.yaml"

    save_config(config, str(target))
    reloaded = load_config(str(target))

    assert reloaded.optimizer.max_workers == 1
    assert reloaded.to_dict() == config.to_dict()


def test_shipped_config_loads():
    config_path = Path(__file__).resolve().parent.parent / "configs" / "config.yaml"

    config = load_config(str(config_path))

    assert config.backtest.preset == "optimized"
    assert "cwh_trail" in config.scanner.strategy_ids
