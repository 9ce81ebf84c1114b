"""Tests for the ta-parity command line interface."""

from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest
from click.testing import CliRunner

from app.cli import cli

_SMALL_INDICATORS = """\
indicators:
  sma: [3]
  ema: []
  rma: []
  rsi: []
  bb_length: null
  atr: [2]
  include_tr: true
"""


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


class TestLatest:
    def test_latest_from_csv(self, runner: CliRunner, candles_csv: Path, isolated_config: Path) -> None:
        isolated_config.write_text(_SMALL_INDICATORS)
        result = runner.invoke(cli, ["latest", "--csv", str(candles_csv)])
        assert result.exit_code == 0, result.output
        assert "candles.csv -- 10 candles" in result.output
        assert "sma_3" in result.output
        assert "9.000" in result.output
        assert "atr_2" in result.output
        assert "2.000" in result.output
        assert "10.000" in result.output

    def test_latest_invalid_settings(
        self, runner: CliRunner, candles_csv: Path, isolated_config: Path
    ) -> None:
        isolated_config.write_text("indicators:\n  sma: [0]\n")
        result = runner.invoke(cli, ["latest", "--csv", str(candles_csv)])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_latest_zero_limit_rejected(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["latest", "--limit", "0"])
        assert result.exit_code == 1
        assert "limit must be a positive integer" in result.output


class TestCompute:
    def test_compute_to_csv(self, runner: CliRunner, candles_csv: Path, tmp_path: Path) -> None:
        out = tmp_path / "sma.csv"
        result = runner.invoke(
            cli,
            ["compute", "--csv", str(candles_csv), "--indicator", "sma", "--length", "3", "--output", str(out)],
        )
        assert result.exit_code == 0, result.output
        assert "Done." in result.output

        written = pd.read_csv(out)
        assert list(written.columns) == ["timestamp", "close", "sma"]
        assert written["sma"].isna().tolist()[:2] == [True, True]
        assert written["sma"].iloc[2] == pytest.approx(2.0)
        assert written["sma"].iloc[-1] == pytest.approx(9.0)

    def test_compute_bb_columns(self, runner: CliRunner, candles_csv: Path, tmp_path: Path) -> None:
        out = tmp_path / "bb.csv"
        result = runner.invoke(
            cli,
            ["compute", "--csv", str(candles_csv), "--indicator", "bb", "--length", "5", "--output", str(out)],
        )
        assert result.exit_code == 0, result.output
        written = pd.read_csv(out)
        assert list(written.columns) == ["timestamp", "close", "middle", "upper", "lower"]
        assert written["middle"].iloc[-1] == pytest.approx(8.0)

    def test_compute_prints_table(self, runner: CliRunner, candles_csv: Path) -> None:
        result = runner.invoke(
            cli, ["compute", "--csv", str(candles_csv), "--indicator", "tr", "--tail", "3"]
        )
        assert result.exit_code == 0, result.output
        assert "last 3 rows" in result.output
        assert "2.000" in result.output

    def test_invalid_length(self, runner: CliRunner, candles_csv: Path) -> None:
        result = runner.invoke(
            cli, ["compute", "--csv", str(candles_csv), "--indicator", "ema", "--length", "0"]
        )
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_atr_needs_high_low(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "close_only.csv"
        path.write_text("close\n1\n2\n3\n")
        result = runner.invoke(cli, ["compute", "--csv", str(path), "--indicator", "atr"])
        assert result.exit_code == 1
        assert "needs 'high' and 'low'" in result.output

    def test_unknown_indicator(self, runner: CliRunner, candles_csv: Path) -> None:
        result = runner.invoke(cli, ["compute", "--csv", str(candles_csv), "--indicator", "macd"])
        assert result.exit_code == 2
