"""
Unit tests for the launchpad simulator CLI
"""

import pytest

from launchpad import cli


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep the simulator from reconfiguring global logging during tests"""
    monkeypatch.setattr(cli, "setup_logging", lambda log_config: None)


def event_names(report):
    return [e["event"] for e in report["events"]]


def test_to_wei():
    assert cli.to_wei("1") == 10**18
    assert cli.to_wei("0.5") == 5 * 10**17


def test_scenario_completes_and_migrates(test_config_file):
    report = cli.run_scenario(test_config_file, "5", 1000, ["1", "6"], claim=True)

    assert report["token"]["is_completed"] is True
    assert report["token"]["real_token"] == "0"
    assert event_names(report) == [
        "TokenLaunched",
        "TokensPurchased",
        "TokensPurchased",
        "LiquiditySwapped",
        "FeeClaimed",
    ]
    assert report["total_fee"] == "0"
    assert int(report["amm_reserves"]["token"]) > 0
    assert report["metrics"]["counters"]["partial_fills"] == 1


def test_scenario_skips_rejected_buys(test_config_file):
    report = cli.run_scenario(test_config_file, "5", 1000, ["6", "1"])

    assert event_names(report).count("TokensPurchased") == 1
    assert report["metrics"]["labeled_counters"] == {
        "operations_failed{error=CurveCompleted,operation=buy}": 1
    }


def test_scenario_sell_back(test_config_file):
    report = cli.run_scenario(test_config_file, "5", 1000, ["1", "0.5"], sell_back=True)

    assert event_names(report)[-1] == "TokensSold"
    assert report["token"]["is_completed"] is False


def test_main_reports_missing_config(tmp_path):
    assert cli.main(["--config", str(tmp_path / "missing.yml")]) == 1


def test_main_prints_report(test_config_file, capsys):
    assert cli.main(["--config", test_config_file, "--buy", "0.1"]) == 0

    assert '"TokensPurchased"' in capsys.readouterr().out
