"""Tests for the command-line interface."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from chedda_agent.main import app

AGENT_KEY = "0x" + "11" * 32

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    for name in (
        "CHEDDA_AGENT_CONFIG",
        "CHEDDA_AGENT_NETWORK",
        "CHEDDA_AGENT_AGENT_PRIVATE_KEY",
        "CHEDDA_AGENT_COORDINATOR_PRIVATE_KEY",
    ):
        monkeypatch.delenv(name, raising=False)


def test_actions_lists_registered_actions():
    result = runner.invoke(app, ["actions"])

    assert result.exit_code == 0
    assert "get_balance" in result.output
    assert "Available actions" in result.output


def test_show_config_redacts_secrets():
    result = runner.invoke(
        app,
        ["--network", "base-mainnet", "show-config"],
        env={"CHEDDA_AGENT_AGENT_PRIVATE_KEY": AGENT_KEY},
    )

    assert result.exit_code == 0
    assert AGENT_KEY not in result.output
    config = json.loads(result.output)
    assert config["agent_private_key"] == "***redacted***"
    assert config["network"] == "base-mainnet"
    assert config["rpc_url"] == "https://mainnet.base.org"


def test_config_option_points_at_toml(tmp_path):
    config_path = tmp_path / "agent.toml"
    config_path.write_text('[chedda_agent]\nexecution_mode = "direct"\n')

    result = runner.invoke(app, ["--config", str(config_path), "show-config"])

    assert result.exit_code == 0
    assert json.loads(result.output)["execution_mode"] == "direct"


def test_run_rejects_malformed_args():
    result = runner.invoke(
        app,
        ["run", "get_pool_info", "--args", "{not json"],
        env={"CHEDDA_AGENT_AGENT_PRIVATE_KEY": AGENT_KEY},
    )

    assert result.exit_code == 2


def test_run_rejects_non_object_args():
    result = runner.invoke(
        app,
        ["run", "get_pool_info", "--args", "[1, 2]"],
        env={"CHEDDA_AGENT_AGENT_PRIVATE_KEY": AGENT_KEY},
    )

    assert result.exit_code == 2


def test_run_requires_agent_key():
    result = runner.invoke(app, ["run", "get_pool_info", "--args", '{"category": "eth-defi"}'])

    assert result.exit_code == 2


def test_run_unknown_action_exits_with_error():
    result = runner.invoke(
        app,
        ["run", "launch_rocket"],
        env={"CHEDDA_AGENT_AGENT_PRIVATE_KEY": AGENT_KEY},
    )

    assert result.exit_code == 1


def test_run_reports_invalid_input_without_rpc():
    result = runner.invoke(
        app,
        ["run", "get_balance", "--json", "--args", '{"contractAddress": "0x12"}'],
        env={"CHEDDA_AGENT_AGENT_PRIVATE_KEY": AGENT_KEY},
    )

    assert result.exit_code == 0
    assert "The provided contractAddress '0x12' is invalid" in result.output
