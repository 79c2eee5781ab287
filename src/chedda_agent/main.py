"""CLI entrypoint for the Chedda agent actions."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated, Any

import typer

from .actions import ACTIONS, dispatch, to_tool_output
from .errors import AgentError
from .formatter import render_actions_table, render_result
from .logger import setup_logging
from .multisig import MultisigOrchestrator, SQLiteMultisigStore
from .settings import AgentSettings, ExecutionMode, Network
from .state import AppState
from .wallet import Web3WalletProvider

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    add_help_option=True,
    pretty_exceptions_enable=True,
    pretty_exceptions_short=True,
    pretty_exceptions_show_locals=False,
    rich_markup_mode="rich",
    help="Run Chedda Finance agent actions: ERC20, lending vaults and Safe multisigs.",
)


def _build_logger() -> logging.Logger:
    """Build a logger instance."""
    return logging.getLogger("chedda_agent")


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to a TOML config file (can include [chedda_agent] table).",
        ),
    ] = None,
    network: Annotated[
        Network | None,
        typer.Option("--network", "-n", help="Network to use (base-sepolia or base-mainnet)."),
    ] = None,
    rpc_url: Annotated[
        str | None,
        typer.Option("--rpc-url", help="RPC endpoint; overrides the network default."),
    ] = None,
    execution_mode: Annotated[
        ExecutionMode | None,
        typer.Option(
            "--execution-mode",
            "-m",
            help="calldata: return unsigned calldata; direct: sign and broadcast.",
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Override logging verbosity (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL).",
        ),
    ] = None,
):
    """Load configuration shared by every command."""
    if config_path:
        os.environ["CHEDDA_AGENT_CONFIG"] = str(config_path)

    init_kwargs: dict[str, Any] = {}
    if network is not None:
        init_kwargs["network"] = network
    if rpc_url is not None:
        init_kwargs["rpc_url"] = rpc_url
    if execution_mode is not None:
        init_kwargs["execution_mode"] = execution_mode
    if log_level is not None:
        init_kwargs["log_level"] = log_level.upper()

    settings = AgentSettings(**init_kwargs)
    setup_logging(settings.log_level)
    ctx.obj = settings


@asynccontextmanager
async def open_state(settings: AgentSettings) -> AsyncIterator[AppState]:
    """Build the wallet and, when a coordinator key is set, the multisig orchestrator."""
    wallet = Web3WalletProvider.from_settings(settings, settings.agent_private_key_required)
    state = AppState(settings=settings, logger=_build_logger(), wallet=wallet)
    if settings.coordinator_private_key is None:
        yield state
        return

    async with SQLiteMultisigStore(settings.registry_db_path) as store:
        state.multisig = MultisigOrchestrator.from_settings(settings, store)
        yield state


async def _run_action(settings: AgentSettings, name: str, payload: dict[str, Any]) -> Any:
    async with open_state(settings) as state:
        return await dispatch(state, name, payload)


@app.command("actions")
def list_actions() -> None:
    """List available actions and their inputs."""
    render_actions_table(ACTIONS)


@app.command("run")
def run_action(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Action name, e.g. get_pool_info.")],
    args: Annotated[
        str,
        typer.Option("--args", "-a", help='Action input as a JSON object, e.g. \'{"category": "eth-defi"}\'.'),
    ] = "{}",
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the raw result as JSON instead of tables."),
    ] = False,
) -> None:
    """Validate and run one action."""
    settings: AgentSettings = ctx.obj
    try:
        payload = json.loads(args)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"--args is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise typer.BadParameter("--args must be a JSON object")
    if settings.agent_private_key is None:
        raise typer.BadParameter(
            "agent_private_key is required to run actions.",
            param_hint=["CHEDDA_AGENT_AGENT_PRIVATE_KEY"],
        )

    try:
        result = asyncio.run(_run_action(settings, name, payload))
    except (AgentError, ValueError) as e:
        logging.getLogger("chedda_agent").error("%s failed: %s", name, e)
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    if as_json:
        typer.echo(to_tool_output(result))
    else:
        render_result(result)


@app.command("show-config")
def show_config(ctx: typer.Context) -> None:
    """Print effective config (with secrets redacted)."""
    settings: AgentSettings = ctx.obj
    typer.echo(json.dumps(settings.as_safe_dict(), indent=2))


def run() -> None:
    """Entrypoint used by the console script."""
    app()


if __name__ == "__main__":
    run()
