"""Rich console rendering of action results for the CLI."""

from __future__ import annotations

from typing import Any

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .actions import BaseAction
from .results import CallDataResponse, PortfolioInfo


def _truncate_address(address: str) -> str:
    """Truncate address for display."""
    return f"{address[:10]}...{address[-4:]}"


def _key_value_table(rows: dict[str, Any], value_style: str = "cyan") -> Table:
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Key", style="dim")
    table.add_column("Value", style=value_style)
    for key, value in rows.items():
        if isinstance(value, (dict, list)):
            continue
        table.add_row(key, "" if value is None else str(value))
    return table


def _calldata_panel(call: CallDataResponse) -> Panel:
    table = _key_value_table({"To": call.to, "Description": call.description})
    return Panel(
        Group(table, "", Text(call.data_hex, style="dim", overflow="fold")),
        title="[bold]Calldata[/]",
        border_style="cyan",
    )


def _portfolio_panel(portfolio: PortfolioInfo) -> Panel:
    data = portfolio.to_dict()
    formatted = data["formatted"]
    summary = _key_value_table(
        {
            "Account": _truncate_address(portfolio.account),
            "Supplied": formatted["totalSupplied"],
            "Borrowed": formatted["totalBorrowed"],
            "Collateral": formatted["totalCollateral"],
            "Health": formatted["overallHealth"],
            "Status": formatted["healthStatus"],
            "Risk": formatted["riskLevel"],
        },
        value_style="green",
    )

    positions = Table(expand=True)
    positions.add_column("Vault", style="cyan", no_wrap=True)
    positions.add_column("Token")
    positions.add_column("Supplied", justify="right")
    positions.add_column("Borrowed", justify="right")
    positions.add_column("Collateral", justify="right")
    positions.add_column("Health", justify="right", style="yellow")
    for position in data["positions"]:
        row = position["formatted"]
        positions.add_row(
            position["category"],
            position["depositToken"],
            row["supplied"],
            row["borrowed"],
            row["collateral"],
            f"{row['healthFactor']} ({row['healthStatus']})",
        )

    return Panel(
        Group(summary, "", positions),
        title="[bold]Portfolio[/]",
        border_style="green",
    )


def render_result(result: Any, console: Console | None = None) -> None:
    """Print an action result as panels/tables."""
    console = console or Console()

    if isinstance(result, str):
        console.print(result)
        return
    if isinstance(result, CallDataResponse):
        console.print(_calldata_panel(result))
        return
    if isinstance(result, PortfolioInfo):
        console.print(_portfolio_panel(result))
        return

    data = result.to_dict()
    parts: list[Any] = [_key_value_table(data)]
    if isinstance(data.get("formatted"), dict):
        parts += ["", _key_value_table(data["formatted"], value_style="green")]
    title = type(result).__name__
    console.print(Panel(Group(*parts), title=f"[bold]{title}[/]", border_style="blue"))


def render_actions_table(actions: list[type[BaseAction]], console: Console | None = None) -> None:
    console = console or Console()
    table = Table(title="Available actions", expand=True)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Description")
    table.add_column("Inputs", style="dim")
    for action in actions:
        inputs = ", ".join(
            field.alias or name for name, field in action.schema.model_fields.items()
        )
        description = " ".join(action.description.split())
        table.add_row(action.name, description, inputs)
    console.print(table)
