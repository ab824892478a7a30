#!/usr/bin/env python3
"""
tokenledger CLI

Commands:
- schedule: show how much of a vesting schedule has vested at given times
- run:      replay a YAML scenario of token, vesting and timelock calls
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import click
from rich import box
from rich.console import Console
from rich.table import Table

from ..contracts.token import Token
from ..contracts.vesting import TokenVesting
from ..core.config import VALID_LOG_LEVELS
from ..core.environment import Environment, ManualClock
from ..core.exceptions import TokenError
from ..core.logging_config import setup_logging
from .scenario import ScenarioError, ScenarioRunner, load_scenario

logger = logging.getLogger(__name__)
console = Console()

SCHEDULE_DEPLOYER = "schedule-owner"
SCHEDULE_BENEFICIARY = "schedule-beneficiary"


def _cli_fail(exc: Exception, exit_code: int = 1) -> None:
    """Centralized CLI error handler for consistent messaging/exit codes."""
    logger.error("CLI error: %s", exc, exc_info=True)
    console.print(f"[bold red]Error:[/] {exc}")
    sys.exit(exit_code)


def _emit_json(payload: dict[str, Any]) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


@click.group()
@click.option('--json-output', is_flag=True, help='Output raw JSON')
@click.option(
    '--log-level',
    envvar='TOKENLEDGER_LOG_LEVEL',
    type=click.Choice(VALID_LOG_LEVELS, case_sensitive=False),
    default='ERROR',
    show_default=True,
    help='Level for JSON logs written to stderr',
)
@click.pass_context
def cli(ctx: click.Context, json_output: bool, log_level: str):
    """
    tokenledger - ERC20 token ledgers, vesting and timelocks.
    """
    ctx.ensure_object(dict)
    setup_logging(name="tokenledger", level=log_level)
    ctx.obj['json_output'] = json_output


@cli.command('schedule')
@click.option('--start', type=int, required=True, help='Vesting start (unix time)')
@click.option('--cliff', type=int, required=True, help='Seconds after start before anything vests')
@click.option('--duration', type=int, required=True, help='Seconds after start until fully vested')
@click.option('--total', type=click.IntRange(min=0), required=True, help='Tokens held by the schedule')
@click.option('--at', 'points', type=int, multiple=True, required=True, help='Timestamp to evaluate (repeatable)')
@click.pass_context
def schedule(ctx: click.Context, start: int, cliff: int, duration: int, total: int, points: tuple[int, ...]):
    """Show the vested amount of a linear schedule at each --at timestamp."""
    try:
        env = Environment(ManualClock(start))
        token = Token(env, "standard", SCHEDULE_DEPLOYER, "Schedule", "SCHED", initial_supply=total)
        vesting = TokenVesting(
            env,
            deployer=SCHEDULE_DEPLOYER,
            beneficiary=SCHEDULE_BENEFICIARY,
            start=start,
            cliff=cliff,
            duration=duration,
            revocable=False,
        )
        if total:
            token.transfer(SCHEDULE_DEPLOYER, vesting.address, total)
        rows = [
            {"at": at, "vested": vesting.get_vested_amount(token, now=at)}
            for at in points
        ]
    except TokenError as exc:
        _cli_fail(exc)
        return

    if ctx.obj['json_output']:
        _emit_json(
            {
                "start": start,
                "cliff": cliff,
                "duration": duration,
                "total": total,
                "points": rows,
            }
        )
        return

    table = Table(title="Vesting schedule", box=box.SIMPLE)
    table.add_column("Timestamp", style="cyan", justify="right")
    table.add_column("Vested", style="green", justify="right")
    table.add_column("%", justify="right")
    for row in rows:
        percent = (row["vested"] * 100 / total) if total else 0.0
        table.add_row(str(row["at"]), str(row["vested"]), f"{percent:.2f}")
    console.print(table)


@cli.command('run')
@click.argument('scenario_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def run(ctx: click.Context, scenario_file: Path):
    """Replay a YAML scenario and report each step and the final balances."""
    try:
        runner = ScenarioRunner(load_scenario(scenario_file))
        report = runner.run()
    except (ScenarioError, TokenError) as exc:
        _cli_fail(exc)
        return

    if ctx.obj['json_output']:
        _emit_json(report.to_dict())
    else:
        steps = Table(title=f"Scenario {scenario_file.name}", box=box.ROUNDED)
        for column in ("#", "Contract", "Operation", "Caller", "Outcome", "Expected"):
            steps.add_column(column)
        for step in report.steps:
            style = "green" if step.matched else "bold red"
            steps.add_row(
                str(step.index),
                step.contract,
                step.operation,
                step.caller or "-",
                f"[{style}]{step.outcome}[/]",
                "-" if step.expected is None else str(step.expected),
            )
        console.print(steps)

        for token_id, summary in report.tokens.items():
            balances = Table(title=f"{token_id} (supply {summary['total_supply']})", box=box.SIMPLE)
            balances.add_column("Account", style="cyan")
            balances.add_column("Balance", style="green", justify="right")
            for account, balance in summary["balances"].items():
                balances.add_row(account, str(balance))
            console.print(balances)

    if not report.passed:
        ctx.exit(1)


def main() -> int:
    return cli(obj={})


if __name__ == "__main__":
    sys.exit(main() or 0)
