from __future__ import annotations

import json
from typing import Optional

import typer

from leadflow.pipelines.core import (
    evaluate_lead,
    follow_up_reminders,
    regenerate_lead_matches,
    regenerate_matches,
    run_escalation,
)

app = typer.Typer(help="Lead automation jobs (matching, RNR/SWO escalation, reminders).")


def _echo(out: dict) -> None:
    typer.echo(json.dumps(out, default=str))


@app.command("regenerate-matches")
def regenerate_matches_cmd() -> None:
    """
    Recompute the whole match table.
    """
    _echo(regenerate_matches())


@app.command("regenerate-lead")
def regenerate_lead_cmd(
    lead_id: str = typer.Option(..., "--lead-id", help="Lead UUID"),
) -> None:
    """
    Recompute the top matches for one lead.
    """
    _echo(regenerate_lead_matches(lead_id))


@app.command("run-escalation")
def run_escalation_cmd(
    workers: Optional[int] = typer.Option(
        None, help="Parallel lead workers (defaults to LEADFLOW_BATCH_WORKERS)"
    ),
) -> None:
    """
    Evaluate every RNR/SWO lead whose follow-up is due today.
    """
    out = run_escalation(workers=workers)
    _echo(out)
    if out.get("failed"):
        raise typer.Exit(code=1)


@app.command("evaluate-lead")
def evaluate_lead_cmd(
    lead_id: str = typer.Option(..., "--lead-id", help="Lead UUID"),
) -> None:
    """
    Evaluate one RNR/SWO lead now.
    """
    _echo(evaluate_lead(lead_id))


@app.command("follow-up-reminders")
def follow_up_reminders_cmd() -> None:
    """
    Create reminder notifications for follow-ups due today.
    """
    _echo(follow_up_reminders())


if __name__ == "__main__":
    app()
