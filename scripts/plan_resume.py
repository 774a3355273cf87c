#!/usr/bin/env python3
"""
Resume Planning CLI

Selects the stories and bullets that best cover a job's skills within a space budget.

Commands:
    plan     - Select a plan and write plan.json (plus the materialized bullets)
    presets  - List the configured space budget presets

Examples:\n

    plan_resume.py plan bank.json ranked.json job.json                     # one_page preset

    plan_resume.py plan bank.json ranked.json job.json --budget two_page   # Named preset

    plan_resume.py plan bank.json ranked.json job.json --max-lines 24      # Override a cap

    plan_resume.py presets                                                  # Show presets
"""

import os
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from typing_extensions import Annotated

from quiver.contexts.targeting import SelectionError, materialize_bullets, select_plan
from quiver.contexts.targeting.logger import setup_targeting_logger
from quiver.utils.config import load_page_limits, load_space_budget, load_space_budget_presets
from quiver.utils.event_logging import log_pipeline_event
from quiver.utils.io import load_experience_bank, load_job_profile, load_ranked_stories, save_json
from quiver.utils.timestamp import now

load_dotenv()
LOGS_PATH = Path(os.getenv("LOGS_PATH", "outs/logs"))
OUTPUTS_PATH = Path(os.getenv("OUTPUTS_PATH", "outs/plans"))


app = typer.Typer(
    help="Select resume content for a job within a space budget",
    add_completion=False,
    invoke_without_command=True,
)


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command("plan")
def plan_command(
    experience_bank_path: Annotated[Path, typer.Argument(help="Experience bank JSON", exists=True)],
    ranked_stories_path: Annotated[Path, typer.Argument(help="Ranked stories JSON", exists=True)],
    job_profile_path: Annotated[Path, typer.Argument(help="Job profile JSON", exists=True)],
    budget: Annotated[
        str,
        typer.Option("--budget", "-b", help="Space budget preset from space_budgets.yaml"),
    ] = "one_page",
    max_bullets: Annotated[
        Optional[int],
        typer.Option("--max-bullets", help="Override the preset's bullet cap", min=0),
    ] = None,
    max_lines: Annotated[
        Optional[int],
        typer.Option("--max-lines", help="Override the preset's line cap", min=0),
    ] = None,
    output_dir: Annotated[
        Optional[Path],
        typer.Option("--output-dir", "-o", help="Directory for plan.json and selected_bullets.json"),
    ] = None,
    run_name: Annotated[
        Optional[str],
        typer.Option("--run-name", help="Run identifier for the pipeline event log"),
    ] = None,
):
    """
    Select a plan and write it with its materialized bullets.

    Examples:\n

        $ plan_resume.py plan bank.json ranked.json job.json

        $ plan_resume.py plan bank.json ranked.json job.json -b compact -o outs/plans/acme
    """
    run_name = run_name or f"plan_{now()}"
    output_dir = output_dir or OUTPUTS_PATH / run_name
    log_file = setup_targeting_logger(LOGS_PATH / run_name)

    try:
        space_budget = load_space_budget(budget, max_bullets=max_bullets, max_lines=max_lines)
    except ValueError as e:
        typer.secho(f"Error: {e}\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    experience_bank = load_experience_bank(experience_bank_path)
    ranked_stories = load_ranked_stories(ranked_stories_path)
    job_profile = load_job_profile(job_profile_path)

    try:
        plan = select_plan(ranked_stories, job_profile, experience_bank, space_budget)
        selected = materialize_bullets(plan, experience_bank)
    except SelectionError as e:
        typer.secho(f"Error: {e}\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    plan_path = save_json(plan.to_dict(), output_dir / "plan.json")
    save_json({"bullets": [b.to_dict() for b in selected]}, output_dir / "selected_bullets.json")

    log_pipeline_event(
        event_type="plan_selected",
        run_name=run_name,
        source="cli",
        budget=budget,
        bullets=plan.total_bullets(),
        lines=plan.total_lines(),
        coverage=plan.coverage.coverage_score,
    )

    typer.secho("\n✓ Plan selected", fg=typer.colors.GREEN, bold=True)
    typer.echo(f"  Stories: {len(plan.selected_stories)}")
    typer.echo(f"  Bullets: {plan.total_bullets()}/{space_budget.max_bullets}")
    typer.echo(f"  Lines:   {plan.total_lines()}/{space_budget.max_lines}")
    typer.echo(f"  Skill coverage: {plan.coverage.coverage_score:.2f}")
    if plan.coverage.top_skills_covered:
        typer.echo(f"  Top skills: {', '.join(plan.coverage.top_skills_covered)}")
    typer.echo(f"  Plan: {plan_path}")
    typer.echo(f"  Log: {log_file}")
    typer.echo("")


@app.command("presets")
def presets_command():
    """List space budget presets with their caps and page limits."""
    presets = load_space_budget_presets()
    typer.secho("\nSpace budget presets:", fg=typer.colors.BLUE, bold=True)
    for name in presets:
        space_budget = load_space_budget(name)
        limits = load_page_limits(name)
        typer.echo(
            f"  {name:<10} {space_budget.max_bullets:>3} bullets  {space_budget.max_lines:>3} lines  "
            f"{limits['max_pages']} page(s)  {limits['max_chars_per_line']} chars/line"
        )
    typer.echo("")


if __name__ == "__main__":
    app()
