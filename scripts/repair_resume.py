#!/usr/bin/env python3
"""
Resume Repair CLI

Renders a planned resume, validates it against page, line-length and taboo
phrase constraints, and runs the bounded repair loop until it fits.

Commands:
    repair  - Plan (or load a plan), render, validate and repair

Examples:\n

    repair_resume.py repair bank.json ranked.json job.json                      # Plan + repair

    repair_resume.py repair bank.json ranked.json job.json --plan plan.json     # Existing plan

    repair_resume.py repair bank.json ranked.json job.json --proposer llm       # LLM proposals

    repair_resume.py repair bank.json ranked.json job.json --estimate-pages     # No LaTeX install
"""

import os
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from typing_extensions import Annotated

from quiver.contexts.rendering import (
    CandidateInfo,
    ConstraintValidator,
    LatexRenderer,
    RenderError,
    estimate_page_count,
)
from quiver.contexts.repair import (
    LLMProposer,
    LoopState,
    OverflowProposer,
    RepairLoopError,
    RepairLoopResult,
    run_repair_loop,
)
from quiver.contexts.repair.logger import setup_repair_logger
from quiver.contexts.rewriting import LLMRewriter, TruncatingRewriter
from quiver.contexts.targeting import SelectionError, materialize_bullets, select_plan
from quiver.utils.config import load_page_limits, load_space_budget
from quiver.utils.io import (
    load_company_profile,
    load_experience_bank,
    load_job_profile,
    load_plan,
    load_ranked_stories,
    load_rewritten_bullets,
    rewritten_to_dict,
    save_json,
)
from quiver.utils.timestamp import now

load_dotenv()
LOGS_PATH = Path(os.getenv("LOGS_PATH", "outs/logs"))
OUTPUTS_PATH = Path(os.getenv("OUTPUTS_PATH", "outs/resumes"))


app = typer.Typer(
    help="Render, validate and repair a planned resume",
    add_completion=False,
    invoke_without_command=True,
)


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _save_result(result: RepairLoopResult, output_dir: Path) -> None:
    save_json(result.plan.to_dict(), output_dir / "plan.json")
    save_json(rewritten_to_dict(result.rewritten_bullets), output_dir / "rewritten_bullets.json")
    save_json({"violations": [v.to_dict() for v in result.violations]}, output_dir / "violations.json")
    save_json(
        {
            "final_state": result.final_state.value,
            "iterations": result.iterations,
            "history": [record.to_dict() for record in result.history],
        },
        output_dir / "repair_history.json",
    )
    if result.document is not None:
        (output_dir / "resume.tex").write_text(result.document.text, encoding="utf-8")


@app.command("repair")
def repair_command(
    experience_bank_path: Annotated[Path, typer.Argument(help="Experience bank JSON", exists=True)],
    ranked_stories_path: Annotated[Path, typer.Argument(help="Ranked stories JSON", exists=True)],
    job_profile_path: Annotated[Path, typer.Argument(help="Job profile JSON", exists=True)],
    company_profile_path: Annotated[
        Optional[Path],
        typer.Option("--company", "-c", help="Company profile JSON (brand voice, taboo phrases)", exists=True),
    ] = None,
    plan_path: Annotated[
        Optional[Path],
        typer.Option("--plan", help="Existing plan JSON (default: select a new plan)", exists=True),
    ] = None,
    rewritten_path: Annotated[
        Optional[Path],
        typer.Option("--rewritten", help="Existing rewritten bullets JSON", exists=True),
    ] = None,
    budget: Annotated[
        str,
        typer.Option("--budget", "-b", help="Space budget preset from space_budgets.yaml"),
    ] = "one_page",
    max_iterations: Annotated[
        int,
        typer.Option("--max-iterations", "-n", help="Maximum repair iterations", min=0, max=20),
    ] = 3,
    deadline: Annotated[
        Optional[float],
        typer.Option("--deadline", help="Wall-clock budget for the repair loop in seconds"),
    ] = None,
    proposer_kind: Annotated[
        str,
        typer.Option("--proposer", help="'rules' (deterministic) or 'llm'"),
    ] = "rules",
    rewriter_kind: Annotated[
        str,
        typer.Option("--rewriter", help="'truncate' (offline) or 'llm'"),
    ] = "truncate",
    provider: Annotated[
        Optional[str],
        typer.Option("--provider", help="LLM provider for --proposer/--rewriter llm (default: LLM_PROVIDER)"),
    ] = None,
    estimate_pages: Annotated[
        bool,
        typer.Option("--estimate-pages", help="Estimate page count instead of compiling with LaTeX"),
    ] = False,
    name: Annotated[str, typer.Option("--name", help="Candidate name")] = "",
    email: Annotated[str, typer.Option("--email", help="Candidate email")] = "",
    phone: Annotated[str, typer.Option("--phone", help="Candidate phone")] = "",
    output_dir: Annotated[
        Optional[Path],
        typer.Option("--output-dir", "-o", help="Directory for the repaired artifacts"),
    ] = None,
    run_name: Annotated[
        Optional[str],
        typer.Option("--run-name", help="Run identifier for logs and the pipeline event log"),
    ] = None,
):
    """
    Render, validate and repair a resume for a job.

    Exits 0 when every violation is resolved, 1 otherwise.

    Examples:\n

        $ repair_resume.py repair bank.json ranked.json job.json -c company.json

        $ repair_resume.py repair bank.json ranked.json job.json --rewriter llm --provider openai
    """
    if proposer_kind not in ("rules", "llm") or rewriter_kind not in ("truncate", "llm"):
        typer.secho("Error: --proposer must be 'rules' or 'llm', --rewriter 'truncate' or 'llm'\n",
                    fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    run_name = run_name or f"repair_{now()}"
    output_dir = output_dir or OUTPUTS_PATH / run_name
    log_file = setup_repair_logger(LOGS_PATH / run_name)

    try:
        space_budget = load_space_budget(budget)
        limits = load_page_limits(budget)
    except ValueError as e:
        typer.secho(f"Error: {e}\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    experience_bank = load_experience_bank(experience_bank_path)
    ranked_stories = load_ranked_stories(ranked_stories_path)
    job_profile = load_job_profile(job_profile_path)
    company_profile = load_company_profile(company_profile_path) if company_profile_path else None
    candidate = CandidateInfo(name=name, email=email, phone=phone)

    rewriter = LLMRewriter(provider_name=provider) if rewriter_kind == "llm" else TruncatingRewriter()
    if proposer_kind == "llm":
        proposer = LLMProposer(provider_name=provider)
    else:
        proposer = OverflowProposer(experience_bank, limits["max_pages"], limits["max_chars_per_line"])
    renderer = LatexRenderer()
    validator = ConstraintValidator(page_counter=estimate_page_count if estimate_pages else None)

    typer.secho(f"\nRepairing: {run_name}", fg=typer.colors.BLUE, bold=True)
    typer.echo(f"Budget: {budget} ({limits['max_pages']} page(s), {limits['max_chars_per_line']} chars/line)")
    typer.echo("")

    try:
        plan = load_plan(plan_path) if plan_path else select_plan(
            ranked_stories, job_profile, experience_bank, space_budget
        )
        if rewritten_path:
            rewritten = load_rewritten_bullets(rewritten_path)
        else:
            rewritten = rewriter.rewrite(materialize_bullets(plan, experience_bank), job_profile, company_profile)
        document = renderer.render(plan, rewritten, experience_bank, candidate)
    except (SelectionError, RenderError, ValueError) as e:
        typer.secho(f"Error: {e}\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    violations = validator.validate(
        document.text, company_profile, limits["max_pages"], limits["max_chars_per_line"],
        document.line_map, plan, rewritten,
    )
    typer.echo(f"Initial violations: {len(violations)}")

    try:
        result = run_repair_loop(
            plan, rewritten, violations, ranked_stories, job_profile, company_profile,
            experience_bank, proposer, rewriter, renderer, validator, candidate,
            limits["max_pages"], limits["max_chars_per_line"], max_iterations,
            deadline_s=deadline, run_name=run_name,
        )
    except RepairLoopError as e:
        typer.secho(f"\n✗ Repair failed: {e}", fg=typer.colors.RED, bold=True, err=True)
        if e.result is not None:
            _save_result(e.result, output_dir)
            typer.echo(f"  Last state: {output_dir}")
        typer.echo(f"  Log: {log_file}\n")
        raise typer.Exit(code=1)

    if result.document is None:
        # No iteration ran; keep the initial rendering
        result.document = document
    _save_result(result, output_dir)

    typer.echo("")
    if result.final_state == LoopState.DONE:
        typer.secho("✓ All constraints satisfied", fg=typer.colors.GREEN, bold=True)
    else:
        typer.secho(f"✗ {len(result.violations)} violation(s) remain", fg=typer.colors.RED, bold=True)
        for violation in result.violations[:10]:
            typer.echo(f"  - {violation.type}: {violation.details}")
    typer.echo(f"  Iterations: {result.iterations}/{max_iterations}")
    typer.echo(f"  Bullets: {result.plan.total_bullets()}, lines: {result.plan.total_lines()}")
    typer.echo(f"  Output: {output_dir}")
    typer.echo(f"  Log: {log_file}")
    typer.echo("")

    raise typer.Exit(code=0 if result.final_state == LoopState.DONE else 1)


if __name__ == "__main__":
    app()
