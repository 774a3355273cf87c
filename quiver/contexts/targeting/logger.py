"""
Targeting context logger.

Provides logging interface for targeting context with automatic [target] prefix.
All targeting modules should import from this module, not from utils.logger directly.
"""

from pathlib import Path
from typing import List

from loguru import logger

from quiver.utils.logger import setup_logger as _setup_logger

CONTEXT_PREFIX = "[target]"


def setup_targeting_logger(log_dir: Path) -> Path:
    """
    Setup logger for targeting context.

    Args:
        log_dir: Directory for this planning session

    Returns:
        Path to log file
    """
    return _setup_logger(context_name="target", log_dir=log_dir)


# Wrapper functions with automatic [target] prefix


def _log_info(message: str) -> None:
    """Log info message with [target] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [target] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [target] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [target] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level targeting-specific logging helpers


def log_selection_start(num_stories: int, num_skills: int, max_bullets: int, max_lines: int) -> None:
    _log_info(f"Selecting content from {num_stories} ranked stories against {num_skills} skills")
    _log_debug(f"  Budget: {max_bullets} bullets, {max_lines} lines")


def log_phase_result(phase: str, num_bullets: int, lines_used: int, value: float) -> None:
    """Log the outcome of one allocation phase (greedy or knapsack)."""
    _log_debug(f"  {phase}: {num_bullets} bullets, {lines_used} lines, value {value:.3f}")


def log_plan_summary(plan) -> None:
    """
    Log a selected plan.

    Args:
        plan: Plan from select_plan()
    """
    budget = plan.space_budget
    _log_success(
        f"Selected {plan.total_bullets()}/{budget.max_bullets} bullets, "
        f"{plan.total_lines()}/{budget.max_lines} lines from {len(plan.selected_stories)} stories"
    )
    _log_info(f"Skill coverage: {plan.coverage.coverage_score:.2f}")
    for selection in plan.selected_stories:
        _log_debug(
            f"  {selection.story_id}: {', '.join(selection.bullet_ids)} "
            f"({selection.estimated_lines} lines)"
        )


def log_missing_references(kind: str, ids: List[str]) -> None:
    if ids:
        _log_warning(f"Skipping {len(ids)} unknown {kind}(s): {', '.join(ids)}")
