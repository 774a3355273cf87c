"""
Repair context logger.

Provides logging interface for repair context with automatic [repair] prefix.
All repair modules should import from this module, not from utils.logger directly.
"""

from pathlib import Path

from loguru import logger

from quiver.utils.logger import setup_logger as _setup_logger

CONTEXT_PREFIX = "[repair]"


def setup_repair_logger(log_dir: Path) -> Path:
    """
    Setup logger for repair context.

    Args:
        log_dir: Directory for this repair session

    Returns:
        Path to log file
    """
    return _setup_logger(context_name="repair", log_dir=log_dir)


# Wrapper functions with automatic [repair] prefix


def _log_info(message: str) -> None:
    """Log info message with [repair] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [repair] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [repair] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [repair] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [repair] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level repair-specific logging helpers


def log_iteration_start(iteration: int, max_iterations: int, num_violations: int) -> None:
    _log_info(f"Iteration {iteration}/{max_iterations}: {num_violations} violation(s) to repair")


def log_actions(actions) -> None:
    """
    Log proposed repair actions.

    Args:
        actions: List of RepairAction
    """
    _log_info(f"  Proposed {len(actions)} action(s)")
    for action in actions:
        target = action.bullet_id or action.story_id or "-"
        _log_debug(f"    {action.type} {target}: {action.reason}")


def log_regeneration(bullet_ids) -> None:
    if bullet_ids:
        _log_debug(f"  Regenerating {len(bullet_ids)} bullet(s): {', '.join(bullet_ids)}")


def log_iteration_result(iteration: int, before: int, after: int) -> None:
    _log_info(f"  Iteration {iteration}: {before} -> {after} violation(s)")


def log_loop_finished(final_state: str, iterations: int, num_violations: int) -> None:
    """Log the terminal state of a repair loop."""
    if num_violations == 0:
        _log_success(f"Repair finished ({final_state}) after {iterations} iteration(s), no violations left")
    else:
        _log_warning(
            f"Repair finished ({final_state}) after {iterations} iteration(s), "
            f"{num_violations} violation(s) left"
        )
