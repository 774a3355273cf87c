"""
Generic loguru setup for detailed (Tier 1) logging.

Library modules only emit through the context wrappers in
quiver/contexts/{context}/logger.py; sinks are configured here, once, by the
entry point (a script or a notebook).
"""

import sys
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv
from loguru import logger

load_dotenv()

LEVEL_COLORS = {
    "WARNING": "<yellow>",
    "ERROR": "<red>",
    "CRITICAL": "<bold><red>",
}

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <7} | {message}"
CONSOLE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | <level>{level: <7}</level> | <level>{message}</level>"
)


def setup_logger(
    context_name: str,
    log_dir: Path,
    extra_provenance: Optional[Dict[str, object]] = None,
    console_level: str = "INFO",
    level_colors: Optional[Dict[str, str]] = None,
) -> Path:
    """
    Configure loguru for one run of a context.

    Replaces any existing sinks with a DEBUG file sink in log_dir and a
    colorized console sink, then writes a provenance header.

    Args:
        context_name: Context identifier ("target", "render", "repair")
        log_dir: Directory for this run's logs (created if missing)
        extra_provenance: Extra key/value pairs for the provenance header
        console_level: Minimum level shown on stdout
        level_colors: Overrides for LEVEL_COLORS

    Returns:
        Path to the log file

    Example:
        log_file = setup_logger("repair", Path("outs/logs/repair_20260101_120000"))
    """
    log_dir.mkdir(exist_ok=True, parents=True)
    log_file = log_dir / f"{context_name}.log"

    logger.remove()

    for level_name, color in {**LEVEL_COLORS, **(level_colors or {})}.items():
        logger.level(level_name, color=color)

    logger.add(log_file, format=FILE_FORMAT, level="DEBUG")
    logger.add(sys.stdout, format=CONSOLE_FORMAT, level=console_level, colorize=True)

    log_provenance(extra_provenance)

    return log_file


def log_provenance(extra_context: Optional[Dict[str, object]] = None) -> None:
    """Log script, command line, working directory and interpreter version."""
    logger.info("=" * 80)
    logger.info(f"Script: {sys.argv[0]}")
    logger.info(f"Command: {' '.join(sys.argv)}")
    logger.info(f"Working directory: {Path.cwd()}")
    logger.info(f"Python: {sys.version.split()[0]}")

    if extra_context:
        for key, value in extra_context.items():
            logger.info(f"{key}: {value}")

    logger.info("=" * 80)
