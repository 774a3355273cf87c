"""
Space Budget Preset Resolution

Loads named space budgets from space_budgets.yaml with OmegaConf. Each preset
holds the SpaceBudget fields plus the page and line-width limits the repair
loop validates against.

Examples:
    >>> budget = load_space_budget("one_page")
    >>> budget.max_lines
    28

    >>> limits = load_page_limits("two_page")
    >>> limits["max_pages"]
    2
"""

import os
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv
from omegaconf import OmegaConf

from quiver.contexts.targeting.data_structures import SpaceBudget

load_dotenv()

DEFAULT_SPACE_BUDGETS_PATH = Path(__file__).resolve().parent.parent / "configs" / "space_budgets.yaml"
SPACE_BUDGETS_PATH = Path(os.getenv("SPACE_BUDGETS_PATH", str(DEFAULT_SPACE_BUDGETS_PATH)))

DEFAULT_MAX_PAGES = 1
DEFAULT_MAX_CHARS_PER_LINE = 110

PAGE_LIMIT_KEYS = ("max_pages", "max_chars_per_line")


def load_space_budget_presets(config_path: Path = None) -> Dict[str, Dict[str, Any]]:
    """
    Load space_budgets.yaml as a plain dict of preset name -> preset config.

    Args:
        config_path: Optional path to config file (defaults to SPACE_BUDGETS_PATH)
    """
    if config_path is None:
        config_path = SPACE_BUDGETS_PATH

    return OmegaConf.to_container(OmegaConf.load(config_path), resolve=True)


def _get_preset(name: str, config_path: Path = None) -> Dict[str, Any]:
    presets = load_space_budget_presets(config_path)
    if name not in presets:
        raise ValueError(f"Space budget '{name}' not found. Available presets: {list(presets)}")
    return presets[name]


def load_space_budget(name: str, config_path: Path = None, **overrides) -> SpaceBudget:
    """
    Build a SpaceBudget from a named preset.

    Keyword overrides replace preset values (e.g. max_lines=30). Page limits in
    the preset are ignored here; see load_page_limits().

    Raises:
        ValueError: If the preset is unknown or its caps are negative
    """
    preset = _get_preset(name, config_path)
    merged = OmegaConf.merge(
        OmegaConf.create({k: v for k, v in preset.items() if k not in PAGE_LIMIT_KEYS}),
        OmegaConf.create({k: v for k, v in overrides.items() if v is not None}),
    )
    return SpaceBudget.from_dict(OmegaConf.to_container(merged, resolve=True))


def load_page_limits(name: str, config_path: Path = None) -> Dict[str, int]:
    """Return {"max_pages", "max_chars_per_line"} for a preset, with defaults."""
    preset = _get_preset(name, config_path)
    return {
        "max_pages": int(preset.get("max_pages", DEFAULT_MAX_PAGES)),
        "max_chars_per_line": int(preset.get("max_chars_per_line", DEFAULT_MAX_CHARS_PER_LINE)),
    }
