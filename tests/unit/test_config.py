"""Unit tests for space budget presets."""

import pytest

from quiver.utils.config import load_page_limits, load_space_budget, load_space_budget_presets


@pytest.mark.unit
def test_bundled_presets():
    """Test that the bundled presets load with their documented caps."""
    presets = load_space_budget_presets()

    assert {"one_page", "two_page", "compact"} <= set(presets)

    budget = load_space_budget("one_page")
    assert (budget.max_bullets, budget.max_lines) == (14, 28)
    assert budget.sections == {"experience": 24, "projects": 4}
    assert budget.effective_skill_match_ratio == 0.8


@pytest.mark.unit
def test_overrides_replace_preset_values():
    """Test keyword overrides, ignoring None values."""
    budget = load_space_budget("compact", max_lines=20, max_bullets=None)

    assert budget.max_lines == 20
    assert budget.max_bullets == 8
    assert budget.skill_match_ratio == 0.6


@pytest.mark.unit
def test_unknown_preset():
    """Test that an unknown preset name lists the available ones."""
    with pytest.raises(ValueError, match="Space budget 'tiny' not found"):
        load_space_budget("tiny")


@pytest.mark.unit
def test_page_limits():
    """Test page limits read from a preset."""
    assert load_page_limits("two_page") == {"max_pages": 2, "max_chars_per_line": 110}


@pytest.mark.unit
def test_custom_config_file(tmp_path):
    """Test loading a preset file given by path, with default page limits and cap validation."""
    config = tmp_path / "budgets.yaml"
    config.write_text(
        "poster:\n  max_bullets: 3\n  max_lines: 6\nbroken:\n  max_bullets: -1\n  max_lines: 6\n"
    )

    budget = load_space_budget("poster", config_path=config)
    assert (budget.max_bullets, budget.max_lines) == (3, 6)
    assert budget.effective_skill_match_ratio == 0.8
    assert load_page_limits("poster", config_path=config) == {"max_pages": 1, "max_chars_per_line": 110}

    with pytest.raises(ValueError, match="non-negative"):
        load_space_budget("broken", config_path=config)
