"""Unit tests for violation serialization and bullet attribution."""

import pytest

from quiver.contexts.rendering.violations import (
    Severity,
    Violation,
    ViolationType,
    map_violations_to_bullets,
)
from quiver.contexts.targeting.data_structures import Plan, SpaceBudget, StorySelection


def _plan():
    return Plan(
        selected_stories=[StorySelection(story_id="story_001", bullet_ids=["b001", "b002"])],
        space_budget=SpaceBudget(max_bullets=5, max_lines=10),
    )


@pytest.mark.unit
def test_map_violations_attaches_bullet_story_and_text(rewritten_factory):
    """Test that mapped lines carry bullet id, story id and text."""
    violations = [
        Violation(type=ViolationType.LINE_TOO_LONG, severity=Severity.WARNING, details="long", line_number=20),
        Violation(type=ViolationType.PAGE_OVERFLOW, severity=Severity.ERROR, details="pages", page_count=2),
        Violation(type=ViolationType.FORBIDDEN_PHRASE, severity=Severity.ERROR, details="taboo", line_number=3),
    ]
    bullets = [rewritten_factory("b002", text="Migrated services")]

    mapped = map_violations_to_bullets(violations, {20: "b002"}, bullets, _plan())

    assert mapped[0].bullet_id == "b002"
    assert mapped[0].story_id == "story_001"
    assert mapped[0].bullet_text == "Migrated services"
    assert mapped[1].bullet_id is None
    assert mapped[2].bullet_id is None


@pytest.mark.unit
def test_map_violations_returns_copies():
    """Test that the input violations are left untouched."""
    original = Violation(type=ViolationType.LINE_TOO_LONG, severity=Severity.WARNING, details="x", line_number=1)
    mapped = map_violations_to_bullets([original], {1: "b001"})

    assert mapped[0].bullet_id == "b001"
    assert original.bullet_id is None
    assert map_violations_to_bullets([original], None)[0] is original


@pytest.mark.unit
def test_violation_dict_drops_empty_fields():
    """Test that optional fields are omitted when unset and restored on load."""
    violation = Violation(type=ViolationType.PAGE_OVERFLOW, severity=Severity.ERROR, details="2 pages", page_count=2)
    data = violation.to_dict()

    assert "line_number" not in data
    assert data["page_count"] == 2
    assert Violation.from_dict(data) == violation
