"""Unit tests for hybrid planning, select_plan and materialize_bullets."""

import pytest

from quiver.contexts.targeting.data_structures import (
    JobProfile,
    Plan,
    RankedStory,
    Requirement,
    SpaceBudget,
    StorySelection,
)
from quiver.contexts.targeting.exceptions import ContentReferenceError, SelectionError, SolverError
from quiver.contexts.targeting.hybrid import HybridPlanner
from quiver.contexts.targeting.knapsack import KnapsackAllocator
from quiver.contexts.targeting.planner import compute_coverage, materialize_bullets, select_plan
from quiver.contexts.targeting.skill_targets import build_skill_targets


def _assert_plan_invariants(plan, space_budget):
    ids = plan.bullet_ids()
    assert len(ids) == len(set(ids))
    assert plan.total_bullets() <= space_budget.max_bullets
    assert plan.total_lines() <= space_budget.max_lines
    assert all(selection.bullet_ids for selection in plan.selected_stories)


@pytest.mark.unit
@pytest.mark.parametrize(
    "max_bullets, max_lines", [(0, 0), (1, 1), (2, 3), (3, 5), (4, 8), (6, 12), (10, 40)]
)
def test_select_plan_respects_budget(experience_bank, ranked_stories, job_profile, max_bullets, max_lines):
    """Test the budget invariant and global bullet uniqueness."""
    budget = SpaceBudget(max_bullets=max_bullets, max_lines=max_lines)
    plan = select_plan(ranked_stories, job_profile, experience_bank, budget)

    _assert_plan_invariants(plan, budget)
    assert plan.space_budget == budget


@pytest.mark.unit
def test_select_plan_covers_hard_requirements(experience_bank, ranked_stories, job_profile, space_budget):
    """Test that the greedy phase picks bullets for the heaviest skills."""
    plan = select_plan(ranked_stories, job_profile, experience_bank, space_budget)

    assert "b001" in plan.bullet_ids()
    assert "b002" in plan.bullet_ids()
    assert plan.coverage.top_skills_covered[:2] == ["python", "kubernetes"]
    assert 0.0 < plan.coverage.coverage_score <= 1.0


@pytest.mark.unit
def test_select_plan_is_deterministic(experience_bank, ranked_stories, job_profile, space_budget):
    """Test that identical inputs give identical plans."""
    first = select_plan(ranked_stories, job_profile, experience_bank, space_budget)
    second = select_plan(ranked_stories, job_profile, experience_bank, space_budget)

    assert first.to_dict() == second.to_dict()


@pytest.mark.unit
def test_select_plan_empty_ranked(experience_bank, job_profile, space_budget):
    """Test that no ranked stories gives an empty plan."""
    plan = select_plan([], job_profile, experience_bank, space_budget)

    assert plan.selected_stories == []
    assert plan.coverage.coverage_score == 0.0


@pytest.mark.unit
def test_select_plan_skips_unknown_stories(experience_bank, job_profile, space_budget):
    """Test that ranked ids missing from the bank are ignored."""
    ranked = [RankedStory(story_id="ghost", relevance_score=1.0), RankedStory(story_id="story_002", relevance_score=0.5)]
    plan = select_plan(ranked, job_profile, experience_bank, space_budget)

    assert plan.story_ids() == ["story_002"]


@pytest.mark.unit
def test_select_plan_no_skills_raises(experience_bank, ranked_stories, space_budget):
    """Test that a profile without skills is wrapped in SelectionError."""
    with pytest.raises(SelectionError, match="failed to build skill targets") as exc_info:
        select_plan(ranked_stories, JobProfile(), experience_bank, space_budget)

    assert isinstance(exc_info.value.cause, SelectionError)


@pytest.mark.unit
def test_negative_budget_rejected():
    """Test that SpaceBudget refuses negative caps."""
    with pytest.raises(ValueError, match="non-negative"):
        SpaceBudget(max_bullets=-1, max_lines=5)


@pytest.mark.unit
def test_hybrid_falls_back_to_greedy_on_solver_error(
    experience_bank, ranked_stories, job_profile, monkeypatch
):
    """Test that a knapsack failure keeps the greedy selection."""

    def failing_allocate(self, stories, ranked, targets):
        raise SolverError("no valid solution found")

    monkeypatch.setattr(KnapsackAllocator, "allocate", failing_allocate)
    targets = build_skill_targets(job_profile)
    budget = SpaceBudget(max_bullets=10, max_lines=40)

    result = HybridPlanner(budget).plan(list(experience_bank), ranked_stories, targets)

    greedy_only = ["b001", "b002", "b003", "b005"]
    assert sorted(result.selected_ids()) == sorted(greedy_only)


@pytest.mark.unit
def test_hybrid_greedy_budget_uses_ratio():
    """Test floor(max_lines * ratio) with the 0.8 default."""
    assert HybridPlanner(SpaceBudget(max_bullets=5, max_lines=10)).greedy_budget == 8
    assert HybridPlanner(SpaceBudget(max_bullets=5, max_lines=10, skill_match_ratio=0.55)).greedy_budget == 5


@pytest.mark.unit
@pytest.mark.parametrize("ratio", [1.5, -0.1])
def test_skill_match_ratio_out_of_range_rejected(ratio):
    """Test that SpaceBudget refuses a skill match ratio outside [0, 1]."""
    with pytest.raises(ValueError, match="skill_match_ratio"):
        SpaceBudget(max_bullets=10, max_lines=3, skill_match_ratio=ratio)


@pytest.mark.unit
@pytest.mark.parametrize("ratio", [1.0, 1.5])
def test_greedy_budget_never_exceeds_max_lines(experience_bank, ranked_stories, job_profile, ratio):
    """Test that a full or later-raised ratio keeps the plan within max_lines."""
    budget = SpaceBudget(max_bullets=10, max_lines=3, skill_match_ratio=1.0)
    budget.skill_match_ratio = ratio

    assert HybridPlanner(budget).greedy_budget == 3
    plan = select_plan(ranked_stories, job_profile, experience_bank, budget)
    _assert_plan_invariants(plan, budget)


@pytest.mark.unit
def test_compute_coverage(experience_bank, job_profile):
    """Test covered skills heaviest first and the coverage score."""
    targets = build_skill_targets(job_profile)
    bullets = [experience_bank.get_bullet("b005"), experience_bank.get_bullet("b001")]
    coverage = compute_coverage(bullets, targets)

    assert coverage.top_skills_covered == ["python", "sql"]
    assert coverage.coverage_score == pytest.approx(1.3 / 2.8)
    assert compute_coverage(bullets, []).coverage_score == 0.0


@pytest.mark.unit
def test_materialize_bullets_in_plan_order(experience_bank):
    """Test that bullets come out in plan order with story ids."""
    plan = Plan(
        selected_stories=[
            StorySelection(story_id="story_002", bullet_ids=["b005", "b004"]),
            StorySelection(story_id="story_001", bullet_ids=["b001"]),
        ],
        space_budget=SpaceBudget(max_bullets=5, max_lines=10),
    )
    selected = materialize_bullets(plan, experience_bank)

    assert [(b.id, b.story_id) for b in selected] == [
        ("b005", "story_002"),
        ("b004", "story_002"),
        ("b001", "story_001"),
    ]
    assert selected[2].skills == ["Python", "Model Serving"]


@pytest.mark.unit
@pytest.mark.parametrize(
    "selection, kind, ref_id",
    [
        (StorySelection(story_id="ghost", bullet_ids=["b001"]), "story", "ghost"),
        (StorySelection(story_id="story_001", bullet_ids=["b004"]), "bullet", "b004"),
    ],
)
def test_materialize_bullets_unknown_references(experience_bank, selection, kind, ref_id):
    """Test that unknown stories and misplaced bullets raise ContentReferenceError."""
    plan = Plan(selected_stories=[selection], space_budget=SpaceBudget(max_bullets=5, max_lines=10))

    with pytest.raises(ContentReferenceError) as exc_info:
        materialize_bullets(plan, experience_bank)

    assert exc_info.value.kind == kind
    assert exc_info.value.ref_id == ref_id
