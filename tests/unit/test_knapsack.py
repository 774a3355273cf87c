"""Unit tests for the two-constraint knapsack allocator."""

import itertools

import pytest

from quiver.contexts.targeting.data_structures import Bullet, RankedStory, SkillTarget, Story
from quiver.contexts.targeting.exceptions import SolverError
from quiver.contexts.targeting.knapsack import (
    MAX_BULLETS_PER_STORY,
    KnapsackAllocator,
    compute_story_value,
    generate_bullet_combinations,
)

SKILLS = [
    SkillTarget(name="python", weight=1.0),
    SkillTarget(name="kubernetes", weight=1.0),
    SkillTarget(name="aws", weight=0.5),
    SkillTarget(name="sql", weight=0.3),
]


def _bullet(bullet_id, skills, length):
    return Bullet(id=bullet_id, text=bullet_id, skills=tuple(skills), length_chars=length)


def _stories():
    return [
        Story(
            id="s1",
            bullets=(
                _bullet("s1b1", ["python"], 90),
                _bullet("s1b2", ["kubernetes"], 150),
                _bullet("s1b3", ["aws"], 80),
            ),
        ),
        Story(id="s2", bullets=(_bullet("s2b1", ["python", "sql"], 120), _bullet("s2b2", ["sql"], 60))),
        Story(id="s3", bullets=(_bullet("s3b1", ["aws"], 250),)),
    ]


RANKED = [
    RankedStory(story_id="s1", relevance_score=0.9),
    RankedStory(story_id="s2", relevance_score=0.6),
    RankedStory(story_id="s3", relevance_score=0.4),
]


def _brute_force_best(stories, max_bullets, max_lines):
    """Best total value over every feasible per-story choice (skip or one subset)."""
    ranked = {r.story_id: r for r in RANKED}
    per_story = [
        [None] + [compute_story_value(ranked.get(s.id), c, SKILLS) for c in generate_bullet_combinations(list(s.bullets))]
        for s in stories
    ]
    best = 0.0
    for choice in itertools.product(*per_story):
        taken = [v for v in choice if v is not None]
        if sum(v.cost_bullets for v in taken) > max_bullets:
            continue
        if sum(v.cost_lines for v in taken) > max_lines:
            continue
        best = max(best, sum(v.value for v in taken))
    return best


@pytest.mark.unit
def test_generate_bullet_combinations_bitmask_order():
    """Test that subsets follow bitmask order and keep bullet order."""
    a, b, c = (_bullet(x, [], 10) for x in "abc")
    combos = [[x.id for x in combo] for combo in generate_bullet_combinations([a, b, c])]

    assert combos == [["a"], ["b"], ["a", "b"], ["c"], ["a", "c"], ["b", "c"], ["a", "b", "c"]]
    assert generate_bullet_combinations([]) == []


@pytest.mark.unit
def test_compute_story_value():
    """Test value = 0.6 * relevance + 0.4 * coverage and the cost fields."""
    bullets = [_bullet("x", ["python"], 90), _bullet("y", ["kubernetes"], 150)]
    value = compute_story_value(RankedStory(story_id="s", relevance_score=0.9), bullets, SKILLS)

    assert value.value == pytest.approx(0.6 * 0.9 + 0.4 * (2.0 / 2.8))
    assert value.cost_bullets == 2
    assert value.cost_lines == 3
    assert value.bullet_ids == ["x", "y"]


@pytest.mark.unit
def test_compute_story_value_unranked_story():
    """Test that an unranked story contributes only skill coverage."""
    value = compute_story_value(None, [_bullet("x", ["python"], 90)], SKILLS)

    assert value.value == pytest.approx(0.4 * (1.0 / 2.8))


@pytest.mark.unit
@pytest.mark.parametrize("max_bullets, max_lines", [(1, 1), (2, 3), (3, 4), (4, 6), (6, 12), (0, 5), (3, 0)])
def test_knapsack_matches_brute_force(max_bullets, max_lines):
    """Test that the DP finds the best feasible combination."""
    result = KnapsackAllocator(max_bullets, max_lines).allocate(_stories(), RANKED, SKILLS)

    assert result.value == pytest.approx(_brute_force_best(_stories(), max_bullets, max_lines))
    assert result.bullets_used <= max_bullets
    assert result.lines_used <= max_lines
    assert result.bullets_used == len(result.selected_ids())
    assert result.lines_used == sum(s.estimated_lines for s in result.selections)


@pytest.mark.unit
def test_knapsack_selections_in_story_order():
    """Test that backtracking returns selections in input story order."""
    result = KnapsackAllocator(10, 20).allocate(_stories(), RANKED, SKILLS)

    order = [s.id for s in _stories()]
    chosen = [s.story_id for s in result.selections]
    assert chosen == sorted(chosen, key=order.index)
    assert len(set(result.selected_ids())) == len(result.selected_ids())


@pytest.mark.unit
def test_knapsack_tie_prefers_fewer_lines():
    """Test that equal scores resolve to fewer bullets, then fewer lines."""
    story = Story(id="s", bullets=(_bullet("long", [], 150), _bullet("short", [], 50)))
    result = KnapsackAllocator(2, 5).allocate([story], [RankedStory(story_id="s", relevance_score=0.5)], [])

    assert result.selected_ids() == ["short"]
    assert result.value == pytest.approx(0.3)


@pytest.mark.unit
def test_knapsack_tie_same_cell_keeps_first_option():
    """Test that options landing in the same cell keep the first one written."""
    story = Story(id="s", bullets=(_bullet("first", [], 50), _bullet("second", [], 50)))
    result = KnapsackAllocator(2, 5).allocate([story], [RankedStory(story_id="s", relevance_score=0.5)], [])

    assert result.selected_ids() == ["first"]


@pytest.mark.unit
def test_knapsack_empty_stories():
    """Test that no stories gives an empty result."""
    result = KnapsackAllocator(5, 5).allocate([], RANKED, SKILLS)

    assert result.selections == []
    assert result.value == 0.0


@pytest.mark.unit
def test_knapsack_negative_caps_raise():
    """Test that infeasible caps raise SolverError."""
    with pytest.raises(SolverError, match="no valid solution found"):
        KnapsackAllocator(-1, 5).allocate(_stories(), RANKED, SKILLS)


@pytest.mark.unit
def test_story_options_capped_per_story():
    """Test that large stories only enumerate their first bullets."""
    story = Story(id="big", bullets=tuple(_bullet(f"b{i}", [], 50) for i in range(MAX_BULLETS_PER_STORY + 2)))
    options = KnapsackAllocator(20, 40).story_options(story, None, SKILLS)

    assert len(options) == 2**MAX_BULLETS_PER_STORY - 1
    assert all("b8" not in o.bullet_ids and "b9" not in o.bullet_ids for o in options)
