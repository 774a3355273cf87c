"""
Two-constraint knapsack over per-story bullet combinations.

Each story contributes at most one option: a non-empty subset of its bullets,
valued as 0.6 * story relevance + 0.4 * skill coverage of the subset. The DP
runs over (story index, bullets used, lines used). Cells live in one flat
arena of parallel lists (score, parent index, option index); each layer keeps
a dense lookup table from (bullets, lines) to arena index plus the list of
reachable arena indices in the order they were written.

Tie-breaking is deterministic:
- within a layer, the first cell written keeps an equal score; the skip
  transition is written before any include, and includes follow option order
- among final cells, the highest score wins, then fewer bullets, then fewer lines
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from quiver.contexts.targeting.data_structures import (
    AllocationResult,
    Bullet,
    RankedStory,
    SkillTarget,
    Story,
    StorySelection,
)
from quiver.contexts.targeting.exceptions import SolverError
from quiver.contexts.targeting.logger import _log_debug, _log_warning
from quiver.contexts.targeting.matching import skill_coverage_score

RELEVANCE_WEIGHT = 0.6
SKILL_WEIGHT = 0.4

MAX_BULLETS_PER_STORY = 8

SKIP = -1
NO_PARENT = -1


@dataclass
class StoryValue:
    """Value and costs of taking one bullet combination from a story."""

    value: float
    cost_bullets: int
    cost_lines: int
    bullet_ids: List[str]


def generate_bullet_combinations(bullets: List[Bullet]) -> List[List[Bullet]]:
    """
    All non-empty subsets of bullets (2^k - 1 of them).

    Subsets come in bitmask order: bit j of the mask selects bullets[j], masks
    run from 1 to 2^k - 1, and each subset keeps the input bullet order.
    """
    n = len(bullets)
    return [
        [bullets[j] for j in range(n) if mask & (1 << j)]
        for mask in range(1, 1 << n)
    ]


def compute_story_value(
    ranked_story: Optional[RankedStory],
    bullets: List[Bullet],
    skill_targets: List[SkillTarget],
) -> StoryValue:
    """Value one bullet combination; an unranked story has zero relevance."""
    relevance = ranked_story.relevance_score if ranked_story is not None else 0.0
    coverage = skill_coverage_score(bullets, skill_targets)
    return StoryValue(
        value=RELEVANCE_WEIGHT * relevance + SKILL_WEIGHT * coverage,
        cost_bullets=len(bullets),
        cost_lines=sum(b.estimated_lines for b in bullets),
        bullet_ids=[b.id for b in bullets],
    )


class _Arena:
    """Flat storage for DP cells with integer back-pointers."""

    def __init__(self):
        self.scores: List[float] = []
        self.parents: List[int] = []
        self.options: List[int] = []
        self.bullets: List[int] = []
        self.lines: List[int] = []

    def add(self, score: float, parent: int, option: int, bullets: int, lines: int) -> int:
        self.scores.append(score)
        self.parents.append(parent)
        self.options.append(option)
        self.bullets.append(bullets)
        self.lines.append(lines)
        return len(self.scores) - 1

    def overwrite(self, index: int, score: float, parent: int, option: int) -> None:
        self.scores[index] = score
        self.parents[index] = parent
        self.options[index] = option


class KnapsackAllocator:
    """
    Maximizes summed story values under a bullet cap and a line cap.

    Example:
        >>> allocator = KnapsackAllocator(max_bullets=6, max_lines=12)
        >>> result = allocator.allocate(stories, ranked_stories, skill_targets)
    """

    def __init__(self, max_bullets: int, max_lines: int):
        self.max_bullets = max_bullets
        self.max_lines = max_lines

    def story_options(
        self,
        story: Story,
        ranked_story: Optional[RankedStory],
        skill_targets: List[SkillTarget],
    ) -> List[StoryValue]:
        bullets = list(story.bullets)
        if len(bullets) > MAX_BULLETS_PER_STORY:
            _log_warning(
                f"Story {story.id} has {len(bullets)} bullets; only the first "
                f"{MAX_BULLETS_PER_STORY} are considered"
            )
            bullets = bullets[:MAX_BULLETS_PER_STORY]
        return [
            compute_story_value(ranked_story, combo, skill_targets)
            for combo in generate_bullet_combinations(bullets)
        ]

    def allocate(
        self,
        stories: List[Story],
        ranked_stories: List[RankedStory],
        skill_targets: List[SkillTarget],
    ) -> AllocationResult:
        """
        Raises:
            SolverError: If no state fits the caps
        """
        if not stories:
            return AllocationResult()

        ranked: Dict[str, RankedStory] = {}
        for r in ranked_stories:
            ranked.setdefault(r.story_id, r)

        options = [self.story_options(s, ranked.get(s.id), skill_targets) for s in stories]
        final_cell, arena = self._solve(options)

        chosen: List[Optional[StoryValue]] = [None] * len(stories)
        cell = final_cell
        layer = len(stories) - 1
        while layer >= 0:
            option = arena.options[cell]
            if option != SKIP:
                chosen[layer] = options[layer][option]
            cell = arena.parents[cell]
            layer -= 1

        selections = [
            StorySelection(
                story_id=story.id,
                bullet_ids=list(value.bullet_ids),
                estimated_lines=value.cost_lines,
            )
            for story, value in zip(stories, chosen)
            if value is not None
        ]

        _log_debug(
            f"  Knapsack chose {len(selections)}/{len(stories)} stories "
            f"({arena.bullets[final_cell]} bullets, {arena.lines[final_cell]} lines)"
        )

        return AllocationResult(
            selections=selections,
            value=arena.scores[final_cell],
            lines_used=arena.lines[final_cell],
            bullets_used=arena.bullets[final_cell],
        )

    def _solve(self, options: List[List[StoryValue]]):
        """Fill the DP layers and return (best final arena index, arena)."""
        arena = _Arena()
        if self.max_bullets < 0 or self.max_lines < 0:
            raise SolverError("no valid solution found")

        # Caps beyond what all stories could use add only unreachable cells
        bullet_cap = min(
            self.max_bullets, sum(max((o.cost_bullets for o in opts), default=0) for opts in options)
        )
        line_cap = min(
            self.max_lines, sum(max((o.cost_lines for o in opts), default=0) for opts in options)
        )
        width = line_cap + 1

        base = arena.add(0.0, NO_PARENT, SKIP, 0, 0)
        previous = [base]

        for story_options in options:
            table = [NO_PARENT] * ((bullet_cap + 1) * width)
            reachable: List[int] = []

            def write(score: float, parent: int, option: int, bullets: int, lines: int) -> None:
                slot = bullets * width + lines
                existing = table[slot]
                if existing == NO_PARENT:
                    table[slot] = arena.add(score, parent, option, bullets, lines)
                    reachable.append(table[slot])
                elif score > arena.scores[existing]:
                    arena.overwrite(existing, score, parent, option)

            for parent in previous:
                write(arena.scores[parent], parent, SKIP, arena.bullets[parent], arena.lines[parent])

            for option_index, option in enumerate(story_options):
                for parent in previous:
                    bullets = arena.bullets[parent] + option.cost_bullets
                    lines = arena.lines[parent] + option.cost_lines
                    if bullets > bullet_cap or lines > line_cap:
                        continue
                    write(arena.scores[parent] + option.value, parent, option_index, bullets, lines)

            previous = reachable

        if not previous:
            raise SolverError("no valid solution found")

        best = previous[0]
        for cell in previous[1:]:
            if arena.scores[cell] > arena.scores[best] or (
                arena.scores[cell] == arena.scores[best]
                and (arena.bullets[cell], arena.lines[cell]) < (arena.bullets[best], arena.lines[best])
            ):
                best = cell

        return best, arena
