"""
Hybrid greedy + knapsack planning.

Phase 1 spends skill_match_ratio of the line budget on the greedy skill pass,
so every heavy skill gets a dedicated bullet. Phase 2 runs the knapsack over
the bullets greedy left unused, with whatever lines and bullets remain.
"""

import math
from typing import Dict, List

from quiver.contexts.targeting.data_structures import (
    AllocationResult,
    RankedStory,
    SkillTarget,
    SpaceBudget,
    Story,
    StorySelection,
)
from quiver.contexts.targeting.exceptions import SolverError
from quiver.contexts.targeting.greedy import GreedyAllocator
from quiver.contexts.targeting.knapsack import KnapsackAllocator
from quiver.contexts.targeting.logger import _log_warning, log_phase_result


class HybridPlanner:
    """
    Runs the greedy skill pass and fills leftover space with the knapsack.

    A knapsack failure never escapes: the planner falls back to the greedy result.

    Example:
        >>> planner = HybridPlanner(SpaceBudget(max_bullets=10, max_lines=20))
        >>> result = planner.plan(stories, ranked_stories, skill_targets)
    """

    def __init__(self, space_budget: SpaceBudget):
        self.space_budget = space_budget

    @property
    def greedy_budget(self) -> int:
        budget = self.space_budget
        return min(budget.max_lines, math.floor(budget.max_lines * budget.effective_skill_match_ratio))

    def plan(
        self,
        stories: List[Story],
        ranked_stories: List[RankedStory],
        skill_targets: List[SkillTarget],
    ) -> AllocationResult:
        budget = self.space_budget

        greedy = GreedyAllocator(self.greedy_budget, max_bullets=budget.max_bullets).allocate(
            stories, skill_targets
        )
        log_phase_result("greedy", greedy.bullets_used, greedy.lines_used, greedy.value)

        remaining_lines = budget.max_lines - greedy.lines_used
        remaining_bullets = budget.max_bullets - greedy.bullets_used
        if remaining_lines <= 0 or remaining_bullets <= 0:
            return greedy

        used = set(greedy.selected_ids())
        filtered = []
        for story in stories:
            bullets = [b for b in story.bullets if b.id not in used]
            if bullets:
                filtered.append(story.with_bullets(bullets))

        try:
            knapsack = KnapsackAllocator(remaining_bullets, remaining_lines).allocate(
                filtered, ranked_stories, skill_targets
            )
        except SolverError as e:
            _log_warning(f"Knapsack phase failed, keeping greedy selection: {e}")
            return greedy
        log_phase_result("knapsack", knapsack.bullets_used, knapsack.lines_used, knapsack.value)

        return self._merge(stories, greedy, knapsack)

    @staticmethod
    def _merge(
        stories: List[Story], greedy: AllocationResult, knapsack: AllocationResult
    ) -> AllocationResult:
        """Union both phases per story, in story order then bank bullet order."""
        chosen: Dict[str, set] = {}
        for result in (greedy, knapsack):
            for selection in result.selections:
                chosen.setdefault(selection.story_id, set()).update(selection.bullet_ids)

        selections = []
        lines_used = 0
        bullets_used = 0
        for story in stories:
            ids = chosen.pop(story.id, None)
            if not ids:
                continue
            bullets = [b for b in story.bullets if b.id in ids]
            lines = sum(b.estimated_lines for b in bullets)
            selections.append(
                StorySelection(
                    story_id=story.id,
                    bullet_ids=[b.id for b in bullets],
                    estimated_lines=lines,
                )
            )
            lines_used += lines
            bullets_used += len(bullets)

        return AllocationResult(
            selections=selections,
            value=greedy.value + knapsack.value,
            lines_used=lines_used,
            bullets_used=bullets_used,
        )
