"""
Greedy skill-first bullet allocation.

Walks the skill targets from heaviest to lightest and, for each skill not yet
strongly covered, takes the best unselected bullet for it while it still fits
the line budget. Guarantees that the most important skills get a dedicated
bullet before the knapsack pass optimizes overall value.
"""

from typing import Dict, List, Optional, Set, Tuple

from quiver.contexts.targeting.data_structures import (
    AllocationResult,
    Bullet,
    SkillTarget,
    Story,
    StorySelection,
)
from quiver.contexts.targeting.logger import _log_debug
from quiver.contexts.targeting.matching import TAG_MATCH_SCORE, score_bullet_against_skill


class GreedyAllocator:
    """
    Skill-first allocator with a line budget and an optional bullet cap.

    Ties between equally good bullets go to the first one encountered in story
    order, then bullet order.

    Example:
        >>> result = GreedyAllocator(max_lines=10).allocate(stories, skill_targets)
        >>> result.selected_ids()
        ['b_python', 'b_k8s', 'b_aws']
    """

    def __init__(self, max_lines: int, max_bullets: Optional[int] = None):
        self.max_lines = max_lines
        self.max_bullets = max_bullets

    def _is_full(self, lines_used: int, bullets_used: int) -> bool:
        if lines_used >= self.max_lines:
            return True
        return self.max_bullets is not None and bullets_used >= self.max_bullets

    def allocate(self, stories: List[Story], skill_targets: List[SkillTarget]) -> AllocationResult:
        candidates: List[Tuple[str, Bullet]] = [
            (story.id, bullet) for story in stories for bullet in story.bullets
        ]
        skills = sorted(skill_targets, key=lambda s: s.weight, reverse=True)

        selected: Set[str] = set()
        selected_bullets: List[Bullet] = []
        picks: Dict[str, List[Bullet]] = {}
        lines_used = 0
        value = 0.0

        for skill in skills:
            if self._is_full(lines_used, len(selected_bullets)):
                break

            if any(
                score_bullet_against_skill(b, skill.name) >= TAG_MATCH_SCORE
                for b in selected_bullets
            ):
                _log_debug(f"  '{skill.name}' already covered, skipping")
                continue

            best: Optional[Tuple[str, Bullet]] = None
            best_score = 0.0
            for story_id, bullet in candidates:
                if bullet.id in selected:
                    continue
                score = score_bullet_against_skill(bullet, skill.name)
                if score > best_score:
                    best_score = score
                    best = (story_id, bullet)

            if best is None:
                continue

            story_id, bullet = best
            lines = bullet.estimated_lines
            if lines_used + lines > self.max_lines:
                _log_debug(f"  Best bullet for '{skill.name}' ({bullet.id}) does not fit, skipping")
                continue

            selected.add(bullet.id)
            selected_bullets.append(bullet)
            picks.setdefault(story_id, []).append(bullet)
            lines_used += lines
            value += skill.weight * best_score

        selections = []
        for story in stories:
            bullets = picks.pop(story.id, None)
            if bullets:
                selections.append(
                    StorySelection(
                        story_id=story.id,
                        bullet_ids=[b.id for b in bullets],
                        estimated_lines=sum(b.estimated_lines for b in bullets),
                    )
                )

        return AllocationResult(
            selections=selections,
            value=value,
            lines_used=lines_used,
            bullets_used=len(selected_bullets),
        )
