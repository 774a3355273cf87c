"""
Deterministic application of validated repair actions.

apply_repairs() works on deep copies: the caller's plan and rewritten bullets
are never modified. It reports which bullets need fresh text (needs_rewrite)
and the target length for each shortened bullet (rewrite_targets).
"""

from dataclasses import dataclass, field
from typing import Dict, List

from quiver.contexts.repair.actions import ActionType, RepairAction
from quiver.contexts.repair.exceptions import ActionValidationError
from quiver.contexts.repair.logger import _log_debug, _log_warning
from quiver.contexts.targeting.data_structures import (
    ExperienceBank,
    Plan,
    RankedStory,
    RewrittenBullet,
    StorySelection,
    copy_rewritten,
)
from quiver.contexts.targeting.exceptions import ContentReferenceError


@dataclass
class ApplyResult:
    """
    State after applying one batch of actions.

    Attributes:
        plan: Updated plan (a copy)
        rewritten_bullets: Updated rewritten bullets (a copy)
        needs_rewrite: Bullet ids to regenerate, in the order they were marked
        rewrite_targets: Target character counts by bullet id (shortened bullets)
    """

    plan: Plan
    rewritten_bullets: List[RewrittenBullet]
    needs_rewrite: List[str] = field(default_factory=list)
    rewrite_targets: Dict[str, int] = field(default_factory=dict)

    def mark(self, bullet_id: str) -> None:
        if bullet_id not in self.needs_rewrite:
            self.needs_rewrite.append(bullet_id)

    def unmark(self, bullet_id: str) -> None:
        if bullet_id in self.needs_rewrite:
            self.needs_rewrite.remove(bullet_id)
        self.rewrite_targets.pop(bullet_id, None)


def _shorten_bullet(action: RepairAction, result: ApplyResult) -> None:
    if not any(b.original_bullet_id == action.bullet_id for b in result.rewritten_bullets):
        raise ContentReferenceError(
            "bullet", action.bullet_id, f"bullet_id {action.bullet_id} not found in rewritten bullets"
        )
    result.rewrite_targets[action.bullet_id] = action.target_chars
    result.mark(action.bullet_id)


def _drop_bullet(action: RepairAction, result: ApplyResult) -> None:
    """Remove a bullet everywhere; a bullet that is already gone is a no-op."""
    plan = result.plan
    for index, selection in enumerate(plan.selected_stories):
        if action.bullet_id in selection.bullet_ids:
            selection.bullet_ids.remove(action.bullet_id)
            if not selection.bullet_ids:
                del plan.selected_stories[index]
            break

    result.rewritten_bullets = [
        b for b in result.rewritten_bullets if b.original_bullet_id != action.bullet_id
    ]
    result.unmark(action.bullet_id)


def _swap_story(
    action: RepairAction,
    result: ApplyResult,
    ranked_stories: List[RankedStory],
    experience_bank: ExperienceBank,
) -> None:
    plan = result.plan
    index = next(
        (i for i, s in enumerate(plan.selected_stories) if s.story_id == action.story_id), None
    )
    if index is None:
        raise ContentReferenceError(
            "story", action.story_id, f"story_id {action.story_id} not found in plan"
        )

    in_plan = set(plan.story_ids())
    replacement = next(
        (r for r in ranked_stories if r.story_id and r.story_id not in in_plan), None
    )
    if replacement is None:
        raise ContentReferenceError(
            "story", action.story_id, "no suitable replacement story found in ranked stories"
        )

    story = experience_bank.get_story(replacement.story_id)
    if story is None:
        raise ContentReferenceError(
            "story",
            replacement.story_id,
            f"replacement story {replacement.story_id} not found in experience bank",
        )

    old = plan.selected_stories[index]
    new_ids = [b.id for b in story.bullets]
    plan.selected_stories[index] = StorySelection(
        story_id=story.id,
        bullet_ids=new_ids,
        section=old.section,
        estimated_lines=old.estimated_lines,
    )

    old_ids = set(old.bullet_ids)
    result.rewritten_bullets = [
        b for b in result.rewritten_bullets if b.original_bullet_id not in old_ids
    ]
    for bullet_id in old.bullet_ids:
        result.unmark(bullet_id)
    for bullet_id in new_ids:
        result.mark(bullet_id)


def recalculate_estimated_lines(plan: Plan, rewritten_bullets: List[RewrittenBullet]) -> None:
    """Set each selection's estimated_lines from its rewritten bullets, in place."""
    lines = {b.original_bullet_id: b.estimated_lines for b in rewritten_bullets}
    for selection in plan.selected_stories:
        missing = [bid for bid in selection.bullet_ids if bid not in lines]
        if missing:
            _log_debug(f"  {selection.story_id}: no rewritten text yet for {', '.join(missing)}")
        selection.estimated_lines = sum(lines.get(bid, 0) for bid in selection.bullet_ids)


def apply_repairs(
    actions: List[RepairAction],
    plan: Plan,
    rewritten_bullets: List[RewrittenBullet],
    ranked_stories: List[RankedStory],
    experience_bank: ExperienceBank,
) -> ApplyResult:
    """
    Apply actions in order to copies of plan and rewritten_bullets.

    - shorten_bullet: records the target length and marks the bullet
    - drop_bullet: removes the bullet from the plan (and its selection once
      empty) and from the rewritten bullets
    - swap_story: replaces the story with the first ranked story not in the
      plan, keeping the section, and marks all of the new story's bullets

    Raises:
        ContentReferenceError: If an action references a bullet or story that
                               an earlier action in the batch removed, or no
                               replacement story exists
        ActionValidationError: On an unknown action type
    """
    result = ApplyResult(plan=plan.copy(), rewritten_bullets=copy_rewritten(rewritten_bullets))

    for i, action in enumerate(actions):
        if action.type == ActionType.SHORTEN_BULLET:
            _shorten_bullet(action, result)
        elif action.type == ActionType.DROP_BULLET:
            _drop_bullet(action, result)
        elif action.type == ActionType.SWAP_STORY:
            _swap_story(action, result, ranked_stories, experience_bank)
        elif action.type in ActionType.RESERVED:
            _log_warning(f"Action {i}: {action.type} is not supported yet, skipping")
        else:
            raise ActionValidationError(f"unknown action type: {action.type}", i)

    recalculate_estimated_lines(result.plan, result.rewritten_bullets)
    return result
