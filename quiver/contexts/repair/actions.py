"""
Repair actions: the edits a proposer may request on a plan.

Only shorten_bullet, drop_bullet and swap_story change anything.
tighten_section and adjust_template_params are accepted but reserved: they
pass validation and are skipped (with a warning) when applied.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from quiver.contexts.repair.exceptions import ActionValidationError, RepairError
from quiver.contexts.repair.logger import _log_warning
from quiver.contexts.targeting.data_structures import Plan, RankedStory, RewrittenBullet
from quiver.utils.llm import parse_object_response

MAX_ACTIONS = 5


class ActionType:
    """Enum-like class for repair action types"""

    SHORTEN_BULLET = "shorten_bullet"
    DROP_BULLET = "drop_bullet"
    SWAP_STORY = "swap_story"
    TIGHTEN_SECTION = "tighten_section"
    ADJUST_TEMPLATE_PARAMS = "adjust_template_params"

    RESERVED = (TIGHTEN_SECTION, ADJUST_TEMPLATE_PARAMS)
    ALL = (SHORTEN_BULLET, DROP_BULLET, SWAP_STORY, TIGHTEN_SECTION, ADJUST_TEMPLATE_PARAMS)


@dataclass
class RepairAction:
    """One proposed edit, with the reason the proposer gave for it."""

    type: str
    reason: str = ""
    bullet_id: str = ""
    story_id: str = ""
    target_chars: Optional[int] = None
    section: str = ""
    template_params: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RepairAction":
        target = data.get("target_chars")
        return cls(
            type=data.get("type", "") or "",
            reason=data.get("reason", "") or "",
            bullet_id=data.get("bullet_id", "") or "",
            story_id=data.get("story_id", "") or "",
            target_chars=int(target) if target is not None else None,
            section=data.get("section", "") or "",
            template_params=dict(data.get("template_params") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {"type": self.type, "reason": self.reason}
        if self.bullet_id:
            data["bullet_id"] = self.bullet_id
        if self.story_id:
            data["story_id"] = self.story_id
        if self.target_chars is not None:
            data["target_chars"] = self.target_chars
        if self.section:
            data["section"] = self.section
        if self.template_params:
            data["template_params"] = dict(self.template_params)
        return data


def truncate_actions(actions: List[RepairAction], limit: int = MAX_ACTIONS) -> List[RepairAction]:
    """Keep at most limit actions, in proposal order."""
    if len(actions) > limit:
        _log_warning(f"Proposer returned {len(actions)} actions, keeping the first {limit}")
        return list(actions[:limit])
    return list(actions)


def parse_repair_response(text: str) -> List[RepairAction]:
    """
    Parse {"actions": [...]} from an LLM response (fenced or bare JSON).

    Raises:
        RepairError: If the response holds no valid actions object
    """
    try:
        payload = parse_object_response(text)
        raw_actions = payload["actions"]
        if not isinstance(raw_actions, list):
            raise ValueError(f"'actions' must be a list, got {type(raw_actions).__name__}")
        return [RepairAction.from_dict(a) for a in raw_actions]
    except (KeyError, TypeError, ValueError) as e:
        raise RepairError("failed to parse repair actions", e) from e


def validate_proposed_actions(
    actions: List[RepairAction],
    plan: Plan,
    rewritten_bullets: List[RewrittenBullet],
    ranked_stories: List[RankedStory],
) -> None:
    """
    Check a batch of actions against the current state.

    Raises:
        ActionValidationError: On the first invalid action, with its index
    """
    plan_story_ids = set(plan.story_ids())
    plan_bullet_ids = set(plan.bullet_ids())
    rewritten_ids = {b.original_bullet_id for b in rewritten_bullets}

    for i, action in enumerate(actions):
        if action.type == ActionType.SHORTEN_BULLET:
            if not action.bullet_id:
                raise ActionValidationError("bullet_id is required for shorten_bullet", i)
            if action.bullet_id not in rewritten_ids:
                raise ActionValidationError(
                    f"bullet_id {action.bullet_id} not found in rewritten bullets", i
                )
            if action.target_chars is None:
                raise ActionValidationError("target_chars is required for shorten_bullet", i)
            if action.target_chars <= 0:
                raise ActionValidationError("target_chars must be positive", i)

        elif action.type == ActionType.DROP_BULLET:
            if not action.bullet_id:
                raise ActionValidationError("bullet_id is required for drop_bullet", i)
            if action.bullet_id not in plan_bullet_ids:
                raise ActionValidationError(f"bullet_id {action.bullet_id} not found in plan", i)

        elif action.type == ActionType.SWAP_STORY:
            if not action.story_id:
                raise ActionValidationError("story_id is required for swap_story", i)
            if action.story_id not in plan_story_ids:
                raise ActionValidationError(f"story_id {action.story_id} not found in plan", i)
            if not any(r.story_id and r.story_id not in plan_story_ids for r in ranked_stories):
                raise ActionValidationError("no alternative stories available for swap", i)

        elif action.type not in ActionType.RESERVED:
            raise ActionValidationError(f"unknown action type: {action.type}", i)

        if not action.reason.strip():
            raise ActionValidationError("reason is required", i)
