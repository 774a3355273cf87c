"""
Repair proposers.

A Proposer looks at the current violations and suggests RepairActions.
OverflowProposer is deterministic and needs no network access; LLMProposer
asks a language model, which can also choose to swap whole stories.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Set

from quiver.contexts.rendering.overflow import OverflowAnalysis, analyze_page_overflow
from quiver.contexts.rendering.violations import Violation, ViolationType
from quiver.contexts.repair.actions import MAX_ACTIONS, ActionType, RepairAction, parse_repair_response
from quiver.contexts.repair.logger import _log_debug
from quiver.contexts.targeting.data_structures import (
    CompanyProfile,
    ExperienceBank,
    JobProfile,
    Plan,
    RankedStory,
    RewrittenBullet,
)
from quiver.contexts.targeting.relevance import RelevanceScorer, ScoredBullet
from quiver.utils.llm import LLMProvider, get_provider

SHORTEN_FACTOR = 0.8
MAX_ALTERNATIVES = 10


class Proposer(ABC):
    """Suggests repair actions for a set of violations."""

    @abstractmethod
    def propose(
        self,
        violations: List[Violation],
        plan: Plan,
        rewritten_bullets: List[RewrittenBullet],
        ranked_stories: List[RankedStory],
        job_profile: JobProfile,
        company_profile: Optional[CompanyProfile],
    ) -> List[RepairAction]:
        """Return proposed actions; an empty list means nothing to suggest."""


# =============================================================================
# DETERMINISTIC PROPOSALS
# =============================================================================


def _format_drop_reason(scored: ScoredBullet, overflow: OverflowAnalysis) -> str:
    c = scored.components
    return (
        f"Dropping to resolve page overflow ({overflow.excess_pages:.1f} excess pages). "
        f"Bullet scored {scored.score:.2f} (story: {c.story_relevance:.2f}, "
        f"skills: {c.skill_coverage:.2f}, efficiency: {c.length_efficiency:.2f}, "
        f"style: {c.style_quality:.2f})"
    )


def propose_bullet_drops(
    overflow: Optional[OverflowAnalysis],
    bullets: List[RewrittenBullet],
    plan: Optional[Plan],
    ranked_stories: Optional[List[RankedStory]],
    experience_bank: Optional[ExperienceBank],
) -> List[RepairAction]:
    """
    Drop actions for the least relevant bullets when the overflow requires drops.

    Returns min(overflow.bullets_to_drop_count(), len(bullets)) actions, lowest
    scored first, or an empty list when nothing must be dropped.
    """
    if overflow is None or not overflow.must_drop or not bullets:
        return []

    count = min(overflow.bullets_to_drop_count(), len(bullets))
    if count <= 0:
        return []

    scored = RelevanceScorer(ranked_stories, experience_bank).score_all(bullets, plan)
    return [
        RepairAction(
            type=ActionType.DROP_BULLET,
            bullet_id=s.bullet_id,
            story_id=s.story_id or "",
            reason=_format_drop_reason(s, overflow),
        )
        for s in scored[:count]
    ]


class OverflowProposer(Proposer):
    """
    Rule-based proposer.

    - page_overflow: drop the least relevant bullets, or shorten the longest
      bullet to 80% when shortening is enough
    - forbidden_phrase on a bullet: regenerate it at its current length
    - line_too_long on a bullet: shorten it by the excess characters

    Never more than MAX_ACTIONS actions and never two actions for one bullet.

    Example:
        >>> proposer = OverflowProposer(experience_bank, max_pages=1, max_chars_per_line=110)
        >>> actions = proposer.propose(violations, plan, rewritten, ranked, job, company)
    """

    def __init__(self, experience_bank: ExperienceBank, max_pages: int, max_chars_per_line: int):
        self.experience_bank = experience_bank
        self.max_pages = max_pages
        self.max_chars_per_line = max_chars_per_line

    def propose(
        self,
        violations: List[Violation],
        plan: Plan,
        rewritten_bullets: List[RewrittenBullet],
        ranked_stories: List[RankedStory],
        job_profile: JobProfile,
        company_profile: Optional[CompanyProfile],
    ) -> List[RepairAction]:
        actions: List[RepairAction] = []
        used: Set[str] = set()
        by_id = {b.original_bullet_id: b for b in rewritten_bullets}

        def add(action: RepairAction) -> None:
            if len(actions) < MAX_ACTIONS and action.bullet_id not in used:
                actions.append(action)
                used.add(action.bullet_id)

        for violation in violations:
            if violation.type != ViolationType.PAGE_OVERFLOW or violation.page_count is None:
                continue
            overflow = analyze_page_overflow(violation.page_count, self.max_pages, rewritten_bullets)
            if overflow.must_drop:
                for action in propose_bullet_drops(
                    overflow, rewritten_bullets, plan, ranked_stories, self.experience_bank
                ):
                    add(action)
            elif overflow.can_shorten and rewritten_bullets:
                longest = max(rewritten_bullets, key=lambda b: b.length_chars)
                add(
                    RepairAction(
                        type=ActionType.SHORTEN_BULLET,
                        bullet_id=longest.original_bullet_id,
                        target_chars=max(1, int(longest.length_chars * SHORTEN_FACTOR)),
                        reason=f"Shortening longest bullet to resolve page overflow "
                        f"({overflow.excess_lines} excess lines)",
                    )
                )
            break

        for violation in violations:
            bullet = by_id.get(violation.bullet_id) if violation.bullet_id else None
            if bullet is None:
                continue

            if violation.type == ViolationType.FORBIDDEN_PHRASE:
                add(
                    RepairAction(
                        type=ActionType.SHORTEN_BULLET,
                        bullet_id=bullet.original_bullet_id,
                        target_chars=max(1, bullet.length_chars),
                        reason=f"Rewriting to remove forbidden phrase: {violation.details}",
                    )
                )
            elif violation.type == ViolationType.LINE_TOO_LONG:
                excess = (violation.char_count or 0) - self.max_chars_per_line
                target = bullet.length_chars - excess if excess > 0 else 0
                if target <= 0:
                    target = int(bullet.length_chars * SHORTEN_FACTOR)
                add(
                    RepairAction(
                        type=ActionType.SHORTEN_BULLET,
                        bullet_id=bullet.original_bullet_id,
                        target_chars=max(1, target),
                        reason=f"Shortening to fit line length: {violation.details}",
                    )
                )

        _log_debug(f"  Rule-based proposer suggested {len(actions)} action(s)")
        return actions


# =============================================================================
# LLM PROPOSALS
# =============================================================================

_SYSTEM_PROMPT = """\
You repair resumes that break layout and content constraints. You propose a
small number of concrete edits. Return ONLY a JSON object: no markdown, no explanation."""

_INTRO = """\
The resume below was rendered and validated, and it breaks the constraints listed
under Violations. Propose repair actions that resolve as many violations as possible
while keeping the strongest content for the job.

"""

_ACTION_TYPES = """\
## Action Types

- shorten_bullet: rewrite a bullet to at most target_chars characters.
  Fields: bullet_id, target_chars (positive integer), reason
- drop_bullet: remove a bullet from the resume. Fields: bullet_id, reason
- swap_story: replace a story with the best alternative story not in the resume.
  Fields: story_id, reason
- tighten_section: reserved, currently ignored. Fields: section, reason
- adjust_template_params: reserved, currently ignored. Fields: template_params, reason

"""

_INSTRUCTIONS = """\
## Instructions

- Propose at most 5 actions, most important first
- Prefer shorten_bullet for line length and forbidden phrase violations
- Prefer drop_bullet on the least relevant bullets for page overflow
- Only use bullet_id and story_id values shown above
- Every action needs a non-empty reason

Respond with:
{"actions": [{"type": "...", "bullet_id": "...", "target_chars": 0, "reason": "..."}]}
"""


def build_repair_prompt(
    violations: List[Violation],
    plan: Plan,
    rewritten_bullets: List[RewrittenBullet],
    ranked_stories: List[RankedStory],
    job_profile: JobProfile,
    company_profile: Optional[CompanyProfile],
) -> str:
    lines = [_INTRO.rstrip("\n"), "", "## Violations", ""]
    for i, v in enumerate(violations, 1):
        lines.append(f"{i}. Type: {v.type}, Severity: {v.severity}")
        lines.append(f"   Details: {v.details}")
        if v.line_number is not None:
            lines.append(f"   Line: {v.line_number}")
        if v.char_count is not None:
            lines.append(f"   Character count: {v.char_count}")
        if v.bullet_id:
            lines.append(f"   Bullet: {v.bullet_id}")
        lines.append("")

    lines += ["## Current Resume Plan", "", f"Selected Stories: {len(plan.selected_stories)}"]
    for selection in plan.selected_stories:
        lines.append(
            f"- Story ID: {selection.story_id}, Bullets: {selection.bullet_ids}, "
            f"Section: {selection.section}"
        )
    lines.append("")

    lines += ["## Current Rewritten Bullets", ""]
    for i, b in enumerate(rewritten_bullets, 1):
        lines.append(
            f"{i}. ID: {b.original_bullet_id}, Length: {b.length_chars} chars, "
            f"Lines: {b.estimated_lines}"
        )
        lines.append(f"   Text: {b.final_text}")
        lines.append("")

    lines += ["## Available Alternative Stories", ""]
    for story in ranked_stories[:MAX_ALTERNATIVES]:
        lines.append(
            f"- Story ID: {story.story_id}, Relevance: {story.relevance_score:.2f}, "
            f"Skills: {story.matched_skills}"
        )
    lines.append("")

    lines += ["## Job Requirements", "", f"Role: {job_profile.role_title}", f"Company: {job_profile.company}"]
    if job_profile.hard_requirements:
        lines.append("Hard Requirements:")
        lines.extend(f"- {r.skill}" for r in job_profile.hard_requirements)
    lines.append("")

    if company_profile is not None:
        lines += ["## Company Brand Voice", ""]
        if company_profile.taboo_phrases:
            lines.append("Taboo Phrases to Avoid:")
            lines.extend(f"- {p}" for p in company_profile.taboo_phrases)
        lines.append("")

    return "\n".join(lines) + "\n" + _ACTION_TYPES + _INSTRUCTIONS


class LLMProposer(Proposer):
    """
    Proposes repairs with one LLM call per iteration.

    Example:
        >>> proposer = LLMProposer(provider_name="openai")
        >>> actions = proposer.propose(violations, plan, rewritten, ranked, job, company)
    """

    def __init__(
        self,
        provider: Optional[LLMProvider] = None,
        provider_name: Optional[str] = None,
        model: Optional[str] = None,
    ):
        self._provider = provider
        self._provider_name = provider_name
        self._model = model

    @property
    def provider(self) -> LLMProvider:
        if self._provider is None:
            self._provider = get_provider(provider_name=self._provider_name, model=self._model)
        return self._provider

    def propose(
        self,
        violations: List[Violation],
        plan: Plan,
        rewritten_bullets: List[RewrittenBullet],
        ranked_stories: List[RankedStory],
        job_profile: JobProfile,
        company_profile: Optional[CompanyProfile],
    ) -> List[RepairAction]:
        user_prompt = build_repair_prompt(
            violations, plan, rewritten_bullets, ranked_stories, job_profile, company_profile
        )
        response = self.provider.generate(system_prompt=_SYSTEM_PROMPT, user_prompt=user_prompt)
        _log_debug(
            f"  {self.provider.name}: {response.input_tokens} in / {response.output_tokens} out tokens"
        )
        return parse_repair_response(response.content)
