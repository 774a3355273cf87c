"""
One-shot resume planning.

select_plan() turns ranked stories and a job profile into a Plan that fits
the space budget; materialize_bullets() pulls the planned bullets out of the
experience bank for rewriting.
"""

from typing import List

from quiver.contexts.targeting.data_structures import (
    Bullet,
    Coverage,
    ExperienceBank,
    JobProfile,
    Plan,
    RankedStory,
    SelectedBullet,
    SkillTarget,
    SpaceBudget,
)
from quiver.contexts.targeting.exceptions import ContentReferenceError, SelectionError
from quiver.contexts.targeting.hybrid import HybridPlanner
from quiver.contexts.targeting.logger import (
    log_missing_references,
    log_plan_summary,
    log_selection_start,
)
from quiver.contexts.targeting.matching import skill_coverage_score
from quiver.contexts.targeting.skill_targets import build_skill_targets, normalize_skill_name

MAX_TOP_SKILLS = 10


def compute_coverage(bullets: List[Bullet], skill_targets: List[SkillTarget]) -> Coverage:
    """
    Skill coverage of the selected bullets.

    top_skills_covered lists up to MAX_TOP_SKILLS covered targets, heaviest first.
    """
    if not skill_targets:
        return Coverage()

    tagged = {normalize_skill_name(tag) for bullet in bullets for tag in bullet.skills}
    covered = [t for t in skill_targets if normalize_skill_name(t.name) in tagged]

    top = []
    for target in sorted(covered, key=lambda t: t.weight, reverse=True):
        if target.name not in top:
            top.append(target.name)

    return Coverage(
        top_skills_covered=top[:MAX_TOP_SKILLS],
        coverage_score=skill_coverage_score(bullets, skill_targets),
    )


def select_plan(
    ranked_stories: List[RankedStory],
    job_profile: JobProfile,
    experience_bank: ExperienceBank,
    space_budget: SpaceBudget,
) -> Plan:
    """
    Select stories and bullets for a resume within the space budget.

    Stories are considered in ranked order; ranked ids missing from the bank
    are skipped with a warning.

    Returns:
        Plan with total_lines() <= max_lines, total_bullets() <= max_bullets and
        each bullet id in at most one selection

    Raises:
        SelectionError: If the job profile yields no skill targets
    """
    if not ranked_stories:
        return Plan.empty(space_budget)

    try:
        skill_targets = build_skill_targets(job_profile)
    except SelectionError as e:
        raise SelectionError("failed to build skill targets", cause=e) from e

    stories = []
    seen = set()
    missing = []
    for ranked in ranked_stories:
        if ranked.story_id in seen:
            continue
        seen.add(ranked.story_id)
        story = experience_bank.get_story(ranked.story_id)
        if story is None:
            missing.append(ranked.story_id)
        else:
            stories.append(story)
    log_missing_references("story", missing)

    if not stories:
        return Plan.empty(space_budget)

    log_selection_start(len(stories), len(skill_targets), space_budget.max_bullets, space_budget.max_lines)

    result = HybridPlanner(space_budget).plan(stories, ranked_stories, skill_targets)

    selected = [experience_bank.get_bullet(bid) for bid in result.selected_ids()]
    plan = Plan(
        selected_stories=result.selections,
        space_budget=space_budget,
        coverage=compute_coverage(selected, skill_targets),
    )
    log_plan_summary(plan)
    return plan


def materialize_bullets(plan: Plan, experience_bank: ExperienceBank) -> List[SelectedBullet]:
    """
    Bullets of the plan in plan order, copied out of the experience bank.

    Raises:
        ContentReferenceError: If a planned story or bullet is not in the bank,
                               or a bullet belongs to a different story
    """
    result = []
    for selection in plan.selected_stories:
        story = experience_bank.get_story(selection.story_id)
        if story is None:
            raise ContentReferenceError(
                "story",
                selection.story_id,
                f"story not found in experience bank (story_id: {selection.story_id})",
            )

        bullets = {b.id: b for b in story.bullets}
        for bullet_id in selection.bullet_ids:
            bullet = bullets.get(bullet_id)
            if bullet is None:
                raise ContentReferenceError(
                    "bullet",
                    bullet_id,
                    f"bullet not found in story (story_id: {story.id}, bullet_id: {bullet_id})",
                )
            result.append(
                SelectedBullet(
                    id=bullet.id,
                    story_id=story.id,
                    text=bullet.text,
                    skills=list(bullet.skills),
                    metrics=bullet.metrics,
                    length_chars=bullet.length_chars,
                )
            )

    return result
