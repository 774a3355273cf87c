"""Bullet-to-skill matching and skill coverage scoring."""

from typing import Iterable, List

from quiver.contexts.targeting.data_structures import Bullet, SkillTarget, estimate_lines
from quiver.contexts.targeting.skill_targets import normalize_skill_name

TAG_MATCH_SCORE = 1.0
TEXT_MATCH_SCORE = 0.8

__all__ = ["estimate_lines", "score_bullet_against_skill", "skill_coverage_score"]


def score_bullet_against_skill(bullet: Bullet, skill: str) -> float:
    """
    How strongly a bullet evidences a skill.

    Returns:
        1.0 for a tagged skill match, 0.8 when the skill only appears in the
        bullet text, 0.0 otherwise (including an empty skill name)
    """
    skill = normalize_skill_name(skill)
    if not skill:
        return 0.0

    for tag in bullet.skills:
        if normalize_skill_name(tag) == skill:
            return TAG_MATCH_SCORE

    if skill in bullet.text.lower():
        return TEXT_MATCH_SCORE

    return 0.0


def skill_coverage_score(bullets: Iterable[Bullet], skill_targets: List[SkillTarget]) -> float:
    """
    Weighted share of target skills covered by the bullets' skill tags.

    Each distinct target counts once. Returns 0.0 with no targets or zero total weight.
    """
    if not skill_targets:
        return 0.0

    weights = {}
    for target in skill_targets:
        name = normalize_skill_name(target.name)
        weights[name] = max(weights.get(name, 0.0), target.weight)

    total_weight = sum(weights.values())
    if total_weight <= 0:
        return 0.0

    tagged = {normalize_skill_name(tag) for bullet in bullets for tag in bullet.skills}
    covered_weight = sum(weight for name, weight in weights.items() if name in tagged)
    return covered_weight / total_weight
