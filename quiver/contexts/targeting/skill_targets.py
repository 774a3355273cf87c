"""
Skill target extraction from a job profile.

Hard requirements, nice-to-haves and keywords become weighted SkillTargets.
The same skill named in several places keeps its strongest weight.
"""

import re
from typing import Dict, List

from quiver.contexts.targeting.data_structures import JobProfile, SkillTarget
from quiver.contexts.targeting.exceptions import SelectionError

HARD_REQUIREMENT_WEIGHT = 1.0
NICE_TO_HAVE_WEIGHT = 0.5
KEYWORD_WEIGHT = 0.3

SOURCE_PRIORITY = {"hard_requirement": 0, "nice_to_have": 1, "keyword": 2}


def normalize_skill_name(name: str) -> str:
    """Lowercase, trim and collapse internal whitespace."""
    return re.sub(r"\s+", " ", name.strip().lower())


def build_skill_targets(job_profile: JobProfile) -> List[SkillTarget]:
    """
    Build weighted skill targets from a job profile.

    Returns:
        Targets sorted by weight descending; equal weights keep first appearance

    Raises:
        SelectionError: If the profile names no skills
    """
    weighted_names = (
        [(r.skill, HARD_REQUIREMENT_WEIGHT, "hard_requirement") for r in job_profile.hard_requirements]
        + [(r.skill, NICE_TO_HAVE_WEIGHT, "nice_to_have") for r in job_profile.nice_to_haves]
        + [(k, KEYWORD_WEIGHT, "keyword") for k in job_profile.keywords]
    )

    targets: Dict[str, SkillTarget] = {}
    for raw_name, weight, source in weighted_names:
        name = normalize_skill_name(raw_name or "")
        if not name:
            continue

        existing = targets.get(name)
        if existing is None:
            targets[name] = SkillTarget(name=name, weight=weight, source=source)
        elif weight > existing.weight or (
            weight == existing.weight and SOURCE_PRIORITY[source] < SOURCE_PRIORITY[existing.source]
        ):
            existing.weight = weight
            existing.source = source

    if not targets:
        raise SelectionError("no skills found in job profile")

    # dicts keep insertion order and sorted() is stable
    return sorted(targets.values(), key=lambda t: t.weight, reverse=True)
