"""
Bullet relevance scoring for repair decisions.

Scores bullets that are already placed in a plan so the least valuable ones
can be dropped first when the rendered document overflows.

score = 0.40 * story_relevance
      + 0.30 * skill_coverage
      + 0.20 * length_efficiency
      + 0.10 * style_quality
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from quiver.contexts.targeting.data_structures import (
    ExperienceBank,
    Plan,
    RankedStory,
    RewrittenBullet,
    StyleChecks,
)

WEIGHT_STORY_RELEVANCE = 0.40
WEIGHT_SKILL_COVERAGE = 0.30
WEIGHT_LENGTH_EFFICIENCY = 0.20
WEIGHT_STYLE_QUALITY = 0.10

MAX_SKILLS_NORM = 5
MAX_LENGTH_CHARS = 200

UNKNOWN_SCORE = 0.5


@dataclass
class ScoreComponents:
    story_relevance: float
    skill_coverage: float
    length_efficiency: float
    style_quality: float

    @property
    def total(self) -> float:
        return (
            WEIGHT_STORY_RELEVANCE * self.story_relevance
            + WEIGHT_SKILL_COVERAGE * self.skill_coverage
            + WEIGHT_LENGTH_EFFICIENCY * self.length_efficiency
            + WEIGHT_STYLE_QUALITY * self.style_quality
        )


@dataclass
class ScoredBullet:
    bullet_id: str
    story_id: Optional[str]
    score: float
    components: ScoreComponents


class RelevanceScorer:
    """
    Scores rewritten bullets against their story ranking and skill tags.

    Pure: holds lookups built from its inputs and never mutates them.

    Example:
        >>> scorer = RelevanceScorer(ranked_stories, experience_bank)
        >>> weakest = scorer.score_all(rewritten, plan)[0]
    """

    def __init__(
        self,
        ranked_stories: Optional[List[RankedStory]] = None,
        experience_bank: Optional[ExperienceBank] = None,
    ):
        self.experience_bank = experience_bank
        self._relevance: Dict[str, float] = {}
        for ranked in ranked_stories or []:
            # First occurrence wins, matching a linear scan of the ranked list
            self._relevance.setdefault(ranked.story_id, ranked.relevance_score)

    def story_relevance(self, story_id: Optional[str]) -> float:
        if not story_id:
            return UNKNOWN_SCORE
        return self._relevance.get(story_id, UNKNOWN_SCORE)

    def skill_coverage(self, bullet_id: str) -> float:
        if self.experience_bank is None or not bullet_id:
            return UNKNOWN_SCORE
        bullet = self.experience_bank.get_bullet(bullet_id)
        if bullet is None:
            return UNKNOWN_SCORE
        return min(len(bullet.skills), MAX_SKILLS_NORM) / MAX_SKILLS_NORM

    @staticmethod
    def length_efficiency(length_chars: int) -> float:
        if length_chars <= 0:
            return UNKNOWN_SCORE
        efficiency = 1.0 - length_chars / (MAX_LENGTH_CHARS * 2)
        return max(0.0, min(1.0, efficiency))

    @staticmethod
    def style_quality(style_checks: StyleChecks) -> float:
        return style_checks.passed / 4.0

    def components(self, bullet: RewrittenBullet, story_id: Optional[str]) -> ScoreComponents:
        return ScoreComponents(
            story_relevance=self.story_relevance(story_id),
            skill_coverage=self.skill_coverage(bullet.original_bullet_id),
            length_efficiency=self.length_efficiency(bullet.length_chars),
            style_quality=self.style_quality(bullet.style_checks),
        )

    def score_bullet(self, bullet: RewrittenBullet, story_id: Optional[str]) -> float:
        """Relevance of one bullet; higher means more worth keeping."""
        return self.components(bullet, story_id).total

    def score_all(self, bullets: List[RewrittenBullet], plan: Optional[Plan] = None) -> List[ScoredBullet]:
        """
        Score every bullet, lowest first.

        The sort is stable, so equal scores keep the input order. Story ids come
        from the plan; bullets the plan does not hold get the unknown-story default.
        """
        bullet_to_story: Dict[str, str] = {}
        if plan is not None:
            for selection in plan.selected_stories:
                for bullet_id in selection.bullet_ids:
                    bullet_to_story[bullet_id] = selection.story_id

        scored = []
        for bullet in bullets:
            story_id = bullet_to_story.get(bullet.original_bullet_id)
            components = self.components(bullet, story_id)
            scored.append(
                ScoredBullet(
                    bullet_id=bullet.original_bullet_id,
                    story_id=story_id,
                    score=components.total,
                    components=components,
                )
            )

        return sorted(scored, key=lambda s: s.score)
