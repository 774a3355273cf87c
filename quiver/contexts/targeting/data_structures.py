"""
Data structures shared by the targeting, rewriting, rendering and repair contexts.

Experience content (Bullet, Story, ExperienceBank) is loaded once per run and
never mutated. Plans and rewritten bullets are copied before every repair
iteration so earlier states stay inspectable.

Every type round-trips through plain dicts with from_dict()/to_dict(), using
the snake_case field names of the JSON artifacts.
"""

import copy
import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterator, List, Optional

CHARS_PER_LINE = 100
DEFAULT_SECTION = "experience"
DEFAULT_SKILL_MATCH_RATIO = 0.8


def estimate_lines(length_chars: int) -> int:
    """Estimated rendered lines for a bullet of length_chars (minimum 1)."""
    if length_chars <= 0:
        return 1
    return math.ceil(length_chars / CHARS_PER_LINE)


# =========================================================================
# EXPERIENCE CONTENT
# =========================================================================


@dataclass(frozen=True)
class Bullet:
    """One candidate line of resume content, tagged with the skills it evidences."""

    id: str
    text: str
    skills: tuple = ()
    metrics: str = ""
    length_chars: int = 0
    evidence_strength: str = ""
    risk_flags: tuple = ()

    @property
    def estimated_lines(self) -> int:
        return estimate_lines(self.length_chars)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Bullet":
        text = data.get("text", "")
        return cls(
            id=data["id"],
            text=text,
            skills=tuple(data.get("skills") or ()),
            metrics=data.get("metrics", "") or "",
            length_chars=data.get("length_chars") or len(text),
            evidence_strength=data.get("evidence_strength", "") or "",
            risk_flags=tuple(data.get("risk_flags") or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["skills"] = list(self.skills)
        data["risk_flags"] = list(self.risk_flags)
        return data


@dataclass(frozen=True)
class Story:
    """A role or project: company/role metadata plus its ordered bullets."""

    id: str
    company: str = ""
    role: str = ""
    start_date: str = ""
    end_date: str = ""
    bullets: tuple = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Story":
        return cls(
            id=data["id"],
            company=data.get("company", ""),
            role=data.get("role", ""),
            start_date=data.get("start_date", ""),
            end_date=data.get("end_date", ""),
            bullets=tuple(Bullet.from_dict(b) for b in data.get("bullets") or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "company": self.company,
            "role": self.role,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "bullets": [b.to_dict() for b in self.bullets],
        }

    def with_bullets(self, bullets: List[Bullet]) -> "Story":
        """Copy of this story restricted to the given bullets."""
        return Story(
            id=self.id,
            company=self.company,
            role=self.role,
            start_date=self.start_date,
            end_date=self.end_date,
            bullets=tuple(bullets),
        )


class ExperienceBank:
    """Canonical store of reusable experience stories with id lookups."""

    def __init__(self, stories: List[Story]):
        self.stories = list(stories)
        self._stories_by_id = {story.id: story for story in self.stories}
        self._bullets_by_id: Dict[str, Bullet] = {}
        self._story_by_bullet: Dict[str, str] = {}
        for story in self.stories:
            for bullet in story.bullets:
                self._bullets_by_id[bullet.id] = bullet
                self._story_by_bullet[bullet.id] = story.id

    def __iter__(self) -> Iterator[Story]:
        return iter(self.stories)

    def __len__(self) -> int:
        return len(self.stories)

    def get_story(self, story_id: str) -> Optional[Story]:
        return self._stories_by_id.get(story_id)

    def get_bullet(self, bullet_id: str) -> Optional[Bullet]:
        return self._bullets_by_id.get(bullet_id)

    def story_for_bullet(self, bullet_id: str) -> Optional[str]:
        return self._story_by_bullet.get(bullet_id)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExperienceBank":
        return cls([Story.from_dict(s) for s in data.get("stories") or ()])

    def to_dict(self) -> Dict[str, Any]:
        return {"stories": [s.to_dict() for s in self.stories]}


# =========================================================================
# JOB SIDE
# =========================================================================


@dataclass
class RankedStory:
    """A story's relevance to the job, as scored by the ranking step."""

    story_id: str
    relevance_score: float = 0.0
    skill_overlap: float = 0.0
    keyword_overlap: float = 0.0
    evidence_strength: float = 0.0
    matched_skills: List[str] = field(default_factory=list)
    notes: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RankedStory":
        return cls(
            story_id=data["story_id"],
            relevance_score=float(data.get("relevance_score", 0.0)),
            skill_overlap=float(data.get("skill_overlap", 0.0)),
            keyword_overlap=float(data.get("keyword_overlap", 0.0)),
            evidence_strength=float(data.get("evidence_strength", 0.0)),
            matched_skills=list(data.get("matched_skills") or []),
            notes=data.get("notes", "") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SkillTarget:
    """A skill the resume should evidence, weighted by importance."""

    name: str
    weight: float
    source: str = ""
    specificity: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SkillTarget":
        return cls(
            name=data["name"],
            weight=float(data.get("weight", 0.0)),
            source=data.get("source", ""),
            specificity=float(data.get("specificity", 0.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Requirement:
    skill: str
    level: str = ""
    evidence: str = ""


@dataclass
class JobProfile:
    """Structured job posting: requirements and keywords drive skill targets."""

    company: str = ""
    role_title: str = ""
    responsibilities: List[str] = field(default_factory=list)
    hard_requirements: List[Requirement] = field(default_factory=list)
    nice_to_haves: List[Requirement] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobProfile":
        def requirements(key: str) -> List[Requirement]:
            return [
                Requirement(
                    skill=r.get("skill", ""),
                    level=r.get("level", "") or "",
                    evidence=r.get("evidence", "") or "",
                )
                for r in data.get(key) or []
            ]

        return cls(
            company=data.get("company", ""),
            role_title=data.get("role_title", ""),
            responsibilities=list(data.get("responsibilities") or []),
            hard_requirements=requirements("hard_requirements"),
            nice_to_haves=requirements("nice_to_haves"),
            keywords=list(data.get("keywords") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CompanyProfile:
    """Brand voice and style rules for the target company."""

    company: str = ""
    tone: str = ""
    style_rules: List[str] = field(default_factory=list)
    taboo_phrases: List[str] = field(default_factory=list)
    domain_context: str = ""
    values: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompanyProfile":
        return cls(
            company=data.get("company", ""),
            tone=data.get("tone", ""),
            style_rules=list(data.get("style_rules") or []),
            taboo_phrases=list(data.get("taboo_phrases") or []),
            domain_context=data.get("domain_context", ""),
            values=list(data.get("values") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =========================================================================
# PLAN
# =========================================================================


@dataclass
class SpaceBudget:
    """
    Caps on the selected content.

    Attributes:
        max_bullets: Maximum number of selected bullets
        max_lines: Maximum sum of estimated lines
        sections: Optional per-section line caps (informational)
        skill_match_ratio: Share of max_lines spent on the greedy skill pass
                           (0 means DEFAULT_SKILL_MATCH_RATIO)
    """

    max_bullets: int
    max_lines: int
    sections: Dict[str, int] = field(default_factory=dict)
    skill_match_ratio: float = 0.0

    def __post_init__(self):
        if self.max_bullets < 0 or self.max_lines < 0:
            raise ValueError(
                f"Space budget caps must be non-negative "
                f"(max_bullets={self.max_bullets}, max_lines={self.max_lines})"
            )
        if not 0.0 <= self.skill_match_ratio <= 1.0:
            raise ValueError(
                f"skill_match_ratio must be between 0 and 1 (got {self.skill_match_ratio})"
            )

    @property
    def effective_skill_match_ratio(self) -> float:
        return self.skill_match_ratio or DEFAULT_SKILL_MATCH_RATIO

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SpaceBudget":
        return cls(
            max_bullets=int(data["max_bullets"]),
            max_lines=int(data["max_lines"]),
            sections=dict(data.get("sections") or {}),
            skill_match_ratio=float(data.get("skill_match_ratio", 0.0) or 0.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class StorySelection:
    """The bullets chosen from one story, in display order."""

    story_id: str
    bullet_ids: List[str] = field(default_factory=list)
    section: str = DEFAULT_SECTION
    estimated_lines: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StorySelection":
        return cls(
            story_id=data["story_id"],
            bullet_ids=list(data.get("bullet_ids") or []),
            section=data.get("section", DEFAULT_SECTION) or DEFAULT_SECTION,
            estimated_lines=int(data.get("estimated_lines", 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Coverage:
    top_skills_covered: List[str] = field(default_factory=list)
    coverage_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Plan:
    """
    Selection contract: which stories and bullets go into the resume.

    Invariants (for plans built by select_plan):
    - a bullet id appears in at most one StorySelection
    - total_lines() <= space_budget.max_lines
    - total_bullets() <= space_budget.max_bullets
    """

    selected_stories: List[StorySelection]
    space_budget: SpaceBudget
    coverage: Coverage = field(default_factory=Coverage)

    def bullet_ids(self) -> List[str]:
        return [bid for selection in self.selected_stories for bid in selection.bullet_ids]

    def story_ids(self) -> List[str]:
        return [selection.story_id for selection in self.selected_stories]

    def total_lines(self) -> int:
        return sum(selection.estimated_lines for selection in self.selected_stories)

    def total_bullets(self) -> int:
        return sum(len(selection.bullet_ids) for selection in self.selected_stories)

    def story_for_bullet(self, bullet_id: str) -> Optional[str]:
        for selection in self.selected_stories:
            if bullet_id in selection.bullet_ids:
                return selection.story_id
        return None

    def get_selection(self, story_id: str) -> Optional[StorySelection]:
        for selection in self.selected_stories:
            if selection.story_id == story_id:
                return selection
        return None

    def copy(self) -> "Plan":
        return copy.deepcopy(self)

    @classmethod
    def empty(cls, space_budget: SpaceBudget) -> "Plan":
        return cls(selected_stories=[], space_budget=space_budget, coverage=Coverage())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Plan":
        coverage = data.get("coverage") or {}
        return cls(
            selected_stories=[StorySelection.from_dict(s) for s in data.get("selected_stories") or []],
            space_budget=SpaceBudget.from_dict(data["space_budget"]),
            coverage=Coverage(
                top_skills_covered=list(coverage.get("top_skills_covered") or []),
                coverage_score=float(coverage.get("coverage_score", 0.0)),
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "selected_stories": [s.to_dict() for s in self.selected_stories],
            "space_budget": self.space_budget.to_dict(),
            "coverage": self.coverage.to_dict(),
        }


# =========================================================================
# MATERIALIZED AND REWRITTEN BULLETS
# =========================================================================


@dataclass
class SelectedBullet:
    """A planned bullet pulled out of the experience bank for rewriting."""

    id: str
    story_id: str
    text: str
    skills: List[str] = field(default_factory=list)
    metrics: str = ""
    length_chars: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class StyleChecks:
    strong_verb: bool = False
    quantified: bool = False
    no_taboo: bool = False
    target_length: bool = False

    @property
    def passed(self) -> int:
        return sum([self.strong_verb, self.quantified, self.no_taboo, self.target_length])


@dataclass
class RewrittenBullet:
    """Final text for a planned bullet, keyed by the original bullet id."""

    original_bullet_id: str
    final_text: str
    length_chars: int
    estimated_lines: int
    style_checks: StyleChecks = field(default_factory=StyleChecks)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RewrittenBullet":
        checks = data.get("style_checks") or {}
        text = data.get("final_text", "")
        length = data.get("length_chars") or len(text)
        return cls(
            original_bullet_id=data["original_bullet_id"],
            final_text=text,
            length_chars=length,
            estimated_lines=data.get("estimated_lines") or estimate_lines(length),
            style_checks=StyleChecks(
                strong_verb=bool(checks.get("strong_verb", False)),
                quantified=bool(checks.get("quantified", False)),
                no_taboo=bool(checks.get("no_taboo", False)),
                target_length=bool(checks.get("target_length", False)),
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def copy_rewritten(bullets: List[RewrittenBullet]) -> List[RewrittenBullet]:
    """Deep copy of a rewritten bullet list."""
    return copy.deepcopy(list(bullets))


@dataclass
class AllocationResult:
    """
    Output of one allocation pass (greedy, knapsack or hybrid).

    Attributes:
        selections: Chosen bullets per story, with estimated_lines filled in
        value: Allocator-specific objective value of the selection
        lines_used: Sum of estimated lines of the chosen bullets
        bullets_used: Number of chosen bullets
    """

    selections: List[StorySelection] = field(default_factory=list)
    value: float = 0.0
    lines_used: int = 0
    bullets_used: int = 0

    def selected_ids(self) -> List[str]:
        return [bid for selection in self.selections for bid in selection.bullet_ids]
