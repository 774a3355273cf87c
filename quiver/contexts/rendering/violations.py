"""Constraint violations reported by validators."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from quiver.contexts.targeting.data_structures import Plan, RewrittenBullet


class ViolationType:
    """Enum-like class for violation types"""

    PAGE_OVERFLOW = "page_overflow"
    LINE_TOO_LONG = "line_too_long"
    FORBIDDEN_PHRASE = "forbidden_phrase"
    LATEX_ERROR = "latex_error"


class Severity:
    ERROR = "error"
    WARNING = "warning"


@dataclass
class Violation:
    """
    A detected constraint breach in a rendered document.

    Attributes:
        type: One of ViolationType
        severity: "error" or "warning"
        details: Human-readable description
        affected_sections: Section names the violation touches
        line_number: 1-based document line, for line-level violations
        char_count: Content characters on the line (line_too_long)
        page_count: Rendered page count (page_overflow)
        bullet_id: Originating bullet, when the line maps to one
        story_id: Story owning bullet_id
        bullet_text: Rendered text of bullet_id
    """

    type: str
    severity: str
    details: str
    affected_sections: List[str] = field(default_factory=list)
    line_number: Optional[int] = None
    char_count: Optional[int] = None
    page_count: Optional[int] = None
    bullet_id: Optional[str] = None
    story_id: Optional[str] = None
    bullet_text: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Violation":
        return cls(
            type=data["type"],
            severity=data.get("severity", Severity.ERROR),
            details=data.get("details", ""),
            affected_sections=list(data.get("affected_sections") or []),
            line_number=data.get("line_number"),
            char_count=data.get("char_count"),
            page_count=data.get("page_count"),
            bullet_id=data.get("bullet_id"),
            story_id=data.get("story_id"),
            bullet_text=data.get("bullet_text"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


def map_violations_to_bullets(
    violations: List[Violation],
    line_map: Optional[Dict[int, str]],
    bullets: Optional[List[RewrittenBullet]] = None,
    plan: Optional[Plan] = None,
) -> List[Violation]:
    """
    Attach bullet id, story id and bullet text to line-level violations.

    Returns new Violation objects; violations without a line number, or whose
    line is not in line_map, are copied unchanged.
    """
    if not line_map:
        return list(violations)

    texts = {b.original_bullet_id: b.final_text for b in bullets or []}
    stories = {}
    if plan is not None:
        for selection in plan.selected_stories:
            for bullet_id in selection.bullet_ids:
                stories[bullet_id] = selection.story_id

    mapped = []
    for violation in violations:
        attributed = Violation(**asdict(violation))
        bullet_id = line_map.get(violation.line_number) if violation.line_number is not None else None
        if bullet_id is not None:
            attributed.bullet_id = bullet_id
            attributed.story_id = stories.get(bullet_id, attributed.story_id)
            attributed.bullet_text = texts.get(bullet_id, attributed.bullet_text)
        mapped.append(attributed)
    return mapped
