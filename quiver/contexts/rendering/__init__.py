"""
Rendering Context

Responsibilities:
- Renders a plan and its rewritten bullets to LaTeX with a line map
- Compiles LaTeX to PDF and counts pages
- Validates documents against page, line-length and taboo-phrase constraints
- Translates page overflow into a bullet drop estimate

Owns: Document templates, LaTeX compilation, violations, overflow analysis
Never: Changes which bullets are selected or what they say
"""

from quiver.contexts.rendering.overflow import OverflowAnalysis, analyze_page_overflow
from quiver.contexts.rendering.renderer import (
    CandidateInfo,
    LatexRenderer,
    RenderedDocument,
    Renderer,
    RenderError,
    escape_latex,
)
from quiver.contexts.rendering.validator import ConstraintValidator, Validator, estimate_page_count
from quiver.contexts.rendering.violations import Violation, ViolationType, map_violations_to_bullets

__all__ = [
    "CandidateInfo",
    "ConstraintValidator",
    "LatexRenderer",
    "OverflowAnalysis",
    "RenderError",
    "RenderedDocument",
    "Renderer",
    "Validator",
    "Violation",
    "ViolationType",
    "analyze_page_overflow",
    "escape_latex",
    "estimate_page_count",
    "map_violations_to_bullets",
]
