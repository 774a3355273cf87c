"""
Rewriting Context

Responsibilities:
- Regenerates bullet text for a job and a company voice
- Rewrites selectively, leaving untouched bullets verbatim
- Scores rewritten text with heuristic style checks

Owns: Rewriter interface, LLM rewriting prompts, style checks
Never: Decides which bullets are in the plan
"""

from quiver.contexts.rewriting.rewriter import (
    LLMRewriter,
    Rewriter,
    TruncatingRewriter,
    build_rewritten_bullet,
)
from quiver.contexts.rewriting.style_checks import validate_style

__all__ = [
    "LLMRewriter",
    "Rewriter",
    "TruncatingRewriter",
    "build_rewritten_bullet",
    "validate_style",
]
