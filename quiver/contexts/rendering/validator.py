"""
Constraint validation of rendered LaTeX documents.

Checks a document against the output constraints and reports Violations:
- line_too_long: a source line's content exceeds max_chars_per_line (warning)
- forbidden_phrase: a line contains a company taboo phrase (error)
- page_overflow: the document runs past max_pages (error)
- latex_error: the document does not compile (error)

Line-level violations are attributed to bullets through the renderer's line map.
"""

import math
import re
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

from quiver.contexts.rendering.compiler import compile_document, compiler_available
from quiver.contexts.rendering.logger import _log_debug, log_validation_result
from quiver.contexts.rendering.overflow import LINES_PER_PAGE
from quiver.contexts.rendering.violations import (
    Severity,
    Violation,
    ViolationType,
    map_violations_to_bullets,
)
from quiver.contexts.targeting.data_structures import (
    CHARS_PER_LINE,
    CompanyProfile,
    Plan,
    RewrittenBullet,
)

# \command{content} keeps only "content" when counting characters
LATEX_COMMAND_PATTERN = re.compile(r"\\([a-zA-Z]+|.)\{([^}]*)\}")
# An unescaped % starts a comment
COMMENT_PATTERN = re.compile(r"(?<!\\)%.*$")

LATEX_UNESCAPES = [
    (r"\textbackslash{}", "\\"),
    (r"\$", "$"),
    (r"\&", "&"),
    (r"\%", "%"),
    (r"\#", "#"),
    (r"\_", "_"),
    (r"\{", "{"),
    (r"\}", "}"),
]


class LatexCompilationError(Exception):
    """
    Exception raised by a page counter when the document does not compile.

    Attributes:
        errors: Parsed LaTeX errors
    """

    def __init__(self, errors: List[str]):
        self.errors = errors
        summary = "; ".join(errors[:3]) if errors else "unknown error"
        super().__init__(f"LaTeX compilation failed: {summary}")


PageCounter = Callable[[str], int]


def strip_comment(line: str) -> str:
    return COMMENT_PATTERN.sub("", line)


def count_content_chars(line: str) -> int:
    """Visible characters on a LaTeX line: comments dropped, commands reduced to their argument."""
    processed = LATEX_COMMAND_PATTERN.sub(lambda m: m.group(2), strip_comment(line))
    return len(processed.strip())


def normalize_for_matching(line: str) -> str:
    """Lowercased line text with comments dropped and LaTeX escapes undone."""
    text = strip_comment(line)
    for escaped, plain in LATEX_UNESCAPES:
        text = text.replace(escaped, plain)
    return text.lower()


def check_line_lengths(text: str, max_chars: int) -> List[Violation]:
    violations = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        if line.strip().startswith("%"):
            continue
        count = count_content_chars(line)
        if count > max_chars:
            violations.append(
                Violation(
                    type=ViolationType.LINE_TOO_LONG,
                    severity=Severity.WARNING,
                    details=f"Line {line_number} has {count} characters, maximum is {max_chars}",
                    line_number=line_number,
                    char_count=count,
                )
            )
    return violations


def check_forbidden_phrases(text: str, taboo_phrases: List[str]) -> List[Violation]:
    """At most one violation per line: the first taboo phrase found."""
    phrases = [(p, p.strip().lower()) for p in taboo_phrases if p.strip()]
    if not phrases:
        return []

    violations = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        normalized = normalize_for_matching(line)
        for phrase, needle in phrases:
            if needle in normalized:
                violations.append(
                    Violation(
                        type=ViolationType.FORBIDDEN_PHRASE,
                        severity=Severity.ERROR,
                        details=f"Line {line_number} contains forbidden phrase: {phrase}",
                        line_number=line_number,
                    )
                )
                break
    return violations


def estimate_page_count(text: str) -> int:
    """
    Page count without a compiler.

    Every line with visible content inside the document body counts
    ceil(chars / CHARS_PER_LINE) lines (at least 1), at LINES_PER_PAGE per page.
    """
    lines = text.splitlines()
    start = next((i + 1 for i, line in enumerate(lines) if r"\begin{document}" in line), 0)

    total = 0
    for line in lines[start:]:
        if r"\end{document}" in line:
            break
        chars = count_content_chars(line)
        if chars > 0:
            total += max(1, math.ceil(chars / CHARS_PER_LINE))
    return max(1, math.ceil(total / LINES_PER_PAGE))


def default_page_counter(text: str) -> int:
    """
    Compile with the configured LaTeX compiler when it is installed, else estimate.

    Raises:
        LatexCompilationError: If compilation fails or yields an unreadable PDF
    """
    if not compiler_available():
        _log_debug("  LaTeX compiler not available, estimating page count")
        return estimate_page_count(text)

    result = compile_document(text)
    if not result.success:
        raise LatexCompilationError(result.errors)
    if result.page_count is None:
        raise LatexCompilationError(["could not read page count from PDF"])
    return result.page_count


class Validator(ABC):
    """Checks rendered document text against output constraints."""

    @abstractmethod
    def validate(
        self,
        text: str,
        company_profile: Optional[CompanyProfile],
        max_pages: int,
        max_chars_per_line: int,
        line_map: Optional[Dict[int, str]] = None,
        plan: Optional[Plan] = None,
        bullets: Optional[List[RewrittenBullet]] = None,
    ) -> List[Violation]:
        """Return all violations, attributed to bullets where line_map allows."""


class ConstraintValidator(Validator):
    """
    Line length, forbidden phrase and page count checks.

    Args:
        page_counter: Callable mapping document text to a page count; raises
                      LatexCompilationError when the document does not compile

    Example:
        >>> validator = ConstraintValidator(page_counter=estimate_page_count)
        >>> violations = validator.validate(document.text, company, 1, 110, document.line_map)
    """

    def __init__(self, page_counter: Optional[PageCounter] = None):
        self.page_counter = page_counter or default_page_counter

    def validate(
        self,
        text: str,
        company_profile: Optional[CompanyProfile],
        max_pages: int,
        max_chars_per_line: int,
        line_map: Optional[Dict[int, str]] = None,
        plan: Optional[Plan] = None,
        bullets: Optional[List[RewrittenBullet]] = None,
    ) -> List[Violation]:
        violations = check_line_lengths(text, max_chars_per_line)

        if company_profile is not None and company_profile.taboo_phrases:
            violations.extend(check_forbidden_phrases(text, company_profile.taboo_phrases))

        try:
            pages = self.page_counter(text)
        except LatexCompilationError as e:
            violations.append(
                Violation(
                    type=ViolationType.LATEX_ERROR,
                    severity=Severity.ERROR,
                    details=str(e),
                )
            )
        else:
            if pages > max_pages:
                violations.append(
                    Violation(
                        type=ViolationType.PAGE_OVERFLOW,
                        severity=Severity.ERROR,
                        details=f"Resume has {pages} pages, maximum allowed is {max_pages}",
                        page_count=pages,
                    )
                )

        violations = map_violations_to_bullets(violations, line_map, bullets, plan)
        log_validation_result(violations, max_pages)
        return violations
