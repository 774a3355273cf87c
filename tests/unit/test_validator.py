"""Unit tests for document constraint validation."""

import pytest

from quiver.contexts.rendering import validator as validator_module
from quiver.contexts.rendering.validator import (
    ConstraintValidator,
    LatexCompilationError,
    check_forbidden_phrases,
    check_line_lengths,
    count_content_chars,
    default_page_counter,
    estimate_page_count,
)
from quiver.contexts.rendering.violations import Severity, ViolationType
from quiver.contexts.targeting.data_structures import CompanyProfile


def _document(*body_lines):
    return "\n".join(["\\documentclass{article}", "\\begin{document}", *body_lines, "\\end{document}", ""])


@pytest.mark.unit
def test_count_content_chars():
    """Test that comments are dropped and commands reduced to their argument."""
    assert count_content_chars(r"\textbf{Bold} text") == len("Bold text")
    assert count_content_chars(r"50\% growth % a comment") == len(r"50\% growth")
    assert count_content_chars("   ") == 0


@pytest.mark.unit
def test_check_line_lengths():
    """Test one warning per overlong line with its number and count."""
    text = "\n".join(["short", "\\item " + "a" * 120, "% " + "b" * 200])
    violations = check_line_lengths(text, 110)

    assert len(violations) == 1
    assert violations[0].type == ViolationType.LINE_TOO_LONG
    assert violations[0].severity == Severity.WARNING
    assert violations[0].line_number == 2
    assert violations[0].char_count == 126
    assert violations[0].details == "Line 2 has 126 characters, maximum is 110"


@pytest.mark.unit
def test_check_forbidden_phrases():
    """Test case-insensitive matching after unescaping, one violation per line."""
    text = "\n".join(
        [
            r"\item Drove Synergy and rockstar culture",
            r"\item Clean bullet % synergy in a comment",
            r"\item R\&D synergy",
        ]
    )
    violations = check_forbidden_phrases(text, ["synergy", "rockstar"])

    assert [v.line_number for v in violations] == [1, 3]
    assert violations[0].details == "Line 1 contains forbidden phrase: synergy"
    assert all(v.severity == Severity.ERROR for v in violations)
    assert check_forbidden_phrases(text, []) == []


@pytest.mark.unit
def test_forbidden_phrase_with_escaped_percent():
    """Test that escaped percent signs are text, not comments."""
    violations = check_forbidden_phrases(r"\item Grew 40\% through synergy", ["synergy"])

    assert len(violations) == 1


@pytest.mark.unit
def test_estimate_page_count():
    """Test 50 estimated lines per page with a minimum of one page."""
    assert estimate_page_count(_document()) == 1
    assert estimate_page_count(_document(*["\\item " + "x" * 50] * 40)) == 1
    assert estimate_page_count(_document(*["\\item " + "x" * 150] * 40)) == 2


@pytest.mark.unit
def test_validator_page_overflow_with_injected_counter(company_profile):
    """Test that an injected page counter drives page_overflow."""
    validator = ConstraintValidator(page_counter=lambda text: 3)
    violations = validator.validate(_document("\\item ok"), company_profile, 2, 110)

    assert len(violations) == 1
    assert violations[0].type == ViolationType.PAGE_OVERFLOW
    assert violations[0].page_count == 3
    assert violations[0].details == "Resume has 3 pages, maximum allowed is 2"


@pytest.mark.unit
def test_validator_latex_error():
    """Test that a failed compilation becomes a latex_error violation."""

    def failing_counter(text):
        raise LatexCompilationError(["Undefined control sequence."])

    violations = ConstraintValidator(page_counter=failing_counter).validate(_document(), None, 1, 110)

    assert [v.type for v in violations] == [ViolationType.LATEX_ERROR]
    assert "LaTeX compilation failed: Undefined control sequence." in violations[0].details


@pytest.mark.unit
def test_validator_attributes_line_violations(rewritten_factory):
    """Test that line-level violations are mapped to bullets."""
    long_text = "y" * 120
    text = _document("\\item " + long_text, "\\item we value synergy")
    company = CompanyProfile(taboo_phrases=["synergy"])
    bullets = [rewritten_factory("b1", text=long_text), rewritten_factory("b2", text="we value synergy")]

    violations = ConstraintValidator(page_counter=lambda text: 1).validate(
        text, company, 1, 110, line_map={3: "b1", 4: "b2"}, bullets=bullets
    )

    by_type = {v.type: v for v in violations}
    assert by_type[ViolationType.LINE_TOO_LONG].bullet_id == "b1"
    assert by_type[ViolationType.FORBIDDEN_PHRASE].bullet_id == "b2"
    assert by_type[ViolationType.FORBIDDEN_PHRASE].bullet_text == "we value synergy"


@pytest.mark.unit
def test_default_page_counter_estimates_without_compiler(monkeypatch):
    """Test the estimate fallback when no LaTeX compiler is installed."""
    monkeypatch.setattr(validator_module, "compiler_available", lambda: False)

    assert default_page_counter(_document(*["\\item " + "x" * 150] * 40)) == 2
