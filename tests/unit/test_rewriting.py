"""Unit tests for style checks and bullet rewriters."""

import pytest

from quiver.contexts.rewriting.rewriter import (
    LLMRewriter,
    Rewriter,
    TruncatingRewriter,
    build_rewrite_prompt,
    parse_bullet_response,
    truncate_to_words,
)
from quiver.contexts.rewriting.style_checks import (
    has_no_taboo,
    has_strong_verb,
    is_quantified,
    validate_style,
    within_target_length,
)
from quiver.contexts.targeting.data_structures import CompanyProfile, JobProfile, SelectedBullet
from quiver.utils.llm import LLMProvider, LLMResponse


class FakeProvider(LLMProvider):
    """Returns canned responses in order and records prompts."""

    _provider_prefix = "fake"
    _retryable_exception = ConnectionError
    _retry_message = "fake provider unavailable"

    def __init__(self, responses):
        self.responses = list(responses)
        self.prompts = []
        self.update_model("test")

    def _call_api(self, system_prompt, user_prompt):
        self.prompts.append(user_prompt)
        return LLMResponse(content=self.responses.pop(0), model=self.model, input_tokens=10, output_tokens=5)


def _selected(bullet_id, text="Built a thing", length=None):
    return SelectedBullet(id=bullet_id, story_id="s1", text=text, length_chars=length or len(text))


@pytest.mark.unit
@pytest.mark.parametrize(
    "text, expected",
    [
        ("Built a pipeline", True),
        ("Architected systems", True),
        ("Automated reports", True),
        ("Red team exercises", False),
        ("Responsible for reports", False),
        ("", False),
    ],
)
def test_has_strong_verb(text, expected):
    """Test known verbs and the -ed suffix rule (longer than 3 characters)."""
    assert has_strong_verb(text) is expected


@pytest.mark.unit
def test_quantified_and_taboo():
    """Test digit/percent detection and case-insensitive taboo matching."""
    assert is_quantified("Cut costs by 30")
    assert is_quantified("Grew revenue %")
    assert not is_quantified("Improved morale")

    company = CompanyProfile(taboo_phrases=["Synergy"])
    assert not has_no_taboo("Created SYNERGY across teams", company)
    assert has_no_taboo("Created alignment", company)
    assert has_no_taboo("anything", None)


@pytest.mark.unit
def test_within_target_length():
    """Test the -20% / +80% window and the zero-original rule."""
    assert within_target_length(80, 100)
    assert not within_target_length(79, 100)
    assert within_target_length(180, 100)
    assert not within_target_length(181, 100)
    assert within_target_length(5, 0)
    assert not within_target_length(0, 0)


@pytest.mark.unit
def test_validate_style():
    """Test that all four checks are combined."""
    checks = validate_style("Reduced latency by 40%", CompanyProfile(taboo_phrases=["rockstar"]), 22)

    assert checks.strong_verb and checks.quantified and checks.no_taboo and checks.target_length
    assert checks.passed == 4


@pytest.mark.unit
def test_truncate_to_words():
    """Test word-boundary truncation and the hard cut for one long word."""
    assert truncate_to_words("Built fast data pipelines", 15) == "Built fast data"
    assert truncate_to_words("Built fast, data", 11) == "Built fast"
    assert truncate_to_words("Supercalifragilistic", 5) == "Super"
    assert truncate_to_words("Short", 50) == "Short"


@pytest.mark.unit
def test_rewrite_selective_only_rewrites_requested(job_profile):
    """Test that only requested ids are regenerated and order follows the sources."""
    rewriter = TruncatingRewriter()
    sources = [_selected("a", "Built the first thing"), _selected("b", "Built the second thing"), _selected("c")]
    current = rewriter.rewrite(sources[:2], job_profile, None)
    current[0].final_text = "kept verbatim"

    result = rewriter.rewrite_selective(current, ["b", "c"], sources, job_profile, None, {"b": 9})

    assert [r.original_bullet_id for r in result] == ["a", "b", "c"]
    assert result[0].final_text == "kept verbatim"
    assert result[1].final_text == "Built the"
    assert result[1].length_chars == 9
    assert result[2].final_text == "Built a thing"


@pytest.mark.unit
def test_rewrite_selective_drops_unknown_unrequested(job_profile):
    """Test that a source bullet with no text and no request is left out."""
    result = TruncatingRewriter().rewrite_selective([], [], [_selected("a")], job_profile, None)

    assert result == []


@pytest.mark.unit
def test_rewriter_is_abstract():
    """Test that Rewriter cannot be instantiated without rewrite()."""
    with pytest.raises(TypeError):
        Rewriter()


@pytest.mark.unit
def test_llm_rewriter_uses_provider(job_profile, company_profile):
    """Test one provider call per bullet with the target length in the prompt."""
    provider = FakeProvider(["```\nReduced deploy time by 60%\n```", '{"text": "Built Python services"}'])
    rewriter = LLMRewriter(provider=provider)

    result = rewriter.rewrite(
        [_selected("a", "Cut deploy time"), _selected("b", "Made services")],
        job_profile,
        company_profile,
        target_chars={"a": 42},
    )

    assert [r.final_text for r in result] == ["Reduced deploy time by 60%", "Built Python services"]
    assert "approximately 42 characters" in provider.prompts[0]
    assert "Avoid these phrases: synergy, rockstar" in provider.prompts[0]
    assert result[0].style_checks.quantified


@pytest.mark.unit
def test_llm_rewriter_rejects_empty_response(job_profile):
    """Test that an empty rewrite is an error."""
    rewriter = LLMRewriter(provider=FakeProvider(["   "]))

    with pytest.raises(ValueError, match="empty rewrite"):
        rewriter.rewrite([_selected("a")], job_profile, None)


@pytest.mark.unit
def test_parse_bullet_response_and_prompt():
    """Test response unwrapping and the default target length."""
    assert parse_bullet_response("  Plain text  ") == "Plain text"
    assert parse_bullet_response('```json\n{"text": "Wrapped"}\n```') == "Wrapped"

    prompt = build_rewrite_prompt(_selected("a", "x" * 40), JobProfile(keywords=["Go"]), None)
    assert "approximately 40 characters" in prompt
    assert "Keywords: Go" in prompt
