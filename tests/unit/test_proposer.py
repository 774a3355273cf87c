"""Unit tests for rule-based and LLM repair proposers."""

import pytest

from quiver.contexts.rendering.overflow import analyze_page_overflow
from quiver.contexts.rendering.violations import Severity, Violation, ViolationType
from quiver.contexts.repair.actions import ActionType
from quiver.contexts.repair.exceptions import RepairError
from quiver.contexts.repair.proposer import (
    LLMProposer,
    OverflowProposer,
    build_repair_prompt,
    propose_bullet_drops,
)
from quiver.utils.llm import LLMProvider, LLMResponse


class FakeProvider(LLMProvider):
    _provider_prefix = "fake"
    _retryable_exception = ConnectionError
    _retry_message = "fake provider unavailable"

    def __init__(self, content):
        self.content = content
        self.prompts = []
        self.update_model("test")

    def _call_api(self, system_prompt, user_prompt):
        self.prompts.append(user_prompt)
        return LLMResponse(content=self.content, model=self.model, input_tokens=100, output_tokens=20)


def _overflow(pages=2):
    return Violation(
        type=ViolationType.PAGE_OVERFLOW,
        severity=Severity.ERROR,
        details=f"Resume has {pages} pages, maximum allowed is 1",
        page_count=pages,
    )


def _line(bullet_id, char_count):
    return Violation(
        type=ViolationType.LINE_TOO_LONG,
        severity=Severity.WARNING,
        details=f"Line 12 has {char_count} characters, maximum is 110",
        line_number=12,
        char_count=char_count,
        bullet_id=bullet_id,
    )


def _forbidden(bullet_id):
    return Violation(
        type=ViolationType.FORBIDDEN_PHRASE,
        severity=Severity.ERROR,
        details="Line 14 contains forbidden phrase: synergy",
        line_number=14,
        bullet_id=bullet_id,
    )


@pytest.fixture
def proposer(experience_bank):
    return OverflowProposer(experience_bank, max_pages=1, max_chars_per_line=110)


@pytest.mark.unit
def test_drops_lowest_relevance_first(sample_rewritten, sample_plan, ranked_stories, experience_bank):
    """Test that drops are ordered by relevance score, weakest first."""
    overflow = analyze_page_overflow(2, 1, sample_rewritten)

    actions = propose_bullet_drops(overflow, sample_rewritten, sample_plan, ranked_stories, experience_bank)

    assert [a.bullet_id for a in actions] == ["b006", "b002", "b001"]
    assert all(a.type == ActionType.DROP_BULLET for a in actions)
    assert actions[0].story_id == "story_003"
    assert actions[0].reason.startswith("Dropping to resolve page overflow (1.0 excess pages)")


@pytest.mark.unit
def test_no_drops_without_required_overflow(sample_rewritten, sample_plan, ranked_stories, experience_bank):
    """Test that nothing is dropped without overflow or when shortening suffices."""
    assert propose_bullet_drops(None, sample_rewritten, sample_plan, ranked_stories, experience_bank) == []
    no_overflow = analyze_page_overflow(1, 1, sample_rewritten)
    assert propose_bullet_drops(no_overflow, sample_rewritten, sample_plan, ranked_stories, experience_bank) == []
    assert propose_bullet_drops(analyze_page_overflow(2, 1), [], sample_plan, ranked_stories, experience_bank) == []


@pytest.mark.unit
def test_overflow_proposer_drops(proposer, sample_rewritten, sample_plan, ranked_stories, job_profile):
    """Test page overflow with short bullets turns into drop actions."""
    actions = proposer.propose([_overflow()], sample_plan, sample_rewritten, ranked_stories, job_profile, None)

    assert [(a.type, a.bullet_id) for a in actions] == [
        (ActionType.DROP_BULLET, "b006"),
        (ActionType.DROP_BULLET, "b002"),
        (ActionType.DROP_BULLET, "b001"),
    ]


@pytest.mark.unit
def test_overflow_proposer_shortens_when_enough(
    proposer, sample_plan, ranked_stories, job_profile, rewritten_factory
):
    """Test that a sub-bullet overflow shortens the longest bullet to 80%."""
    rewritten = [rewritten_factory("b001", 5100), rewritten_factory("b002", 5000)]

    actions = proposer.propose([_overflow()], sample_plan, rewritten, ranked_stories, job_profile, None)

    assert len(actions) == 1
    assert actions[0].type == ActionType.SHORTEN_BULLET
    assert actions[0].bullet_id == "b001"
    assert actions[0].target_chars == 4080


@pytest.mark.unit
def test_overflow_proposer_line_and_phrase_rules(
    proposer, sample_plan, sample_rewritten, ranked_stories, job_profile
):
    """Test per-bullet shorten targets for long lines and forbidden phrases."""
    violations = [_line("b002", 130), _forbidden("b001"), _line("b001", 150), _line(None, 200)]

    actions = proposer.propose(violations, sample_plan, sample_rewritten, ranked_stories, job_profile, None)

    assert [(a.bullet_id, a.target_chars) for a in actions] == [("b002", 130), ("b001", 90)]
    assert all(a.type == ActionType.SHORTEN_BULLET for a in actions)
    assert "forbidden phrase" in actions[1].reason


@pytest.mark.unit
def test_overflow_proposer_falls_back_to_factor(
    proposer, sample_plan, ranked_stories, job_profile, rewritten_factory
):
    """Test that a line excess as long as the bullet shortens to 80% instead."""
    rewritten = [rewritten_factory("b001", 40)]

    actions = proposer.propose([_line("b001", 200)], sample_plan, rewritten, ranked_stories, job_profile, None)

    assert actions[0].target_chars == 32


@pytest.mark.unit
def test_overflow_proposer_caps_actions(proposer, sample_plan, ranked_stories, job_profile, rewritten_factory):
    """Test that no more than five actions are proposed."""
    rewritten = [rewritten_factory(f"b{i}", 150) for i in range(8)]
    violations = [_line(f"b{i}", 140) for i in range(8)]

    actions = proposer.propose(violations, sample_plan, rewritten, ranked_stories, job_profile, None)

    assert len(actions) == 5


@pytest.mark.unit
def test_overflow_proposer_nothing_to_fix(proposer, sample_plan, sample_rewritten, ranked_stories, job_profile):
    """Test that violations without a bullet or page count yield no actions."""
    latex = Violation(type=ViolationType.LATEX_ERROR, severity=Severity.ERROR, details="Undefined control sequence")

    assert proposer.propose([latex], sample_plan, sample_rewritten, ranked_stories, job_profile, None) == []


@pytest.mark.unit
def test_repair_prompt_contents(sample_plan, sample_rewritten, ranked_stories, job_profile, company_profile):
    """Test that the prompt carries violations, plan, alternatives and taboo phrases."""
    prompt = build_repair_prompt(
        [_line("b002", 130)], sample_plan, sample_rewritten, ranked_stories, job_profile, company_profile
    )

    assert "1. Type: line_too_long, Severity: warning" in prompt
    assert "   Bullet: b002" in prompt
    assert "- Story ID: story_001, Bullets: ['b001', 'b002'], Section: experience" in prompt
    assert "- Story ID: story_002, Relevance: 0.70" in prompt
    assert "- synergy" in prompt
    assert "Role: Senior ML Engineer" in prompt
    assert prompt.rstrip().endswith('"reason": "..."}]}')


@pytest.mark.unit
def test_llm_proposer_parses_response(sample_plan, sample_rewritten, ranked_stories, job_profile):
    """Test that the provider response becomes RepairActions."""
    provider = FakeProvider(
        '```json\n{"actions": [{"type": "drop_bullet", "bullet_id": "b006", "reason": "least relevant"}]}\n```'
    )
    proposer = LLMProposer(provider=provider)

    actions = proposer.propose([_overflow()], sample_plan, sample_rewritten, ranked_stories, job_profile, None)

    assert [(a.type, a.bullet_id) for a in actions] == [(ActionType.DROP_BULLET, "b006")]
    assert "Type: page_overflow" in provider.prompts[0]


@pytest.mark.unit
def test_llm_proposer_bad_response(sample_plan, sample_rewritten, ranked_stories, job_profile):
    """Test that an unparseable response raises RepairError."""
    proposer = LLMProposer(provider=FakeProvider("I would drop the intern bullet."))

    with pytest.raises(RepairError):
        proposer.propose([_overflow()], sample_plan, sample_rewritten, ranked_stories, job_profile, None)
