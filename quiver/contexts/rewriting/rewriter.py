"""
Bullet rewriting.

A Rewriter turns materialized bullets into RewrittenBullets. The repair loop
only ever regenerates a few bullets per iteration, so rewrite_selective()
rewrites the requested ids and passes every other bullet through verbatim.
"""

import json
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from quiver.contexts.rewriting.style_checks import validate_style
from quiver.contexts.targeting.data_structures import (
    CompanyProfile,
    JobProfile,
    RewrittenBullet,
    SelectedBullet,
    estimate_lines,
)
from quiver.utils.llm import LLMProvider, extract_json_block, get_provider


# =============================================================================
# PROMPT TEMPLATES
# =============================================================================

_SYSTEM_PROMPT = """\
You rewrite resume bullet points. Keep every fact from the original bullet and
never invent employers, numbers or technologies.
Return ONLY the rewritten bullet text: no markdown, no explanation, no code blocks."""

_USER_PROMPT_TEMPLATE = """\
Rewrite the following resume bullet point to match the job requirements and company brand voice.

Original bullet:
{text}

{job_context}{company_context}Requirements:
- Start with a strong action verb
- Include quantified impact/metrics where possible
- Match the company's tone and style rules
- Do NOT use any taboo phrases
- Keep the bullet to approximately {target_chars} characters
- Align with job requirements and keywords"""


def build_rewritten_bullet(
    text: str, original: SelectedBullet, company_profile: Optional[CompanyProfile]
) -> RewrittenBullet:
    """Wrap rewritten text with its length, line estimate and style checks."""
    length = len(text)
    return RewrittenBullet(
        original_bullet_id=original.id,
        final_text=text,
        length_chars=length,
        estimated_lines=estimate_lines(length),
        style_checks=validate_style(text, company_profile, original.length_chars),
    )


class Rewriter(ABC):
    """Regenerates bullet text for a job and a company voice."""

    @abstractmethod
    def rewrite(
        self,
        bullets: List[SelectedBullet],
        job_profile: JobProfile,
        company_profile: Optional[CompanyProfile],
        target_chars: Optional[Dict[str, int]] = None,
    ) -> List[RewrittenBullet]:
        """
        Rewrite every bullet, in input order.

        Args:
            bullets: Materialized bullets to rewrite
            job_profile: Target job
            company_profile: Brand voice (None for no voice constraints)
            target_chars: Optional per-bullet target lengths by bullet id
        """

    def rewrite_selective(
        self,
        current: List[RewrittenBullet],
        ids_to_rewrite: List[str],
        source_bullets: List[SelectedBullet],
        job_profile: JobProfile,
        company_profile: Optional[CompanyProfile],
        target_chars: Optional[Dict[str, int]] = None,
    ) -> List[RewrittenBullet]:
        """
        Rewrite only ids_to_rewrite; pass every other bullet through unchanged.

        Output follows source_bullets order. A source bullet that is neither
        requested nor already rewritten is left out.
        """
        wanted = set(ids_to_rewrite)
        to_rewrite = [b for b in source_bullets if b.id in wanted]

        fresh: Dict[str, RewrittenBullet] = {}
        if to_rewrite:
            for rewritten in self.rewrite(to_rewrite, job_profile, company_profile, target_chars):
                fresh[rewritten.original_bullet_id] = rewritten

        existing = {b.original_bullet_id: b for b in current}

        result = []
        for source in source_bullets:
            if source.id in fresh:
                result.append(fresh[source.id])
            elif source.id in existing:
                result.append(existing[source.id])
        return result


def _format_job_context(job_profile: Optional[JobProfile]) -> str:
    if job_profile is None:
        return ""

    lines = ["Job requirements:"]
    if job_profile.hard_requirements:
        lines.append("- Hard requirements: " + ", ".join(r.skill for r in job_profile.hard_requirements))
    if job_profile.nice_to_haves:
        lines.append("- Preferred skills: " + ", ".join(r.skill for r in job_profile.nice_to_haves))
    if job_profile.keywords:
        lines.append("- Keywords: " + ", ".join(job_profile.keywords))
    return "\n".join(lines) + "\n\n"


def _format_company_context(company_profile: Optional[CompanyProfile]) -> str:
    if company_profile is None:
        return ""

    lines = ["Company brand voice:", f"- Tone: {company_profile.tone}"]
    if company_profile.style_rules:
        lines.append("- Style rules:")
        lines.extend(f"  * {rule}" for rule in company_profile.style_rules)
    if company_profile.taboo_phrases:
        lines.append("- Avoid these phrases: " + ", ".join(company_profile.taboo_phrases))
    return "\n".join(lines) + "\n\n"


def build_rewrite_prompt(
    bullet: SelectedBullet,
    job_profile: Optional[JobProfile],
    company_profile: Optional[CompanyProfile],
    target_chars: Optional[int] = None,
) -> str:
    """User prompt for one bullet; target_chars defaults to the original length."""
    return _USER_PROMPT_TEMPLATE.format(
        text=bullet.text,
        job_context=_format_job_context(job_profile),
        company_context=_format_company_context(company_profile),
        target_chars=target_chars or bullet.length_chars or len(bullet.text),
    )


def parse_bullet_response(text: str) -> str:
    """
    Bullet text from an LLM response.

    Strips code fences and unwraps {"text": "..."} when the model returns JSON.
    """
    text = extract_json_block(text) if "```" in text else text.strip()
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return text
    if isinstance(payload, dict) and isinstance(payload.get("text"), str) and payload["text"].strip():
        return payload["text"].strip()
    return text


class LLMRewriter(Rewriter):
    """
    Rewrites bullets with one LLM call per bullet.

    Example:
        >>> rewriter = LLMRewriter(provider_name="anthropic")
        >>> rewritten = rewriter.rewrite(selected, job_profile, company_profile)
    """

    def __init__(
        self,
        provider: Optional[LLMProvider] = None,
        provider_name: Optional[str] = None,
        model: Optional[str] = None,
    ):
        self._provider = provider
        self._provider_name = provider_name
        self._model = model

    @property
    def provider(self) -> LLMProvider:
        # Providers need API keys, so only construct one when a rewrite is requested
        if self._provider is None:
            self._provider = get_provider(provider_name=self._provider_name, model=self._model)
        return self._provider

    def rewrite(
        self,
        bullets: List[SelectedBullet],
        job_profile: JobProfile,
        company_profile: Optional[CompanyProfile],
        target_chars: Optional[Dict[str, int]] = None,
    ) -> List[RewrittenBullet]:
        target_chars = target_chars or {}
        result = []
        for bullet in bullets:
            user_prompt = build_rewrite_prompt(
                bullet, job_profile, company_profile, target_chars.get(bullet.id)
            )
            response = self.provider.generate(system_prompt=_SYSTEM_PROMPT, user_prompt=user_prompt)
            text = parse_bullet_response(response.content)
            if not text:
                raise ValueError(f"LLM returned an empty rewrite for bullet {bullet.id}")
            result.append(build_rewritten_bullet(text, bullet, company_profile))
        return result


def truncate_to_words(text: str, max_chars: int) -> str:
    """Longest word-boundary prefix of text within max_chars (hard cut for one long word)."""
    text = " ".join(text.split())
    if len(text) <= max_chars:
        return text
    window = text[: max_chars + 1]
    cut = window.rsplit(" ", 1)[0] if " " in window else ""
    return (cut or text[:max_chars]).rstrip(" ,;:")


class TruncatingRewriter(Rewriter):
    """
    Offline rewriter: keeps the original wording and only enforces target lengths.

    Used when no LLM provider is configured, and as a deterministic rewriter in tests.
    """

    def rewrite(
        self,
        bullets: List[SelectedBullet],
        job_profile: JobProfile,
        company_profile: Optional[CompanyProfile],
        target_chars: Optional[Dict[str, int]] = None,
    ) -> List[RewrittenBullet]:
        target_chars = target_chars or {}
        result = []
        for bullet in bullets:
            text = bullet.text
            if bullet.id in target_chars:
                text = truncate_to_words(text, target_chars[bullet.id])
            result.append(build_rewritten_bullet(text, bullet, company_profile))
        return result
