"""
LaTeX rendering of a plan and its rewritten bullets.

Bullets are grouped by company, then by role, in the order they first appear
in the plan. Every bullet is rendered as one "\\item" line, which lets the
renderer report a line map (1-based document line -> bullet id) that
validators use to attribute violations.
"""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv
from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from quiver.contexts.rendering.logger import _log_debug, _log_warning
from quiver.contexts.targeting.data_structures import ExperienceBank, Plan, RewrittenBullet

load_dotenv()

TEMPLATES_PATH = Path(__file__).resolve().parent / "templates"
DEFAULT_TEMPLATE = os.getenv("RESUME_TEMPLATE", "resume.tex.jinja")

LATEX_ESCAPES = {
    "\\": r"\textbackslash{}",
    "{": r"\{",
    "}": r"\}",
    "$": r"\$",
    "&": r"\&",
    "%": r"\%",
    "#": r"\#",
    "^": r"\textasciicircum{}",
    "_": r"\_",
    "~": r"\textasciitilde{}",
}


def escape_latex(text: str) -> str:
    r"""Escape LaTeX special characters: \ { } $ & % # ^ _ ~"""
    return "".join(LATEX_ESCAPES.get(ch, ch) for ch in text)


class RenderError(Exception):
    """
    Exception raised when a document cannot be rendered.

    Attributes:
        message: Error description
        cause: The underlying exception, if any
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        super().__init__(f"{message}: {cause}" if cause is not None else message)


@dataclass
class CandidateInfo:
    name: str = ""
    email: str = ""
    phone: str = ""

    @property
    def contact_line(self) -> str:
        return r" \textbar{} ".join(escape_latex(part) for part in (self.email, self.phone) if part)


@dataclass
class RenderedDocument:
    """Rendered document text plus its 1-based line -> bullet id map."""

    text: str
    line_map: Dict[int, str] = field(default_factory=dict)


class Renderer(ABC):
    """Turns a plan and its rewritten bullets into document text."""

    @abstractmethod
    def render(
        self,
        plan: Plan,
        rewritten_bullets: List[RewrittenBullet],
        experience_bank: ExperienceBank,
        candidate: CandidateInfo,
    ) -> RenderedDocument:
        """Render the document; raises on template or data errors."""


def _single_line(text: str) -> str:
    return " ".join(text.split())


def _date_range(start: str, end: str) -> str:
    if not start and not end:
        return ""
    end = "Present" if end.lower() == "present" else end
    return f"{escape_latex(start)} -- {escape_latex(end)}"


def group_by_company_and_role(
    plan: Plan, rewritten_bullets: List[RewrittenBullet], experience_bank: ExperienceBank
) -> Tuple[List[dict], List[Tuple[str, str]]]:
    """
    Build template sections and the expected "\\item" lines.

    Returns:
        (companies, items) where companies is the template data and items
        lists (bullet_id, item line) in document order
    """
    texts = {b.original_bullet_id: b.final_text for b in rewritten_bullets}

    companies: Dict[str, Dict[str, dict]] = {}
    for selection in plan.selected_stories:
        story = experience_bank.get_story(selection.story_id)
        company = story.company if story is not None else selection.story_id
        role = story.role if story is not None else "Role"

        roles = companies.setdefault(company, {})
        entry = roles.setdefault(role, {"title": escape_latex(role), "ranges": [], "bullets": []})
        if story is not None and (story.start_date or story.end_date):
            date_range = (story.start_date, story.end_date)
            if date_range not in entry["ranges"]:
                entry["ranges"].append(date_range)

        for bullet_id in selection.bullet_ids:
            if bullet_id not in texts:
                _log_debug(f"  No rewritten text for {bullet_id}, not rendered")
                continue
            entry["bullets"].append((bullet_id, escape_latex(_single_line(texts[bullet_id]))))

    sections = []
    items = []
    for company, roles in companies.items():
        role_sections = []
        for entry in roles.values():
            if not entry["bullets"]:
                continue
            role_sections.append(
                {
                    "title": entry["title"],
                    "dates": ", ".join(_date_range(s, e) for s, e in sorted(entry["ranges"])),
                    "bullets": [text for _, text in entry["bullets"]],
                }
            )
            items.extend((bullet_id, f"\\item {text}") for bullet_id, text in entry["bullets"])
        if role_sections:
            sections.append({"name": escape_latex(company), "roles": role_sections})

    return sections, items


def build_line_map(text: str, items: List[Tuple[str, str]]) -> Dict[int, str]:
    """Locate each expected item line, in order, and map its line number to the bullet id."""
    line_map = {}
    pending = list(items)
    for line_number, line in enumerate(text.splitlines(), start=1):
        if not pending:
            break
        bullet_id, expected = pending[0]
        if line.strip() == expected.strip():
            line_map[line_number] = bullet_id
            pending.pop(0)

    if pending:
        _log_warning(f"{len(pending)} bullet(s) not found in rendered output: {[b for b, _ in pending]}")
    return line_map


class LatexRenderer(Renderer):
    """
    Renders resumes through a jinja2 LaTeX template.

    Example:
        >>> renderer = LatexRenderer()
        >>> document = renderer.render(plan, rewritten, bank, CandidateInfo(name="Ada Lovelace"))
        >>> document.line_map
        {18: 'b_001', 19: 'b_002'}
    """

    def __init__(self, template_name: str = DEFAULT_TEMPLATE, templates_path: Path = TEMPLATES_PATH):
        self.template_name = template_name
        # Custom delimiters to avoid LaTeX brace conflicts
        self.env = Environment(
            loader=FileSystemLoader(str(templates_path)),
            undefined=StrictUndefined,
            variable_start_string="<<<",
            variable_end_string=">>>",
            block_start_string="<%%",
            block_end_string="%%>",
            comment_start_string="<#",
            comment_end_string="#>",
            trim_blocks=False,
            lstrip_blocks=False,
            keep_trailing_newline=True,
        )

    def render(
        self,
        plan: Plan,
        rewritten_bullets: List[RewrittenBullet],
        experience_bank: ExperienceBank,
        candidate: CandidateInfo,
    ) -> RenderedDocument:
        companies, items = group_by_company_and_role(plan, rewritten_bullets, experience_bank)

        try:
            template = self.env.get_template(self.template_name)
            text = template.render(
                candidate={"name": escape_latex(candidate.name), "contact_line": candidate.contact_line},
                companies=companies,
            )
        except TemplateError as e:
            raise RenderError(f"failed to render template '{self.template_name}'", cause=e) from e

        return RenderedDocument(text=text, line_map=build_line_map(text, items))
