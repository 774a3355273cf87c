"""JSON artifact loading and saving for planner and repair runs."""

import json
from pathlib import Path
from typing import Any, Dict, List, Union

from quiver.contexts.targeting.data_structures import (
    CompanyProfile,
    ExperienceBank,
    JobProfile,
    Plan,
    RankedStory,
    RewrittenBullet,
)

PathLike = Union[str, Path]


def load_json(path: PathLike) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def save_json(data: Any, path: PathLike) -> Path:
    """Write data as indented JSON, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
        f.write("\n")
    return path


def load_experience_bank(path: PathLike) -> ExperienceBank:
    return ExperienceBank.from_dict(load_json(path))


def load_ranked_stories(path: PathLike) -> List[RankedStory]:
    """
    Load ranked stories, most relevant first.

    Accepts either a bare list or {"ranked": [...]}.
    """
    data = load_json(path)
    if isinstance(data, dict):
        data = data.get("ranked", [])
    return [RankedStory.from_dict(item) for item in data]


def load_job_profile(path: PathLike) -> JobProfile:
    return JobProfile.from_dict(load_json(path))


def load_company_profile(path: PathLike) -> CompanyProfile:
    return CompanyProfile.from_dict(load_json(path))


def load_plan(path: PathLike) -> Plan:
    return Plan.from_dict(load_json(path))


def load_rewritten_bullets(path: PathLike) -> List[RewrittenBullet]:
    """Accepts either a bare list or {"bullets": [...]}."""
    data = load_json(path)
    if isinstance(data, dict):
        data = data.get("bullets", [])
    return [RewrittenBullet.from_dict(item) for item in data]


def rewritten_to_dict(bullets: List[RewrittenBullet]) -> Dict[str, Any]:
    return {"bullets": [b.to_dict() for b in bullets]}
