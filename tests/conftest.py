"""Shared fixtures: a small experience bank, its ranking, and job/company profiles."""

import pytest

from quiver.contexts.targeting.data_structures import (
    Bullet,
    CompanyProfile,
    ExperienceBank,
    JobProfile,
    Plan,
    RankedStory,
    Requirement,
    RewrittenBullet,
    SpaceBudget,
    Story,
    StorySelection,
    StyleChecks,
    estimate_lines,
)


def make_bullet(bullet_id, skills=(), length=80, text=None):
    text = text or f"Built {bullet_id} " + "x" * max(0, length - len(bullet_id) - 7)
    return Bullet(id=bullet_id, text=text, skills=tuple(skills), length_chars=length)


def make_rewritten(bullet_id, length=80, text=None, checks=None):
    text = text or "y" * length
    return RewrittenBullet(
        original_bullet_id=bullet_id,
        final_text=text,
        length_chars=length,
        estimated_lines=estimate_lines(length),
        style_checks=checks or StyleChecks(),
    )


@pytest.fixture
def experience_bank():
    """Three stories; story_001 is the strongest match for the sample job."""
    return ExperienceBank(
        [
            Story(
                id="story_001",
                company="Acme Corp",
                role="ML Engineer",
                start_date="2022-01",
                end_date="2024-06",
                bullets=(
                    Bullet(
                        id="b001",
                        text="Built Python services for model serving handling 2M requests per day",
                        skills=("Python", "Model Serving"),
                        length_chars=90,
                    ),
                    Bullet(
                        id="b002",
                        text="Migrated 40 services to Kubernetes, cutting deploy time by 60%",
                        skills=("Kubernetes",),
                        length_chars=150,
                    ),
                    Bullet(
                        id="b003",
                        text="Automated AWS cost reports for the platform team",
                        skills=("AWS",),
                        length_chars=80,
                    ),
                ),
            ),
            Story(
                id="story_002",
                company="Globex",
                role="Data Engineer",
                start_date="2019-03",
                end_date="2021-12",
                bullets=(
                    Bullet(
                        id="b004",
                        text="Designed Spark pipelines in Python processing 5TB nightly",
                        skills=("Spark", "Python"),
                        length_chars=120,
                    ),
                    Bullet(
                        id="b005",
                        text="Tuned SQL warehouse queries, reducing cost by 30%",
                        skills=("SQL",),
                        length_chars=60,
                    ),
                ),
            ),
            Story(
                id="story_003",
                company="Initech",
                role="Analyst Intern",
                start_date="2018-06",
                end_date="2018-09",
                bullets=(
                    Bullet(
                        id="b006",
                        text="Maintained Excel reports for the sales team",
                        skills=("Excel",),
                        length_chars=50,
                    ),
                ),
            ),
        ]
    )


@pytest.fixture
def ranked_stories():
    return [
        RankedStory(story_id="story_001", relevance_score=0.9, matched_skills=["python", "kubernetes"]),
        RankedStory(story_id="story_002", relevance_score=0.7, matched_skills=["python", "sql"]),
        RankedStory(story_id="story_003", relevance_score=0.3),
    ]


@pytest.fixture
def job_profile():
    return JobProfile(
        company="Acme Corp",
        role_title="Senior ML Engineer",
        hard_requirements=[Requirement(skill="Python"), Requirement(skill="Kubernetes")],
        nice_to_haves=[Requirement(skill="AWS")],
        keywords=["SQL"],
    )


@pytest.fixture
def company_profile():
    return CompanyProfile(
        company="Acme Corp",
        tone="direct",
        taboo_phrases=["synergy", "rockstar"],
    )


@pytest.fixture
def space_budget():
    return SpaceBudget(max_bullets=4, max_lines=8)


@pytest.fixture
def bullet_factory():
    return make_bullet


@pytest.fixture
def rewritten_factory():
    return make_rewritten


@pytest.fixture
def sample_plan(space_budget):
    """story_001 (b001, b002) and story_003 (b006); story_002 is left out."""
    return Plan(
        selected_stories=[
            StorySelection(story_id="story_001", bullet_ids=["b001", "b002"], estimated_lines=3),
            StorySelection(story_id="story_003", bullet_ids=["b006"], estimated_lines=1),
        ],
        space_budget=space_budget,
    )


@pytest.fixture
def sample_rewritten():
    """Rewritten text for every bullet in sample_plan, at the source lengths."""
    return [make_rewritten("b001", 90), make_rewritten("b002", 150), make_rewritten("b006", 50)]
