"""
Targeting Context

Responsibilities:
- Turns job requirements into weighted skill targets
- Scores bullets and story combinations against those targets
- Selects which stories and bullets fit the space budget (greedy + knapsack)
- Scores placed bullets by relevance so repair can drop the weakest first

Owns: Content data structures, skill matching, selection algorithms, relevance scoring
Never: Renders documents or calls an LLM
"""

from quiver.contexts.targeting.data_structures import (
    AllocationResult,
    Bullet,
    CompanyProfile,
    Coverage,
    ExperienceBank,
    JobProfile,
    Plan,
    RankedStory,
    Requirement,
    RewrittenBullet,
    SelectedBullet,
    SkillTarget,
    SpaceBudget,
    Story,
    StorySelection,
    StyleChecks,
    estimate_lines,
)
from quiver.contexts.targeting.exceptions import (
    ContentReferenceError,
    SelectionError,
    SolverError,
)
from quiver.contexts.targeting.greedy import GreedyAllocator
from quiver.contexts.targeting.hybrid import HybridPlanner
from quiver.contexts.targeting.knapsack import KnapsackAllocator
from quiver.contexts.targeting.planner import compute_coverage, materialize_bullets, select_plan
from quiver.contexts.targeting.relevance import RelevanceScorer, ScoredBullet
from quiver.contexts.targeting.skill_targets import build_skill_targets

__all__ = [
    "AllocationResult",
    "Bullet",
    "CompanyProfile",
    "ContentReferenceError",
    "Coverage",
    "ExperienceBank",
    "GreedyAllocator",
    "HybridPlanner",
    "JobProfile",
    "KnapsackAllocator",
    "Plan",
    "RankedStory",
    "RelevanceScorer",
    "Requirement",
    "RewrittenBullet",
    "ScoredBullet",
    "SelectedBullet",
    "SelectionError",
    "SkillTarget",
    "SolverError",
    "SpaceBudget",
    "Story",
    "StorySelection",
    "StyleChecks",
    "build_skill_targets",
    "compute_coverage",
    "estimate_lines",
    "materialize_bullets",
    "select_plan",
]
