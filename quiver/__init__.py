"""
QUIVER - Quantified Upper-bounded Inclusion of Verified Experience for Resumes

Plans which experience content goes into a tailored resume and repairs that plan
when the rendered document breaks layout or style constraints.

Architecture:
- Targeting Context: Skill targets, relevance scoring, greedy + knapsack selection
- Rewriting Context: Bullet text regeneration and style checks
- Rendering Context: LaTeX rendering, constraint validation, overflow analysis
- Repair Context: Repair actions and the bounded repair loop
"""

__version__ = "0.1.0"
