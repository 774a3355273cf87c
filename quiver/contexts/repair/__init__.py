"""
Repair Context

Responsibilities:
- Proposes repair actions for document violations (rule-based or LLM)
- Validates and applies actions deterministically to copies of the plan
- Drives the bounded propose -> apply -> regenerate -> render -> validate loop

Owns: Repair actions, proposers, the repair loop and its history
Never: Scores or selects content from scratch (uses targeting), renders or
       compiles documents itself (uses injected Renderer and Validator)
"""

from quiver.contexts.repair.actions import (
    MAX_ACTIONS,
    ActionType,
    RepairAction,
    parse_repair_response,
    validate_proposed_actions,
)
from quiver.contexts.repair.apply import ApplyResult, apply_repairs
from quiver.contexts.repair.exceptions import (
    ActionValidationError,
    ExternalCallError,
    RepairError,
    RepairLoopError,
)
from quiver.contexts.repair.loop import IterationRecord, LoopState, RepairLoopResult, run_repair_loop
from quiver.contexts.repair.proposer import (
    LLMProposer,
    OverflowProposer,
    Proposer,
    propose_bullet_drops,
)

__all__ = [
    "MAX_ACTIONS",
    "ActionType",
    "ActionValidationError",
    "ApplyResult",
    "ExternalCallError",
    "IterationRecord",
    "LLMProposer",
    "LoopState",
    "OverflowProposer",
    "Proposer",
    "RepairAction",
    "RepairError",
    "RepairLoopError",
    "RepairLoopResult",
    "apply_repairs",
    "parse_repair_response",
    "propose_bullet_drops",
    "run_repair_loop",
    "validate_proposed_actions",
]
