"""
Bounded repair loop.

Each iteration: propose actions -> validate and apply them -> regenerate the
bullets that need fresh text -> render -> validate the document. The loop
stops when no violations remain or max_iterations is reached.

    SELECTING -> VALIDATING -> DONE
                     |
                     +-> REPAIRING -> SELECTING

REPAIRING covers propose and apply, SELECTING covers regeneration of the
changed selection (skipped when nothing needs new text) and VALIDATING covers
render and validate. Each IterationRecord lists the states it passed through.

Every iteration works on copies; the state passed in is never modified and a
failed iteration leaves the last committed state available on the error.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from quiver.contexts.rendering.renderer import CandidateInfo, RenderedDocument, Renderer
from quiver.contexts.rendering.validator import Validator
from quiver.contexts.rendering.violations import Violation
from quiver.contexts.repair.actions import (
    RepairAction,
    truncate_actions,
    validate_proposed_actions,
)
from quiver.contexts.repair.apply import apply_repairs, recalculate_estimated_lines
from quiver.contexts.repair.exceptions import ExternalCallError, RepairError, RepairLoopError
from quiver.contexts.repair.logger import (
    _log_debug,
    _log_warning,
    log_actions,
    log_iteration_result,
    log_iteration_start,
    log_loop_finished,
    log_regeneration,
)
from quiver.contexts.repair.proposer import Proposer
from quiver.contexts.rewriting.rewriter import Rewriter
from quiver.contexts.targeting.data_structures import (
    CompanyProfile,
    ExperienceBank,
    JobProfile,
    Plan,
    RankedStory,
    RewrittenBullet,
    copy_rewritten,
)
from quiver.contexts.targeting.exceptions import SelectionError
from quiver.contexts.targeting.planner import materialize_bullets
from quiver.utils.event_logging import log_pipeline_event


class LoopState(Enum):
    """Repair loop states."""

    SELECTING = "selecting"
    VALIDATING = "validating"
    REPAIRING = "repairing"
    DONE = "done"
    ITERATIONS_EXHAUSTED = "iterations_exhausted"
    FAILED = "failed"


@dataclass
class IterationRecord:
    """What one completed iteration did."""

    iteration: int
    actions: List[RepairAction]
    violations_before: List[Violation]
    violations_after: List[Violation]
    regenerated: List[str] = field(default_factory=list)
    states: List[LoopState] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "iteration": self.iteration,
            "states": [s.value for s in self.states],
            "actions": [a.to_dict() for a in self.actions],
            "violations_before": [v.to_dict() for v in self.violations_before],
            "violations_after": [v.to_dict() for v in self.violations_after],
            "regenerated": list(self.regenerated),
        }


@dataclass
class RepairLoopResult:
    """
    Final (or last committed) state of a repair loop.

    Attributes:
        plan: Plan after the last completed iteration
        rewritten_bullets: Rewritten bullets matching plan
        document: Last rendered document, None if no iteration completed
        violations: Violations of document (or the initial violations)
        iterations: Number of iterations started
        final_state: DONE, ITERATIONS_EXHAUSTED or FAILED
        history: One IterationRecord per completed iteration
    """

    plan: Plan
    rewritten_bullets: List[RewrittenBullet]
    document: Optional[RenderedDocument]
    violations: List[Violation]
    iterations: int
    final_state: LoopState
    history: List[IterationRecord] = field(default_factory=list)


def _regeneration_ids(needs_rewrite: List[str], plan: Plan, rewritten: List[RewrittenBullet]) -> List[str]:
    """Marked ids first, then planned bullets that have no rewritten text."""
    ids = list(needs_rewrite)
    have = {b.original_bullet_id for b in rewritten}
    for bullet_id in plan.bullet_ids():
        if bullet_id not in have and bullet_id not in ids:
            ids.append(bullet_id)
    return ids


def run_repair_loop(
    initial_plan: Plan,
    initial_rewritten: List[RewrittenBullet],
    initial_violations: List[Violation],
    ranked_stories: List[RankedStory],
    job_profile: JobProfile,
    company_profile: Optional[CompanyProfile],
    experience_bank: ExperienceBank,
    proposer: Proposer,
    rewriter: Rewriter,
    renderer: Renderer,
    validator: Validator,
    candidate: CandidateInfo,
    max_pages: int,
    max_chars_per_line: int,
    max_iterations: int,
    deadline_s: Optional[float] = None,
    run_name: Optional[str] = None,
) -> RepairLoopResult:
    """
    Repair a rendered resume until it satisfies its constraints.

    Args:
        initial_plan: Plan the violations were found on
        initial_rewritten: Rewritten bullets of initial_plan
        initial_violations: Violations of the initial rendering
        max_iterations: Upper bound on iterations
        deadline_s: Optional wall-clock budget in seconds, checked before
                    every proposer, rewriter, renderer and validator call
        run_name: When set, iterations are recorded in the pipeline event log

    Returns:
        RepairLoopResult with final_state DONE or ITERATIONS_EXHAUSTED

    Raises:
        RepairLoopError: If actions are rejected or cannot be applied
        ExternalCallError: If an external call fails or the deadline passes
    """
    deadline = time.monotonic() + deadline_s if deadline_s is not None else None

    plan = initial_plan.copy()
    rewritten = copy_rewritten(initial_rewritten)
    violations = list(initial_violations)
    document: Optional[RenderedDocument] = None
    history: List[IterationRecord] = []
    iteration = 0

    def snapshot(final_state: LoopState) -> RepairLoopResult:
        return RepairLoopResult(
            plan=plan.copy(),
            rewritten_bullets=copy_rewritten(rewritten),
            document=document,
            violations=list(violations),
            iterations=iteration,
            final_state=final_state,
            history=list(history),
        )

    def fail(error_cls, message: str, phase: str, cause: BaseException):
        return error_cls(message, iteration, phase, cause, snapshot(LoopState.FAILED))

    def check_deadline(phase: str) -> None:
        if deadline is not None and time.monotonic() > deadline:
            cause = TimeoutError(f"repair deadline of {deadline_s}s exceeded")
            raise fail(ExternalCallError, "deadline exceeded", phase, cause) from cause

    while violations and iteration < max_iterations:
        iteration += 1
        states: List[LoopState] = []

        def enter(state: LoopState) -> None:
            states.append(state)
            _log_debug(f"  State: {state.value}")

        log_iteration_start(iteration, max_iterations, len(violations))
        enter(LoopState.REPAIRING)

        # 1. Propose
        check_deadline("propose")
        try:
            actions = proposer.propose(
                list(violations), plan.copy(), copy_rewritten(rewritten),
                ranked_stories, job_profile, company_profile,
            )
        except Exception as e:
            raise fail(ExternalCallError, "proposer failed", "propose", e) from e

        actions = truncate_actions(actions)
        log_actions(actions)
        if not actions:
            _log_warning("  No repair actions proposed")

        # 2. Apply
        try:
            validate_proposed_actions(actions, plan, rewritten, ranked_stories)
            applied = apply_repairs(actions, plan, rewritten, ranked_stories, experience_bank)
        except (RepairError, SelectionError) as e:
            raise fail(RepairLoopError, "failed to apply repairs", "apply", e) from e

        # 3. Regenerate
        new_plan = applied.plan
        new_rewritten = applied.rewritten_bullets
        regenerate = _regeneration_ids(applied.needs_rewrite, new_plan, new_rewritten)
        if regenerate:
            enter(LoopState.SELECTING)
            log_regeneration(regenerate)
            try:
                sources = materialize_bullets(new_plan, experience_bank)
            except SelectionError as e:
                raise fail(RepairLoopError, "failed to materialize bullets", "rewrite", e) from e

            check_deadline("rewrite")
            try:
                new_rewritten = rewriter.rewrite_selective(
                    new_rewritten, regenerate, sources,
                    job_profile, company_profile, applied.rewrite_targets,
                )
            except Exception as e:
                raise fail(ExternalCallError, "rewriter failed", "rewrite", e) from e
            recalculate_estimated_lines(new_plan, new_rewritten)

        # 4. Render
        enter(LoopState.VALIDATING)
        check_deadline("render")
        try:
            new_document = renderer.render(new_plan, new_rewritten, experience_bank, candidate)
        except Exception as e:
            raise fail(ExternalCallError, "renderer failed", "render", e) from e

        # 5. Validate
        check_deadline("validate")
        try:
            new_violations = validator.validate(
                new_document.text, company_profile, max_pages, max_chars_per_line,
                new_document.line_map, new_plan, new_rewritten,
            )
        except Exception as e:
            raise fail(ExternalCallError, "validator failed", "validate", e) from e

        record = IterationRecord(
            iteration=iteration,
            actions=actions,
            violations_before=violations,
            violations_after=list(new_violations),
            regenerated=regenerate,
            states=states,
        )
        history.append(record)
        log_iteration_result(iteration, len(violations), len(new_violations))

        plan, rewritten, document, violations = new_plan, new_rewritten, new_document, list(new_violations)

        if run_name:
            log_pipeline_event(
                event_type="repair_iteration",
                run_name=run_name,
                source="repair",
                iteration=iteration,
                actions=[a.to_dict() for a in actions],
                states=[s.value for s in states],
                violations_before=len(record.violations_before),
                violations_after=len(record.violations_after),
            )

    final_state = LoopState.DONE if not violations else LoopState.ITERATIONS_EXHAUSTED
    log_loop_finished(final_state.value, iteration, len(violations))

    if run_name:
        log_pipeline_event(
            event_type="repair_finished",
            run_name=run_name,
            source="repair",
            final_state=final_state.value,
            iterations=iteration,
            violations=len(violations),
        )

    return snapshot(final_state)
