"""Custom exceptions for the repair context."""

from typing import Any, Optional


class RepairError(Exception):
    """
    Base exception for repair failures.

    Attributes:
        message: Error description
        cause: The underlying exception, if any
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause

        text = f"{message}: {cause}" if cause is not None else message
        super().__init__(text)


class ActionValidationError(RepairError):
    """
    Exception raised when a proposed repair action is malformed or unsupported.

    The whole batch is rejected before anything is applied.

    Attributes:
        action_index: 0-based index of the offending action, if known
    """

    def __init__(
        self,
        message: str,
        action_index: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        self.action_index = action_index
        if action_index is not None:
            message = f"action {action_index}: {message}"
        super().__init__(message, cause)


class RepairLoopError(RepairError):
    """
    Exception raised when a repair iteration fails.

    Attributes:
        iteration: 1-based iteration that failed
        phase: Loop phase that failed ("propose", "apply", "rewrite", "render", "validate")
        result: RepairLoopResult holding the last committed state
    """

    def __init__(
        self,
        message: str,
        iteration: int,
        phase: str,
        cause: Optional[BaseException] = None,
        result: Any = None,
    ):
        self.iteration = iteration
        self.phase = phase
        self.result = result
        super().__init__(f"{message} (iteration {iteration}, phase {phase})", cause)


class ExternalCallError(RepairLoopError):
    """Exception raised when the proposer, rewriter, renderer or validator fails or times out."""
