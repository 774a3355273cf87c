"""Custom exceptions for the targeting context."""

from typing import Optional


class SelectionError(Exception):
    """
    Exception raised when content selection cannot proceed.

    Attributes:
        message: Error description
        cause: The underlying exception, if any
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause

        text = f"{message}: {cause}" if cause is not None else message
        super().__init__(text)


class ContentReferenceError(SelectionError):
    """
    Exception raised when a story, bullet or skill id is not known.

    Attributes:
        kind: What was referenced ("story", "bullet", "skill")
        ref_id: The unknown identifier
    """

    def __init__(
        self,
        kind: str,
        ref_id: str,
        message: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        self.kind = kind
        self.ref_id = ref_id
        super().__init__(message or f"unknown {kind} '{ref_id}'", cause)


class SolverError(SelectionError):
    """Exception raised when the knapsack solver finds no feasible state."""
