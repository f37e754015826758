"""
Domain-specific exceptions for the rule flow compiler.

Live validation never raises these for a badly shaped graph; it reports
issues instead. They are raised when the node/edge snapshot itself is
inconsistent, or by the export path, which fails fast.
"""

from typing import Any


class RuleFlowError(Exception):
    """Base exception for all rule flow errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class GraphIntegrityError(RuleFlowError):
    """
    Raised when the node/edge collections contradict each other.

    Examples:
    - Two nodes share the same id
    - An edge names a source or target that is not in the node set

    Live validators convert this into a single ``invalid_connection`` issue.
    """

    pass


class ExpressionError(RuleFlowError):
    """
    Raised when a condition sub-graph cannot be folded into an expression.

    Examples:
    - A condition is missing its table, field, comparison or value
    - The comparison is not part of the expression grammar
    - A cycle is met while folding operands
    """

    pass


class CompilationError(RuleFlowError):
    """
    Raised when exporting the workflow document fails.

    Examples:
    - No root node, or a blank workflow name
    - No rule group connected to the root
    - A structural violation inside a rule group
    - Every rule group was skipped
    """

    pass
