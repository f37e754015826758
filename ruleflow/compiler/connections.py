"""
Connection admission: the gate run before a proposed edge is committed.

The check is pure. It reads the current snapshot, evaluates the proposed
edge as if it were already drawn and reports every violated rule. The edge
is admitted when the returned result carries no errors; committing it is
the caller's job.
"""

import logging
from typing import Any

from ruleflow.compiler.traversal import GraphIndex
from ruleflow.core.errors import GraphIntegrityError
from ruleflow.core.observability import record_validation
from ruleflow.domain.enums import NodeKind
from ruleflow.domain.enums import ValidationIssueType as IssueType
from ruleflow.domain.models import Connection, FlowGraph
from ruleflow.domain.results import ValidationIssue, ValidationResult

logger = logging.getLogger(__name__)


def validate_edge_connection(
    connection: Connection | dict[str, Any], graph: FlowGraph
) -> ValidationResult:
    """
    Decide whether a proposed edge may be added to the graph.

    Rules:
    1. Both endpoints exist (otherwise nothing else is checked)
    2. No Condition -> Condition edge
    3. No Operator -> Condition edge
    4. A non-root source may drive only one downstream node
    5. The edge must not close a cycle

    Args:
        connection: Proposed edge, ``{"source": ..., "target": ...}``
        graph: Snapshot the edge would be added to

    Returns:
        ValidationResult; the edge is admitted iff ``is_valid``
    """
    if not isinstance(connection, Connection):
        connection = Connection.model_validate(connection)

    try:
        result = _check_connection(connection, GraphIndex(graph))
    except GraphIntegrityError as exc:
        result = ValidationResult.from_issues(
            [
                ValidationIssue(
                    type=IssueType.INVALID_CONNECTION,
                    message=f"Connection validation failed: {exc.message}",
                    node_id=connection.source,
                )
            ]
        )

    if not result.is_valid:
        logger.debug(
            "Rejected connection %s -> %s: %s",
            connection.source,
            connection.target,
            ", ".join(t.value for t in result.issue_types()),
        )
    record_validation("connection", result)
    return result


def _check_connection(connection: Connection, index: GraphIndex) -> ValidationResult:
    source = index.node(connection.source)
    target = index.node(connection.target)

    if source is None or target is None:
        return ValidationResult.from_issues(
            [
                ValidationIssue(
                    type=IssueType.INVALID_CONNECTION,
                    message="Source or target node not found",
                    node_id=connection.source if source is None else connection.target,
                )
            ]
        )

    errors: list[ValidationIssue] = []

    def reject(issue_type: IssueType, message: str) -> None:
        errors.append(ValidationIssue(type=issue_type, message=message, node_id=source.id))

    if source.type == NodeKind.CONDITION and target.type == NodeKind.CONDITION:
        reject(IssueType.INVALID_CONNECTION, "Cannot connect conditions directly to each other")

    if source.type == NodeKind.OPERATOR and target.type == NodeKind.CONDITION:
        reject(
            IssueType.INVALID_CONNECTION,
            "Operators cannot connect directly to conditions (reversed flow not allowed)",
        )

    if source.type != NodeKind.ROOT and index.outgoers(source.id):
        reject(
            IssueType.INVALID_CONNECTION,
            "Branching out not allowed - each node can connect to only one downstream node",
        )

    # source is reachable from target once source -> target exists
    if index.has_path(target.id, source.id):
        reject(IssueType.CYCLE, "This connection would create a cycle")

    return ValidationResult.from_issues(errors)
