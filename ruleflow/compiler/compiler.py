"""
Workflow compiler for the rule builder.

Walks the canvas graph from its root node and assembles the workflow
document consumed by the rules engine:

    {
        "WorkflowName": "Comp1",
        "Description": "",
        "Rules": [
            {
                "RuleName": "HighValueManagerSale",
                "Expression": '(sales.Amount > "1000") AND (user.Designation = "Manager")',
                "Actions": {
                    "OnSuccess": {"Name": "Bonus", "Context": {"Expression": "context.Bonus"}}
                },
                "SuccessEvent": "IndividualTarget",
            }
        ],
    }

Unlike the live validators, export is fail-fast: the first unrecoverable
problem raises ``CompilationError`` and no partial document is produced.
A rule group with no name or no conditions is the one exception; it is
skipped with a warning and the rest of the document is still built.
"""

import json
import logging
import time
from typing import Any

from ruleflow.compiler.expression import generate_expression
from ruleflow.compiler.traversal import GraphIndex, group_conditions, group_operators
from ruleflow.compiler.validator import check_group_structure
from ruleflow.core.config import settings
from ruleflow.core.errors import CompilationError, ExpressionError, GraphIntegrityError
from ruleflow.core.observability import record_compilation
from ruleflow.domain.enums import ActionType, NodeKind
from ruleflow.domain.models import ActionLabelNode, FlowGraph, GroupNode, RootNode

logger = logging.getLogger(__name__)

DEFAULT_ACTION_NAME = "DefaultAction"


def generate_rule_engine_json(
    graph: FlowGraph,
    *,
    success_event: str | None = None,
    description: str | None = None,
) -> dict[str, Any]:
    """
    Compile the canvas graph into the workflow document.

    Steps:
    1. Locate the single root node and its workflow name
    2. Find every rule group fed by the root through a rule label
    3. Validate each rule group and synthesize its expression
    4. Attach the actions of every action group connected to it
    5. Assemble the document with keys in schema order

    Args:
        graph: Snapshot of the canvas
        success_event: SuccessEvent written on every rule
            (defaults to settings.export_success_event)
        description: Description used when the root node carries none
            (defaults to settings.export_default_description)

    Returns:
        Workflow document as a dict

    Raises:
        CompilationError: If the graph cannot be exported
    """
    start_time = time.perf_counter()
    logger.info(
        "Starting workflow export",
        extra={"node_count": len(graph.nodes), "edge_count": len(graph.edges)},
    )

    try:
        document = _compile(graph, success_event=success_event, description=description)
    except CompilationError as exc:
        duration = time.perf_counter() - start_time
        logger.error("Workflow export failed: %s", exc.message, extra={"details": exc.details})
        record_compilation("failure", duration, 0, 0)
        raise

    duration = time.perf_counter() - start_time
    document_bytes = len(json.dumps(document).encode("utf-8"))
    logger.info(
        "Workflow export completed for %s",
        document["WorkflowName"],
        extra={
            "rule_count": len(document["Rules"]),
            "document_bytes": document_bytes,
            "duration_ms": round(duration * 1000, 3),
        },
    )
    record_compilation("success", duration, len(document["Rules"]), document_bytes)
    return document


def _compile(
    graph: FlowGraph, *, success_event: str | None, description: str | None
) -> dict[str, Any]:
    try:
        index = GraphIndex(graph)
    except GraphIntegrityError as exc:
        raise CompilationError(f"Invalid graph: {exc.message}", details=exc.details) from exc

    root = _find_root(index)
    workflow_name = root.data.workflow_name.strip()
    if not workflow_name:
        raise CompilationError(
            "Workflow Name is required in Initial Node.", details={"node_id": root.id}
        )

    rule_groups = _find_rule_groups(root, index)
    if not rule_groups:
        raise CompilationError(
            "No Rule Groups found. Please add and connect Rule Groups to the Initial Node."
        )

    event = success_event if success_event is not None else settings.export_success_event
    rules: list[dict[str, Any]] = []
    for group in rule_groups:
        rule = _compile_rule_group(group, index, event)
        if rule is not None:
            rules.append(rule)

    if not rules:
        raise CompilationError(
            "No valid rules found. Please ensure all Rule Groups have proper connections and data."
        )

    if root.data.description.strip():
        document_description = root.data.description
    elif description is not None:
        document_description = description
    else:
        document_description = settings.export_default_description

    return {
        "WorkflowName": workflow_name,
        "Description": document_description,
        "Rules": rules,
    }


def _find_root(index: GraphIndex) -> RootNode:
    roots = index.nodes_of_kind(NodeKind.ROOT)
    if not roots:
        raise CompilationError("No Initial Node found. Please add an Initial Node first.")
    if len(roots) > 1:
        raise CompilationError(
            "Only one Initial Node is allowed for the whole flow chart.",
            details={"node_ids": [node.id for node in roots]},
        )
    return roots[0]


def _find_rule_groups(root: RootNode, index: GraphIndex) -> list[GroupNode]:
    """Groups reached from the root through an edge to one of their rule labels."""
    groups: list[GroupNode] = []
    seen: set[str] = set()
    for label in index.outgoers(root.id):
        if label.type != NodeKind.RULE_LABEL:
            continue
        group = index.node(label.parent_id)
        if group is None or group.type != NodeKind.GROUP or group.id in seen:
            continue
        seen.add(group.id)
        groups.append(group)
    return groups


def _compile_rule_group(group: GroupNode, index: GraphIndex, success_event: str) -> dict | None:
    labels = index.children(group.id, NodeKind.RULE_LABEL)
    rule_name = labels[0].data.rule_name.strip() if labels else ""
    if not rule_name:
        logger.warning("Skipping rule group %s: no rule name", group.id)
        return None

    conditions = group_conditions(group.id, index)
    if not conditions:
        logger.warning("Skipping rule group %s (%s): no conditions", group.id, rule_name)
        return None

    _require_valid_structure(group.id, index, f"Rule Group '{rule_name}'")
    expression = _synthesize(group.id, index, f"Rule Group '{rule_name}'")

    return {
        "RuleName": rule_name,
        "Expression": expression,
        "Actions": _compile_actions(group, index),
        "SuccessEvent": success_event,
    }


def _require_valid_structure(group_id: str, index: GraphIndex, label: str) -> None:
    result = check_group_structure(group_id, index)
    if not result.is_valid:
        first = result.errors[0]
        raise CompilationError(
            f"{label} has structural errors: {first.message}",
            details={"group_id": group_id, "errors": [issue.to_dict() for issue in result.errors]},
        )


def _synthesize(group_id: str, index: GraphIndex, label: str) -> str:
    try:
        return generate_expression(
            group_conditions(group_id, index), group_operators(group_id, index), index
        )
    except ExpressionError as exc:
        raise CompilationError(
            f"{label}: {exc.message}", details={"group_id": group_id, **exc.details}
        ) from exc


# =============================================================================
# Actions
# =============================================================================


def find_action_groups(rule_group_id: str, index: GraphIndex) -> list[GroupNode]:
    """
    Action groups attached to a rule group.

    Nested action groups (by ``parentId``) come first, then groups reached
    through an operator -> action label edge.
    """
    groups = [
        child
        for child in index.children(rule_group_id, NodeKind.GROUP)
        if child.data.is_action_group
    ]
    seen = {group.id for group in groups}

    for operator in group_operators(rule_group_id, index):
        for target in index.outgoers(operator.id):
            if target.type != NodeKind.ACTION_LABEL:
                continue
            group = index.node(target.parent_id)
            if group is None or group.type != NodeKind.GROUP or group.id in seen:
                continue
            seen.add(group.id)
            groups.append(group)
    return groups


def normalize_action_type(raw: str) -> str:
    """``onSuccess`` -> ``OnSuccess``; blank -> ``OnSuccess``."""
    text = raw.strip()
    if not text:
        return ActionType.ON_SUCCESS.value
    return text[0].upper() + text[1:]


def _compile_actions(rule_group: GroupNode, index: GraphIndex) -> dict[str, Any]:
    actions: dict[str, Any] = {}
    for action_group in find_action_groups(rule_group.id, index):
        for label in index.children(action_group.id, NodeKind.ACTION_LABEL):
            action_type, entry = _compile_action(label, action_group, index)
            if action_type in actions:
                logger.warning(
                    "Action type %s defined more than once for rule group %s; "
                    "action group %s replaces the earlier entry",
                    action_type,
                    rule_group.id,
                    action_group.id,
                )
            actions[action_type] = entry
    return actions


def _compile_action(
    label: ActionLabelNode, action_group: GroupNode, index: GraphIndex
) -> tuple[str, dict[str, Any]]:
    action_type = normalize_action_type(label.data.action_type)
    action_name = label.data.action_name.strip() or DEFAULT_ACTION_NAME

    if group_conditions(action_group.id, index):
        group_label = f"Action Group '{action_name}'"
        _require_valid_structure(action_group.id, index, group_label)
        expression = _synthesize(action_group.id, index, group_label)
    else:
        expression = f"context.{action_name}"

    return action_type, {"Name": action_name, "Context": {"Expression": expression}}
