"""
Structural validation for rule flow graphs.

Checks that each group's condition/operator sub-graph is a well formed
boolean expression tree:
- no directed cycle among conditions and operators
- no condition or operator unreachable from a source condition
- every operator has at least two effective operands

Validation never raises for a badly shaped graph. It returns a
``ValidationResult``; an inconsistent snapshot (edge to an unknown node,
duplicate ids) becomes a single ``invalid_connection`` error.
"""

import logging
from collections.abc import Callable

from ruleflow.compiler.expression import find_bridging_operator, partition_operands
from ruleflow.compiler.traversal import GraphIndex, group_conditions, group_operators
from ruleflow.core.config import settings
from ruleflow.core.errors import GraphIntegrityError
from ruleflow.core.observability import record_validation
from ruleflow.domain.enums import NodeKind
from ruleflow.domain.enums import ValidationIssueType as IssueType
from ruleflow.domain.models import FlowGraph
from ruleflow.domain.results import ValidationIssue, ValidationResult

logger = logging.getLogger(__name__)

_WHITE, _GRAY, _BLACK = 0, 1, 2


def validate_rule_group(
    rule_group_id: str,
    graph: FlowGraph,
    *,
    deep_nesting_threshold: int | None = None,
    operator_count_threshold: int | None = None,
) -> ValidationResult:
    """
    Validate the condition/operator sub-graph of one group.

    Args:
        rule_group_id: Id of the group node (rule or action group)
        graph: Snapshot of the canvas
        deep_nesting_threshold: Depth above which a warning is raised
            (defaults to settings.validation_deep_nesting_threshold)
        operator_count_threshold: Operator count above which a warning is
            raised (defaults to settings.validation_operator_count_threshold)

    Returns:
        ValidationResult with cycle, operator arity and disconnected-node
        errors, plus advisory warnings
    """
    try:
        index = GraphIndex(graph)
    except GraphIntegrityError as exc:
        result = _integrity_failure(
            f"Validation error in rule group {rule_group_id}: {exc.message}",
            rule_group_id=rule_group_id,
        )
    else:
        result = check_group_structure(
            rule_group_id,
            index,
            deep_nesting_threshold=deep_nesting_threshold,
            operator_count_threshold=operator_count_threshold,
        )
    record_validation("rule_group", result)
    return result


def validate_all_rule_groups(
    graph: FlowGraph,
    *,
    deep_nesting_threshold: int | None = None,
    operator_count_threshold: int | None = None,
) -> ValidationResult:
    """
    Validate every group node and union the results.

    The document is valid if and only if every group is valid.
    """
    try:
        index = GraphIndex(graph)
    except GraphIntegrityError as exc:
        result = _integrity_failure(f"Rule group validation failed: {exc.message}")
    else:
        result = ValidationResult.merge(
            check_group_structure(
                group.id,
                index,
                deep_nesting_threshold=deep_nesting_threshold,
                operator_count_threshold=operator_count_threshold,
            )
            for group in index.nodes_of_kind(NodeKind.GROUP)
        )
    record_validation("all_rule_groups", result)
    return result


def check_group_structure(
    group_id: str,
    index: GraphIndex,
    *,
    deep_nesting_threshold: int | None = None,
    operator_count_threshold: int | None = None,
) -> ValidationResult:
    """
    Structural check of one group against a prebuilt index.

    Traversal is a depth-first walk from every source condition (a condition
    with no incoming edge from inside the group). A back edge to a node still
    on the walk is a cycle. Nodes nested in the group that the walk never
    reaches are disconnected; they are then scanned once more so that a
    cycle among them is reported too.
    """
    if deep_nesting_threshold is None:
        deep_nesting_threshold = settings.validation_deep_nesting_threshold
    if operator_count_threshold is None:
        operator_count_threshold = settings.validation_operator_count_threshold

    conditions = group_conditions(group_id, index)
    operators = group_operators(group_id, index)

    # A bare single-condition rule needs no combination logic
    if len(conditions) == 1 and not operators:
        return ValidationResult.from_issues()

    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []

    scope = {node.id for node in conditions} | {node.id for node in operators}
    members = sorted(scope, key=index.order)
    sources = [node.id for node in conditions if not index.incomers(node.id, within=scope)]

    reached: set[str] = set()
    cycle_nodes: set[str] = set()
    color: dict[str, int] = {}

    def on_cycle(node_id: str) -> None:
        if node_id in cycle_nodes:
            return
        cycle_nodes.add(node_id)
        errors.append(
            ValidationIssue(
                type=IssueType.CYCLE,
                message=f"Cycle detected in rule group {group_id} at node {node_id}",
                node_id=node_id,
                rule_group_id=group_id,
            )
        )

    def on_visit(node_id: str, depth: int) -> None:
        reached.add(node_id)
        if depth > deep_nesting_threshold:
            warnings.append(
                ValidationIssue(
                    type=IssueType.DEEP_NESTING,
                    message=(
                        f"Deep nesting detected at node {node_id} in rule group {group_id} "
                        f"(depth {depth} > {deep_nesting_threshold}) - consider simplifying"
                    ),
                    node_id=node_id,
                    rule_group_id=group_id,
                )
            )

    for source in sources:
        if color.get(source, _WHITE) == _WHITE:
            _depth_first(source, scope, index, color, on_cycle, on_visit)

    for node_id in members:
        node = index.node(node_id)
        if node_id not in reached and node.parent_id == group_id:
            errors.append(
                ValidationIssue(
                    type=IssueType.DISCONNECTED,
                    message=f"Disconnected node {node_id} found in rule group {group_id}",
                    node_id=node_id,
                    rule_group_id=group_id,
                )
            )

    # Loops with no source condition are invisible to the walk above
    for node_id in members:
        if color.get(node_id, _WHITE) == _WHITE:
            _depth_first(node_id, scope, index, color, on_cycle, None)

    # Every operator needs two operands, whether or not the walk reached it
    for operator in operators:
        issue = _check_operator_arity(operator.id, group_id, scope, index)
        if issue is not None:
            errors.append(issue)

    if len(operators) > operator_count_threshold:
        warnings.append(
            ValidationIssue(
                type=IssueType.OPERATOR_COUNT,
                message=(
                    f"High number of operators in rule group {group_id} "
                    f"({len(operators)} > {operator_count_threshold}) - may affect performance"
                ),
                rule_group_id=group_id,
            )
        )

    logger.debug(
        "Validated group %s: %d error(s), %d warning(s)", group_id, len(errors), len(warnings)
    )
    return ValidationResult.from_issues(errors, warnings)


def _depth_first(
    start: str,
    scope: set[str],
    index: GraphIndex,
    color: dict[str, int],
    on_cycle: Callable[[str], None],
    on_visit: Callable[[str, int], None] | None,
) -> None:
    """Iterative three-colour DFS restricted to ``scope``."""
    color[start] = _GRAY
    if on_visit is not None:
        on_visit(start, 0)
    stack = [(start, iter(index.outgoers(start, within=scope)), 0)]

    while stack:
        node_id, neighbours, depth = stack[-1]
        for nxt in neighbours:
            state = color.get(nxt.id, _WHITE)
            if state == _GRAY:
                on_cycle(nxt.id)
            elif state == _WHITE:
                color[nxt.id] = _GRAY
                if on_visit is not None:
                    on_visit(nxt.id, depth + 1)
                stack.append((nxt.id, iter(index.outgoers(nxt.id, within=scope)), depth + 1))
                break
        else:
            color[node_id] = _BLACK
            stack.pop()


def _check_operator_arity(
    operator_id: str, group_id: str, scope: set[str], index: GraphIndex
) -> ValidationIssue | None:
    incomers = index.incomers(operator_id, within=scope)
    condition_outgoers = [
        node
        for node in index.outgoers(operator_id, within=scope)
        if node.type == NodeKind.CONDITION
    ]
    effective_operands = len(incomers) + len(condition_outgoers)

    if effective_operands == 0:
        return ValidationIssue(
            type=IssueType.OPERATOR_INPUT,
            message=(
                f"Operator at ID {operator_id} in rule group {group_id} "
                "has no incoming conditions"
            ),
            node_id=operator_id,
            rule_group_id=group_id,
        )
    if effective_operands == 1:
        return ValidationIssue(
            type=IssueType.OPERATOR_SINGLE,
            message=(
                f"Operator at ID {operator_id} in rule group {group_id} "
                "has fewer than 2 effective conditions"
            ),
            node_id=operator_id,
            rule_group_id=group_id,
        )
    return None


def _integrity_failure(message: str, **pointers: str) -> ValidationResult:
    return ValidationResult.from_issues(
        [ValidationIssue(type=IssueType.INVALID_CONNECTION, message=message, **pointers)]
    )


# =============================================================================
# Comprehensive document validation
# =============================================================================


def validate_all(
    graph: FlowGraph,
    *,
    deep_nesting_threshold: int | None = None,
    operator_count_threshold: int | None = None,
) -> ValidationResult:
    """
    Run every document-level check and union the results.

    Order: required fields, root node placement, rule groups, action
    groups, existing edges, group structure, grouping advisories.

    Args:
        graph: Snapshot of the canvas
        deep_nesting_threshold: See validate_rule_group
        operator_count_threshold: See validate_rule_group

    Returns:
        ValidationResult for the whole document
    """
    try:
        index = GraphIndex(graph, strict=False)
    except GraphIntegrityError as exc:
        result = _integrity_failure(f"Comprehensive validation failed: {exc.message}")
        record_validation("document", result)
        return result

    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []

    errors.extend(_check_required_fields(index))
    errors.extend(_check_root_node(index))
    errors.extend(_check_rule_groups(index))

    action_errors, action_warnings = _check_action_groups(index)
    errors.extend(action_errors)
    warnings.extend(action_warnings)

    errors.extend(_check_connections(index))

    for group in index.nodes_of_kind(NodeKind.GROUP):
        structural = check_group_structure(
            group.id,
            index,
            deep_nesting_threshold=deep_nesting_threshold,
            operator_count_threshold=operator_count_threshold,
        )
        errors.extend(structural.errors)
        warnings.extend(structural.warnings)
        warnings.extend(_check_grouping(group.id, index))

    result = ValidationResult.from_issues(errors, warnings)
    logger.debug("Document validation finished: %s", result.summary())
    record_validation("document", result)
    return result


def _check_required_fields(index: GraphIndex) -> list[ValidationIssue]:
    errors: list[ValidationIssue] = []

    def required(node_id: str, message: str) -> None:
        errors.append(
            ValidationIssue(type=IssueType.FIELD_REQUIRED, message=message, node_id=node_id)
        )

    for node in index.graph.nodes:
        if node.type == NodeKind.ROOT:
            if not node.data.workflow_name.strip():
                required(node.id, "Workflow Name is required in Initial Node.")

        elif node.type == NodeKind.RULE_LABEL:
            if not node.data.rule_name.strip():
                required(node.id, "Rule Name is required in RuleName Node.")

        elif node.type == NodeKind.ACTION_LABEL:
            if not node.data.action_type.strip():
                required(node.id, "Action Type is required in ActionName Node.")
            if not node.data.action_name.strip():
                required(node.id, "Action Name is required in ActionName Node.")

        elif node.type == NodeKind.OPERATOR:
            raw = node.data.operator.strip()
            if not raw:
                required(node.id, "Operator is required in ConditionalOperator Node.")
            elif raw.upper() not in ("AND", "OR", "NOT"):
                errors.append(
                    ValidationIssue(
                        type=IssueType.FIELD_INCOMPLETE,
                        message=f"Operator '{raw}' must be one of AND, OR, NOT.",
                        node_id=node.id,
                    )
                )

        elif node.type == NodeKind.CONDITION:
            missing = node.data.missing_parts()
            if missing:
                errors.append(
                    ValidationIssue(
                        type=IssueType.FIELD_INCOMPLETE,
                        message=f"Condition Node is missing {', '.join(missing)}.",
                        node_id=node.id,
                    )
                )
            elif node.data.comparison is None:
                errors.append(
                    ValidationIssue(
                        type=IssueType.FIELD_INCOMPLETE,
                        message=f"Comparison '{node.data.operator}' is not supported.",
                        node_id=node.id,
                    )
                )
            elif '"' in node.data.value:
                errors.append(
                    ValidationIssue(
                        type=IssueType.FIELD_INCOMPLETE,
                        message="Condition value must not contain a double quote.",
                        node_id=node.id,
                    )
                )

    return errors


def _check_root_node(index: GraphIndex) -> list[ValidationIssue]:
    roots = index.nodes_of_kind(NodeKind.ROOT)
    if not roots:
        return [
            ValidationIssue(
                type=IssueType.INITIAL_NO_CONNECTION,
                message="No Initial Node found. Please add an Initial Node first.",
            )
        ]

    errors: list[ValidationIssue] = []
    for extra in roots[1:]:
        errors.append(
            ValidationIssue(
                type=IssueType.INITIAL_MULTIPLE,
                message="Only one Initial Node is allowed for the whole flow chart.",
                node_id=extra.id,
            )
        )

    root = roots[0]
    if root.parent_id:
        errors.append(
            ValidationIssue(
                type=IssueType.INITIAL_IN_GROUP,
                message="Initial Node cannot be placed inside any ResizableGroup.",
                node_id=root.id,
            )
        )

    root_outgoers = index.outgoers(root.id)
    connected = {node.id for node in root_outgoers if node.type == NodeKind.RULE_LABEL}
    for label in index.nodes_of_kind(NodeKind.RULE_LABEL):
        if label.id not in connected:
            errors.append(
                ValidationIssue(
                    type=IssueType.INITIAL_NO_CONNECTION,
                    message=(
                        f'RuleName node "{label.data.rule_name or label.id}" '
                        "is not connected to Initial Node."
                    ),
                    node_id=label.id,
                )
            )

    for group in index.nodes_of_kind(NodeKind.GROUP):
        if group.data.is_action_group and any(n.id == root.id for n in index.outgoers(group.id)):
            errors.append(
                ValidationIssue(
                    type=IssueType.INITIAL_ACTION_CONNECTION,
                    message="Connection between Action Group and Initial Node is not allowed.",
                    node_id=group.id,
                    action_group_id=group.id,
                )
            )

    if any(node.type != NodeKind.RULE_LABEL for node in root_outgoers):
        errors.append(
            ValidationIssue(
                type=IssueType.INITIAL_MULTIPLE_CONNECTIONS,
                message="Initial Node can only connect to RuleName nodes.",
                node_id=root.id,
            )
        )

    return errors


def _check_rule_groups(index: GraphIndex) -> list[ValidationIssue]:
    errors: list[ValidationIssue] = []
    for group in index.nodes_of_kind(NodeKind.GROUP):
        if group.data.is_action_group:
            continue

        nested = [
            child
            for child in index.children(group.id, NodeKind.GROUP)
            if not child.data.is_action_group
        ]
        if nested:
            errors.append(
                ValidationIssue(
                    type=IssueType.RULE_GROUP_NESTED,
                    message="Rule Group within another Rule Group is not allowed.",
                    node_id=group.id,
                    rule_group_id=group.id,
                )
            )

        if not group_conditions(group.id, index):
            errors.append(
                ValidationIssue(
                    type=IssueType.RULE_GROUP_ZERO_CONDITIONS,
                    message="Rule Group must have at least one Condition Node.",
                    node_id=group.id,
                    rule_group_id=group.id,
                )
            )

        # Edge-attached operators are a legal placement, not an external handle
        external = [
            node
            for node in index.outgoers(group.id)
            if node.type not in (NodeKind.ROOT, NodeKind.OPERATOR)
        ]
        if external:
            errors.append(
                ValidationIssue(
                    type=IssueType.RULE_GROUP_NO_HANDLES,
                    message="Rule Group cannot have external connections except to Initial Node.",
                    node_id=group.id,
                    rule_group_id=group.id,
                )
            )
    return errors


def _check_action_groups(index: GraphIndex) -> tuple[list[ValidationIssue], list[ValidationIssue]]:
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []
    action_groups = [g for g in index.nodes_of_kind(NodeKind.GROUP) if g.data.is_action_group]
    action_group_ids = {g.id for g in action_groups}

    for group in action_groups:
        if not group_conditions(group.id, index):
            warnings.append(
                ValidationIssue(
                    type=IssueType.ACTION_GROUP_ZERO_CONDITIONS,
                    message=(
                        "Action Group has no Condition Node; its action will use "
                        "the default context expression."
                    ),
                    node_id=group.id,
                    action_group_id=group.id,
                )
            )

        outgoers = index.outgoers(group.id)
        if any(node.id in action_group_ids for node in outgoers):
            errors.append(
                ValidationIssue(
                    type=IssueType.ACTION_GROUP_CONNECTION,
                    message="Connection between Action Groups is not allowed.",
                    node_id=group.id,
                    action_group_id=group.id,
                )
            )

        if any(node.parent_id != group.id for node in outgoers):
            errors.append(
                ValidationIssue(
                    type=IssueType.ACTION_GROUP_EXTERNAL_CONNECTION,
                    message="Action Group cannot have external connections.",
                    node_id=group.id,
                    action_group_id=group.id,
                )
            )
    return errors, warnings


def _check_connections(index: GraphIndex) -> list[ValidationIssue]:
    errors: list[ValidationIssue] = []

    for edge in index.dangling_edges:
        errors.append(
            ValidationIssue(
                type=IssueType.CONNECTION_FORBIDDEN,
                message="Source or target node not found",
                node_id=edge.source if edge.source in index else edge.target,
                edge_id=edge.id or None,
            )
        )

    for edge in index.graph.edges:
        source = index.node(edge.source)
        target = index.node(edge.target)
        if source is None or target is None:
            continue

        def forbid(issue_type: IssueType, message: str) -> None:
            errors.append(
                ValidationIssue(
                    type=issue_type, message=message, node_id=source.id, edge_id=edge.id or None
                )
            )

        source_is_action = source.type == NodeKind.GROUP and source.data.is_action_group
        target_is_action = target.type == NodeKind.GROUP and target.data.is_action_group

        if source_is_action and target.type == NodeKind.GROUP and not target_is_action:
            forbid(
                IssueType.CONNECTION_FORBIDDEN,
                "Connection between Action Group and Rule Group is not allowed.",
            )

        if (source_is_action and target.type == NodeKind.ROOT) or (
            target_is_action and source.type == NodeKind.ROOT
        ):
            forbid(
                IssueType.CONNECTION_FORBIDDEN,
                "Connection between Action Group and Initial Node is not allowed.",
            )

        if source.type == NodeKind.CONDITION and target.type == NodeKind.CONDITION:
            forbid(
                IssueType.CONNECTION_CONDITION_DIRECT,
                "Direct connection between two condition nodes is not allowed.",
            )

        if source.type == NodeKind.OPERATOR and target.type == NodeKind.CONDITION:
            forbid(
                IssueType.CONNECTION_OPERATOR_REVERSED,
                "Operators cannot connect directly to conditions (reversed flow not allowed).",
            )

        if source.type != NodeKind.ROOT and len(index.outgoers(source.id)) > 1:
            forbid(
                IssueType.CONNECTION_BRANCHING,
                "Branching out not allowed - each node can connect to only one downstream node.",
            )

    return errors


def _check_grouping(group_id: str, index: GraphIndex) -> list[ValidationIssue]:
    """Advisory warnings about how independent operand trees will be combined."""
    conditions = group_conditions(group_id, index)
    operators = group_operators(group_id, index)
    if len(conditions) + len(operators) < 2:
        return []

    partition = partition_operands(conditions, operators, index)
    trees = partition.trees
    if len(trees) == 2:
        if find_bridging_operator(trees[0], trees[1], operators, index) is None:
            return [
                ValidationIssue(
                    type=IssueType.GROUPING_DEFAULT_AND,
                    message=(
                        f"Group {group_id} has two independent condition groups "
                        "with no connecting operator; they will be combined with AND."
                    ),
                    rule_group_id=group_id,
                )
            ]
    elif len(trees) > 2:
        return [
            ValidationIssue(
                type=IssueType.GROUPING_DEFAULT_AND,
                message=(
                    f"Group {group_id} has {len(trees)} independent condition groups; "
                    "they will be combined with AND and operators drawn between them are ignored."
                ),
                rule_group_id=group_id,
            )
        ]
    return []
