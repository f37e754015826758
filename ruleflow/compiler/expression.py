"""
Expression synthesis for rule and action groups.

Turns a group's condition/operator sub-graph into the textual boolean
expression the rules engine evaluates:

    (sales.Amount > "1000") AND (user.Designation = "Manager")

Operand relation
----------------
Each node feeds at most one operator: the first operator its outgoing edges
reach. An operator with an outgoing edge to a condition that feeds nothing
else also takes that condition as an operand. Following the relation from
every node that feeds nothing yields one operand tree per independent
sub-graph; each tree folds into one sub-expression.

Combination
-----------
- one tree: its expression as is
- two trees: ``(first) SYM (second)`` where SYM is the operator whose edges
  touch both trees, AND when none does
- three or more: every tree ANDed together, drawn operators between trees
  are ignored
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field

from ruleflow.compiler.traversal import GraphIndex, group_conditions, group_operators
from ruleflow.core.errors import ExpressionError
from ruleflow.domain.enums import LogicalOperator, NodeKind
from ruleflow.domain.models import ConditionNode, OperatorNode

logger = logging.getLogger(__name__)


@dataclass
class OperandTree:
    """One independently reducible sub-graph of a group."""

    root_id: str
    node_ids: set[str] = field(default_factory=set)
    expression: str = ""


def render_condition(node: ConditionNode) -> str:
    """
    Render a single condition as a leaf expression.

    Format is ``table.Field <op> "value"`` with the field's first letter
    upper-cased.

    Raises:
        ExpressionError: If any leaf component is blank, the comparison is
            not part of the grammar, or the value would break out of its quotes.
    """
    data = node.data
    missing = data.missing_parts()
    if missing:
        raise ExpressionError(
            f"Condition {node.id} is incomplete: missing {', '.join(missing)}",
            details={"node_id": node.id, "missing": missing},
        )

    comparison = data.comparison
    if comparison is None:
        raise ExpressionError(
            f"Condition {node.id} uses unsupported comparison '{data.operator}'",
            details={"node_id": node.id, "operator": data.operator},
        )
    if '"' in data.value:
        raise ExpressionError(
            f"Condition {node.id} value contains a double quote",
            details={"node_id": node.id, "value": data.value},
        )

    field_name = data.field.strip()
    field_name = field_name[:1].upper() + field_name[1:]
    return f'{data.table.strip()}.{field_name} {comparison.value} "{data.value}"'


def combine(symbol: str, parts: list[str]) -> str:
    """
    Join operand expressions with a logical operator.

    NOT negates the conjunction of its operands.
    """
    if symbol == LogicalOperator.NOT.value:
        if len(parts) == 1:
            return f"NOT ({parts[0]})"
        return "NOT (" + " AND ".join(f"({part})" for part in parts) + ")"
    if len(parts) == 1:
        return parts[0]
    return f" {symbol} ".join(f"({part})" for part in parts)


def _operand_map(
    conditions: list[ConditionNode], operators: list[OperatorNode], index: GraphIndex
) -> tuple[dict[str, str], dict[str, list[str]]]:
    scope = {node.id for node in conditions} | {node.id for node in operators}
    members = sorted(scope, key=index.order)

    consumer: dict[str, str] = {}
    for node_id in members:
        for target in index.outgoers(node_id, within=scope):
            if target.type == NodeKind.OPERATOR:
                consumer[node_id] = target.id
                break

    # Operator -> condition edges make the condition an operand unless it
    # already feeds another operator
    for operator in operators:
        for target in index.outgoers(operator.id, within=scope):
            if target.type == NodeKind.CONDITION and target.id not in consumer:
                consumer[target.id] = operator.id

    operands: dict[str, list[str]] = defaultdict(list)
    for node_id in members:
        if node_id in consumer:
            operands[consumer[node_id]].append(node_id)

    # Folded operator chains are carried forward as the leftmost operands
    for ids in operands.values():
        ids.sort(key=lambda i: (index.node(i).type != NodeKind.OPERATOR, index.order(i)))

    return consumer, operands


@dataclass
class OperandPartition:
    trees: list[OperandTree]
    operands: dict[str, list[str]]
    # Nodes that only feed each other in a loop and belong to no tree
    stranded: list[str]


def operator_symbol(node: OperatorNode) -> str:
    """
    Logical symbol of an operator node.

    Raises:
        ExpressionError: If the symbol is not AND, OR or NOT.
    """
    symbol = node.data.symbol
    if symbol not in {op.value for op in LogicalOperator}:
        raise ExpressionError(
            f"Operator {node.id} uses unsupported symbol '{symbol}'",
            details={"node_id": node.id, "operator": symbol},
        )
    return symbol


def partition_operands(
    conditions: list[ConditionNode], operators: list[OperatorNode], index: GraphIndex
) -> OperandPartition:
    """Split a group's conditions and operators into operand trees without rendering."""
    consumer, operands = _operand_map(conditions, operators, index)
    members = sorted(
        {node.id for node in conditions} | {node.id for node in operators}, key=index.order
    )

    trees: list[OperandTree] = []
    covered: set[str] = set()
    for node_id in members:
        if node_id in consumer:
            continue
        tree = OperandTree(root_id=node_id)
        pending = [node_id]
        while pending:
            current = pending.pop()
            tree.node_ids.add(current)
            pending.extend(operands.get(current, []))
        covered |= tree.node_ids
        trees.append(tree)

    stranded = [node_id for node_id in members if node_id not in covered]
    return OperandPartition(trees=trees, operands=operands, stranded=stranded)


def _render(node_id: str, operands: dict[str, list[str]], index: GraphIndex) -> str:
    node = index.node(node_id)
    if node.type == NodeKind.CONDITION:
        return render_condition(node)

    operand_ids = operands.get(node_id, [])
    if not operand_ids:
        raise ExpressionError(f"Operator {node_id} has no operands", details={"node_id": node_id})
    return combine(operator_symbol(node), [_render(i, operands, index) for i in operand_ids])


def build_operand_trees(
    conditions: list[ConditionNode], operators: list[OperatorNode], index: GraphIndex
) -> list[OperandTree]:
    """
    Partition a group's conditions and operators and render each operand tree.

    Raises:
        ExpressionError: If a leaf is incomplete, an operator has no operands
            or an unknown symbol, or some nodes only feed each other in a loop.
    """
    partition = partition_operands(conditions, operators, index)
    if partition.stranded:
        raise ExpressionError(
            f"Cycle detected among nodes {', '.join(partition.stranded)}",
            details={"node_ids": partition.stranded},
        )
    for tree in partition.trees:
        tree.expression = _render(tree.root_id, partition.operands, index)
    return partition.trees


def find_bridging_operator(
    first: OperandTree, second: OperandTree, operators: list[OperatorNode], index: GraphIndex
) -> OperatorNode | None:
    """The first operator whose incomers/outgoers touch both trees."""
    for operator in operators:
        neighbours = {node.id for node in index.incomers(operator.id)}
        neighbours |= {node.id for node in index.outgoers(operator.id)}
        if neighbours & first.node_ids and neighbours & second.node_ids:
            return operator
    return None


def generate_expression(
    conditions: list[ConditionNode], operators: list[OperatorNode], index: GraphIndex
) -> str:
    """
    Build the boolean expression for one group.

    Args:
        conditions: Condition nodes of the group
        operators: Operator nodes of the group (either placement)
        index: Adjacency index of the snapshot

    Returns:
        Expression string, empty when the group has no conditions

    Raises:
        ExpressionError: If the sub-graph cannot be folded
    """
    if not conditions:
        return ""

    if len(conditions) == 1 and not operators:
        return render_condition(conditions[0])

    trees = build_operand_trees(conditions, operators, index)
    expressions = [tree.expression for tree in trees]

    if len(trees) == 1:
        return expressions[0]

    if len(trees) == 2:
        bridge = find_bridging_operator(trees[0], trees[1], operators, index)
        symbol = operator_symbol(bridge) if bridge else LogicalOperator.AND.value
        logger.debug(
            "Combining two operand trees with %s (bridge=%s)",
            symbol,
            bridge.id if bridge else None,
        )
        return combine(symbol, expressions)

    logger.debug("Combining %d operand trees with AND", len(trees))
    return " AND ".join(f"({expression})" for expression in expressions)


def generate_group_expression(group_id: str, index: GraphIndex) -> str:
    """Expression for a rule or action group, looked up by group id."""
    return generate_expression(
        group_conditions(group_id, index), group_operators(group_id, index), index
    )
