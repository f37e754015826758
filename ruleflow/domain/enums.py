"""
Domain enums shared by the graph model, the validators and the compiler.

Values match the identifiers the canvas writes into its node/edge JSON and
the issue types the validation panels branch on.
"""

from enum import Enum


class NodeKind(str, Enum):
    """Kind of canvas node - the ``type`` discriminator of the graph model."""

    ROOT = "initial"
    CONDITION = "condition"
    OPERATOR = "conditionalOperator"
    GROUP = "resizableGroup"
    RULE_LABEL = "ruleName"
    ACTION_LABEL = "actionName"


class LogicalOperator(str, Enum):
    """Symbols an operator node can combine its operands with."""

    AND = "AND"
    OR = "OR"
    NOT = "NOT"


class ComparisonOperator(str, Enum):
    """Comparison symbols allowed in a leaf expression."""

    GTE = ">="
    LTE = "<="
    EQ = "="
    GT = ">"
    LT = "<"
    NE = "!="
    CONTAINS = "contains"
    EQUALS = "equals"
    STARTS_WITH = "starts with"
    ENDS_WITH = "ends with"


# Canvas dropdown labels -> grammar symbols (all field types merged)
COMPARISON_LABELS: dict[str, ComparisonOperator] = {
    "greater than or equal": ComparisonOperator.GTE,
    "less than or equal": ComparisonOperator.LTE,
    "equal to": ComparisonOperator.EQ,
    "greater than": ComparisonOperator.GT,
    "less than": ComparisonOperator.LT,
    "not equal to": ComparisonOperator.NE,
    "after": ComparisonOperator.GT,
    "before": ComparisonOperator.LT,
    "contains": ComparisonOperator.CONTAINS,
    "equals": ComparisonOperator.EQUALS,
    "starts with": ComparisonOperator.STARTS_WITH,
    "ends with": ComparisonOperator.ENDS_WITH,
}


class ActionType(str, Enum):
    """Keys of the ``Actions`` object in an exported rule."""

    ON_SUCCESS = "OnSuccess"
    ON_FAILURE = "OnFailure"
    ON_ERROR = "OnError"
    ON_TARGET = "OnTarget"
    ON_COMPLETE = "OnComplete"


class ValidationIssueType(str, Enum):
    """
    Issue types reported by the validators.

    The UI picks icon and severity from this value. Members marked as canvas
    only are never emitted here; they are kept so the UI can share one
    taxonomy with the rules it enforces itself.
    """

    CYCLE = "cycle"
    DISCONNECTED = "disconnected"
    OPERATOR_INPUT = "operator_input"
    OPERATOR_SINGLE = "operator_single"
    INVALID_CONNECTION = "invalid_connection"
    DEEP_NESTING = "deep_nesting"
    OPERATOR_COUNT = "operator_count"
    # Root node placement
    INITIAL_MULTIPLE = "initial_multiple"
    INITIAL_NO_CONNECTION = "initial_no_connection"
    INITIAL_IN_GROUP = "initial_in_group"
    INITIAL_ACTION_CONNECTION = "initial_action_connection"
    INITIAL_MULTIPLE_CONNECTIONS = "initial_multiple_connections"
    # Rule groups
    RULE_GROUP_NESTED = "rule_group_nested"
    RULE_GROUP_NO_HANDLES = "rule_group_no_handles"
    RULE_GROUP_ZERO_CONDITIONS = "rule_group_zero_conditions"
    # Action groups
    ACTION_GROUP_ZERO_CONDITIONS = "action_group_zero_conditions"
    ACTION_GROUP_EXTERNAL_CONNECTION = "action_group_external_connection"
    ACTION_GROUP_CONNECTION = "action_group_connection"
    # Existing edges
    CONNECTION_FORBIDDEN = "connection_forbidden"
    CONNECTION_MISSING_HANDLES = "connection_missing_handles"  # canvas only
    CONNECTION_CONDITION_DIRECT = "connection_condition_direct"
    CONNECTION_OPERATOR_REVERSED = "connection_operator_reversed"
    CONNECTION_BRANCHING = "connection_branching"
    # Node payloads
    FIELD_INCOMPLETE = "field_incomplete"
    FIELD_REQUIRED = "field_required"
    # Operand grouping
    GROUPING_INVALID = "grouping_invalid"  # canvas only
    GROUPING_DEFAULT_AND = "grouping_default_and"
    GROUPING_OPERATOR_DIRECT = "grouping_operator_direct"  # canvas only
    # Delete restrictions, canvas only
    DELETE_RULE_NAME = "delete_rule_name"
    DELETE_ACTION_NAME = "delete_action_name"
