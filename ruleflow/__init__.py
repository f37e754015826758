"""Validation and workflow export for a visual rule builder."""

from ruleflow.compiler import (
    generate_expression,
    generate_rule_engine_json,
    generate_rule_engine_json_string,
    validate_all,
    validate_all_rule_groups,
    validate_edge_connection,
    validate_rule_group,
)
from ruleflow.domain.models import Connection, Edge, FlowGraph
from ruleflow.domain.results import ValidationIssue, ValidationResult

__version__ = "0.1.0"

__all__ = [
    "FlowGraph",
    "Edge",
    "Connection",
    "ValidationIssue",
    "ValidationResult",
    "validate_rule_group",
    "validate_all_rule_groups",
    "validate_all",
    "validate_edge_connection",
    "generate_expression",
    "generate_rule_engine_json",
    "generate_rule_engine_json_string",
]
