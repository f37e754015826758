"""
Example usage of the rule flow compiler.

This file demonstrates the three entry points a canvas calls: the edge
admission gate, whole-document validation, and workflow export.
"""

import logging

from ruleflow import (
    FlowGraph,
    generate_rule_engine_json_string,
    validate_all,
    validate_edge_connection,
)
from ruleflow.core.errors import CompilationError
from ruleflow.core.observability import (
    configure_structured_logging,
    generate_correlation_id,
    set_correlation_id,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Example canvas: one rule group with two conditions joined by AND
# ============================================================================

CANVAS = {
    "nodes": [
        {"id": "root", "type": "initial", "data": {"workflowName": "Comp1"}},
        {"id": "g1", "type": "resizableGroup", "data": {"label": "Rule Group"}},
        {
            "id": "r1",
            "type": "ruleName",
            "parentId": "g1",
            "data": {"ruleName": "HighValueManagerSale"},
        },
        {
            "id": "c1",
            "type": "condition",
            "parentId": "g1",
            "data": {
                "selectedTable": "sales",
                "selectedField": "Amount",
                "expression": ">",
                "value": "1000",
            },
        },
        {
            "id": "c2",
            "type": "condition",
            "parentId": "g1",
            "data": {
                "selectedTable": "user",
                "selectedField": "designation",
                "expression": "=",
                "value": "Manager",
            },
        },
        {
            "id": "op1",
            "type": "conditionalOperator",
            "parentId": "g1",
            "data": {"operator": "AND"},
        },
    ],
    "edges": [
        {"id": "e1", "source": "root", "target": "r1"},
        {"id": "e2", "source": "c1", "target": "op1"},
    ],
}


def main() -> None:
    configure_structured_logging(structured=False)
    set_correlation_id(generate_correlation_id())

    graph = FlowGraph.model_validate(CANVAS)

    # Example 1: gate a connection the user is drawing
    proposed = {"source": "c2", "target": "op1"}
    admission = validate_edge_connection(proposed, graph)
    if not admission.is_valid:
        for issue in admission.errors:
            logger.warning("Connection rejected: %s", issue.message)
        return

    CANVAS["edges"].append({"id": "e3", **proposed})
    graph = FlowGraph.model_validate(CANVAS)

    # Example 2: validation panel feedback
    result = validate_all(graph)
    logger.info("Validation: %s", result.summary())

    # Example 3: export
    try:
        print(generate_rule_engine_json_string(graph))
    except CompilationError as exc:
        logger.error("Export failed: %s", exc.message)


if __name__ == "__main__":
    main()
