# Semantic Similarity Engine - Find near-duplicate functions and types
# Copyright (C) 2025  Jonathan Louis
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Per-function complexity metrics.

The similarity engine treats complexity as an external measurement: it
asks a ComplexityAnalyzer for a metrics dict and reads the
"cyclomatic_complexity" entry. OperationComplexityAnalyzer computes the
metrics from a function's operation tree.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .program import FunctionDeclaration, Operation, OperationKind


# Nodes that open an independent path
_DECISION_KINDS = {
    OperationKind.CONDITIONAL,
    OperationKind.LOOP,
    OperationKind.SWITCH_CASE,
    OperationKind.CATCH,
    OperationKind.COALESCE,
}

# Nodes that add a cognitive increment and deepen nesting
_NESTING_KINDS = {
    OperationKind.CONDITIONAL,
    OperationKind.LOOP,
    OperationKind.CATCH,
    OperationKind.LAMBDA,
}

_LOGICAL_OPERATORS = {"&&", "||"}

# Recommendation thresholds
MAX_LINES = 50
MAX_CYCLOMATIC = 10
MAX_COGNITIVE = 20
MAX_PARAMETERS = 4


class ComplexityAnalyzer(ABC):
    """Source of per-function complexity metrics."""

    @abstractmethod
    def analyze_function(
        self,
        function: FunctionDeclaration,
        recommendations: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """
        Compute metrics for one function.

        Args:
            function: Function to measure
            recommendations: If given, receives human-readable advice

        Returns:
            Metrics dict; must contain "cyclomatic_complexity"
        """
        pass


class OperationComplexityAnalyzer(ComplexityAnalyzer):
    """Complexity metrics computed from the semantic operation tree."""

    def analyze_function(
        self,
        function: FunctionDeclaration,
        recommendations: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        body = function.body
        nodes = list(body.walk()) if body is not None else []

        cyclomatic = 1 + sum(1 for op in nodes if _is_decision(op))
        cognitive = _cognitive_complexity(body) if body is not None else 0
        parameter_count = len(function.parameter_types)

        metrics = {
            "line_count": function.line_count,
            "parameter_count": parameter_count,
            "local_variable_count": sum(
                1 for op in nodes if op.kind == OperationKind.VARIABLE_DECLARATION
            ),
            "cyclomatic_complexity": cyclomatic,
            "cognitive_complexity": cognitive,
        }

        if recommendations is not None:
            recommendations.extend(_recommend(function.name, metrics))

        return metrics


def _is_decision(op: Operation) -> bool:
    if op.kind in _DECISION_KINDS:
        return True
    return op.kind == OperationKind.BINARY and op.operator in _LOGICAL_OPERATORS


def _cognitive_complexity(root: Operation) -> int:
    total = 0
    stack = [(root, 0)]
    while stack:
        op, nesting = stack.pop()
        child_nesting = nesting

        if op.kind in _NESTING_KINDS:
            total += 1 + nesting
            child_nesting = nesting + 1
        elif op.kind == OperationKind.SWITCH:
            total += 1 + nesting
        elif op.kind == OperationKind.BINARY and op.operator in _LOGICAL_OPERATORS:
            total += 1

        stack.extend((child, child_nesting) for child in op.children)
    return total


def _recommend(name: str, metrics: Dict[str, Any]) -> List[str]:
    advice = []
    if metrics["line_count"] > MAX_LINES:
        advice.append(
            f"Method '{name}' is {metrics['line_count']} lines long. "
            "Consider breaking it into smaller methods."
        )
    if metrics["cyclomatic_complexity"] > MAX_CYCLOMATIC:
        advice.append(
            f"Method '{name}' has high cyclomatic complexity "
            f"({metrics['cyclomatic_complexity']}). Consider refactoring into smaller methods."
        )
    if metrics["cognitive_complexity"] > MAX_COGNITIVE:
        advice.append(
            f"Method '{name}' has high cognitive complexity "
            f"({metrics['cognitive_complexity']}). Consider simplifying the logic."
        )
    if metrics["parameter_count"] > MAX_PARAMETERS:
        advice.append(
            f"Method '{name}' has {metrics['parameter_count']} parameters. "
            "Consider grouping related parameters into a class."
        )
    return advice
