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
Function feature extraction.

Signature features come from resolved types, block/branch/loop counts
from the control-flow graph, cyclomatic complexity from the complexity
collaborator, and everything else from a single walk over the body's
operation tree.
"""

from collections import Counter
from typing import Optional
import logging

from .base import BaseExtractor
from ..cancellation import CancellationToken, OperationCancelled, ensure_token
from ..cfg import ControlFlowMetrics
from ..complexity import ComplexityAnalyzer, OperationComplexityAnalyzer
from ..config import SimilaritySettings, DEFAULT_SETTINGS
from ..models import FunctionFeatureSet
from ..program import Document, FunctionDeclaration, FunctionKind, OperationKind, ProgramModel, Project
from ..type_shapes import display_name

logger = logging.getLogger(__name__)

_MEMBER_REFERENCES = (OperationKind.FIELD_REFERENCE, OperationKind.PROPERTY_REFERENCE)


class FunctionFeatureExtractor(BaseExtractor):
    """Builds FunctionFeatureSets for methods worth comparing."""

    def __init__(
        self,
        program_model: ProgramModel,
        complexity_analyzer: Optional[ComplexityAnalyzer] = None,
        settings: SimilaritySettings = DEFAULT_SETTINGS,
    ):
        self._program_model = program_model
        self._complexity = complexity_analyzer or OperationComplexityAnalyzer()
        self._settings = settings

    def is_candidate(self, function: FunctionDeclaration) -> bool:
        """Ordinary methods only; abstract, extern and compiler-generated ones are skipped."""
        return function.kind == FunctionKind.METHOD and not (
            function.is_abstract
            or function.is_extern
            or function.is_implicit
        )

    def extract(
        self,
        function: FunctionDeclaration,
        document: Document,
        project: Optional[Project] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> Optional[FunctionFeatureSet]:
        token = ensure_token(cancellation)
        token.raise_if_cancelled()

        if not self.is_candidate(function):
            return None

        min_lines = self._settings.function_min_lines
        if function.line_count < min_lines:
            logger.debug(
                f"Method {function.name} in {document.file_path} has {function.line_count} lines, "
                f"less than the filter of {min_lines}. Skipping."
            )
            return None

        cyclomatic = self._cyclomatic_complexity(function)
        flow = self._control_flow_metrics(function, document)

        operation_counts: Counter = Counter()
        invoked = set()
        accessed = set()

        if function.body is not None:
            for op in function.body.walk():
                token.raise_if_cancelled()
                operation_counts[op.kind.value] += 1

                if op.kind == OperationKind.INVOCATION and op.target is not None:
                    invoked.add(op.target.signature)
                elif op.kind in _MEMBER_REFERENCES and op.type is not None:
                    accessed.add(display_name(op.type))

        return FunctionFeatureSet(
            qualified_name=function.qualified_name,
            file_path=document.file_path,
            start_line=function.start_line,
            name=function.name,
            return_type=display_name(function.return_type),
            parameter_types=tuple(display_name(p) for p in function.parameter_types),
            invoked_signatures=frozenset(invoked),
            basic_block_count=flow.basic_blocks,
            conditional_branch_count=flow.conditional_branches,
            loop_count=flow.loops,
            cyclomatic_complexity=cyclomatic,
            operation_counts=dict(operation_counts),
            accessed_types=frozenset(accessed),
            end_line=function.end_line,
        )

    def _cyclomatic_complexity(self, function: FunctionDeclaration) -> int:
        metrics = self._complexity.analyze_function(function)
        value = metrics.get("cyclomatic_complexity", 1)
        if isinstance(value, bool) or not isinstance(value, int):
            return 1
        return value

    def _control_flow_metrics(self, function: FunctionDeclaration, document: Document) -> ControlFlowMetrics:
        if function.body is None:
            return ControlFlowMetrics()

        try:
            graph = self._program_model.build_control_flow_graph(function)
            metrics = graph.metrics()
        except OperationCancelled:
            raise
        except Exception as e:
            logger.warning(
                f"Failed to create control-flow graph for {function.name} in {document.file_path}. "
                f"CFG-based features will be zero: {e}"
            )
            return ControlFlowMetrics()

        logger.debug(f"Control-flow graph for {function.name}: {metrics.basic_blocks} blocks")
        return metrics
