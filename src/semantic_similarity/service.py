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
Similarity service - the public entry point of the engine.

Runs feature extraction through the parallel coordinator, then scores
and groups the features on a single thread.
"""

from typing import List, Optional
import logging

from .cancellation import CancellationToken, OperationCancelled, ensure_token
from .clusterer import group_similar, is_overload_pair, validate_threshold
from .complexity import ComplexityAnalyzer
from .config import SimilaritySettings, DEFAULT_SETTINGS
from .extractors import FunctionFeatureExtractor, TypeFeatureExtractor
from .indexer import index_functions, index_types
from .matrix import function_score_matrix, type_score_matrix
from .models import FunctionSimilarityResult, SimilarMatch, TypeSimilarityResult
from .program import ProgramModel
from .scoring import score_functions, score_types

logger = logging.getLogger(__name__)

LOOKUP_THRESHOLD = 0.85
LOOKUP_KINDS = ("function", "type")


class SimilarityService:
    """
    Finds groups of similar functions and similar types in a program model.

    Args:
        program_model: Supplies projects, documents and declarations
        complexity_analyzer: Supplies cyclomatic complexity per function
        settings: Weights, caps, size filters and worker count
    """

    def __init__(
        self,
        program_model: Optional[ProgramModel],
        complexity_analyzer: Optional[ComplexityAnalyzer] = None,
        settings: SimilaritySettings = DEFAULT_SETTINGS,
    ):
        self._program_model = program_model
        self._settings = settings
        self._function_extractor = FunctionFeatureExtractor(program_model, complexity_analyzer, settings)
        self._type_extractor = TypeFeatureExtractor(self._function_extractor, settings)

    @property
    def settings(self) -> SimilaritySettings:
        return self._settings

    def find_similar_functions(
        self,
        threshold: Optional[float] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> List[FunctionSimilarityResult]:
        """
        Group functions whose pairwise score reaches the threshold.

        Args:
            threshold: Minimum score in (0, 1]; settings default if None
            cancellation: Aborts extraction and comparison

        Returns:
            Groups of two or more functions, most similar first

        Raises:
            ValueError: If threshold is outside (0, 1]
            OperationCancelled: If cancellation is triggered
        """
        threshold = self._resolve_threshold(threshold)
        token = ensure_token(cancellation)

        if not self._model_available():
            return []

        logger.info(f"Starting method similarity analysis with threshold {threshold}")
        features = index_functions(
            self._program_model, self._function_extractor, token, self._settings.worker_count
        )
        logger.info(f"Extracted features for {len(features)} methods. Starting similarity comparison.")

        weights = self._settings.function_weights
        caps = self._settings.function_caps
        matrix = None
        if self._settings.precompute_scores:
            matrix = function_score_matrix(features, self._settings)

        groups = group_similar(
            features,
            threshold,
            score=lambda a, b: score_functions(a, b, weights, caps),
            cancellation=token,
            skip_pair=is_overload_pair,
            score_matrix=matrix,
        )

        results = [
            FunctionSimilarityResult(members=tuple(members), average_score=average, id=i)
            for i, (members, average) in enumerate(groups, start=1)
        ]
        logger.info(f"Method similarity analysis completed. Found {len(results)} groups.")
        return results

    def find_similar_types(
        self,
        threshold: Optional[float] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> List[TypeSimilarityResult]:
        """Group classes and records; see find_similar_functions."""
        threshold = self._resolve_threshold(threshold)
        token = ensure_token(cancellation)

        if not self._model_available():
            return []

        logger.info(f"Starting class similarity analysis with threshold {threshold}")
        features = index_types(
            self._program_model, self._type_extractor, token, self._settings.worker_count
        )
        logger.info(f"Extracted features for {len(features)} classes. Starting similarity comparison.")

        s = self._settings
        matrix = None
        if s.precompute_scores:
            matrix = type_score_matrix(features, s, token)

        groups = group_similar(
            features,
            threshold,
            score=lambda a, b: score_types(
                a, b, s.type_weights, s.type_caps, s.function_weights, s.function_caps
            ),
            cancellation=token,
            score_matrix=matrix,
        )

        results = [
            TypeSimilarityResult(members=tuple(members), average_score=average, id=i)
            for i, (members, average) in enumerate(groups, start=1)
        ]
        logger.info(f"Class similarity analysis completed. Found {len(results)} groups.")
        return results

    def find_similar_to(
        self,
        qualified_name: str,
        kind: str = "function",
        threshold: float = LOOKUP_THRESHOLD,
        cancellation: Optional[CancellationToken] = None,
    ) -> Optional[SimilarMatch]:
        """
        Find the closest counterpart of one symbol.

        Runs the full analysis for the symbol's kind, takes the first group
        containing it and picks another member of that group (the one whose
        simple name sorts last).

        Args:
            qualified_name: Qualified name of the function or type
            kind: "function" or "type"
            threshold: Grouping threshold for the lookup
            cancellation: Aborts the underlying analysis

        Returns:
            SimilarMatch, or None if the symbol is in no group

        Raises:
            ValueError: For an unknown kind or invalid threshold
        """
        if kind not in LOOKUP_KINDS:
            raise ValueError(f"kind must be one of {', '.join(LOOKUP_KINDS)}, got {kind!r}")
        validate_threshold(threshold)

        try:
            if kind == "function":
                groups = self.find_similar_functions(threshold, cancellation)
            else:
                groups = self.find_similar_types(threshold, cancellation)
        except OperationCancelled:
            raise
        except Exception as e:
            logger.error(f"Error analyzing similarity for {kind} {qualified_name}: {e}", exc_info=True)
            return None

        group = next((g for g in groups if g.contains(qualified_name)), None)
        if group is None:
            return None

        others = [m for m in group.members if m.qualified_name != qualified_name]
        if not others:
            return None

        match = sorted(others, key=lambda m: m.name, reverse=True)[0]
        return SimilarMatch(
            qualified_name=qualified_name,
            match=match,
            score=group.average_score,
            group=group,
        )

    def _resolve_threshold(self, threshold: Optional[float]) -> float:
        if threshold is None:
            threshold = self._settings.default_threshold
        validate_threshold(threshold)
        return threshold

    def _model_available(self) -> bool:
        if self._program_model is None or not self._program_model.is_loaded:
            logger.error("No program model is loaded. Cannot perform similarity analysis.")
            return False
        return True
