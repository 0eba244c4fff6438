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
Precomputed pairwise score matrices.

Scoring is pure, so the full n×n matrix can be computed up front and the
sequential grouping pass only does lookups. Function scores are
vectorized with NumPy and scikit-learn; type scores need the greedy
method matching and are filled row by row on a thread pool.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import fields
from typing import AbstractSet, List, Mapping, Optional, Sequence
import logging

import numpy as np
from sklearn.feature_extraction import DictVectorizer
from sklearn.metrics.pairwise import cosine_similarity
from sklearn.preprocessing import MultiLabelBinarizer

from .cancellation import CancellationToken, ensure_token
from .config import SimilaritySettings, DEFAULT_SETTINGS
from .models import FunctionFeatureSet, TypeFeatureSet
from .scoring import score_types

logger = logging.getLogger(__name__)


def function_score_matrix(
    features: Sequence[FunctionFeatureSet],
    settings: SimilaritySettings = DEFAULT_SETTINGS,
) -> np.ndarray:
    """
    Score every pair of functions at once.

    Entry [i, j] equals score_functions(features[i], features[j]) up to
    floating-point rounding.

    Returns:
        Symmetric (n, n) array with a unit diagonal
    """
    n = len(features)
    if n == 0:
        return np.zeros((0, 0))

    caps = settings.function_caps
    parameters = [f.parameter_types for f in features]
    arity = np.array([len(p) for p in parameters], dtype=float)

    scores = {
        "invoked_signatures": _jaccard_matrix([f.invoked_signatures for f in features]),
        "operation_histogram": _cosine_matrix([f.operation_counts for f in features]),
        "accessed_types": _jaccard_matrix([f.accessed_types for f in features]),
        "parameter_types": _parameter_type_matrix(parameters),
        "cyclomatic_complexity": _closeness_matrix(
            [f.cyclomatic_complexity for f in features], caps.cyclomatic_complexity
        ),
        "return_type": _equality_matrix([f.return_type for f in features]),
        "basic_blocks": _closeness_matrix([f.basic_block_count for f in features], caps.basic_blocks),
        "conditional_branches": _closeness_matrix(
            [f.conditional_branch_count for f in features], caps.conditional_branches
        ),
        "loops": _closeness_matrix([f.loop_count for f in features], caps.loops),
        "parameter_count": (arity[:, None] == arity[None, :]).astype(float),
    }

    matrix = _weighted_mean(scores, settings.function_weights, n)
    np.fill_diagonal(matrix, 1.0)
    return matrix


def type_score_matrix(
    features: Sequence[TypeFeatureSet],
    settings: SimilaritySettings = DEFAULT_SETTINGS,
    cancellation: Optional[CancellationToken] = None,
) -> np.ndarray:
    """Score every pair of types, one row per worker task."""
    token = ensure_token(cancellation)
    n = len(features)
    matrix = np.eye(n)

    def score_row(i: int) -> List[float]:
        token.raise_if_cancelled()
        return [
            score_types(
                features[i], features[j],
                settings.type_weights, settings.type_caps,
                settings.function_weights, settings.function_caps,
            )
            for j in range(i + 1, n)
        ]

    with ThreadPoolExecutor(max_workers=settings.worker_count) as executor:
        for i, row in enumerate(executor.map(score_row, range(n))):
            matrix[i, i + 1:] = row
            matrix[i + 1:, i] = row

    logger.debug(f"Precomputed {n * (n - 1) // 2} type scores")
    return matrix


def _weighted_mean(scores: Mapping[str, np.ndarray], weights, n: int) -> np.ndarray:
    total = np.zeros((n, n))
    total_weight = 0.0
    for f in fields(weights):
        weight = getattr(weights, f.name)
        total += scores[f.name] * weight
        total_weight += weight
    if total_weight <= 0:
        return np.zeros((n, n))
    return total / total_weight


def _jaccard_matrix(sets: Sequence[AbstractSet[str]]) -> np.ndarray:
    n = len(sets)
    if not any(sets):
        return np.ones((n, n))

    binarizer = MultiLabelBinarizer(sparse_output=True)
    membership = binarizer.fit_transform([sorted(s) for s in sets]).astype(np.float64)
    intersection = (membership @ membership.T).toarray()
    sizes = np.asarray(membership.sum(axis=1)).ravel()
    union = sizes[:, None] + sizes[None, :] - intersection

    with np.errstate(divide="ignore", invalid="ignore"):
        return np.where(union > 0, intersection / union, 1.0)


def _cosine_matrix(histograms: Sequence[Mapping[str, int]]) -> np.ndarray:
    n = len(histograms)
    empty = np.array([not h for h in histograms])
    if empty.all():
        return np.ones((n, n))

    vectors = DictVectorizer(sparse=True).fit_transform([dict(h) for h in histograms])
    similarity = np.clip(cosine_similarity(vectors), 0.0, 1.0)

    both_empty = empty[:, None] & empty[None, :]
    one_empty = empty[:, None] ^ empty[None, :]
    similarity = np.where(both_empty, 1.0, similarity)
    return np.where(one_empty, 0.0, similarity)


def _parameter_type_matrix(parameters: Sequence[Sequence[str]]) -> np.ndarray:
    n = len(parameters)
    lengths = np.array([len(p) for p in parameters])
    width = max(1, int(lengths.max()) if n else 1)

    vocabulary = {}
    codes = np.full((n, width), -1)
    for i, params in enumerate(parameters):
        for k, name in enumerate(params):
            codes[i, k] = vocabulary.setdefault(name, len(vocabulary))

    same_position = (codes[:, None, :] == codes[None, :, :]) & (codes[:, None, :] >= 0)
    matching = same_position.sum(axis=2)

    with np.errstate(divide="ignore", invalid="ignore"):
        fraction = np.where(lengths[:, None] > 0, matching / lengths[:, None], 1.0)
    return np.where(lengths[:, None] == lengths[None, :], fraction, 0.0)


def _equality_matrix(values: Sequence[str]) -> np.ndarray:
    _, codes = np.unique(np.array(list(values), dtype=str), return_inverse=True)
    codes = codes.ravel()
    return (codes[:, None] == codes[None, :]).astype(float)


def _closeness_matrix(values: Sequence[float], cap: float) -> np.ndarray:
    v = np.asarray(values, dtype=float)
    difference = np.abs(v[:, None] - v[None, :])
    if cap == 0:
        return (difference == 0).astype(float)
    return 1.0 - np.minimum(1.0, difference / cap)
