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
Greedy grouping of similar feature sets.

Each not-yet-assigned item seeds a group and pulls in every later
unassigned item that scores at or above the threshold against the seed.
The result depends on input order and is not a global optimum. It is
deterministic for a given order and needs at most n(n-1)/2 comparisons.
The "assigned" set keeps this pass sequential; pairwise scores can be
computed in parallel ahead of time (see matrix.py).
"""

from typing import Callable, List, Optional, Sequence, Tuple, TypeVar
import logging

import numpy as np

from .cancellation import CancellationToken, ensure_token
from .models import FunctionFeatureSet

logger = logging.getLogger(__name__)

T = TypeVar("T")

Group = Tuple[List[T], float]


def group_similar(
    features: Sequence[T],
    threshold: float,
    score: Callable[[T, T], float],
    cancellation: Optional[CancellationToken] = None,
    skip_pair: Optional[Callable[[T, T], bool]] = None,
    score_matrix: Optional[np.ndarray] = None,
) -> List[Group]:
    """
    Cluster feature sets by pairwise similarity.

    Args:
        features: Items to group, in the order they are swept
        threshold: Minimum score for inclusion, in (0, 1]
        score: Pairwise scorer, used when no score_matrix is given
        cancellation: Checked once per outer and once per inner iteration
        skip_pair: Pairs for which it returns True are never compared
        score_matrix: Optional precomputed (n, n) scores

    Returns:
        (members, average score) tuples, most similar first

    Raises:
        ValueError: If threshold is outside (0, 1]
        OperationCancelled: If cancellation is triggered
    """
    validate_threshold(threshold)
    token = ensure_token(cancellation)

    n = len(features)
    if score_matrix is not None and score_matrix.shape != (n, n):
        raise ValueError(f"score_matrix shape {score_matrix.shape} does not match {n} features")

    groups: List[Group] = []
    assigned = set()

    for i in range(n):
        token.raise_if_cancelled("Similarity comparison was cancelled.")
        if i in assigned:
            continue

        seed = features[i]
        members = [seed]
        assigned.add(i)
        total = 0.0
        comparisons = 0

        for j in range(i + 1, n):
            token.raise_if_cancelled("Similarity comparison was cancelled.")
            if j in assigned:
                continue

            other = features[j]
            if skip_pair is not None and skip_pair(seed, other):
                continue

            similarity = float(score_matrix[i, j]) if score_matrix is not None else score(seed, other)

            if similarity >= threshold:
                members.append(other)
                assigned.add(j)
                total += similarity
                comparisons += 1
                logger.debug(f"{_label(other)} joins {_label(seed)} with score {similarity:.3f}")

        if len(members) > 1:
            average = total / comparisons
            groups.append((members, average))
            logger.info(f"Found group of {len(members)} starting with {_label(seed)}, avg score {average:.2f}")

    # Stable sort keeps sweep order among equal scores
    groups.sort(key=lambda g: g[1], reverse=True)
    return groups


def validate_threshold(threshold: float) -> None:
    if not 0.0 < threshold <= 1.0:
        raise ValueError(f"Similarity threshold must be in (0, 1], got {threshold}")


def is_overload_pair(a: FunctionFeatureSet, b: FunctionFeatureSet) -> bool:
    """Same qualified name but a different parameter list."""
    if a.qualified_name != b.qualified_name:
        return False
    if tuple(a.parameter_types) == tuple(b.parameter_types):
        return False
    logger.debug(
        f"Skipping overloads {a.qualified_name}({', '.join(a.parameter_types)}) "
        f"and ({', '.join(b.parameter_types)})"
    )
    return True


def _label(item) -> str:
    return getattr(item, "qualified_name", repr(item))
