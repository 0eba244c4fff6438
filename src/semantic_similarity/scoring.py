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
Pairwise similarity scorers for functions and types.

Every sub-score lands in [0, 1] and the final score is the weighted mean
of the sub-scores. Scorers are pure: the same pair always yields the
same score, in either argument order.

Two empty sets (or two empty histograms) count as identical. This keeps
short functions that call nothing comparable with each other, and is a
known source of inflated scores for trivial bodies.
"""

from dataclasses import fields
from typing import AbstractSet, Dict, List, Mapping, Optional, Sequence, Tuple
import math

from .config import FunctionCaps, FunctionWeights, TypeCaps, TypeWeights
from .models import FunctionFeatureSet, TypeFeatureSet


def jaccard(a: AbstractSet, b: AbstractSet) -> float:
    """|a ∩ b| / |a ∪ b|; 1.0 for two empty sets."""
    if not a and not b:
        return 1.0
    return len(a & b) / len(a | b)


def strict_jaccard(a: AbstractSet, b: AbstractSet) -> float:
    """Like jaccard, but 0.0 as soon as exactly one side is empty."""
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def cosine(a: Mapping[str, int], b: Mapping[str, int]) -> float:
    """Cosine similarity of two count vectors keyed by name."""
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0

    keys = sorted(set(a) | set(b))
    dot = sum(a.get(k, 0) * b.get(k, 0) for k in keys)
    norm_a = sum(a.get(k, 0) ** 2 for k in keys)
    norm_b = sum(b.get(k, 0) ** 2 for k in keys)

    if norm_a == 0 or norm_b == 0:
        return 0.0
    # Single sqrt of the integer product keeps cosine(a, a) exactly 1.0
    return min(1.0, dot / math.sqrt(norm_a * norm_b))


def normalized_difference(a: float, b: float, cap: float) -> float:
    """|a - b| / cap, clamped to [0, 1]; cap 0 means exact match or nothing."""
    if cap == 0:
        return 0.0 if a == b else 1.0
    return min(1.0, abs(a - b) / cap)


def closeness(a: float, b: float, cap: float) -> float:
    return 1.0 - normalized_difference(a, b, cap)


def parameter_type_similarity(a: Sequence[str], b: Sequence[str]) -> float:
    """Fraction of positions with the same parameter type (equal arity only)."""
    if not a and not b:
        return 1.0
    if len(a) != len(b):
        return 0.0
    matching = sum(1 for x, y in zip(a, b) if x == y)
    return matching / len(a)


def weighted_mean(scores: Mapping[str, float], weights) -> float:
    """Σ(score × weight) / Σ(weight) over the fields of a weights dataclass."""
    total_weight = 0.0
    total = 0.0
    for f in fields(weights):
        weight = getattr(weights, f.name)
        total += scores[f.name] * weight
        total_weight += weight
    return total / total_weight if total_weight > 0 else 0.0


def function_sub_scores(
    a: FunctionFeatureSet,
    b: FunctionFeatureSet,
    caps: FunctionCaps = FunctionCaps(),
) -> Dict[str, float]:
    """The ten function sub-scores, keyed like FunctionWeights."""
    return {
        "invoked_signatures": jaccard(a.invoked_signatures, b.invoked_signatures),
        "operation_histogram": cosine(a.operation_counts, b.operation_counts),
        "accessed_types": jaccard(a.accessed_types, b.accessed_types),
        "parameter_types": parameter_type_similarity(a.parameter_types, b.parameter_types),
        "cyclomatic_complexity": closeness(
            a.cyclomatic_complexity, b.cyclomatic_complexity, caps.cyclomatic_complexity
        ),
        "return_type": 1.0 if a.return_type == b.return_type else 0.0,
        "basic_blocks": closeness(a.basic_block_count, b.basic_block_count, caps.basic_blocks),
        "conditional_branches": closeness(
            a.conditional_branch_count, b.conditional_branch_count, caps.conditional_branches
        ),
        "loops": closeness(a.loop_count, b.loop_count, caps.loops),
        "parameter_count": 1.0 if len(a.parameter_types) == len(b.parameter_types) else 0.0,
    }


def score_functions(
    a: FunctionFeatureSet,
    b: FunctionFeatureSet,
    weights: FunctionWeights = FunctionWeights(),
    caps: FunctionCaps = FunctionCaps(),
) -> float:
    """
    Similarity of two functions in [0, 1].

    Args:
        a, b: Feature sets to compare
        weights: Sub-score weights
        caps: Normalization caps for the count features

    Returns:
        Weighted mean of the ten sub-scores
    """
    return weighted_mean(function_sub_scores(a, b, caps), weights)


def match_methods(
    a: Sequence[FunctionFeatureSet],
    b: Sequence[FunctionFeatureSet],
    weights: FunctionWeights = FunctionWeights(),
    caps: FunctionCaps = FunctionCaps(),
) -> float:
    """
    Greedy one-to-one method matching score.

    Each method of the shorter list claims its best-scoring unclaimed
    partner in the longer list; the result is the mean claimed score.
    Ties keep the earliest partner.
    """
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0

    smaller, larger = _order_by_size(a, b)
    claimed = set()
    total = 0.0

    for method in smaller:
        best_score = 0.0
        best_index = -1
        for index, candidate in enumerate(larger):
            if index in claimed:
                continue
            score = score_functions(method, candidate, weights, caps)
            if score > best_score:
                best_score = score
                best_index = index
        if best_index != -1:
            claimed.add(best_index)
            total += best_score

    return total / len(smaller)


def _order_by_size(
    a: Sequence[FunctionFeatureSet],
    b: Sequence[FunctionFeatureSet],
) -> Tuple[Sequence[FunctionFeatureSet], Sequence[FunctionFeatureSet]]:
    if len(a) != len(b):
        return (a, b) if len(a) < len(b) else (b, a)
    # Equal lengths: pick a canonical side so the greedy pass is symmetric
    return (a, b) if _method_key(a) <= _method_key(b) else (b, a)


def _method_key(methods: Sequence[FunctionFeatureSet]) -> List[Tuple[str, str, int]]:
    return [(m.qualified_name, m.file_path, m.start_line) for m in methods]


def type_sub_scores(
    a: TypeFeatureSet,
    b: TypeFeatureSet,
    caps: TypeCaps = TypeCaps(),
    function_weights: FunctionWeights = FunctionWeights(),
    function_caps: FunctionCaps = FunctionCaps(),
) -> Dict[str, float]:
    """The type sub-scores, keyed like TypeWeights."""
    return {
        "method_matching": match_methods(a.methods, b.methods, function_weights, function_caps),
        "interfaces": strict_jaccard(a.interfaces, b.interfaces),
        "external_types": strict_jaccard(a.external_types, b.external_types),
        "base_type": _base_type_similarity(a.base_type, b.base_type),
        "average_method_complexity": closeness(
            a.average_method_complexity, b.average_method_complexity, caps.average_method_complexity
        ),
        "public_methods": closeness(a.public_method_count, b.public_method_count, caps.methods),
        "properties": closeness(a.property_count, b.property_count, caps.properties),
        "fields": closeness(a.field_count, b.field_count, caps.fields),
        "used_namespaces": strict_jaccard(a.used_namespaces, b.used_namespaces),
        "lines_of_code": closeness(a.line_count, b.line_count, caps.lines_of_code),
        "protected_methods": closeness(a.protected_method_count, b.protected_method_count, caps.methods),
        "private_methods": closeness(a.private_method_count, b.private_method_count, caps.methods),
        "static_methods": closeness(a.static_method_count, b.static_method_count, caps.methods),
        "abstract_methods": closeness(a.abstract_method_count, b.abstract_method_count, caps.methods),
        "virtual_methods": closeness(a.virtual_method_count, b.virtual_method_count, caps.methods),
        "read_only_properties": closeness(
            a.read_only_property_count, b.read_only_property_count, caps.properties
        ),
        "static_properties": closeness(a.static_property_count, b.static_property_count, caps.properties),
        "static_fields": closeness(a.static_field_count, b.static_field_count, caps.fields),
        "readonly_fields": closeness(a.readonly_field_count, b.readonly_field_count, caps.fields),
        "const_fields": closeness(a.const_field_count, b.const_field_count, caps.fields),
        "events": closeness(a.event_count, b.event_count, caps.events),
        "nested_classes": closeness(a.nested_class_count, b.nested_class_count, caps.nested_types),
        "nested_structs": closeness(a.nested_struct_count, b.nested_struct_count, caps.nested_types),
        "nested_enums": closeness(a.nested_enum_count, b.nested_enum_count, caps.nested_types),
        "nested_interfaces": closeness(
            a.nested_interface_count, b.nested_interface_count, caps.nested_types
        ),
    }


def score_types(
    a: TypeFeatureSet,
    b: TypeFeatureSet,
    weights: TypeWeights = TypeWeights(),
    caps: TypeCaps = TypeCaps(),
    function_weights: FunctionWeights = FunctionWeights(),
    function_caps: FunctionCaps = FunctionCaps(),
) -> float:
    """Similarity of two types in [0, 1]."""
    return weighted_mean(type_sub_scores(a, b, caps, function_weights, function_caps), weights)


def _base_type_similarity(a: Optional[str], b: Optional[str]) -> float:
    if not a and not b:
        return 1.0
    return 1.0 if a == b else 0.0
