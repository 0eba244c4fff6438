"""
Tests for the greedy grouping engine.
"""

import numpy as np
import pytest

from semantic_similarity.cancellation import CancellationToken, OperationCancelled
from semantic_similarity.clusterer import group_similar, is_overload_pair, validate_threshold
from semantic_similarity.scoring import score_functions

from builders import function_features
from test_scoring import sample_functions


def distance_score(a, b):
    """Numbers on a 0-10 line; closer means more similar."""
    return 1.0 - abs(a - b) / 10


class TestGroupSimilar:
    def test_groups_against_the_seed(self):
        groups = group_similar([0, 1, 2, 9], threshold=0.8, score=distance_score)

        assert len(groups) == 1
        members, average = groups[0]
        assert members == [0, 1, 2]
        assert average == pytest.approx((0.9 + 0.8) / 2)

    def test_inclusion_at_exact_threshold(self):
        groups = group_similar([0, 5], threshold=0.5, score=distance_score)
        assert groups == [([0, 5], 0.5)]

    def test_singletons_are_dropped(self):
        assert group_similar([0, 5, 10], threshold=0.9, score=distance_score) == []

    def test_assigned_items_are_not_reconsidered(self):
        # 2 joins 0's group and is not available to seed its own
        groups = group_similar([0, 2, 3.5], threshold=0.8, score=distance_score)
        assert [m for m, _ in groups] == [[0, 2]]

    def test_sorted_by_descending_average(self):
        groups = group_similar([0, 2, 6, 6.5], threshold=0.75, score=distance_score)
        assert [m for m, _ in groups] == [[6, 6.5], [0, 2]]

    def test_equal_scores_keep_sweep_order(self):
        groups = group_similar([0, 1, 5, 6], threshold=0.9, score=distance_score)
        assert [m for m, _ in groups] == [[0, 1], [5, 6]]

    def test_skip_pair(self):
        groups = group_similar([0, 1, 2], threshold=0.5, score=distance_score, skip_pair=lambda a, b: b == 1)
        assert [m for m, _ in groups] == [[0, 2]]

    def test_uses_score_matrix(self):
        matrix = np.array([[1.0, 0.2], [0.2, 1.0]])
        groups = group_similar(["a", "b"], 0.5, score=lambda a, b: 1.0, score_matrix=matrix)
        assert groups == []

    def test_score_matrix_shape_is_checked(self):
        with pytest.raises(ValueError):
            group_similar([1, 2, 3], 0.5, distance_score, score_matrix=np.eye(2))

    def test_empty_input(self):
        assert group_similar([], 0.7, distance_score) == []


class TestThresholdMonotonicity:
    def test_raising_threshold_never_grows_results(self):
        features = sample_functions() + [
            function_features(qualified_name="Shop.MathB.Add", return_type="int",
                              parameter_types=("int", "int"),
                              histogram={"Block": 1, "Return": 1, "Binary": 1, "ParameterReference": 2}),
        ]
        previous_count = None
        previous_size = None
        for threshold in (0.3, 0.5, 0.7, 0.9, 1.0):
            groups = group_similar(features, threshold, score_functions)
            count = len(groups)
            size = sum(len(m) for m, _ in groups)
            if previous_count is not None:
                assert count <= previous_count
                assert size <= previous_size
            previous_count, previous_size = count, size


class TestThresholdValidation:
    @pytest.mark.parametrize("threshold", [0.0, -0.1, 1.01, 2])
    def test_out_of_range(self, threshold):
        with pytest.raises(ValueError, match="threshold"):
            validate_threshold(threshold)
        with pytest.raises(ValueError):
            group_similar([1, 2], threshold, distance_score)

    @pytest.mark.parametrize("threshold", [0.01, 0.7, 1.0])
    def test_in_range(self, threshold):
        validate_threshold(threshold)


class TestCancellation:
    def test_cancelled_before_start(self):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(OperationCancelled):
            group_similar([1, 2, 3], 0.5, distance_score, cancellation=token)

    def test_cancelled_mid_sweep(self):
        token = CancellationToken()
        calls = []

        def score(a, b):
            calls.append((a, b))
            token.cancel()
            return 1.0

        with pytest.raises(OperationCancelled):
            group_similar([1, 2, 3, 4], 0.5, score, cancellation=token)
        assert len(calls) == 1


class TestOverloads:
    def test_overloads_never_share_a_group(self):
        first = function_features(qualified_name="Shop.Orders.Find", parameter_types=("int",))
        second = function_features(qualified_name="Shop.Orders.Find", parameter_types=("string",),
                                   start_line=30)
        assert is_overload_pair(first, second)
        assert group_similar([first, second], 0.1, score_functions, skip_pair=is_overload_pair) == []

    def test_same_name_same_parameters_is_not_an_overload(self):
        a = function_features(qualified_name="Shop.Orders.Find", parameter_types=("int",))
        b = function_features(qualified_name="Shop.Orders.Find", parameter_types=("int",), file_path="src/B.cs")
        assert not is_overload_pair(a, b)

    def test_different_names(self):
        a = function_features(qualified_name="Shop.A.Find", parameter_types=("int",))
        b = function_features(qualified_name="Shop.B.Find", parameter_types=("string",))
        assert not is_overload_pair(a, b)
