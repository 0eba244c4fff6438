"""
Tests for the pairwise function and type scorers.
"""

import itertools
from dataclasses import replace

import pytest

from semantic_similarity.config import FunctionWeights, TypeCaps
from semantic_similarity.scoring import (
    cosine,
    function_sub_scores,
    jaccard,
    match_methods,
    normalized_difference,
    parameter_type_similarity,
    score_functions,
    score_types,
    strict_jaccard,
)

from builders import function_features, type_features


# -- primitives --------------------------------------------------------------


class TestSetAndVectorPrimitives:
    def test_jaccard(self):
        assert jaccard({"a", "b"}, {"a"}) == 0.5
        assert jaccard(set(), set()) == 1.0
        assert jaccard({"a"}, set()) == 0.0

    def test_strict_jaccard_one_side_empty(self):
        assert strict_jaccard(set(), set()) == 1.0
        assert strict_jaccard({"a"}, set()) == 0.0
        assert strict_jaccard({"a", "b"}, {"b", "c"}) == pytest.approx(1 / 3)

    def test_cosine(self):
        assert cosine({}, {}) == 1.0
        assert cosine({"a": 1}, {}) == 0.0
        assert cosine({"a": 1}, {"b": 1}) == 0.0
        assert cosine({"a": 3, "b": 4}, {"a": 3, "b": 4}) == 1.0
        assert cosine({"a": 1, "b": 2, "c": 2}, {"a": 1, "b": 1, "c": 1, "d": 1, "e": 1}) == pytest.approx(
            5 / 45 ** 0.5
        )

    def test_normalized_difference_clamps(self):
        assert normalized_difference(0, 30, 60) == 0.5
        assert normalized_difference(0, 100, 60) == 1.0
        assert normalized_difference(4, 4, 0) == 0.0
        assert normalized_difference(4, 5, 0) == 1.0

    def test_parameter_types_position_by_position(self):
        assert parameter_type_similarity((), ()) == 1.0
        assert parameter_type_similarity(("int", "string"), ("int", "bool")) == 0.5
        assert parameter_type_similarity(("int",), ("int", "int")) == 0.0


# -- function scorer ---------------------------------------------------------


def logger_and_saver():
    """X calls Log then Save."""
    return function_features(
        qualified_name="Shop.Orders.Place",
        parameter_types=("Shop.Order",),
        invoked={"Logger.Log(string)", "Repository.Save(Shop.Order)"},
        accessed={"Shop.Repository"},
        histogram={"Block": 1, "Invocation": 2, "ExpressionStatement": 2},
    )


def logger_only():
    """Y calls only Log, with a different signature and body shape."""
    return function_features(
        qualified_name="Shop.Users.Check",
        file_path="src/Users.cs",
        return_type="bool",
        parameter_types=("string", "int"),
        invoked={"Logger.Log(string)"},
        accessed={"Shop.Settings"},
        histogram={"Block": 1, "Invocation": 1, "ExpressionStatement": 1, "Return": 1, "Literal": 1},
    )


def adder(name):
    return function_features(
        qualified_name=name,
        return_type="int",
        parameter_types=("int", "int"),
        histogram={"Block": 1, "Return": 1, "Binary": 1, "ParameterReference": 2},
    )


def sample_functions():
    return [
        logger_and_saver(),
        logger_only(),
        adder("Shop.MathA.Add"),
        function_features(
            qualified_name="Shop.Big.Run",
            blocks=40, branches=12, loops=3, cyclomatic=18,
            invoked={"A.B()", "A.C()"},
            histogram={"Loop": 3, "Conditional": 12, "Block": 20},
        ),
        function_features(),
    ]


class TestFunctionScorer:
    def test_reflexive_maximum(self):
        for f in sample_functions():
            assert score_functions(f, f) == 1.0

    def test_symmetric(self):
        for a, b in itertools.combinations(sample_functions(), 2):
            assert score_functions(a, b) == score_functions(b, a)

    def test_in_unit_interval(self):
        for a, b in itertools.product(sample_functions(), repeat=2):
            assert 0.0 <= score_functions(a, b) <= 1.0

    def test_identical_adders_score_one(self):
        """Two `return a + b;` functions with the same signature."""
        assert score_functions(adder("Shop.MathA.Add"), adder("Shop.MathB.Add")) == 1.0

    def test_partial_call_overlap(self):
        x, y = logger_and_saver(), logger_only()
        subs = function_sub_scores(x, y)

        assert subs["invoked_signatures"] == 0.5
        assert subs["parameter_types"] == 0.0
        assert subs["return_type"] == 0.0
        # 0.25*0.5 + 0.2*cos + 0.075 + 3*0.05
        expected = 0.125 + 0.2 * (5 / 45 ** 0.5) + 0.075 + 0.15
        assert score_functions(x, y) == pytest.approx(expected)
        assert 0.4 < score_functions(x, y) < 0.7

    def test_count_caps(self):
        small = function_features(blocks=0)
        huge = function_features(blocks=500)
        assert function_sub_scores(small, huge)["basic_blocks"] == 0.0

    def test_custom_weights(self):
        only_calls = FunctionWeights(
            **{name: (1.0 if name == "invoked_signatures" else 0.0) for name in FunctionWeights.__dataclass_fields__}
        )
        assert score_functions(logger_and_saver(), logger_only(), only_calls) == 0.5

    def test_trivial_bodies_look_identical(self):
        """Two functions that call nothing share the empty-set bonus."""
        a = function_features(qualified_name="A.One")
        b = function_features(qualified_name="B.Two")
        assert score_functions(a, b) == 1.0


# -- type scorer -------------------------------------------------------------


def repository(name, extra_fields=0, methods=None):
    methods = methods if methods is not None else [
        function_features(qualified_name=f"{name}.Load", invoked={"Store.Read()"}),
        function_features(qualified_name=f"{name}.Save", invoked={"Store.Write()"}),
    ]
    return type_features(
        qualified_name=name,
        methods=methods,
        public_method_count=2,
        property_count=2,
        field_count=1 + extra_fields,
        private_method_count=0,
        used_namespaces=frozenset({"System"}),
        interfaces=frozenset({"Shop.IRepository"}),
        average_method_complexity=1.0,
    )


def sample_types():
    return [
        repository("Shop.CustomerRepository"),
        repository("Shop.SupplierRepository", extra_fields=1),
        repository("Shop.Empty", methods=[]),
        type_features(qualified_name="Shop.Dto", property_count=12, line_count=25),
    ]


class TestMethodMatching:
    def test_empty_lists(self):
        assert match_methods([], []) == 1.0
        assert match_methods([function_features()], []) == 0.0

    def test_each_method_claims_one_partner(self):
        a = [adder("A.Add"), logger_and_saver()]
        b = [logger_and_saver(), adder("B.Add"), logger_only()]
        assert match_methods(a, b) == 1.0

    def test_partner_cannot_be_claimed_twice(self):
        a = [adder("A.Add"), adder("A.Add2")]
        b = [adder("B.Add"), logger_only()]
        score = match_methods(a, b)
        assert score == pytest.approx((1.0 + score_functions(adder("A.Add2"), logger_only())) / 2)

    def test_symmetric_for_equal_lengths(self):
        a = [adder("A.Add"), logger_only()]
        b = [logger_and_saver(), adder("B.Add")]
        assert match_methods(a, b) == match_methods(b, a)


class TestTypeScorer:
    def test_reflexive_maximum(self):
        for t in sample_types():
            assert score_types(t, t) == 1.0

    def test_symmetric(self):
        for a, b in itertools.combinations(sample_types(), 2):
            assert score_types(a, b) == score_types(b, a)

    def test_one_extra_field(self):
        a = repository("Shop.CustomerRepository")
        b = repository("Shop.SupplierRepository", extra_fields=1)
        score = score_types(a, b)

        assert score > 0.99
        assert score < 1.0

    def test_interfaces_on_one_side_only(self):
        a = repository("Shop.A")
        b = replace(a, qualified_name="Shop.B", interfaces=frozenset())
        assert score_types(a, b) < 1.0

    def test_caps(self):
        a = type_features(line_count=20)
        b = type_features(line_count=3000)
        caps = TypeCaps(lines_of_code=100)
        assert score_types(a, b, caps=caps) < score_types(a, b)
