"""
Tests for FunctionFeatureExtractor.
"""

from typing import Any, Dict

import pytest

from semantic_similarity.cancellation import CancellationToken, OperationCancelled
from semantic_similarity.complexity import ComplexityAnalyzer
from semantic_similarity.extractors import FunctionFeatureExtractor
from semantic_similarity.program import FunctionKind, InMemoryProgramModel
from semantic_similarity.type_shapes import GenericType, NamedType

from builders import (
    INT,
    STRING,
    K,
    add_function,
    block,
    call,
    document,
    function,
    op,
    param,
)

DOC = document("src/Orders.cs")
ORDER = NamedType("Shop.Order", namespace="Shop", assembly="Shop")


class FixedComplexity(ComplexityAnalyzer):
    def __init__(self, value):
        self.value = value

    def analyze_function(self, function, recommendations=None) -> Dict[str, Any]:
        return {"cyclomatic_complexity": self.value}


class BrokenFlowModel(InMemoryProgramModel):
    def build_control_flow_graph(self, function):
        raise RuntimeError("no flow analysis for this body")


@pytest.fixture
def extractor():
    return FunctionFeatureExtractor(InMemoryProgramModel())


class TestCandidates:
    @pytest.mark.parametrize("flags", [
        {"is_abstract": True},
        {"is_extern": True},
        {"is_implicit": True},
        {"kind": FunctionKind.ACCESSOR},
    ])
    def test_rejected(self, extractor, flags):
        declaration = function(**flags)
        assert not extractor.is_candidate(declaration)
        assert extractor.extract(declaration, DOC) is None

    @pytest.mark.parametrize("kind", [FunctionKind.CONSTRUCTOR, FunctionKind.DESTRUCTOR, FunctionKind.OPERATOR])
    def test_only_ordinary_methods_qualify(self, extractor, kind):
        declaration = function(kind=kind)
        assert not extractor.is_candidate(declaration)
        assert extractor.extract(declaration, DOC) is None

    def test_methods_qualify(self, extractor):
        assert extractor.is_candidate(function(kind=FunctionKind.METHOD))


class TestLineFilter:
    def test_nine_line_function_is_skipped(self, extractor):
        assert extractor.extract(function(lines=9), DOC) is None

    def test_ten_line_function_is_kept(self, extractor):
        features = extractor.extract(function(lines=10), DOC)
        assert features is not None
        assert features.line_count == 10


class TestFeatures:
    def test_signature(self, extractor):
        declaration = function(
            name="Place",
            owner="Shop.Orders",
            start_line=42,
            returns=GenericType(NamedType("System.Collections.Generic.List<T>"), (ORDER,)),
            parameters=(ORDER, INT),
        )
        features = extractor.extract(declaration, DOC)

        assert features.qualified_name == "Shop.Orders.Place"
        assert features.name == "Place"
        assert features.file_path == "src/Orders.cs"
        assert features.start_line == 42
        assert features.return_type == "System.Collections.Generic.List<Shop.Order>"
        assert features.parameter_types == ("Shop.Order", "int")

    def test_body_walk(self, extractor):
        body = block(
            call("Logger.Log(string)", op(K.LITERAL, type=STRING)),
            call("Repository.Save(Shop.Order)", param(ORDER)),
            call("Logger.Log(string)", op(K.LITERAL, type=STRING)),
            op(K.EXPRESSION_STATEMENT, op(K.FIELD_REFERENCE, type=NamedType("Shop.Repository"))),
            op(K.RETURN, op(K.PROPERTY_REFERENCE, type=INT)),
        )
        features = extractor.extract(function(body=body), DOC)

        assert features.invoked_signatures == {"Logger.Log(string)", "Repository.Save(Shop.Order)"}
        assert features.accessed_types == {"Shop.Repository", "int"}
        assert features.operation_counts["Invocation"] == 3
        assert features.operation_counts["ExpressionStatement"] == 4
        assert features.operation_counts["Block"] == 1
        assert features.operation_counts["Literal"] == 2

    def test_control_flow_counts(self, extractor):
        body = block(op(K.LOOP, op(K.BINARY, param(), param(), operator="<"), block(call("A.Step()"))))
        features = extractor.extract(function(body=body), DOC)

        assert features.loop_count == 1
        assert features.conditional_branch_count == 1
        assert features.basic_block_count > 3

    def test_cyclomatic_from_the_analyzer(self):
        extractor = FunctionFeatureExtractor(InMemoryProgramModel(), FixedComplexity(7))
        assert extractor.extract(function(), DOC).cyclomatic_complexity == 7

    def test_non_integer_complexity_defaults_to_one(self):
        extractor = FunctionFeatureExtractor(InMemoryProgramModel(), FixedComplexity("high"))
        assert extractor.extract(function(), DOC).cyclomatic_complexity == 1

    def test_identical_adders_have_identical_features(self, extractor):
        a = extractor.extract(add_function("Shop.MathA"), DOC)
        b = extractor.extract(add_function("Shop.MathB"), DOC)

        assert a.qualified_name != b.qualified_name
        assert a.operation_counts == b.operation_counts
        assert (a.return_type, a.parameter_types) == (b.return_type, b.parameter_types) == ("int", ("int", "int"))
        assert a.conditional_branch_count == a.loop_count == 0


class TestControlFlowFailure:
    def test_counts_become_zero(self, caplog):
        extractor = FunctionFeatureExtractor(BrokenFlowModel())
        body = block(op(K.CONDITIONAL, param(), block(call("A.Run()"))))

        with caplog.at_level("WARNING"):
            features = extractor.extract(function(name="Risky", body=body), DOC)

        assert features is not None
        assert (features.basic_block_count, features.conditional_branch_count, features.loop_count) == (0, 0, 0)
        assert features.cyclomatic_complexity == 2
        assert "Risky" in caplog.text

    def test_unsupported_branch_is_recovered(self, extractor):
        body = block(op(K.BRANCH, operator="goto"), call("A.Run()"))
        features = extractor.extract(function(body=body), DOC)

        assert features.basic_block_count == 0
        assert features.invoked_signatures == {"A.Run()"}


class TestCancellation:
    def test_cancelled_token_raises(self, extractor):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(OperationCancelled):
            extractor.extract(function(), DOC, cancellation=token)

    def test_try_extract_logs_and_returns_none(self, caplog):
        class Exploding(ComplexityAnalyzer):
            def analyze_function(self, function, recommendations=None):
                raise KeyError("boom")

        extractor = FunctionFeatureExtractor(InMemoryProgramModel(), Exploding())
        with caplog.at_level("WARNING"):
            assert extractor.try_extract(function(name="Explode"), DOC) is None
        assert "Explode" in caplog.text
