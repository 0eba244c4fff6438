"""
Tests for OperationComplexityAnalyzer.
"""

import pytest

from semantic_similarity.complexity import OperationComplexityAnalyzer

from builders import INT, K, block, call, function, op, param


@pytest.fixture
def analyzer():
    return OperationComplexityAnalyzer()


def condition(operator=">"):
    return op(K.BINARY, param(), param(), operator=operator)


class TestCyclomaticComplexity:
    def test_straight_line_is_one(self, analyzer):
        metrics = analyzer.analyze_function(function(body=block(call("A.Run()"))))
        assert metrics["cyclomatic_complexity"] == 1

    def test_decisions_and_logical_operators(self, analyzer):
        """if (a && b) {...} else {...}; while (x < y) {...}"""
        body = block(
            op(K.CONDITIONAL, op(K.BINARY, condition(), condition(), operator="&&"), block(), block()),
            op(K.LOOP, condition("<"), block(call("A.Step()"))),
        )
        metrics = analyzer.analyze_function(function(body=body))
        assert metrics["cyclomatic_complexity"] == 4  # 1 base + if + && + while

    def test_switch_cases_catches_and_coalesce(self, analyzer):
        body = block(
            op(K.SWITCH, param(), op(K.SWITCH_CASE), op(K.SWITCH_CASE)),
            op(K.TRY, block(), op(K.CATCH, block())),
            op(K.COALESCE, param(), param()),
        )
        metrics = analyzer.analyze_function(function(body=body))
        assert metrics["cyclomatic_complexity"] == 5  # 1 + 2 cases + catch + ??

    def test_arithmetic_operators_do_not_count(self, analyzer):
        body = block(op(K.RETURN, op(K.BINARY, param(), param(), operator="+")))
        assert analyzer.analyze_function(function(body=body))["cyclomatic_complexity"] == 1

    def test_missing_body(self, analyzer):
        metrics = analyzer.analyze_function(function(body=None, is_abstract=True))
        assert metrics["cyclomatic_complexity"] == 1
        assert metrics["cognitive_complexity"] == 0


class TestCognitiveComplexity:
    def test_nesting_adds_weight(self, analyzer):
        nested = op(K.CONDITIONAL, condition(), block(op(K.LOOP, condition(), block())))
        flat = block(op(K.CONDITIONAL, condition(), block()), op(K.LOOP, condition(), block()))

        assert analyzer.analyze_function(function(body=block(nested)))["cognitive_complexity"] == 3
        assert analyzer.analyze_function(function(body=flat))["cognitive_complexity"] == 2

    def test_logical_operators_are_flat(self, analyzer):
        body = block(op(K.CONDITIONAL, op(K.BINARY, condition(), condition(), operator="||"), block()))
        assert analyzer.analyze_function(function(body=body))["cognitive_complexity"] == 2


class TestOtherMetrics:
    def test_counts(self, analyzer):
        body = block(op(K.VARIABLE_DECLARATION), op(K.VARIABLE_DECLARATION), call("A.Run()"))
        metrics = analyzer.analyze_function(function(parameters=(INT, INT), lines=15, body=body))

        assert metrics["line_count"] == 15
        assert metrics["parameter_count"] == 2
        assert metrics["local_variable_count"] == 2

    def test_recommendations(self, analyzer):
        advice = []
        analyzer.analyze_function(function(parameters=(INT,) * 5, lines=60), recommendations=advice)

        assert len(advice) == 2
        assert any("60 lines" in a for a in advice)
        assert any("5 parameters" in a for a in advice)

    def test_no_recommendations_for_small_functions(self, analyzer):
        advice = []
        analyzer.analyze_function(function(), recommendations=advice)
        assert advice == []
