import time

import pytest

from FormulaCalc import MathEngine
from FormulaCalc import config_manager
from FormulaCalc import error as E


@pytest.mark.parametrize(
    "formula, expected",
    [
        ("2 + 3 * 4", 14),
        ("(1 + 2) * 3", 9),
        ("10 / 4", 2.5),
        ("2 - 3 - 4", -5),
        ("8 / 2 / 2", 2),
        ("-3 + 5", 2),
        ("-(2 + 3)", -5),
        ("1.5 * 2", 3),
        (".5 + .5", 1),
    ],
)
def test_plain_arithmetic_matches_standard_evaluation(formula, expected):
    assert MathEngine.evaluate(formula, {}) == pytest.approx(expected)


def test_extract_identifiers_deduplicates_in_first_appearance_order():
    assert MathEngine.extract_identifiers("c + c") == ["c"]
    assert MathEngine.extract_identifiers("2a + 3b - c + a") == ["a", "b", "c"]
    assert MathEngine.extract_identifiers("12 + 3") == []


def test_extract_identifiers_keeps_subscripts_attached():
    assert MathEngine.extract_identifiers("x_1 * y_1 + z_1") == ["x_1", "y_1", "z_1"]


def test_extract_identifiers_ignores_malformed_text():
    assert MathEngine.extract_identifiers("a $ b ^ (") == ["a", "b"]


def test_exponentiation():
    assert MathEngine.evaluate("a^2", {"a": 3}) == 9
    assert MathEngine.evaluate("(a+b)^3", {"a": 1, "b": 1}) == 8


def test_exponent_zero_is_one_even_for_zero_base():
    assert MathEngine.evaluate("a^0", {"a": 0}) == 1
    assert MathEngine.evaluate("(a - a)^0", {"a": 5}) == 1


def test_implicit_multiplication():
    assert MathEngine.evaluate("2a", {"a": 5}) == 10
    assert MathEngine.evaluate("ab", {"a": 2, "b": 3}) == 6
    assert MathEngine.evaluate("3x_1", {"x_1": 2}) == 6
    assert MathEngine.evaluate("a^2b", {"a": 3, "b": 2}) == 18


@pytest.mark.parametrize("formula", ["2 a", "a b", "2(a + b)", "(a + b)(a - b)", "a(b)", "(a)b"])
def test_only_a_number_directly_before_an_identifier_multiplies(formula):
    result = MathEngine.evaluate(formula, {"a": 3, "b": 1})
    assert isinstance(result, E.MalformedExpression)
    assert result.code == "3004"


def test_bound_multi_letter_name_wins_over_splitting():
    assert MathEngine.evaluate("ab", {"ab": 7, "a": 2, "b": 3}) == 7


@pytest.mark.parametrize(
    "formula, bindings, expected",
    [
        ("2a^2", {"a": 3}, 18),
        ("ab^2", {"a": 2, "b": 3}, 18),
        ("-a^2", {"a": 3}, -9),
        ("1/2a", {"a": 4}, 2),
        ("2a + 3b - c", {"a": 1, "b": 2, "c": 3}, 5),
        ("a^2 - b^3 + (c / d)", {"a": 2, "b": 1, "c": 6, "d": 3}, 5),
        ("(a + b^2) * (c - d^2)", {"a": 1, "b": 2, "c": 10, "d": 3}, 5),
        ("(x_1 * y_1 + z_1) / a_1", {"x_1": 2, "y_1": 3, "z_1": 4, "a_1": 5}, 2),
    ],
)
def test_precedence(formula, bindings, expected):
    assert MathEngine.evaluate(formula, bindings) == pytest.approx(expected)


def test_subscripted_identifiers_evaluate():
    bindings = {"x_1": 2, "y_1": 3, "z_1": 4}
    assert MathEngine.evaluate("x_1 * y_1 + z_1", bindings) == 10


def test_undefined_variable_is_reported_by_name():
    result = MathEngine.evaluate("a + b", {"a": 1})
    assert isinstance(result, E.UndefinedVariable)
    assert result.name == "b"
    assert result.code == "3100"
    assert result.equation == "a + b"


def test_unsplittable_run_is_undefined_as_a_whole():
    result = MathEngine.evaluate("ab", {"a": 1})
    assert isinstance(result, E.UndefinedVariable)
    assert result.name == "ab"


def test_empty_formula_is_a_prompt_not_an_error():
    result = MathEngine.evaluate("", {})
    assert isinstance(result, E.EmptyFormula)
    assert not isinstance(result, E.MathError)
    assert MathEngine.evaluate("   ", {}) == E.EmptyFormula()


def test_division_by_zero_is_classified():
    assert isinstance(MathEngine.evaluate("a / b", {"a": 1, "b": 0}), E.DivisionByZero)
    assert isinstance(MathEngine.evaluate("0 / 0", {}), E.DivisionByZero)


def test_overflow_is_classified_as_non_finite():
    assert isinstance(MathEngine.evaluate("a * a", {"a": 1e200}), E.NonFiniteResult)
    assert isinstance(MathEngine.evaluate("a^2", {"a": 1e200}), E.NonFiniteResult)


def test_non_finite_binding_is_rejected():
    assert isinstance(MathEngine.evaluate("a + 1", {"a": float("inf")}), E.NonFiniteResult)


@pytest.mark.parametrize(
    "formula, code",
    [
        ("(a + b", "3002"),
        ("a + b)", "3003"),
        ("a +", "3005"),
        ("()", "3005"),
        ("2 3", "3004"),
        ("a b", "3004"),
        ("2 a", "3004"),
        ("a $ b", "3000"),
        ("1.2.3", "3001"),
        ("a^2.5", "3006"),
        ("a^-1", "3006"),
        ("a^b", "3006"),
        ("2^3", "3007"),
        ("a^2^3", "3007"),
    ],
)
def test_malformed_expressions(formula, code):
    result = MathEngine.evaluate(formula, {"a": 1, "b": 2})
    assert isinstance(result, E.MalformedExpression)
    assert result.code == code


def test_calculate_raises_typed_errors():
    with pytest.raises(E.UndefinedVariable) as excinfo:
        MathEngine.calculate("a", {})
    assert excinfo.value.equation == "a"

    with pytest.raises(E.MalformedExpression):
        MathEngine.calculate("(a", {"a": 1})


def test_parse_builds_canonical_tree():
    tree = MathEngine.parse("(a+b)^3")
    assert isinstance(tree, MathEngine.Power)
    assert isinstance(tree.base, MathEngine.Group)
    assert tree.exponent == 3
    assert tree.base.inner.operator == "+"

    tree = MathEngine.parse("2a")
    assert isinstance(tree, MathEngine.BinOp)
    assert tree.operator == "*"
    assert isinstance(tree.left, MathEngine.Literal)
    assert isinstance(tree.right, MathEngine.Variable)
    assert tree.right.name == "a"


def test_parse_does_not_need_bindings():
    tree = MathEngine.parse("x^2")
    assert isinstance(tree.base, MathEngine.Variable)
    assert isinstance(MathEngine.evaluate_expression(tree, {}), E.UndefinedVariable)
    assert MathEngine.evaluate_expression(tree, {"x": 4}) == 16


def test_tree_can_be_evaluated_repeatedly_with_new_bindings():
    tree = MathEngine.parse("a / b")
    assert MathEngine.evaluate_expression(tree, {"a": 1, "b": 2}) == 0.5
    assert isinstance(MathEngine.evaluate_expression(tree, {"a": 1, "b": 0}), E.DivisionByZero)
    assert MathEngine.evaluate_expression(tree, {"a": 3, "b": 2}) == 1.5


@pytest.mark.parametrize(
    "value, decimal_places, expected",
    [
        (14.0, 4, ("14", False)),
        (2.5, 4, ("2.5", False)),
        (1 / 3, 4, ("0.3333", True)),
        (2 / 3, 2, ("0.67", True)),
        (-0.0, 4, ("0", False)),
        (1e20, 2, ("100000000000000000000", False)),
    ],
)
def test_format_result(value, decimal_places, expected):
    assert MathEngine.format_result(value, decimal_places) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        (0.25, "1/4"),
        (1.5, "1 1/2"),
        (-1.5, "-1 1/2"),
        (4.0, "4"),
    ],
)
def test_format_result_as_fraction(value, expected):
    assert MathEngine.format_result(value, 4, use_fractions=True) == (expected, False)


def test_display_result():
    assert MathEngine.display_result(14.0) == "= 14"
    assert MathEngine.display_result(1 / 3, 4) == "≈ 0.3333"
    assert MathEngine.display_result(E.EmptyFormula()) == "Please enter a formula above"
    assert MathEngine.display_result(E.DivisionByZero("Division by zero", code="3200")) == "Error"


def test_debug_setting_prints_diagnostics(monkeypatch, capsys):
    monkeypatch.setattr(MathEngine, "debug", True)
    MathEngine.evaluate("a + 1", {"a": 1})
    MathEngine.evaluate("a / 0", {"a": 1})
    output = capsys.readouterr().out
    assert "Evaluating expression:" in output
    assert "Computed result: 2.0" in output
    assert "Calculation error 3200" in output


def test_evaluation_does_not_read_settings(monkeypatch):
    def fail(key_value):
        raise AssertionError(f"settings read for {key_value!r}")

    monkeypatch.setattr(config_manager, "load_setting_value", fail)
    assert MathEngine.evaluate("1 + 1", {}) == 2
    assert isinstance(MathEngine.evaluate("a / 0", {"a": 1}), E.DivisionByZero)


def test_split_identifier_prefers_longest_names():
    assert MathEngine.split_identifier("abc", {"a": 1, "ab": 1, "c": 1}) == ["ab", "c"]
    assert MathEngine.split_identifier("abc", {"a": 1, "ab": 1, "bc": 1}) == ["a", "bc"]
    assert MathEngine.split_identifier("abd", {"a": 1, "b": 1}) is None


def test_unsplittable_long_run_fails_quickly():
    name = "a" * 40 + "b"
    started = time.perf_counter()
    result = MathEngine.evaluate(name, {"a": 1, "aa": 1})
    assert time.perf_counter() - started < 1.0
    assert isinstance(result, E.UndefinedVariable)
    assert result.name == name


def test_approximate_fraction_is_flagged_as_rounded():
    assert MathEngine.format_result(1 / 3, 4, use_fractions=True) == ("1/3", True)
    assert MathEngine.display_result(1 / 3, 4, use_fractions=True) == "≈ 1/3"
