"""Unit tests for the expression compiler."""

import math

import numpy as np
import pytest

from surfcalc.core.expression import (
    BinaryOp,
    Call,
    ExpressionError,
    Number,
    Variable,
    compile_field,
    compile_optional_field,
    evaluate_formula,
    parse,
    tokenize,
)


class TestTokenize:
    """Tests for the tokenizer."""

    def test_basic_tokens(self):
        kinds = [tok.kind for tok in tokenize("sin(x) + 2.5e-1*y")]
        assert kinds == ["name", "(", "name", ")", "op", "num", "op", "name", "end"]

    def test_double_star_is_power(self):
        tokens = tokenize("x**2")
        assert tokens[1].kind == "op"
        assert tokens[1].text == "^"

    def test_leading_dot_number(self):
        tokens = tokenize(".5")
        assert tokens[0] == ("num", ".5", 0)

    def test_greek_letters_are_names(self):
        tokens = tokenize("2*π")
        assert tokens[2].kind == "name"
        assert tokens[2].text == "π"

    def test_unexpected_character(self):
        with pytest.raises(ExpressionError):
            tokenize("x $ y")


class TestParse:
    """Tests for the recursive-descent parser."""

    def test_ast_shape(self):
        tree = parse("x + 2*y")
        assert tree == BinaryOp("+", Variable("x"), BinaryOp("*", Number(2.0), Variable("y")))

    def test_function_call_node(self):
        tree = parse("SIN(x)")
        assert isinstance(tree, Call)
        assert tree.name == "sin"

    def test_power_is_right_associative(self):
        assert compile_field("2^3^2")(0, 0) == 512.0

    def test_unary_minus_binds_looser_than_power(self):
        assert compile_field("-x^2")(3, 0) == -9.0

    def test_negative_exponent(self):
        assert compile_field("2^-1")(0, 0) == 0.5

    def test_incomplete_expression_raises(self):
        with pytest.raises(ExpressionError):
            parse("1 +")

    def test_unknown_arity_rejected(self):
        with pytest.raises(ValueError):
            parse("x", arity=4)


class TestCompileField:
    """Tests for compile_field evaluation."""

    def test_paraboloid_values(self):
        f = compile_field("x^2 + y^2")
        assert f(2, 0, 0) == 4.0
        assert f(0, 0, 0) == 0.0

    def test_time_variable(self):
        f = compile_field("x + t")
        assert f(1.0, 0.0, 2.0) == 3.0

    def test_returns_float_for_scalars(self):
        assert isinstance(compile_field("x*y")(2, 3), float)

    def test_vectorized_evaluation(self):
        f = compile_field("x * y")
        xx, yy = np.meshgrid([1.0, 2.0], [3.0, 4.0])
        assert np.allclose(f(xx, yy), [[3.0, 6.0], [4.0, 8.0]])

    def test_constant_broadcasts_to_input_shape(self):
        f = compile_field("7")
        assert f(np.zeros((3, 4)), np.zeros((3, 4))).shape == (3, 4)

    def test_empty_formula_is_zero(self):
        f = compile_field("   ")
        assert f.ok
        assert f(1.0, 2.0) == 0.0

    def test_two_argument_field_rejects_t(self):
        f = compile_field("x + t", arity=2)
        assert not f.ok
        assert math.isnan(f(1.0, 1.0))

    def test_two_argument_field(self):
        assert compile_field("x - y", arity=2)(5.0, 2.0) == 3.0


class TestConstantsAndAliases:
    """Tests for named constants and localized aliases."""

    def test_pi_spellings(self):
        for text in ("pi", "PI", "π"):
            assert compile_field(text)(0, 0) == pytest.approx(math.pi)

    def test_tau_and_phi(self):
        assert compile_field("tau")(0, 0) == pytest.approx(2 * math.pi)
        assert compile_field("phi")(0, 0) == pytest.approx((1 + math.sqrt(5)) / 2)

    def test_degree_factors(self):
        assert compile_field("180*deg2rad")(0, 0) == pytest.approx(math.pi)
        assert compile_field("pi*rad2deg")(0, 0) == pytest.approx(180.0)

    def test_spanish_and_short_aliases(self):
        assert compile_field("sen(pi/2)")(0, 0) == pytest.approx(1.0)
        assert compile_field("ln(e)")(0, 0) == pytest.approx(1.0)
        assert compile_field("tg(pi/4)")(0, 0) == pytest.approx(1.0)

    def test_helper_functions(self):
        assert compile_field("sec(0)")(0, 0) == pytest.approx(1.0)
        assert compile_field("csc(pi/2)")(0, 0) == pytest.approx(1.0)
        assert compile_field("cot(pi/4)")(0, 0) == pytest.approx(1.0)
        assert compile_field("sech(0)")(0, 0) == pytest.approx(1.0)
        assert compile_field("coth(1)")(0, 0) == pytest.approx(1 / math.tanh(1))

    def test_variadic_min_max(self):
        assert compile_field("max(x, y, 3)")(1.0, 2.0) == 3.0
        assert compile_field("min(x, y, 3)")(1.0, 2.0) == 1.0
        assert compile_field("hypot(3, 4)")(0, 0) == 5.0

    def test_hypot_of_single_argument_is_magnitude(self):
        assert compile_field("hypot(-3)")(0, 0) == 3.0
        assert compile_field("hypot(x)")(-2.5, 0.0) == 2.5

    def test_two_argument_functions(self):
        assert compile_field("pow(x, 3)")(2.0, 0.0) == 8.0
        assert compile_field("atan2(1, 1)")(0, 0) == pytest.approx(math.pi / 4)

    def test_round_half_up(self):
        assert compile_field("round(2.5)")(0, 0) == 3.0
        assert compile_field("round(-2.5)")(0, 0) == -2.0


class TestInvalidPoints:
    """Points outside the analytic domain are nan, never exceptions."""

    def test_sqrt_of_negative(self):
        f = compile_field("sqrt(x)")
        assert math.isnan(f(-1.0, 0.0))
        assert f(4.0, 0.0) == 2.0

    def test_division_by_zero(self):
        assert math.isnan(compile_field("1/x")(0.0, 0.0))

    def test_overflow_is_invalid(self):
        assert math.isnan(compile_field("exp(x)")(1000.0, 0.0))

    def test_invalid_only_where_undefined(self):
        values = compile_field("log(x)")(np.array([-1.0, 0.0, 1.0]), 0.0)
        assert math.isnan(values[0])
        assert math.isnan(values[1])
        assert values[2] == 0.0


class TestCompileFailure:
    """Malformed formulas yield always-invalid fields."""

    @pytest.mark.parametrize(
        "text",
        [
            "(x + 1",
            "x + 1)",
            "x +",
            "2x",
            "foo(x)",
            "sin",
            "sin(x, y)",
            "atan2(1)",
            "min()",
            "__import__('os')",
            "x.real",
            "X + y",
        ],
    )
    def test_malformed_formula(self, text):
        f = compile_field(text)
        assert not f.ok
        assert f.error
        assert f.canonical is None
        assert math.isnan(f(0.0, 0.0, 0.0))
        assert np.all(np.isnan(f(np.arange(5.0), np.arange(5.0))))

    def test_recompiling_after_fix(self):
        """A failure never poisons later compilations."""
        assert not compile_field("sin(x").ok
        assert compile_field("sin(x)")(0.0, 0.0) == 0.0

    def test_deep_nesting_is_invalid(self):
        f = compile_field("(" * 5000 + "x" + ")" * 5000)

        assert not f.ok
        assert "nested" in f.error
        assert math.isnan(f(1.0, 0.0))

    def test_long_sum_is_invalid(self):
        f = compile_field("+".join(["x"] * 5000))

        assert not f.ok
        assert f.error
        assert math.isnan(f(1.0, 0.0))

    def test_moderate_nesting_compiles(self):
        assert compile_field("(" * 50 + "x" + ")" * 50)(2.0, 0.0) == 2.0
        assert compile_field("-" * 50 + "x")(2.0, 0.0) == 2.0
        assert compile_field("+".join(["x"] * 100))(1.0, 0.0) == 100.0

    def test_unsupported_arity(self):
        with pytest.raises(ValueError):
            compile_field("x", arity=1)


class TestCanonical:
    """Tests for canonical preview text."""

    def test_aliases_resolved(self):
        assert compile_field("sen(x)^2 + LN(y)").canonical == "sin(x)^2 + log(y)"

    def test_power_operator_normalized(self):
        assert compile_field("x**2").canonical == "x^2"

    @pytest.mark.parametrize(
        "text",
        ["-(x + y)^2", "(-x)^2", "x - (y - t)", "x / (y * t)", "2^3^2", "pi*sin(x)/cos(y)"],
    )
    def test_canonical_reparses_to_same_tree(self, text):
        f = compile_field(text)
        assert compile_field(f.canonical).tree == f.tree


class TestOptionalField:
    """Tests for compile_optional_field."""

    def test_blank_is_none(self):
        assert compile_optional_field("") is None
        assert compile_optional_field("  ") is None
        assert compile_optional_field(None) is None

    def test_present_is_two_argument_field(self):
        g = compile_optional_field("x^2 + y^2 - 1")
        assert g.arity == 2
        assert g(1.0, 0.0) == 0.0


def test_evaluate_formula():
    assert evaluate_formula("x*y + t", 2.0, 3.0, 1.0) == 7.0
