# MathEngine.py
"""""
Core calculation engine for the Formula Calculator.

Pipeline
--------
1) Tokenizer: converts a raw formula into a flat list of tokens.
2) Parser (AST): builds the expression tree (recursive-descent, precedence aware).
   Caret exponents and implicit multiplication ("2a", "ab") are resolved here,
   so their order is fixed by grammar levels instead of by rewrite order.
3) Evaluator: substitutes the variable bindings and computes a float.
   Division by zero and non-finite values are classified as errors.
4) Formatter: renders results using Decimal/Fraction and user preferences.

Nothing in here evaluates Python code; the formula is only ever interpreted.
"""""

import math
import re
import fractions
from decimal import Decimal, localcontext

from . import error as E

# Token kinds
NUMBER = "number"
IDENT = "ident"
OP = "op"
CARET = "^"
LPAREN = "("
RPAREN = ")"
OTHER = "other"

# Supported operators (kept as a simple list for quick membership checks)
Operations = ["+", "-", "*", "/"]

IDENTIFIER_PATTERN = re.compile(r"[a-zA-Z_]\w*", re.ASCII)
NUMBER_PATTERN = re.compile(r"\d+(?:\.\d*)?|\.\d+", re.ASCII)


# Debug toggle for optional prints in this module (set by the UI from the 'debug' setting)
debug = False


# -----------------------------
# Tokenizer
# -----------------------------

class Token:
    """One lexical unit of a formula, with its position in the source text."""

    def __init__(self, kind, text, start):
        self.kind = kind
        self.text = text
        self.start = start
        self.end = start + len(text)

    def __repr__(self):
        return f"Token({self.kind!r}, {self.text!r})"


def tokenize(formula, strict=True):
    """Convert a raw formula into a token list.

    Whitespace is skipped. In strict mode an unknown character or a number with
    two decimal points raises MalformedExpression; with strict=False unknown
    characters become OTHER tokens, so callers like the renderer never fail.
    """
    tokens = []
    b = 0

    while b < len(formula):
        current_char = formula[b]

        # --- Whitespace (ignored) ---
        if current_char.isspace():
            b += 1
            continue

        number_match = NUMBER_PATTERN.match(formula, b)
        identifier_match = IDENTIFIER_PATTERN.match(formula, b)

        # --- Numbers: digits and decimal separator ---
        if number_match:
            if strict and formula.startswith(".", number_match.end()):
                raise E.MalformedExpression(f"More than one '.' in number at position {b}.", code="3001")
            tokens.append(Token(NUMBER, number_match.group(), b))

        # --- Identifiers, including subscripted ones like x_1 ---
        elif identifier_match:
            tokens.append(Token(IDENT, identifier_match.group(), b))

        # --- Operators and brackets ---
        elif current_char in Operations:
            tokens.append(Token(OP, current_char, b))
        elif current_char in (CARET, LPAREN, RPAREN):
            tokens.append(Token(current_char, current_char, b))

        elif strict:
            raise E.MalformedExpression(f"Unexpected character: '{current_char}'", code="3000")
        else:
            tokens.append(Token(OTHER, current_char, b))

        b = tokens[-1].end

    return tokens


def extract_identifiers(formula):
    """Return the distinct identifiers of a formula in first-appearance order.

    "c + c" gives ["c"]; "x_1 * y_1" gives ["x_1", "y_1"] (subscripts stay attached).
    """
    names = [token.text for token in tokenize(formula, strict=False) if token.kind == IDENT]
    return list(dict.fromkeys(names))


# -----------------------------
# AST node types
# -----------------------------

def check_finite(value):
    if not math.isfinite(value):
        raise E.NonFiniteResult(f"Result is not a finite number: {value}", code="3201")
    return value


class Expression:
    """Base class of all tree nodes. Trees are never modified after parsing."""

    def evaluate(self, bindings):
        raise NotImplementedError


class Literal(Expression):
    """Numeric literal."""

    def __init__(self, value):
        self.value = float(value)

    def evaluate(self, bindings):
        return check_finite(self.value)

    def __repr__(self):
        return f"Literal({self.value!r})"


class Variable(Expression):
    """Reference to a bound variable, e.g. 'a' or 'x_1'."""

    def __init__(self, name):
        self.name = name

    def factor_values(self, bindings):
        """Values this name stands for, in source order.

        A bound name gives one value. An unbound name that is a run of bound
        names ("ab" with a and b bound) is implicit multiplication and gives
        one value per part. Anything else is an UndefinedVariable.
        """
        if self.name in bindings:
            parts = [self.name]
        else:
            parts = split_identifier(self.name, bindings)
            if parts is None:
                raise E.UndefinedVariable(self.name)
        return [check_finite(float(bindings[part])) for part in parts]

    def evaluate(self, bindings):
        product = 1.0
        for value in self.factor_values(bindings):
            product *= value
        return check_finite(product)

    def __repr__(self):
        return f"Variable({self.name!r})"


class BinOp(Expression):
    """AST node for a binary operation: left <operator> right."""

    def __init__(self, left, operator, right):
        self.left = left
        self.operator = operator
        self.right = right

    def evaluate(self, bindings):
        """Evaluate both operands (the first failure propagates) and apply the operator."""
        left_value = self.left.evaluate(bindings)
        right_value = self.right.evaluate(bindings)

        if self.operator == '+':
            result = left_value + right_value
        elif self.operator == '-':
            result = left_value - right_value
        elif self.operator == '*':
            result = left_value * right_value
        elif self.operator == '/':
            if right_value == 0:
                raise E.DivisionByZero("Division by zero", code="3200")
            result = left_value / right_value
        else:
            raise E.MalformedExpression(f"Unknown operator: {self.operator}", code="3008")
        return check_finite(result)

    def __repr__(self):
        return f"BinOp({self.operator!r}, left={self.left}, right={self.right})"


class Power(Expression):
    """base ^ exponent, with base a Variable or Group and exponent a non-negative int."""

    def __init__(self, base, exponent):
        self.base = base
        self.exponent = exponent

    def evaluate(self, bindings):
        coefficient = 1.0
        if isinstance(self.base, Variable):
            # "ab^2" is a * b^2: the exponent binds tighter than implicit multiplication
            values = self.base.factor_values(bindings)
            for value in values[:-1]:
                coefficient *= value
            base_value = values[-1]
        else:
            base_value = self.base.evaluate(bindings)

        try:
            result = coefficient * base_value ** self.exponent
        except OverflowError:
            raise E.NonFiniteResult("Number too big.", code="3202")
        return check_finite(result)

    def __repr__(self):
        return f"Power(base={self.base}, exponent={self.exponent})"


class Group(Expression):
    """Parenthesized sub-expression."""

    def __init__(self, inner):
        self.inner = inner

    def evaluate(self, bindings):
        return self.inner.evaluate(bindings)

    def __repr__(self):
        return f"Group({self.inner})"


def split_identifier(name, bindings):
    """Split name into consecutive bound names, longest first; None if impossible.

    next_cut[i] is the end of the longest bound name starting at i whose
    remainder can be split too, filled from the end so each suffix is checked once.
    """
    next_cut = [None] * (len(name) + 1)
    next_cut[len(name)] = len(name)
    for start in range(len(name) - 1, -1, -1):
        for cut in range(len(name), start, -1):
            if next_cut[cut] is not None and name[start:cut] in bindings:
                next_cut[start] = cut
                break

    if next_cut[0] is None:
        return None
    parts = []
    start = 0
    while start < len(name):
        parts.append(name[start:next_cut[start]])
        start = next_cut[start]
    return parts


# -----------------------------
# Parser (recursive descent)
# -----------------------------

def parse(formula):
    """Parse a formula into an expression tree.

    Implements precedence via nested functions: factor → power → unary → term → sum.
    Implicit multiplication lives on the term level and only joins a number to an
    identifier written right after it ("2a"), so "1/2a" reads as (1/2)*a.
    Any other adjacency ("a b", "2(a)", "(a)(b)") is an unexpected token.
    Raises MalformedExpression for anything outside the grammar.
    """
    tokens = tokenize(formula)

    # A number immediately followed by an identifier ("2a") is the only implicit multiplication
    implicit_starts = set()
    for previous, token in zip(tokens, tokens[1:]):
        if previous.kind == NUMBER and token.kind == IDENT and token.start == previous.end:
            implicit_starts.add(token.start)

    def peek():
        return tokens[0] if tokens else None

    def parse_factor():
        """Numbers, variables and sub-expressions in '()'."""
        if not tokens:
            raise E.MalformedExpression("Missing operand.", code="3005")
        token = tokens.pop(0)

        if token.kind == LPAREN:
            inner = parse_sum()
            if not tokens or tokens[0].kind != RPAREN:
                raise E.MalformedExpression("Missing closing parenthesis ')'", code="3002")
            tokens.pop(0)
            return Group(inner)
        elif token.kind == NUMBER:
            return Literal(token.text)
        elif token.kind == IDENT:
            return Variable(token.text)
        elif token.kind == RPAREN:
            raise E.MalformedExpression("Missing operand.", code="3005")
        else:
            raise E.MalformedExpression(f"Unexpected token: {token.text}", code="3004")

    def parse_power():
        """Exponentiation: identifier^n or (expr)^n, n a non-negative integer."""
        base = parse_factor()
        if peek() is None or peek().kind != CARET:
            return base
        tokens.pop(0)

        if not isinstance(base, (Variable, Group)):
            raise E.MalformedExpression("Only identifiers and groups can be raised to a power.", code="3007")
        exponent = peek()
        if exponent is None or exponent.kind != NUMBER or not exponent.text.isdigit():
            raise E.MalformedExpression("Exponent must be a non-negative integer.", code="3006")
        tokens.pop(0)

        if peek() is not None and peek().kind == CARET:
            raise E.MalformedExpression("Only identifiers and groups can be raised to a power.", code="3007")
        return Power(base, int(exponent.text))

    def parse_unary():
        """Handle leading '+'/'-' (unary minus becomes 0 - operand)."""
        token = peek()
        if token is not None and token.kind == OP and token.text in ('+', '-'):
            tokens.pop(0)
            operand = parse_unary()
            if token.text == '-':
                # Optimize for literal: -Literal → Literal(-value)
                if isinstance(operand, Literal):
                    return Literal(-operand.value)
                return BinOp(Literal(0), '-', operand)
            return operand
        return parse_power()

    def parse_term():
        """Multiplication and division, explicit or implicit."""
        current_tree = parse_unary()
        while tokens:
            token = tokens[0]
            if token.kind == OP and token.text in ('*', '/'):
                tokens.pop(0)
                right_part = parse_unary()
                current_tree = BinOp(current_tree, token.text, right_part)
            elif token.kind == IDENT and token.start in implicit_starts:
                right_part = parse_power()
                current_tree = BinOp(current_tree, '*', right_part)
            else:
                break
        return current_tree

    def parse_sum():
        """Addition and subtraction."""
        current_tree = parse_term()
        while tokens and tokens[0].kind == OP and tokens[0].text in ('+', '-'):
            operator = tokens.pop(0).text
            right_side = parse_term()
            current_tree = BinOp(current_tree, operator, right_side)
        return current_tree

    final_tree = parse_sum()

    if tokens:
        leftover = tokens[0]
        if leftover.kind == RPAREN:
            raise E.MalformedExpression("Missing opening parenthesis '('", code="3003")
        raise E.MalformedExpression(f"Unexpected token: {leftover.text}", code="3004")

    return final_tree


# -----------------------------
# Public entry points
# -----------------------------

def is_empty(formula):
    return formula is None or formula.strip() == ""


def calculate(formula, bindings):
    """Parse and evaluate formula with the given bindings.

    Returns a finite float, or EmptyFormula for blank input.
    Raises MathError subclasses with .equation set to the formula.
    """
    if is_empty(formula):
        return E.EmptyFormula()

    try:
        final_tree = parse(formula)
        if debug:
            print("Evaluating expression:", final_tree)

        result = final_tree.evaluate(bindings)
        if debug:
            print("Computed result:", result)
        return result

    # Known numeric overflow
    except OverflowError:
        raise E.NonFiniteResult("Number too large (Arithmetic overflow).", code="3202", equation=formula)
    # Re-raise our domain errors after attaching the source equation
    except E.MathError as e:
        e.equation = formula
        if debug:
            print(f"Calculation error {e.code}: {e.message}")
        raise e


def evaluate(formula, bindings):
    """Evaluate a formula without raising for domain failures.

    Returns a float, an EmptyFormula, or the MathError describing the failure.
    """
    try:
        return calculate(formula, bindings)
    except E.MathError as e:
        return e


def evaluate_expression(tree, bindings):
    """Evaluate an already parsed tree; same result contract as evaluate()."""
    try:
        return tree.evaluate(bindings)
    except E.MathError as e:
        return e
    except OverflowError:
        return E.NonFiniteResult("Number too large (Arithmetic overflow).", code="3202")


# -----------------------------
# Result formatting
# -----------------------------

def format_result(value, decimal_places, use_fractions=False):
    """Format a float as (text, rounding_flag).

    Integers are shown without decimals, other values are rounded to
    decimal_places. With use_fractions the value is shown as a (mixed) fraction.
    """
    rounding = False
    if value == 0:
        value = 0.0  # drop the sign of -0.0
    exact = Decimal(repr(value))

    if use_fractions:
        reduced = fractions.Fraction(exact).limit_denominator(100000)
        rounding = reduced != fractions.Fraction(exact)
        numerator = reduced.numerator
        denominator = reduced.denominator
        if denominator == 1:
            return str(numerator), rounding
        if abs(numerator) > denominator:
            # Mixed fraction form (e.g., 3/2 -> "1 1/2", -3/2 -> "-1 1/2")
            sign = "-" if numerator < 0 else ""
            whole, rest = divmod(abs(numerator), denominator)
            return f"{sign}{whole} {rest}/{denominator}", rounding
        return str(reduced), rounding

    if float(value).is_integer():
        # Integer result – return normalized without rounding
        return format(exact.normalize(), "f"), rounding

    # Non-integer floats are below 2**53, so this precision always suffices
    with localcontext() as context:
        context.prec = 64 + max(decimal_places, 0)
        pattern = Decimal(1).scaleb(-decimal_places) if decimal_places >= 0 else Decimal(1)
        rounded_value = exact.quantize(pattern)

    if rounded_value != exact:
        rounding = True
    text = format(rounded_value.normalize(), "f")
    if text in ("-0", "0"):
        text = "0"
    return text, rounding


def display_result(result, decimal_places=4, use_fractions=False):
    """Turn an evaluate() outcome into the text the UI shows."""
    if isinstance(result, E.EmptyFormula):
        return result.message
    if isinstance(result, E.MathError):
        return "Error"

    text, rounding = format_result(result, decimal_places, use_fractions)
    approx_sign = "\u2248"  # "≈"
    if rounding:
        return f"{approx_sign} {text}"
    return f"= {text}"
