# error.py
"""""
Error taxonomy for the Formula Calculator.

Every failure of one evaluation pass is a MathError carrying a four digit code.
The UI only shows "Error"; code, message and equation are kept for diagnostics.
"""""


class MathError(Exception):
    def __init__(self, message, code="9999", equation=None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.equation = equation

    def __repr__(self):
        return f"{type(self).__name__}({self.message!r}, code={self.code!r})"


class MalformedExpression(MathError):
    pass


class UndefinedVariable(MathError):
    def __init__(self, name, code="3100", equation=None):
        super().__init__(f'Variable "{name}" is not defined.', code=code, equation=equation)
        self.name = name


class CalculationError(MathError):
    pass


class DivisionByZero(CalculationError):
    pass


class NonFiniteResult(CalculationError):
    pass


class EmptyFormula:
    """Returned instead of a number when no formula was entered. Not an error."""

    message = "Please enter a formula above"

    def __eq__(self, other):
        return isinstance(other, EmptyFormula)

    def __hash__(self):
        return hash(EmptyFormula)

    def __repr__(self):
        return "EmptyFormula()"


# Error Messages are structured in:
# 1. Digit: Main Error
# 2. Digit: Specification
# 3. and 4. Digit: Error Number


ERROR_MESSAGES = {
    "3000": "Unexpected character: ",  # + character
    "3001": "More than one '.' in one number.",
    "3002": "Missing ')'.",
    "3003": "Missing '('.",
    "3004": "Unexpected token: ",  # + token
    "3005": "Missing operand.",
    "3006": "Exponent must be a non-negative integer.",
    "3007": "Only identifiers and parenthesized groups can be raised to a power.",
    "3008": "Invalid operator: ",  # + operator

    "3100": "Undefined variable: ",  # + name

    "3200": "Division by Zero",
    "3201": "Result is not a finite number.",
    "3202": "Number too big.",

    "5001": "Settings could not be saved.",

    "9999": "Unexpected Error: "  # + error
}
