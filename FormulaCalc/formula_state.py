# formula_state.py
"""""
Immutable snapshot of what the user has entered: the formula text and one
numeric value per identifier in it.

Every edit produces a new FormulaState; an existing one never changes, so the
UI can swap snapshots in one assignment and never observe a partial update.
"""""

import math
from types import MappingProxyType

from . import MathEngine as MathEngine
from . import RenderEngine as RenderEngine


def parse_variable_input(text):
    """Parse what the user typed into a variable field; empty or invalid input is 0."""
    try:
        value = float(str(text).strip())
    except ValueError:
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return value


class FormulaState:

    def __init__(self, formula="", variables=None):
        self._formula = formula
        if variables is None:
            variables = {name: 0.0 for name in MathEngine.extract_identifiers(formula)}
        self._variables = MappingProxyType(dict(variables))

    @property
    def formula(self):
        return self._formula

    @property
    def variables(self):
        """Read-only name -> value mapping, ordered like the identifiers in the formula."""
        return self._variables

    def with_formula(self, formula):
        """New state for edited formula text.

        Identifiers still present keep their values, new ones start at 0 and
        identifiers that disappeared are dropped.
        """
        variables = {}
        for name in MathEngine.extract_identifiers(formula):
            variables[name] = self._variables.get(name, 0.0)
        return FormulaState(formula, variables)

    def with_variable(self, name, text):
        """New state with one variable set from user text; unknown names are ignored."""
        if name not in self._variables:
            return self
        variables = dict(self._variables)
        variables[name] = parse_variable_input(text)
        return FormulaState(self._formula, variables)

    def reset(self):
        return FormulaState()

    def identifiers_changed(self, other):
        return list(self._variables) != list(other.variables)

    def result(self):
        """Float, EmptyFormula or MathError for the current formula and values."""
        return MathEngine.evaluate(self._formula, self._variables)

    def rendered(self, markup="html"):
        return RenderEngine.render(self._formula, markup)

    def __eq__(self, other):
        if not isinstance(other, FormulaState):
            return NotImplemented
        return self._formula == other.formula and dict(self._variables) == dict(other.variables)

    def __hash__(self):
        return hash((self._formula, tuple(self._variables.items())))

    def __repr__(self):
        return f"FormulaState({self._formula!r}, {dict(self._variables)!r})"
