"""
Built-in functions usable in ['function:name', field, options] formulas.

Each function is a small class in the style of a policy: it normalizes its
options once at parse time, reports which references it needs at the date
under evaluation (for dependency ordering), and evaluates one date at a time
against an evaluation context.

The context passed to evaluate() provides:
  value(ref, date): value of a Reference relative to date
  value_at(field, date): value of a field at an absolute date
  option(value, date): number, or Reference resolved at date
  year(date): calendar year of a date key
  dates_before(start, date): domain dates from start up to (excluding) date
  baseline_date: anchor date for start_date references

To add a function:
1. Subclass BuiltinFunction and implement evaluate()
2. Register an instance in FUNCTION_REGISTRY
"""

from abc import ABC
from abc import abstractmethod
import math
from typing import Any, Dict, List, Mapping, Sequence, Tuple

import numpy as np

from valuation_formulas.engine.dates import parse_date
from valuation_formulas.engine.errors import EmptySeriesError
from valuation_formulas.engine.errors import FormulaSyntaxError
from valuation_formulas.engine.formula import FunctionCall
from valuation_formulas.engine.formula import Reference


def compound_value(base: float, rate: float, periods: int) -> float:
  '''Grow base at rate for a number of periods.'''
  return base * (1.0 + rate)**periods


def discount_value(value: float, rate: float, periods: int) -> float:
  '''Present value of value received after a number of periods.'''
  return value / ((1.0 + rate)**periods)


def fit_line(xs: Sequence[float],
             ys: Sequence[float]) -> Tuple[float, float, float]:
  """
  Ordinary least squares fit on x values centred at their mean.

  Args:
    xs: Independent values (years)
    ys: Dependent values

  Returns:
    Tuple of (intercept, slope, x_center). The intercept is the fitted value
    at x_center, i.e. the mean of ys.

  Raises:
    EmptySeriesError: If there are no points
  """
  if len(xs) != len(ys):
    raise ValueError('xs and ys must have the same length')
  if not xs:
    raise EmptySeriesError('Cannot fit a line through zero points')

  x = np.asarray(xs, dtype=float)
  y = np.asarray(ys, dtype=float)
  x_center = float(x.mean())

  if len(x) == 1:
    return float(y[0]), 0.0, x_center

  slope, intercept = np.polyfit(x - x_center, y, 1)
  return float(intercept), float(slope), x_center


class BuiltinFunction(ABC):
  '''
  Base class for formula functions.

  Subclasses declare the options they accept and implement evaluate().
  '''

  name: str = ''
  required_options: Tuple[str, ...] = ()
  # Options that may name a field, resolved per date.
  reference_options: Tuple[str, ...] = ()
  defaults: Dict[str, Any] = {}

  def normalize_options(self, options: Mapping[str, Any]) -> Dict[str, Any]:
    '''
    Validate options and convert field names and dates once.

    Raises:
      FormulaSyntaxError: On unknown or missing options
    '''
    allowed = set(self.required_options) | set(self.reference_options) | set(
        self.defaults) | {'start_date'}
    unknown = sorted(set(options) - allowed)
    if unknown:
      raise FormulaSyntaxError(
          f"Unknown options for '{self.name}': {unknown}. "
          f'Available: {sorted(allowed)}')

    missing = [k for k in self.required_options if k not in options]
    if missing:
      raise FormulaSyntaxError(
          f"Missing options for '{self.name}': {missing}")

    normalized: Dict[str, Any] = dict(self.defaults)
    for key, value in options.items():
      if key == 'start_date':
        try:
          normalized[key] = parse_date(value)
        except ValueError as e:
          raise FormulaSyntaxError(str(e)) from e
      elif key in self.reference_options and isinstance(value, str):
        normalized[key] = Reference.parse(value)
      elif isinstance(value, bool) or not isinstance(value, (int, float)):
        raise FormulaSyntaxError(
            f"Option '{key}' of '{self.name}' must be a number"
            f'{" or a field name" if key in self.reference_options else ""}'
            f', got {value!r}')
      else:
        normalized[key] = float(value)
    return normalized

  def same_date_references(self, call: FunctionCall) -> List[Reference]:
    '''References that must be computed at the same date first.'''
    return [
        ref for ref in call.options.values()
        if isinstance(ref, Reference) and ref.is_same_date
    ]

  @abstractmethod
  def evaluate(self, ctx, call: FunctionCall, date) -> float:
    '''
    Evaluate the function at one date.

    Args:
      ctx: Evaluation context (see module docstring)
      call: Parsed function call
      date: Date under evaluation

    Returns:
      Computed value
    '''


class GrowthRate(BuiltinFunction):
  '''
  Period-over-period growth: (v(d) - v(d-1)) / v(d-1).

  Returns NaN when the previous value is zero.
  '''

  name = 'growth_rate'

  def same_date_references(self, call: FunctionCall) -> List[Reference]:
    refs = super().same_date_references(call)
    if call.argument.is_same_date:
      refs.append(call.argument)
    return refs

  def evaluate(self, ctx, call: FunctionCall, date) -> float:
    arg = call.argument
    current = ctx.value(arg, date)
    previous = ctx.value(
        Reference(arg.field, arg.offset - 1, arg.anchor), date)
    if previous == 0:
      return float('nan')
    return (current - previous) / previous


class LinearRegression(BuiltinFunction):
  '''
  Linear trend of a field projected to the evaluation date.

  The line is fitted to the field's values from start_date up to the date
  before the evaluation date. The fitted slope is multiplied by the `slope`
  option: 1 keeps the fit, 0 projects flat at the intercept, negative values
  invert the trend.
  '''

  name = 'linear_regression'
  reference_options = ('slope',)
  defaults = {'slope': 1.0}

  def evaluate(self, ctx, call: FunctionCall, date) -> float:
    start = call.options.get('start_date')
    xs: List[float] = []
    ys: List[float] = []
    for d in ctx.dates_before(start, date):
      value = ctx.value_at(call.argument.field, d, required=False)
      if value is None or math.isnan(value):
        continue
      xs.append(ctx.year(d))
      ys.append(value)

    if not xs:
      raise EmptySeriesError(
          f"No values of '{call.argument.field}' to regress before {date}")

    intercept, slope, x_center = fit_line(xs, ys)
    multiplier = ctx.option(call.options['slope'], date)
    return intercept + multiplier * slope * (ctx.year(date) - x_center)


class Compound(BuiltinFunction):
  '''
  Compound growth from the anchor date: v(start) * (1 + rate)^(t - start).

  start_date defaults to the baseline date of the computation.
  '''

  name = 'compound'
  required_options = ('rate',)
  reference_options = ('rate',)

  def evaluate(self, ctx, call: FunctionCall, date) -> float:
    anchor = call.options.get('start_date', ctx.baseline_date)
    base = ctx.value_at(call.argument.field, anchor)
    rate = ctx.option(call.options['rate'], date)
    return compound_value(base, rate, ctx.year(date) - ctx.year(anchor))


class Discount(BuiltinFunction):
  '''
  Discount the field's value back to the anchor date:
  v(t) / (1 + rate)^(t - start).

  rate may name a field, in which case the rate at t is used.
  '''

  name = 'discount'
  required_options = ('rate',)
  reference_options = ('rate',)

  def same_date_references(self, call: FunctionCall) -> List[Reference]:
    refs = super().same_date_references(call)
    if call.argument.is_same_date:
      refs.append(call.argument)
    return refs

  def evaluate(self, ctx, call: FunctionCall, date) -> float:
    anchor = call.options.get('start_date', ctx.baseline_date)
    value = ctx.value(call.argument, date)
    rate = ctx.option(call.options['rate'], date)
    return discount_value(value, rate, ctx.year(date) - ctx.year(anchor))


FUNCTION_REGISTRY: Dict[str, BuiltinFunction] = {
    fn.name: fn
    for fn in (GrowthRate(), LinearRegression(), Compound(), Discount())
}


def get_function(name: str) -> BuiltinFunction:
  '''
  Look up a built-in function by name.

  Raises:
    KeyError: If the function is not registered
  '''
  try:
    return FUNCTION_REGISTRY[name]
  except KeyError as e:
    raise KeyError(f"Unknown function: '{name}'. "
                   f'Available: {list(FUNCTION_REGISTRY.keys())}') from e
