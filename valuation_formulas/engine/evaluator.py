'''
Per-date evaluation of a compiled Plan.

The evaluator works on plain mappings (field -> {date: value}) so it has no
knowledge of the Dataset container. It walks the dates to evaluate in
chronological order and, at each date, evaluates the plan's fields in plan
order. Negative offsets read values already present for earlier dates;
offset 0 reads values computed earlier at the same date.

Two modes:
  historical: no forecast option, every date of the domain is evaluated
  forecast: only the extension years after the forecast anchor are evaluated
'''

from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import field
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from valuation_formulas.engine.compiler import Plan
from valuation_formulas.engine.dates import DateKey
from valuation_formulas.engine.dates import is_year
from valuation_formulas.engine.dates import order_dates
from valuation_formulas.engine.dates import parse_date
from valuation_formulas.engine.dates import sort_key
from valuation_formulas.engine.dates import year_of
from valuation_formulas.engine.errors import EmptySeriesError
from valuation_formulas.engine.errors import UnresolvedReferenceError
from valuation_formulas.engine.formula import BinaryOp
from valuation_formulas.engine.formula import Constant
from valuation_formulas.engine.formula import Formula
from valuation_formulas.engine.formula import FunctionCall
from valuation_formulas.engine.formula import Reference
from valuation_formulas.engine.formula import RefFormula
from valuation_formulas.engine.functions import get_function

logger = logging.getLogger(__name__)

ON_MISSING_CHOICES = ('raise', 'skip')
PRECEDENCE_CHOICES = ('end_date', 'years', 'error')

Values = Dict[str, Dict[DateKey, float]]


@dataclass
class ComputeOptions:
  '''
  Options for one compute() call.

  Attributes:
    forecast_years: Number of years to extend after the forecast anchor
    forecast_end_date: Last year of the extension
    baseline_date: Anchor for 'field:start_date' references and default
      start of compounding/discounting; when given it is also the forecast
      anchor
    on_missing: 'raise' to fail on unresolved references, 'skip' to leave
      the field undefined at that date
    horizon_precedence: Which horizon wins when both forecast_years and
      forecast_end_date are given: 'end_date', 'years', or 'error'
  '''
  forecast_years: Optional[int] = None
  forecast_end_date: Optional[int] = None
  baseline_date: Optional[DateKey] = None
  on_missing: str = 'raise'
  horizon_precedence: str = 'end_date'

  def __post_init__(self):
    if self.on_missing not in ON_MISSING_CHOICES:
      raise ValueError(f"Unknown on_missing: '{self.on_missing}'. "
                       f'Available: {list(ON_MISSING_CHOICES)}')
    if self.horizon_precedence not in PRECEDENCE_CHOICES:
      raise ValueError(
          f"Unknown horizon_precedence: '{self.horizon_precedence}'. "
          f'Available: {list(PRECEDENCE_CHOICES)}')
    if self.forecast_years is not None and self.forecast_years < 0:
      raise ValueError(
          f'forecast_years must be >= 0, got {self.forecast_years}')
    if self.baseline_date is not None:
      self.baseline_date = parse_date(self.baseline_date)

  @property
  def is_forecast(self) -> bool:
    return self.forecast_years is not None or self.forecast_end_date is not None

  def horizon(self, anchor: int) -> List[int]:
    '''
    Years to add after the anchor year.

    Raises:
      ValueError: If both horizons are given under 'error' precedence, or the
        end date lies before the anchor
    '''
    years, end = self.forecast_years, self.forecast_end_date
    if years is not None and end is not None:
      if self.horizon_precedence == 'error':
        raise ValueError(
            'Both forecast_years and forecast_end_date given; pass only one')
      if self.horizon_precedence == 'years':
        end = None
      else:
        years = None

    if end is not None:
      end = int(end)
      if end < anchor:
        raise ValueError(
            f'forecast_end_date {end} is before the forecast anchor {anchor}')
      return list(range(anchor + 1, end + 1))
    if years is not None:
      return list(range(anchor + 1, anchor + int(years) + 1))
    return []

  def to_dict(self) -> Dict[str, Any]:
    return asdict(self)

  @classmethod
  def from_dict(cls, data: Mapping[str, Any]) -> 'ComputeOptions':
    return cls(**data)


@dataclass
class EditableConfig:
  '''
  Forecast cells that may be overridden by user input.

  Attributes:
    editable: Whether overrides are honored at all
    start_date: First date at which overrides apply (None: every date)
    keys: Fields that accept overrides
    overrides: field -> {date: value}
  '''
  editable: bool = False
  start_date: Optional[DateKey] = None
  keys: Tuple[str, ...] = ()
  overrides: Dict[str, Dict[DateKey, float]] = field(default_factory=dict)

  def override_for(self, name: str, date: DateKey) -> Optional[float]:
    if not self.editable:
      return None
    return self.overrides.get(name, {}).get(date)


class _Context:
  '''Evaluation context handed to formulas and built-in functions.'''

  def __init__(
      self,
      values: Values,
      domain: Sequence[DateKey],
      ltm_after: Optional[int],
      baseline_date: Optional[DateKey],
  ):
    self._values = values
    self._domain = tuple(domain)
    self._index = {d: i for i, d in enumerate(self._domain)}
    self._ltm_after = ltm_after
    self.baseline_date = baseline_date
    self.field = ''
    self.date: Optional[DateKey] = None

  def _unresolved(self, reference: str,
                  reason: str) -> UnresolvedReferenceError:
    return UnresolvedReferenceError(self.field, self.date, reference, reason)

  def _target_date(self, ref: Reference, date: DateKey) -> DateKey:
    if ref.anchor is not None:
      if self.baseline_date is None:
        raise self._unresolved(str(ref), 'no baseline date')
      return self.baseline_date
    position = self._index[date] + ref.offset
    if position < 0:
      raise self._unresolved(str(ref), 'no earlier date in the domain')
    return self._domain[position]

  def value(self, ref: Reference, date: DateKey) -> float:
    target = self._target_date(ref, date)
    value = self.value_at(ref.field, target, required=False)
    if value is None:
      reason = ('unknown field' if ref.field not in self._values else
                f'no value at {target}')
      raise self._unresolved(str(ref), reason)
    return value

  def value_at(self, name: str, date: DateKey,
               required: bool = True) -> Optional[float]:
    series = self._values.get(name)
    if series is None:
      if required:
        raise self._unresolved(name, 'unknown field')
      return None
    value = series.get(date)
    if value is None and required:
      raise self._unresolved(f'{name}@{date}', 'no value at that date')
    return value

  def option(self, value: Any, date: DateKey) -> float:
    if isinstance(value, Reference):
      return self.value(value, date)
    return float(value)

  def year(self, date: DateKey) -> int:
    return year_of(date, self._ltm_after)

  def dates_before(self, start: Optional[DateKey],
                   date: DateKey) -> List[DateKey]:
    earlier = self._domain[:self._index[date]]
    if start is None:
      return list(earlier)
    lower = sort_key(start, self._ltm_after)
    return [d for d in earlier if sort_key(d, self._ltm_after) >= lower]


def _apply(op: str, left: float, right: float) -> float:
  if op == '+':
    return left + right
  if op == '-':
    return left - right
  if op == '*':
    return left * right
  if right == 0:
    return float('nan')
  return left / right


def _evaluate(formula: Formula, ctx: _Context, date: DateKey) -> float:
  if isinstance(formula, Constant):
    return formula.value
  if isinstance(formula, RefFormula):
    return ctx.value(formula.ref, date)
  if isinstance(formula, BinaryOp):
    return _apply(formula.op, ctx.option(formula.left, date),
                  ctx.option(formula.right, date))
  if isinstance(formula, FunctionCall):
    return get_function(formula.name).evaluate(ctx, formula, date)
  raise TypeError(f'Unsupported formula: {formula!r}')


def forecast_anchor(base: Mapping[str, Mapping[DateKey, float]],
                    domain: Sequence[DateKey], plan: Plan) -> int:
  '''
  Year after which forecast years are added.

  The last year with data among the plan's fields already present in the
  source; the domain's last year if none of them exist yet.
  '''
  last_years = [
      max(d for d in base[name] if is_year(d))
      for name in plan.fields
      if name in base and any(is_year(d) for d in base[name])
  ]
  if last_years:
    return max(last_years)
  years = [d for d in domain if is_year(d)]
  if not years:
    raise ValueError('Cannot forecast a dataset without yearly dates')
  return max(years)


def evaluate_plan(
    base: Mapping[str, Mapping[DateKey, float]],
    domain: Sequence[DateKey],
    ltm_after: Optional[int],
    plan: Plan,
    options: ComputeOptions,
    editable: Optional[EditableConfig] = None,
) -> Tuple[Tuple[DateKey, ...], Values]:
  '''
  Evaluate a plan over a date domain.

  Args:
    base: Source values, field -> {date: value}; not modified
    domain: Chronologically ordered source dates
    ltm_after: Year after which LTM sorts
    plan: Compiled plan
    options: Compute options
    editable: Editable cells and their overrides

  Returns:
    Tuple of (dates, values) for the resulting dataset

  Raises:
    UnresolvedReferenceError: If a reference has no value and on_missing is
      'raise'
    EmptySeriesError: If a regression has no points and on_missing is 'raise'
  '''
  editable = editable or EditableConfig()
  values: Values = {name: dict(series) for name, series in base.items()}
  for name in plan.fields:
    values.setdefault(name, {})

  if options.is_forecast:
    anchor = options.baseline_date
    if anchor is None or not is_year(anchor):
      anchor = forecast_anchor(base, domain, plan)
    extension = options.horizon(anchor)
    dates = order_dates(list(domain) + extension, ltm_after)
    new_dates = set(extension)
    to_evaluate = [d for d in dates if d in new_dates]
    baseline = options.baseline_date or anchor
  else:
    dates = tuple(domain)
    to_evaluate = list(dates)
    years = [d for d in dates if is_year(d)]
    baseline = options.baseline_date or (years[-1] if years else None)

  logger.debug('Evaluating %d fields over %d dates (baseline %s)', len(plan),
               len(to_evaluate), baseline)

  ctx = _Context(values, dates, ltm_after, baseline)
  extra_keys = [k for k in editable.keys if k not in plan.fields]

  for date in to_evaluate:
    ctx.date = date
    for name in extra_keys:
      override = editable.override_for(name, date)
      if override is not None:
        values.setdefault(name, {})[date] = override

    for name, formula in plan:
      override = editable.override_for(name, date)
      if override is not None:
        values[name][date] = override
        continue

      ctx.field = name
      try:
        result = _evaluate(formula, ctx, date)
      except (UnresolvedReferenceError, EmptySeriesError) as e:
        if options.on_missing == 'raise':
          raise
        logger.debug('Skipping %s at %s: %s', name, date, e)
        continue

      values[name][date] = result

  return dates, values
