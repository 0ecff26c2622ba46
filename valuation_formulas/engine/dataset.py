'''
Datasets: named series sharing one ordered date domain.

A Dataset is an immutable snapshot. set_formula() binds formulas to it and
compute() returns a new Dataset; the source is never modified, which allows
the historical -> forecast pipelines used by the valuation models:

  original = new_dataset({'eps': new_series(income, 'eps'), ...})
  historical = original.set_formula({...}).compute(on_missing='skip')
  forecast = historical.set_formula({...}).compute(forecast_years=5)
'''

import logging
from typing import (Any, Dict, Iterable, Iterator, List, Mapping, Optional,
                    Sequence, Tuple)

import pandas as pd

from valuation_formulas.engine.compiler import compile_formulas
from valuation_formulas.engine.compiler import Plan
from valuation_formulas.engine.dates import LTM
from valuation_formulas.engine.dates import DateKey
from valuation_formulas.engine.dates import is_year
from valuation_formulas.engine.dates import order_dates
from valuation_formulas.engine.dates import parse_date
from valuation_formulas.engine.dates import sort_key
from valuation_formulas.engine.errors import EmptySeriesError
from valuation_formulas.engine.evaluator import ComputeOptions
from valuation_formulas.engine.evaluator import EditableConfig
from valuation_formulas.engine.evaluator import evaluate_plan
from valuation_formulas.engine.series import Series

logger = logging.getLogger(__name__)


class Dataset:
  '''
  Immutable mapping of field name to Series over a shared date domain.

  Series may have gaps: a date of the domain at which a field has no value.
  '''

  def __init__(
      self,
      series: Mapping[str, Series],
      dates: Optional[Iterable[DateKey]] = None,
      ltm_after: Optional[int] = None,
  ):
    if ltm_after is None:
      anchors = [
          s.ltm_after
          for s in series.values()
          if LTM in s and s.ltm_after is not None
      ]
      ltm_after = max(anchors) if anchors else None

    all_dates: List[DateKey] = list(dates) if dates is not None else []
    for s in series.values():
      all_dates.extend(s.dates)

    self.ltm_after = ltm_after
    self._dates = order_dates(all_dates, ltm_after)
    self._series: Dict[str, Series] = {
        name: Series(s.to_dict(), name=name, ltm_after=ltm_after)
        for name, s in series.items()
    }

  @property
  def dates(self) -> Tuple[DateKey, ...]:
    return self._dates

  @property
  def fields(self) -> List[str]:
    return list(self._series)

  def __contains__(self, name: str) -> bool:
    return name in self._series

  def __iter__(self) -> Iterator[str]:
    return iter(self._series)

  def __len__(self) -> int:
    return len(self._series)

  def __eq__(self, other) -> bool:
    if not isinstance(other, Dataset):
      return NotImplemented
    return (self._dates == other._dates and
            self.ltm_after == other.ltm_after and
            self._series == other._series)

  def __repr__(self) -> str:
    return f'Dataset(fields={self.fields}, dates={list(self._dates)})'

  def get(self, name: str) -> Series:
    '''
    Series for a field.

    Raises:
      KeyError: If the field does not exist
    '''
    try:
      return self._series[name]
    except KeyError as e:
      raise KeyError(f"Unknown field: '{name}'. "
                     f'Available: {self.fields}') from e

  def first_date(self) -> DateKey:
    if not self._dates:
      raise EmptySeriesError('Dataset has no dates')
    return self._dates[0]

  def last_date(self) -> int:
    '''Last yearly date of the domain (LTM excluded).'''
    years = [d for d in self._dates if is_year(d)]
    if not years:
      raise EmptySeriesError('Dataset has no yearly dates')
    return years[-1]

  def remove_date(self, date) -> 'Dataset':
    '''New Dataset without the given date, e.g. remove_date('LTM').'''
    key = parse_date(date)
    return Dataset(
        {name: s.remove_date(key) for name, s in self._series.items()},
        dates=[d for d in self._dates if d != key],
        ltm_after=self.ltm_after,
    )

  def set_formula(self, formulas: Mapping[str, Any]) -> 'FormulaBoundDataset':
    '''
    Bind field formulas to this dataset.

    Raises:
      FormulaSyntaxError: If a formula cannot be parsed
      CyclicFormulaError: If same-date references form a cycle
    '''
    return FormulaBoundDataset(self, compile_formulas(formulas))

  def to_frame(
      self,
      keys: Optional[Sequence[str]] = None,
      start_date: Optional[DateKey] = None,
  ) -> pd.DataFrame:
    '''
    Fields as rows and dates as columns, in date order.

    Args:
      keys: Fields to include (default: all)
      start_date: First date to include (default: all)

    Returns:
      DataFrame with NaN where a field has no value
    '''
    keys = list(keys) if keys is not None else self.fields
    dates = list(self._dates)
    if start_date is not None:
      lower = sort_key(parse_date(start_date), self.ltm_after)
      dates = [d for d in dates if sort_key(d, self.ltm_after) >= lower]

    rows = [[self.get(k).get(d, float('nan')) for d in dates] for k in keys]
    return pd.DataFrame(rows,
                        index=pd.Index(keys, name='field'),
                        columns=pd.Index(dates, dtype=object, name='date'),
                        dtype=float)


class FormulaBoundDataset:
  '''
  Dataset with a compiled plan, ready to compute.

  Editable configuration and overrides are held here; every setter returns
  a new object.
  '''

  def __init__(
      self,
      dataset: Dataset,
      plan: Plan,
      editable: Optional[EditableConfig] = None,
  ):
    self.dataset = dataset
    self.plan = plan
    self.editable = editable or EditableConfig()

  def set_editable(
      self,
      editable: bool,
      start_date: Optional[DateKey] = None,
      keys: Sequence[str] = (),
      overrides: Optional[Mapping[str, Mapping[Any, float]]] = None,
  ) -> 'FormulaBoundDataset':
    '''
    Mark fields as user-overridable from start_date onward.

    Args:
      editable: Whether overrides are honored
      start_date: First date accepting overrides
      keys: Editable fields
      overrides: Optional field -> {date: value} overrides

    Returns:
      New FormulaBoundDataset
    '''
    config = EditableConfig(
        editable=editable,
        start_date=parse_date(start_date) if start_date is not None else None,
        keys=tuple(keys),
    )
    bound = FormulaBoundDataset(self.dataset, self.plan, config)
    if overrides:
      bound = bound.with_overrides(overrides)
    return bound

  def with_overrides(
      self,
      overrides: Mapping[str, Mapping[Any, float]],
  ) -> 'FormulaBoundDataset':
    '''
    Add override values for editable fields.

    Raises:
      ValueError: If a field is not editable or a date precedes start_date
    '''
    config = self.editable
    merged: Dict[str, Dict[DateKey, float]] = {
        name: dict(cells) for name, cells in config.overrides.items()
    }
    for name, cells in overrides.items():
      if name not in config.keys:
        raise ValueError(f"Field '{name}' is not editable. "
                         f'Editable: {list(config.keys)}')
      for date, value in cells.items():
        key = parse_date(date)
        if (config.start_date is not None and
            sort_key(key, self.dataset.ltm_after) <
            sort_key(config.start_date, self.dataset.ltm_after)):
          raise ValueError(f"Override for '{name}' at {key} precedes the "
                           f'editable start date {config.start_date}')
        merged.setdefault(name, {})[key] = float(value)

    if not config.editable and merged:
      logger.debug('Overrides ignored: editing is disabled')

    new_config = EditableConfig(editable=config.editable,
                                start_date=config.start_date,
                                keys=config.keys,
                                overrides=merged)
    return FormulaBoundDataset(self.dataset, self.plan, new_config)

  def compute(self,
              options: Optional[ComputeOptions] = None,
              **kwargs) -> Dataset:
    '''
    Evaluate the plan and return a new Dataset.

    Args:
      options: ComputeOptions; alternatively pass its fields as keywords,
        e.g. compute(forecast_years=5)

    Returns:
      Dataset covering the source dates plus any forecast extension

    Raises:
      UnresolvedReferenceError: If a required reference has no value
    '''
    if options is None:
      options = ComputeOptions(**kwargs)
    elif kwargs:
      raise TypeError('Pass either options or keyword arguments, not both')

    base = {name: self.dataset.get(name).to_dict() for name in self.dataset}
    dates, values = evaluate_plan(base, self.dataset.dates,
                                  self.dataset.ltm_after, self.plan, options,
                                  self.editable)
    return Dataset(
        {name: Series(v, name=name, ltm_after=self.dataset.ltm_after)
         for name, v in values.items()},
        dates=dates,
        ltm_after=self.dataset.ltm_after,
    )


def new_dataset(series: Mapping[str, Series]) -> Dataset:
  '''Build a Dataset from a mapping of field name to Series.'''
  return Dataset(series)
