'''
Date-indexed numeric series.

A Series is an immutable, chronologically ordered mapping from date key to
value. Every transformation returns a new Series.
'''

import logging
import math
from typing import (Any, Dict, Iterable, Iterator, List, Mapping, Optional,
                    Tuple)

import pandas as pd

from valuation_formulas.engine.dates import LTM
from valuation_formulas.engine.dates import DateKey
from valuation_formulas.engine.dates import is_year
from valuation_formulas.engine.dates import order_dates
from valuation_formulas.engine.dates import parse_date
from valuation_formulas.engine.dates import sort_key
from valuation_formulas.engine.errors import EmptySeriesError
from valuation_formulas.engine.errors import MissingDateError

logger = logging.getLogger(__name__)


def _default_ltm_after(dates: Iterable[DateKey]) -> Optional[int]:
  years = [d for d in dates if is_year(d)]
  return max(years) if years else None


class Series:
  '''
  Ordered mapping of date key to float.

  Attributes:
    name: Field name the series belongs to (optional)
    ltm_after: Year after which the LTM date sorts
  '''

  def __init__(
      self,
      values: Mapping[Any, float],
      name: Optional[str] = None,
      ltm_after: Optional[int] = None,
  ):
    normalized: Dict[DateKey, float] = {}
    for date, value in values.items():
      normalized[parse_date(date)] = float(value)

    if ltm_after is None and LTM in normalized:
      ltm_after = _default_ltm_after(normalized)

    self.name = name
    self.ltm_after = ltm_after
    self._dates = order_dates(normalized, ltm_after)
    self._values = normalized

  @property
  def dates(self) -> Tuple[DateKey, ...]:
    return self._dates

  @property
  def values(self) -> List[float]:
    return [self._values[d] for d in self._dates]

  def items(self) -> List[Tuple[DateKey, float]]:
    return [(d, self._values[d]) for d in self._dates]

  def to_dict(self) -> Dict[DateKey, float]:
    return dict(self.items())

  def __len__(self) -> int:
    return len(self._dates)

  def __iter__(self) -> Iterator[DateKey]:
    return iter(self._dates)

  def __contains__(self, date) -> bool:
    try:
      return parse_date(date) in self._values
    except ValueError:
      return False

  def __eq__(self, other) -> bool:
    if not isinstance(other, Series):
      return NotImplemented
    if self._dates != other._dates or self.ltm_after != other.ltm_after:
      return False
    for a, b in zip(self.values, other.values):
      if a != b and not (math.isnan(a) and math.isnan(b)):
        return False
    return True

  def __repr__(self) -> str:
    body = ', '.join(f'{d}: {v:g}' for d, v in self.items())
    return f'Series({self.name!r}, {{{body}}})'

  def first_date(self) -> DateKey:
    '''First date in chronological order.'''
    if not self._dates:
      raise EmptySeriesError(f"Series '{self.name}' is empty")
    return self._dates[0]

  def last_date(self) -> int:
    '''Last numeric year (LTM is not a year and is skipped).'''
    years = [d for d in self._dates if is_year(d)]
    if not years:
      raise EmptySeriesError(f"Series '{self.name}' has no yearly dates")
    return years[-1]

  def last_value(self) -> float:
    '''Value at the chronologically last date, LTM included.'''
    if not self._dates:
      raise EmptySeriesError(f"Series '{self.name}' is empty")
    return self._values[self._dates[-1]]

  def value_at_date(self, date) -> float:
    '''
    Value at a date.

    Raises:
      MissingDateError: If the series has no value at that date
    '''
    key = parse_date(date)
    try:
      return self._values[key]
    except KeyError:
      raise MissingDateError(key, self.name) from None

  def get(self, date, default: Optional[float] = None) -> Optional[float]:
    return self._values.get(parse_date(date), default)

  def sublist(self, start_date) -> 'Series':
    '''Series restricted to dates on or after start_date.'''
    start = sort_key(parse_date(start_date), self.ltm_after)
    kept = {
        d: self._values[d]
        for d in self._dates
        if sort_key(d, self.ltm_after) >= start
    }
    return Series(kept, name=self.name, ltm_after=self.ltm_after)

  def average(self) -> float:
    if not self._dates:
      raise EmptySeriesError(
          f"Cannot average empty series '{self.name}'")
    return self.sum() / len(self._dates)

  def sum(self) -> float:
    if not self._dates:
      raise EmptySeriesError(f"Cannot sum empty series '{self.name}'")
    return math.fsum(self._values.values())

  def remove_date(self, date) -> 'Series':
    '''Series without the given date (unchanged copy if absent).'''
    key = parse_date(date)
    kept = {d: v for d, v in self._values.items() if d != key}
    return Series(kept, name=self.name, ltm_after=self.ltm_after)

  def to_pandas(self) -> pd.Series:
    '''Convert to a pandas Series indexed by date key.'''
    return pd.Series(self.values,
                     index=pd.Index(list(self._dates), dtype=object),
                     name=self.name,
                     dtype=float)


def new_series(
    records: Iterable[Mapping[str, Any]],
    field_name: str,
    date_key: str = 'date',
) -> Series:
  '''
  Build a Series from per-period records.

  Records lacking the field (or holding None/NaN) are skipped.

  Args:
    records: Iterable of mappings, or a DataFrame with one row per period
    field_name: Record key to read values from
    date_key: Record key holding the period date

  Returns:
    Series named after field_name

  Raises:
    ValueError: If two records map to the same date
  '''
  if isinstance(records, pd.DataFrame):
    records = records.to_dict('records')

  values: Dict[DateKey, float] = {}
  skipped = 0
  for record in records:
    raw = record.get(field_name)
    if raw is None or (isinstance(raw, float) and math.isnan(raw)):
      skipped += 1
      continue
    date = parse_date(record[date_key])
    if date in values:
      raise ValueError(f"Duplicate date {date} for field '{field_name}'")
    values[date] = float(raw)

  if skipped:
    logger.debug('%s: skipped %d records without a value', field_name,
                 skipped)
  return Series(values, name=field_name)
