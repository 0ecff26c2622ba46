'''
Date keys used by series and datasets.

A date key is either a calendar year (int) or the LTM sentinel, the
trailing-twelve-month period placed right after the last full historical
year and before the first forecast year.
'''

import datetime
from numbers import Integral
from typing import Iterable, Optional, Tuple, Union

import pandas as pd

LTM = 'LTM'

DateKey = Union[int, str]

# Sort position used for LTM when no numeric year precedes it.
_NO_YEAR = -(10**9)


def parse_date(value) -> DateKey:
  '''
  Normalize a record date into a date key.

  Args:
    value: Year, 'LTM', 'YYYY' / 'YYYY-MM-DD' string, or timestamp

  Returns:
    Year as int, or LTM

  Raises:
    ValueError: If value cannot be interpreted as a date
  '''
  if isinstance(value, bool):
    raise ValueError(f'Invalid date: {value!r}')
  if isinstance(value, Integral):
    return int(value)
  if isinstance(value, (pd.Timestamp, datetime.date)):
    return int(value.year)
  if isinstance(value, str):
    text = value.strip()
    if text.upper() == LTM:
      return LTM
    if text.isdigit():
      return int(text)
    try:
      return int(pd.Timestamp(text).year)
    except ValueError as e:
      raise ValueError(f'Invalid date: {value!r}') from e
  raise ValueError(f'Invalid date: {value!r}')


def is_year(date: DateKey) -> bool:
  return not isinstance(date, str)


def sort_key(date: DateKey, ltm_after: Optional[int]) -> Tuple[int, int]:
  '''Chronological sort key; LTM sorts right after year `ltm_after`.'''
  if date == LTM:
    return (_NO_YEAR if ltm_after is None else ltm_after, 1)
  return (int(date), 0)


def order_dates(dates: Iterable[DateKey],
                ltm_after: Optional[int]) -> Tuple[DateKey, ...]:
  '''Return unique dates in chronological order.'''
  return tuple(sorted(set(dates), key=lambda d: sort_key(d, ltm_after)))


def year_of(date: DateKey, ltm_after: Optional[int]) -> int:
  '''
  Calendar year used for year arithmetic (compounding, discounting).

  LTM counts as the year it follows.
  '''
  if date == LTM:
    if ltm_after is None:
      raise ValueError('LTM has no preceding year to anchor year arithmetic')
    return ltm_after
  return int(date)
