'''
Tabular reporting of datasets.

A TableSpec declares which fields to show, their row labels and display
properties. build_table() turns a Dataset into a date-ordered DataFrame,
the hand-off point to whatever renders it; format_table() produces display
strings for logging and the CLI.

Row labels may carry a format tag: '{%} Return on equity' is shown as a
percentage, '{PerShare} EPS' as a per-share amount. Untagged rows use the
table's number_format ('M' shows millions).
'''

from dataclasses import dataclass
import math
import re
from typing import List, Optional, Tuple

import pandas as pd

from valuation_formulas.engine.dataset import Dataset
from valuation_formulas.engine.dates import DateKey

AVERAGE_COLUMN = 'Average'
COLUMN_ORDERS = ('ascending', 'descending')

_TAG = re.compile(r'^\{(%|\w+)\}\s*(.*)$')


@dataclass
class TableSpec:
  '''
  Declarative table description.

  Attributes:
    keys: Dataset fields, one per row
    rows: Row labels, optionally tagged (defaults to the keys)
    start_date: First date column
    title: Table title
    currency: Currency label of monetary rows
    number_format: 'M' to show untagged rows in millions
    display_averages: Append an average column over the dates shown
    column_order: 'ascending' or 'descending' dates
  '''
  keys: List[str]
  rows: Optional[List[str]] = None
  start_date: Optional[DateKey] = None
  title: str = ''
  currency: str = ''
  number_format: Optional[str] = None
  display_averages: bool = False
  column_order: str = 'ascending'

  def __post_init__(self):
    if self.rows is not None and len(self.rows) != len(self.keys):
      raise ValueError(f'TableSpec has {len(self.keys)} keys but '
                       f'{len(self.rows)} row labels')
    if self.column_order not in COLUMN_ORDERS:
      raise ValueError(f"Unknown column_order: '{self.column_order}'. "
                       f'Available: {list(COLUMN_ORDERS)}')


def parse_label(label: str) -> Tuple[str, Optional[str]]:
  '''Split '{%} Return on equity' into ('Return on equity', '%').'''
  match = _TAG.match(label)
  if not match:
    return label, None
  return match.group(2), match.group(1)


def build_table(dataset: Dataset, spec: TableSpec) -> pd.DataFrame:
  '''
  Build the DataFrame for a table spec.

  Args:
    dataset: Source dataset
    spec: Table description

  Returns:
    DataFrame indexed by row label with one column per date (and the
    average column when requested). frame.attrs holds title, currency and
    the per-row formats.

  Raises:
    KeyError: If a key is not a field of the dataset
  '''
  frame = dataset.to_frame(spec.keys, spec.start_date)
  labels = spec.rows if spec.rows is not None else spec.keys
  parsed = [parse_label(label) for label in labels]
  frame.index = pd.Index([text for text, _ in parsed], name='row')

  if spec.column_order == 'descending':
    frame = frame.iloc[:, ::-1].copy()
  if spec.display_averages:
    frame[AVERAGE_COLUMN] = frame.mean(axis=1, skipna=True)

  frame.attrs['title'] = spec.title
  frame.attrs['currency'] = spec.currency
  frame.attrs['formats'] = {
      text: tag or spec.number_format for text, tag in parsed
  }
  return frame


def _format_value(value: float, fmt: Optional[str]) -> str:
  if value is None or math.isnan(value):
    return ''
  if fmt == '%':
    return f'{value * 100:.2f}%'
  if fmt == 'M':
    return f'{value / 1e6:,.2f}'
  return f'{value:,.2f}'


def format_table(frame: pd.DataFrame) -> pd.DataFrame:
  '''Display strings for a frame produced by build_table().'''
  formats = frame.attrs.get('formats', {})
  rows = {
      label: [_format_value(v, formats.get(label)) for v in frame.loc[label]]
      for label in frame.index
  }
  return pd.DataFrame.from_dict(rows, orient='index', columns=frame.columns)
