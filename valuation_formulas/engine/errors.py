'''
Exception types raised by the formula engine.

All engine failures derive from FormulaError so callers can present a single
descriptive diagnostic instead of a raw traceback.
'''

from typing import List, Optional


class FormulaError(Exception):
  '''Base class for formula engine errors.'''


class FormulaSyntaxError(FormulaError):
  '''A formula or reference expression could not be parsed.'''


class CyclicFormulaError(FormulaError):
  '''
  Same-date references among formulas form a cycle.

  Attributes:
    cycle: Field names along the cycle, first name repeated at the end
  '''

  def __init__(self, cycle: List[str]):
    self.cycle = list(cycle)
    super().__init__('Circular same-date reference: ' + ' -> '.join(cycle))


class UnresolvedReferenceError(FormulaError):
  '''
  A reference required by a formula has no value.

  Attributes:
    field: Field whose formula was being evaluated
    date: Date under evaluation
    reference: The reference that could not be resolved
  '''

  def __init__(self, field: str, date, reference: str,
               reason: Optional[str] = None):
    self.field = field
    self.date = date
    self.reference = reference
    message = f"Cannot evaluate '{field}' at {date}: '{reference}' has no value"
    if reason:
      message += f' ({reason})'
    super().__init__(message)


class MissingDateError(FormulaError, KeyError):
  '''A series has no value at the requested date.'''

  def __init__(self, date, name: Optional[str] = None):
    self.date = date
    self.name = name
    label = f"'{name}'" if name else 'series'
    super().__init__(f'No value for {label} at date {date}')

  def __str__(self) -> str:
    return str(self.args[0])


class EmptySeriesError(FormulaError, ValueError):
  '''An aggregate was requested over an empty series.'''
