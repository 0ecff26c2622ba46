'''
Typed formula expressions.

Formulas are written declaratively, e.g. ['bookValue:-1', '+',
'retainedEarnings:0'], and parsed once into the types below so nothing is
re-parsed per date.
'''

from dataclasses import dataclass
from dataclasses import field
from numbers import Real
from typing import Any, Dict, List, Optional, Union

from valuation_formulas.engine.errors import FormulaSyntaxError

START_DATE = 'start_date'
OPERATORS = ('+', '-', '*', '/')


@dataclass(frozen=True)
class Reference:
  '''
  Reference to a field relative to the date under evaluation.

  Attributes:
    field: Referenced field name
    offset: Signed position delta (0 = same date, -1 = previous date)
    anchor: START_DATE to read the value at the baseline date instead
  '''
  field: str
  offset: int = 0
  anchor: Optional[str] = None

  @property
  def is_same_date(self) -> bool:
    return self.anchor is None and self.offset == 0

  @classmethod
  def parse(cls, text: str) -> 'Reference':
    '''
    Parse 'field', 'field:-1' or 'field:start_date'.

    Raises:
      FormulaSyntaxError: On malformed text or a forward (positive) offset
    '''
    if not isinstance(text, str) or not text.strip():
      raise FormulaSyntaxError(f'Invalid reference: {text!r}')

    name, sep, suffix = text.strip().rpartition(':')
    if not sep:
      return cls(field=suffix)
    if not name:
      raise FormulaSyntaxError(f'Reference without a field name: {text!r}')
    if suffix == START_DATE:
      return cls(field=name, anchor=START_DATE)

    try:
      offset = int(suffix)
    except ValueError:
      raise FormulaSyntaxError(
          f'Invalid offset {suffix!r} in reference {text!r}') from None
    if offset > 0:
      raise FormulaSyntaxError(
          f'Forward references are not supported: {text!r}')
    return cls(field=name, offset=offset)

  def __str__(self) -> str:
    if self.anchor:
      return f'{self.field}:{self.anchor}'
    return f'{self.field}:{self.offset}'


Operand = Union[Reference, float]


def parse_operand(value: Any) -> Operand:
  '''A number stays a number, a string becomes a Reference.'''
  if isinstance(value, Reference):
    return value
  if isinstance(value, Real) and not isinstance(value, bool):
    return float(value)
  if isinstance(value, str):
    return Reference.parse(value)
  raise FormulaSyntaxError(f'Invalid operand: {value!r}')


@dataclass(frozen=True)
class Constant:
  '''Literal value, identical at every date.'''
  value: float

  def references(self) -> List[Reference]:
    return []


@dataclass(frozen=True)
class RefFormula:
  '''Copy of a referenced value, e.g. ['bookValue:-1'].'''
  ref: Reference

  def references(self) -> List[Reference]:
    return [self.ref]


@dataclass(frozen=True)
class BinaryOp:
  '''Arithmetic between two operands.'''
  left: Operand
  op: str
  right: Operand

  def __post_init__(self):
    if self.op not in OPERATORS:
      raise FormulaSyntaxError(
          f'Unknown operator {self.op!r}. Available: {list(OPERATORS)}')

  def references(self) -> List[Reference]:
    return [o for o in (self.left, self.right) if isinstance(o, Reference)]


@dataclass(frozen=True)
class FunctionCall:
  '''
  Call of a built-in function, e.g. ['function:compound', 'eps', {...}].

  Attributes:
    name: Registered function name
    argument: Reference to the series the function operates on
    options: Normalized options (rate/slope may be References)
  '''
  name: str
  argument: Reference
  options: Dict[str, Any] = field(default_factory=dict)

  def __hash__(self) -> int:
    return hash((self.name, self.argument, tuple(sorted(self.options))))

  def references(self) -> List[Reference]:
    refs = [self.argument]
    refs.extend(v for v in self.options.values() if isinstance(v, Reference))
    return refs


Formula = Union[Constant, RefFormula, BinaryOp, FunctionCall]
