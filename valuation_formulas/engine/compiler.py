'''
Formula compiler.

Turns a mapping of field name -> formula into an evaluation Plan: formulas
are parsed once into typed expressions, same-date dependencies between the
fields being defined are collected, and the fields are ordered so that every
field comes after the fields it needs at the same date.

Negative offsets (e.g. 'bookValue:-1' inside the formula for 'bookValue')
read already-computed prior dates and are not dependencies for ordering.
'''

from dataclasses import dataclass
import logging
from numbers import Real
from typing import Any, Dict, Iterator, List, Mapping, Tuple

from valuation_formulas.engine.errors import CyclicFormulaError
from valuation_formulas.engine.errors import FormulaSyntaxError
from valuation_formulas.engine.formula import BinaryOp
from valuation_formulas.engine.formula import Constant
from valuation_formulas.engine.formula import Formula
from valuation_formulas.engine.formula import FunctionCall
from valuation_formulas.engine.formula import parse_operand
from valuation_formulas.engine.formula import Reference
from valuation_formulas.engine.formula import RefFormula
from valuation_formulas.engine.functions import get_function

logger = logging.getLogger(__name__)

FUNCTION_PREFIX = 'function:'


def parse_formula(expr: Any) -> Formula:
  '''
  Parse a declarative formula.

  Accepted forms:
    [3.5] or 3.5                          constant
    ['field:-1']                          reference
    ['a:0', '*', 'b:-1'] / ['a:0', '+', 1]  binary operation
    ['function:name', 'field', {...}]     built-in function call

  Raises:
    FormulaSyntaxError: If the expression matches none of the forms
  '''
  if isinstance(expr, (Constant, RefFormula, BinaryOp, FunctionCall)):
    return expr
  if isinstance(expr, Real) and not isinstance(expr, bool):
    return Constant(float(expr))
  if not isinstance(expr, (list, tuple)) or not expr:
    raise FormulaSyntaxError(f'Invalid formula: {expr!r}')

  head = expr[0]
  if isinstance(head, str) and head.startswith(FUNCTION_PREFIX):
    return _parse_function(expr)

  if len(expr) == 1:
    operand = parse_operand(head)
    if isinstance(operand, Reference):
      return RefFormula(operand)
    return Constant(operand)

  if len(expr) == 3 and isinstance(expr[1], str):
    return BinaryOp(parse_operand(expr[0]), expr[1], parse_operand(expr[2]))

  raise FormulaSyntaxError(f'Invalid formula: {expr!r}')


def _parse_function(expr) -> FunctionCall:
  name = expr[0][len(FUNCTION_PREFIX):]
  if len(expr) not in (2, 3):
    raise FormulaSyntaxError(
        f"Function '{name}' takes a field and optional options: {expr!r}")
  try:
    function = get_function(name)
  except KeyError as e:
    raise FormulaSyntaxError(e.args[0]) from e

  argument = expr[1]
  if not isinstance(argument, str):
    raise FormulaSyntaxError(
        f"Function '{name}' needs a field name, got {argument!r}")

  options = expr[2] if len(expr) == 3 else {}
  if not isinstance(options, Mapping):
    raise FormulaSyntaxError(
        f"Options of '{name}' must be a mapping, got {options!r}")

  return FunctionCall(name=name,
                      argument=Reference.parse(argument),
                      options=function.normalize_options(options))


def same_date_dependencies(formula: Formula) -> List[str]:
  '''Fields a formula needs at the date under evaluation.'''
  if isinstance(formula, FunctionCall):
    refs = get_function(formula.name).same_date_references(formula)
  else:
    refs = [r for r in formula.references() if r.is_same_date]

  names: List[str] = []
  for ref in refs:
    if ref.field not in names:
      names.append(ref.field)
  return names


@dataclass(frozen=True)
class Plan:
  '''
  Ordered (field, formula) steps ready for per-date evaluation.

  Attributes:
    steps: Fields in evaluation order with their parsed formulas
    dependencies: Same-date dependencies of each field, restricted to
      fields defined in the plan
  '''
  steps: Tuple[Tuple[str, Formula], ...]
  dependencies: Tuple[Tuple[str, Tuple[str, ...]], ...] = ()

  @property
  def fields(self) -> List[str]:
    return [name for name, _ in self.steps]

  def formula_for(self, name: str) -> Formula:
    for step_name, formula in self.steps:
      if step_name == name:
        return formula
    raise KeyError(f"No formula for '{name}'")

  def __iter__(self) -> Iterator[Tuple[str, Formula]]:
    return iter(self.steps)

  def __len__(self) -> int:
    return len(self.steps)


def compile_formulas(formulas: Mapping[str, Any]) -> Plan:
  '''
  Compile field formulas into an evaluation plan.

  Fields are ordered depth-first: each field follows the fields it references
  at offset 0; otherwise declaration order is kept. The result depends only
  on the input, so identical inputs give identical plans.

  Args:
    formulas: Mapping of field name to formula (declarative or parsed)

  Returns:
    Plan with fields in evaluation order

  Raises:
    FormulaSyntaxError: If a formula cannot be parsed
    CyclicFormulaError: If same-date references form a cycle
  '''
  parsed: Dict[str, Formula] = {}
  for name, expr in formulas.items():
    try:
      parsed[name] = parse_formula(expr)
    except FormulaSyntaxError as e:
      raise FormulaSyntaxError(f"Formula for '{name}': {e}") from e

  graph: Dict[str, List[str]] = {
      name: [dep for dep in same_date_dependencies(f) if dep in parsed]
      for name, f in parsed.items()
  }

  order: List[str] = []
  done = set()
  path: List[str] = []

  def visit(name: str) -> None:
    if name in done:
      return
    if name in path:
      cycle = path[path.index(name):] + [name]
      raise CyclicFormulaError(cycle)
    path.append(name)
    for dep in graph[name]:
      visit(dep)
    path.pop()
    done.add(name)
    order.append(name)

  for name in parsed:
    visit(name)

  logger.debug('Compiled plan: %s', ', '.join(order))
  return Plan(
      steps=tuple((name, parsed[name]) for name in order),
      dependencies=tuple((name, tuple(graph[name])) for name in order),
  )
