'''
Assumption store for one valuation run.

Models declare their assumptions with defaults, derive better defaults from
the data (set()), and read the effective values (get()). A user override
always wins over the model-derived default.

Parent/children links describe assumptions computed from others, e.g. the
discount rate from beta, risk-free rate and market premium. Overriding a
child drops the parent's override so the parent is derived again from its
children.

Names starting with '_' are rates and are stored as fractions (0.08 = 8%).
'''

from dataclasses import dataclass
import logging
from typing import Dict, List, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssumptionLink:
  '''
  Parent assumption derived from child assumptions.

  Attributes:
    parent: Derived assumption name
    children: Names the parent is computed from
  '''
  parent: str
  children: Sequence[str]


@dataclass
class Assumption:
  '''
  A named scalar assumption.

  Attributes:
    name: Assumption name
    default: Model-derived default value
    override: User-supplied value (wins over default)
  '''
  name: str
  default: Optional[float] = None
  override: Optional[float] = None

  @property
  def value(self) -> Optional[float]:
    return self.override if self.override is not None else self.default

  @property
  def is_rate(self) -> bool:
    return self.name.startswith('_')


class AssumptionStore:
  '''Explicit per-run context holding a model's assumptions.'''

  def __init__(
      self,
      declarations: Optional[Mapping[str, Optional[float]]] = None,
      links: Sequence[AssumptionLink] = (),
  ):
    '''
    Initialize the store.

    Args:
      declarations: Assumption names with initial defaults (None: unset)
      links: Parent/children relations between assumptions
    '''
    self._assumptions: Dict[str, Assumption] = {}
    self.links = list(links)
    for name, default in (declarations or {}).items():
      self.declare(name, default)

  def declare(self, name: str, default: Optional[float] = None) -> None:
    self._assumptions[name] = Assumption(
        name=name, default=None if default is None else float(default))

  def _lookup(self, name: str) -> Assumption:
    try:
      return self._assumptions[name]
    except KeyError as e:
      raise KeyError(f"Unknown assumption: '{name}'. "
                     f'Available: {list(self._assumptions)}') from e

  def __contains__(self, name: str) -> bool:
    return name in self._assumptions

  def get(self, name: str) -> float:
    '''
    Effective value of an assumption.

    Raises:
      KeyError: If the assumption is not declared
      ValueError: If it has neither a default nor an override
    '''
    value = self._lookup(name).value
    if value is None:
      raise ValueError(f"Assumption '{name}' has no value")
    return value

  def set(self, name: str, value: float) -> None:
    '''Set the model-derived default; a user override still wins.'''
    assumption = self._lookup(name)
    assumption.default = float(value)
    if assumption.override is not None:
      logger.debug('%s: default %.6g kept behind override %.6g', name, value,
                   assumption.override)

  def override(self, name: str, value: float) -> None:
    '''Set a user override, invalidating overrides of linked parents.'''
    self._lookup(name).override = float(value)
    for parent in self.parents_of(name):
      if self._assumptions[parent].override is not None:
        logger.debug('%s changed: dropping override of %s', name, parent)
        self._assumptions[parent].override = None

  def apply_overrides(self, overrides: Mapping[str, float]) -> None:
    for name, value in overrides.items():
      self.override(name, value)

  def is_overridden(self, name: str) -> bool:
    return self._lookup(name).override is not None

  def children_of(self, parent: str) -> List[str]:
    return [c for link in self.links if link.parent == parent
            for c in link.children]

  def parents_of(self, child: str) -> List[str]:
    return [link.parent for link in self.links if child in link.children]

  def to_dict(self) -> Dict[str, Optional[float]]:
    '''Effective values of all assumptions.'''
    return {name: a.value for name, a in self._assumptions.items()}

  def describe(self, name: str) -> str:
    '''Human readable value, rates as percentages.'''
    assumption = self._lookup(name)
    if assumption.value is None:
      return f'{name}: unset'
    if assumption.is_rate:
      return f'{name}: {assumption.value * 100:.2f}%'
    return f'{name}: {assumption.value:g}'
