"""
Model configuration for valuation runs.

ModelConfig is a serializable (JSON-friendly) configuration class that
names the model to run together with the user's assumption overrides and
forecast cell overrides.
"""

from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import field
import json
from typing import Any


@dataclass
class ModelConfig:
  """
  Configuration for a valuation run.

  The model is a string that maps to a class in the registry, which keeps
  the config serializable to JSON for reproducibility.

  Attributes:
    name: Human-readable configuration name
    model: Model name (e.g., 'simple_excess_return', 'two_stage_ddm')
    assumptions: Assumption overrides; rates as fractions (0.09 = 9%)
    editable: Whether forecast overrides are honored
    forecast_overrides: field -> {year: value} overrides of forecast cells
    model_params: Optional model constructor parameters
      (e.g., {'projection_years': 7})
  """
  name: str = 'default'
  model: str = 'simple_excess_return'
  assumptions: dict[str, float] = field(default_factory=dict)
  editable: bool = False
  forecast_overrides: dict[str, dict[str, float]] = field(default_factory=dict)
  model_params: dict[str, Any] = field(default_factory=dict)

  @classmethod
  def default(cls) -> 'ModelConfig':
    """Simple Excess Return Model with derived assumptions."""
    return cls(name='default', model='simple_excess_return')

  @classmethod
  def two_stage_excess_return(cls) -> 'ModelConfig':
    """Two-Stage Excess Return Model, 5 high growth years."""
    return cls(
        name='two_stage_excess_return',
        model='two_stage_excess_return',
        assumptions={'HIGH_GROWTH_YEARS': 5},
    )

  @classmethod
  def dividend_discount(cls) -> 'ModelConfig':
    """Two-Stage Dividend Discount Model, 5 high growth years."""
    return cls(
        name='dividend_discount',
        model='two_stage_ddm',
        assumptions={'HIGH_GROWTH_YEARS': 5},
    )

  def with_assumptions(self, **overrides: float) -> 'ModelConfig':
    """Copy with additional assumption overrides."""
    data = self.to_dict()
    data['assumptions'] = {**self.assumptions, **overrides}
    return ModelConfig.from_dict(data)

  def to_dict(self) -> dict[str, Any]:
    """Convert to dictionary."""
    return asdict(self)

  def to_json(self) -> str:
    """Serialize to JSON string."""
    return json.dumps(self.to_dict(), indent=2)

  @classmethod
  def from_dict(cls, data: dict[str, Any]) -> 'ModelConfig':
    """Create from dictionary."""
    return cls(**data)

  @classmethod
  def from_json(cls, json_str: str) -> 'ModelConfig':
    """Create from JSON string."""
    return cls.from_dict(json.loads(json_str))
