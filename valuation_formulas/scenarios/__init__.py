"""Model configuration and model registry."""

from valuation_formulas.scenarios.config import ModelConfig
from valuation_formulas.scenarios.registry import create_model
from valuation_formulas.scenarios.registry import list_models
from valuation_formulas.scenarios.registry import MODEL_REGISTRY

__all__ = [
  'ModelConfig',
  'MODEL_REGISTRY',
  'create_model',
  'list_models',
]
