"""
Model registry for mapping string names to valuation models.

This enables configurations to name models with strings (JSON friendly)
while still instantiating the correct model classes.

To add a new model:
1. Subclass ValuationModel in valuation_formulas/models/
2. Register the class in MODEL_REGISTRY under its name

Example:
  # In models/my_model.py
  class MyModel(ValuationModel):
    name = 'my_model'

    def value(self, inputs, store) -> ModelResult:
      ...

  # In scenarios/registry.py
  MODEL_REGISTRY[MyModel.name] = MyModel
"""

from valuation_formulas.models.base import ValuationModel
from valuation_formulas.models.simple_excess_return import SimpleExcessReturnModel
from valuation_formulas.models.two_stage_ddm import TwoStageDividendDiscountModel
from valuation_formulas.models.two_stage_excess_return import TwoStageExcessReturnModel
from valuation_formulas.scenarios.config import ModelConfig

MODEL_REGISTRY: dict[str, type[ValuationModel]] = {
    model.name: model for model in (
        SimpleExcessReturnModel,
        TwoStageExcessReturnModel,
        TwoStageDividendDiscountModel,
    )
}


def create_model(config: ModelConfig) -> ValuationModel:
  """
  Create a model instance from configuration.

  Args:
    config: ModelConfig naming the model

  Returns:
    Model configured with the editable flag, forecast overrides and
    model parameters

  Raises:
    KeyError: If the model name is not found in the registry
  """
  try:
    model_class = MODEL_REGISTRY[config.model]
  except KeyError as e:
    raise KeyError(f"Unknown model: '{config.model}'. "
                   f'Available: {list(MODEL_REGISTRY.keys())}') from e

  return model_class(editable=config.editable,
                     forecast_overrides=config.forecast_overrides,
                     **config.model_params)


def list_models() -> list[str]:
  """List all registered model names."""
  return list(MODEL_REGISTRY.keys())
