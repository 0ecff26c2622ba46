"""Domain types for the valuation models."""

from valuation_formulas.domain.types import ModelInputs
from valuation_formulas.domain.types import ModelResult

__all__ = [
    'ModelInputs',
    'ModelResult',
]
