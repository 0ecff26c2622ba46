"""Equity valuation models built on the formula engine."""

from valuation_formulas.models.base import ModelError
from valuation_formulas.models.base import ValuationModel
from valuation_formulas.models.simple_excess_return import SimpleExcessReturnModel
from valuation_formulas.models.two_stage_ddm import TwoStageDividendDiscountModel
from valuation_formulas.models.two_stage_excess_return import TwoStageExcessReturnModel

__all__ = [
    'ModelError',
    'ValuationModel',
    'SimpleExcessReturnModel',
    'TwoStageExcessReturnModel',
    'TwoStageDividendDiscountModel',
]
