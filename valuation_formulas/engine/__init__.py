'''Date-indexed formula engine: series, datasets, formulas and evaluation.'''

from valuation_formulas.engine.compiler import compile_formulas
from valuation_formulas.engine.compiler import parse_formula
from valuation_formulas.engine.compiler import Plan
from valuation_formulas.engine.dataset import Dataset
from valuation_formulas.engine.dataset import FormulaBoundDataset
from valuation_formulas.engine.dataset import new_dataset
from valuation_formulas.engine.dates import LTM
from valuation_formulas.engine.errors import CyclicFormulaError
from valuation_formulas.engine.errors import EmptySeriesError
from valuation_formulas.engine.errors import FormulaError
from valuation_formulas.engine.errors import FormulaSyntaxError
from valuation_formulas.engine.errors import MissingDateError
from valuation_formulas.engine.errors import UnresolvedReferenceError
from valuation_formulas.engine.evaluator import ComputeOptions
from valuation_formulas.engine.formula import Reference
from valuation_formulas.engine.series import new_series
from valuation_formulas.engine.series import Series

__all__ = [
    'LTM',
    'Series', 'new_series',
    'Dataset', 'FormulaBoundDataset', 'new_dataset',
    'Plan', 'compile_formulas', 'parse_formula', 'Reference',
    'ComputeOptions',
    'FormulaError', 'FormulaSyntaxError', 'CyclicFormulaError',
    'UnresolvedReferenceError', 'MissingDateError', 'EmptySeriesError',
]
