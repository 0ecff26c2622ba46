'''
Shared pieces of the equity valuation models.

Every model follows the same pipeline:

  1. Declare assumptions and derive their defaults from the inputs.
  2. Build a dataset from the statement records.
  3. Derive historical ratios (historical mode, unresolved dates skipped).
  4. Forecast per-share values over the projection years.
  5. Reduce the forecast to a value per share.
'''

from abc import ABC
from abc import abstractmethod
import logging
from typing import Any, Dict, List, Mapping, Optional

from valuation_formulas.assumptions import AssumptionLink
from valuation_formulas.assumptions import AssumptionStore
from valuation_formulas.domain.types import ModelInputs
from valuation_formulas.domain.types import ModelResult
from valuation_formulas.engine.dataset import Dataset
from valuation_formulas.engine.dataset import FormulaBoundDataset
from valuation_formulas.engine.dataset import new_dataset
from valuation_formulas.engine.dates import is_year
from valuation_formulas.engine.errors import EmptySeriesError
from valuation_formulas.engine.series import new_series
from valuation_formulas.engine.series import Series

logger = logging.getLogger(__name__)

# Relative gap between eps * shares and net income above which the
# company is treated as paying preferred dividends.
PREFERRED_DIVIDENDS_SENSITIVITY = 0.01

DISCOUNT_RATE_LINK = AssumptionLink(
    '_DISCOUNT_RATE', ('BETA', '_RISK_FREE_RATE', '_MARKET_PREMIUM'))

HISTORICAL_FORMULAS = {
    'preferredStockDividends': ['netIncome:0', '-', 'commonIncome:0'],
    'dividendsPaidToCommon': ['adjDividend:0', '*', 'weightedAverageShsOut:0'],
    'bookValue': ['totalStockholdersEquity:0', '/', 'weightedAverageShsOut:0'],
    '_returnOnEquity': ['commonIncome:0', '/', 'totalStockholdersEquity:-1'],
    '_payoutRatio': ['adjDividend:0', '/', 'eps:0'],
    'retainedEarnings': ['eps:0', '-', 'adjDividend:0'],
}


class ModelError(Exception):
  '''Inputs that a model cannot value.'''


def pays_preferred_dividends(inputs: ModelInputs) -> bool:
  latest = inputs.latest_income()
  net_income = float(latest['netIncome'])
  if net_income == 0:
    return False
  common = float(latest['eps']) * float(latest['weightedAverageShsOut'])
  ratio = abs((common - net_income) / net_income)
  return ratio > PREFERRED_DIVIDENDS_SENSITIVITY


def common_income_formula(inputs: ModelInputs) -> List[Any]:
  '''Income available to common shareholders.'''
  if pays_preferred_dividends(inputs):
    return ['eps:0', '*', 'weightedAverageShsOut:0']
  return ['netIncome:0']


def historical_formulas(inputs: ModelInputs, **extra) -> Dict[str, Any]:
  formulas = {'commonIncome': common_income_formula(inputs)}
  formulas.update(HISTORICAL_FORMULAS)
  formulas.update(extra)
  return formulas


def statement_dataset(inputs: ModelInputs,
                      include_prices: bool = False) -> Dataset:
  '''
  Dataset of the raw statement fields used by the models.

  The LTM income statement and quarterly balance sheet are stored under the
  LTM date key, after the last annual year. Years after the last annual
  income statement (a partial current-year dividend) are dropped.
  '''
  income = inputs.income_records()
  series = {
      'netIncome': new_series(income, 'netIncome'),
      'totalStockholdersEquity': new_series(inputs.balance_records(),
                                            'totalStockholdersEquity'),
      'weightedAverageShsOut': new_series(income, 'weightedAverageShsOut'),
      'eps': new_series(income, 'eps'),
      'adjDividend': new_series(inputs.dividends, 'adjDividend'),
  }
  if include_prices:
    series['marketPrice'] = new_series(inputs.price_records(), 'close')
  dataset = new_dataset(series)
  last_year = series['netIncome'].last_date()
  for date in dataset.dates:
    if is_year(date) and date > last_year:
      dataset = dataset.remove_date(date)
  return dataset


def average_since(series: Series,
                  start_date: int,
                  required: Optional[str] = None) -> float:
  '''
  Average of the values from start_date on.

  Returns nan when there are none, unless `required` names the quantity,
  in which case ModelError is raised.
  '''
  try:
    return series.sublist(start_date).average()
  except EmptySeriesError as e:
    if required:
      raise ModelError(f'Not enough history to compute the {required}') from e
    return float('nan')


def stable_payout_ratio(growth: float, return_on_equity: float) -> float:
  '''Payout that sustains `growth` at `return_on_equity`: 1 - g / ROE.'''
  if return_on_equity == 0:
    raise ModelError(
        'Return on equity is zero, the stable payout ratio is undefined')
  return 1 - growth / return_on_equity


def read_high_growth_years(store: AssumptionStore) -> int:
  years = int(store.get('HIGH_GROWTH_YEARS'))
  if years <= 0:
    raise ModelError(f'HIGH_GROWTH_YEARS must be positive, got {years}')
  return years


def discount_to_present(value: float, rate: float, years: float) -> float:
  return value / (1.0 + rate)**years


def gordon_value(next_value: float, discount_rate: float,
                 growth: float) -> float:
  '''
  Value of a perpetuity growing at `growth`, one period ahead.

  Returns nan if discount_rate <= growth (model undefined).
  '''
  if discount_rate <= growth:
    return float('nan')
  return next_value / (discount_rate - growth)


class ValuationModel(ABC):
  '''
  Base class for valuation models.

  Subclasses declare their assumptions and implement value().

  Attributes:
    name: Registry name
    assumptions: Declared assumptions with their initial defaults
    links: Parent/children assumption links
    editable_keys: Forecast fields accepting user overrides
  '''
  name: str = ''
  assumptions: Mapping[str, Optional[float]] = {}
  links = (DISCOUNT_RATE_LINK,)
  editable_keys: tuple = ()

  def __init__(
      self,
      editable: bool = False,
      forecast_overrides: Optional[Mapping[str, Mapping[Any, float]]] = None,
  ):
    '''
    Initialize the model.

    Args:
      editable: Whether forecast overrides are honored
      forecast_overrides: field -> {date: value} overrides of forecast cells
    '''
    self.editable = editable
    self.forecast_overrides = dict(forecast_overrides or {})

  def create_store(
      self,
      overrides: Optional[Mapping[str, float]] = None,
  ) -> AssumptionStore:
    store = AssumptionStore(self.assumptions, links=self.links)
    store.apply_overrides(overrides or {})
    return store

  def run(
      self,
      inputs: ModelInputs,
      assumptions: Optional[Mapping[str, float]] = None,
  ) -> ModelResult:
    '''
    Value one company.

    Args:
      inputs: Statement records and market data
      assumptions: User overrides of declared assumptions (rates as
        fractions)

    Returns:
      ModelResult with the value per share and diagnostics

    Raises:
      ModelError: If the inputs cannot be valued by this model
      FormulaError: If a formula cannot be evaluated
    '''
    store = self.create_store(assumptions)
    result = self.value(inputs, store)
    result.assumptions = store.to_dict()
    logger.debug('%s %s: value per share %.4f', self.name, inputs.ticker,
                 result.value_per_share)
    return result

  @abstractmethod
  def value(self, inputs: ModelInputs, store: AssumptionStore) -> ModelResult:
    '''Compute the value per share using a prepared assumption store.'''

  def set_market_assumptions(self, inputs: ModelInputs,
                             store: AssumptionStore) -> float:
    '''
    Derive market-based defaults and return the discount rate.

    The discount rate is the CAPM cost of equity:
    risk-free rate + beta * market premium.
    '''
    store.set('_RISK_FREE_RATE', inputs.treasury_yield / 100)
    store.set('_MARKET_PREMIUM', inputs.equity_risk_premium / 100)
    store.set('BETA', inputs.beta if inputs.beta is not None else 1.0)
    store.set(
        '_DISCOUNT_RATE',
        store.get('_RISK_FREE_RATE') +
        store.get('BETA') * store.get('_MARKET_PREMIUM'))
    return store.get('_DISCOUNT_RATE')

  def bind_editable(self, bound: FormulaBoundDataset,
                    start_date: int) -> FormulaBoundDataset:
    return bound.set_editable(self.editable,
                              start_date=start_date,
                              keys=self.editable_keys,
                              overrides=self.forecast_overrides)

  def warn(self, warnings: List[str], inputs: ModelInputs,
           message: str) -> None:
    logger.warning('%s %s: %s', self.name, inputs.ticker, message)
    warnings.append(message)
