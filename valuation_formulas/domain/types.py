'''
Domain types for the valuation models.

These dataclasses provide typed interfaces between components, ensuring
models don't directly depend on how statement files are laid out.
'''

from dataclasses import dataclass, field
import math
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from valuation_formulas.engine.dates import LTM

Record = Dict[str, Any]


def _with_ltm(records: List[Record], ltm: Optional[Record]) -> List[Record]:
  '''Append the trailing-twelve-months record under the LTM date key.'''
  if not ltm:
    return list(records)
  return list(records) + [dict(ltm, date=LTM)]


@dataclass
class ModelInputs:
  '''
  Already-materialized statement records for one company.

  Record lists hold mappings with a 'date' key ('YYYY-MM-DD', a year or a
  timestamp) and one numeric value per statement field.

  Attributes:
    ticker: Company ticker symbol
    income: Annual income statements (netIncome, eps, weightedAverageShsOut)
    balance: Annual balance sheets (totalStockholdersEquity)
    dividends: Annual dividends per share (adjDividend)
    prices: Year-end prices (close)
    income_ltm: Trailing-twelve-months income statement
    balance_ltm: Most recent quarterly balance sheet
    price: Current market price, stored under the LTM date
    beta: Stock beta (models default to 1 when missing)
    treasury_yield: 10 year treasury yield in percent (4.2 = 4.2%)
    equity_risk_premium: Total equity risk premium in percent
    currency: Reporting currency label
  '''
  ticker: str
  income: List[Record]
  balance: List[Record]
  dividends: List[Record] = field(default_factory=list)
  prices: List[Record] = field(default_factory=list)
  income_ltm: Optional[Record] = None
  balance_ltm: Optional[Record] = None
  price: Optional[float] = None
  beta: Optional[float] = None
  treasury_yield: float = 0.0
  equity_risk_premium: float = 0.0
  currency: str = 'USD'

  def income_records(self) -> List[Record]:
    return _with_ltm(self.income, self.income_ltm)

  def balance_records(self) -> List[Record]:
    return _with_ltm(self.balance, self.balance_ltm)

  def price_records(self) -> List[Record]:
    ltm = {'close': self.price} if self.price is not None else None
    return _with_ltm(self.prices, ltm)

  def latest_income(self) -> Record:
    '''LTM income statement if present, else the most recent annual one.'''
    if self.income_ltm:
      return self.income_ltm
    if not self.income:
      raise ValueError(f'No income statements for {self.ticker}')
    return max(self.income, key=lambda r: str(r.get('date')))

  @classmethod
  def from_bundle(cls, bundle: Mapping[str, Any],
                  ticker: Optional[str] = None) -> 'ModelInputs':
    '''
    Construct ModelInputs from a statement bundle.

    The bundle mirrors the data provider's response: statement lists plus
    'profile', 'treasury' and 'risk_premium' objects.

    Args:
      bundle: Mapping of statement name to records
      ticker: Overrides bundle['profile']['symbol']

    Returns:
      ModelInputs with records sorted by date

    Raises:
      ValueError: If income or balance statements are missing
    '''
    profile = bundle.get('profile') or {}
    ticker = ticker or profile.get('symbol') or 'UNKNOWN'
    income = _records(bundle.get('income'))
    balance = _records(bundle.get('balance'))
    if not income or not balance:
      raise ValueError(f'No income or balance statements for {ticker}')

    price = _optional_float(profile.get('price'))
    return cls(
        ticker=ticker,
        income=income,
        balance=balance,
        dividends=_records(bundle.get('dividends')),
        prices=_records(bundle.get('prices')),
        income_ltm=_first(bundle.get('income_ltm')),
        balance_ltm=_first(bundle.get('balance_ltm')),
        price=price,
        beta=_optional_float(profile.get('beta')),
        treasury_yield=float((bundle.get('treasury') or {}).get('year10', 0.0)),
        equity_risk_premium=float(
            (bundle.get('risk_premium') or {}).get('totalEquityRiskPremium',
                                                   0.0)),
        currency=profile.get('currency') or 'USD',
    )


def _records(data: Any) -> List[Record]:
  '''Records as a date-sorted list of dicts; accepts a DataFrame.'''
  if data is None:
    return []
  if isinstance(data, pd.DataFrame):
    data = data.to_dict('records')
  records = [dict(r) for r in data]
  return sorted(records, key=lambda r: str(r.get('date')))


def _first(data: Any) -> Optional[Record]:
  '''A single record given as a dict, a one-item list or a DataFrame.'''
  if data is None:
    return None
  if isinstance(data, Mapping):
    return dict(data) or None
  records = _records(data)
  return records[-1] if records else None


def _optional_float(value: Any) -> Optional[float]:
  if value is None:
    return None
  value = float(value)
  return None if math.isnan(value) else value


@dataclass
class ModelResult:
  '''
  Complete model output with diagnostics.

  Attributes:
    model: Registered model name
    ticker: Company ticker symbol
    value_per_share: Estimated intrinsic value per share
    currency: Currency of value_per_share
    market_price: Current market price (if known)
    values: Named intermediate values in reporting order
    assumptions: Effective assumption values used by the run
    tables: Named tables ready for rendering
    warnings: Non-fatal conditions found while valuing
  '''
  model: str
  ticker: str
  value_per_share: float
  currency: str = 'USD'
  market_price: Optional[float] = None
  values: Dict[str, float] = field(default_factory=dict)
  assumptions: Dict[str, Optional[float]] = field(default_factory=dict)
  tables: Dict[str, pd.DataFrame] = field(default_factory=dict)
  warnings: List[str] = field(default_factory=list)

  @property
  def price_to_value(self) -> Optional[float]:
    if self.market_price is None or self.value_per_share <= 0:
      return None
    return self.market_price / self.value_per_share

  @property
  def margin_of_safety(self) -> Optional[float]:
    '''(value - price) / value, positive when the stock trades below value.'''
    if self.market_price is None or self.value_per_share <= 0:
      return None
    return (self.value_per_share - self.market_price) / self.value_per_share

  def to_dict(self) -> Dict[str, Any]:
    '''Flat dictionary for DataFrame creation (tables excluded).'''
    result = {
        'model': self.model,
        'ticker': self.ticker,
        'value_per_share': self.value_per_share,
        'currency': self.currency,
        'market_price': self.market_price,
        'price_to_value': self.price_to_value,
        'margin_of_safety': self.margin_of_safety,
        'warnings': list(self.warnings),
    }
    result.update(self.values)
    return result
