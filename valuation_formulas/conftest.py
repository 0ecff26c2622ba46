from typing import Dict, List, Optional

import pytest

from valuation_formulas.domain.types import ModelInputs


def _make_inputs(
    ticker: str,
    years: List[int],
    net_income: List[float],
    eps: List[float],
    shares: List[float],
    equity: List[float],
    dividends: Optional[List[float]] = None,
    prices: Optional[List[float]] = None,
    ltm_income: Optional[Dict[str, float]] = None,
    ltm_equity: Optional[float] = None,
    price: Optional[float] = None,
    beta: Optional[float] = 1.0,
) -> ModelInputs:
  """Helper to create ModelInputs from per-year value lists."""
  income = [{
      'date': f'{year}-12-31',
      'netIncome': ni,
      'eps': e,
      'weightedAverageShsOut': sh,
  } for year, ni, e, sh in zip(years, net_income, eps, shares)]
  balance = [{
      'date': f'{year}-12-31',
      'totalStockholdersEquity': eq,
  } for year, eq in zip(years, equity)]
  return ModelInputs(
      ticker=ticker,
      income=income,
      balance=balance,
      dividends=[{
          'date': f'{year}-12-31',
          'adjDividend': d
      } for year, d in zip(years, dividends or [])],
      prices=[{
          'date': f'{year}-12-31',
          'close': p
      } for year, p in zip(years, prices or [])],
      income_ltm=ltm_income,
      balance_ltm=({
          'date': '2024-06-30',
          'totalStockholdersEquity': ltm_equity
      } if ltm_equity is not None else None),
      price=price,
      beta=beta,
      treasury_yield=4.0,
      equity_risk_premium=5.0,
      currency='USD',
  )


@pytest.fixture
def steady_inputs() -> ModelInputs:
  """
  A bank earning a constant 10% on a flat book value of 10 per share.

  2019-2023 plus LTM: equity 1000, net income 100, 100 shares, EPS 1 and
  a full payout of 1 per share. Rates: risk-free 4%, market premium 5%,
  beta 1, so the discount rate is 9% and the perpetual growth 4%.
  """
  years = [2019, 2020, 2021, 2022, 2023]
  return _make_inputs(
      'BANK',
      years,
      net_income=[100.0] * 5,
      eps=[1.0] * 5,
      shares=[100.0] * 5,
      equity=[1000.0] * 5,
      dividends=[1.0] * 5,
      prices=[20.0] * 5,
      ltm_income={
          'netIncome': 100.0,
          'eps': 1.0,
          'weightedAverageShsOut': 100.0
      },
      ltm_equity=1000.0,
      price=21.0,
  )


@pytest.fixture
def growing_dividend_inputs() -> ModelInputs:
  """Dividends growing 10% a year on EPS of 2 and no LTM statements."""
  years = [2019, 2020, 2021, 2022, 2023]
  return _make_inputs(
      'GROW',
      years,
      net_income=[200.0] * 5,
      eps=[2.0] * 5,
      shares=[100.0] * 5,
      equity=[2000.0] * 5,
      dividends=[1.0, 1.1, 1.21, 1.331, 1.4641],
      prices=[30.0] * 5,
  )


@pytest.fixture
def preferred_inputs() -> ModelInputs:
  """Net income exceeds EPS * shares by 10%: preferred dividends are paid."""
  years = [2021, 2022, 2023]
  return _make_inputs(
      'PREF',
      years,
      net_income=[110.0] * 3,
      eps=[1.0] * 3,
      shares=[100.0] * 3,
      equity=[1000.0] * 3,
      dividends=[0.5] * 3,
  )


@pytest.fixture
def no_dividend_inputs() -> ModelInputs:
  """A company that has never paid a dividend."""
  years = [2021, 2022, 2023]
  return _make_inputs(
      'NODIV',
      years,
      net_income=[50.0] * 3,
      eps=[0.5] * 3,
      shares=[100.0] * 3,
      equity=[500.0] * 3,
      beta=None,
  )
