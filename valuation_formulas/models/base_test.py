import math

import pytest

from valuation_formulas.assumptions import AssumptionStore
from valuation_formulas.engine.dates import LTM
from valuation_formulas.engine.series import Series
from valuation_formulas.models.base import average_since
from valuation_formulas.models.base import common_income_formula
from valuation_formulas.models.base import discount_to_present
from valuation_formulas.models.base import gordon_value
from valuation_formulas.models.base import ModelError
from valuation_formulas.models.base import read_high_growth_years
from valuation_formulas.models.base import stable_payout_ratio
from valuation_formulas.models.base import statement_dataset


class TestCommonIncome:
  """Tests for the preferred dividends check."""

  def test_no_preferred_dividends(self, steady_inputs):
    assert common_income_formula(steady_inputs) == ['netIncome:0']

  def test_preferred_dividends(self, preferred_inputs):
    assert common_income_formula(preferred_inputs) == [
        'eps:0', '*', 'weightedAverageShsOut:0'
    ]


class TestStatementDataset:
  """Tests for statement_dataset."""

  def test_ltm_after_last_year(self, steady_inputs):
    dataset = statement_dataset(steady_inputs)

    assert dataset.dates == (2019, 2020, 2021, 2022, 2023, LTM)
    assert dataset.last_date() == 2023
    assert dataset.get('totalStockholdersEquity').value_at_date(LTM) == 1000.0
    assert 'marketPrice' not in dataset

  def test_prices(self, steady_inputs):
    dataset = statement_dataset(steady_inputs, include_prices=True)

    assert dataset.get('marketPrice').value_at_date(LTM) == 21.0
    assert dataset.get('marketPrice').value_at_date(2020) == 20.0

  def test_partial_dividend_year_dropped(self, steady_inputs):
    """A dividend paid after the last annual statement is not a year."""
    steady_inputs.dividends.append({'date': '2024-06-30', 'adjDividend': 0.5})

    dataset = statement_dataset(steady_inputs)

    assert dataset.dates == (2019, 2020, 2021, 2022, 2023, LTM)
    assert dataset.last_date() == 2023


class TestHelpers:
  """Tests for the terminal value helpers."""

  def test_gordon_value(self):
    """0.5 / (0.09 - 0.04) = 10"""
    assert gordon_value(0.5, 0.09, 0.04) == pytest.approx(10.0)

  def test_gordon_value_undefined(self):
    assert math.isnan(gordon_value(0.5, 0.04, 0.04))
    assert math.isnan(gordon_value(0.5, 0.03, 0.04))

  def test_discount_to_present(self):
    assert discount_to_present(121.0, 0.1, 2) == pytest.approx(100.0)

  def test_average_since(self):
    series = Series({2019: 1.0, 2020: 2.0, 2021: 4.0})

    assert average_since(series, 2020) == pytest.approx(3.0)
    assert math.isnan(average_since(series, 2022))

  def test_average_since_required(self):
    with pytest.raises(ModelError, match='compute the payout ratio'):
      average_since(Series({}), 2020, 'payout ratio')

  def test_stable_payout_ratio(self):
    """1 - 0.04 / 0.10 = 0.6"""
    assert stable_payout_ratio(0.04, 0.10) == pytest.approx(0.6)

  def test_stable_payout_ratio_zero_return_on_equity(self):
    with pytest.raises(ModelError, match='Return on equity is zero'):
      stable_payout_ratio(0.04, 0.0)

  def test_read_high_growth_years(self):
    store = AssumptionStore({'HIGH_GROWTH_YEARS': 5})

    assert read_high_growth_years(store) == 5

    store.override('HIGH_GROWTH_YEARS', 0)
    with pytest.raises(ModelError, match='must be positive, got 0'):
      read_high_growth_years(store)
