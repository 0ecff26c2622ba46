import pytest

from valuation_formulas.models.base import ModelError
from valuation_formulas.models.two_stage_ddm import TwoStageDividendDiscountModel


def _expected_value(eps,
                    growth_rate,
                    payout,
                    stable_payout,
                    discount_rate=0.09,
                    growth=0.04,
                    years=5):
  """Sum of discounted dividends plus the discounted terminal value."""
  total = 0.0
  for n in range(1, years + 1):
    total += eps * (1 + growth_rate)**n * payout / (1 + discount_rate)**n
  stable_eps = eps * (1 + growth_rate)**years * (1 + growth)
  stable_dividend = stable_eps * stable_payout
  terminal = stable_dividend / (discount_rate - growth)
  return total + terminal / (1 + discount_rate)**years


class TestTwoStageDividendDiscountModel:
  """Tests for TwoStageDividendDiscountModel."""

  def test_flat_dividends(self, steady_inputs):
    """
    EPS 1 paid out in full for 5 years, then 1.04 * 60% growing 4%:
    terminal value = 0.624 / (0.09 - 0.04) = 12.48
    """
    result = TwoStageDividendDiscountModel().run(steady_inputs)

    assert result.assumptions['HISTORICAL_YEARS'] == 4
    assert result.assumptions['_HIGH_GROWTH_RATE'] == pytest.approx(0.0)
    assert result.assumptions['_HIGH_GROWTH_PAYOUT'] == pytest.approx(1.0)
    assert result.assumptions['_STABLE_PAYOUT'] == pytest.approx(0.6)
    assert result.values['terminal_value'] == pytest.approx(12.48)
    assert result.value_per_share == pytest.approx(
        _expected_value(1.0, 0.0, 1.0, 0.6))

  def test_growing_dividends(self, growing_dividend_inputs):
    """
    Dividends grow 10% a year; payouts 2020-2023 on EPS 2 average
    (0.55 + 0.605 + 0.6655 + 0.73205) / 4 = 0.6381375.
    """
    result = TwoStageDividendDiscountModel().run(growing_dividend_inputs)

    assert result.assumptions['_HIGH_GROWTH_RATE'] == pytest.approx(0.1)
    assert result.assumptions['_HIGH_GROWTH_PAYOUT'] == pytest.approx(
        0.6381375)
    assert result.values['stable_eps'] == pytest.approx(2.0 * 1.1**5 * 1.04)
    assert result.value_per_share == pytest.approx(
        _expected_value(2.0, 0.1, 0.6381375, 0.6))

  def test_payout_above_one_uses_stable_payout(self, steady_inputs):
    steady_inputs.dividends = [
        dict(record, adjDividend=1.5) for record in steady_inputs.dividends
    ]

    result = TwoStageDividendDiscountModel().run(steady_inputs)

    assert result.values['average_payout_ratio'] == pytest.approx(1.5)
    assert result.assumptions['_HIGH_GROWTH_PAYOUT'] == pytest.approx(0.6)

  def test_projected_table(self, growing_dividend_inputs):
    result = TwoStageDividendDiscountModel().run(growing_dividend_inputs)

    projected = result.tables['projected']
    assert list(projected.columns) == [2023, 2024, 2025, 2026, 2027, 2028]
    assert projected.loc['EPS', 2024] == pytest.approx(2.2)
    assert projected.loc['Dividend Growth Rate', 2025] == pytest.approx(0.1)

  def test_eps_override(self, steady_inputs):
    """A 2024 EPS of 2 doubles that year's dividend only."""
    model = TwoStageDividendDiscountModel(editable=True,
                                          forecast_overrides={'eps': {
                                              2024: 2.0
                                          }})

    result = model.run(steady_inputs)

    assert result.value_per_share == pytest.approx(
        _expected_value(1.0, 0.0, 1.0, 0.6) + 1.0 / 1.09)

  def test_historical_years_override(self, growing_dividend_inputs):
    result = TwoStageDividendDiscountModel().run(growing_dividend_inputs,
                                                 {'HISTORICAL_YEARS': 2})

    # Payouts 2022-2023: (0.6655 + 0.73205) / 2
    assert result.assumptions['_HIGH_GROWTH_PAYOUT'] == pytest.approx(
        0.698775)

  def test_no_dividends(self, no_dividend_inputs):
    with pytest.raises(ModelError, match='does not currently pay dividends'):
      TwoStageDividendDiscountModel().run(no_dividend_inputs)

  def test_single_dividend(self, steady_inputs):
    steady_inputs.dividends = steady_inputs.dividends[-1:]

    with pytest.raises(ModelError):
      TwoStageDividendDiscountModel().run(steady_inputs)

  def test_partial_dividend_year(self, steady_inputs):
    """A dividend record after the last annual statement is ignored."""
    expected = TwoStageDividendDiscountModel().run(steady_inputs)
    steady_inputs.dividends.append({'date': '2024-06-30', 'adjDividend': 0.5})

    result = TwoStageDividendDiscountModel().run(steady_inputs)

    assert result.value_per_share == pytest.approx(expected.value_per_share)
    assert result.values['average_dividend_growth_rate'] == pytest.approx(0.0)
    assert 2024 not in result.tables['historical'].columns

  def test_zero_return_on_equity(self, steady_inputs):
    for record in steady_inputs.income:
      record['netIncome'] = 0.0
    steady_inputs.income_ltm['netIncome'] = 0.0

    with pytest.raises(ModelError, match='Return on equity is zero'):
      TwoStageDividendDiscountModel().run(steady_inputs)

  def test_zero_high_growth_years(self, steady_inputs):
    with pytest.raises(ModelError, match='HIGH_GROWTH_YEARS must be positive'):
      TwoStageDividendDiscountModel().run(steady_inputs,
                                          {'HIGH_GROWTH_YEARS': 0})
