import pytest

from valuation_formulas.models.base import ModelError
from valuation_formulas.models.two_stage_excess_return import TwoStageExcessReturnModel


def _expected_value(book_value=10.0,
                    roe=0.10,
                    discount_rate=0.09,
                    growth=0.04,
                    average_payout=1.0,
                    years=5):
  """Two-stage excess return value computed year by year."""
  stable_payout = 1 - growth / roe
  step = (stable_payout - average_payout) / years
  ltm_book_value = book_value
  total = 0.0
  for n in range(1, years + 1):
    payout = average_payout + n * step
    eps = book_value * roe
    total += (eps - book_value * discount_rate) / (1 + discount_rate)**n
    book_value += eps * (1 - payout)
  terminal = book_value * (roe - discount_rate) / (discount_rate - growth)
  return ltm_book_value + total + terminal / (1 + discount_rate)**years


class TestTwoStageExcessReturnModel:
  """Tests for TwoStageExcessReturnModel."""

  def test_steady_bank(self, steady_inputs):
    result = TwoStageExcessReturnModel().run(steady_inputs)

    assert result.value_per_share == pytest.approx(_expected_value())
    assert result.values['book_value'] == pytest.approx(10.0)
    assert result.values['stable_payout_ratio'] == pytest.approx(0.6)
    assert result.values['average_payout_ratio'] == pytest.approx(1.0)
    assert result.assumptions['_STABLE_RETURN_ON_EQUITY'] == pytest.approx(0.1)
    assert result.warnings == []

  def test_payout_reaches_stable_payout(self, steady_inputs):
    """Payout moves from 100% to 60% in equal steps of 8 points."""
    result = TwoStageExcessReturnModel().run(steady_inputs)

    projected = result.tables['projected']
    assert list(projected.columns) == [2023, 2024, 2025, 2026, 2027, 2028]
    assert projected.loc['Payout Ratio', 2024] == pytest.approx(0.92)
    assert projected.loc['Payout Ratio', 2028] == pytest.approx(0.6)
    # First year: EPS 1.0, dividend 0.92, retained 0.08
    assert projected.loc['Ending Book Value', 2024] == pytest.approx(10.08)

  def test_high_growth_years(self, steady_inputs):
    result = TwoStageExcessReturnModel().run(steady_inputs,
                                             {'HIGH_GROWTH_YEARS': 3})

    assert list(result.tables['projected'].columns) == [2023, 2024, 2025, 2026]
    assert result.value_per_share == pytest.approx(_expected_value(years=3))

  def test_stable_roe_override(self, steady_inputs):
    result = TwoStageExcessReturnModel().run(
        steady_inputs, {'_STABLE_RETURN_ON_EQUITY': 0.08})

    assert result.value_per_share == pytest.approx(_expected_value(roe=0.08))
    assert any('Excess return is negative' in w for w in result.warnings)

  def test_cost_of_equity_override(self, steady_inputs):
    """
    With a 10% cost of equity in 2024 the first excess return is
    1.0 - 10 * 0.10 = 0, removing 0.1 / 1.09 from the value.
    """
    model = TwoStageExcessReturnModel(
        editable=True, forecast_overrides={'_costOfEquity': {
            2024: 0.10
        }})

    result = model.run(steady_inputs)

    assert result.value_per_share == pytest.approx(_expected_value() -
                                                   0.1 / 1.09)

  def test_overrides_ignored_when_not_editable(self, steady_inputs):
    model = TwoStageExcessReturnModel(
        editable=False, forecast_overrides={'_costOfEquity': {
            2024: 0.10
        }})

    result = model.run(steady_inputs)

    assert result.value_per_share == pytest.approx(_expected_value())

  def test_override_of_non_editable_field(self, steady_inputs):
    model = TwoStageExcessReturnModel(editable=True,
                                      forecast_overrides={'eps': {
                                          2024: 2.0
                                      }})

    with pytest.raises(ValueError, match="'eps' is not editable"):
      model.run(steady_inputs)

  def test_no_dividends(self, no_dividend_inputs):
    with pytest.raises(ModelError, match='payout ratio'):
      TwoStageExcessReturnModel().run(no_dividend_inputs)

  def test_partial_dividend_year(self, steady_inputs):
    """A dividend record after the last annual statement is ignored."""
    steady_inputs.dividends.append({'date': '2024-06-30', 'adjDividend': 0.5})

    result = TwoStageExcessReturnModel().run(steady_inputs)

    assert result.value_per_share == pytest.approx(_expected_value())

  def test_zero_high_growth_years(self, steady_inputs):
    with pytest.raises(ModelError, match='HIGH_GROWTH_YEARS must be positive'):
      TwoStageExcessReturnModel().run(steady_inputs, {'HIGH_GROWTH_YEARS': 0})

  def test_zero_return_on_equity(self, steady_inputs):
    with pytest.raises(ModelError, match='Return on equity is zero'):
      TwoStageExcessReturnModel().run(steady_inputs,
                                      {'_STABLE_RETURN_ON_EQUITY': 0.0})
