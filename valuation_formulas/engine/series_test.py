import math

import pandas as pd
import pytest

from valuation_formulas.engine.dates import LTM
from valuation_formulas.engine.dates import parse_date
from valuation_formulas.engine.errors import EmptySeriesError
from valuation_formulas.engine.errors import MissingDateError
from valuation_formulas.engine.series import new_series
from valuation_formulas.engine.series import Series


@pytest.fixture
def eps_records() -> list[dict]:
  """Records in the newest-first order statements usually arrive in."""
  return [
      {'date': 'LTM', 'eps': 3.5},
      {'date': '2022-12-31', 'eps': 3.0},
      {'date': '2021-12-31', 'eps': 2.0},
      {'date': '2020-12-31', 'eps': None},
  ]


class TestParseDate:
  """Tests for parse_date."""

  def test_year_forms(self):
    assert parse_date(2021) == 2021
    assert parse_date('2021') == 2021
    assert parse_date('2021-09-30') == 2021
    assert parse_date(pd.Timestamp('2019-12-31')) == 2019

  def test_ltm(self):
    assert parse_date('LTM') == LTM
    assert parse_date('ltm') == LTM

  def test_invalid(self):
    with pytest.raises(ValueError, match='Invalid date'):
      parse_date('not a date')


class TestNewSeries:
  """Tests for building series from records."""

  def test_orders_dates_with_ltm_last(self, eps_records):
    """Years ascend and LTM follows the last full year."""
    series = new_series(eps_records, 'eps')

    assert series.dates == (2021, 2022, LTM)
    assert series.values == [2.0, 3.0, 3.5]
    assert series.name == 'eps'

  def test_skips_missing_values(self, eps_records):
    series = new_series(eps_records, 'eps')

    assert 2020 not in series
    assert len(series) == 3

  def test_duplicate_dates(self):
    records = [{'date': 2021, 'eps': 1.0}, {'date': '2021-06-30', 'eps': 2.0}]

    with pytest.raises(ValueError, match='Duplicate date 2021'):
      new_series(records, 'eps')

  def test_from_dataframe(self):
    frame = pd.DataFrame({
        'date': ['2020-12-31', '2021-12-31'],
        'revenue': [100.0, float('nan')],
    })

    series = new_series(frame, 'revenue')

    assert series.to_dict() == {2020: 100.0}

  def test_custom_date_key(self):
    records = [{'year': 2020, 'close': 10.0}, {'year': 2021, 'close': 12.0}]

    series = new_series(records, 'close', date_key='year')

    assert series.last_value() == 12.0


class TestSeriesAccess:
  """Tests for date lookups."""

  def test_first_and_last_dates(self, eps_records):
    series = new_series(eps_records, 'eps')

    assert series.first_date() == 2021
    assert series.last_date() == 2022
    assert series.last_value() == 3.5

  def test_value_at_date(self, eps_records):
    series = new_series(eps_records, 'eps')

    assert series.value_at_date(2022) == 3.0
    assert series.value_at_date('LTM') == 3.5

  def test_value_at_missing_date(self, eps_records):
    series = new_series(eps_records, 'eps')

    with pytest.raises(MissingDateError, match="'eps' at date 2019"):
      series.value_at_date(2019)

  def test_missing_date_is_key_error(self):
    with pytest.raises(KeyError):
      Series({2020: 1.0}).value_at_date(2021)

  def test_empty_series(self):
    series = Series({})

    with pytest.raises(EmptySeriesError):
      series.first_date()
    with pytest.raises(EmptySeriesError):
      series.last_value()


class TestSublist:
  """Tests for sublist and aggregates."""

  def test_sublist_includes_ltm(self, eps_records):
    series = new_series(eps_records, 'eps').sublist(2022)

    assert series.dates == (2022, LTM)
    assert series.sum() == pytest.approx(6.5)
    assert series.average() == pytest.approx(3.25)

  def test_sublist_is_restartable(self, eps_records):
    sub = new_series(eps_records, 'eps').sublist(2021)

    assert list(sub) == list(sub)

  def test_average_of_empty_sublist(self, eps_records):
    sub = new_series(eps_records, 'eps').sublist(2030)

    with pytest.raises(EmptySeriesError):
      sub.average()
    with pytest.raises(EmptySeriesError):
      sub.sum()


class TestSeriesTransforms:
  """Tests for remove_date, equality and pandas conversion."""

  def test_remove_date(self, eps_records):
    series = new_series(eps_records, 'eps')

    trimmed = series.remove_date(LTM)

    assert trimmed.dates == (2021, 2022)
    assert series.dates == (2021, 2022, LTM)

  def test_remove_absent_date(self):
    series = Series({2020: 1.0})

    assert series.remove_date(1999) == series

  def test_equality_treats_nan_as_equal(self):
    assert Series({2020: float('nan')}) == Series({2020: float('nan')})
    assert Series({2020: 1.0}) != Series({2020: 2.0})

  def test_to_pandas(self, eps_records):
    converted = new_series(eps_records, 'eps').to_pandas()

    assert list(converted.index) == [2021, 2022, LTM]
    assert converted.name == 'eps'
    assert math.isclose(converted[LTM], 3.5)
