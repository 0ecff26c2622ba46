'''
Two-Stage Dividend Discount Model.

EPS compounds at the historical dividend growth rate for HIGH_GROWTH_YEARS
and is paid out at the high growth payout; afterwards dividends grow in
perpetuity at the stable rate with the stable payout.
'''

import logging

from valuation_formulas.assumptions import AssumptionStore
from valuation_formulas.domain.types import ModelInputs
from valuation_formulas.domain.types import ModelResult
from valuation_formulas.engine.dates import LTM
from valuation_formulas.models.base import average_since
from valuation_formulas.models.base import discount_to_present
from valuation_formulas.models.base import gordon_value
from valuation_formulas.models.base import historical_formulas
from valuation_formulas.models.base import ModelError
from valuation_formulas.models.base import read_high_growth_years
from valuation_formulas.models.base import stable_payout_ratio
from valuation_formulas.models.base import statement_dataset
from valuation_formulas.models.base import ValuationModel
from valuation_formulas.reporting import build_table
from valuation_formulas.reporting import TableSpec

logger = logging.getLogger(__name__)

MAX_HISTORICAL_YEARS = 10


class TwoStageDividendDiscountModel(ValuationModel):
  '''Dividend discount model with a high growth and a stable stage.'''

  name = 'two_stage_ddm'
  assumptions = {
      '_DISCOUNT_RATE': None,
      'HIGH_GROWTH_YEARS': 5,
      'HISTORICAL_YEARS': None,
      '_HIGH_GROWTH_RATE': None,
      '_HIGH_GROWTH_PAYOUT': None,
      '_STABLE_GROWTH_IN_PERPETUITY': None,
      '_STABLE_PAYOUT': None,
      'BETA': None,
      '_RISK_FREE_RATE': None,
      '_MARKET_PREMIUM': None,
  }
  editable_keys = ('eps', 'adjDividend')

  def value(self, inputs: ModelInputs, store: AssumptionStore) -> ModelResult:
    # The most recent dividend year may be incomplete
    dividends_count = len(inputs.dividends) - 1
    if dividends_count <= 0:
      raise ModelError('The company does not currently pay dividends!')
    store.set('HISTORICAL_YEARS', min(dividends_count, MAX_HISTORICAL_YEARS))
    store.set('_STABLE_GROWTH_IN_PERPETUITY', inputs.treasury_yield / 100)
    discount_rate = self.set_market_assumptions(inputs, store)

    original = statement_dataset(inputs, include_prices=True)
    current_date = original.last_date()
    next_year = current_date + 1
    high_growth_years = read_high_growth_years(store)
    forecast_end_date = current_date + high_growth_years
    first_year = next_year - int(store.get('HISTORICAL_YEARS'))

    historical = original.set_formula(
        historical_formulas(
            inputs,
            _dividendYield=['adjDividend:0', '/', 'marketPrice:0'],
            _adjDividendGrowth=['function:growth_rate', 'adjDividend'],
            discountedAdjDividend=['adjDividend:0'],
        )).compute(on_missing='skip')

    average_roe = average_since(historical.get('_returnOnEquity'), first_year,
                                'return on equity')
    growth = store.get('_STABLE_GROWTH_IN_PERPETUITY')
    store.set('_STABLE_PAYOUT', stable_payout_ratio(growth, average_roe))

    average_payout = average_since(historical.get('_payoutRatio'), first_year,
                                   'payout ratio')
    if average_payout > 1:
      logger.debug('%s: average payout %.4f above 100%%, using stable payout',
                   inputs.ticker, average_payout)
      store.set('_HIGH_GROWTH_PAYOUT', store.get('_STABLE_PAYOUT'))
    else:
      store.set('_HIGH_GROWTH_PAYOUT', average_payout)

    average_dividend_growth = average_since(
        historical.get('_adjDividendGrowth'), first_year,
        'dividend growth rate')
    store.set('_HIGH_GROWTH_RATE', average_dividend_growth)

    bound = historical.remove_date(LTM).set_formula({
        'linearRegressionEps': [
            'function:linear_regression', 'eps', {
                'slope': 1,
                'start_date': first_year
            }
        ],
        'eps': [
            'function:compound', 'eps:start_date', {
                'rate': store.get('_HIGH_GROWTH_RATE'),
                'start_date': current_date
            }
        ],
        'adjDividend': ['eps:0', '*', store.get('_HIGH_GROWTH_PAYOUT')],
        'discountedAdjDividend': [
            'function:discount', 'adjDividend', {
                'rate': discount_rate,
                'start_date': current_date
            }
        ],
        '_adjDividendGrowth': ['function:growth_rate', 'adjDividend'],
    })
    forecast = self.bind_editable(bound, next_year).compute(
        forecast_end_date=forecast_end_date, baseline_date=current_date)

    warnings = []
    if discount_rate <= growth:
      self.warn(warnings, inputs,
                'Discount rate does not exceed the growth in perpetuity.')
    sum_of_discounted = forecast.get('discountedAdjDividend').sublist(
        next_year).sum()
    stable_eps = forecast.get('eps').last_value() * (1 + growth)
    stable_dividend = stable_eps * store.get('_STABLE_PAYOUT')
    terminal_value = gordon_value(stable_dividend, discount_rate, growth)
    discounted_terminal_value = discount_to_present(terminal_value,
                                                    discount_rate,
                                                    high_growth_years)
    value_per_share = discounted_terminal_value + sum_of_discounted

    tables = {
        'projected':
            build_table(
                forecast,
                TableSpec(
                    keys=[
                        'eps', 'adjDividend', '_adjDividendGrowth',
                        'discountedAdjDividend'
                    ],
                    rows=[
                        'EPS', 'Dividends', '{%} Dividend Growth Rate',
                        'Discounted Dividend'
                    ],
                    start_date=current_date,
                    title='Projected data',
                    currency=inputs.currency,
                )),
        'historical':
            build_table(
                historical,
                TableSpec(
                    keys=[
                        'netIncome', 'totalStockholdersEquity',
                        '_returnOnEquity', 'dividendsPaidToCommon',
                        '_payoutRatio', 'weightedAverageShsOut',
                        'marketPrice', 'eps', 'adjDividend',
                        '_adjDividendGrowth', '_dividendYield'
                    ],
                    rows=[
                        'Net income', 'Equity', '{%} Return on equity',
                        'Dividends paid', '{%} Payout ratio',
                        'Shares outstanding',
                        '{PerShare} Reference market price', '{PerShare} EPS',
                        '{PerShare} Dividends', '{%} Dividend Growth Rate',
                        '{%} Dividend yield'
                    ],
                    start_date=first_year,
                    title='Historical data',
                    currency=inputs.currency,
                    number_format='M',
                    display_averages=True,
                    column_order='descending',
                )),
    }

    return ModelResult(
        model=self.name,
        ticker=inputs.ticker,
        value_per_share=value_per_share,
        currency=inputs.currency,
        market_price=inputs.price,
        values={
            'sum_of_discounted_dividends': sum_of_discounted,
            'discounted_terminal_value': discounted_terminal_value,
            'terminal_value': terminal_value,
            'stable_dividend': stable_dividend,
            'stable_eps': stable_eps,
            'discount_rate': discount_rate,
            'average_dividend_growth_rate': average_dividend_growth,
            'average_payout_ratio': average_payout,
            'average_return_on_equity': average_roe,
        },
        tables=tables,
        warnings=warnings,
    )
