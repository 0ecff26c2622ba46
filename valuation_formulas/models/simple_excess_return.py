'''
Simple Excess Return Model.

Value per share = book value + excess return / (cost of equity - growth),
where the excess return is next year's EPS (book value * return on equity)
minus the equity cost (book value * cost of equity).
'''

from valuation_formulas.assumptions import AssumptionStore
from valuation_formulas.domain.types import ModelInputs
from valuation_formulas.domain.types import ModelResult
from valuation_formulas.engine.dates import LTM
from valuation_formulas.models.base import average_since
from valuation_formulas.models.base import gordon_value
from valuation_formulas.models.base import historical_formulas
from valuation_formulas.models.base import stable_payout_ratio
from valuation_formulas.models.base import statement_dataset
from valuation_formulas.models.base import ValuationModel
from valuation_formulas.reporting import build_table
from valuation_formulas.reporting import TableSpec

PROJECTION_YEARS = 5


class SimpleExcessReturnModel(ValuationModel):
  '''Single-stage excess return model for financial companies.'''

  name = 'simple_excess_return'
  assumptions = {
      '_DISCOUNT_RATE': None,
      '_RETURN_ON_EQUITY': None,
      '_GROWTH_IN_PERPETUITY': None,
      '_MARKET_PREMIUM': None,
      '_RISK_FREE_RATE': None,
      'BETA': None,
      'HISTORICAL_YEARS': 10,
  }

  def __init__(self, projection_years: int = PROJECTION_YEARS, **kwargs):
    super().__init__(**kwargs)
    self.projection_years = projection_years

  def value(self, inputs: ModelInputs, store: AssumptionStore) -> ModelResult:
    discount_rate = self.set_market_assumptions(inputs, store)
    store.set('_GROWTH_IN_PERPETUITY', inputs.treasury_yield / 100)

    original = statement_dataset(inputs)
    current_date = original.last_date()
    next_year = current_date + 1
    first_year = next_year - int(store.get('HISTORICAL_YEARS'))

    historical = original.set_formula(
        historical_formulas(inputs)).compute(on_missing='skip')

    average_roe = average_since(historical.get('_returnOnEquity'), first_year,
                                'return on equity')
    store.set('_RETURN_ON_EQUITY', average_roe)
    roe = store.get('_RETURN_ON_EQUITY')
    growth = store.get('_GROWTH_IN_PERPETUITY')
    stable_payout = stable_payout_ratio(growth, roe)

    bound = historical.set_formula({
        'bookValue': ['bookValue:-1', '+', 'retainedEarnings:0'],
        'eps': ['bookValue:-1', '*', roe],
        'adjDividend': ['eps:0', '*', stable_payout],
        'retainedEarnings': ['eps:0', '-', 'adjDividend:0'],
        '_returnOnEquity': ['eps:0', '/', 'bookValue:-1'],
        'equityCostPerShare': ['bookValue:-1', '*', discount_rate],
        'excessReturnPerShare': ['eps:0', '-', 'equityCostPerShare:0'],
        '_costOfEquity': [discount_rate],
        'beginningBookValue': ['bookValue:-1'],
    })
    forecast = self.bind_editable(bound, next_year).compute(
        forecast_years=self.projection_years, baseline_date=current_date)

    warnings = []
    book_value = historical.get('bookValue').last_value()
    excess_return = forecast.get('excessReturnPerShare').value_at_date(
        next_year)
    if excess_return <= 0:
      self.warn(
          warnings, inputs,
          'Excess return is negative. Either EPS is negative or the Cost of '
          'Equity (Discount Rate) is higher than the Return on Equity.')
    terminal_value = gordon_value(excess_return, discount_rate, growth)
    if discount_rate <= growth:
      self.warn(warnings, inputs,
                'Discount rate does not exceed the growth in perpetuity.')
    value_per_share = terminal_value + book_value

    average_payout = average_since(historical.get('_payoutRatio'), first_year)
    tables = {
        'future':
            build_table(
                forecast.remove_date(LTM),
                TableSpec(
                    keys=[
                        'beginningBookValue', 'bookValue', 'eps',
                        '_returnOnEquity', 'adjDividend', 'retainedEarnings',
                        'equityCostPerShare', '_costOfEquity',
                        'excessReturnPerShare'
                    ],
                    rows=[
                        'Beginning Book Value', 'Ending Book Value',
                        'EPS available to common shareholders',
                        '{%} Return on equity', 'Dividend',
                        'Retained earnings', 'Equity cost',
                        '{%} Cost of equity', 'Excess return'
                    ],
                    start_date=current_date,
                    title='Future data',
                    currency=f'{inputs.currency} (Per Share)',
                )),
        'historical':
            build_table(
                historical,
                TableSpec(
                    keys=[
                        'netIncome', 'preferredStockDividends', 'commonIncome',
                        'totalStockholdersEquity', '_returnOnEquity',
                        'dividendsPaidToCommon', '_payoutRatio',
                        'weightedAverageShsOut', 'eps', 'adjDividend',
                        'bookValue'
                    ],
                    rows=[
                        'Net income', 'Preferred stock dividends',
                        'Net income available to common shareholders',
                        'Equity', '{%} Return on equity', 'Dividends paid',
                        '{%} Payout ratio', 'Shares outstanding',
                        '{PerShare} EPS', '{PerShare} Dividends',
                        '{PerShare} Book value'
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
            'book_value': book_value,
            'next_year_book_value':
                forecast.get('bookValue').value_at_date(next_year),
            'present_value_of_excess_returns': terminal_value,
            'excess_return_per_share': excess_return,
            'discount_rate': discount_rate,
            'average_return_on_equity': average_roe,
            'average_payout_ratio': average_payout,
            'payout_ratio_used': stable_payout,
            'risk_free_rate': store.get('_RISK_FREE_RATE'),
        },
        tables=tables,
        warnings=warnings,
    )
