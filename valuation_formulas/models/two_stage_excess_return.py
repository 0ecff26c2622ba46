'''
Two-Stage Excess Return Model.

A high growth stage of HIGH_GROWTH_YEARS, during which the payout ratio
moves linearly from its historical average to the stable payout, followed
by a stable stage valued as a growing perpetuity of the terminal excess
return:

  value = LTM book value
          + sum of discounted excess returns in the growth stage
          + discounted terminal value of excess returns
'''

from valuation_formulas.assumptions import AssumptionStore
from valuation_formulas.domain.types import ModelInputs
from valuation_formulas.domain.types import ModelResult
from valuation_formulas.engine.dates import LTM
from valuation_formulas.models.base import average_since
from valuation_formulas.models.base import discount_to_present
from valuation_formulas.models.base import gordon_value
from valuation_formulas.models.base import historical_formulas
from valuation_formulas.models.base import read_high_growth_years
from valuation_formulas.models.base import stable_payout_ratio
from valuation_formulas.models.base import statement_dataset
from valuation_formulas.models.base import ValuationModel
from valuation_formulas.reporting import build_table
from valuation_formulas.reporting import TableSpec


class TwoStageExcessReturnModel(ValuationModel):
  '''High growth stage followed by stable growth in perpetuity.'''

  name = 'two_stage_excess_return'
  assumptions = {
      '_DISCOUNT_RATE': None,
      'HIGH_GROWTH_YEARS': 5,
      '_STABLE_RETURN_ON_EQUITY': None,
      '_STABLE_GROWTH_IN_PERPETUITY': None,
      '_MARKET_PREMIUM': None,
      '_RISK_FREE_RATE': None,
      'BETA': None,
      'HISTORICAL_YEARS': 10,
  }
  editable_keys = ('bookValue', '_payoutRatio', '_returnOnEquity',
                   '_costOfEquity')

  def value(self, inputs: ModelInputs, store: AssumptionStore) -> ModelResult:
    discount_rate = self.set_market_assumptions(inputs, store)
    store.set('_STABLE_GROWTH_IN_PERPETUITY', inputs.treasury_yield / 100)

    original = statement_dataset(inputs)
    current_date = original.last_date()
    next_year = current_date + 1
    high_growth_years = read_high_growth_years(store)
    forecast_end_date = current_date + high_growth_years
    first_year = next_year - int(store.get('HISTORICAL_YEARS'))

    # index counts forecast years: 0 for history, 1 for next year
    historical = original.set_formula(
        historical_formulas(inputs,
                            _adjDividendGrowth=[
                                'function:growth_rate', 'adjDividend'
                            ],
                            index=[0])).compute(on_missing='skip')

    average_payout = average_since(historical.get('_payoutRatio'), first_year,
                                   'payout ratio')
    average_roe = average_since(historical.get('_returnOnEquity'), first_year,
                                'return on equity')
    store.set('_STABLE_RETURN_ON_EQUITY', average_roe)
    stable_roe = store.get('_STABLE_RETURN_ON_EQUITY')
    growth = store.get('_STABLE_GROWTH_IN_PERPETUITY')
    stable_payout = stable_payout_ratio(growth, stable_roe)
    payout_step = (stable_payout - average_payout) / high_growth_years

    bound = historical.set_formula({
        'bookValue': ['bookValue:-1', '+', 'retainedEarnings:0'],
        'eps': ['bookValue:-1', '*', stable_roe],
        'adjDividend': ['eps:0', '*', '_payoutRatio:0'],
        'retainedEarnings': ['eps:0', '-', 'adjDividend:0'],
        '_returnOnEquity': ['eps:0', '/', 'bookValue:-1'],
        'equityCostPerShare': ['bookValue:-1', '*', '_costOfEquity:0'],
        'excessReturnPerShare': ['eps:0', '-', 'equityCostPerShare:0'],
        'discountedExcessReturnPerShare': [
            'function:discount', 'excessReturnPerShare', {
                'rate': '_costOfEquity',
                'start_date': current_date
            }
        ],
        '_costOfEquity': [discount_rate],
        'index': ['index:-1', '+', 1],
        '_payoutIncrease': ['index:0', '*', payout_step],
        '_payoutRatio': ['_payoutIncrease:0', '+', average_payout],
        'beginningBookValue': ['bookValue:-1'],
    })
    forecast = self.bind_editable(bound, next_year).compute(
        forecast_end_date=forecast_end_date, baseline_date=current_date)

    warnings = []
    terminal_book_value = forecast.get('bookValue').value_at_date(
        forecast_end_date)
    terminal_eps = terminal_book_value * stable_roe
    terminal_equity_cost = terminal_book_value * discount_rate
    terminal_excess_return = terminal_book_value * (stable_roe - discount_rate)
    if terminal_excess_return <= 0:
      self.warn(
          warnings, inputs,
          'Excess return is negative. The Cost of Equity (Discount Rate) is '
          'higher than the Return on Equity.')
    if discount_rate <= growth:
      self.warn(warnings, inputs,
                'Discount rate does not exceed the growth in perpetuity.')

    sum_of_discounted = forecast.get('discountedExcessReturnPerShare').sublist(
        next_year).sum()
    terminal_value = gordon_value(terminal_excess_return, discount_rate, growth)
    discounted_terminal_value = discount_to_present(terminal_value,
                                                    discount_rate,
                                                    high_growth_years)
    ltm_book_value = historical.get('bookValue').last_value()
    value_per_share = (ltm_book_value + discounted_terminal_value +
                       sum_of_discounted)

    projected = forecast.remove_date(LTM)
    tables = {
        'projected':
            build_table(
                projected,
                TableSpec(
                    keys=[
                        'beginningBookValue', 'bookValue', 'eps',
                        '_returnOnEquity', 'adjDividend', '_payoutRatio',
                        'retainedEarnings', 'equityCostPerShare',
                        '_costOfEquity', 'excessReturnPerShare',
                        'discountedExcessReturnPerShare'
                    ],
                    rows=[
                        'Beginning Book Value', 'Ending Book Value', 'EPS',
                        '{%} Return on equity', 'Dividend', '{%} Payout Ratio',
                        'Retained earnings', 'Equity cost',
                        '{%} Cost of equity', 'Excess Return',
                        'Discounted Excess Return'
                    ],
                    start_date=current_date,
                    title='Projected data (Per Share)',
                    currency=inputs.currency,
                )),
        'historical':
            build_table(
                historical,
                TableSpec(
                    keys=[
                        'netIncome', 'totalStockholdersEquity',
                        '_returnOnEquity', 'dividendsPaidToCommon',
                        '_payoutRatio', 'weightedAverageShsOut', 'eps',
                        'adjDividend', '_adjDividendGrowth', 'bookValue'
                    ],
                    rows=[
                        'Net income', 'Equity', '{%} Return on equity',
                        'Dividends paid', '{%} Payout ratio',
                        'Shares outstanding', '{PerShare} EPS',
                        '{PerShare} Dividends', '{%} Dividend Growth Rate',
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
            'book_value': ltm_book_value,
            'sum_of_discounted_excess_returns': sum_of_discounted,
            'terminal_eps': terminal_eps,
            'terminal_book_value': terminal_book_value,
            'terminal_equity_cost': terminal_equity_cost,
            'discounted_terminal_value': discounted_terminal_value,
            'terminal_value': terminal_value,
            'discount_rate': discount_rate,
            'terminal_excess_return': terminal_excess_return,
            'average_return_on_equity': average_roe,
            'average_payout_ratio': average_payout,
            'stable_payout_ratio': stable_payout,
            'risk_free_rate': store.get('_RISK_FREE_RATE'),
        },
        tables=tables,
        warnings=warnings,
    )
