'''
Date-indexed formula engine and equity valuation models.

The engine stores named numeric series keyed by fiscal year (plus a
trailing-twelve-months column), compiles formula descriptions into
evaluable expressions and evaluates them over historical or forecast
dates. The models build on it to value financial companies with excess
return and dividend discount methods.

Usage:
  from valuation_formulas.scenarios.config import ModelConfig
  from valuation_formulas.run import run_valuation

  config = ModelConfig.two_stage_excess_return()
  result = run_valuation(ticker='JPM', config=config)
'''
