'''
Single-company valuation entrypoint.

This module provides the main entry point for running valuations. It:
1. Loads statement records for a ticker
2. Instantiates the model named by the configuration
3. Applies assumption and forecast overrides
4. Returns ModelResult with values, tables and warnings

Usage:
  from valuation_formulas.run import run_valuation
  from valuation_formulas.scenarios.config import ModelConfig

  result = run_valuation(
    ticker='JPM',
    config=ModelConfig.two_stage_excess_return(),
  )
  print(f"Value: {result.value_per_share:.2f} {result.currency}")
'''

import argparse
import logging
from pathlib import Path
import sys
from typing import List, Optional, Tuple

from valuation_formulas.data_loader import StatementDataLoader
from valuation_formulas.domain.types import ModelInputs
from valuation_formulas.domain.types import ModelResult
from valuation_formulas.engine.errors import FormulaError
from valuation_formulas.models.base import ModelError
from valuation_formulas.reporting import format_table
from valuation_formulas.scenarios.config import ModelConfig
from valuation_formulas.scenarios.registry import create_model
from valuation_formulas.scenarios.registry import list_models
from valuation_formulas.scenarios.registry import MODEL_REGISTRY

logger = logging.getLogger(__name__)

PRESETS = {
    'default': ModelConfig.default,
    'two_stage_excess_return': ModelConfig.two_stage_excess_return,
    'dividend_discount': ModelConfig.dividend_discount,
}


def run_model(config: ModelConfig, inputs: ModelInputs) -> ModelResult:
  '''
  Run the configured model on prepared inputs.

  Raises:
    KeyError: If the model is not registered
    ModelError: If the model cannot value the inputs
    FormulaError: If a formula cannot be evaluated
  '''
  model = create_model(config)
  logger.debug('Running %s (%s) for %s', config.model, config.name,
               inputs.ticker)
  return model.run(inputs, config.assumptions)


def run_valuation(
    ticker: str,
    config: Optional[ModelConfig] = None,
    data_dir: Path = Path('data'),
    loader: Optional[StatementDataLoader] = None,
) -> ModelResult:
  '''
  Run valuation for a single ticker.

  Args:
    ticker: Company ticker symbol (e.g., 'JPM')
    config: ModelConfig (default: ModelConfig.default())
    data_dir: Directory with statement files (ignored if loader is given)
    loader: Optional cached loader shared across valuations

  Returns:
    ModelResult with value per share and diagnostics
  '''
  if config is None:
    config = ModelConfig.default()
  if loader is None:
    loader = StatementDataLoader(data_dir)
  return run_model(config, loader.load_inputs(ticker))


def parse_assignment(text: str) -> Tuple[str, float]:
  '''Parse NAME=VALUE from the command line.'''
  name, sep, value = text.partition('=')
  if not sep or not name:
    raise argparse.ArgumentTypeError(f'Expected NAME=VALUE, got {text!r}')
  try:
    return name.strip(), float(value)
  except ValueError as e:
    raise argparse.ArgumentTypeError(
        f'Value of {name!r} is not a number: {value!r}') from e


def build_config(args: argparse.Namespace) -> ModelConfig:
  if args.config is not None:
    config = ModelConfig.from_json(args.config.read_text())
  else:
    config = PRESETS[args.preset]()
  if args.model is not None and args.model != config.model:
    # Preset assumptions the chosen model does not declare are dropped
    declared = MODEL_REGISTRY[args.model].assumptions
    config.assumptions = {
        k: v for k, v in config.assumptions.items() if k in declared
    }
    config.model = args.model
  if args.set:
    config = config.with_assumptions(**dict(args.set))
  if args.editable:
    config.editable = True
  return config


def log_result(result: ModelResult, show_tables: bool = False) -> None:
  separator = '=' * 70
  logger.info('\n%s', separator)
  logger.info('%s - %s', result.model, result.ticker)
  logger.info(separator)

  logger.info('\nValuation Result:')
  logger.info('  Value per share: %.2f %s', result.value_per_share,
              result.currency)
  for name, value in result.values.items():
    logger.info('  %s: %.4f', name, value)

  logger.info('\nAssumptions:')
  for name, value in result.assumptions.items():
    logger.info('  %s: %s', name, value)

  if result.market_price:
    logger.info('\nMarket Comparison:')
    logger.info('  Market Price: %.2f', result.market_price)
    if result.price_to_value is not None:
      logger.info('  Price/Value: %.2f%%', result.price_to_value * 100)
    if result.margin_of_safety is not None:
      logger.info('  Margin of Safety: %.2f%%', result.margin_of_safety * 100)

  for warning in result.warnings:
    logger.info('\nWarning: %s', warning)

  if show_tables:
    for frame in result.tables.values():
      logger.info('\n%s (%s)\n%s', frame.attrs.get('title', ''),
                  frame.attrs.get('currency', ''),
                  format_table(frame).to_string())

  logger.info('%s\n', separator)


def main(argv: Optional[List[str]] = None) -> int:
  '''CLI entrypoint; returns the process exit code.'''
  parser = argparse.ArgumentParser(description='Run an equity valuation model')
  parser.add_argument('--ticker',
                      type=str,
                      required=True,
                      help='Company ticker')
  parser.add_argument('--preset',
                      type=str,
                      default='default',
                      choices=sorted(PRESETS),
                      help='Configuration preset')
  parser.add_argument('--model',
                      type=str,
                      default=None,
                      choices=list_models(),
                      help='Model (overrides the preset)')
  parser.add_argument('--config',
                      type=Path,
                      default=None,
                      help='ModelConfig JSON file (overrides the preset)')
  parser.add_argument('--set',
                      type=parse_assignment,
                      action='append',
                      metavar='NAME=VALUE',
                      help='Assumption override, rates as fractions')
  parser.add_argument('--editable',
                      action='store_true',
                      help='Honor forecast overrides of the config')
  parser.add_argument('--data-dir',
                      type=Path,
                      default=Path('data'),
                      help='Directory with statement files')
  parser.add_argument('--tables',
                      action='store_true',
                      help='Log the projected and historical tables')
  parser.add_argument('-v',
                      '--verbose',
                      action='store_true',
                      help='Debug logging')
  args = parser.parse_args(argv)

  if args.verbose:
    logging.getLogger().setLevel(logging.DEBUG)

  config = build_config(args)
  try:
    result = run_valuation(args.ticker, config=config, data_dir=args.data_dir)
  except (FormulaError, ModelError, FileNotFoundError, KeyError,
          ValueError) as e:
    logger.error('Cannot value %s with %s: %s', args.ticker, config.model, e)
    return 1

  log_result(result, show_tables=args.tables)
  return 0


if __name__ == '__main__':
  logging.basicConfig(
      level=logging.INFO,
      format='%(message)s',
  )
  sys.exit(main())
