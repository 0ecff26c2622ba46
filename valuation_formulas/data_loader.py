"""
Caching data loader for statement data.

Loads already-materialized statement records from local files into
ModelInputs. Nothing is fetched from remote services.

Two layouts are supported under the data directory:

  data/AAPL.json         One JSON bundle holding every statement:
                         {"income": [...], "income_ltm": {...},
                          "balance": [...], "balance_ltm": {...},
                          "dividends": [...], "prices": [...],
                          "profile": {...}, "treasury": {...},
                          "risk_premium": {...}}

  data/AAPL/             One file per statement (income.parquet,
    income.csv ...)      balance.csv, ...; parquet, csv or json) plus
    meta.json            meta.json holding profile, treasury and
                         risk_premium.

Usage:
  # Batch valuation (with caching)
  loader = StatementDataLoader(Path('data'))
  for ticker in tickers:
    result = run_model(config, loader.load_inputs(ticker))
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

import pandas as pd

from valuation_formulas.domain.types import ModelInputs

logger = logging.getLogger(__name__)

STATEMENTS = ('income', 'income_ltm', 'balance', 'balance_ltm', 'dividends',
              'prices')
META_KEYS = ('profile', 'treasury', 'risk_premium')
META_FILE = 'meta.json'

# Preferred first when a statement exists in several formats
SUFFIXES = ('.parquet', '.csv', '.json')


def read_table(path: Path) -> pd.DataFrame:
  """
  Read one statement file.

  Raises:
    ValueError: If the file type is not supported
  """
  if path.suffix == '.parquet':
    return pd.read_parquet(path)
  if path.suffix == '.csv':
    return pd.read_csv(path)
  if path.suffix == '.json':
    return pd.read_json(path, orient='records')
  raise ValueError(f'Unsupported statement file: {path}')


class StatementDataLoader:
  """
  Cached statement loader.

  Bundles are cached per ticker, which avoids repeated file I/O when the
  same company is valued with several models or configurations.
  """

  def __init__(self, data_dir: Path = Path('data')):
    """
    Initialize data loader.

    Args:
      data_dir: Directory holding <ticker>.json bundles or <ticker>/
        statement directories
    """
    self.data_dir = Path(data_dir)
    self._bundles: dict[str, dict[str, Any]] = {}

  def load_bundle(self, ticker: str) -> dict[str, Any]:
    """
    Load and cache the statement bundle of a ticker.

    Returns:
      Mapping of statement name to records (lists or DataFrames)

    Raises:
      FileNotFoundError: If no bundle or statement directory exists
    """
    if ticker in self._bundles:
      return self._bundles[ticker]

    bundle_path = self.data_dir / f'{ticker}.json'
    statement_dir = self.data_dir / ticker
    if bundle_path.exists():
      bundle = json.loads(bundle_path.read_text())
    elif statement_dir.is_dir():
      bundle = self._load_directory(statement_dir)
    else:
      raise FileNotFoundError(
          f'No statements for {ticker}: expected {bundle_path} or '
          f'{statement_dir}/')

    logger.debug('Loaded %s statements: %s', ticker,
                 sorted(k for k in bundle if k in STATEMENTS))
    self._bundles[ticker] = bundle
    return bundle

  def load_inputs(self, ticker: str) -> ModelInputs:
    """
    Load the ModelInputs of a ticker.

    Raises:
      FileNotFoundError: If no statements exist for the ticker
      ValueError: If income or balance statements are missing
    """
    return ModelInputs.from_bundle(self.load_bundle(ticker), ticker=ticker)

  def clear_cache(self) -> None:
    """Clear all cached data."""
    self._bundles = {}

  @staticmethod
  def _load_directory(statement_dir: Path) -> dict[str, Any]:
    bundle: dict[str, Any] = {}
    for name in STATEMENTS:
      path = _find_statement(statement_dir, name)
      if path is not None:
        bundle[name] = read_table(path)

    meta_path = statement_dir / META_FILE
    if meta_path.exists():
      meta = json.loads(meta_path.read_text())
      bundle.update({k: meta[k] for k in META_KEYS if k in meta})
    return bundle


def _find_statement(statement_dir: Path, name: str) -> Optional[Path]:
  for suffix in SUFFIXES:
    path = statement_dir / f'{name}{suffix}'
    if path.exists():
      return path
  return None
