"""
CAPM Data Utilities
===================

Helper functions to load, validate and prepare the price data required
for the Bayesian CAPM regression.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import yfinance as yf

logger = logging.getLogger(__name__)


class PriceDataError(ValueError):
    """Raised when the price table is missing columns or holds unusable values."""


@dataclass(frozen=True)
class CapmDataset:
    """
    Container for the core CAPM inputs.

    Attributes:
        stock_returns: Daily simple returns, one column per stock.
        market_returns: Daily simple returns of the market index.
    """

    stock_returns: pd.DataFrame
    market_returns: pd.Series

    @property
    def tickers(self) -> List[str]:
        return [str(c) for c in self.stock_returns.columns]

    @property
    def n_obs(self) -> int:
        return len(self.stock_returns)

    @property
    def n_stocks(self) -> int:
        return self.stock_returns.shape[1]

    def reorder(self, tickers: Sequence[str]) -> "CapmDataset":
        """Return a copy with the stock columns in the given order."""
        return CapmDataset(
            stock_returns=self.stock_returns[list(tickers)],
            market_returns=self.market_returns,
        )


def fetch_price_data(
    tickers: Iterable[str],
    start_date: str,
    end_date: Optional[str] = None,
    adjust: bool = True,
) -> pd.DataFrame:
    """
    Download historical price series for the requested tickers using yfinance.

    Args:
        tickers: Iterable of ticker symbols.
        start_date: Start of historical window (YYYY-MM-DD).
        end_date: Optional end of window; defaults to latest available date.
        adjust: Whether to use split/dividend adjusted closes.

    Returns:
        Pandas DataFrame of prices indexed by date, one column per ticker.
    """

    tickers = list(tickers)
    download = yf.download(
        tickers=tickers,
        start=start_date,
        end=end_date,
        progress=False,
        auto_adjust=adjust,
    )

    # yfinance returns different shapes for single vs multi tickers.
    field_name = "Close" if adjust else "Adj Close"
    if isinstance(download.columns, pd.MultiIndex):
        price_df = download[field_name].copy()
    else:
        price_df = download[[field_name]].rename(columns={field_name: tickers[0]})

    return price_df[tickers].dropna(how="all")


def download_price_table(
    tickers: Iterable[str],
    start_date: str,
    end_date: Optional[str],
    path: str,
    date_column: str = "Date",
) -> pd.DataFrame:
    """
    Fetch prices with yfinance and cache them as a CSV price table.

    Returns:
        The downloaded price DataFrame.
    """

    prices = fetch_price_data(tickers, start_date, end_date)
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    prices.index.name = date_column
    prices.to_csv(path)
    logger.info(f"[CapmData] Saved {len(prices)} rows x {prices.shape[1]} columns to {path}")
    return prices


def _read_table(path: str) -> pd.DataFrame:
    if not os.path.exists(path):
        raise FileNotFoundError(f"Price file not found: {path}")
    ext = os.path.splitext(path)[1].lower()
    if ext in (".xlsx", ".xls"):
        return pd.read_excel(path)
    return pd.read_csv(path)


def validate_price_table(prices: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    """
    Check that every required column is present and holds positive numbers.

    Args:
        prices: Raw price table.
        columns: Required column names.

    Returns:
        A float DataFrame containing exactly ``columns`` in the given order.

    Raises:
        PriceDataError: If a column is absent, or holds missing,
            non-numeric or non-positive values.
    """

    missing = [c for c in columns if c not in prices.columns]
    if missing:
        raise PriceDataError(f"Price table is missing columns: {', '.join(missing)}")

    if prices.empty:
        raise PriceDataError("Price table has no rows")

    selected = prices[list(columns)]
    numeric = selected.apply(pd.to_numeric, errors="coerce")

    non_numeric = (numeric.isna() & selected.notna()).any()
    if non_numeric.any():
        bad = ", ".join(non_numeric[non_numeric].index.astype(str))
        raise PriceDataError(f"Non-numeric prices in columns: {bad}")

    has_gaps = selected.isna().any()
    if has_gaps.any():
        bad = ", ".join(has_gaps[has_gaps].index.astype(str))
        raise PriceDataError(f"Missing prices in columns: {bad}")

    non_positive = (numeric <= 0).any()
    if non_positive.any():
        bad = ", ".join(non_positive[non_positive].index.astype(str))
        raise PriceDataError(f"Non-positive prices in columns: {bad}")

    return numeric.astype(float)


def load_price_table(
    path: str,
    columns: Sequence[str],
    rows: Optional[Tuple[int, int]] = None,
    date_column: str = "Date",
) -> pd.DataFrame:
    """
    Read adjusted closing prices from a CSV or Excel price table.

    Args:
        path: Table location (``.csv``, ``.xlsx`` or ``.xls``).
        columns: Columns to return, in order (stocks then market index).
        rows: Optional half-open positional row range ``(start, stop)``.
        date_column: Column used as the index when present.

    Returns:
        Validated price DataFrame indexed by date.
    """

    raw = _read_table(path)

    if rows is not None:
        start, stop = rows
        raw = raw.iloc[start:stop]

    if date_column in raw.columns:
        raw = raw.set_index(pd.to_datetime(raw[date_column])).drop(columns=[date_column])

    prices = validate_price_table(raw, columns)
    logger.info(
        f"[CapmData] Loaded {len(prices)} rows for {len(columns)} columns from {path}"
    )
    return prices


def compute_returns(price_df: pd.DataFrame) -> pd.DataFrame:
    """
    Convert a price DataFrame to simple percentage returns.

    Args:
        price_df: Price series indexed by date.

    Returns:
        DataFrame of returns, one row shorter than ``price_df``.
    """

    return price_df.pct_change().iloc[1:]


def prepare_capm_dataset(
    prices: pd.DataFrame,
    stock_columns: Sequence[str],
    market_column: str,
) -> CapmDataset:
    """
    Validate prices and turn them into aligned stock and market returns.

    Args:
        prices: Price table containing all stock columns and the market column.
        stock_columns: Stock tickers, in report order.
        market_column: Market index column.

    Returns:
        CapmDataset containing aligned return series.
    """

    columns = list(stock_columns) + [market_column]
    validated = validate_price_table(prices, columns)
    if len(validated) < 2:
        raise PriceDataError("At least two price rows are needed to compute returns")

    returns = compute_returns(validated)
    stock_returns = returns[list(stock_columns)]
    market_returns = returns[market_column]

    if not np.isfinite(stock_returns.to_numpy()).all():
        raise PriceDataError("Stock returns contain non-finite values")

    return CapmDataset(stock_returns=stock_returns, market_returns=market_returns)


__all__ = [
    "CapmDataset",
    "PriceDataError",
    "compute_returns",
    "download_price_table",
    "fetch_price_data",
    "load_price_table",
    "prepare_capm_dataset",
    "validate_price_table",
]
