"""
CAPM Posterior Summaries
========================

Tools to turn posterior beta draws into per-stock estimates and CAPM
expected returns, and to compute the classical least-squares CAPM
statistics they are compared against.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

import numpy as np
import pandas as pd
from scipy import stats

from bcapm.capm_data import CapmDataset
from bcapm.hierarchical_model import PosteriorSamples


@dataclass
class CapmPosteriorSummary:
    """
    Stores the key posterior CAPM statistics for a universe of stocks.

    Attributes:
        table: DataFrame indexed by ticker with columns ``Beta_Mean``,
            ``Beta_Std``, ``Daily_Expected_Return`` and
            ``Annual_Expected_Return``.
        market_mean_return: Mean daily market return used for the estimates.
        trading_days: Periods per year used to annualise.
    """

    table: pd.DataFrame
    market_mean_return: float
    trading_days: int

    @property
    def betas(self) -> pd.Series:
        return self.table["Beta_Mean"]

    @property
    def expected_returns(self) -> pd.Series:
        return self.table["Annual_Expected_Return"]


def calculate_beta(
    asset_returns: pd.DataFrame, benchmark_returns: pd.Series
) -> pd.Series:
    """
    Compute regression betas using covariance / variance.

    Args:
        asset_returns: DataFrame where each column is an asset return series.
        benchmark_returns: Series of benchmark returns aligned with asset_returns.

    Returns:
        Pandas Series of betas indexed by asset symbol.
    """

    benchmark_var = benchmark_returns.var()
    if np.isclose(benchmark_var, 0):
        raise ValueError("Benchmark variance is zero; cannot compute beta.")
    cov = asset_returns.apply(lambda col: col.cov(benchmark_returns))
    return cov / benchmark_var


def capm_expected_returns(
    betas: Union[pd.Series, float],
    market_return: float,
    risk_free_rate: float = 0.0,
) -> Union[pd.Series, float]:
    """
    Compute CAPM expected returns: E[R_i] = R_f + beta_i * (E[R_m] - R_f).

    With the default zero risk-free rate this is ``beta * E[R_m]``.

    Args:
        betas: Series of asset betas (or a single beta).
        market_return: Expected market return over the same period.
        risk_free_rate: Risk-free rate over the same period.

    Returns:
        Expected returns, same shape as ``betas``.
    """

    return risk_free_rate + betas * (market_return - risk_free_rate)


def annualise(daily: Union[pd.Series, float], trading_days: int = 252):
    """Scale a daily expected return to a yearly one."""
    return daily * trading_days


def summarise_posterior(
    posterior: PosteriorSamples,
    market_returns: pd.Series,
    trading_days: int = 252,
    risk_free_rate: float = 0.0,
) -> CapmPosteriorSummary:
    """
    Summarise pooled beta draws and derive CAPM expected returns.

    Args:
        posterior: Posterior draws from the hierarchical model.
        market_returns: Daily market returns the model was fitted on.
        trading_days: Trading days per year.
        risk_free_rate: Daily risk-free rate.

    Returns:
        CapmPosteriorSummary indexed by ticker.
    """

    if len(market_returns) == 0:
        raise ValueError("market_returns is empty; cannot estimate expected returns.")

    pooled = posterior.pooled()
    market_mean = float(market_returns.mean())

    beta_mean = pooled.mean()
    daily = capm_expected_returns(beta_mean, market_mean, risk_free_rate)

    table = pd.DataFrame(
        {
            "Beta_Mean": beta_mean,
            "Beta_Std": pooled.std(ddof=1),
            "Daily_Expected_Return": daily,
            "Annual_Expected_Return": annualise(daily, trading_days),
        }
    )
    table.index.name = "Ticker"

    return CapmPosteriorSummary(
        table=table, market_mean_return=market_mean, trading_days=trading_days
    )


def classical_capm_table(dataset: CapmDataset) -> pd.DataFrame:
    """
    Ordinary least-squares CAPM fit per stock, for comparison with the
    hierarchical estimates.

    Returns:
        DataFrame indexed by ticker with ``OLS_Beta``, ``OLS_Alpha``,
        ``Std_Error`` and ``R_Squared``.
    """

    market = dataset.market_returns
    betas = calculate_beta(dataset.stock_returns, market)

    rows = {}
    for ticker in dataset.tickers:
        fit = stats.linregress(market.to_numpy(), dataset.stock_returns[ticker].to_numpy())
        rows[ticker] = {
            "OLS_Beta": betas[ticker],
            "OLS_Alpha": fit.intercept,
            "Std_Error": fit.stderr,
            "R_Squared": fit.rvalue**2,
        }

    table = pd.DataFrame.from_dict(rows, orient="index")
    table.index.name = "Ticker"
    return table


def residuals(dataset: CapmDataset, betas: pd.Series) -> pd.DataFrame:
    """Residuals ``r[t, j] - beta[j] * m[t]`` for every stock."""
    fitted = np.outer(dataset.market_returns.to_numpy(), betas[dataset.tickers].to_numpy())
    return dataset.stock_returns - fitted


def print_posterior_report(summary: CapmPosteriorSummary):
    """
    Prints the posterior beta table and the annualised expected returns.

    Args:
        summary: Output of ``summarise_posterior``.
    """
    print("\n" + "=" * 60)
    print("POSTERIOR BETA ESTIMATES")
    print("=" * 60)
    print(f"  {'Ticker':<10}{'Mean':>12}{'Std Dev':>12}")
    for ticker, row in summary.table.iterrows():
        print(f"  {ticker:<10}{row['Beta_Mean']:>12.4f}{row['Beta_Std']:>12.4f}")

    print("\n" + "=" * 60)
    print("ANNUALISED EXPECTED RETURNS")
    print("=" * 60)
    print(f"  Mean daily market return: {summary.market_mean_return:.5%}")
    print(f"  Trading days per year:    {summary.trading_days}")
    print()
    for ticker, value in summary.expected_returns.items():
        print(f"  {ticker:<10}{value:>12.2%}")
    print("\n" + "=" * 60 + "\n")


def print_classical_comparison(summary: CapmPosteriorSummary, ols: pd.DataFrame):
    """Prints Bayesian and least-squares betas side by side."""
    print("\n" + "=" * 60)
    print("BAYESIAN VS LEAST-SQUARES BETA")
    print("=" * 60)
    print(f"  {'Ticker':<10}{'Bayes':>10}{'OLS':>10}{'OLS SE':>10}{'R^2':>10}")
    for ticker in summary.table.index:
        print(
            f"  {ticker:<10}"
            f"{summary.table.loc[ticker, 'Beta_Mean']:>10.3f}"
            f"{ols.loc[ticker, 'OLS_Beta']:>10.3f}"
            f"{ols.loc[ticker, 'Std_Error']:>10.3f}"
            f"{ols.loc[ticker, 'R_Squared']:>10.3f}"
        )
    print("\n" + "=" * 60 + "\n")


__all__ = [
    "CapmPosteriorSummary",
    "annualise",
    "calculate_beta",
    "capm_expected_returns",
    "classical_capm_table",
    "print_classical_comparison",
    "print_posterior_report",
    "residuals",
    "summarise_posterior",
]
