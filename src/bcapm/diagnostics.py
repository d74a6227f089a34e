"""
MCMC Convergence Diagnostics

Potential scale reduction (R-hat), effective sample size and
autocorrelation for the beta draws. The results are advisory: nothing in
the report changes when they look poor, they are printed for review.
"""

import logging
from typing import List

import arviz as az
import numpy as np
import pandas as pd

from bcapm.hierarchical_model import PosteriorSamples

logger = logging.getLogger(__name__)


def chain_autocorrelation(posterior: PosteriorSamples, max_lag: int = 50) -> pd.DataFrame:
    """
    Autocorrelation of each beta, averaged over chains.

    Args:
        posterior: Posterior draws.
        max_lag: Largest lag reported (capped at draws - 1).

    Returns:
        DataFrame indexed by lag (0..max_lag), one column per ticker.
    """
    draws = posterior.beta_draws()
    max_lag = min(max_lag, draws.shape[1] - 1)

    columns = {}
    for j, ticker in enumerate(posterior.tickers):
        per_chain = [az.autocorr(draws[c, :, j])[: max_lag + 1] for c in range(draws.shape[0])]
        columns[ticker] = np.mean(per_chain, axis=0)

    result = pd.DataFrame(columns)
    result.index.name = "Lag"
    return result


def convergence_table(posterior: PosteriorSamples) -> pd.DataFrame:
    """
    R-hat, bulk/tail effective sample size and lag-1/lag-10 autocorrelation
    per ticker.
    """
    idata = posterior.idata
    tickers = posterior.tickers

    rhat = az.rhat(idata, var_names=["beta"])["beta"].sel(stock=tickers).values
    ess_bulk = az.ess(idata, var_names=["beta"], method="bulk")["beta"].sel(stock=tickers).values
    ess_tail = az.ess(idata, var_names=["beta"], method="tail")["beta"].sel(stock=tickers).values
    acf = chain_autocorrelation(posterior, max_lag=10)

    table = pd.DataFrame(
        {
            "R_hat": rhat,
            "ESS_Bulk": ess_bulk,
            "ESS_Tail": ess_tail,
            "Autocorr_Lag1": acf.iloc[min(1, len(acf) - 1)].values,
            "Autocorr_Lag10": acf.iloc[-1].values,
        },
        index=pd.Index(tickers, name="Ticker"),
    )
    return table


def gelman_rubin_path(
    posterior: PosteriorSamples, n_points: int = 20, min_draws: int = 50
) -> pd.DataFrame:
    """
    Gelman-Rubin shrink factor computed on growing windows of draws.

    The first window holds ``min_draws`` iterations, the last one the whole
    chain. Needs at least two chains.

    Returns:
        DataFrame indexed by the last iteration of each window, one column
        per ticker.
    """
    draws = posterior.beta_draws()
    n_chains, n_draws, _ = draws.shape
    if n_chains < 2:
        raise ValueError("Gelman-Rubin diagnostics need at least two chains.")

    start = min(min_draws, n_draws)
    ends = np.unique(np.linspace(start, n_draws, num=n_points).astype(int))

    rows = []
    for end in ends:
        rows.append(
            [
                az.rhat(draws[:, :end, j], method="identity")
                for j in range(len(posterior.tickers))
            ]
        )

    result = pd.DataFrame(rows, index=ends, columns=posterior.tickers, dtype=float)
    result.index.name = "Iteration"
    return result


def check_convergence(table: pd.DataFrame, threshold: float = 1.1) -> List[str]:
    """
    Log a warning for every ticker whose R-hat exceeds ``threshold``.

    Returns:
        Tickers that look unconverged.
    """
    flagged = [str(t) for t in table.index[table["R_hat"] > threshold]]
    if flagged:
        logger.warning(
            f"[Diagnostics] R-hat above {threshold} for: {', '.join(flagged)}; "
            "inspect the trace plots before relying on these estimates"
        )
    else:
        logger.info(f"[Diagnostics] All R-hat values at or below {threshold}")
    return flagged


def print_diagnostics_report(table: pd.DataFrame):
    """Prints the convergence table."""
    print("\n" + "=" * 70)
    print("CONVERGENCE DIAGNOSTICS")
    print("=" * 70)
    print(
        f"  {'Ticker':<10}{'R-hat':>9}{'ESS bulk':>11}{'ESS tail':>11}"
        f"{'ACF(1)':>10}{'ACF(10)':>10}"
    )
    for ticker, row in table.iterrows():
        print(
            f"  {ticker:<10}{row['R_hat']:>9.4f}{row['ESS_Bulk']:>11.0f}"
            f"{row['ESS_Tail']:>11.0f}{row['Autocorr_Lag1']:>10.3f}"
            f"{row['Autocorr_Lag10']:>10.3f}"
        )
    print("\n" + "=" * 70 + "\n")
