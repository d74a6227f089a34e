"""
Bayesian CAPM - Main Entry Point

This script runs the full report:
1. Load the price table (downloading it first if no local copy exists).
2. Convert prices to daily returns.
3. Fit the hierarchical Bayesian CAPM with MCMC.
4. Print posterior and diagnostic tables and save the plots.
"""

import logging
import os

import numpy as np

from bcapm import diagnostics, plots
from bcapm.capm_data import download_price_table, load_price_table, prepare_capm_dataset
from bcapm.hierarchical_model import SamplerSettings, fit_hierarchical_capm
from bcapm.posterior_summary import (
    classical_capm_table,
    print_classical_comparison,
    print_posterior_report,
    summarise_posterior,
)
from bcapm.settings import AnalysisSettings, load_settings

logger = logging.getLogger(__name__)


def load_dataset(settings: AnalysisSettings):
    """
    Loads the price table and prepares aligned returns.

    Args:
        settings: Report settings.
    """
    print("\n" + "=" * 70)
    print("DATA")
    print("=" * 70)

    if not os.path.exists(settings.price_file):
        print(f"\nNo price table at {settings.price_file}; downloading from Yahoo Finance...")
        download_price_table(
            settings.columns,
            settings.start_date,
            settings.end_date,
            settings.price_file,
            date_column=settings.date_column,
        )

    prices = load_price_table(
        settings.price_file,
        settings.columns,
        rows=settings.price_rows,
        date_column=settings.date_column,
    )
    dataset = prepare_capm_dataset(prices, settings.stock_tickers, settings.market_ticker)

    print(f"\n  Price rows:   {len(prices)}")
    print(f"  Return rows:  {dataset.n_obs}")
    print(f"  Stocks:       {', '.join(dataset.tickers)}")
    print(f"  Market index: {settings.market_ticker}")
    return dataset


def run_report(settings: AnalysisSettings):
    """
    Runs every stage of the Bayesian CAPM report.

    Returns:
        Dictionary with the dataset, posterior, summary tables and plots.
    """
    try:
        dataset = load_dataset(settings)
    except (FileNotFoundError, ValueError) as e:
        print(f"\nERROR: could not load price data: {e}")
        raise

    correlation_plot = plots.plot_correlation_matrix(
        dataset.stock_returns.join(dataset.market_returns), settings.output_dir
    )

    print("\n" + "=" * 70)
    print("MODEL FIT")
    print("=" * 70)
    sampler = SamplerSettings(
        chains=settings.chains,
        burn_in=settings.burn_in,
        draws=settings.draws,
        random_seed=settings.random_seed,
    )
    print(
        f"\n  Chains: {sampler.chains}  Burn-in: {sampler.burn_in}  "
        f"Draws per chain: {sampler.draws}"
    )
    posterior = fit_hierarchical_capm(dataset, settings=sampler)
    print(f"  Pooled posterior samples: {len(posterior)}")

    summary = summarise_posterior(
        posterior,
        dataset.market_returns,
        trading_days=settings.trading_days,
        risk_free_rate=settings.risk_free_rate / settings.trading_days,
    )
    print_posterior_report(summary)

    ols = None
    if np.isclose(dataset.market_returns.var(), 0):
        logger.warning(
            "[Report] Market returns have zero variance; skipping the least-squares comparison"
        )
    else:
        ols = classical_capm_table(dataset)
        print_classical_comparison(summary, ols)

    convergence = diagnostics.convergence_table(posterior)
    diagnostics.print_diagnostics_report(convergence)
    diagnostics.check_convergence(convergence, settings.rhat_threshold)

    saved = {
        "correlation": correlation_plot,
        "trace": plots.plot_trace(posterior, settings.output_dir),
        "autocorrelation": plots.plot_autocorrelation(posterior, output_dir=settings.output_dir),
        "forest": plots.plot_posterior_betas(posterior, settings.output_dir),
        "residuals": plots.plot_residuals(dataset, summary.betas, settings.output_dir),
    }
    if posterior.n_chains > 1:
        saved["gelman_rubin"] = plots.plot_gelman_rubin(
            diagnostics.gelman_rubin_path(posterior), settings.output_dir
        )

    print("Plots saved:")
    for name, plot in saved.items():
        print(f"  {name:<16} {plot}")

    return {
        "dataset": dataset,
        "posterior": posterior,
        "summary": summary,
        "ols": ols,
        "convergence": convergence,
        "plots": saved,
    }


def main():
    """
    Main execution block
    """
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    print("\n" + "#" * 70)
    print("# BAYESIAN CAPM - Hierarchical Beta Estimation Report")
    print("#" * 70)

    run_report(load_settings())

    print("\n" + "=" * 70)
    print("REPORT COMPLETE")
    print("=" * 70)


if __name__ == "__main__":
    main()
