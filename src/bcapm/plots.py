"""
Report plots. Every function saves a PNG into the output folder and
returns a SavedPlot.
"""

import math
import os
from typing import Optional

import arviz as az
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from bcapm.capm_data import CapmDataset
from bcapm.hierarchical_model import PosteriorSamples
from bcapm.posterior_summary import residuals
from config import OUTPUT_DIR


class SavedPlot:
    """Wrapper for saved plot paths with display capability."""

    def __init__(self, path: str):
        self.path = path

    def show(self):
        """Display the plot in Jupyter or print path otherwise."""
        try:
            from IPython.display import Image, display

            display(Image(filename=self.path))
        except ImportError:
            print(f"Plot saved to: {self.path}")

    def __str__(self) -> str:
        return self.path


def _save(fig, filename: str, output_dir: Optional[str]) -> SavedPlot:
    target_dir = output_dir or OUTPUT_DIR
    os.makedirs(target_dir, exist_ok=True)
    path = os.path.join(target_dir, filename)
    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)
    return SavedPlot(path)


def plot_correlation_matrix(
    returns: pd.DataFrame, output_dir: Optional[str] = None
) -> SavedPlot:
    """Heatmap of the pairwise return correlations."""
    corr = returns.corr()
    labels = [str(c) for c in corr.columns]

    fig, ax = plt.subplots(figsize=(9, 8))
    image = ax.imshow(corr.values, cmap="coolwarm", vmin=-1, vmax=1)
    ax.set_xticks(range(len(labels)))
    ax.set_yticks(range(len(labels)))
    ax.set_xticklabels(labels, rotation=45, ha="right")
    ax.set_yticklabels(labels)

    for i in range(len(labels)):
        for j in range(len(labels)):
            ax.text(j, i, f"{corr.values[i, j]:.2f}", ha="center", va="center", fontsize=8)

    fig.colorbar(image, ax=ax, fraction=0.046, pad=0.04)
    ax.set_title("Daily Return Correlations")
    return _save(fig, "correlation_matrix.png", output_dir)


def plot_trace(posterior: PosteriorSamples, output_dir: Optional[str] = None) -> SavedPlot:
    """Trace and density of every beta, one line per chain."""
    axes = az.plot_trace(posterior.idata, var_names=["beta"], compact=True)
    fig = np.atleast_1d(axes).ravel()[0].figure
    fig.set_size_inches(12, 6)
    return _save(fig, "beta_trace.png", output_dir)


def plot_autocorrelation(
    posterior: PosteriorSamples, max_lag: int = 50, output_dir: Optional[str] = None
) -> SavedPlot:
    """Autocorrelation of the pooled beta draws."""
    axes = az.plot_autocorr(
        posterior.idata, var_names=["beta"], combined=True, max_lag=max_lag
    )
    fig = np.atleast_1d(axes).ravel()[0].figure
    return _save(fig, "beta_autocorrelation.png", output_dir)


def plot_gelman_rubin(path: pd.DataFrame, output_dir: Optional[str] = None) -> SavedPlot:
    """Shrink factor against iteration for every ticker."""
    fig, ax = plt.subplots(figsize=(10, 6))
    for ticker in path.columns:
        ax.plot(path.index, path[ticker], label=str(ticker), linewidth=1.5)
    ax.axhline(1.0, color="black", linestyle="--", linewidth=1)
    ax.axhline(1.1, color="red", linestyle=":", linewidth=1)
    ax.set_xlabel("Last iteration in window")
    ax.set_ylabel("Shrink factor (R-hat)")
    ax.set_title("Gelman-Rubin Diagnostic")
    ax.legend(loc="best", fontsize=8, ncol=2)
    ax.grid(alpha=0.3)
    return _save(fig, "gelman_rubin.png", output_dir)


def plot_posterior_betas(
    posterior: PosteriorSamples, output_dir: Optional[str] = None
) -> SavedPlot:
    """Forest plot of the pooled beta posteriors."""
    axes = az.plot_forest(posterior.idata, var_names=["beta"], combined=True, hdi_prob=0.95)
    fig = np.atleast_1d(axes).ravel()[0].figure
    return _save(fig, "beta_forest.png", output_dir)


def plot_residuals(
    dataset: CapmDataset, betas: pd.Series, output_dir: Optional[str] = None
) -> SavedPlot:
    """Residual against market return, one panel per stock."""
    resid = residuals(dataset, betas)
    market = dataset.market_returns.to_numpy()

    n = len(dataset.tickers)
    n_cols = min(5, n)
    n_rows = math.ceil(n / n_cols)
    fig, axes = plt.subplots(
        n_rows, n_cols, figsize=(3.2 * n_cols, 3 * n_rows), sharex=True, squeeze=False
    )

    for ax, ticker in zip(axes.ravel(), dataset.tickers):
        ax.scatter(market, resid[ticker], s=6, alpha=0.6)
        ax.axhline(0, color="black", linewidth=0.8)
        ax.set_title(f"{ticker} (beta={betas[ticker]:.2f})", fontsize=9)
        ax.grid(alpha=0.3)
    for ax in axes.ravel()[n:]:
        ax.set_visible(False)

    fig.supxlabel("Market return")
    fig.supylabel("Residual")
    return _save(fig, "residuals.png", output_dir)


__all__ = [
    "SavedPlot",
    "plot_autocorrelation",
    "plot_correlation_matrix",
    "plot_gelman_rubin",
    "plot_posterior_betas",
    "plot_residuals",
    "plot_trace",
]
