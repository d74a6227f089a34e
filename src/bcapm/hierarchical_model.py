"""
Hierarchical Bayesian CAPM
==========================

Declares the hierarchical regression of stock returns on market returns
and samples it with PyMC.

    r[t, j]  ~ Normal(beta[j] * m[t], precision=tau[j])
    beta[j]  ~ Normal(mu_beta, precision=tau_beta)
    tau[j]   ~ Gamma(0.1, 0.001)
    mu_beta  ~ Normal(1, precision=1e-6)
    tau_beta ~ Uniform(1, 100)

Every stock's beta shares the parent ``Normal(mu_beta, tau_beta)``, so the
stocks pool information through the hyper-parameters.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

import arviz as az
import numpy as np
import pandas as pd
import pymc as pm

from bcapm.capm_data import CapmDataset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelSpec:
    """Fixed prior constants of the hierarchical model."""

    tau_shape: float = 0.1
    tau_rate: float = 0.001
    mu_beta_mean: float = 1.0
    mu_beta_precision: float = 1e-6
    tau_beta_lower: float = 1.0
    tau_beta_upper: float = 100.0


DEFAULT_MODEL_SPEC = ModelSpec()


@dataclass(frozen=True)
class SamplerSettings:
    """
    MCMC run configuration.

    Attributes:
        chains: Number of independent chains.
        burn_in: Tuning iterations discarded at the start of every chain.
        draws: Posterior draws kept per chain.
        random_seed: Seed for reproducible runs.
        cores: Processes used by PyMC; 1 samples the chains sequentially.
        init_beta: Initial value of every beta.
        init_tau: Initial residual precision of every stock.
        init_mu_beta: Initial hyper-mean.
        init_tau_beta: Initial hyper-precision.
    """

    chains: int = 3
    burn_in: int = 1000
    draws: int = 5000
    random_seed: Optional[int] = None
    cores: int = 1
    init_beta: float = 1.0
    init_tau: float = 1e4
    init_mu_beta: float = 1.0
    init_tau_beta: float = 10.0

    def initial_values(self, n_stocks: int) -> Dict[str, object]:
        return {
            "beta": np.full(n_stocks, self.init_beta),
            "tau": np.full(n_stocks, self.init_tau),
            "mu_beta": np.asarray(self.init_mu_beta),
            "tau_beta": np.asarray(self.init_tau_beta),
        }


class PosteriorSamples:
    """Posterior draws of the hierarchical model, labelled by ticker."""

    def __init__(self, idata: az.InferenceData, tickers: List[str]):
        self.idata = idata
        self.tickers = list(tickers)

    @property
    def n_chains(self) -> int:
        return int(self.idata.posterior.sizes["chain"])

    @property
    def n_draws(self) -> int:
        return int(self.idata.posterior.sizes["draw"])

    def __len__(self) -> int:
        return self.n_chains * self.n_draws

    def beta_draws(self) -> np.ndarray:
        """Beta draws shaped ``(chain, draw, stock)`` in ticker order."""
        beta = self.idata.posterior["beta"].sel(stock=self.tickers)
        return beta.transpose("chain", "draw", "stock").values

    def pooled(self) -> pd.DataFrame:
        """Chains concatenated into one DataFrame, one column per ticker."""
        draws = self.beta_draws()
        return pd.DataFrame(
            draws.reshape(-1, draws.shape[-1]),
            columns=self.tickers,
        )

    def __repr__(self) -> str:
        return (
            f"PosteriorSamples({len(self.tickers)} stocks, "
            f"chains={self.n_chains}, draws={self.n_draws})"
        )


def model_data(dataset: CapmDataset) -> Dict[str, object]:
    """
    Data handed to the sampler.

    Returns:
        Dictionary with the return matrix ``r``, row count ``N``,
        market-return vector ``m`` and stock count ``J``.
    """

    return {
        "r": dataset.stock_returns.to_numpy(dtype=float),
        "N": dataset.n_obs,
        "m": dataset.market_returns.to_numpy(dtype=float),
        "J": dataset.n_stocks,
    }


def build_model(
    dataset: CapmDataset, spec: ModelSpec = DEFAULT_MODEL_SPEC
) -> pm.Model:
    """
    Declare the hierarchical CAPM for the given returns.

    Args:
        dataset: Aligned stock and market returns.
        spec: Prior constants.

    Returns:
        A PyMC model with ``stock`` and ``time`` coordinates.
    """

    data = model_data(dataset)
    market = np.asarray(data["m"]).reshape(-1, 1)
    coords = {"stock": dataset.tickers, "time": np.arange(data["N"])}

    with pm.Model(coords=coords) as model:
        tau = pm.Gamma("tau", alpha=spec.tau_shape, beta=spec.tau_rate, dims="stock")
        mu_beta = pm.Normal("mu_beta", mu=spec.mu_beta_mean, tau=spec.mu_beta_precision)
        tau_beta = pm.Uniform(
            "tau_beta", lower=spec.tau_beta_lower, upper=spec.tau_beta_upper
        )
        beta = pm.Normal("beta", mu=mu_beta, tau=tau_beta, dims="stock")

        pm.Normal(
            "returns",
            mu=beta * market,
            tau=tau,
            observed=data["r"],
            dims=("time", "stock"),
        )

    return model


def fit_hierarchical_capm(
    dataset: CapmDataset,
    spec: ModelSpec = DEFAULT_MODEL_SPEC,
    settings: SamplerSettings = SamplerSettings(),
) -> PosteriorSamples:
    """
    Sample the hierarchical CAPM posterior.

    Every chain starts from the same fixed values without jitter, runs
    ``settings.burn_in`` tuning iterations that are discarded, then keeps
    ``settings.draws`` draws.

    Args:
        dataset: Aligned stock and market returns.
        spec: Prior constants.
        settings: Sampler configuration.

    Returns:
        PosteriorSamples holding ``settings.chains * settings.draws`` draws.
    """

    model = build_model(dataset, spec)
    logger.info(
        f"[Model] Sampling {dataset.n_stocks} stocks x {dataset.n_obs} days: "
        f"chains={settings.chains}, burn_in={settings.burn_in}, draws={settings.draws}"
    )

    start_time = time.time()
    with model:
        idata = pm.sample(
            draws=settings.draws,
            tune=settings.burn_in,
            chains=settings.chains,
            cores=settings.cores,
            initvals=settings.initial_values(dataset.n_stocks),
            init="adapt_diag",
            random_seed=settings.random_seed,
            progressbar=False,
            compute_convergence_checks=False,
        )
    logger.info(f"[Model] Sampling finished in {time.time() - start_time:.1f}s")

    return PosteriorSamples(idata, dataset.tickers)


__all__ = [
    "DEFAULT_MODEL_SPEC",
    "ModelSpec",
    "PosteriorSamples",
    "SamplerSettings",
    "build_model",
    "fit_hierarchical_capm",
    "model_data",
]
