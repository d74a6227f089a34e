"""Shared fixtures for the bcapm tests."""

import sys
from pathlib import Path

import arviz as az
import matplotlib
import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

matplotlib.use("Agg")

from bcapm.capm_data import CapmDataset
from bcapm.hierarchical_model import PosteriorSamples


def posterior_from_draws(draws: np.ndarray, tickers) -> PosteriorSamples:
    """Wrap a ``(chain, draw, stock)`` array as PosteriorSamples."""
    idata = az.from_dict(
        posterior={"beta": draws},
        coords={"stock": list(tickers)},
        dims={"beta": ["stock"]},
    )
    return PosteriorSamples(idata, list(tickers))


@pytest.fixture
def make_posterior():
    return posterior_from_draws


@pytest.fixture(scope="module")
def synthetic_dataset():
    """Three stocks over 250 days; STOCK_C repeats STOCK_A exactly."""
    rng = np.random.default_rng(7)
    index = pd.bdate_range("2023-01-02", periods=250)
    market = pd.Series(rng.normal(0.0005, 0.01, size=250), index=index, name="MKT")
    noise_a = rng.normal(0, 0.01, size=250)
    noise_b = rng.normal(0, 0.01, size=250)
    stocks = pd.DataFrame(
        {
            "STOCK_A": 1.2 * market.values + noise_a,
            "STOCK_B": 0.7 * market.values + noise_b,
            "STOCK_C": 1.2 * market.values + noise_a,
        },
        index=index,
    )
    return CapmDataset(stock_returns=stocks, market_returns=market)
