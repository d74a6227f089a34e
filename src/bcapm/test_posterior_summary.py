"""Tests for posterior summaries and CAPM expected returns."""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from bcapm.capm_data import CapmDataset
from bcapm.posterior_summary import (
    annualise,
    calculate_beta,
    capm_expected_returns,
    classical_capm_table,
    print_classical_comparison,
    print_posterior_report,
    residuals,
    summarise_posterior,
)

TICKERS = ["AAA", "BBB", "CCC"]


def _draws(seed: int = 0, chains: int = 3, draws: int = 400) -> np.ndarray:
    rng = np.random.default_rng(seed)
    centres = np.array([0.8, 1.0, 1.3])
    scales = np.array([0.05, 0.10, 0.20])
    return centres + scales * rng.standard_normal((chains, draws, len(centres)))


def test_expected_return_is_beta_times_market_mean():
    assert capm_expected_returns(1.5, 0.0004) == pytest.approx(0.0006)
    assert annualise(0.0006) == pytest.approx(0.0006 * 252)
    assert annualise(0.0006, trading_days=250) == pytest.approx(0.15)


def test_expected_return_with_risk_free_rate():
    betas = pd.Series({"AAA": 0.5, "BBB": 2.0})
    expected = capm_expected_returns(betas, market_return=0.10, risk_free_rate=0.02)
    assert expected["AAA"] == pytest.approx(0.02 + 0.5 * 0.08)
    assert expected["BBB"] == pytest.approx(0.02 + 2.0 * 0.08)


def test_pooled_size_is_chains_times_draws(make_posterior):
    posterior = make_posterior(_draws(chains=3, draws=400), TICKERS)

    assert len(posterior) == 1200
    assert posterior.pooled().shape == (1200, 3)
    assert list(posterior.pooled().columns) == TICKERS


def test_pooled_concatenates_chains_in_order(make_posterior):
    draws = _draws(chains=2, draws=5)
    pooled = make_posterior(draws, TICKERS).pooled()

    np.testing.assert_allclose(pooled["BBB"].to_numpy()[:5], draws[0, :, 1])
    np.testing.assert_allclose(pooled["BBB"].to_numpy()[5:], draws[1, :, 1])


def test_summarise_posterior_table(make_posterior):
    draws = _draws()
    posterior = make_posterior(draws, TICKERS)
    market = pd.Series([0.001, -0.002, 0.003, 0.0])

    summary = summarise_posterior(posterior, market)
    pooled = draws.reshape(-1, 3)

    np.testing.assert_allclose(summary.table["Beta_Mean"], pooled.mean(axis=0))
    np.testing.assert_allclose(summary.table["Beta_Std"], pooled.std(axis=0, ddof=1))
    assert summary.market_mean_return == pytest.approx(0.0005)
    np.testing.assert_allclose(
        summary.table["Daily_Expected_Return"], pooled.mean(axis=0) * 0.0005
    )
    np.testing.assert_allclose(
        summary.expected_returns, pooled.mean(axis=0) * 0.0005 * 252
    )
    assert summary.table.index.name == "Ticker"


def test_summary_is_invariant_to_stock_order(make_posterior):
    draws = _draws(seed=11)
    market = pd.Series([0.002, 0.001, -0.001])
    original = summarise_posterior(make_posterior(draws, TICKERS), market)

    order = [2, 0, 1]
    permuted_tickers = [TICKERS[i] for i in order]
    permuted = summarise_posterior(
        make_posterior(draws[:, :, order], permuted_tickers), market
    )

    assert list(permuted.table.index) == permuted_tickers
    pd.testing.assert_frame_equal(permuted.table.loc[TICKERS], original.table)


def test_summarise_posterior_rejects_empty_market(make_posterior):
    with pytest.raises(ValueError):
        summarise_posterior(make_posterior(_draws(), TICKERS), pd.Series([], dtype=float))


def _linear_dataset() -> CapmDataset:
    rng = np.random.default_rng(5)
    market = pd.Series(rng.normal(0, 0.01, size=100), name="MKT")
    stocks = pd.DataFrame(
        {"AAA": 0.001 + 1.5 * market, "BBB": -0.5 * market},
    )
    return CapmDataset(stock_returns=stocks, market_returns=market)


def test_calculate_beta_recovers_exact_slope():
    dataset = _linear_dataset()
    betas = calculate_beta(dataset.stock_returns, dataset.market_returns)
    assert betas["AAA"] == pytest.approx(1.5)
    assert betas["BBB"] == pytest.approx(-0.5)


def test_calculate_beta_rejects_flat_benchmark():
    flat = pd.Series([0.0] * 10)
    with pytest.raises(ValueError, match="variance is zero"):
        calculate_beta(pd.DataFrame({"AAA": np.arange(10.0)}), flat)


def test_classical_capm_table():
    table = classical_capm_table(_linear_dataset())

    assert list(table.index) == ["AAA", "BBB"]
    assert table.loc["AAA", "OLS_Beta"] == pytest.approx(1.5)
    assert table.loc["AAA", "OLS_Alpha"] == pytest.approx(0.001)
    assert table.loc["BBB", "R_Squared"] == pytest.approx(1.0)


def test_residuals_remove_market_component():
    dataset = _linear_dataset()
    resid = residuals(dataset, pd.Series({"BBB": -0.5, "AAA": 1.5}))

    np.testing.assert_allclose(resid["AAA"].to_numpy(), 0.001, atol=1e-12)
    np.testing.assert_allclose(resid["BBB"].to_numpy(), 0.0, atol=1e-12)


def test_report_printing(make_posterior, capsys):
    dataset = _linear_dataset()
    posterior = make_posterior(_draws(chains=2, draws=50)[:, :, :2], ["AAA", "BBB"])
    summary = summarise_posterior(posterior, dataset.market_returns)

    print_posterior_report(summary)
    print_classical_comparison(summary, classical_capm_table(dataset))

    out = capsys.readouterr().out
    assert "POSTERIOR BETA ESTIMATES" in out
    assert "ANNUALISED EXPECTED RETURNS" in out
    assert "BAYESIAN VS LEAST-SQUARES BETA" in out
    assert "AAA" in out and "BBB" in out


def test_classical_beta_matches_regression_slope():
    rng = np.random.default_rng(8)
    market = pd.Series(rng.normal(0, 0.01, size=200), name="MKT")
    stocks = pd.DataFrame({"AAA": 0.9 * market + rng.normal(0, 0.005, size=200)})
    dataset = CapmDataset(stock_returns=stocks, market_returns=market)

    table = classical_capm_table(dataset)

    assert table.loc["AAA", "OLS_Beta"] == pytest.approx(
        calculate_beta(stocks, market)["AAA"]
    )
    assert table.loc["AAA", "OLS_Beta"] == pytest.approx(0.9, abs=0.1)


def test_classical_capm_table_rejects_flat_market():
    market = pd.Series(np.zeros(20), name="MKT")
    dataset = CapmDataset(
        stock_returns=pd.DataFrame({"AAA": np.linspace(-0.01, 0.01, 20)}),
        market_returns=market,
    )
    with pytest.raises(ValueError, match="variance is zero"):
        classical_capm_table(dataset)
