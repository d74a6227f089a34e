"""
Bayesian CAPM Package
=====================

Price loading, hierarchical Bayesian CAPM fitting, posterior summaries,
convergence diagnostics and report plots.
"""

from .capm_data import (
    CapmDataset,
    PriceDataError,
    compute_returns,
    download_price_table,
    fetch_price_data,
    load_price_table,
    prepare_capm_dataset,
    validate_price_table,
)
from .hierarchical_model import (
    DEFAULT_MODEL_SPEC,
    ModelSpec,
    PosteriorSamples,
    SamplerSettings,
    build_model,
    fit_hierarchical_capm,
    model_data,
)
from .posterior_summary import (
    CapmPosteriorSummary,
    annualise,
    calculate_beta,
    capm_expected_returns,
    classical_capm_table,
    summarise_posterior,
)

__all__ = [
    "CapmDataset",
    "CapmPosteriorSummary",
    "DEFAULT_MODEL_SPEC",
    "ModelSpec",
    "PosteriorSamples",
    "PriceDataError",
    "SamplerSettings",
    "annualise",
    "build_model",
    "calculate_beta",
    "capm_expected_returns",
    "classical_capm_table",
    "compute_returns",
    "download_price_table",
    "fetch_price_data",
    "fit_hierarchical_capm",
    "load_price_table",
    "model_data",
    "prepare_capm_dataset",
    "summarise_posterior",
    "validate_price_table",
]
