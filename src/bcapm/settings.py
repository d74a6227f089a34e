"""Analysis settings built from ``config.py`` defaults and optional YAML overrides."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

import config

logger = logging.getLogger(__name__)


class SettingsError(ValueError):
    """Raised when the YAML overrides cannot be applied."""


@dataclass(frozen=True)
class AnalysisSettings:
    """All knobs of a report run."""

    stock_tickers: List[str] = field(default_factory=lambda: list(config.STOCK_TICKERS))
    market_ticker: str = config.MARKET_TICKER
    price_file: str = config.PRICE_FILE
    date_column: str = config.DATE_COLUMN
    start_date: str = config.DEFAULT_START_DATE
    end_date: str = config.DEFAULT_END_DATE
    price_rows: Optional[Tuple[int, int]] = config.PRICE_ROWS
    risk_free_rate: float = config.DEFAULT_RISK_FREE_RATE
    trading_days: int = config.TRADING_DAYS_PER_YEAR
    chains: int = config.SAMPLER_CHAINS
    burn_in: int = config.SAMPLER_BURN_IN
    draws: int = config.SAMPLER_DRAWS
    random_seed: Optional[int] = config.SAMPLER_SEED
    rhat_threshold: float = config.RHAT_WARNING_THRESHOLD
    output_dir: str = config.OUTPUT_DIR

    @property
    def columns(self) -> List[str]:
        """Stock columns followed by the market column."""
        return list(self.stock_tickers) + [self.market_ticker]


def _validate(settings: AnalysisSettings) -> AnalysisSettings:
    if not settings.stock_tickers:
        raise SettingsError("stock_tickers must list at least one ticker")
    if len(set(settings.stock_tickers)) != len(settings.stock_tickers):
        raise SettingsError("stock_tickers contains duplicates")
    if settings.market_ticker in settings.stock_tickers:
        raise SettingsError(
            f"market_ticker '{settings.market_ticker}' is also listed as a stock"
        )
    for name in ("chains", "draws", "trading_days"):
        if getattr(settings, name) < 1:
            raise SettingsError(f"{name} must be a positive integer")
    if settings.burn_in < 0:
        raise SettingsError("burn_in must not be negative")
    if settings.price_rows is not None:
        start, stop = settings.price_rows
        if start < 0 or stop <= start:
            raise SettingsError(f"Invalid price_rows range: {settings.price_rows}")
    return settings


_INT_FIELDS = ("trading_days", "chains", "burn_in", "draws")
_FLOAT_FIELDS = ("risk_free_rate", "rhat_threshold")
_STR_FIELDS = ("market_ticker", "price_file", "date_column", "start_date", "end_date", "output_dir")


def _coerce(data: Dict[str, Any]) -> Dict[str, Any]:
    """Convert YAML values to the field types, raising SettingsError on failure."""
    coerced = dict(data)
    try:
        for key in _INT_FIELDS:
            if key in coerced:
                coerced[key] = int(coerced[key])
        for key in _FLOAT_FIELDS:
            if key in coerced:
                coerced[key] = float(coerced[key])
        for key in _STR_FIELDS:
            if key in coerced:
                if coerced[key] is None or isinstance(coerced[key], (list, dict)):
                    raise TypeError(f"{key} must be a single value")
                coerced[key] = str(coerced[key])
        if coerced.get("random_seed") is not None:
            coerced["random_seed"] = int(coerced["random_seed"])
        if coerced.get("price_rows") is not None:
            rows = coerced["price_rows"]
            if not isinstance(rows, (list, tuple)) or len(rows) != 2:
                raise SettingsError("price_rows must be a [start, stop] pair")
            coerced["price_rows"] = (int(rows[0]), int(rows[1]))
        if "stock_tickers" in coerced:
            tickers = coerced["stock_tickers"] or []
            if not isinstance(tickers, (list, tuple)):
                raise TypeError("stock_tickers must be a list")
            coerced["stock_tickers"] = [str(t) for t in tickers]
    except SettingsError:
        raise
    except (TypeError, ValueError) as exc:
        raise SettingsError(f"Invalid setting value: {exc}") from exc
    return coerced


def load_settings(path: Optional[Path | str] = None) -> AnalysisSettings:
    """
    Build settings from defaults, applying YAML overrides when the file exists.

    Args:
        path: YAML file; defaults to ``config.SETTINGS_FILE``.

    Returns:
        Validated AnalysisSettings.
    """

    settings_path = Path(path) if path else Path(config.SETTINGS_FILE)
    settings = AnalysisSettings()

    if not settings_path.exists():
        logger.info(f"[Settings] No overrides at {settings_path}; using defaults")
        return _validate(settings)

    with open(settings_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise SettingsError(f"{settings_path} must contain a mapping")

    known = {f.name for f in fields(AnalysisSettings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise SettingsError(f"Unknown settings in {settings_path}: {', '.join(unknown)}")

    data = _coerce(data)
    for key in ("price_file", "output_dir"):
        if data.get(key) and not Path(data[key]).is_absolute():
            data[key] = str(Path(config.PROJECT_ROOT) / data[key])

    logger.info(f"[Settings] Applying {len(data)} override(s) from {settings_path}")
    return _validate(replace(settings, **data))


__all__ = ["AnalysisSettings", "SettingsError", "load_settings"]
