"""
Configuration Module

This file stores static configuration variables for the Bayesian CAPM report.
"""

import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Ten stocks analysed in the report
STOCK_TICKERS = [
    "AAPL",
    "MSFT",
    "AMZN",
    "JPM",
    "XOM",
    "JNJ",
    "PG",
    "KO",
    "WMT",
    "GE",
]

# Market index column (S&P 500)
MARKET_TICKER = "^GSPC"

# Price table (adjusted closes, one column per ticker)
PRICE_FILE = os.path.join(PROJECT_ROOT, "data", "prices.csv")
DATE_COLUMN = "Date"

# One calendar year of prices, used when downloading the table
DEFAULT_START_DATE = "2023-01-01"
DEFAULT_END_DATE = "2024-01-01"

# Positional row range (start, stop) read from the price table; None reads all rows
PRICE_ROWS = None

# Risk-free rate; the report treats it as zero
DEFAULT_RISK_FREE_RATE = 0.0

# Trading days per year for annualization
TRADING_DAYS_PER_YEAR = 252

# MCMC settings
SAMPLER_CHAINS = 3
SAMPLER_BURN_IN = 1000
SAMPLER_DRAWS = 5000
SAMPLER_SEED = 20240101

# R-hat above this value is reported as a convergence warning
RHAT_WARNING_THRESHOLD = 1.1

# Folder for rendered plots
OUTPUT_DIR = os.path.join(PROJECT_ROOT, "outputs")

# Optional YAML overrides for the values above
SETTINGS_FILE = os.path.join(PROJECT_ROOT, "analysis.yaml")
