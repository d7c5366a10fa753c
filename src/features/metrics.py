"""Reusable metric helpers for analytics tables."""
from __future__ import annotations

import numpy as np
import pandas as pd


def _replace_nonfinite(value, fill_value: float = np.nan):
    if isinstance(value, (pd.DataFrame, pd.Series)):
        return value.replace([np.inf, -np.inf], np.nan).fillna(fill_value)
    if np.isscalar(value) and not np.isfinite(value):
        return fill_value
    return value


def safe_div(numerator, denominator, fill_value: float = np.nan):
    """Divide and replace non-finite results with ``fill_value`` (defaults to NaN).

    Works for scalars as well as Series; ``x / 0`` never raises.
    """
    if np.isscalar(numerator) and np.isscalar(denominator):
        numerator = np.float64(numerator)
    with np.errstate(divide="ignore", invalid="ignore"):
        result = numerator / denominator
    return _replace_nonfinite(result, fill_value=fill_value)


def pct(numerator, denominator, decimals: int = 2):
    """Percentage ``numerator / denominator * 100`` rounded; NaN when undefined."""
    return np.round(safe_div(numerator, denominator) * 100, decimals)


def month_start(dates: pd.Series) -> pd.Series:
    """Floor timestamps to the first day of their calendar month."""
    return dates.dt.to_period("M").dt.to_timestamp()


def month_diff(later: pd.Series, earlier: pd.Series) -> pd.Series:
    """Whole calendar months between two datetime Series (day of month ignored)."""
    years = later.dt.year - earlier.dt.year
    months = later.dt.month - earlier.dt.month
    return (years * 12 + months).astype("int64")


def days_between(later, earlier):
    """Day gap between two dates (Series or scalars), counted at day granularity."""
    delta = later - earlier
    if isinstance(delta, pd.Series):
        return delta.dt.days
    return delta.days


__all__ = [
    "safe_div",
    "pct",
    "month_start",
    "month_diff",
    "days_between",
]
