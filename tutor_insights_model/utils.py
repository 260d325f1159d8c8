"""
Utility functions for insight model calculations
"""
import math
from typing import Optional, Sequence

import numpy as np
import pandas as pd


# ===== NUMERIC HELPERS =====
def nz_num(value, fill=0.0):
    """Convert to numeric with fillna, handling both Series and scalar inputs"""
    if value is None:
        return fill
    result = pd.to_numeric(value, errors="coerce")
    if hasattr(result, 'fillna'):
        return result.replace([np.inf, -np.inf], np.nan).fillna(fill)
    # Scalar case
    if pd.isna(result) or np.isinf(result):
        return fill
    return float(result)


def finite_or_zero(value: Optional[float]) -> float:
    """Coerce None, NaN and +/-inf to 0.0"""
    return float(nz_num(value, 0.0))


def safe_div(a, b, fill=0.0):
    """Division with zero-denominator and inf/NaN handling"""
    a_num = pd.to_numeric(a, errors='coerce')
    b_num = pd.to_numeric(b, errors='coerce')

    if hasattr(a_num, 'replace') or hasattr(b_num, 'replace'):
        result = a_num / b_num
        return result.replace([np.inf, -np.inf], fill).fillna(fill)

    if pd.isna(a_num) or pd.isna(b_num) or b_num == 0:
        return fill
    result = float(a_num) / float(b_num)
    return fill if math.isinf(result) or math.isnan(result) else result


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp into [lo, hi]; non-finite input collapses to lo"""
    if value is None or not math.isfinite(value):
        return lo
    return min(hi, max(lo, value))


def clamp01(value: float) -> float:
    return clamp(value, 0.0, 1.0)


def round_half_up(value: float, decimals: int = 0) -> float:
    """Round halves away from -inf (2.5 -> 3, -2.5 -> -2), unlike round()"""
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def round_int(value: float) -> int:
    return int(round_half_up(value))


def format_fixed(value: float, decimals: int = 0) -> str:
    """Fixed-point string using half-up rounding"""
    return f"{round_half_up(value, decimals):.{decimals}f}"


# ===== SERIES STATISTICS =====
def ols_slope_intercept(values: Sequence[float]) -> tuple:
    """Least-squares fit of values against their index 0..n-1"""
    n = len(values)
    if n == 0:
        return 0.0, 0.0
    y = np.asarray(values, dtype=float)
    x = np.arange(n, dtype=float)
    x_mean = (n - 1) / 2
    y_mean = float(y.mean())
    denominator = float(((x - x_mean) ** 2).sum())
    numerator = float(((x - x_mean) * (y - y_mean)).sum())
    slope = numerator / denominator if denominator != 0 else 0.0
    intercept = y_mean - slope * x_mean
    return slope, intercept


def population_variance(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.var(np.asarray(values, dtype=float)))
