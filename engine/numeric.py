"""
Shared arithmetic helpers: half-up rounding, zero-guarded ratios and month math
"""

import math

import pandas as pd


def round_half_up(value: float) -> int:
    """Round to the nearest whole unit, halves away from zero"""
    if value >= 0:
        return int(math.floor(value + 0.5))
    return -int(math.floor(-value + 0.5))


def safe_div(numerator: float, denominator: float) -> float:
    """Division that yields 0 for a zero denominator"""
    if denominator == 0:
        return 0.0
    return numerator / denominator


def safe_pct(numerator: float, denominator: float) -> float:
    """numerator / denominator * 100, or 0 for a zero denominator"""
    return safe_div(numerator, denominator) * 100


def ceil_div(value: float, days: int) -> int:
    """Ceiling of value / days"""
    return int(math.ceil(value / days))


def month_period(month: str) -> pd.Period:
    """Parse a 'YYYY-MM' string into a monthly Period"""
    return pd.Period(month, freq='M')


def shift_month(month: str, offset: int) -> str:
    """'YYYY-MM' shifted by offset months"""
    return str(month_period(month) + offset)


def current_month() -> str:
    """Current calendar month as 'YYYY-MM'"""
    return str(pd.Timestamp.today().to_period('M'))
