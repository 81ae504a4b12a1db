"""
Utility functions for the bio bricks engine.
"""

import math
from typing import Any, List, Optional

import pandas as pd

# Chart colours, assigned by position in the registry order
DEFAULT_COLORS = [
    '#69f0ae', '#ffab40', '#448aff', '#ff4081',
    '#ffff00', '#18ffff', '#eeff41'
]


def safe_divide(numerator: float, denominator: float,
                default: float = 0.0) -> float:
    """Safely divide two numbers, return default if denominator is not positive"""

    if pd.isna(numerator) or pd.isna(denominator):
        return default

    if denominator <= 0:
        return default

    return numerator / denominator


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp value into [min_val, max_val]"""
    return max(min_val, min(max_val, value))


def coerce_quantity(value: Any) -> Optional[float]:
    """
    Best-effort conversion of an imported value to a float.

    Numbers are taken directly, strings are parsed after stripping
    whitespace. Booleans, None, unparseable strings and non-finite
    results give None.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except (TypeError, ValueError):
            return None

    if not math.isfinite(number):
        return None

    return number


def normalize_import_key(key: Any) -> str:
    """Lowercase an external key and turn underscores into spaces"""
    return str(key).lower().replace('_', ' ')


def label_matches(label: str, normalized_key: str) -> bool:
    """
    Permissive match of a registry label against a normalized external key:
    the label contains the key, or the key contains the label's first word.
    """
    lowered = label.lower()
    first_word = lowered.split(' ')[0]
    return normalized_key in lowered or first_word in normalized_key


def format_number(number: float, precision: int = 2) -> str:
    """Format large numbers with K, M, B suffixes"""

    if pd.isna(number) or number == 0:
        return "0"

    abs_number = abs(number)
    sign = "-" if number < 0 else ""

    if abs_number >= 1e9:
        return f"{sign}{abs_number/1e9:.{precision}f}B"
    elif abs_number >= 1e6:
        return f"{sign}{abs_number/1e6:.{precision}f}M"
    elif abs_number >= 1e3:
        return f"{sign}{abs_number/1e3:.{precision}f}K"
    else:
        return f"{sign}{abs_number:.{precision}f}"


def generate_color_palette(n_colors: int) -> List[str]:
    """Colour list of length n_colors, cycling the default colours"""

    if n_colors <= 0:
        return []

    return (DEFAULT_COLORS * (n_colors // len(DEFAULT_COLORS) + 1))[:n_colors]
