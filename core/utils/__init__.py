"""
Core Utilities Package

This package contains utility functions and helpers used throughout the application.

Modules:
    - time: Timestamp conversion and normalization utilities
    - numbers: Decimal parsing of exchange numeric fields
"""

from core.utils.time import to_utc_datetime, current_utc_datetime
from core.utils.numbers import parse_decimal, parse_price

__all__ = ["to_utc_datetime", "current_utc_datetime", "parse_decimal", "parse_price"]
