"""
stacksend.oracle - per-pair exchange-rate quotes with an authorized-updater set.
"""

from .oracle import RateOracle
from .types import ExchangeRate

__all__ = ["RateOracle", "ExchangeRate"]
