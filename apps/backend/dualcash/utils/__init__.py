"""
Utils package
"""

from .money import round2, to_decimal

__all__ = [
    "round2",
    "to_decimal",
]
