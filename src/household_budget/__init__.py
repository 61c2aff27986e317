"""Household budget statement import and transaction classification"""

__version__ = "0.1.0"
