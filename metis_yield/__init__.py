"""Yield and TVL aggregation across Metis DeFi protocols."""

__version__ = "1.0.0"
