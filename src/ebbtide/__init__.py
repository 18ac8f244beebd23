"""Ebbtide - automated buy/hold/sell cycles on Opinion prediction markets."""

__version__ = "0.1.0"
