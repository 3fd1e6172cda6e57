"""Wallet legitimacy, engagement and match scoring."""

__version__ = "0.1.0"
