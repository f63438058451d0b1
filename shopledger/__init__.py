"""Shopledger - manager commissions and wallet payouts for retail back-office."""

__version__ = "1.0.0"
