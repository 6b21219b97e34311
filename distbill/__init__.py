"""Billing and stock ledger for a goods distributor."""

__version__ = "1.0.0"
