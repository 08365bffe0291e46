"""Pharmacy point-of-sale stock ledger."""

__version__ = "0.1.0"
