"""Copro: recurring charges and billing calls for co-owned buildings."""

__version__ = "0.1.0"
