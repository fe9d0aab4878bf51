"""Dual-currency wallet ledger, game settlement and tournament scheduler."""

__version__ = "1.0.0"
