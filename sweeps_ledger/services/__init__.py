"""Ledger-mutating services."""
