"""Operator scripts for the cooperative ledger."""
