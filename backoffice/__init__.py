"""Warehouse inventory and placement ledger back office."""
