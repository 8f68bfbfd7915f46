"""Seeders that load reference data (the category tree) into the ledger DB."""
