"""
Simple Bank

A single-session bank account demo: per-user accounts with an append-only
transaction ledger, using Decimal for every monetary value.
"""

__version__ = "1.0.0"
