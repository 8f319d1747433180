"""
zmigrate: legacy shielded wallet migration core.

Takes an in-memory snapshot of a legacy wallet (transparent, Sprout,
Sapling and Orchard pools plus unified accounts), preserves its keys, and
assigns every historical transaction to the account(s) that own it.
Modular layout: wallet model, assignment engine, pipeline orchestration.
"""

__version__ = "0.1.0"
