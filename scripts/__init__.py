"""
Scripts Package.

Operational scripts for the explorer adapters.

Scripts:
- lookup_explorer: Run one search against a ledger and print the result
"""

# Scripts are meant to be run directly, not imported
