"""
Bank Ledger

A single-operator card ledger: staff create accounts and bind card + PIN
credentials, customers authenticate and move their own balance. Every
mutation is flushed to a JSON store before the operation returns.
"""

__version__ = "1.0.0"
