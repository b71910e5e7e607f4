"""
Eagle Bank Ledger

Banking backend with user and bank account management, exact Decimal
money movement, and ownership-scoped transaction history.
"""

__version__ = "1.0.0"
