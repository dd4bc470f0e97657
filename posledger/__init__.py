"""
POS Ledger - Stock ledger core for a retail point-of-sale back office
"""
__version__ = "1.0.0"
