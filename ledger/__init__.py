"""
Household Ledger - Source Package

Tracks income and expense transactions for the people in a household,
grouped into categories, and rolls them up into financial reports.

DESIGN PRINCIPLES:
1. Validate first, persist second
2. Rejections are values, not exceptions
3. Reports are derived, never stored
4. Every write must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Household Ledger Team"
