"""
MyFinance - Source Package

Household finance core: a daily income/expense ledger, savings goals,
rental units with utility billing, and Bikram Sambat date display.

DESIGN PRINCIPLES:
1. Money is Decimal; rounding happens only on display
2. Fail early, fail visibly
3. No silent corrections
4. Every change must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "MyFinance Team"
