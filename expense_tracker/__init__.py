"""
Expense Tracker - Source Package

A personal expense-tracking service: record expenses (typed in, spoken,
or photographed from a receipt), set budgets, and see where the money went.

DESIGN PRINCIPLES:
1. The store is a handle passed in, never a global
2. Amounts are Decimal end to end
3. Validation reports field-level issues, never raw exceptions
4. Every significant action is logged
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
