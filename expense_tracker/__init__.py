"""
Expense Tracker - Source Package

A local personal finance tracker: users register, log in and record
dated, categorized expenses.

DESIGN PRINCIPLES:
1. No invalid entity is ever observable
2. Fail early, fail visibly
3. Storage errors are raised, never printed and ignored
4. Plaintext passwords never leave the hashing boundary
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
