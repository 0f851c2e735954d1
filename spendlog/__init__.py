"""
Spend Log - Source Package

A personal finance tracker API: income/expense transactions, monthly
category budgets and a savings goal, with the statistics derived from
them.

DESIGN PRINCIPLES:
1. Every record belongs to exactly one user; every query is scoped by owner
2. Derived figures are computed server-side, never trusted from clients
3. Fail early, fail visibly
4. Every change must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Spend Log Team"
