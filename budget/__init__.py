"""
Dead Simple Budget - Source Package

A personal envelope-budgeting ledger. Money lives in named envelopes,
transactions move it between them, and two core envelopes (Income and
Overflow) anchor the model.

DESIGN PRINCIPLES:
1. Balances are authoritative state, not a projection of history
2. Every monetary value is integer cents
3. Fail before mutating, never halfway through
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Dead Simple Budget Team"
