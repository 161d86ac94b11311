"""
Split Ledger - Source Package

Shared and personal expense bookkeeping for a single device owner ("me")
and the people they split bills with.

DESIGN PRINCIPLES:
1. Money balances to the cent (all split arithmetic is in integer cents)
2. Fail early, fail visibly (validation happens before any write)
3. Every multi-statement write is all-or-nothing
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Split Ledger Team"
