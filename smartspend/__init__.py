"""
SmartSpend - Ledger Core

Local-first personal ledger (accounts and transactions) that mirrors
itself to a spreadsheet-backed remote replica.

DESIGN PRINCIPLES:
1. Local writes always succeed first; sync is best effort
2. Balances are derived, never stored
3. Full-replace sync: the whole snapshot, every time
4. Nothing destructive without confirmation (pull asks first)
5. Every mutation and sync transition is auditable
"""

__version__ = "1.0.0"
__author__ = "SmartSpend Team"
