"""
Invoice Ledger

Tracks invoices through creation, partial and full payment, and overdue
resolution:
- Outstanding-balance semantics (``amount`` is what is still owed)
- Closed status set: pending, paid, voided (the last two terminal)
- Overdue sweep that closes late invoices and spawns penalized successors
- Injectable clock and persistence store
"""

__version__ = "0.1.0"
