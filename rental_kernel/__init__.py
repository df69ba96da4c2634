"""
Rental Kernel - contract lifecycle and settlement core

A transactional core for vehicle-rental contracts with:
- An explicit draft -> confirmed -> active -> completed -> closed lifecycle
- Server-side money derivation (subtotal, VAT, extra charges, balance)
- Vehicle double-booking protection
- Append-only edit history and hash-chained audit log
"""

__version__ = "0.1.0"
