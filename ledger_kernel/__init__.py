"""
Ledger Kernel

A company-scoped, append-only double-entry ledger with:
- Group -> SubGroup -> Ledger chart of accounts
- Atomic, policy-checked voucher posting
- Balances derived from posting history (never stored)
- Typed errors and structured logging
"""

__version__ = "0.1.0"
