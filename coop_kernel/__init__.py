"""
Coop Kernel - cooperative ledger core

Yearly bookkeeping for a small savings cooperative:
- Member contributions with late-fee assessment
- Member loans and fixed deposits with simple monthly interest
- Two cash pools (online / offline) per financial year
- Financial-year rollover seeded from the prior year's closing balances
"""

__version__ = "0.1.0"
