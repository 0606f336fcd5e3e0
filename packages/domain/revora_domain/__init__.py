"""Revora Ledger Core - Tranche funding, ownership and revenue distribution.

This package provides the ledger layer for fractional-ownership tranches:
- Ownership ledgers with checkpointed balances and a funding lifecycle
- Bonus-adjusted revenue splits and snapshot-based claims
- Refunds for cancelled tranches
- A registry that creates and indexes tranches
- Computation blocks producing DataFrame views for reporting

Every operation runs on a Runtime and commits all-or-nothing; failures
raise a LedgerError subclass and leave state untouched.
"""

from .schemas import *  # noqa: F403, F401
from .errors import *  # noqa: F403, F401
from .ledger import (  # noqa: F401
    DistributionEngine,
    Entity,
    OwnershipLedger,
    PaymentAsset,
    Runtime,
    SecondaryLedger,
    TrancheRegistry,
    UnitLedger,
)
from .config import LedgerSettings, settings  # noqa: F401
from .logging_config import configure_logging  # noqa: F401

__version__ = "0.1.0"
