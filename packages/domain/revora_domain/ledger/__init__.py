"""Ledger entities and their execution runtime.

Entities are deployed on a Runtime and mutate only through their
operations, each of which commits all-or-nothing:

- PaymentAsset: fungible asset used for investment, revenue and refunds
- UnitLedger / SecondaryLedger: checkpointed unit balances
- OwnershipLedger: one tranche's funding, units and refunds
- DistributionEngine: revenue splitting and claims
- TrancheRegistry: creates and indexes tranches
"""

from .runtime import Entity, EventSubscriber, Runtime
from .assets import PaymentAsset, ReceiveHook
from .units import SecondaryLedger, UnitLedger
from .ownership import OwnershipLedger
from .distributor import DistributionEngine
from .registry import TrancheRegistry

__all__ = [
    "Runtime",
    "Entity",
    "EventSubscriber",
    "PaymentAsset",
    "ReceiveHook",
    "UnitLedger",
    "SecondaryLedger",
    "OwnershipLedger",
    "DistributionEngine",
    "TrancheRegistry",
]
