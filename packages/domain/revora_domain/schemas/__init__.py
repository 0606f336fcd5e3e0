"""Tranche ledger schemas.

This package contains the Pydantic records of the ledger core:
- Base types and conventions
- Checkpoint logs for historical balances
- Tranche metadata, economics and registry info
- Split configuration and the bonus-adjusted split
- Distribution records and refund state
- Published event records

Usage:
    from revora_domain.schemas import (
        TrancheMetadata, TrancheEconomics, TrancheConfig,
        Distribution, LedgerEvent,
    )
"""

# Base types
from .base import (
    DomainModel,
    TokenAmount,
    PositiveAmount,
    BasisPoints,
    SequenceNumber,
    Address,
    DistributionId,
    MAX_BPS,
    MAX_AMOUNT,
)

# Checkpoints
from .checkpoints import (
    Checkpoint,
    CheckpointLog,
    CheckpointedBalances,
)

# Tranches
from .tranche import (
    TrancheStatus,
    TrancheMetadata,
    TrancheEconomics,
    TrancheInfo,
)

# Splits
from .splits import (
    TrancheConfig,
    SplitResult,
)

# Distributions and refunds
from .distribution import (
    Distribution,
    RefundState,
)

# Events
from .events import (
    LedgerEvent,
    Operation,
)

__all__ = [
    # Base types
    "DomainModel",
    "TokenAmount",
    "PositiveAmount",
    "BasisPoints",
    "SequenceNumber",
    "Address",
    "DistributionId",
    "MAX_BPS",
    "MAX_AMOUNT",
    # Checkpoints
    "Checkpoint",
    "CheckpointLog",
    "CheckpointedBalances",
    # Tranches
    "TrancheStatus",
    "TrancheMetadata",
    "TrancheEconomics",
    "TrancheInfo",
    # Splits
    "TrancheConfig",
    "SplitResult",
    # Distributions and refunds
    "Distribution",
    "RefundState",
    # Events
    "LedgerEvent",
    "Operation",
]
