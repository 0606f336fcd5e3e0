"""Distribution records and refund state.

A Distribution is one deposit-and-split revenue event for a tranche. It is
immutable once created, except that `total_claimed` grows and `claimed`
gains holders as claims are paid.

RefundState lives on an ownership ledger and only comes into play once the
tranche is cancelled.
"""

from datetime import datetime
from typing import Optional, Set

from pydantic import Field, model_validator

from .base import (
    DomainModel,
    Address,
    BasisPoints,
    DistributionId,
    SequenceNumber,
    TokenAmount,
)


# =============================================================================
# Distribution
# =============================================================================

class Distribution(DomainModel):
    """One revenue event, claimable by unit holders as of a snapshot.

    Claimable amount for a holder:
        tranche_amount * tranche_balance_at(snapshot) // tranche_supply_at_snapshot
      + secondary_amount * secondary_balance_at(snapshot) // secondary_supply_at_snapshot
        (second term only when a secondary ledger was set and had supply)

    `total_claimed` counts every payout made out of `total_amount`: holder
    claims, a secondary amount forwarded straight to the treasury, and the
    final sweep of unclaimed funds. It never exceeds `total_amount`.
    """

    id: DistributionId

    tranche: Address = Field(
        description="Ownership ledger whose holders share tranche_amount"
    )

    payment_asset: Address = Field(
        description="Asset the revenue was deposited in"
    )

    total_amount: TokenAmount

    tranche_amount: TokenAmount

    secondary_amount: TokenAmount

    effective_bps: BasisPoints = Field(
        description="Secondary share used for this split, after bonuses"
    )

    snapshot_sequence: SequenceNumber = Field(
        description="Checkpoint at which balances and supplies are read"
    )

    secondary_ledger: Optional[Address] = Field(
        default=None,
        description="Secondary-beneficiary ledger at creation (None = paid to treasury)"
    )

    tranche_supply_at_snapshot: TokenAmount

    secondary_supply_at_snapshot: TokenAmount = 0

    created_at: datetime

    claim_deadline: datetime

    total_claimed: TokenAmount = 0

    claimed: Set[str] = Field(
        default_factory=set,
        description="Holders that have claimed"
    )

    @model_validator(mode='after')
    def validate_split(self):
        """The two shares must add up to the total exactly."""
        if self.tranche_amount + self.secondary_amount != self.total_amount:
            raise ValueError(
                f"Split does not add up: {self.tranche_amount} + {self.secondary_amount} "
                f"!= {self.total_amount}"
            )
        if self.total_claimed > self.total_amount:
            raise ValueError("total_claimed cannot exceed total_amount")
        return self

    @property
    def secondary_claimable(self) -> bool:
        """True when secondary_amount is held for secondary-ledger holders."""
        return self.secondary_ledger is not None and self.secondary_supply_at_snapshot > 0

    @property
    def unclaimed(self) -> int:
        return self.total_amount - self.total_claimed

    def is_open(self, now: datetime) -> bool:
        return now <= self.claim_deadline


# =============================================================================
# Refund State
# =============================================================================

class RefundState(DomainModel):
    """Refund pool of a cancelled tranche.

    refund(holder) = balance(holder) * pool // snapshot_supply

    The snapshot supply is captured once, when the tranche is cancelled.
    Claims burn the holder's units but the pool and snapshot supply stay put,
    so every holder is paid against the same denominator.
    """

    pool: TokenAmount = Field(
        default=0,
        description="Cumulative refund deposits"
    )

    snapshot_supply: TokenAmount = Field(
        default=0,
        description="Total unit supply at cancellation"
    )

    total_claimed: TokenAmount = 0

    claimed: Set[str] = Field(default_factory=set)

    def amount_for(self, balance: int) -> int:
        if self.snapshot_supply == 0:
            return 0
        return balance * self.pool // self.snapshot_supply
