"""Tranche records: creation-time metadata, economics and registry info.

A tranche is a funding round with its own goal, unit price and ownership
ledger. Its economics are fixed when the registry creates it; only the
registry's `is_active` flag and the ledger's lifecycle status change later.
"""

from datetime import datetime
from typing import Literal
from pydantic import Field

from .base import DomainModel, Address, PositiveAmount


TrancheStatus = Literal["active", "closed_success", "closed_cancelled"]
"""Ledger lifecycle. `active` is the only non-terminal status."""


# =============================================================================
# Tranche Metadata
# =============================================================================

class TrancheMetadata(DomainModel):
    """Descriptive fields shown to investors.

    Example:
        TrancheMetadata(
            name="Chicken Farm Expansion",
            symbol="CHKN-T1",
            description="Investment in organic chicken farm expansion",
        )
    """

    name: str = Field(
        min_length=1,
        description="Human-readable tranche name"
    )

    symbol: str = Field(
        min_length=1,
        description="Short ticker for the ownership units (e.g., 'CHKN-T1')"
    )

    description: str = Field(
        default="",
        description="Project description"
    )


# =============================================================================
# Tranche Economics
# =============================================================================

class TrancheEconomics(DomainModel):
    """Funding terms, immutable after creation.

    Amounts are in payment-asset base units. With a 6-decimal asset, a goal of
    100,000 and a price of 1 are `100_000 * 10**6` and `10**6`.

    Units minted per investment:
        units = accepted * 10**unit_decimals // price_per_unit
    """

    funding_goal: PositiveAmount = Field(
        description="Maximum amount raised (base units of the payment asset)"
    )

    price_per_unit: PositiveAmount = Field(
        description="Price of one whole ownership unit (base units of the payment asset)"
    )

    payment_asset: Address = Field(
        description="Address of the payment asset"
    )

    payment_decimals: int = Field(
        ge=0,
        le=77,
        description="Fixed decimal precision of the payment asset"
    )

    treasury: Address = Field(
        description="Destination of investment proceeds"
    )


# =============================================================================
# Tranche Info (registry record)
# =============================================================================

class TrancheInfo(DomainModel):
    """Registry record for a tranche.

    `is_active` is owned by the registry and toggled to halt new investment
    without affecting existing ledger state.
    """

    tranche: Address = Field(
        description="Address of the tranche's ownership ledger"
    )

    metadata: TrancheMetadata

    economics: TrancheEconomics

    created_at: datetime = Field(
        description="Runtime time at creation"
    )

    is_active: bool = Field(
        default=True,
        description="False once the registry deactivates the tranche"
    )
