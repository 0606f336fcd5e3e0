"""Revenue split configuration and the bonus-adjusted split calculation.

Each tranche has one TrancheConfig in the distribution engine. A revenue
event of `total_amount` is divided between the tranche's unit holders and the
secondary beneficiary (the platform):

    effective_bps  = revora_share_bps
                   + time_bonus_bps         (if held >= min_investment_period)
                   + performance_bonus_bps  (if profit >= performance_threshold)
    effective_bps  = min(effective_bps, 10000)

    secondary_amount = total_amount * effective_bps // 10000
    tranche_amount   = total_amount - secondary_amount

The tranche amount is the exact complement, so nothing is lost to rounding.
"""

from datetime import timedelta

from pydantic import Field

from ..config import settings
from .base import DomainModel, BasisPoints, TokenAmount, MAX_BPS


# =============================================================================
# Tranche Config
# =============================================================================

class TrancheConfig(DomainModel):
    """Split configuration for one tranche.

    A bonus applies only when both of its parameters are set (non-zero).
    Basis-point ranges and the claim period are checked by
    DistributionEngine.configure_tranche, which raises domain errors.

    Example:
        10% base, +5% after a year, +5% when profit reaches 50,000 USDC:

        TrancheConfig(
            revora_share_bps=1000,
            min_investment_period=timedelta(days=365),
            time_bonus_bps=500,
            performance_threshold=50_000 * 10**6,
            performance_bonus_bps=500,
            claim_period=timedelta(days=30),
        )
    """

    revora_share_bps: BasisPoints = Field(
        description="Base share of each revenue event sent to the secondary beneficiary"
    )

    min_investment_period: timedelta = Field(
        default=timedelta(0),
        description="Holding period after which the time bonus applies"
    )

    time_bonus_bps: BasisPoints = Field(
        default=0,
        description="Extra secondary share once min_investment_period has elapsed"
    )

    performance_threshold: TokenAmount = Field(
        default=0,
        description="Profit at or above which the performance bonus applies"
    )

    performance_bonus_bps: BasisPoints = Field(
        default=0,
        description="Extra secondary share when profit meets the threshold"
    )

    claim_period: timedelta = Field(
        default_factory=lambda: timedelta(days=settings.DEFAULT_CLAIM_PERIOD_DAYS),
        description="How long holders may claim after a distribution is created"
    )

    is_configured: bool = Field(
        default=False,
        description="Set by the engine when the config is registered"
    )

    def effective_share_bps(self, elapsed: timedelta, profit_amount: int) -> int:
        """Secondary share after bonuses, clamped at 10000 bps.

        Args:
            elapsed: Time since the investment start
            profit_amount: Profit reported with the revenue event
        """
        bps = self.revora_share_bps

        if self.min_investment_period > timedelta(0) and self.time_bonus_bps > 0:
            if elapsed >= self.min_investment_period:
                bps += self.time_bonus_bps

        if self.performance_threshold > 0 and self.performance_bonus_bps > 0:
            if profit_amount >= self.performance_threshold:
                bps += self.performance_bonus_bps

        return min(bps, MAX_BPS)

    def split(self, total_amount: int, profit_amount: int, elapsed: timedelta) -> "SplitResult":
        """Split a revenue amount between tranche holders and the secondary beneficiary."""
        bps = self.effective_share_bps(elapsed, profit_amount)
        secondary_amount = total_amount * bps // MAX_BPS
        return SplitResult(
            effective_bps=bps,
            tranche_amount=total_amount - secondary_amount,
            secondary_amount=secondary_amount,
        )


# =============================================================================
# Split Result
# =============================================================================

class SplitResult(DomainModel):
    """Outcome of a split. tranche_amount + secondary_amount == total."""

    effective_bps: BasisPoints

    tranche_amount: TokenAmount

    secondary_amount: TokenAmount

    @property
    def total_amount(self) -> int:
        return self.tranche_amount + self.secondary_amount
