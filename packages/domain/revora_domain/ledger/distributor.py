"""Revenue distribution engine.

Holds one split configuration per tranche and the log of distributions.
A distribution is created by depositing revenue; the engine splits it
between the tranche's unit holders and the secondary beneficiary, records
supplies at the snapshot, and then pays holders their proportional share
on claim until the claim deadline. After the deadline, whatever is left
can be swept to the treasury.

Claimable amount for holder h of distribution d:

    tranche_amount * balance_h(snapshot) // tranche_supply(snapshot)
  + secondary_amount * secondary_balance_h(snapshot) // secondary_supply(snapshot)

Each term rounds down, so the sum over all holders never exceeds what was
deposited. The remainder is recovered by `withdraw_unclaimed_funds`.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Set

from pydantic import Field

from ..errors import (
    AlreadyClaimed,
    AlreadyWithdrawn,
    ClaimPeriodActive,
    DeadlinePassed,
    InvalidDuration,
    InvalidInput,
    NotConfigurer,
    NothingToClaim,
    TrancheNotConfigured,
    UnknownDistribution,
)
from ..schemas import Address, Distribution, TrancheConfig
from .assets import PaymentAsset
from .guards import require_address, require_amount, require_bps
from .ownership import OwnershipLedger
from .runtime import Entity
from .units import SecondaryLedger


class DistributionEngine(Entity):
    """Bonus-adjusted revenue splitting and snapshot-based claims.

    Example:
        engine = runtime.deploy(DistributionEngine(
            address="distributor", operator="operator", treasury="treasury",
        ))
        engine.configure_tranche("operator", "tranche_0", TrancheConfig(revora_share_bps=1000))

        dist_id = engine.create_distribution(
            "operator",
            tranche="tranche_0",
            payment_asset="usdc",
            total_amount=usdc.units(10_000),
            profit_amount=0,
            investment_start=runtime.now,
        )
        engine.claim("investor_alice", dist_id)
    """

    operator: Address = Field(
        description="Controlling operator"
    )

    treasury: Address = Field(
        description="Destination of unrouted secondary shares and swept funds"
    )

    configurers: Set[str] = Field(
        default_factory=set,
        description="Addresses allowed to configure tranches besides the operator"
    )

    configs: Dict[str, TrancheConfig] = Field(
        default_factory=dict,
        description="Split configuration by tranche address"
    )

    distributions: List[Distribution] = Field(
        default_factory=list,
        description="Distribution log; a distribution's id is its index"
    )

    secondary_ledger: Optional[Address] = Field(
        default=None,
        description="Ledger whose holders share secondary amounts (None = treasury)"
    )

    # ------------------------------------------------------------------ #
    # Administration
    # ------------------------------------------------------------------ #

    def authorize_configurer(self, caller: str, configurer: str) -> None:
        require_address(configurer, "configurer")
        with self.runtime.atomic("authorize_configurer"):
            self._require_operator(caller)
            self.configurers.add(configurer)
            self._emit("configurer_authorized", subject=configurer, actor=caller, authorized=True)

    def revoke_configurer(self, caller: str, configurer: str) -> None:
        with self.runtime.atomic("revoke_configurer"):
            self._require_operator(caller)
            self.configurers.discard(configurer)
            self._emit("configurer_revoked", subject=configurer, actor=caller, authorized=False)

    def set_secondary_ledger(self, caller: str, ledger: Optional[str]) -> None:
        """Route future secondary shares to a SecondaryLedger (None = treasury)."""
        with self.runtime.atomic("set_secondary_ledger"):
            self._require_operator(caller)
            if ledger is not None:
                self.runtime.resolve(ledger, SecondaryLedger)
            self.secondary_ledger = ledger
            self._emit(
                "secondary_ledger_set",
                subject=self.address,
                actor=caller,
                secondary_ledger=ledger,
            )

    def set_treasury(self, caller: str, treasury: str) -> None:
        require_address(treasury, "treasury")
        with self.runtime.atomic("set_treasury"):
            self._require_operator(caller)
            self.treasury = treasury
            self._emit("treasury_updated", subject=self.address, actor=caller, treasury=treasury)

    def transfer_operator(self, caller: str, new_operator: str) -> None:
        require_address(new_operator, "new operator")
        with self.runtime.atomic("transfer_operator"):
            self._require_operator(caller)
            previous, self.operator = self.operator, new_operator
            self._emit(
                "operator_transferred",
                subject=self.address,
                actor=caller,
                previous=previous,
                operator=new_operator,
            )

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #

    def configure_tranche(self, caller: str, tranche: str, config: TrancheConfig) -> None:
        """Register (or replace) a tranche's split configuration.

        Args:
            caller: Operator or an authorized configurer
            tranche: Ownership ledger address
            config: Split configuration

        Raises:
            NotConfigurer: If caller is neither operator nor authorized
            InvalidBasisPoints: If any bps value is above 10000
            InvalidDuration: If claim_period is not positive or the minimum
                investment period is negative
        """
        with self.runtime.atomic("configure_tranche"):
            if caller != self.operator and caller not in self.configurers:
                raise NotConfigurer(f"{caller} may not configure tranches on {self.address}")
            require_address(tranche, "tranche")

            require_bps(config.revora_share_bps, "revora_share_bps")
            require_bps(config.time_bonus_bps, "time_bonus_bps")
            require_bps(config.performance_bonus_bps, "performance_bonus_bps")
            if config.claim_period <= timedelta(0):
                raise InvalidDuration("claim_period must be positive")
            if config.min_investment_period < timedelta(0):
                raise InvalidDuration("min_investment_period cannot be negative")

            self.configs[tranche] = config.model_copy(update={"is_configured": True})
            self._emit(
                "tranche_configured",
                subject=tranche,
                actor=caller,
                amounts={"performance_threshold": config.performance_threshold},
                revora_share_bps=config.revora_share_bps,
                time_bonus_bps=config.time_bonus_bps,
                performance_bonus_bps=config.performance_bonus_bps,
                claim_period_seconds=int(config.claim_period.total_seconds()),
            )

    def get_config(self, tranche: str) -> TrancheConfig:
        """Split configuration of a tranche (an unconfigured default if none)."""
        config = self.configs.get(tranche)
        if config is None:
            return TrancheConfig(revora_share_bps=0)
        return config

    # ------------------------------------------------------------------ #
    # Distributions
    # ------------------------------------------------------------------ #

    def create_distribution(
        self,
        caller: str,
        tranche: str,
        payment_asset: str,
        total_amount: int,
        profit_amount: int,
        investment_start: datetime,
    ) -> int:
        """Deposit revenue and record a distribution.

        The caller pays `total_amount` into the engine. The split uses
        balances and supplies as of the last committed sequence, so the
        deposit itself is never part of the snapshot.

        Args:
            caller: Operator depositing the revenue
            tranche: Ownership ledger address
            payment_asset: Asset the revenue is paid in
            total_amount: Revenue deposited (base units)
            profit_amount: Profit reported for the performance bonus
            investment_start: Start of the holding period for the time bonus.
                Naive datetimes are taken as UTC.

        Returns:
            Distribution id

        Raises:
            NotOperator, TrancheNotConfigured, ZeroAmount, TransferFailed
        """
        with self.runtime.atomic("create_distribution"):
            self._require_operator(caller)
            config = self.configs.get(tranche)
            if config is None or not config.is_configured:
                raise TrancheNotConfigured(f"Tranche {tranche} is not configured")
            require_amount(total_amount, "total_amount")
            if profit_amount < 0:
                raise InvalidInput("profit_amount cannot be negative")

            ledger = self.runtime.resolve(tranche, OwnershipLedger)
            asset = self.runtime.resolve(payment_asset, PaymentAsset)

            now = self.runtime.now
            if investment_start.tzinfo is None:
                investment_start = investment_start.replace(tzinfo=timezone.utc)
            elapsed = max(now - investment_start, timedelta(0))
            split = config.split(total_amount, profit_amount, elapsed)

            snapshot = self.runtime.sequence - 1
            tranche_supply = ledger.units.supply_at(snapshot)

            secondary_supply = 0
            if self.secondary_ledger is not None:
                secondary = self.runtime.resolve(self.secondary_ledger, SecondaryLedger)
                secondary_supply = secondary.units.supply_at(snapshot)

            distribution = Distribution(
                id=len(self.distributions),
                tranche=tranche,
                payment_asset=asset.address,
                total_amount=total_amount,
                tranche_amount=split.tranche_amount,
                secondary_amount=split.secondary_amount,
                effective_bps=split.effective_bps,
                snapshot_sequence=snapshot,
                secondary_ledger=self.secondary_ledger,
                tranche_supply_at_snapshot=tranche_supply,
                secondary_supply_at_snapshot=secondary_supply,
                created_at=now,
                claim_deadline=now + config.claim_period,
            )
            self.distributions.append(distribution)

            self._pay(asset.address, caller, self.address, total_amount)

            # No secondary holders to claim it: the secondary share goes to
            # the treasury now and counts as paid out
            routed_to_treasury = 0
            if not distribution.secondary_claimable and split.secondary_amount > 0:
                routed_to_treasury = split.secondary_amount
                distribution.total_claimed = routed_to_treasury
                self._pay(asset.address, self.address, self.treasury, routed_to_treasury)

            self._emit(
                "distribution_created",
                subject=str(distribution.id),
                actor=caller,
                amounts={
                    "total": total_amount,
                    "tranche": split.tranche_amount,
                    "secondary": split.secondary_amount,
                    "to_treasury": routed_to_treasury,
                    "tranche_supply": tranche_supply,
                },
                tranche=tranche,
                effective_bps=split.effective_bps,
                snapshot_sequence=snapshot,
            )
            return distribution.id

    def get_distribution(self, distribution_id: int) -> Distribution:
        """Raises UnknownDistribution for ids that were never created."""
        if not isinstance(distribution_id, int) or not 0 <= distribution_id < len(self.distributions):
            raise UnknownDistribution(f"Unknown distribution: {distribution_id!r}")
        return self.distributions[distribution_id]

    def distribution_count(self) -> int:
        return len(self.distributions)

    def get_tranche_distributions(self, tranche: str) -> List[int]:
        return [d.id for d in self.distributions if d.tranche == tranche]

    def has_claimed(self, distribution_id: int, holder: str) -> bool:
        return holder in self.get_distribution(distribution_id).claimed

    # ------------------------------------------------------------------ #
    # Claims
    # ------------------------------------------------------------------ #

    def _share_of(self, distribution: Distribution, holder: str) -> int:
        """Holder's proportional share, ignoring claimed flags and deadline."""
        amount = 0

        if distribution.tranche_supply_at_snapshot > 0:
            ledger = self.runtime.resolve(distribution.tranche, OwnershipLedger)
            balance = ledger.units.balance_at(holder, distribution.snapshot_sequence)
            amount += (
                distribution.tranche_amount * balance
                // distribution.tranche_supply_at_snapshot
            )

        if distribution.secondary_claimable:
            secondary = self.runtime.resolve(distribution.secondary_ledger, SecondaryLedger)
            balance = secondary.units.balance_at(holder, distribution.snapshot_sequence)
            amount += (
                distribution.secondary_amount * balance
                // distribution.secondary_supply_at_snapshot
            )

        return amount

    def get_claimable_amount(self, distribution_id: int, holder: str) -> int:
        """What holder would receive from claim() now (0 where claim would fail)."""
        if not isinstance(distribution_id, int) or not 0 <= distribution_id < len(self.distributions):
            return 0
        distribution = self.distributions[distribution_id]
        if holder in distribution.claimed or not distribution.is_open(self.runtime.now):
            return 0
        # A swept distribution has nothing left to pay
        if distribution.unclaimed == 0:
            return 0
        return self._share_of(distribution, holder)

    def claim(self, caller: str, distribution_id: int) -> int:
        """Pay caller's share of a distribution.

        Returns:
            Amount paid

        Raises:
            UnknownDistribution, AlreadyClaimed, DeadlinePassed, NothingToClaim
        """
        with self.runtime.atomic("claim"):
            distribution = self.get_distribution(distribution_id)
            if caller in distribution.claimed:
                raise AlreadyClaimed(f"{caller} already claimed distribution {distribution_id}")
            if not distribution.is_open(self.runtime.now):
                raise DeadlinePassed(f"Claim period of distribution {distribution_id} has ended")

            amount = self._share_of(distribution, caller)
            if amount == 0 or distribution.unclaimed == 0:
                raise NothingToClaim(f"Nothing to claim for {caller} in distribution {distribution_id}")

            # Claimed before paying out so a re-entrant claim is rejected
            distribution.claimed.add(caller)
            distribution.total_claimed += amount
            self._pay(distribution.payment_asset, self.address, caller, amount)

            self._emit(
                "revenue_claimed",
                subject=str(distribution_id),
                actor=caller,
                amounts={"amount": amount, "total_claimed": distribution.total_claimed},
                tranche=distribution.tranche,
            )
            return amount

    def withdraw_unclaimed_funds(self, caller: str, distribution_id: int) -> int:
        """Sweep what was never claimed to the treasury once the deadline passed.

        Returns:
            Amount sent to the treasury

        Raises:
            NotOperator, UnknownDistribution, ClaimPeriodActive, AlreadyWithdrawn
        """
        with self.runtime.atomic("withdraw_unclaimed_funds"):
            self._require_operator(caller)
            distribution = self.get_distribution(distribution_id)
            if distribution.is_open(self.runtime.now):
                raise ClaimPeriodActive(
                    f"Distribution {distribution_id} is claimable until {distribution.claim_deadline}"
                )
            remaining = distribution.unclaimed
            if remaining == 0:
                raise AlreadyWithdrawn(f"Nothing left in distribution {distribution_id}")

            distribution.total_claimed = distribution.total_amount
            self._pay(distribution.payment_asset, self.address, self.treasury, remaining)

            self._emit(
                "unclaimed_withdrawn",
                subject=str(distribution_id),
                actor=caller,
                amounts={"amount": remaining},
                treasury=self.treasury,
            )
            return remaining
