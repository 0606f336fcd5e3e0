"""Tranche ownership ledger.

One OwnershipLedger per tranche. It accepts investments in the tranche's
payment asset, mints ownership units in proportion, and runs the tranche's
lifecycle:

    active (funding open) --goal reached / complete()--> active (funding complete)
    active --mark_successful()--> closed_success     (requires funding complete)
    active --mark_cancelled()---> closed_cancelled   (opens the refund pool)

Closed statuses are terminal. Once closed, units can no longer move between
holders; burning for a refund is still allowed.

Investment proceeds go straight from the investor to the tranche treasury.
Refund deposits are held at the ledger's own address until claimed.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from ..errors import (
    AlreadyClaimed,
    BelowMinimum,
    FundingNotComplete,
    InvalidState,
    NoBalance,
    NoPool,
    NotCancelled,
    OperatorNotAllowed,
    RefundTooSmall,
    TrancheAlreadyClosed,
    TransfersFrozen,
)
from ..schemas import (
    Address,
    RefundState,
    TokenAmount,
    TrancheEconomics,
    TrancheMetadata,
    TrancheStatus,
)
from .guards import require_address, require_amount
from .units import UnitLedger


class OwnershipLedger(UnitLedger):
    """Funding, ownership units and refunds of one tranche.

    Example:
        ledger = runtime.deploy(OwnershipLedger(
            address="chkn_t1",
            operator="operator",
            metadata=TrancheMetadata(name="Chicken Farm", symbol="CHKN-T1"),
            economics=TrancheEconomics(
                funding_goal=usdc.units(100_000),
                price_per_unit=usdc.units(1),
                payment_asset="usdc",
                payment_decimals=6,
                treasury="treasury",
            ),
            created_at=runtime.now,
        ))

        ledger.invest("investor_alice", usdc.units(60_000))  # 60,000 units
        ledger.balance_of("investor_alice")                  # 60_000 * 10**18
    """

    metadata: TrancheMetadata

    economics: TrancheEconomics

    created_at: datetime

    distribution_engine: Optional[Address] = Field(
        default=None,
        description="Distribution engine reading this ledger's snapshots"
    )

    # Funding
    funding_active: bool = True
    funding_complete: bool = False
    total_raised: TokenAmount = Field(
        default=0,
        description="Accepted investment so far (never exceeds funding_goal)"
    )

    # Lifecycle
    status: TrancheStatus = "active"

    # Refunds (closed_cancelled only)
    refund: RefundState = Field(default_factory=RefundState)

    # ------------------------------------------------------------------ #
    # Convenience accessors
    # ------------------------------------------------------------------ #

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def symbol(self) -> str:
        return self.metadata.symbol

    @property
    def funding_goal(self) -> int:
        return self.economics.funding_goal

    @property
    def price_per_unit(self) -> int:
        return self.economics.price_per_unit

    @property
    def payment_asset(self) -> str:
        return self.economics.payment_asset

    @property
    def treasury(self) -> str:
        return self.economics.treasury

    @property
    def remaining(self) -> int:
        return self.funding_goal - self.total_raised

    def funding_progress_bps(self) -> int:
        return self.total_raised * 10_000 // self.funding_goal

    def units_for(self, amount: int) -> int:
        """Units minted for an accepted payment amount (rounded down)."""
        return amount * self.unit_scale // self.price_per_unit

    # ------------------------------------------------------------------ #
    # Investment
    # ------------------------------------------------------------------ #

    def invest(self, caller: str, amount: int) -> int:
        """Invest up to amount; only what fits under the goal is taken.

        Args:
            caller: Investor paying in
            amount: Offered amount in payment-asset base units

        Returns:
            Units minted

        Raises:
            InvalidState: If funding is paused, complete or the tranche is closed
            ZeroAmount: If amount is not positive
            OperatorNotAllowed: If caller is the controlling operator
            BelowMinimum: If the accepted amount buys less than one base unit
            TransferFailed: If the investor cannot pay
        """
        with self.runtime.atomic("invest"):
            if self.status != "active" or not self.funding_active or self.funding_complete:
                raise InvalidState(f"Funding is not open for {self.address}")
            require_amount(amount)
            if caller == self.operator:
                raise OperatorNotAllowed("Operator cannot invest in its own tranche")
            require_address(caller, "investor")

            accepted = min(amount, self.remaining)
            units = self.units_for(accepted)
            if units == 0:
                raise BelowMinimum(f"{accepted} buys no units at price {self.price_per_unit}")

            self._update(None, caller, units)
            self.total_raised += accepted
            self._pay(self.payment_asset, caller, self.treasury, accepted)

            self._emit(
                "investment_made",
                subject=self.address,
                actor=caller,
                amounts={"offered": amount, "accepted": accepted, "units": units},
                total_raised=self.total_raised,
            )

            if self.total_raised == self.funding_goal:
                self._finish_funding(caller, manual=False)

            return units

    def _finish_funding(self, caller: str, manual: bool) -> None:
        self.funding_complete = True
        self.funding_active = False
        self._emit(
            "funding_completed",
            subject=self.address,
            actor=caller,
            amounts={"total_raised": self.total_raised},
            manual=manual,
            funding_complete=True,
        )

    # ------------------------------------------------------------------ #
    # Funding controls
    # ------------------------------------------------------------------ #

    def pause(self, caller: str) -> None:
        """Stop accepting investment (no-op on funding that is already stopped)."""
        with self.runtime.atomic("pause"):
            self._require_operator(caller)
            self.funding_active = False
            self._emit("funding_paused", subject=self.address, actor=caller, funding_active=False)

    def activate(self, caller: str) -> None:
        """Resume accepting investment.

        Raises:
            InvalidState: If funding is complete or the tranche is closed
        """
        with self.runtime.atomic("activate"):
            self._require_operator(caller)
            if not self.can_accept_funding():
                raise InvalidState(f"Funding of {self.address} cannot be reopened")
            self.funding_active = True
            self._emit("funding_activated", subject=self.address, actor=caller, funding_active=True)

    def complete(self, caller: str) -> None:
        """Close funding before the goal is reached (manual override)."""
        with self.runtime.atomic("complete"):
            self._require_operator(caller)
            if self.funding_complete:
                raise InvalidState(f"Funding of {self.address} is already complete")
            if self.status != "active":
                raise InvalidState(f"Tranche {self.address} is closed")
            self._finish_funding(caller, manual=True)

    def can_accept_funding(self) -> bool:
        """True while funding could be (re)opened."""
        return self.status == "active" and not self.funding_complete

    # ------------------------------------------------------------------ #
    # Closure
    # ------------------------------------------------------------------ #

    def mark_successful(self, caller: str) -> None:
        """Close the tranche as funded. Distributions continue; units freeze.

        Raises:
            TrancheAlreadyClosed: If already closed either way
            FundingNotComplete: If funding has not completed
        """
        with self.runtime.atomic("mark_successful"):
            self._require_operator(caller)
            if self.status != "active":
                raise TrancheAlreadyClosed(f"Tranche {self.address} already closed ({self.status})")
            if not self.funding_complete:
                raise FundingNotComplete(f"Funding not complete for {self.address}")
            self.status = "closed_success"
            self.funding_active = False
            self._emit(
                "tranche_closed",
                subject=self.address,
                actor=caller,
                status=self.status,
            )

    def mark_cancelled(self, caller: str) -> None:
        """Cancel the tranche and capture the supply refunds are divided by."""
        with self.runtime.atomic("mark_cancelled"):
            self._require_operator(caller)
            if self.status != "active":
                raise TrancheAlreadyClosed(f"Tranche {self.address} already closed ({self.status})")
            self.status = "closed_cancelled"
            self.funding_active = False
            self.refund.snapshot_supply = self.total_supply()
            self._emit(
                "tranche_closed",
                subject=self.address,
                actor=caller,
                amounts={"refund_snapshot_supply": self.refund.snapshot_supply},
                status=self.status,
            )

    # ------------------------------------------------------------------ #
    # Unit transfers
    # ------------------------------------------------------------------ #

    def _guard_movement(self, sender: Optional[str], recipient: Optional[str]) -> None:
        # Mints and burns are supply changes, not holder-to-holder transfers
        if sender is not None and recipient is not None and self.status != "active":
            raise TransfersFrozen(f"Transfers frozen - tranche {self.address} closed")

    def transfer(self, caller: str, recipient: str, amount: int) -> None:
        """Move units between holders while the tranche is active."""
        require_address(recipient, "recipient")
        require_amount(amount)
        with self.runtime.atomic("transfer"):
            self._update(caller, recipient, amount)
            self._emit(
                "units_transferred",
                subject=self.address,
                actor=caller,
                amounts={"units": amount},
                recipient=recipient,
            )

    def set_distribution_engine(self, caller: str, engine: str) -> None:
        require_address(engine, "distribution engine")
        with self.runtime.atomic("set_distribution_engine"):
            self._require_operator(caller)
            self.distribution_engine = engine
            self._emit(
                "distribution_engine_set",
                subject=self.address,
                actor=caller,
                distribution_engine=engine,
            )

    # ------------------------------------------------------------------ #
    # Refunds (closed_cancelled only)
    # ------------------------------------------------------------------ #

    def deposit_refund_funds(self, caller: str, amount: int) -> None:
        """Add to the refund pool. Deposits are cumulative."""
        with self.runtime.atomic("deposit_refund_funds"):
            self._require_operator(caller)
            if self.status != "closed_cancelled":
                raise NotCancelled(f"Tranche {self.address} is not cancelled")
            require_amount(amount)

            self.refund.pool += amount
            self._pay(self.payment_asset, caller, self.address, amount)

            self._emit(
                "refund_deposited",
                subject=self.address,
                actor=caller,
                amounts={"amount": amount, "pool": self.refund.pool},
            )

    def claim_refund(self, caller: str) -> int:
        """Burn all of caller's units for their share of the refund pool.

        Returns:
            Refund paid

        Raises:
            NotCancelled, AlreadyClaimed, NoPool, NoBalance, RefundTooSmall
        """
        with self.runtime.atomic("claim_refund"):
            if self.status != "closed_cancelled":
                raise NotCancelled(f"Tranche {self.address} is not cancelled")
            if caller in self.refund.claimed:
                raise AlreadyClaimed(f"{caller} already claimed a refund")
            if self.refund.pool == 0 or self.refund.snapshot_supply == 0:
                raise NoPool(f"No refund pool for {self.address}")

            balance = self.balance_of(caller)
            if balance == 0:
                raise NoBalance(f"{caller} holds no units of {self.address}")

            refund = self.refund.amount_for(balance)
            if refund == 0:
                raise RefundTooSmall(f"Refund for {balance} units rounds to zero")

            # Claimed before paying out so a re-entrant claim is rejected
            self.refund.claimed.add(caller)
            self.refund.total_claimed += refund
            self._update(caller, None, balance)
            self._pay(self.payment_asset, self.address, caller, refund)

            self._emit(
                "refund_claimed",
                subject=self.address,
                actor=caller,
                amounts={"refund": refund, "units_burned": balance},
                total_refunds_claimed=self.refund.total_claimed,
            )
            return refund

    def get_refund_amount(self, holder: str) -> int:
        """Refund holder would receive now (0 where claim_refund would fail)."""
        if not self.is_refund_available() or holder in self.refund.claimed:
            return 0
        return self.refund.amount_for(self.balance_of(holder))

    def is_refund_available(self) -> bool:
        return (
            self.status == "closed_cancelled"
            and self.refund.pool > 0
            and self.refund.snapshot_supply > 0
        )
