"""Checkpointed unit ledgers.

UnitLedger holds the balance bookkeeping shared by the tranche ownership
ledger and the secondary-beneficiary ledger: current balances, historical
lookups by sequence, and the single state-mutation path every mint, burn and
transfer goes through.

SecondaryLedger is the ledger of the secondary beneficiary's units. When a
distribution engine has one, the secondary share of each revenue event is
held for its holders instead of being paid to the treasury.
"""

from typing import List, Optional

from pydantic import Field

from ..config import settings
from ..errors import FutureLookup, InsufficientBalance
from ..schemas import Address, CheckpointedBalances
from .guards import require_address, require_amount
from .runtime import Entity


class UnitLedger(Entity):
    """Balances with an append-only checkpoint log.

    Subclasses put their movement rules in `_guard_movement`; `_update` then
    applies the balance change and records checkpoints at the current
    sequence.
    """

    operator: Address = Field(
        description="Controlling operator"
    )

    unit_decimals: int = Field(
        default_factory=lambda: settings.UNIT_DECIMALS,
        ge=0,
        le=77,
        description="Fixed-point precision of units"
    )

    units: CheckpointedBalances = Field(
        default_factory=CheckpointedBalances,
        description="Current balances and their checkpoint logs"
    )

    @property
    def unit_scale(self) -> int:
        return 10 ** self.unit_decimals

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    def balance_of(self, holder: str) -> int:
        return self.units.balance_of(holder)

    def total_supply(self) -> int:
        return self.units.total

    def holders(self) -> List[str]:
        """Holders with a positive balance, sorted."""
        return sorted(h for h, balance in self.units.balances.items() if balance > 0)

    def get_balance_at(self, holder: str, sequence: int) -> int:
        """Balance of holder as of the latest checkpoint at or before sequence.

        Raises:
            FutureLookup: If sequence has not been committed yet
        """
        self._require_past(sequence)
        return self.units.balance_at(holder, sequence)

    def get_total_supply_at(self, sequence: int) -> int:
        self._require_past(sequence)
        return self.units.supply_at(sequence)

    def _require_past(self, sequence: int) -> None:
        if sequence >= self.runtime.sequence:
            raise FutureLookup(
                f"Sequence {sequence} is not in the past (current: {self.runtime.sequence})"
            )

    # ------------------------------------------------------------------ #
    # State mutation
    # ------------------------------------------------------------------ #

    def _guard_movement(self, sender: Optional[str], recipient: Optional[str]) -> None:
        pass

    def _update(self, sender: Optional[str], recipient: Optional[str], amount: int) -> None:
        """Single mutation path: guard, then balance update, then checkpoints.

        Args:
            sender: Holder losing units (None = mint)
            recipient: Holder receiving units (None = burn)
            amount: Units moved
        """
        self._guard_movement(sender, recipient)
        try:
            self.units.apply(self.runtime.sequence, sender, recipient, amount)
        except ValueError as exc:
            raise InsufficientBalance(str(exc)) from exc

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


# =============================================================================
# Secondary Ledger
# =============================================================================

class SecondaryLedger(UnitLedger):
    """Units of the secondary beneficiary, minted and burned by its operator.

    Example:
        platform = runtime.deploy(SecondaryLedger(address="revora_units", operator="operator"))
        platform.mint("operator", "staker_bob", 1_000 * 10**18)
        distributor.set_secondary_ledger("operator", "revora_units")
    """

    name: str = Field(default="Revora")

    symbol: str = Field(default="REV")

    def mint(self, caller: str, recipient: str, amount: int) -> None:
        require_address(recipient, "recipient")
        require_amount(amount)
        with self.runtime.atomic("mint"):
            self._require_operator(caller)
            self._update(None, recipient, amount)
            self._emit(
                "units_minted",
                subject=self.address,
                actor=caller,
                amounts={"units": amount},
                recipient=recipient,
                total_supply=self.total_supply(),
            )

    def burn(self, caller: str, holder: str, amount: int) -> None:
        require_amount(amount)
        with self.runtime.atomic("burn"):
            self._require_operator(caller)
            self._update(holder, None, amount)
            self._emit(
                "units_burned",
                subject=self.address,
                actor=caller,
                amounts={"units": amount},
                holder=holder,
                total_supply=self.total_supply(),
            )

    def transfer(self, caller: str, recipient: str, amount: int) -> None:
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
