"""In-memory payment asset.

A fungible asset with integer base-unit balances, standing in for the
value-transfer primitive of the execution substrate. `transfer` reports
success as a bool; ledger entities turn a False into TransferFailed.

Receive hooks let an account react to an incoming credit inside the same
transaction (used to exercise re-entrancy).
"""

from decimal import Decimal
from typing import Callable, Dict, Union

import structlog
from pydantic import Field, PrivateAttr

from ..schemas import TokenAmount
from .guards import require_address, require_amount
from .runtime import Entity

logger = structlog.get_logger()

ReceiveHook = Callable[["PaymentAsset", str, int], None]
"""Called as hook(asset, sender, amount) after the hooked account is credited."""


class PaymentAsset(Entity):
    """Fungible payment asset (e.g., a 6-decimal stablecoin).

    Example:
        usdc = runtime.deploy(PaymentAsset(address="usdc", symbol="USDC", decimals=6))
        usdc.mint("investor_alice", usdc.units(50_000))
        usdc.transfer("investor_alice", "treasury", usdc.units(10_000))  # True
    """

    symbol: str = Field(min_length=1)

    decimals: int = Field(
        ge=0,
        le=77,
        description="Fixed decimal precision of base units"
    )

    balances: Dict[str, TokenAmount] = Field(default_factory=dict)

    total_supply: TokenAmount = 0

    _hooks: Dict[str, ReceiveHook] = PrivateAttr(default_factory=dict)

    def units(self, whole: Union[int, str, Decimal]) -> int:
        """Convert a whole-asset amount to base units (truncating)."""
        return int(Decimal(str(whole)) * (Decimal(10) ** self.decimals))

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def mint(self, recipient: str, amount: int) -> None:
        """Create new supply (test faucet; no authorization)."""
        require_address(recipient, "recipient")
        require_amount(amount)
        with self.runtime.atomic("mint"):
            self.balances[recipient] = self.balance_of(recipient) + amount
            self.total_supply += amount

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """Move amount from sender to recipient.

        Returns:
            False if amount is not positive or sender's balance is too low
        """
        if amount <= 0 or self.balance_of(sender) < amount:
            logger.debug(
                "asset_transfer_refused",
                asset=self.address,
                sender=sender,
                recipient=recipient,
                amount=amount,
                balance=self.balance_of(sender),
            )
            return False

        with self.runtime.atomic("transfer"):
            self.balances[sender] = self.balance_of(sender) - amount
            self.balances[recipient] = self.balance_of(recipient) + amount

            hook = self._hooks.get(recipient)
            if hook is not None:
                hook(self, sender, amount)
        return True

    def on_receive(self, account: str, hook: ReceiveHook) -> None:
        self._hooks[account] = hook

    def clear_hook(self, account: str) -> None:
        self._hooks.pop(account, None)
