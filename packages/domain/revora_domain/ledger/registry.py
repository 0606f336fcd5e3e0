"""Tranche registry and factory.

Creates ownership ledgers, wires each one to the distribution engine, and
keeps the index of tranches with their active flag. The registry is the
initial operator of every ledger it creates; `transfer_tranche_ownership`
hands a ledger over to another operator.

The registry must be an authorized configurer on the engine so that
`create_tranche` can register the tranche's split configuration.
"""

from typing import Dict, List

from pydantic import Field

from ..errors import AlreadyInState, InvalidInput, UnknownTranche
from ..schemas import Address, TrancheConfig, TrancheEconomics, TrancheInfo, TrancheMetadata
from .assets import PaymentAsset
from .distributor import DistributionEngine
from .guards import require_address
from .ownership import OwnershipLedger
from .runtime import Entity


class TrancheRegistry(Entity):
    """Factory and index of tranches.

    Example:
        registry = runtime.deploy(TrancheRegistry(
            address="factory", operator="operator", distribution_engine="distributor",
        ))
        engine.authorize_configurer("operator", "factory")

        tranche = registry.create_tranche(
            "operator",
            TrancheMetadata(name="Chicken Farm Expansion", symbol="CHKN-T1"),
            TrancheEconomics(
                funding_goal=usdc.units(100_000),
                price_per_unit=usdc.units(1),
                payment_asset="usdc",
                payment_decimals=6,
                treasury="treasury",
            ),
            TrancheConfig(revora_share_bps=1000),
        )
        registry.get_active_tranches()  # ["tranche_0"]
    """

    operator: Address = Field(
        description="Controlling operator"
    )

    distribution_engine: Address = Field(
        description="Engine every created tranche is wired to"
    )

    tranches: List[str] = Field(
        default_factory=list,
        description="Tranche addresses in creation order"
    )

    infos: Dict[str, TrancheInfo] = Field(
        default_factory=dict,
        description="Registry record by tranche address"
    )

    # ------------------------------------------------------------------ #
    # Creation
    # ------------------------------------------------------------------ #

    def create_tranche(
        self,
        caller: str,
        metadata: TrancheMetadata,
        economics: TrancheEconomics,
        split_config: TrancheConfig,
    ) -> str:
        """Deploy a new ownership ledger and register its split configuration.

        Args:
            caller: Registry operator
            metadata: Name, symbol and description
            economics: Funding terms (immutable afterwards)
            split_config: Revenue split for the engine

        Returns:
            Address of the new ownership ledger

        Raises:
            NotOperator: If caller is not the registry operator
            InvalidAddress: If the payment asset is not deployed
            InvalidInput: If payment_decimals does not match the asset
            NotConfigurer: If the registry is not authorized on the engine
        """
        with self.runtime.atomic("create_tranche"):
            self._require_operator(caller)
            asset = self.runtime.resolve(economics.payment_asset, PaymentAsset)
            if asset.decimals != economics.payment_decimals:
                raise InvalidInput(
                    f"payment_decimals {economics.payment_decimals} does not match "
                    f"{asset.symbol} ({asset.decimals})"
                )
            require_address(economics.treasury, "treasury")
            engine = self.runtime.resolve(self.distribution_engine, DistributionEngine)

            address = self.runtime.next_address("tranche")
            ledger = self.runtime.deploy(OwnershipLedger(
                address=address,
                operator=self.address,
                metadata=metadata,
                economics=economics,
                created_at=self.runtime.now,
            ))
            ledger.set_distribution_engine(self.address, engine.address)
            engine.configure_tranche(self.address, address, split_config)

            self.tranches.append(address)
            self.infos[address] = TrancheInfo(
                tranche=address,
                metadata=metadata,
                economics=economics,
                created_at=self.runtime.now,
            )

            self._emit(
                "tranche_created",
                subject=address,
                actor=caller,
                amounts={
                    "funding_goal": economics.funding_goal,
                    "price_per_unit": economics.price_per_unit,
                },
                name=metadata.name,
                symbol=metadata.symbol,
                payment_asset=economics.payment_asset,
                treasury=economics.treasury,
            )
            return address

    # ------------------------------------------------------------------ #
    # Activation
    # ------------------------------------------------------------------ #

    def deactivate_tranche(self, caller: str, tranche: str) -> None:
        """Halt new investment in a tranche.

        Raises:
            AlreadyInState: If the tranche is already inactive
            NotOperator: If the registry no longer operates the ledger
        """
        with self.runtime.atomic("deactivate_tranche"):
            self._require_operator(caller)
            info = self.get_tranche_info(tranche)
            if not info.is_active:
                raise AlreadyInState(f"Tranche {tranche} is already inactive")

            info.is_active = False
            self._ledger(tranche).pause(self.address)
            self._emit("tranche_deactivated", subject=tranche, actor=caller, is_active=False)

    def reactivate_tranche(self, caller: str, tranche: str) -> None:
        """Mark a tranche active again, reopening funding where possible.

        Funding of a completed or closed tranche stays shut; only the
        registry flag changes.
        """
        with self.runtime.atomic("reactivate_tranche"):
            self._require_operator(caller)
            info = self.get_tranche_info(tranche)
            if info.is_active:
                raise AlreadyInState(f"Tranche {tranche} is already active")

            info.is_active = True
            ledger = self._ledger(tranche)
            reopened = ledger.can_accept_funding()
            if reopened:
                ledger.activate(self.address)
            self._emit(
                "tranche_reactivated",
                subject=tranche,
                actor=caller,
                is_active=True,
                funding_active=reopened,
            )

    def transfer_tranche_ownership(self, caller: str, tranche: str, new_owner: str) -> None:
        """Hand administrative control of a ledger to another operator."""
        with self.runtime.atomic("transfer_tranche_ownership"):
            self._require_operator(caller)
            self.get_tranche_info(tranche)
            self._ledger(tranche).transfer_operator(self.address, new_owner)

    def _ledger(self, tranche: str) -> OwnershipLedger:
        return self.runtime.resolve(tranche, OwnershipLedger)

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    def get_all_tranches(self) -> List[str]:
        return list(self.tranches)

    def get_active_tranches(self) -> List[str]:
        return [t for t in self.tranches if self.infos[t].is_active]

    def get_tranches_count(self) -> int:
        return len(self.tranches)

    def get_tranche_info(self, tranche: str) -> TrancheInfo:
        info = self.infos.get(tranche)
        if info is None:
            raise UnknownTranche(f"Unknown tranche: {tranche}")
        return info
