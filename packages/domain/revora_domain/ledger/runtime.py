"""Execution substrate for ledger entities.

The Runtime provides what every ledger operation relies on:
    - A clock (`now`) and a sequence counter (`sequence`)
    - All-or-nothing commit of each operation (`atomic`)
    - A directory of deployed entities, resolvable by address
    - Buffered event publication to the event log and subscribers

Execution is strictly sequential. An operation runs inside `atomic()`; every
entry snapshots the persistent fields of every deployed entity and restores
them if anything raises. Operations called from inside another operation
(including from a payment-asset receive hook) roll back on their own when they
fail, but only the outermost operation commits and publishes events.

Sequence semantics:
    `sequence` is the number the current (or next) operation runs at. A
    successful outermost operation advances it by one; a failed one does not.
    Checkpoints written during an operation carry its sequence, so a lookup at
    `sequence - 1` sees everything committed so far and nothing in flight.
"""

import copy
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterator, List, Optional, Type, TypeVar

import structlog
from pydantic import Field, PrivateAttr

from ..errors import AddressInUse, InvalidAddress, InvalidDuration, InvalidState, NotOperator, TransferFailed
from ..schemas import Address, DomainModel, LedgerEvent
from .guards import require_address

logger = structlog.get_logger()

E = TypeVar("E", bound="Entity")

EventSubscriber = Callable[[LedgerEvent], None]


# =============================================================================
# Entity Base Class
# =============================================================================

class Entity(DomainModel):
    """Base class for anything deployed on a Runtime.

    Entities keep all persistent state in pydantic fields; the runtime
    reference lives in a private attribute so that transaction snapshots copy
    state only.
    """

    address: Address = Field(
        description="Address the entity is deployed at (also its asset account)"
    )

    _runtime: Optional["Runtime"] = PrivateAttr(default=None)

    @property
    def runtime(self) -> "Runtime":
        if self._runtime is None:
            raise InvalidState(f"{type(self).__name__} at {self.address} is not deployed")
        return self._runtime

    def _require_operator(self, caller: str) -> None:
        operator = getattr(self, "operator")
        if caller != operator:
            raise NotOperator(f"Caller {caller} is not the operator of {self.address}")

    def _pay(self, asset_address: str, sender: str, recipient: str, amount: int) -> None:
        """Move funds through a payment asset, raising if the asset refuses."""
        from .assets import PaymentAsset

        asset = self.runtime.resolve(asset_address, PaymentAsset)
        if not asset.transfer(sender, recipient, amount):
            raise TransferFailed(
                f"{asset.symbol} transfer of {amount} from {sender} to {recipient} failed"
            )

    def _emit(
        self,
        operation: str,
        subject: str,
        actor: Optional[str] = None,
        amounts: Optional[Dict[str, int]] = None,
        **state,
    ) -> None:
        self.runtime.emit(
            operation=operation,
            emitter=self.address,
            subject=subject,
            actor=actor,
            amounts=amounts or {},
            state=state,
        )


# =============================================================================
# Runtime
# =============================================================================

class Runtime:
    """Single-threaded, sequentially ordered execution environment.

    Snapshots are full deep copies of every deployed entity, checkpoint logs
    and claim sets included, so the cost of each operation grows with the
    history held in memory. This is meant for simulation and tests, not for
    long-lived ledgers with large histories.

    Event subscribers run after commit. A subscriber that raises is logged
    and skipped; the operation stays committed.

    Example:
        runtime = Runtime()
        usdc = runtime.deploy(PaymentAsset(address="usdc", symbol="USDC", decimals=6))
        usdc.mint("investor_alice", 50_000 * 10**6)

        runtime.advance_time(timedelta(days=31))
        print(runtime.sequence, runtime.now)
    """

    def __init__(self, start: Optional[datetime] = None):
        """Initialize runtime.

        Args:
            start: Initial clock value (default: current UTC time). Naive
                datetimes are taken as UTC.
        """
        start = start or datetime.now(timezone.utc)
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)

        self.now: datetime = start
        self.sequence: int = 0
        self.events: List[LedgerEvent] = []

        self._entities: Dict[str, Entity] = {}
        self._subscribers: List[EventSubscriber] = []
        self._pending: List[LedgerEvent] = []
        self._depth = 0

    # ------------------------------------------------------------------ #
    # Clock
    # ------------------------------------------------------------------ #

    def advance_time(self, delta: timedelta) -> datetime:
        if delta < timedelta(0):
            raise InvalidDuration("Time only moves forward")
        self.now += delta
        return self.now

    # ------------------------------------------------------------------ #
    # Entity directory
    # ------------------------------------------------------------------ #

    def deploy(self, entity: E) -> E:
        """Bind an entity to this runtime and register it by address.

        Raises:
            AddressInUse: If another entity is deployed at the same address
        """
        if entity.address in self._entities:
            raise AddressInUse(f"Address {entity.address} already in use")
        entity._runtime = self
        self._entities[entity.address] = entity
        logger.debug("entity_deployed", address=entity.address, kind=type(entity).__name__)
        return entity

    def resolve(self, address: str, kind: Type[E]) -> E:
        """Look up a deployed entity of the given kind.

        Raises:
            InvalidAddress: If nothing of that kind is deployed at address
        """
        entity = self._entities.get(address)
        if not isinstance(entity, kind):
            raise InvalidAddress(f"No {kind.__name__} deployed at {address}")
        return entity

    def is_deployed(self, address: str) -> bool:
        return address in self._entities

    def next_address(self, prefix: str) -> str:
        """First unused address of the form `<prefix>_<n>`."""
        require_address(prefix)
        n = 0
        while f"{prefix}_{n}" in self._entities:
            n += 1
        return f"{prefix}_{n}"

    # ------------------------------------------------------------------ #
    # Transactions
    # ------------------------------------------------------------------ #

    @property
    def in_operation(self) -> bool:
        return self._depth > 0

    @contextmanager
    def atomic(self, operation: str) -> Iterator[None]:
        """Run an operation all-or-nothing.

        Every level takes a savepoint, so a nested operation that raises is
        undone even when its caller catches the error and carries on. Only the
        outermost level commits.

        Args:
            operation: Name used in rollback logging
        """
        saved = {address: copy.deepcopy(entity.__dict__) for address, entity in self._entities.items()}
        pending = len(self._pending)
        outermost = self._depth == 0
        self._depth += 1
        try:
            yield
        except Exception as exc:
            self._restore(saved)
            del self._pending[pending:]
            logger.warning(
                "operation_rolled_back",
                operation=operation,
                error=type(exc).__name__,
                sequence=self.sequence,
                nested=not outermost,
            )
            raise
        finally:
            self._depth -= 1

        if outermost:
            self._commit()

    def _restore(self, saved: Dict[str, dict]) -> None:
        for address in list(self._entities):
            entity = self._entities[address]
            if address not in saved:
                # Deployed during the failed operation
                del self._entities[address]
                entity._runtime = None
                continue
            state = saved[address]
            for name in [name for name in entity.__dict__ if name not in state]:
                del entity.__dict__[name]
            for name, value in state.items():
                # Untouched fields keep their identity for enclosing operations
                if name not in entity.__dict__ or entity.__dict__[name] != value:
                    entity.__dict__[name] = value

    def _commit(self) -> None:
        published, self._pending = self._pending, []
        self.sequence += 1
        for event in published:
            self.events.append(event)
            logger.info(
                event.operation,
                emitter=event.emitter,
                subject=event.subject,
                actor=event.actor,
                sequence=event.sequence,
                amounts=event.amounts,
            )

        # The operation has committed; a failing subscriber cannot undo it
        for event in published:
            for subscriber in self._subscribers:
                try:
                    subscriber(event)
                except Exception:
                    logger.exception(
                        "subscriber_failed",
                        subscriber=getattr(subscriber, "__qualname__", repr(subscriber)),
                        operation=event.operation,
                        sequence=event.sequence,
                    )

    # ------------------------------------------------------------------ #
    # Events
    # ------------------------------------------------------------------ #

    def subscribe(self, subscriber: EventSubscriber) -> None:
        self._subscribers.append(subscriber)

    def emit(self, **fields) -> LedgerEvent:
        """Buffer an event for publication when the current operation commits."""
        if not self._depth:
            raise InvalidState("Events can only be emitted inside an operation")
        event = LedgerEvent(sequence=self.sequence, timestamp=self.now, **fields)
        self._pending.append(event)
        return event

    def events_for(self, subject: str) -> List[LedgerEvent]:
        return [event for event in self.events if event.subject == subject]
