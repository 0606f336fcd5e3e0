"""Structured event records published for observers and indexers.

Every committed state-changing operation emits LedgerEvents. Events are
immutable records of what happened; they are buffered during an operation and
published only if it commits, so observers never see rolled-back work.
"""

from datetime import datetime
from typing import Dict, Literal, Optional, Union
from uuid import uuid4

from pydantic import Field

from .base import DomainModel, SequenceNumber


Operation = Literal[
    # Ownership ledger
    "investment_made",
    "funding_completed",
    "funding_paused",
    "funding_activated",
    "tranche_closed",
    "units_transferred",
    "units_minted",
    "units_burned",
    "operator_transferred",
    "distribution_engine_set",
    # Refunds
    "refund_deposited",
    "refund_claimed",
    # Distribution engine
    "tranche_configured",
    "configurer_authorized",
    "configurer_revoked",
    "distribution_created",
    "revenue_claimed",
    "unclaimed_withdrawn",
    "secondary_ledger_set",
    "treasury_updated",
    # Registry
    "tranche_created",
    "tranche_deactivated",
    "tranche_reactivated",
]


class LedgerEvent(DomainModel):
    """A published event.

    Example:
        LedgerEvent(
            sequence=12,
            timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc),
            operation="revenue_claimed",
            emitter="distributor",
            subject="3",
            actor="investor_alice",
            amounts={"amount": 5_400_000_000},
            state={"total_claimed": 5_400_000_000},
        )
    """

    event_id: str = Field(
        default_factory=lambda: uuid4().hex,
        description="Unique identifier for this event"
    )

    sequence: SequenceNumber = Field(
        description="Sequence of the operation that emitted the event"
    )

    timestamp: datetime

    operation: Operation

    emitter: str = Field(
        description="Address of the entity that emitted the event"
    )

    subject: str = Field(
        description="Tranche address or distribution id the event is about"
    )

    actor: Optional[str] = Field(
        default=None,
        description="Caller of the operation"
    )

    amounts: Dict[str, int] = Field(default_factory=dict)

    state: Dict[str, Union[bool, int, str, None]] = Field(
        default_factory=dict,
        description="Resulting state after the operation"
    )
