"""Append-only checkpoint logs for historical balance queries.

A checkpoint records the value of a balance (or total supply) as of a
sequence number. Logs are append-only: once a checkpoint is recorded it is
never altered, so a lookup at a past sequence always returns the same answer.

Lookup rule:
    value_at(s) = value of the latest checkpoint with sequence <= s
                  (0 if there is none)
"""

from bisect import bisect_right
from typing import Dict, List, Optional

from pydantic import Field

from .base import DomainModel, SequenceNumber, TokenAmount


# =============================================================================
# Checkpoint
# =============================================================================

class Checkpoint(DomainModel):
    """A recorded value at a sequence number."""

    sequence: SequenceNumber = Field(
        description="Sequence number of the operation that produced this value"
    )

    value: TokenAmount = Field(
        description="Balance or supply after the operation"
    )


# =============================================================================
# Checkpoint Log
# =============================================================================

class CheckpointLog(DomainModel):
    """Time-ordered log of checkpoints for one holder (or for total supply).

    Several checkpoints may share a sequence number when one operation touches
    the same balance more than once; the last one recorded wins.

    Example:
        log = CheckpointLog()
        log.push(3, 100)
        log.push(7, 40)

        log.value_at(2)   # 0
        log.value_at(5)   # 100
        log.value_at(7)   # 40
    """

    checkpoints: List[Checkpoint] = Field(
        default_factory=list,
        description="Checkpoints ordered by sequence (append-only)"
    )

    def push(self, sequence: int, value: int) -> None:
        """Append a checkpoint.

        Raises:
            ValueError: If sequence is lower than the latest recorded one
        """
        if self.checkpoints and sequence < self.checkpoints[-1].sequence:
            raise ValueError(
                f"Checkpoint sequence {sequence} precedes latest {self.checkpoints[-1].sequence}"
            )
        self.checkpoints.append(Checkpoint(sequence=sequence, value=value))

    def latest(self) -> int:
        """Most recent value (0 if the log is empty)."""
        return self.checkpoints[-1].value if self.checkpoints else 0

    def value_at(self, sequence: int) -> int:
        """Binary search for the latest checkpoint at or before sequence."""
        idx = bisect_right(self.checkpoints, sequence, key=lambda c: c.sequence)
        return self.checkpoints[idx - 1].value if idx else 0

    def __len__(self) -> int:
        return len(self.checkpoints)


class CheckpointedBalances(DomainModel):
    """Per-holder balances plus total supply, each with a checkpoint log.

    This is the shared bookkeeping behind the ownership ledger and the
    secondary-beneficiary ledger. Current balances are kept alongside the logs
    so reads of the present state do not need a search.
    """

    balances: Dict[str, TokenAmount] = Field(
        default_factory=dict,
        description="Current balance per holder (holders at zero are kept)"
    )

    total: TokenAmount = Field(
        default=0,
        description="Current total supply (sum of balances)"
    )

    holder_logs: Dict[str, CheckpointLog] = Field(
        default_factory=dict,
        description="Checkpoint log per holder"
    )

    supply_log: CheckpointLog = Field(
        default_factory=CheckpointLog,
        description="Checkpoint log of total supply"
    )

    def balance_of(self, holder: str) -> int:
        return self.balances.get(holder, 0)

    def balance_at(self, holder: str, sequence: int) -> int:
        log = self.holder_logs.get(holder)
        return log.value_at(sequence) if log else 0

    def supply_at(self, sequence: int) -> int:
        return self.supply_log.value_at(sequence)

    def apply(self, sequence: int, sender: Optional[str], recipient: Optional[str], amount: int) -> None:
        """Move amount between holders; None on either side mints or burns.

        Caller is responsible for guards (frozen status, authorization); this
        only enforces that balances never go negative.

        Raises:
            ValueError: If the sender's balance is below amount
        """
        if sender is not None:
            held = self.balance_of(sender)
            if held < amount:
                raise ValueError(f"Insufficient balance: {sender} holds {held}, needs {amount}")
            self._write(sender, held - amount, sequence)
        else:
            self.total += amount
            self.supply_log.push(sequence, self.total)

        if recipient is not None:
            self._write(recipient, self.balance_of(recipient) + amount, sequence)
        else:
            self.total -= amount
            self.supply_log.push(sequence, self.total)

    def _write(self, holder: str, value: int, sequence: int) -> None:
        self.balances[holder] = value
        self.holder_logs.setdefault(holder, CheckpointLog()).push(sequence, value)
