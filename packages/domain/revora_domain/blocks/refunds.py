"""Refund computation block.

Output DataFrames:
- refunds_by_holder: Units still held, refund due and claimed flag per holder
- refund_summary: Pool, snapshot supply and claimed totals (single row)

Both are produced for every tranche; before cancellation refund amounts are
zero and `refund_available` is False.
"""

from typing import List

import pandas as pd

from .base import Block, BlockContext
from .ownership import to_whole
from ..ledger import OwnershipLedger


class RefundBlock(Block):
    """Refund position of a tranche's holders.

    Inputs (from context):
        - tranche_ledger: OwnershipLedger to read

    Outputs (to context):
        - refunds_by_holder: holder, units, refund_amount, claimed
        - refund_summary: status, refund_available, pool, snapshot_units,
          total_claimed, remaining
    """

    def __init__(self, ledger_key: str = "tranche_ledger"):
        self.ledger_key = ledger_key

    def inputs(self) -> List[str]:
        return [self.ledger_key]

    def outputs(self) -> List[str]:
        return ["refunds_by_holder", "refund_summary"]

    def execute(self, context: BlockContext) -> None:
        ledger: OwnershipLedger = context.get(self.ledger_key)
        refund = ledger.refund
        decimals = ledger.economics.payment_decimals

        rows = []
        for holder in sorted(ledger.units.holder_logs):
            balance = ledger.balance_of(holder)
            claimed = holder in refund.claimed
            if balance == 0 and not claimed:
                continue
            rows.append({
                "holder": holder,
                "units": to_whole(balance, ledger.unit_decimals),
                "refund_amount": to_whole(ledger.get_refund_amount(holder), decimals),
                "claimed": claimed,
            })

        context.set(
            "refunds_by_holder",
            pd.DataFrame(rows, columns=["holder", "units", "refund_amount", "claimed"]),
        )
        context.set("refund_summary", pd.DataFrame([{
            "status": ledger.status,
            "refund_available": ledger.is_refund_available(),
            "pool": to_whole(refund.pool, decimals),
            "snapshot_units": to_whole(refund.snapshot_supply, ledger.unit_decimals),
            "total_claimed": to_whole(refund.total_claimed, decimals),
            "remaining": to_whole(refund.pool - refund.total_claimed, decimals),
        }]))
