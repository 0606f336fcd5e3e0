"""Distribution computation block.

Output DataFrames:
- distributions: One row per distribution of the tranche
- claims_by_holder: Per distribution and holder, what is claimable now
"""

from typing import List

import pandas as pd

from .base import Block, BlockContext
from .ownership import to_whole
from ..ledger import DistributionEngine, OwnershipLedger

DISTRIBUTION_COLUMNS = [
    "distribution_id",
    "created_at",
    "claim_deadline",
    "is_open",
    "effective_bps",
    "total_amount",
    "tranche_amount",
    "secondary_amount",
    "total_claimed",
    "unclaimed",
    "snapshot_sequence",
    "claimants",
]

CLAIM_COLUMNS = ["distribution_id", "holder", "snapshot_units", "claimable", "claimed"]


class DistributionBlock(Block):
    """Summarizes a tranche's distributions and per-holder claims.

    Inputs (from context):
        - tranche_ledger: OwnershipLedger of the tranche
        - distribution_engine: DistributionEngine holding its distributions

    Outputs (to context):
        - distributions: DataFrame with DISTRIBUTION_COLUMNS; amounts are
          whole payment-asset units
        - claims_by_holder: DataFrame with CLAIM_COLUMNS, one row per holder
          with units at the distribution's snapshot. `claimable` is what
          claim() would pay right now (0 once claimed or past the deadline).
    """

    def __init__(
        self,
        ledger_key: str = "tranche_ledger",
        engine_key: str = "distribution_engine",
    ):
        self.ledger_key = ledger_key
        self.engine_key = engine_key

    def inputs(self) -> List[str]:
        return [self.ledger_key, self.engine_key]

    def outputs(self) -> List[str]:
        return ["distributions", "claims_by_holder"]

    def execute(self, context: BlockContext) -> None:
        ledger: OwnershipLedger = context.get(self.ledger_key)
        engine: DistributionEngine = context.get(self.engine_key)
        decimals = ledger.economics.payment_decimals
        now = engine.runtime.now

        dist_rows = []
        claim_rows = []
        for dist_id in engine.get_tranche_distributions(ledger.address):
            dist = engine.get_distribution(dist_id)
            dist_rows.append({
                "distribution_id": dist.id,
                "created_at": dist.created_at,
                "claim_deadline": dist.claim_deadline,
                "is_open": dist.is_open(now),
                "effective_bps": dist.effective_bps,
                "total_amount": to_whole(dist.total_amount, decimals),
                "tranche_amount": to_whole(dist.tranche_amount, decimals),
                "secondary_amount": to_whole(dist.secondary_amount, decimals),
                "total_claimed": to_whole(dist.total_claimed, decimals),
                "unclaimed": to_whole(dist.unclaimed, decimals),
                "snapshot_sequence": dist.snapshot_sequence,
                "claimants": len(dist.claimed),
            })

            for holder in sorted(ledger.units.holder_logs):
                units = ledger.units.balance_at(holder, dist.snapshot_sequence)
                if units == 0:
                    continue
                claim_rows.append({
                    "distribution_id": dist.id,
                    "holder": holder,
                    "snapshot_units": to_whole(units, ledger.unit_decimals),
                    "claimable": to_whole(engine.get_claimable_amount(dist.id, holder), decimals),
                    "claimed": holder in dist.claimed,
                })

        context.set("distributions", pd.DataFrame(dist_rows, columns=DISTRIBUTION_COLUMNS))
        context.set("claims_by_holder", pd.DataFrame(claim_rows, columns=CLAIM_COLUMNS))
