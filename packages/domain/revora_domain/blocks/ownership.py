"""Ownership computation block.

Turns a tranche's ownership ledger into DataFrames for reporting.

Output DataFrames:
- ownership_by_holder: Per-holder units and ownership percentage
- funding_summary: Funding progress and lifecycle status (single row)
"""

from typing import List

import pandas as pd

from .base import Block, BlockContext
from ..ledger import OwnershipLedger


def to_whole(amount: int, decimals: int) -> float:
    """Base units to whole units (e.g., 5_400_000_000 at 6 decimals -> 5400.0)."""
    return amount / 10 ** decimals


class OwnershipBlock(Block):
    """Converts an OwnershipLedger to ownership DataFrames.

    Inputs (from context):
        - tranche_ledger: OwnershipLedger to read

    Outputs (to context):
        - ownership_by_holder: DataFrame with columns:
            * holder: Holder address
            * units: Whole ownership units held
            * ownership_pct: Share of total supply (0-100)
            * cost_basis_value: Units valued at the tranche price (current
              holding, not what this holder paid after transfers)

        - funding_summary: DataFrame with single row:
            * tranche, name, symbol, status
            * funding_goal, total_raised: Whole payment-asset amounts
            * pct_funded: total_raised / funding_goal (0-100)
            * funding_active, funding_complete
            * total_units, holders_count
    """

    def __init__(self, ledger_key: str = "tranche_ledger"):
        """Initialize OwnershipBlock.

        Args:
            ledger_key: Context key of the OwnershipLedger (default: "tranche_ledger")
        """
        self.ledger_key = ledger_key

    def inputs(self) -> List[str]:
        return [self.ledger_key]

    def outputs(self) -> List[str]:
        return ["ownership_by_holder", "funding_summary"]

    def execute(self, context: BlockContext) -> None:
        ledger: OwnershipLedger = context.get(self.ledger_key)

        holders_df = self._compute_holders(ledger)
        context.set("ownership_by_holder", holders_df)
        context.set("funding_summary", self._compute_summary(ledger, holders_df))

    def _compute_holders(self, ledger: OwnershipLedger) -> pd.DataFrame:
        supply = ledger.total_supply()
        decimals = ledger.economics.payment_decimals

        rows = []
        for holder in ledger.holders():
            balance = ledger.balance_of(holder)
            rows.append({
                "holder": holder,
                "units": to_whole(balance, ledger.unit_decimals),
                "ownership_pct": balance * 100 / supply if supply else 0.0,
                "cost_basis_value": to_whole(
                    balance * ledger.price_per_unit // ledger.unit_scale, decimals
                ),
            })

        if not rows:
            return pd.DataFrame(columns=["holder", "units", "ownership_pct", "cost_basis_value"])

        df = pd.DataFrame(rows)
        # Largest holders first, ties by address
        return df.sort_values(["units", "holder"], ascending=[False, True]).reset_index(drop=True)

    def _compute_summary(self, ledger: OwnershipLedger, holders_df: pd.DataFrame) -> pd.DataFrame:
        decimals = ledger.economics.payment_decimals
        return pd.DataFrame([{
            "tranche": ledger.address,
            "name": ledger.name,
            "symbol": ledger.symbol,
            "status": ledger.status,
            "funding_goal": to_whole(ledger.funding_goal, decimals),
            "total_raised": to_whole(ledger.total_raised, decimals),
            "pct_funded": ledger.funding_progress_bps() / 100,
            "funding_active": ledger.funding_active,
            "funding_complete": ledger.funding_complete,
            "total_units": to_whole(ledger.total_supply(), ledger.unit_decimals),
            "holders_count": len(holders_df),
        }])
