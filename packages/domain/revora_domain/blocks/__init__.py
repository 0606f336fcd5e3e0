"""Computation blocks for tranche reporting.

Blocks read ledger entities and produce pandas DataFrames for the xlsx
renderer or any other read-only consumer.

Architecture:
    Entities (ledger state) → Blocks (computation) → DataFrames (output)

Available blocks:
- OwnershipBlock: Holders, ownership percentages and funding progress
- DistributionBlock: Distributions of a tranche and per-holder claims
- RefundBlock: Refund pool and per-holder refunds of a cancelled tranche

Usage:
    from revora_domain.blocks import BlockContext, BlockExecutor, OwnershipBlock

    context = BlockContext()
    context.set("tranche_ledger", ledger)
    BlockExecutor([OwnershipBlock()]).execute(context)

    holders_df = context.get("ownership_by_holder")
"""

from .base import Block, BlockContext, BlockExecutor, CircularDependencyError, topological_sort
from .ownership import OwnershipBlock
from .distribution import DistributionBlock
from .refunds import RefundBlock

__all__ = [
    "Block",
    "BlockContext",
    "BlockExecutor",
    "CircularDependencyError",
    "topological_sort",
    "OwnershipBlock",
    "DistributionBlock",
    "RefundBlock",
]
