"""Base classes for computation blocks.

Read-only views over ledger entities are produced by blocks:
- Block abstract base class
- BlockContext for passing entities and DataFrames between blocks
- BlockExecutor for dependency resolution and execution
- Topological sort for DAG execution order

Blocks never mutate entities; they only read them and write DataFrames.
"""

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional


# =============================================================================
# Block Context
# =============================================================================

@dataclass
class BlockContext:
    """Named values shared between blocks.

    Initial inputs are usually entities (an OwnershipLedger under
    "tranche_ledger", a DistributionEngine under "distribution_engine");
    blocks add their DataFrames as they run.

    Example:
        context = BlockContext()
        context.set("tranche_ledger", ledger)

        OwnershipBlock().execute(context)
        holders_df = context.get("ownership_by_holder")
    """

    _data: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str) -> Any:
        """Get value from context.

        Raises:
            KeyError: If key not found in context
        """
        try:
            return self._data[key]
        except KeyError:
            raise KeyError(f"'{key}' is not in context (have: {sorted(self._data)})") from None

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def has(self, key: str) -> bool:
        return key in self._data

    def keys(self) -> List[str]:
        return list(self._data)


# =============================================================================
# Block Base Class
# =============================================================================

class Block(ABC):
    """A computation unit with declared inputs and outputs.

    Subclass example:
        class HoldersBlock(Block):
            def inputs(self) -> List[str]:
                return ["tranche_ledger"]

            def outputs(self) -> List[str]:
                return ["holders"]

            def execute(self, context: BlockContext) -> None:
                ledger = context.get("tranche_ledger")
                context.set("holders", pd.DataFrame({"holder": ledger.holders()}))
    """

    @abstractmethod
    def inputs(self) -> List[str]:
        """Context keys this block reads."""
        pass

    @abstractmethod
    def outputs(self) -> List[str]:
        """Context keys this block writes."""
        pass

    @abstractmethod
    def execute(self, context: BlockContext) -> None:
        """Read inputs from context, compute, write outputs to context."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(inputs={self.inputs()}, outputs={self.outputs()})"


# =============================================================================
# Dependency Resolution
# =============================================================================

class CircularDependencyError(Exception):
    """Raised when blocks depend on each other in a cycle."""
    pass


def topological_sort(blocks: List[Block]) -> List[Block]:
    """Order blocks so that every producer runs before its consumers.

    Inputs no block produces are expected in the initial context. Blocks
    with no ordering constraint between them keep their given order.

    Raises:
        ValueError: If two blocks declare the same output
        CircularDependencyError: If the dependency graph has a cycle
    """
    producers: Dict[str, Block] = {}
    for block in blocks:
        for key in block.outputs():
            if key in producers:
                raise ValueError(f"'{key}' is produced by both {producers[key]} and {block}")
            producers[key] = block

    pending = {id(block): 0 for block in blocks}
    consumers: Dict[int, List[Block]] = {id(block): [] for block in blocks}
    for block in blocks:
        for key in block.inputs():
            producer = producers.get(key)
            if producer is not None:
                consumers[id(producer)].append(block)
                pending[id(block)] += 1

    ready: Deque[Block] = deque(block for block in blocks if pending[id(block)] == 0)
    ordered: List[Block] = []
    while ready:
        block = ready.popleft()
        ordered.append(block)
        for consumer in consumers[id(block)]:
            pending[id(consumer)] -= 1
            if pending[id(consumer)] == 0:
                ready.append(consumer)

    if len(ordered) != len(blocks):
        stuck = [block for block in blocks if pending[id(block)] > 0]
        raise CircularDependencyError(f"Circular dependency among blocks: {stuck}")
    return ordered


# =============================================================================
# Block Executor
# =============================================================================

class BlockExecutor:
    """Runs blocks in dependency order against a context.

    Example:
        executor = BlockExecutor([RefundBlock(), DistributionBlock(), OwnershipBlock()])
        context = BlockContext()
        context.set("tranche_ledger", ledger)
        context.set("distribution_engine", engine)

        executor.execute(context)
        claims_df = context.get("claims_by_holder")
    """

    def __init__(self, blocks: List[Block]):
        self.blocks = blocks
        self._order: Optional[List[Block]] = None

    def execute(self, context: BlockContext) -> BlockContext:
        """Execute all blocks.

        Raises:
            CircularDependencyError: If blocks have circular dependencies
            KeyError: If a block's input is missing when it runs
            ValueError: If a block does not write a declared output
        """
        if self._order is None:
            self._order = topological_sort(self.blocks)

        for block in self._order:
            missing = [key for key in block.inputs() if not context.has(key)]
            if missing:
                raise KeyError(f"{block} is missing inputs {missing} (have: {context.keys()})")

            block.execute(context)

            unwritten = [key for key in block.outputs() if not context.has(key)]
            if unwritten:
                raise ValueError(f"{block} did not write declared outputs {unwritten}")

        return context
