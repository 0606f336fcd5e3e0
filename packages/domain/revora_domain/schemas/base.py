"""Base classes and type system for the tranche ledger models.

This module provides the foundational types and base class used throughout
the schema system. Amounts are integers in the smallest unit of their asset
(payment-asset base units, or ownership units at UNIT_DECIMALS precision).
"""

from typing import Annotated
from pydantic import BaseModel, Field, ConfigDict

# =============================================================================
# Base Model
# =============================================================================

class DomainModel(BaseModel):
    """Base class for all domain models.

    Provides common configuration for all Pydantic models in the domain layer:
    - Validation on assignment for runtime safety
    - Support for datetime/timedelta and set-valued fields
    - Literal/enum value serialization
    """

    model_config = ConfigDict(
        frozen=False,  # Entities mutate through their operations
        validate_assignment=True,  # Validate on field assignment
        use_enum_values=True,  # Use enum values in JSON
        arbitrary_types_allowed=True,
    )


# =============================================================================
# Constants
# =============================================================================

MAX_BPS = 10_000
"""Basis-point denominator: 10000 bps = 100%."""

MAX_AMOUNT = 2**256 - 1
"""Largest amount accepted anywhere in the ledger."""


# =============================================================================
# Type Aliases - Numeric
# =============================================================================

TokenAmount = Annotated[
    int,
    Field(ge=0, le=MAX_AMOUNT, description="Amount in base units (non-negative integer)")
]

PositiveAmount = Annotated[
    int,
    Field(gt=0, le=MAX_AMOUNT, description="Strictly positive amount in base units")
]

BasisPoints = Annotated[
    int,
    Field(ge=0, description="Basis points (1/100 of a percent); range checked by operations")
]

SequenceNumber = Annotated[
    int,
    Field(description="Position in the runtime's committed operation order")
]


# =============================================================================
# ID Conventions
# =============================================================================

ADDRESS_PATTERN = r'^[a-z][a-z0-9_]*$'

Address = Annotated[
    str,
    Field(
        pattern=ADDRESS_PATTERN,
        description="Snake_case account identifier (e.g., 'treasury', 'investor_alice')"
    )
]

DistributionId = Annotated[
    int,
    Field(ge=0, description="Index of a distribution in the engine's log")
]


# =============================================================================
# ID Examples and Conventions
# =============================================================================
#
# Accounts:
#   - "treasury" - Platform treasury receiving investment proceeds
#   - "operator" - Controlling operator of the engine and registry
#   - "investor_alice" - An investor
#
# Entities deployed by the registry:
#   - "tranche_0", "tranche_1" - Ownership ledgers, numbered in creation order
#
# Distributions:
#   - 0, 1, 2 ... - Indices into the distribution engine's log
#
# =============================================================================
