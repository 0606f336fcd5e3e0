"""Shared fixtures: a runtime with a 6-decimal payment asset, an engine and a registry.

Accounts:
    operator        - controls the engine, registry and directly deployed ledgers
    treasury        - receives investment proceeds and unrouted revenue
    investor_*      - funded with 100,000 USDC each
"""

from datetime import datetime, timezone

import pytest

from revora_domain.ledger import (
    DistributionEngine,
    OwnershipLedger,
    PaymentAsset,
    Runtime,
    TrancheRegistry,
)
from revora_domain.schemas import TrancheConfig, TrancheEconomics, TrancheMetadata

START = datetime(2025, 1, 1, tzinfo=timezone.utc)
INVESTORS = ["investor_alice", "investor_bob", "investor_carol"]


def usdc_units(whole: int) -> int:
    return whole * 10**6


def whole_units(whole: int) -> int:
    """Whole ownership units in 18-decimal base units."""
    return whole * 10**18


@pytest.fixture
def runtime():
    return Runtime(start=START)


@pytest.fixture
def usdc(runtime):
    asset = runtime.deploy(PaymentAsset(address="usdc", symbol="USDC", decimals=6))
    for investor in INVESTORS:
        asset.mint(investor, usdc_units(100_000))
    asset.mint("operator", usdc_units(1_000_000))
    return asset


@pytest.fixture
def engine(runtime):
    return runtime.deploy(DistributionEngine(
        address="distributor",
        operator="operator",
        treasury="treasury",
    ))


@pytest.fixture
def registry(runtime, engine):
    factory = runtime.deploy(TrancheRegistry(
        address="factory",
        operator="operator",
        distribution_engine=engine.address,
    ))
    engine.authorize_configurer("operator", factory.address)
    return factory


def make_economics(goal: int = 100_000, price: int = 1) -> TrancheEconomics:
    return TrancheEconomics(
        funding_goal=usdc_units(goal),
        price_per_unit=usdc_units(price),
        payment_asset="usdc",
        payment_decimals=6,
        treasury="treasury",
    )


def make_metadata() -> TrancheMetadata:
    return TrancheMetadata(
        name="Chicken Farm Expansion",
        symbol="CHKN-T1",
        description="Investment in organic chicken farm expansion",
    )


@pytest.fixture
def make_ledger(runtime, usdc):
    """Deploy an ownership ledger operated directly by 'operator'."""

    def _make(address: str = "chkn_t1", goal: int = 100_000, price: int = 1) -> OwnershipLedger:
        return runtime.deploy(OwnershipLedger(
            address=address,
            operator="operator",
            metadata=make_metadata(),
            economics=make_economics(goal, price),
            created_at=runtime.now,
        ))

    return _make


@pytest.fixture
def ledger(make_ledger):
    return make_ledger()


@pytest.fixture
def funded(ledger, engine, usdc):
    """Ledger funded 60,000 / 40,000 by alice and bob, configured at 10% base."""
    engine.configure_tranche("operator", ledger.address, TrancheConfig(revora_share_bps=1000))
    ledger.invest("investor_alice", usdc_units(60_000))
    ledger.invest("investor_bob", usdc_units(40_000))
    return ledger
