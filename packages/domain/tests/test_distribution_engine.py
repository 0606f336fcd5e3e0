"""Tests for the revenue distribution engine.

Tests cover:
- Tranche configuration and configurer authorization
- Split computation with time and performance bonuses
- Snapshot-based claimable amounts and claims
- Claim deadlines and sweeping unclaimed funds
- Secondary-ledger routing of the secondary share
- Re-entrancy and rollback behaviour of claims
"""

from datetime import timedelta

import pytest

from revora_domain.errors import (
    AlreadyClaimed,
    AlreadyWithdrawn,
    ClaimPeriodActive,
    DeadlinePassed,
    InvalidAddress,
    InvalidBasisPoints,
    InvalidDuration,
    NotConfigurer,
    NotOperator,
    NothingToClaim,
    TrancheNotConfigured,
    TransferFailed,
    UnknownDistribution,
    ZeroAmount,
)
from revora_domain.ledger import SecondaryLedger
from revora_domain.schemas import TrancheConfig

from conftest import usdc_units, whole_units


def distribute(engine, runtime, tranche, amount, profit=0, start=None):
    return engine.create_distribution(
        "operator",
        tranche=tranche,
        payment_asset="usdc",
        total_amount=usdc_units(amount),
        profit_amount=usdc_units(profit),
        investment_start=start or runtime.now,
    )


# =============================================================================
# Configuration
# =============================================================================

class TestConfigure:

    def test_configure_marks_configured(self, engine, ledger):
        engine.configure_tranche("operator", ledger.address, TrancheConfig(revora_share_bps=1000))
        config = engine.get_config(ledger.address)
        assert config.is_configured
        assert config.revora_share_bps == 1000

    def test_unconfigured_default(self, engine):
        assert not engine.get_config("tranche_9").is_configured

    def test_reconfigure_overwrites(self, engine, ledger):
        engine.configure_tranche("operator", ledger.address, TrancheConfig(revora_share_bps=1000))
        engine.configure_tranche("operator", ledger.address, TrancheConfig(revora_share_bps=2500))
        assert engine.get_config(ledger.address).revora_share_bps == 2500

    def test_configurer_authorization(self, engine, ledger):
        config = TrancheConfig(revora_share_bps=1000)
        with pytest.raises(NotConfigurer):
            engine.configure_tranche("helper", ledger.address, config)

        engine.authorize_configurer("operator", "helper")
        engine.configure_tranche("helper", ledger.address, config)

        engine.revoke_configurer("operator", "helper")
        with pytest.raises(NotConfigurer):
            engine.configure_tranche("helper", ledger.address, config)

    def test_authorize_operator_only(self, engine):
        with pytest.raises(NotOperator):
            engine.authorize_configurer("helper", "helper")

    @pytest.mark.parametrize("field", ["revora_share_bps", "time_bonus_bps", "performance_bonus_bps"])
    def test_bps_above_max_rejected(self, engine, ledger, field):
        config = TrancheConfig(revora_share_bps=0).model_copy(update={field: 10_001})
        with pytest.raises(InvalidBasisPoints):
            engine.configure_tranche("operator", ledger.address, config)
        assert not engine.get_config(ledger.address).is_configured

    def test_zero_claim_period_rejected(self, engine, ledger):
        config = TrancheConfig(revora_share_bps=1000, claim_period=timedelta(0))
        with pytest.raises(InvalidDuration):
            engine.configure_tranche("operator", ledger.address, config)


# =============================================================================
# Creating distributions
# =============================================================================

class TestCreateDistribution:

    def test_base_split_and_claimable(self, engine, funded, runtime, usdc):
        """10,000 at 10%: 1,000 to treasury, 5,400 and 3,600 claimable."""
        dist_id = distribute(engine, runtime, funded.address, 10_000)
        dist = engine.get_distribution(dist_id)

        assert dist.secondary_amount == usdc_units(1_000)
        assert dist.tranche_amount == usdc_units(9_000)
        assert dist.tranche_amount + dist.secondary_amount == dist.total_amount
        assert engine.get_claimable_amount(dist_id, "investor_alice") == usdc_units(5_400)
        assert engine.get_claimable_amount(dist_id, "investor_bob") == usdc_units(3_600)

        # No secondary ledger: the secondary share went to the treasury
        assert usdc.balance_of("treasury") == usdc_units(101_000)
        assert usdc.balance_of(engine.address) == usdc_units(9_000)
        assert dist.total_claimed == usdc_units(1_000)

    def test_performance_bonus(self, engine, funded, runtime):
        engine.configure_tranche("operator", funded.address, TrancheConfig(
            revora_share_bps=1000,
            performance_threshold=usdc_units(50_000),
            performance_bonus_bps=500,
        ))
        dist_id = distribute(engine, runtime, funded.address, 10_000, profit=60_000)
        dist = engine.get_distribution(dist_id)
        assert dist.effective_bps == 1500
        assert dist.secondary_amount == usdc_units(1_500)

    def test_time_bonus_uses_elapsed_wall_clock(self, engine, funded, runtime):
        engine.configure_tranche("operator", funded.address, TrancheConfig(
            revora_share_bps=1000,
            min_investment_period=timedelta(days=365),
            time_bonus_bps=500,
        ))
        start = runtime.now
        early = distribute(engine, runtime, funded.address, 10_000, start=start)
        runtime.advance_time(timedelta(days=365))
        late = distribute(engine, runtime, funded.address, 10_000, start=start)

        assert engine.get_distribution(early).effective_bps == 1000
        assert engine.get_distribution(late).effective_bps == 1500

    def test_naive_investment_start_taken_as_utc(self, engine, funded, runtime):
        engine.configure_tranche("operator", funded.address, TrancheConfig(
            revora_share_bps=1000,
            min_investment_period=timedelta(days=365),
            time_bonus_bps=500,
        ))
        start = runtime.now.replace(tzinfo=None) - timedelta(days=365)
        dist_id = distribute(engine, runtime, funded.address, 10_000, start=start)
        assert engine.get_distribution(dist_id).effective_bps == 1500

    def test_future_investment_start_gets_no_time_bonus(self, engine, funded, runtime):
        engine.configure_tranche("operator", funded.address, TrancheConfig(
            revora_share_bps=1000,
            min_investment_period=timedelta(days=1),
            time_bonus_bps=500,
        ))
        dist_id = distribute(engine, runtime, funded.address, 100, start=runtime.now + timedelta(days=10))
        assert engine.get_distribution(dist_id).effective_bps == 1000

    def test_combined_bonuses_clamped(self, engine, funded, runtime):
        engine.configure_tranche("operator", funded.address, TrancheConfig(
            revora_share_bps=9000,
            min_investment_period=timedelta(days=1),
            time_bonus_bps=800,
            performance_threshold=1,
            performance_bonus_bps=800,
        ))
        dist_id = distribute(
            engine, runtime, funded.address, 10_000, profit=1, start=runtime.now - timedelta(days=2)
        )
        dist = engine.get_distribution(dist_id)
        assert dist.effective_bps == 10_000
        assert dist.tranche_amount == 0
        assert engine.get_claimable_amount(dist_id, "investor_alice") == 0

    def test_requires_configuration(self, engine, ledger, runtime):
        with pytest.raises(TrancheNotConfigured):
            distribute(engine, runtime, ledger.address, 100)

    def test_operator_only(self, engine, funded, runtime):
        with pytest.raises(NotOperator):
            engine.create_distribution(
                "investor_alice", funded.address, "usdc", usdc_units(100), 0, runtime.now
            )

    def test_zero_amount_rejected(self, engine, funded, runtime):
        with pytest.raises(ZeroAmount):
            engine.create_distribution("operator", funded.address, "usdc", 0, 0, runtime.now)

    def test_snapshot_excludes_later_moves(self, engine, funded, runtime):
        """Units moved after the distribution do not change its claims."""
        dist_id = distribute(engine, runtime, funded.address, 10_000)
        funded.transfer("investor_alice", "investor_dave", whole_units(60_000))

        assert engine.get_claimable_amount(dist_id, "investor_alice") == usdc_units(5_400)
        assert engine.get_claimable_amount(dist_id, "investor_dave") == 0

    def test_distribution_views(self, engine, funded, make_ledger, runtime):
        other = make_ledger(address="chkn_t2")
        engine.configure_tranche("operator", other.address, TrancheConfig(revora_share_bps=0))
        first = distribute(engine, runtime, funded.address, 100)
        distribute(engine, runtime, other.address, 100)
        third = distribute(engine, runtime, funded.address, 100)

        assert engine.distribution_count() == 3
        assert engine.get_tranche_distributions(funded.address) == [first, third]
        with pytest.raises(UnknownDistribution):
            engine.get_distribution(3)


# =============================================================================
# Claims
# =============================================================================

class TestClaims:

    def test_claim_pays_share(self, engine, funded, runtime, usdc):
        dist_id = distribute(engine, runtime, funded.address, 10_000)
        paid = engine.claim("investor_alice", dist_id)

        assert paid == usdc_units(5_400)
        assert usdc.balance_of("investor_alice") == usdc_units(45_400)
        assert engine.has_claimed(dist_id, "investor_alice")
        assert engine.get_claimable_amount(dist_id, "investor_alice") == 0

    def test_second_claim_fails(self, engine, funded, runtime, usdc):
        dist_id = distribute(engine, runtime, funded.address, 10_000)
        engine.claim("investor_alice", dist_id)
        balance = usdc.balance_of("investor_alice")

        with pytest.raises(AlreadyClaimed):
            engine.claim("investor_alice", dist_id)
        assert usdc.balance_of("investor_alice") == balance

    def test_claims_never_exceed_deposit(self, engine, ledger, runtime, usdc):
        """Rounding favours the engine: three equal holders of an odd amount."""
        engine.configure_tranche("operator", ledger.address, TrancheConfig(revora_share_bps=0))
        for investor in ("investor_alice", "investor_bob", "investor_carol"):
            ledger.invest(investor, usdc_units(1_000))
        dist_id = engine.create_distribution("operator", ledger.address, "usdc", 100, 0, runtime.now)

        paid = sum(
            engine.claim(investor, dist_id)
            for investor in ("investor_alice", "investor_bob", "investor_carol")
        )
        assert paid == 99
        assert engine.get_distribution(dist_id).total_claimed <= 100

    def test_non_holder_has_nothing_to_claim(self, engine, funded, runtime):
        dist_id = distribute(engine, runtime, funded.address, 10_000)
        with pytest.raises(NothingToClaim):
            engine.claim("investor_carol", dist_id)

    def test_unknown_distribution(self, engine, funded):
        with pytest.raises(UnknownDistribution):
            engine.claim("investor_alice", 42)
        assert engine.get_claimable_amount(42, "investor_alice") == 0

    def test_deadline(self, engine, funded, runtime):
        dist_id = distribute(engine, runtime, funded.address, 10_000)

        runtime.advance_time(timedelta(days=30))
        assert engine.get_claimable_amount(dist_id, "investor_alice") == usdc_units(5_400)

        runtime.advance_time(timedelta(seconds=1))
        assert engine.get_claimable_amount(dist_id, "investor_alice") == 0
        with pytest.raises(DeadlinePassed):
            engine.claim("investor_alice", dist_id)

    def test_reentrant_claim_rejected(self, engine, funded, runtime, usdc):
        """A claim re-entered from the payout hook sees the caller as claimed."""
        dist_id = distribute(engine, runtime, funded.address, 10_000)
        attempts = []

        def reenter(asset, sender, amount):
            try:
                engine.claim("investor_alice", dist_id)
            except AlreadyClaimed as exc:
                attempts.append(exc)

        usdc.on_receive("investor_alice", reenter)
        engine.claim("investor_alice", dist_id)
        usdc.clear_hook("investor_alice")

        assert len(attempts) == 1
        assert usdc.balance_of("investor_alice") == usdc_units(45_400)
        assert engine.get_distribution(dist_id).total_claimed == usdc_units(1_000 + 5_400)

    def test_failing_hook_rolls_back_claim(self, engine, funded, runtime, usdc):
        dist_id = distribute(engine, runtime, funded.address, 10_000)

        def reject(asset, sender, amount):
            raise RuntimeError("recipient rejects payment")

        usdc.on_receive("investor_alice", reject)
        with pytest.raises(RuntimeError):
            engine.claim("investor_alice", dist_id)
        usdc.clear_hook("investor_alice")

        assert not engine.has_claimed(dist_id, "investor_alice")
        assert usdc.balance_of("investor_alice") == usdc_units(40_000)
        assert engine.claim("investor_alice", dist_id) == usdc_units(5_400)

    def test_failed_investment_inside_hook_is_undone(self, engine, funded, make_ledger, runtime, usdc):
        """An investment the hook cannot pay for leaves no units, even when the hook recovers."""
        other = make_ledger("chkn_t2")
        dist_id = distribute(engine, runtime, funded.address, 10_000)
        failures = []

        def invest_more(asset, sender, amount):
            try:
                other.invest("investor_alice", usdc_units(50_000))
            except TransferFailed as exc:
                failures.append(exc)

        usdc.on_receive("investor_alice", invest_more)
        engine.claim("investor_alice", dist_id)
        usdc.clear_hook("investor_alice")

        assert len(failures) == 1
        assert other.balance_of("investor_alice") == 0
        assert other.total_supply() == 0
        assert other.total_raised == 0
        assert runtime.events_for(other.address) == []

        # The enclosing claim still committed
        assert engine.has_claimed(dist_id, "investor_alice")
        assert engine.get_distribution(dist_id).total_claimed == usdc_units(1_000 + 5_400)
        assert usdc.balance_of("investor_alice") == usdc_units(45_400)


# =============================================================================
# Unclaimed funds
# =============================================================================

class TestWithdrawUnclaimed:

    def test_sweep_after_deadline(self, engine, funded, runtime, usdc):
        dist_id = distribute(engine, runtime, funded.address, 10_000)
        engine.claim("investor_alice", dist_id)

        with pytest.raises(ClaimPeriodActive):
            engine.withdraw_unclaimed_funds("operator", dist_id)

        runtime.advance_time(timedelta(days=31))
        swept = engine.withdraw_unclaimed_funds("operator", dist_id)

        assert swept == usdc_units(3_600)
        assert usdc.balance_of(engine.address) == 0
        assert usdc.balance_of("treasury") == usdc_units(100_000 + 1_000 + 3_600)
        assert engine.get_distribution(dist_id).total_claimed == usdc_units(10_000)

    def test_sweep_twice_fails(self, engine, funded, runtime):
        dist_id = distribute(engine, runtime, funded.address, 10_000)
        runtime.advance_time(timedelta(days=31))
        engine.withdraw_unclaimed_funds("operator", dist_id)
        with pytest.raises(AlreadyWithdrawn):
            engine.withdraw_unclaimed_funds("operator", dist_id)

    def test_sweep_operator_only(self, engine, funded, runtime):
        dist_id = distribute(engine, runtime, funded.address, 10_000)
        runtime.advance_time(timedelta(days=31))
        with pytest.raises(NotOperator):
            engine.withdraw_unclaimed_funds("investor_alice", dist_id)

    def test_set_treasury_redirects_sweep(self, engine, funded, runtime, usdc):
        dist_id = distribute(engine, runtime, funded.address, 10_000)
        engine.set_treasury("operator", "new_treasury")
        runtime.advance_time(timedelta(days=31))
        engine.withdraw_unclaimed_funds("operator", dist_id)
        assert usdc.balance_of("new_treasury") == usdc_units(9_000)


# =============================================================================
# Secondary ledger
# =============================================================================

class TestSecondaryLedger:

    @pytest.fixture
    def platform(self, runtime, engine):
        units = runtime.deploy(SecondaryLedger(address="revora_units", operator="operator"))
        units.mint("operator", "staker_bob", whole_units(1_000))
        units.mint("operator", "staker_carol", whole_units(3_000))
        engine.set_secondary_ledger("operator", units.address)
        return units

    def test_secondary_share_held_for_holders(self, engine, funded, platform, runtime, usdc):
        dist_id = distribute(engine, runtime, funded.address, 10_000)
        dist = engine.get_distribution(dist_id)

        assert dist.secondary_claimable
        assert dist.total_claimed == 0
        assert usdc.balance_of("treasury") == usdc_units(100_000)
        assert engine.get_claimable_amount(dist_id, "staker_bob") == usdc_units(250)
        assert engine.claim("staker_carol", dist_id) == usdc_units(750)

    def test_holder_of_both_ledgers_gets_both_shares(self, engine, funded, platform, runtime):
        platform.mint("operator", "investor_alice", whole_units(4_000))
        dist_id = distribute(engine, runtime, funded.address, 10_000)
        # 5,400 from the tranche + half of the 1,000 secondary share
        assert engine.get_claimable_amount(dist_id, "investor_alice") == usdc_units(5_900)

    def test_empty_secondary_ledger_routes_to_treasury(self, engine, funded, runtime, usdc):
        units = runtime.deploy(SecondaryLedger(address="revora_units", operator="operator"))
        engine.set_secondary_ledger("operator", units.address)
        dist_id = distribute(engine, runtime, funded.address, 10_000)

        assert not engine.get_distribution(dist_id).secondary_claimable
        assert usdc.balance_of("treasury") == usdc_units(101_000)

    def test_secondary_mint_and_burn_operator_only(self, platform):
        with pytest.raises(NotOperator):
            platform.mint("staker_bob", "staker_bob", 1)
        platform.burn("operator", "staker_bob", whole_units(1_000))
        assert platform.holders() == ["staker_carol"]
        assert platform.total_supply() == whole_units(3_000)

    def test_set_secondary_ledger_requires_deployed_ledger(self, engine):
        with pytest.raises(InvalidAddress):
            engine.set_secondary_ledger("operator", "nowhere")
