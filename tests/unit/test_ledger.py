"""
Unit tests for the reserve ledger
Tests lookups, mutation and every invariant check
"""

import pytest
from dataclasses import replace

from launchpad.core.address import ZERO_ADDRESS
from launchpad.core.errors import InvariantViolation, LaunchpadError, TokenAlreadyExists, TokenNotFound, ZeroAddress
from launchpad.core.ledger import ReserveLedger, ReserveMutation, TokenState


TOKEN = "0x00000000000000000000000000000000000070c1"


@pytest.fixture
def state() -> TokenState:
    return TokenState(
        token_id=TOKEN,
        creator="0x00000000000000000000000000000000000000cc",
        name="Frog",
        symbol="FROG",
        uri="ipfs://frog",
        total_supply=1_000,
        decimals=18,
        virtual_eth=1_232,
        virtual_token=1_012,
        real_eth=0,
        real_token=900,
        amm_token_reserves=100
    )


@pytest.fixture
def ledger(state) -> ReserveLedger:
    ledger = ReserveLedger()
    ledger.create(state)
    return ledger


# =============================================================================
# LOOKUP
# =============================================================================

def test_create_and_get(ledger, state):
    assert ledger.get(TOKEN) == state
    assert TOKEN in ledger
    assert len(ledger) == 1
    assert ledger.token_ids() == [TOKEN]


def test_create_duplicate_rejected(ledger, state):
    with pytest.raises(TokenAlreadyExists):
        ledger.create(state)


def test_get_unknown_token():
    with pytest.raises(TokenNotFound):
        ReserveLedger().get("0x1234")


def test_get_zero_address():
    with pytest.raises(ZeroAddress):
        ReserveLedger().get(ZERO_ADDRESS)


def test_create_rejects_completed_record(state):
    with pytest.raises(InvariantViolation):
        ReserveLedger().create(replace(state, real_token=0, is_completed=True))


def test_token_ids_keep_launch_order(ledger, state):
    second = replace(state, token_id="0x00000000000000000000000000000000000070c2")
    ledger.create(second)

    assert ledger.token_ids() == [TOKEN, second.token_id]


# =============================================================================
# MUTATION
# =============================================================================

def test_apply_replaces_record(ledger):
    # full_fill(1232, 1012, 1000): newS = 2232, newT = 1246784 // 2232 = 558
    updated = ledger.apply(TOKEN, ReserveMutation(
        virtual_eth=2_232,
        virtual_token=558,
        real_eth=1_000,
        real_token=900 - (1_012 - 558),
    ))

    assert updated.real_token == 446
    assert ledger.get(TOKEN) is updated


def test_mutation_changes_skip_none():
    assert ReserveMutation(real_eth=5, is_completed=False).changes() == {"real_eth": 5, "is_completed": False}


def test_invariant_violation_is_not_a_launchpad_error():
    assert not issubclass(InvariantViolation, LaunchpadError)


# =============================================================================
# INVARIANTS
# =============================================================================

def test_negative_amount_rejected(ledger, state):
    with pytest.raises(InvariantViolation):
        ledger.apply(TOKEN, ReserveMutation(real_eth=-1))
    assert ledger.get(TOKEN) == state


def test_completion_requires_empty_inventory(ledger):
    with pytest.raises(InvariantViolation):
        ledger.apply(TOKEN, ReserveMutation(is_completed=True))


def test_empty_inventory_requires_completion(ledger):
    with pytest.raises(InvariantViolation):
        ledger.apply(TOKEN, ReserveMutation(real_token=0))


def test_completion_cannot_revert(ledger):
    ledger.apply(TOKEN, ReserveMutation(real_token=0, is_completed=True))

    with pytest.raises(InvariantViolation):
        ledger.apply(TOKEN, ReserveMutation(real_token=10, is_completed=False))


def test_drained_amm_allocation_requires_migrated_flag(ledger):
    with pytest.raises(InvariantViolation):
        ledger.apply(TOKEN, ReserveMutation(amm_token_reserves=0))

    updated = ledger.apply(TOKEN, ReserveMutation(amm_token_reserves=0, liquidity_migrated=True))
    assert updated.liquidity_migrated


def test_amm_allocation_cannot_grow(ledger):
    with pytest.raises(InvariantViolation):
        ledger.apply(TOKEN, ReserveMutation(amm_token_reserves=101))


def test_migration_fee_charged_is_monotone(ledger):
    ledger.apply(TOKEN, ReserveMutation(migration_fee_charged=10))

    with pytest.raises(InvariantViolation):
        ledger.apply(TOKEN, ReserveMutation(migration_fee_charged=9))


def test_constant_product_drift_rejected(ledger):
    # Doubling vS without moving vT multiplies k by 2
    with pytest.raises(InvariantViolation):
        ledger.apply(TOKEN, ReserveMutation(virtual_eth=2_464))


def test_virtual_reserves_cannot_be_emptied(ledger):
    with pytest.raises(InvariantViolation):
        ledger.apply(TOKEN, ReserveMutation(virtual_eth=0, virtual_token=0))


# =============================================================================
# ROLLBACK SUPPORT
# =============================================================================

def test_snapshot_restore(ledger, state):
    saved = ledger.snapshot()
    ledger.apply(TOKEN, ReserveMutation(real_eth=50))
    ledger.create(replace(state, token_id="0x00000000000000000000000000000000000070c2"))

    ledger.restore(saved)

    assert ledger.get(TOKEN) == state
    assert ledger.token_ids() == [TOKEN]
