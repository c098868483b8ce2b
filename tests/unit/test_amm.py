"""
Unit tests for the in-memory AMM
Tests pair creation, LP minting, optimal deposit amounts and deadlines
"""

import pytest
from math import isqrt

from launchpad.clients.amm import (
    MINIMUM_LIQUIDITY,
    AmmError,
    AmmRouter,
    Expired,
    InsufficientAmount,
    InsufficientLiquidityMinted,
    quote,
)
from launchpad.clients.erc20 import FixedSupplyToken, InsufficientAllowance
from launchpad.clients.native_bank import NativeBank, NativeTransferError
from launchpad.core.address import ZERO_ADDRESS

from conftest import ALICE, BOB, FakeClock


NOW = 1_700_000_000


@pytest.fixture
def bank():
    bank = NativeBank()
    bank.mint(ALICE, 10**24)
    return bank


@pytest.fixture
def router(bank):
    return AmmRouter(bank, clock=FakeClock(NOW))


@pytest.fixture
def token():
    token = FixedSupplyToken("0x00000000000000000000000000000000000070c1", "Frog", "FROG", 18, 10**30, owner=ALICE)
    return token


def deposit(router, token, amount_token, amount_eth, token_min=0, eth_min=0, deadline=NOW + 60):
    token.approve(ALICE, router.address, amount_token)
    return router.add_liquidity_eth(
        sender=ALICE,
        token=token,
        amount_token_desired=amount_token,
        amount_token_min=token_min,
        amount_eth_min=eth_min,
        to=BOB,
        deadline=deadline,
        value=amount_eth
    )


# =============================================================================
# QUOTE
# =============================================================================

def test_quote():
    assert quote(10, 100, 50) == 5
    assert quote(3, 2, 1) == 1


def test_quote_rejects_zero():
    with pytest.raises(InsufficientAmount):
        quote(0, 100, 50)
    with pytest.raises(AmmError):
        quote(1, 0, 50)


# =============================================================================
# FIRST DEPOSIT
# =============================================================================

def test_first_deposit_creates_pair(router, token, bank):
    result = deposit(router, token, 4 * 10**18, 10**18)
    pair = router.factory.get_pair(token.address)

    assert pair is not None
    assert result.amount_token == 4 * 10**18
    assert result.amount_eth == 10**18
    assert result.liquidity == isqrt(4 * 10**36) - MINIMUM_LIQUIDITY
    assert pair.balances[BOB] == result.liquidity
    assert pair.balances[ZERO_ADDRESS] == MINIMUM_LIQUIDITY
    assert router.get_reserves(token.address) == (4 * 10**18, 10**18)
    assert bank.balance_of(pair.address) == 10**18
    assert token.balance_of(pair.address) == 4 * 10**18


def test_reserves_of_missing_pair(router):
    assert router.get_reserves("0x00000000000000000000000000000000000070c9") == (0, 0)


def test_dust_first_deposit_rejected(router, token):
    with pytest.raises(InsufficientLiquidityMinted):
        deposit(router, token, 1_000, 1_000)


def test_create_pair_twice_rejected(router, token):
    router.factory.create_pair(token.address)

    with pytest.raises(AmmError):
        router.factory.create_pair(token.address)


# =============================================================================
# LATER DEPOSITS
# =============================================================================

def test_second_deposit_takes_pool_ratio(router, token, bank):
    deposit(router, token, 4 * 10**18, 10**18)

    # Offering 2 ETH for 4e18 tokens: only 1 ETH is taken
    result = deposit(router, token, 4 * 10**18, 2 * 10**18)

    assert result.amount_token == 4 * 10**18
    assert result.amount_eth == 10**18
    assert bank.balance_of(ALICE) == 10**24 - 2 * 10**18


def test_second_deposit_limited_by_eth(router, token):
    deposit(router, token, 4 * 10**18, 10**18)

    result = deposit(router, token, 8 * 10**18, 10**18)

    assert result.amount_token == 4 * 10**18
    assert result.amount_eth == 10**18


def test_second_deposit_below_minimum(router, token):
    deposit(router, token, 4 * 10**18, 10**18)

    with pytest.raises(InsufficientAmount):
        deposit(router, token, 8 * 10**18, 10**18, token_min=8 * 10**18)


# =============================================================================
# FAILURES
# =============================================================================

def test_expired_deadline(router, token):
    with pytest.raises(Expired):
        deposit(router, token, 4 * 10**18, 10**18, deadline=NOW - 1)


def test_missing_allowance(router, token):
    with pytest.raises(InsufficientAllowance):
        router.add_liquidity_eth(ALICE, token, 10**18, 0, 0, BOB, NOW + 60, 10**18)


def test_missing_eth(router, token):
    with pytest.raises(NativeTransferError):
        deposit(router, token, 4 * 10**18, 10**25)


def test_snapshot_restore(router, token):
    saved = router.snapshot()
    deposit(router, token, 4 * 10**18, 10**18)

    router.restore(saved)

    assert router.factory.get_pair(token.address) is None
    assert router.factory.all_pairs() == []
