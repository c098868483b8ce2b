"""
Unit tests for the in-memory token and native balance clients
"""

import pytest

from launchpad.clients.erc20 import FixedSupplyToken, InsufficientAllowance, InsufficientBalance
from launchpad.clients.native_bank import NativeBank, NativeTransferError

from conftest import ALICE, BOB, CAROL


@pytest.fixture
def token():
    return FixedSupplyToken("0x00000000000000000000000000000000000070c1", "Frog", "FROG", 18, 1_000, owner=ALICE)


# =============================================================================
# TOKEN
# =============================================================================

def test_supply_minted_to_owner(token):
    assert token.balance_of(ALICE) == 1_000
    assert token.balance_of(BOB) == 0
    assert token.total_supply == 1_000


def test_transfer(token):
    token.transfer(ALICE, BOB, 300)

    assert token.balance_of(ALICE) == 700
    assert token.balance_of(BOB) == 300


def test_transfer_insufficient_balance(token):
    with pytest.raises(InsufficientBalance):
        token.transfer(BOB, ALICE, 1)


def test_transfer_from_spends_allowance(token):
    token.approve(ALICE, BOB, 500)
    token.transfer_from(BOB, ALICE, CAROL, 200)

    assert token.balance_of(CAROL) == 200
    assert token.allowance(ALICE, BOB) == 300


def test_transfer_from_without_allowance(token):
    with pytest.raises(InsufficientAllowance):
        token.transfer_from(BOB, ALICE, CAROL, 1)


def test_negative_amount_rejected(token):
    with pytest.raises(ValueError):
        token.transfer(ALICE, BOB, -1)
    with pytest.raises(ValueError):
        token.approve(ALICE, BOB, -1)


def test_token_snapshot_restore(token):
    saved = token.snapshot()
    token.approve(ALICE, BOB, 10)
    token.transfer(ALICE, BOB, 10)

    token.restore(saved)

    assert token.balance_of(ALICE) == 1_000
    assert token.allowance(ALICE, BOB) == 0


# =============================================================================
# NATIVE BANK
# =============================================================================

def test_bank_mint_and_transfer():
    bank = NativeBank()
    bank.mint(ALICE, 100)
    bank.transfer(ALICE, BOB, 40)

    assert bank.balance_of(ALICE) == 60
    assert bank.balance_of(BOB) == 40


def test_bank_transfer_short():
    bank = NativeBank()

    with pytest.raises(NativeTransferError):
        bank.transfer(ALICE, BOB, 1)


def test_bank_receive_hook_sees_credited_balance():
    bank = NativeBank()
    bank.mint(ALICE, 100)
    seen = []
    bank.register_receive_hook(BOB, lambda sender, amount: seen.append((sender, amount, bank.balance_of(BOB))))

    bank.transfer(ALICE, BOB, 25)

    assert seen == [(ALICE, 25, 25)]


def test_bank_zero_transfer_skips_hook():
    bank = NativeBank()
    seen = []
    bank.register_receive_hook(BOB, lambda sender, amount: seen.append(amount))

    bank.transfer(ALICE, BOB, 0)

    assert seen == []


def test_bank_removed_hook_not_called():
    bank = NativeBank()
    bank.mint(ALICE, 10)
    seen = []
    bank.register_receive_hook(BOB, lambda sender, amount: seen.append(amount))
    bank.remove_receive_hook(BOB)

    bank.transfer(ALICE, BOB, 10)

    assert seen == []


def test_bank_snapshot_restore():
    bank = NativeBank()
    bank.mint(ALICE, 100)
    saved = bank.snapshot()
    bank.transfer(ALICE, BOB, 100)

    bank.restore(saved)

    assert bank.balance_of(ALICE) == 100
    assert bank.balance_of(BOB) == 0
