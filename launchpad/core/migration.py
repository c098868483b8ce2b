"""
Liquidity migration
Moves a token's AMM allocation, with ETH at the curve price, into the external pool
"""

import time
from dataclasses import dataclass
from typing import Callable

from launchpad.clients.amm import AmmError, LiquidityRouter
from launchpad.clients.erc20 import FungibleToken, TokenError
from launchpad.clients.native_bank import NativeTransferError
from launchpad.core.config import AmmConfig, CurveConfig
from launchpad.core.curve_math import size_migration
from launchpad.core.errors import (
    InsufficientTokenBalanceForLP,
    InvalidVirtualReservesForMigration,
    LiquidityDepositFailed,
    ZeroAmount,
)
from launchpad.core.events import EventLog, LiquiditySwapped
from launchpad.core.fee_vault import FeeVault
from launchpad.core.fixed_point import BPS_DENOMINATOR, mul_div_floor
from launchpad.core.ledger import ReserveLedger, ReserveMutation
from launchpad.core.logger import get_logger
from launchpad.core.metrics import LatencyTimer, MetricsCollector


logger = get_logger(__name__)


@dataclass(frozen=True)
class MigrationResult:
    """What actually landed in the pool"""
    token_id: str
    token_deposited: int
    eth_deposited: int
    fee: int
    liquidity: int
    liquidity_migrated: bool


class MigrationEngine:
    """
    Sizes and executes AMM deposits for completed curves

    The only external call that can fail after ledger state was touched is
    the router deposit; callers run migrate() inside their transaction so a
    failed deposit unwinds the buy that triggered it.
    """

    def __init__(
        self,
        ledger: ReserveLedger,
        fee_vault: FeeVault,
        events: EventLog,
        router: LiquidityRouter,
        factory_address: str,
        amm_config: AmmConfig,
        metrics: MetricsCollector,
        clock: Callable[[], float] = time.time
    ):
        self.ledger = ledger
        self.fee_vault = fee_vault
        self.events = events
        self.router = router
        self.factory_address = factory_address
        self.amm_config = amm_config
        self.metrics = metrics
        self._clock = clock

    def min_amount(self, amount: int) -> int:
        """Slippage floor for one deposit leg"""
        return mul_div_floor(amount, BPS_DENOMINATOR - self.amm_config.slippage_bps, BPS_DENOMINATOR)

    def migrate(
        self,
        token_id: str,
        token: FungibleToken,
        requested_token_to_lp: int,
        config: CurveConfig
    ) -> MigrationResult:
        """
        Deposit up to requested_token_to_lp tokens plus matching ETH

        Args:
            token_id: Launched token address
            token: Token contract held by the factory
            requested_token_to_lp: Desired token leg, clamped to amm_token_reserves
            config: Active curve config (migration fee)

        Returns:
            MigrationResult with the router's actual amounts

        Raises:
            ZeroAmount: If nothing is left to migrate
            InvalidVirtualReservesForMigration: If the curve has no price
            NotEnoughFunds: If real ETH cannot fund any deposit
            InsufficientTokenBalanceForLP: If the factory holds too few tokens
            LiquidityDepositFailed: If the router rejects the deposit
        """
        state = self.ledger.get(token_id)

        token_to_lp = min(requested_token_to_lp, state.amm_token_reserves)
        if token_to_lp == 0:
            raise ZeroAmount(requested=requested_token_to_lp, amm_token_reserves=state.amm_token_reserves)

        if state.virtual_eth == 0 or state.virtual_token == 0:
            raise InvalidVirtualReservesForMigration(
                virtual_eth=state.virtual_eth,
                virtual_token=state.virtual_token
            )

        size = size_migration(
            token_to_lp,
            state.virtual_eth,
            state.virtual_token,
            config.migration_fee,
            state.real_eth
        )

        balance = token.balance_of(self.factory_address)
        if balance < size.token_to_lp:
            raise InsufficientTokenBalanceForLP(required=size.token_to_lp, available=balance)

        if size.scaled_down:
            logger.warning(
                "migration_scaled_down",
                token_id=token_id,
                requested=token_to_lp,
                token_to_lp=size.token_to_lp,
                eth_needed=size.eth_needed,
                real_eth=state.real_eth
            )

        deadline = int(self._clock()) + self.amm_config.deadline_seconds
        try:
            token.approve(self.factory_address, self.router.address, size.token_to_lp)
            with LatencyTimer(self.metrics, "amm_deposit"):
                deposit = self.router.add_liquidity_eth(
                    sender=self.factory_address,
                    token=token,
                    amount_token_desired=size.token_to_lp,
                    amount_token_min=self.min_amount(size.token_to_lp),
                    amount_eth_min=self.min_amount(size.eth_needed),
                    to=self.amm_config.lp_recipient,
                    deadline=deadline,
                    value=size.eth_needed,
                )
        except (AmmError, TokenError, NativeTransferError) as e:
            logger.error("amm_deposit_failed", token_id=token_id, error=str(e))
            raise LiquidityDepositFailed(
                str(e),
                token_to_lp=size.token_to_lp,
                eth_needed=size.eth_needed
            ) from e

        # Clear leftover allowance if the router took less than offered
        token.approve(self.factory_address, self.router.address, 0)

        remaining = state.amm_token_reserves - deposit.amount_token
        updated = self.ledger.apply(token_id, ReserveMutation(
            real_eth=state.real_eth - (deposit.amount_eth + size.fee),
            amm_token_reserves=remaining,
            migration_fee_charged=state.migration_fee_charged + size.fee,
            liquidity_migrated=True if remaining == 0 else None,
        ))
        self.fee_vault.accrue(size.fee)

        self.events.emit(LiquiditySwapped(
            token_id=token_id,
            token_amount_deposited=deposit.amount_token,
            eth_amount_deposited=deposit.amount_eth
        ))

        logger.info(
            "liquidity_migrated",
            token_id=token_id,
            token_deposited=deposit.amount_token,
            eth_deposited=deposit.amount_eth,
            fee=size.fee,
            amm_token_reserves=updated.amm_token_reserves,
            liquidity_migrated=updated.liquidity_migrated
        )

        return MigrationResult(
            token_id=token_id,
            token_deposited=deposit.amount_token,
            eth_deposited=deposit.amount_eth,
            fee=size.fee,
            liquidity=deposit.liquidity,
            liquidity_migrated=updated.liquidity_migrated
        )
