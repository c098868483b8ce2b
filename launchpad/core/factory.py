"""
Token factory
Public surface of the launchpad: launch, buy, sell, migrate, claim fees and queries
"""

import time
from contextlib import contextmanager
from dataclasses import replace
from typing import Callable, Dict, Iterator, List, Optional

from launchpad.clients.amm import AmmRouter
from launchpad.clients.erc20 import FixedSupplyToken
from launchpad.clients.native_bank import NativeBank, NativeTransferError
from launchpad.core.address import derive_address, is_zero_address
from launchpad.core.config import AmmConfig, CurveConfig
from launchpad.core.curve_math import derive_launch_reserves, split_supply
from launchpad.core.errors import (
    CurveNotCompleted,
    InvalidRatio,
    LaunchpadError,
    NotInitialized,
    TransferFailed,
    Unauthorized,
    ZeroAddress,
    ZeroAmount,
)
from launchpad.core.events import EventLog, TokenLaunched
from launchpad.core.fee_vault import FeeVault
from launchpad.core.ledger import ReserveLedger, TokenState
from launchpad.core.logger import get_logger
from launchpad.core.metrics import MetricsCollector, get_metrics
from launchpad.core.migration import MigrationEngine, MigrationResult
from launchpad.core.trade_executor import BuyQuote, BuyResult, SellQuote, TradeExecutor
from launchpad.core.transaction import ReentrancyGuard, atomic


logger = get_logger(__name__)


DEFAULT_FACTORY_ADDRESS = "0x5fbdb2315678afecb367f032d93f642f64180aa3"


class TokenRegistry:
    """Tokens deployed by the factory, keyed by address"""

    def __init__(self, deployer: str):
        self.deployer = deployer
        self._tokens: Dict[str, FixedSupplyToken] = {}
        self._nonce = 0

    def deploy(self, name: str, symbol: str, decimals: int, total_supply: int) -> FixedSupplyToken:
        """Create a token with the whole supply minted to the deployer"""
        self._nonce += 1
        address = derive_address(self.deployer, self._nonce)
        token = FixedSupplyToken(address, name, symbol, decimals, total_supply, owner=self.deployer)
        self._tokens[address] = token
        return token

    def __getitem__(self, address: str) -> FixedSupplyToken:
        return self._tokens[address]

    def __contains__(self, address: str) -> bool:
        return address in self._tokens

    def snapshot(self) -> tuple:
        return (
            dict(self._tokens),
            self._nonce,
            {address: token.snapshot() for address, token in self._tokens.items()},
        )

    def restore(self, state: tuple) -> None:
        tokens, nonce, token_states = state
        for address, token_state in token_states.items():
            tokens[address].restore(token_state)
        self._tokens = dict(tokens)
        self._nonce = nonce


class TokenFactory:
    """
    Launchpad for fixed-supply tokens on constant-product bonding curves

    Every public method takes the calling address explicitly and runs as
    one transaction: on any error, ledger, fees, events, balances and AMM
    pairs are restored to their state before the call.

    Usage:
        bank = NativeBank()
        router = AmmRouter(bank)
        factory = TokenFactory(owner="0xop...", bank=bank, router=router, config=CurveConfig())

        token_id = factory.launch(creator, "Frog", "FROG", "ipfs://...", 5 * 10**18, 1000)
        result = factory.buy(buyer, token_id, 10**18)
    """

    def __init__(
        self,
        owner: str,
        bank: NativeBank,
        router: AmmRouter,
        config: Optional[CurveConfig] = None,
        amm_config: Optional[AmmConfig] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.time,
        address: str = DEFAULT_FACTORY_ADDRESS
    ):
        if is_zero_address(owner):
            raise ZeroAddress(owner=owner)

        self.address = address
        self.owner = owner
        self.bank = bank
        self.router = router
        self.metrics = metrics or get_metrics()

        self._config = replace(config.validate(), initialized=True) if config else CurveConfig()
        self._amm_config = (amm_config or AmmConfig()).validate()

        self.events = EventLog()
        self.ledger = ReserveLedger()
        self.fee_vault = FeeVault(self.events)
        self.tokens = TokenRegistry(address)
        self._guard = ReentrancyGuard()

        self.migration_engine = MigrationEngine(
            ledger=self.ledger,
            fee_vault=self.fee_vault,
            events=self.events,
            router=router,
            factory_address=address,
            amm_config=self._amm_config,
            metrics=self.metrics,
            clock=clock
        )
        self.executor = TradeExecutor(
            ledger=self.ledger,
            fee_vault=self.fee_vault,
            events=self.events,
            bank=bank,
            tokens=self.tokens,
            migration_engine=self.migration_engine,
            factory_address=address
        )

        logger.info(
            "token_factory_initialized",
            address=address,
            owner=owner,
            router=router.address,
            initialized=self._config.initialized
        )

    # =========================================================================
    # TRANSACTION PLUMBING
    # =========================================================================

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        with self._guard.enter(name):
            try:
                with atomic(self.ledger, self.fee_vault, self.events, self.bank, self.router, self.tokens):
                    yield
            except LaunchpadError as e:
                logger.warning("operation_failed", operation=name, error=e.code, details=e.details)
                self.metrics.increment_counter("operations_failed", labels={"operation": name, "error": e.code})
                raise

    def _only_operator(self, caller: str) -> None:
        if caller != self.owner:
            raise Unauthorized(caller=caller)

    def _require_config(self) -> CurveConfig:
        if not self._config.initialized:
            raise NotInitialized()
        return self._config

    def _collect_value(self, sender: str, value: int) -> None:
        """Move attached ETH from sender into the factory"""
        try:
            self.bank.transfer(sender, self.address, value)
        except NativeTransferError as e:
            raise TransferFailed(str(e), sender=sender, value=value) from e

    def _pay(self, recipient: str, amount: int) -> None:
        self.executor.send_eth(recipient, amount)

    def _record_fee_gauge(self) -> None:
        self.metrics.set_gauge("total_fee_accrued", self.fee_vault.total)

    # =========================================================================
    # OPERATOR
    # =========================================================================

    def update_config(
        self,
        caller: str,
        config: Optional[CurveConfig] = None,
        amm_config: Optional[AmmConfig] = None
    ) -> CurveConfig:
        """
        Replace the curve and/or AMM settings (operator only)

        Tokens already launched keep their reserves; new fee rates apply to
        their subsequent trades.
        """
        with self._operation("update_config"):
            self._only_operator(caller)
            if config is not None:
                self._config = replace(config.validate(), initialized=True)
            if amm_config is not None:
                self._amm_config = amm_config.validate()
                self.migration_engine.amm_config = self._amm_config

        logger.info(
            "config_updated",
            trade_fee_rate=self._config.trade_fee_rate,
            fee_denominator=self._config.fee_denominator,
            migration_fee=str(self._config.migration_fee),
            slippage_bps=self._amm_config.slippage_bps
        )
        return self._config

    def migrate(self, caller: str, token_id: str, amount: int) -> MigrationResult:
        """
        Deposit more of a completed token's AMM allocation (operator only)

        Tops up a migration that was scaled down because real ETH ran short.

        Raises:
            CurveNotCompleted: While the token still trades on the curve
        """
        with self._operation("migrate"):
            self._only_operator(caller)
            config = self._require_config()
            state = self.ledger.get(token_id)
            if not state.is_completed:
                raise CurveNotCompleted(token_id=token_id, real_token=state.real_token)
            result = self.migration_engine.migrate(token_id, self.tokens[token_id], amount, config)

        self.metrics.increment_counter("migrations_executed")
        self._record_fee_gauge()
        return result

    def claim_fee(self, caller: str, destination: str) -> int:
        """
        Pay every accrued fee to destination (operator only)

        Returns:
            Amount paid in wei
        """
        with self._operation("claim_fee"):
            self._only_operator(caller)
            amount = self.fee_vault.claim(destination, self._pay)

        self.metrics.increment_counter("fees_claimed")
        self._record_fee_gauge()
        return amount

    # =========================================================================
    # TRADING
    # =========================================================================

    def launch(
        self,
        caller: str,
        name: str,
        symbol: str,
        uri: str,
        initial_amm_eth_amount: int,
        initial_ratio_bps: int,
        value: int = 0
    ) -> str:
        """
        Launch a new token on a fresh curve

        Args:
            caller: Creator address
            name, symbol, uri: Informational token metadata
            initial_amm_eth_amount: Gross wei that should exactly exhaust the curve
            initial_ratio_bps: Share of supply held back for the AMM, in fee-denominator units
            value: Wei for an immediate first buy by the creator (0 for none)

        Returns:
            Token address (the token id)
        """
        with self._operation("launch"):
            config = self._require_config()
            if is_zero_address(caller):
                raise ZeroAddress(caller=caller)
            if initial_amm_eth_amount == 0:
                raise ZeroAmount(initial_amm_eth_amount=initial_amm_eth_amount)
            if not 0 < initial_ratio_bps < config.fee_denominator:
                raise InvalidRatio(initial_ratio_bps=initial_ratio_bps, denominator=config.fee_denominator)

            curve_tokens, amm_tokens = split_supply(config.total_supply, initial_ratio_bps, config.fee_denominator)
            reserves = derive_launch_reserves(
                curve_tokens,
                amm_tokens,
                initial_amm_eth_amount,
                config.trade_fee_rate,
                config.fee_denominator,
                config.migration_fee
            )

            token = self.tokens.deploy(name, symbol, config.decimals, config.total_supply)
            state = self.ledger.create(TokenState(
                token_id=token.address,
                creator=caller,
                name=name,
                symbol=symbol,
                uri=uri,
                total_supply=config.total_supply,
                decimals=config.decimals,
                virtual_eth=reserves.virtual_eth,
                virtual_token=reserves.virtual_token,
                real_eth=0,
                real_token=reserves.curve_tokens,
                amm_token_reserves=reserves.amm_tokens,
            ))

            self.events.emit(TokenLaunched(
                token_id=state.token_id,
                name=name,
                symbol=symbol,
                uri=uri,
                virtual_eth=state.virtual_eth,
                virtual_token=state.virtual_token,
                real_eth=state.real_eth,
                real_token=state.real_token,
                creator=caller
            ))

            logger.info(
                "token_launched",
                token_id=state.token_id,
                symbol=symbol,
                creator=caller,
                virtual_eth=state.virtual_eth,
                virtual_token=state.virtual_token,
                real_token=state.real_token,
                amm_token_reserves=state.amm_token_reserves
            )

            buy_result = None
            if value > 0:
                self._collect_value(caller, value)
                buy_result = self.executor.buy(state.token_id, caller, value, config)

        self.metrics.increment_counter("tokens_launched")
        if buy_result is not None:
            self._record_buy_metrics(buy_result)
        return state.token_id

    def buy(self, caller: str, token_id: str, value: int) -> BuyResult:
        """
        Buy tokens with value wei

        Returns:
            BuyResult(tokens_received, gross_paid, refund, migration)
        """
        with self._operation("buy"):
            config = self._require_config()
            if value == 0:
                raise ZeroAmount(value=value)
            self.ledger.get(token_id)

            self._collect_value(caller, value)
            result = self.executor.buy(token_id, caller, value, config)

        self._record_buy_metrics(result)
        return result

    def sell(self, caller: str, token_id: str, amount: int) -> int:
        """
        Sell amount tokens; caller must have approved the factory first

        Returns:
            Net wei received
        """
        with self._operation("sell"):
            config = self._require_config()
            net_eth_out = self.executor.sell(token_id, caller, amount, config)

        self.metrics.increment_counter("sells_executed")
        self._record_fee_gauge()
        return net_eth_out

    def _record_buy_metrics(self, result: BuyResult) -> None:
        self.metrics.increment_counter("buys_executed")
        if result.migration is not None:
            self.metrics.increment_counter("partial_fills")
            self.metrics.increment_counter("migrations_executed")
        self._record_fee_gauge()

    # =========================================================================
    # QUERIES
    # =========================================================================

    @property
    def config(self) -> CurveConfig:
        return self._config

    @property
    def amm_config(self) -> AmmConfig:
        return self._amm_config

    @property
    def router_address(self) -> str:
        return self.router.address

    @property
    def amm_factory_address(self) -> str:
        return self.router.factory.address

    @property
    def weth_address(self) -> str:
        return self.router.weth

    def token_state(self, token_id: str) -> TokenState:
        return self.ledger.get(token_id)

    def token(self, token_id: str) -> FixedSupplyToken:
        self.ledger.get(token_id)
        return self.tokens[token_id]

    def token_ids(self) -> List[str]:
        return self.ledger.token_ids()

    def total_fee(self) -> int:
        return self.fee_vault.total

    def quote_buy(self, token_id: str, value: int) -> BuyQuote:
        return self.executor.quote_buy(self.ledger.get(token_id), value, self._require_config())

    def quote_sell(self, token_id: str, amount: int) -> SellQuote:
        return self.executor.quote_sell(self.ledger.get(token_id), amount, self._require_config())
