"""
Trade execution against the bonding curve
Prices buys and sells with the curve math, applies them to the ledger, then moves funds
"""

from dataclasses import dataclass
from typing import Dict, Optional

from launchpad.clients.erc20 import FungibleToken, TokenError
from launchpad.clients.native_bank import NativeLedger, NativeTransferError
from launchpad.core.config import CurveConfig
from launchpad.core.curve_math import (
    exact_fill,
    full_fill,
    net_from_gross,
    sell_outcome,
    spot_price,
)
from launchpad.core.errors import (
    CurveCompleted,
    InsufficientEthForPartialFill,
    InsufficientFundsInProtocol,
    InsufficientTokenBalance,
    LaunchpadError,
    NotEnoughFunds,
    TransferFailed,
    ZeroAmount,
)
from launchpad.core.events import EventLog, TokensPurchased, TokensSold
from launchpad.core.fee_vault import FeeVault
from launchpad.core.fixed_point import Wad
from launchpad.core.ledger import ReserveLedger, ReserveMutation, TokenState
from launchpad.core.logger import get_logger
from launchpad.core.migration import MigrationEngine, MigrationResult


logger = get_logger(__name__)


@dataclass(frozen=True)
class BuyQuote:
    """
    Priced buy

    All values in base units:
    - tokens_out: token base units
    - gross_paid / eth_net / fee / refund: wei
    """
    tokens_out: int
    gross_paid: int  # Kept by the protocol (value - refund)
    eth_net: int  # Added to the curve and to real_eth
    fee: int
    refund: int
    new_virtual_eth: int
    new_virtual_token: int
    partial: bool  # Exhausts the curve inventory
    price_after: Wad


@dataclass(frozen=True)
class SellQuote:
    """Priced sell; all ETH values in wei"""
    tokens_in: int
    gross_eth_out: int
    fee: int
    net_eth_out: int
    new_virtual_eth: int
    new_virtual_token: int
    price_after: Wad


@dataclass(frozen=True)
class BuyResult:
    """Executed buy"""
    tokens_received: int
    gross_paid: int
    refund: int
    migration: Optional[MigrationResult] = None


class TradeExecutor:
    """
    Executes buys and sells for every launched token

    Ordering inside each trade is fixed: price, validate, mutate ledger and
    fee vault, then transfer tokens/ETH, then emit. A callback triggered by
    a transfer therefore already sees post-trade state.
    """

    def __init__(
        self,
        ledger: ReserveLedger,
        fee_vault: FeeVault,
        events: EventLog,
        bank: NativeLedger,
        tokens: Dict[str, FungibleToken],
        migration_engine: MigrationEngine,
        factory_address: str
    ):
        self.ledger = ledger
        self.fee_vault = fee_vault
        self.events = events
        self.bank = bank
        self.tokens = tokens
        self.migration_engine = migration_engine
        self.factory_address = factory_address

    # =========================================================================
    # QUOTES
    # =========================================================================

    def quote_buy(self, state: TokenState, value: int, config: CurveConfig) -> BuyQuote:
        """
        Price a buy of value wei without touching state

        A buy that would take the whole remaining inventory (or more) is
        filled exactly up to the inventory and the surplus refunded.

        Raises:
            ZeroAmount: If value is zero
            CurveCompleted: If the curve inventory is already exhausted
            InsufficientOutputAmount: If value buys nothing
            InsufficientEthForPartialFill: If value cannot cover the final fill
        """
        if value == 0:
            raise ZeroAmount(value=value)
        if state.is_completed:
            raise CurveCompleted(token_id=state.token_id)

        eth_net = net_from_gross(value, config.trade_fee_rate, config.fee_denominator)
        fill = full_fill(state.virtual_eth, state.virtual_token, eth_net)

        if fill.tokens_out < state.real_token:
            return BuyQuote(
                tokens_out=fill.tokens_out,
                gross_paid=value,
                eth_net=eth_net,
                fee=value - eth_net,
                refund=0,
                new_virtual_eth=fill.new_virtual_eth,
                new_virtual_token=fill.new_virtual_token,
                partial=False,
                price_after=spot_price(fill.new_virtual_eth, fill.new_virtual_token)
            )

        exact = exact_fill(
            state.virtual_eth,
            state.virtual_token,
            state.real_token,
            config.trade_fee_rate,
            config.fee_denominator
        )
        if exact.eth_gross_needed > value:
            raise InsufficientEthForPartialFill(required=exact.eth_gross_needed, provided=value)

        return BuyQuote(
            tokens_out=state.real_token,
            gross_paid=exact.eth_gross_needed,
            eth_net=exact.eth_net_needed,
            fee=exact.eth_gross_needed - exact.eth_net_needed,
            refund=value - exact.eth_gross_needed,
            new_virtual_eth=exact.new_virtual_eth,
            new_virtual_token=exact.new_virtual_token,
            partial=True,
            price_after=spot_price(exact.new_virtual_eth, exact.new_virtual_token)
        )

    def quote_sell(self, state: TokenState, amount: int, config: CurveConfig) -> SellQuote:
        """
        Price a sell of amount tokens without touching state

        Raises:
            ZeroAmount: If amount is zero
            CurveCompleted: If the curve is closed
            InsufficientOutputAmount: If the tokens are worth nothing
        """
        if amount == 0:
            raise ZeroAmount(amount=amount)
        if state.is_completed:
            raise CurveCompleted(token_id=state.token_id)

        outcome = sell_outcome(
            state.virtual_eth,
            state.virtual_token,
            amount,
            config.trade_fee_rate,
            config.fee_denominator
        )
        return SellQuote(
            tokens_in=amount,
            gross_eth_out=outcome.gross_eth_out,
            fee=outcome.fee,
            net_eth_out=outcome.net_eth_out,
            new_virtual_eth=outcome.new_virtual_eth,
            new_virtual_token=outcome.new_virtual_token,
            price_after=spot_price(outcome.new_virtual_eth, outcome.new_virtual_token)
        )

    # =========================================================================
    # EXECUTION
    # =========================================================================

    def buy(self, token_id: str, buyer: str, value: int, config: CurveConfig) -> BuyResult:
        """
        Buy tokens with value wei already held by the factory

        Must run inside the caller's transaction.

        Returns:
            BuyResult; migration is set when this buy exhausted the curve
        """
        state = self.ledger.get(token_id)
        quote = self.quote_buy(state, value, config)
        token = self.tokens[token_id]

        available = token.balance_of(self.factory_address)
        if available < quote.tokens_out:
            raise InsufficientTokenBalance(required=quote.tokens_out, available=available)

        updated = self.ledger.apply(token_id, ReserveMutation(
            virtual_eth=quote.new_virtual_eth,
            virtual_token=quote.new_virtual_token,
            real_eth=state.real_eth + quote.eth_net,
            real_token=state.real_token - quote.tokens_out,
            is_completed=True if quote.partial else None,
        ))
        self.fee_vault.accrue(quote.fee)

        self._send_tokens(token, buyer, quote.tokens_out)
        self.send_eth(buyer, quote.refund)

        self.events.emit(TokensPurchased(
            token_id=token_id,
            buyer=buyer,
            tokens_out=quote.tokens_out,
            gross_paid=quote.gross_paid,
            virtual_eth=updated.virtual_eth,
            virtual_token=updated.virtual_token,
            real_eth=updated.real_eth,
            real_token=updated.real_token
        ))

        logger.info(
            "buy_executed",
            token_id=token_id,
            buyer=buyer,
            tokens_out=quote.tokens_out,
            gross_paid=quote.gross_paid,
            fee=quote.fee,
            refund=quote.refund,
            partial=quote.partial
        )

        migration = None
        if quote.partial:
            logger.info("curve_completed", token_id=token_id, real_eth=updated.real_eth)
            migration = self.migration_engine.migrate(token_id, token, updated.amm_token_reserves, config)

        return BuyResult(
            tokens_received=quote.tokens_out,
            gross_paid=quote.gross_paid,
            refund=quote.refund,
            migration=migration
        )

    def sell(self, token_id: str, seller: str, amount: int, config: CurveConfig) -> int:
        """
        Sell amount tokens back to the curve

        Must run inside the caller's transaction.

        Returns:
            Net wei paid to the seller

        Raises:
            InsufficientFundsInProtocol: If the token's real ETH cannot cover the gross payout
            NotEnoughFunds: If the factory's ETH balance cannot cover the net payout
            TransferFailed: If the tokens cannot be pulled or the ETH cannot be paid
        """
        state = self.ledger.get(token_id)
        quote = self.quote_sell(state, amount, config)

        if quote.gross_eth_out > state.real_eth:
            raise InsufficientFundsInProtocol(required=quote.gross_eth_out, available=state.real_eth)

        liquid = self.bank.balance_of(self.factory_address)
        if liquid < quote.net_eth_out:
            raise NotEnoughFunds(required=quote.net_eth_out, available=liquid)

        updated = self.ledger.apply(token_id, ReserveMutation(
            virtual_eth=quote.new_virtual_eth,
            virtual_token=quote.new_virtual_token,
            real_eth=state.real_eth - quote.gross_eth_out,
            real_token=state.real_token + amount,
        ))
        self.fee_vault.accrue(quote.fee)

        token = self.tokens[token_id]
        try:
            token.transfer_from(self.factory_address, seller, self.factory_address, amount)
        except TokenError as e:
            raise TransferFailed(str(e), token_id=token_id, amount=amount) from e

        self.send_eth(seller, quote.net_eth_out)

        self.events.emit(TokensSold(
            token_id=token_id,
            seller=seller,
            tokens_in=amount,
            net_eth_out=quote.net_eth_out,
            virtual_eth=updated.virtual_eth,
            virtual_token=updated.virtual_token,
            real_eth=updated.real_eth,
            real_token=updated.real_token
        ))

        logger.info(
            "sell_executed",
            token_id=token_id,
            seller=seller,
            tokens_in=amount,
            net_eth_out=quote.net_eth_out,
            fee=quote.fee
        )

        return quote.net_eth_out

    def _send_tokens(self, token: FungibleToken, recipient: str, amount: int) -> None:
        try:
            token.transfer(self.factory_address, recipient, amount)
        except TokenError as e:
            raise TransferFailed(str(e), recipient=recipient, amount=amount) from e

    def send_eth(self, recipient: str, amount: int) -> None:
        try:
            self.bank.transfer(self.factory_address, recipient, amount)
        except (NativeTransferError, LaunchpadError) as e:
            # Recipient hook reverted, or re-entered the factory and was rejected
            raise TransferFailed(str(e), recipient=recipient, amount=amount) from e
