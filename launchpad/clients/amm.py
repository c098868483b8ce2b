"""
In-memory constant-product AMM (Uniswap V2 style), deposit side only
Pair creation, reserve queries and add-liquidity-with-ETH; no swaps
"""

import time
from dataclasses import dataclass
from math import isqrt
from typing import Callable, Dict, Optional, Protocol, Tuple

from launchpad.clients.erc20 import FungibleToken
from launchpad.clients.native_bank import NativeBank
from launchpad.core.address import ZERO_ADDRESS, derive_address
from launchpad.core.logger import get_logger


logger = get_logger(__name__)


MINIMUM_LIQUIDITY = 1000


class AmmError(Exception):
    """AMM call rejected"""


class Expired(AmmError):
    pass


class InsufficientAmount(AmmError):
    pass


class InsufficientLiquidityMinted(AmmError):
    pass


@dataclass(frozen=True)
class DepositResult:
    """Amounts the pool actually took"""
    amount_token: int
    amount_eth: int
    liquidity: int


class LiquidityRouter(Protocol):
    """Router interface consumed by the migration engine"""

    address: str
    factory: "AmmFactory"
    weth: str

    def get_reserves(self, token: str) -> Tuple[int, int]: ...

    def add_liquidity_eth(
        self,
        sender: str,
        token: FungibleToken,
        amount_token_desired: int,
        amount_token_min: int,
        amount_eth_min: int,
        to: str,
        deadline: int,
        value: int,
    ) -> DepositResult: ...


class AmmPair:
    """Token/WETH pool; ETH is custodied in the native bank under the pair address"""

    def __init__(self, address: str, token: str, weth: str):
        self.address = address
        self.token = token
        self.weth = weth
        self.reserve_token = 0
        self.reserve_eth = 0
        self.total_supply = 0
        self.balances: Dict[str, int] = {}

    def get_reserves(self) -> Tuple[int, int]:
        return self.reserve_token, self.reserve_eth

    def mint(self, to: str, amount_token: int, amount_eth: int) -> int:
        """Credit LP shares for a deposit already transferred to the pair"""
        if self.total_supply == 0:
            liquidity = isqrt(amount_token * amount_eth) - MINIMUM_LIQUIDITY
            if liquidity > 0:
                self._mint_shares(ZERO_ADDRESS, MINIMUM_LIQUIDITY)
        else:
            liquidity = min(
                amount_token * self.total_supply // self.reserve_token,
                amount_eth * self.total_supply // self.reserve_eth,
            )

        if liquidity <= 0:
            raise InsufficientLiquidityMinted(f"deposit {amount_token}/{amount_eth} mints no liquidity")

        self._mint_shares(to, liquidity)
        self.reserve_token += amount_token
        self.reserve_eth += amount_eth
        return liquidity

    def _mint_shares(self, to: str, amount: int) -> None:
        self.total_supply += amount
        self.balances[to] = self.balances.get(to, 0) + amount

    def snapshot(self) -> tuple:
        return self.reserve_token, self.reserve_eth, self.total_supply, dict(self.balances)

    def restore(self, state: tuple) -> None:
        self.reserve_token, self.reserve_eth, self.total_supply, balances = state
        self.balances = dict(balances)


class AmmFactory:
    """Pair registry keyed by token address"""

    def __init__(self, address: str, weth: str):
        self.address = address
        self.weth = weth
        self._pairs: Dict[str, AmmPair] = {}

    def get_pair(self, token: str) -> Optional[AmmPair]:
        return self._pairs.get(token)

    def create_pair(self, token: str) -> AmmPair:
        if token in self._pairs:
            raise AmmError(f"pair exists for {token}")
        pair = AmmPair(derive_address(self.address, len(self._pairs)), token, self.weth)
        self._pairs[token] = pair
        logger.debug("amm_pair_created", token=token, pair=pair.address)
        return pair

    def all_pairs(self):
        return list(self._pairs.values())

    def snapshot(self) -> dict:
        return {token: (pair, pair.snapshot()) for token, pair in self._pairs.items()}

    def restore(self, state: dict) -> None:
        self._pairs = {}
        for token, (pair, pair_state) in state.items():
            pair.restore(pair_state)
            self._pairs[token] = pair


def quote(amount_a: int, reserve_a: int, reserve_b: int) -> int:
    """Equivalent amount of the other asset at the pool price (floor)"""
    if amount_a <= 0:
        raise InsufficientAmount("quote of zero amount")
    if reserve_a <= 0 or reserve_b <= 0:
        raise AmmError("quote against empty reserves")
    return amount_a * reserve_b // reserve_a


class AmmRouter:
    """
    Liquidity router over an AmmFactory

    Usage:
        router = AmmRouter(bank)
        result = router.add_liquidity_eth(
            sender, token, 1_000, 990, 495, lp_to, deadline, value=500
        )
    """

    def __init__(
        self,
        bank: NativeBank,
        address: str = "0xb3b2467e615abd0b204952c200bc139645514361",
        weth: str = "0x760afe86e5de5fa0ee542fc7b7b713e1c5425701",
        clock: Callable[[], float] = time.time
    ):
        self.address = address
        self.weth = weth
        self.bank = bank
        self.factory = AmmFactory(derive_address(address, 0), weth)
        self._clock = clock

    def get_reserves(self, token: str) -> Tuple[int, int]:
        """(token reserve, ETH reserve); zeros if no pair exists"""
        pair = self.factory.get_pair(token)
        if pair is None:
            return 0, 0
        return pair.get_reserves()

    def add_liquidity_eth(
        self,
        sender: str,
        token: FungibleToken,
        amount_token_desired: int,
        amount_token_min: int,
        amount_eth_min: int,
        to: str,
        deadline: int,
        value: int,
    ) -> DepositResult:
        """
        Deposit token + ETH at the pool price

        value is the ETH offered; only the ETH actually deposited leaves
        sender. The router pulls tokens with transfer_from, so sender must
        have approved the router for at least amount_token_desired.

        Raises:
            Expired: If deadline has passed
            InsufficientAmount: If the pool price pushes either leg below its minimum
            TokenError / NativeTransferError: If the funds cannot be moved
        """
        if deadline < self._clock():
            raise Expired(f"deadline {deadline} passed")

        pair = self.factory.get_pair(token.address)
        if pair is None:
            pair = self.factory.create_pair(token.address)

        amount_token, amount_eth = self._optimal_amounts(
            pair, amount_token_desired, value, amount_token_min, amount_eth_min
        )

        token.transfer_from(self.address, sender, pair.address, amount_token)
        self.bank.transfer(sender, pair.address, amount_eth)
        liquidity = pair.mint(to, amount_token, amount_eth)

        logger.debug(
            "liquidity_added",
            token=token.address,
            pair=pair.address,
            amount_token=amount_token,
            amount_eth=amount_eth,
            liquidity=liquidity
        )

        return DepositResult(amount_token=amount_token, amount_eth=amount_eth, liquidity=liquidity)

    @staticmethod
    def _optimal_amounts(
        pair: AmmPair,
        token_desired: int,
        eth_desired: int,
        token_min: int,
        eth_min: int
    ) -> Tuple[int, int]:
        reserve_token, reserve_eth = pair.get_reserves()
        if reserve_token == 0 and reserve_eth == 0:
            return token_desired, eth_desired

        eth_optimal = quote(token_desired, reserve_token, reserve_eth)
        if eth_optimal <= eth_desired:
            if eth_optimal < eth_min:
                raise InsufficientAmount(f"ETH leg {eth_optimal} below minimum {eth_min}")
            return token_desired, eth_optimal

        token_optimal = quote(eth_desired, reserve_eth, reserve_token)
        if token_optimal < token_min:
            raise InsufficientAmount(f"token leg {token_optimal} below minimum {token_min}")
        return token_optimal, eth_desired

    def snapshot(self) -> dict:
        return self.factory.snapshot()

    def restore(self, state: dict) -> None:
        self.factory.restore(state)
