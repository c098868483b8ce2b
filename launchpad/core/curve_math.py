"""
Bonding curve math
Pure integer functions for pricing buys and sells, deriving launch reserves and sizing migrations

Curve:
    virtual_eth * virtual_token = k   (constant product over virtual reserves)

Rounding policy:
    - floor whenever the result is an amount paid out by the protocol
    - ceil whenever the result is an amount owed to the protocol
So rounding error always stays with the protocol, never with the trader.
"""

from dataclasses import dataclass

from launchpad.core.errors import (
    BaseRaiseZero,
    IncompatibleGeometry,
    InsufficientOutputAmount,
    InvalidTokenDelta,
    InvalidTR,
    InvalidVirtuals,
    NetRaiseZero,
    NotEnoughFunds,
)
from launchpad.core.fixed_point import Wad, WAD, mul_div_floor, mul_div_ceil, div_ceil
from launchpad.core.logger import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class FullFill:
    """Outcome of spending eth_net on the curve"""
    new_virtual_eth: int
    new_virtual_token: int
    tokens_out: int


@dataclass(frozen=True)
class ExactFill:
    """ETH required to take exactly token_delta off the curve"""
    new_virtual_eth: int
    new_virtual_token: int
    eth_net_needed: int
    eth_gross_needed: int


@dataclass(frozen=True)
class SellOutcome:
    """Outcome of returning token_delta to the curve"""
    new_virtual_eth: int
    new_virtual_token: int
    gross_eth_out: int
    fee: int
    net_eth_out: int


@dataclass(frozen=True)
class LaunchReserves:
    """
    Reserves derived for a new token

    curve_tokens (R) are sold on the curve, amm_tokens (T) are held back for
    the AMM. Buying net_raise ETH exhausts R and leaves the curve price at
    base_raise / T, the AMM opening price.
    """
    virtual_eth: int
    virtual_token: int
    curve_tokens: int
    amm_tokens: int
    net_raise: int
    base_raise: int


@dataclass(frozen=True)
class MigrationSize:
    """Token/ETH amounts to deposit into the AMM plus the protocol fee"""
    token_to_lp: int
    eth_needed: int
    fee: int
    scaled_down: bool


# =============================================================================
# FEE CONVERSION
# =============================================================================

def net_from_gross(gross: int, fee_rate: int, denominator: int) -> int:
    """ETH left on the curve after the trade fee: floor(gross*(d-f)/d)"""
    return mul_div_floor(gross, denominator - fee_rate, denominator)


def gross_from_net_ceil(net: int, fee_rate: int, denominator: int) -> int:
    """
    Smallest gross whose net_from_gross is at least net

    ceil(net*d/(d-f)); with floor on the way back this never under-collects.
    """
    return mul_div_ceil(net, denominator, denominator - fee_rate)


# =============================================================================
# TRADES
# =============================================================================

def full_fill(virtual_eth: int, virtual_token: int, eth_net: int) -> FullFill:
    """
    Tokens bought with eth_net

    Raises:
        InsufficientOutputAmount: If eth_net buys nothing
    """
    new_virtual_eth = virtual_eth + eth_net
    new_virtual_token = (virtual_eth * virtual_token) // new_virtual_eth
    tokens_out = virtual_token - new_virtual_token

    if tokens_out == 0:
        raise InsufficientOutputAmount(eth_net=eth_net)

    return FullFill(
        new_virtual_eth=new_virtual_eth,
        new_virtual_token=new_virtual_token,
        tokens_out=tokens_out
    )


def exact_fill(
    virtual_eth: int,
    virtual_token: int,
    token_delta: int,
    fee_rate: int,
    denominator: int
) -> ExactFill:
    """
    ETH needed to buy exactly token_delta tokens

    Used for the final buy that exhausts the remaining curve inventory.

    Raises:
        InvalidTokenDelta: If token_delta is zero or would drain virtual_token
    """
    if token_delta == 0 or token_delta >= virtual_token:
        raise InvalidTokenDelta(token_delta=token_delta, virtual_token=virtual_token)

    new_virtual_token = virtual_token - token_delta
    new_virtual_eth = div_ceil(virtual_eth * virtual_token, new_virtual_token)
    eth_net_needed = new_virtual_eth - virtual_eth

    return ExactFill(
        new_virtual_eth=new_virtual_eth,
        new_virtual_token=new_virtual_token,
        eth_net_needed=eth_net_needed,
        eth_gross_needed=gross_from_net_ceil(eth_net_needed, fee_rate, denominator)
    )


def sell_outcome(
    virtual_eth: int,
    virtual_token: int,
    token_delta: int,
    fee_rate: int,
    denominator: int
) -> SellOutcome:
    """
    ETH paid for returning token_delta tokens

    Raises:
        InsufficientOutputAmount: If the tokens are worth zero wei
    """
    new_virtual_token = virtual_token + token_delta
    new_virtual_eth = div_ceil(virtual_eth * virtual_token, new_virtual_token)
    gross_eth_out = virtual_eth - new_virtual_eth

    if gross_eth_out == 0:
        raise InsufficientOutputAmount(token_delta=token_delta)

    fee = mul_div_floor(gross_eth_out, fee_rate, denominator)

    return SellOutcome(
        new_virtual_eth=new_virtual_eth,
        new_virtual_token=new_virtual_token,
        gross_eth_out=gross_eth_out,
        fee=fee,
        net_eth_out=gross_eth_out - fee
    )


def spot_price(virtual_eth: int, virtual_token: int) -> Wad:
    """Marginal price in wei per token base unit, as a Wad (floor)"""
    if virtual_token == 0:
        return Wad(0)
    return Wad(mul_div_floor(virtual_eth, WAD, virtual_token))


# =============================================================================
# LAUNCH
# =============================================================================

def split_supply(total_supply: int, ratio: int, denominator: int) -> tuple[int, int]:
    """Split supply into (curve_tokens, amm_tokens); ratio is the AMM share"""
    amm_tokens = mul_div_floor(total_supply, ratio, denominator)
    return total_supply - amm_tokens, amm_tokens


def derive_launch_reserves(
    curve_tokens: int,
    amm_tokens: int,
    gross_raise: int,
    fee_rate: int,
    denominator: int,
    migration_fee: Wad
) -> LaunchReserves:
    """
    Solve for the virtual reserves of a new curve

    Two conditions pin (vS, vT) down:
        1. buying SS net ETH takes exactly R tokens off the curve
        2. after that the curve price equals the AMM start price S/T
    where SS = net_from_gross(gross_raise) and S = SS / (1 + migration_fee).

    Raises:
        InvalidTR: If either bucket is empty
        NetRaiseZero: If the fee eats the whole raise
        BaseRaiseZero: If the migration fee eats the whole net raise
        IncompatibleGeometry: If S*R <= SS*T (AMM share too large)
        InvalidVirtuals: If rounding leaves a degenerate curve
    """
    r, t = curve_tokens, amm_tokens
    if t == 0 or r == 0:
        raise InvalidTR(curve_tokens=r, amm_tokens=t)

    net_raise = net_from_gross(gross_raise, fee_rate, denominator)
    if net_raise == 0:
        raise NetRaiseZero(gross_raise=gross_raise)

    base_raise = migration_fee.div_one_plus_floor(net_raise)
    if base_raise == 0:
        raise BaseRaiseZero(net_raise=net_raise, migration_fee=str(migration_fee))

    if base_raise * r <= net_raise * t:
        raise IncompatibleGeometry(
            base_raise=base_raise,
            net_raise=net_raise,
            curve_tokens=r,
            amm_tokens=t
        )

    den = base_raise * r - net_raise * t
    virtual_token = r * base_raise * r // den
    virtual_eth = net_raise * (virtual_token - r) // r

    if virtual_eth == 0 or virtual_token <= r:
        raise InvalidVirtuals(virtual_eth=virtual_eth, virtual_token=virtual_token, curve_tokens=r)

    logger.debug(
        "launch_reserves_derived",
        virtual_eth=virtual_eth,
        virtual_token=virtual_token,
        net_raise=net_raise,
        base_raise=base_raise
    )

    return LaunchReserves(
        virtual_eth=virtual_eth,
        virtual_token=virtual_token,
        curve_tokens=r,
        amm_tokens=t,
        net_raise=net_raise,
        base_raise=base_raise
    )


# =============================================================================
# MIGRATION
# =============================================================================

def size_migration(
    token_to_lp: int,
    virtual_eth: int,
    virtual_token: int,
    migration_fee: Wad,
    available_eth: int
) -> MigrationSize:
    """
    Price token_to_lp at the curve price and fit it into available_eth

    If the ETH side plus fee does not fit, the deposit is scaled down
    proportionally; the fee kept back for the scale is the one computed on
    the unscaled amount.

    Raises:
        NotEnoughFunds: If nothing can be deposited
    """
    eth_needed = mul_div_floor(token_to_lp, virtual_eth, virtual_token)
    fee = migration_fee.mul_floor(eth_needed)
    scaled_down = False

    if available_eth < eth_needed + fee:
        max_eth_for_pool = max(available_eth - fee, 0)
        if max_eth_for_pool == 0:
            raise NotEnoughFunds(required=eth_needed + fee, available=available_eth)

        token_to_lp = mul_div_floor(token_to_lp, max_eth_for_pool, eth_needed)
        eth_needed = max_eth_for_pool
        fee = migration_fee.mul_floor(eth_needed)
        scaled_down = True

    if token_to_lp == 0 or eth_needed == 0:
        raise NotEnoughFunds(token_to_lp=token_to_lp, eth_needed=eth_needed, available=available_eth)

    return MigrationSize(
        token_to_lp=token_to_lp,
        eth_needed=eth_needed,
        fee=fee,
        scaled_down=scaled_down
    )
