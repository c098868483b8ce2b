"""
Launchpad simulator

Usage:
    launchpad-sim --config config/config.example.yml --initial-eth 5 --ratio-bps 1000 --buy 0.5 --buy 1.2
    launchpad-sim --config config/config.example.yml --buy 6 --claim

This will:
1. Load curve/AMM settings from YAML
2. Launch one token in a fresh in-memory world
3. Run the buys (one funded account per buy), optionally sell back and claim fees
4. Print events, final token state and metrics as JSON
"""

import argparse
import json
import sys
from typing import List, Optional

from launchpad.clients.amm import AmmRouter
from launchpad.clients.native_bank import NativeBank
from launchpad.core.address import derive_address
from launchpad.core.config import ConfigurationManager
from launchpad.core.curve_math import spot_price
from launchpad.core.errors import LaunchpadError
from launchpad.core.factory import TokenFactory
from launchpad.core.fixed_point import Wad
from launchpad.core.logger import get_logger, setup_logging
from launchpad.core.metrics import init_metrics


logger = get_logger(__name__)


OPERATOR = "0x00000000000000000000000000000000000000aa"
CREATOR = "0x00000000000000000000000000000000000000cc"


def to_wei(ether: str) -> int:
    """Decimal ether string to wei"""
    return Wad.from_decimal(ether).raw


def run_scenario(
    config_path: str,
    initial_eth: str,
    ratio_bps: int,
    buys: List[str],
    sell_back: bool = False,
    claim: bool = False
) -> dict:
    """
    Run one launch/trade scenario and return the report

    Args:
        config_path: Path to YAML config
        initial_eth: Gross ETH (decimal string) that completes the curve
        ratio_bps: AMM share of supply
        buys: Buy sizes in ETH (decimal strings), one fresh buyer each
        sell_back: Sell the first buyer's tokens after all buys
        claim: Claim accrued fees to the operator at the end
    """
    config_mgr = ConfigurationManager(config_path)
    launchpad_config = config_mgr.load_config()

    setup_logging(launchpad_config.log_config)
    metrics = init_metrics(launchpad_config.metrics_config.enable_histogram)

    bank = NativeBank()
    router = AmmRouter(bank)
    factory = TokenFactory(
        owner=OPERATOR,
        bank=bank,
        router=router,
        config=launchpad_config.curve_config,
        amm_config=launchpad_config.amm_config,
        metrics=metrics
    )

    token_id = factory.launch(CREATOR, "Simulated", "SIM", "sim://token", to_wei(initial_eth), ratio_bps)

    buyers = []
    for i, amount in enumerate(buys):
        buyer = derive_address(CREATOR, 1000 + i)
        value = to_wei(amount)
        bank.mint(buyer, value)
        try:
            result = factory.buy(buyer, token_id, value)
        except LaunchpadError as e:
            logger.warning("simulated_buy_rejected", buyer=buyer, value=value, error=e.code)
            continue
        buyers.append((buyer, result.tokens_received))

    if sell_back and buyers:
        seller, amount = buyers[0]
        factory.token(token_id).approve(seller, factory.address, amount)
        try:
            factory.sell(seller, token_id, amount)
        except LaunchpadError as e:
            logger.warning("simulated_sell_rejected", seller=seller, amount=amount, error=e.code)

    if claim:
        factory.claim_fee(OPERATOR, OPERATOR)

    reserve_token, reserve_eth = router.get_reserves(token_id)
    return {
        "token": factory.token_state(token_id).to_dict(),
        "price_wad": str(_spot(factory, token_id).raw),
        "total_fee": str(factory.total_fee()),
        "amm_reserves": {"token": str(reserve_token), "eth": str(reserve_eth)},
        "events": [_render(e.to_dict()) for e in factory.events.events()],
        "metrics": metrics.export_metrics(),
    }


def _spot(factory: TokenFactory, token_id: str) -> Wad:
    state = factory.token_state(token_id)
    return spot_price(state.virtual_eth, state.virtual_token)


def _render(event: dict) -> dict:
    """Amounts as strings so JSON consumers keep full precision"""
    return {k: str(v) if isinstance(v, int) and not isinstance(v, bool) else v for k, v in event.items()}


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Bonding-curve launchpad simulator")
    parser.add_argument(
        "--config",
        default="config/config.example.yml",
        help="Path to config file (default: config/config.example.yml)"
    )
    parser.add_argument(
        "--initial-eth",
        default="5",
        help="Gross ETH that completes the curve (default: 5)"
    )
    parser.add_argument(
        "--ratio-bps",
        type=int,
        default=1000,
        help="Share of supply held back for the AMM (default: 1000)"
    )
    parser.add_argument(
        "--buy",
        action="append",
        default=[],
        help="Buy size in ETH; repeat for several buyers"
    )
    parser.add_argument(
        "--sell-back",
        action="store_true",
        help="Sell the first buyer's tokens after the buys"
    )
    parser.add_argument(
        "--claim",
        action="store_true",
        help="Claim accrued fees at the end"
    )

    args = parser.parse_args(argv)

    try:
        report = run_scenario(
            config_path=args.config,
            initial_eth=args.initial_eth,
            ratio_bps=args.ratio_bps,
            buys=args.buy,
            sell_back=args.sell_back,
            claim=args.claim
        )
    except (LaunchpadError, FileNotFoundError, ValueError) as e:
        logger.error("simulation_failed", error=str(e))
        return 1

    print(json.dumps(report, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
