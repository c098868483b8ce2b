"""
Pytest configuration and shared fixtures
These fixtures are available to all test files
"""

import pytest
from dataclasses import dataclass
from typing import Any, Dict

from launchpad.clients.amm import AmmRouter
from launchpad.clients.native_bank import NativeBank
from launchpad.core.config import AmmConfig, CurveConfig
from launchpad.core.factory import TokenFactory
from launchpad.core.metrics import MetricsCollector


ETHER = 10**18

OPERATOR = "0x00000000000000000000000000000000000000aa"
CREATOR = "0x00000000000000000000000000000000000000cc"
ALICE = "0x00000000000000000000000000000000000a11ce"
BOB = "0x0000000000000000000000000000000000000b0b"
CAROL = "0x00000000000000000000000000000000000ca201"


class FakeClock:
    """Settable clock so deadlines are deterministic"""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@dataclass
class World:
    """Fully wired in-memory chain: bank, AMM router and factory"""
    bank: NativeBank
    router: AmmRouter
    factory: TokenFactory
    metrics: MetricsCollector
    clock: FakeClock

    def fund(self, account: str, amount: int) -> None:
        self.bank.mint(account, amount)

    def launch(self, initial_eth: int = 5 * ETHER, ratio_bps: int = 1000, value: int = 0) -> str:
        if value:
            self.fund(CREATOR, value)
        return self.factory.launch(CREATOR, "Frog", "FROG", "ipfs://frog", initial_eth, ratio_bps, value=value)

    def buy(self, account: str, token_id: str, value: int):
        self.fund(account, value)
        return self.factory.buy(account, token_id, value)

    def sell(self, account: str, token_id: str, amount: int) -> int:
        self.factory.token(token_id).approve(account, self.factory.address, amount)
        return self.factory.sell(account, token_id, amount)


@pytest.fixture
def test_config_dict() -> Dict[str, Any]:
    """
    Sample configuration dictionary for testing

    Returns valid config that can be modified per test
    """
    return {
        "curve": {
            "total_supply_tokens": 1_000_000_000,
            "decimals": 18,
            "trade_fee_rate": 100,
            "fee_denominator": 10000,
            "migration_fee": "0.02"
        },
        "amm": {
            "slippage_bps": 100,
            "deadline_seconds": 300,
            "lp_recipient": "0x000000000000000000000000000000000000dEaD"
        },
        "logging": {
            "level": "DEBUG",
            "format": "json",
            "output_file": None
        },
        "metrics": {
            "enable_histogram": True
        }
    }


@pytest.fixture
def test_config_file(test_config_dict, tmp_path):
    """
    Create a temporary config file for testing

    Returns path to temporary YAML config file
    """
    import yaml

    config_file = tmp_path / "test_config.yml"
    with open(config_file, 'w') as f:
        yaml.dump(test_config_dict, f)

    return str(config_file)


@pytest.fixture
def metrics_collector() -> MetricsCollector:
    """
    Create fresh metrics collector for each test

    Returns clean MetricsCollector instance
    """
    collector = MetricsCollector(enable_histogram=True)
    yield collector
    # Clean up after test
    collector.reset()


@pytest.fixture
def curve_config() -> CurveConfig:
    """Default curve parameters: 1B tokens, 1% trade fee, 2% migration fee"""
    return CurveConfig()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def world(curve_config, metrics_collector, clock) -> World:
    """Initialized factory with an empty bank and a fresh AMM"""
    bank = NativeBank()
    router = AmmRouter(bank, clock=clock)
    factory = TokenFactory(
        owner=OPERATOR,
        bank=bank,
        router=router,
        config=curve_config,
        amm_config=AmmConfig(),
        metrics=metrics_collector,
        clock=clock
    )
    return World(bank=bank, router=router, factory=factory, metrics=metrics_collector, clock=clock)


@pytest.fixture
def token_id(world) -> str:
    """Token launched with a 5 ETH raise and 10% of supply held for the AMM"""
    return world.launch()


def pytest_configure(config):
    """Register custom pytest markers"""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running (>5 seconds)"
    )
