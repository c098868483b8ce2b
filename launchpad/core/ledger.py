"""
Reserve ledger
Owns the per-token reserve state and checks every invariant on each mutation
"""

from dataclasses import dataclass, replace
from typing import Dict, List, Optional

from launchpad.core.address import ZERO_ADDRESS
from launchpad.core.errors import InvariantViolation, TokenAlreadyExists, TokenNotFound, ZeroAddress
from launchpad.core.logger import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class TokenState:
    """
    Reserve state of one launched token

    All values in base units:
    - ETH values: wei
    - Token values: 10**decimals per whole token
    """
    token_id: str  # Token contract address
    creator: str
    name: str
    symbol: str
    uri: str
    total_supply: int
    decimals: int
    virtual_eth: int  # vS
    virtual_token: int  # vT
    real_eth: int  # ETH held for payouts
    real_token: int  # Tokens still sellable on the curve
    amm_token_reserves: int  # Tokens held back for the AMM
    migration_fee_charged: int = 0
    is_completed: bool = False
    liquidity_migrated: bool = False

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary (amounts as strings)"""
        return {
            "token_id": self.token_id,
            "creator": self.creator,
            "name": self.name,
            "symbol": self.symbol,
            "uri": self.uri,
            "total_supply": str(self.total_supply),
            "decimals": self.decimals,
            "virtual_eth": str(self.virtual_eth),
            "virtual_token": str(self.virtual_token),
            "real_eth": str(self.real_eth),
            "real_token": str(self.real_token),
            "amm_token_reserves": str(self.amm_token_reserves),
            "migration_fee_charged": str(self.migration_fee_charged),
            "is_completed": self.is_completed,
            "liquidity_migrated": self.liquidity_migrated,
        }


@dataclass(frozen=True)
class ReserveMutation:
    """New values for the mutable fields; None leaves a field unchanged"""
    virtual_eth: Optional[int] = None
    virtual_token: Optional[int] = None
    real_eth: Optional[int] = None
    real_token: Optional[int] = None
    amm_token_reserves: Optional[int] = None
    migration_fee_charged: Optional[int] = None
    is_completed: Optional[bool] = None
    liquidity_migrated: Optional[bool] = None

    def changes(self) -> dict:
        return {k: v for k, v in self.__dict__.items() if v is not None}


_AMOUNT_FIELDS = (
    "virtual_eth",
    "virtual_token",
    "real_eth",
    "real_token",
    "amm_token_reserves",
    "migration_fee_charged",
)


class ReserveLedger:
    """
    Arena of TokenState records keyed by token address

    Records are immutable; apply() swaps in a replacement only after the
    invariants hold for the (before, after) pair.
    """

    def __init__(self):
        self._entries: Dict[str, TokenState] = {}
        self._order: List[str] = []

    def __contains__(self, token_id: str) -> bool:
        return token_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def token_ids(self) -> List[str]:
        """Token addresses in launch order"""
        return list(self._order)

    def create(self, state: TokenState) -> TokenState:
        """
        Register a freshly launched token

        Raises:
            TokenAlreadyExists: If the token id is taken
        """
        if state.token_id in self._entries:
            raise TokenAlreadyExists(token_id=state.token_id)

        self._check_state(state)
        if state.is_completed or state.liquidity_migrated:
            raise InvariantViolation(f"new token {state.token_id} must start on the curve")

        self._entries[state.token_id] = state
        self._order.append(state.token_id)
        logger.debug("token_registered", token_id=state.token_id, real_token=state.real_token)
        return state

    def get(self, token_id: str) -> TokenState:
        """
        Fetch a token record

        Raises:
            ZeroAddress: For the null address
            TokenNotFound: If no such token was launched
        """
        if token_id == ZERO_ADDRESS:
            raise ZeroAddress(token_id=token_id)
        try:
            return self._entries[token_id]
        except KeyError:
            raise TokenNotFound(token_id=token_id) from None

    def apply(self, token_id: str, mutation: ReserveMutation) -> TokenState:
        """
        Atomically apply a mutation

        Raises:
            InvariantViolation: If the mutated record breaks an invariant
        """
        before = self.get(token_id)
        after = replace(before, **mutation.changes())

        self._check_state(after)
        self._check_transition(before, after)

        self._entries[token_id] = after
        return after

    def snapshot(self) -> tuple:
        return dict(self._entries), list(self._order)

    def restore(self, state: tuple) -> None:
        entries, order = state
        self._entries = dict(entries)
        self._order = list(order)

    @staticmethod
    def _check_state(state: TokenState) -> None:
        for name in _AMOUNT_FIELDS:
            if getattr(state, name) < 0:
                raise InvariantViolation(f"{name} went negative for {state.token_id}: {getattr(state, name)}")

        if (state.real_token == 0) != state.is_completed:
            raise InvariantViolation(
                f"real_token={state.real_token} inconsistent with is_completed={state.is_completed}"
            )

        if state.amm_token_reserves == 0 and not state.liquidity_migrated:
            raise InvariantViolation(f"AMM allocation drained without liquidity_migrated for {state.token_id}")

    @staticmethod
    def _check_transition(before: TokenState, after: TokenState) -> None:
        if before.is_completed and not after.is_completed:
            raise InvariantViolation(f"is_completed reverted for {before.token_id}")

        if before.liquidity_migrated and not after.liquidity_migrated:
            raise InvariantViolation(f"liquidity_migrated reverted for {before.token_id}")

        if after.amm_token_reserves > before.amm_token_reserves:
            raise InvariantViolation(
                f"amm_token_reserves grew {before.amm_token_reserves} -> {after.amm_token_reserves}"
            )

        if after.migration_fee_charged < before.migration_fee_charged:
            raise InvariantViolation(f"migration_fee_charged decreased for {before.token_id}")

        # One rounding unit of drift either way: floor on buys, ceil on sells
        k_before = before.virtual_eth * before.virtual_token
        k_after = after.virtual_eth * after.virtual_token
        if (after.virtual_eth, after.virtual_token) != (before.virtual_eth, before.virtual_token):
            if after.virtual_eth == 0 or after.virtual_token == 0:
                raise InvariantViolation(f"virtual reserves emptied for {before.token_id}")
            if k_before - k_after >= after.virtual_eth or k_after - k_before >= after.virtual_token:
                raise InvariantViolation(
                    f"constant product drifted {k_before} -> {k_after} for {before.token_id}"
                )
