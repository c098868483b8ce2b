"""
In-memory fixed-supply fungible token
Standard balance/allowance semantics; the whole supply is minted once at creation
"""

from typing import Dict, Protocol, Tuple


class TokenError(Exception):
    """Token operation rejected (the in-memory analogue of a revert)"""


class InsufficientBalance(TokenError):
    pass


class InsufficientAllowance(TokenError):
    pass


class FungibleToken(Protocol):
    """Token interface consumed by the engine"""

    address: str
    decimals: int

    def balance_of(self, account: str) -> int: ...

    def allowance(self, owner: str, spender: str) -> int: ...

    def approve(self, owner: str, spender: str, amount: int) -> None: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> None: ...

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None: ...


class FixedSupplyToken:
    """
    ERC-20 style token held in memory

    Every mutating call names its caller explicitly (sender / owner /
    spender) since there is no transaction context to read it from.
    """

    def __init__(self, address: str, name: str, symbol: str, decimals: int, total_supply: int, owner: str):
        self.address = address
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.total_supply = total_supply
        self._balances: Dict[str, int] = {owner: total_supply}
        self._allowances: Dict[Tuple[str, str], int] = {}

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Amount must be non-negative")
        self._allowances[(owner, spender)] = amount

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        self._move(sender, recipient, amount)

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise InsufficientAllowance(f"{owner} allowed {spender} {allowed} < {amount}")
        self._move(owner, recipient, amount)
        self._allowances[(owner, spender)] = allowed - amount

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Amount must be non-negative")
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalance(f"{sender} holds {balance} < {amount}")
        self._balances[sender] = balance - amount
        self._balances[recipient] = self.balance_of(recipient) + amount

    def snapshot(self) -> tuple:
        return dict(self._balances), dict(self._allowances)

    def restore(self, state: tuple) -> None:
        balances, allowances = state
        self._balances = dict(balances)
        self._allowances = dict(allowances)

    def __repr__(self) -> str:
        return f"FixedSupplyToken({self.symbol} @ {self.address})"
