"""
In-memory native currency (ETH) balances
Transfers can trigger a receive hook on the recipient, like a contract fallback
"""

from typing import Callable, Dict, Protocol


ReceiveHook = Callable[[str, int], None]


class NativeTransferError(Exception):
    """Native transfer rejected"""


class NativeLedger(Protocol):
    """Native balance interface consumed by the engine"""

    def balance_of(self, account: str) -> int: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> None: ...


class NativeBank:
    """
    Wei balances per address

    Usage:
        bank = NativeBank()
        bank.mint("0xabc...", 10 * 10**18)
        bank.transfer("0xabc...", factory.address, 10**18)
    """

    def __init__(self):
        self._balances: Dict[str, int] = {}
        self._hooks: Dict[str, ReceiveHook] = {}

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def mint(self, account: str, amount: int) -> None:
        """Credit funds out of thin air (test and simulation funding)"""
        if amount < 0:
            raise ValueError("Amount must be non-negative")
        self._balances[account] = self.balance_of(account) + amount

    def register_receive_hook(self, account: str, hook: ReceiveHook) -> None:
        """
        Call hook(sender, amount) after every transfer credited to account

        A hook rejects the payment by raising NativeTransferError.
        """
        self._hooks[account] = hook

    def remove_receive_hook(self, account: str) -> None:
        self._hooks.pop(account, None)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """
        Move amount wei; a zero amount is a no-op that skips the hook

        Raises:
            NativeTransferError: If sender is short or the receive hook rejects
            Exception: Anything else the receive hook raises, unchanged
        """
        if amount < 0:
            raise ValueError("Amount must be non-negative")
        if amount == 0:
            return

        balance = self.balance_of(sender)
        if balance < amount:
            raise NativeTransferError(f"{sender} holds {balance} wei < {amount}")

        self._balances[sender] = balance - amount
        self._balances[recipient] = self.balance_of(recipient) + amount

        hook = self._hooks.get(recipient)
        if hook is not None:
            hook(sender, amount)

    def snapshot(self) -> Dict[str, int]:
        return dict(self._balances)

    def restore(self, state: Dict[str, int]) -> None:
        self._balances = dict(state)
