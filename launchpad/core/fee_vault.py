"""
Protocol fee vault
Accrues trade and migration fees and pays them out to the operator
"""

from typing import Callable

from launchpad.core.address import ZERO_ADDRESS
from launchpad.core.errors import InvariantViolation, ZeroAddress
from launchpad.core.events import EventLog, FeeClaimed
from launchpad.core.logger import get_logger


logger = get_logger(__name__)


class FeeVault:
    """Single running total of fees owed to the operator"""

    def __init__(self, events: EventLog):
        self._events = events
        self._accrued = 0

    @property
    def total(self) -> int:
        return self._accrued

    def accrue(self, amount: int) -> None:
        if amount < 0:
            raise InvariantViolation(f"negative fee accrual: {amount}")
        self._accrued += amount

    def claim(self, destination: str, pay: Callable[[str, int], None]) -> int:
        """
        Zero the accumulator and pay its value to destination

        Must run inside a transaction: if pay() raises, the caller's rollback
        restores the accumulator.

        Args:
            destination: Recipient address
            pay: Transfer function (recipient, amount)

        Returns:
            Amount paid

        Raises:
            ZeroAddress: If destination is the null address
        """
        if destination == ZERO_ADDRESS:
            raise ZeroAddress(destination=destination)

        amount = self._accrued
        self._accrued = 0
        pay(destination, amount)

        self._events.emit(FeeClaimed(amount=amount))
        logger.info("fee_claimed", destination=destination, amount=amount)
        return amount

    def snapshot(self) -> int:
        return self._accrued

    def restore(self, state: int) -> None:
        self._accrued = state
