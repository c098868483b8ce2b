"""
Notifications emitted by successful operations
Append-only, ordered; rolled back together with the operation that emitted them
"""

from dataclasses import dataclass, asdict
from typing import List, Optional, Type, TypeVar


@dataclass(frozen=True)
class Event:
    """Base class for notifications"""

    @property
    def event_name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"event": self.event_name, **asdict(self)}


@dataclass(frozen=True)
class TokenLaunched(Event):
    token_id: str
    name: str
    symbol: str
    uri: str
    virtual_eth: int
    virtual_token: int
    real_eth: int
    real_token: int
    creator: str


@dataclass(frozen=True)
class TokensPurchased(Event):
    token_id: str
    buyer: str
    tokens_out: int
    gross_paid: int
    virtual_eth: int
    virtual_token: int
    real_eth: int
    real_token: int


@dataclass(frozen=True)
class TokensSold(Event):
    token_id: str
    seller: str
    tokens_in: int
    net_eth_out: int
    virtual_eth: int
    virtual_token: int
    real_eth: int
    real_token: int


@dataclass(frozen=True)
class LiquiditySwapped(Event):
    token_id: str
    token_amount_deposited: int
    eth_amount_deposited: int


@dataclass(frozen=True)
class FeeClaimed(Event):
    amount: int


E = TypeVar("E", bound=Event)


class EventLog:
    """Ordered notification sink"""

    def __init__(self):
        self._events: List[Event] = []

    def emit(self, event: Event) -> None:
        self._events.append(event)

    def events(self, event_type: Optional[Type[E]] = None) -> List[Event]:
        """All events, optionally only those of one type"""
        if event_type is None:
            return list(self._events)
        return [e for e in self._events if isinstance(e, event_type)]

    def last(self) -> Optional[Event]:
        return self._events[-1] if self._events else None

    def __len__(self) -> int:
        return len(self._events)

    def snapshot(self) -> int:
        return len(self._events)

    def restore(self, state: int) -> None:
        del self._events[state:]
