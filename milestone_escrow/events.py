"""
Domain events and the append-only event log.

Events are staged inside an atomic store block and published to the log
only when the block commits, so a rolled-back call leaves no trace here.
"""

import threading
from dataclasses import asdict, dataclass
from typing import Callable, Iterator, List, Tuple, Type, TypeVar

import structlog

from milestone_escrow.models import CampaignStatus

logger = structlog.get_logger(__name__)

E = TypeVar("E", bound="EscrowEvent")


@dataclass(frozen=True)
class EscrowEvent:
    campaign_id: int

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"event_type": self.event_type, **asdict(self)}


@dataclass(frozen=True)
class CampaignCreated(EscrowEvent):
    creator: str
    name: str
    target_amount: int
    deadline: int


@dataclass(frozen=True)
class MilestoneAdded(EscrowEvent):
    milestone_index: int
    amount: int
    description: str


@dataclass(frozen=True)
class ContributionMade(EscrowEvent):
    contributor: str
    amount: int
    total_raised: int


@dataclass(frozen=True)
class MilestoneApproved(EscrowEvent):
    milestone_index: int
    voter: str
    votes: int
    approved: bool


@dataclass(frozen=True)
class FundsReleased(EscrowEvent):
    milestone_index: int
    recipient: str
    amount: int


@dataclass(frozen=True)
class RefundClaimed(EscrowEvent):
    contributor: str
    amount: int


@dataclass(frozen=True)
class CampaignFinalized(EscrowEvent):
    status: CampaignStatus


class EventLog:
    """
    Append-only sink for committed escrow events.

    Subscribers are called synchronously, in publication order, after the
    events have been appended.
    """

    def __init__(self):
        self._events: List[EscrowEvent] = []
        self._subscribers: List[Callable[[EscrowEvent], None]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[EscrowEvent], None]) -> None:
        self._subscribers.append(callback)

    def publish(self, events: List[EscrowEvent]) -> None:
        if not events:
            return
        with self._lock:
            self._events.extend(events)
        for event in events:
            logger.info("escrow_event", **event.to_dict())
            for callback in self._subscribers:
                callback(event)

    def of_type(self, event_type: Type[E]) -> List[E]:
        return [event for event in self.snapshot() if isinstance(event, event_type)]

    def snapshot(self) -> Tuple[EscrowEvent, ...]:
        with self._lock:
            return tuple(self._events)

    def __iter__(self) -> Iterator[EscrowEvent]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self.snapshot())
