"""Typed engine notifications and a minimal synchronous event bus."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, DefaultDict, List, Type, TypeVar, Union

from mmsim.engine.state import Collapse, DataPoint, Trade


@dataclass(frozen=True)
class TickEvent:
    data_point: DataPoint


@dataclass(frozen=True)
class TradeEvent:
    trade: Trade


@dataclass(frozen=True)
class CollapseEvent:
    collapse: Collapse


Event = Union[TickEvent, TradeEvent, CollapseEvent]
E = TypeVar("E", TickEvent, TradeEvent, CollapseEvent)


class EventBus:
    """Dispatch events to listeners subscribed by event type, in subscription order."""

    def __init__(self) -> None:
        self._listeners: DefaultDict[type, List[Callable]] = defaultdict(list)

    def subscribe(self, event_type: Type[E], listener: Callable[[E], None]) -> Callable[[], None]:
        """Register ``listener``; the returned callable removes it again."""

        self._listeners[event_type].append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(event_type, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    def publish(self, event: Event) -> None:
        for listener in list(self._listeners.get(type(event), [])):
            listener(event)

    def clear(self) -> None:
        self._listeners.clear()


__all__ = ["TickEvent", "TradeEvent", "CollapseEvent", "Event", "EventBus"]
