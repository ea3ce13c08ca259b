"""Typed publish/subscribe bus shared by the analysis view controllers.

Controllers publish small dataclass events; display code subscribes to the
types it cares about without holding references to the publishers.
Subscribing to a base class (``Event`` itself included) also receives every
subclass, which is how an activity log can follow a whole view.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Dict, Generic, List, TypeVar
from weakref import WeakMethod

LOGGER = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all bus events."""

    # Quiet events are published too often to log each delivery.
    quiet: ClassVar[bool] = False


@dataclass(slots=True)
class ActiveHeaderChanged(Event):
    """The scroll-spy (or a TOC click) moved the active heading.

    ``header_id`` is ``None`` when the state was reset.
    """

    quiet: ClassVar[bool] = True

    header_id: str | None
    previous_id: str | None = None


@dataclass(slots=True)
class ViewModeChanged(Event):
    """The analysis view switched between the report and a source file."""

    mode: str
    file_path: str | None = None


@dataclass(slots=True)
class FileSelected(Event):
    repository: str
    path: str
    content_ref: str | None = None


@dataclass(slots=True)
class FileContentLoaded(Event):
    path: str
    language: str
    content: str


@dataclass(slots=True)
class TreeNodeLoaded(Event):
    """Children for ``path`` were fetched (``count`` may be zero on failure)."""

    repository: str
    path: str
    count: int


class Subscription:
    """Registration handle returned by :meth:`EventBus.subscribe`.

    A bound-method handler is referenced weakly: once its owner is collected the
    subscription goes inactive and is pruned on the next publish.
    """

    __slots__ = ("event_type", "_target", "_weak", "_cancelled")

    def __init__(self, event_type: type[Event], handler: Handler[Any]) -> None:
        self.event_type = event_type
        self._weak = hasattr(handler, "__self__") and hasattr(handler, "__func__")
        self._target: Any = WeakMethod(handler) if self._weak else handler  # type: ignore[arg-type]
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not self._cancelled and self.handler is not None

    @property
    def handler(self) -> Handler[Any] | None:
        return self._target() if self._weak else self._target

    def cancel(self) -> None:
        self._cancelled = True


class EventBus(Generic[E]):
    """Synchronous bus; handler failures are logged and never stop delivery.

    Not thread-safe; publish from the event loop thread only.
    """

    __slots__ = ("_subscriptions",)

    def __init__(self) -> None:
        self._subscriptions: Dict[type[Event], List[Subscription]] = {}

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> Subscription:
        subscription = Subscription(event_type, handler)
        self._subscriptions.setdefault(event_type, []).append(subscription)
        return subscription

    def publish(self, event: E) -> int:
        """Deliver ``event`` to subscribers of its type and base types.

        Returns the number of handlers that were called.
        """

        delivered = 0
        for event_type in type(event).__mro__:
            subscriptions = self._subscriptions.get(event_type)
            if subscriptions:
                delivered += self._deliver(event, subscriptions)
            if event_type is Event:
                break
        if not event.quiet:
            LOGGER.debug("%s delivered to %d handler(s)", type(event).__name__, delivered)
        return delivered

    def _deliver(self, event: Event, subscriptions: List[Subscription]) -> int:
        delivered = 0
        for subscription in list(subscriptions):
            handler = subscription.handler if not subscription._cancelled else None
            if handler is None:
                subscriptions.remove(subscription)
                continue
            delivered += 1
            try:
                handler(event)
            except Exception:
                LOGGER.exception("Handler for %s failed", type(event).__name__)
        return delivered


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "Subscription",
    "ActiveHeaderChanged",
    "ViewModeChanged",
    "FileSelected",
    "FileContentLoaded",
    "TreeNodeLoaded",
]
