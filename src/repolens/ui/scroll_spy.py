"""Scroll-driven tracking of the active table-of-contents entry."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from ..document.toc import TocEntry
from .events import ActiveHeaderChanged, EventBus

__all__ = [
    "ActiveHeaderState",
    "ViewportState",
    "ScrollSpy",
    "DEFAULT_BOTTOM_TOLERANCE",
    "DEFAULT_ACTIVATION_OFFSET",
]

LOGGER = logging.getLogger(__name__)

DEFAULT_BOTTOM_TOLERANCE = 50.0
DEFAULT_ACTIVATION_OFFSET = 150.0

ActiveHeaderListener = Callable[[Optional[str], Optional[str]], None]
ViewportProvider = Callable[[], Optional["ViewportState"]]
Scroller = Callable[[str], None]
RevealCallback = Callable[[str], None]


class ActiveHeaderState:
    """Holds the id of the active heading.

    :meth:`set` and :meth:`reset` are the only mutation points. Listeners are
    called with ``(current, previous)`` after every actual change.
    """

    def __init__(self, *, bus: EventBus | None = None) -> None:
        self._current: str | None = None
        self._listeners: List[ActiveHeaderListener] = []
        self._bus = bus

    @property
    def current(self) -> str | None:
        return self._current

    def add_listener(self, listener: ActiveHeaderListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ActiveHeaderListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def set(self, header_id: str | None) -> bool:
        """Make ``header_id`` active; returns ``False`` when nothing changed."""

        header_id = header_id or None
        if header_id == self._current:
            return False
        previous, self._current = self._current, header_id
        for listener in list(self._listeners):
            try:
                listener(header_id, previous)
            except Exception:  # pragma: no cover - listeners must not break the spy
                LOGGER.exception("Active header listener failed")
        if self._bus is not None:
            self._bus.publish(ActiveHeaderChanged(header_id=header_id, previous_id=previous))
        return True

    def reset(self) -> bool:
        return self.set(None)


@dataclass(slots=True, frozen=True)
class ViewportState:
    """Geometry snapshot of the scroll container.

    ``heading_tops`` lists ``(heading_id, top)`` pairs in document order, with
    ``top`` measured from the top of the visible viewport.
    """

    scroll_top: float
    scroll_height: float
    client_height: float
    heading_tops: Sequence[Tuple[str, float]] = field(default_factory=tuple)

    def at_bottom(self, tolerance: float = DEFAULT_BOTTOM_TOLERANCE) -> bool:
        return abs(self.scroll_height - self.scroll_top - self.client_height) < tolerance


class ScrollSpy:
    """Maps viewport geometry onto :class:`ActiveHeaderState`."""

    def __init__(
        self,
        state: ActiveHeaderState,
        toc: Sequence[TocEntry],
        *,
        viewport_provider: ViewportProvider | None = None,
        scroller: Scroller | None = None,
        reveal: RevealCallback | None = None,
        bottom_tolerance: float = DEFAULT_BOTTOM_TOLERANCE,
        activation_offset: float = DEFAULT_ACTIVATION_OFFSET,
    ) -> None:
        self._state = state
        self._toc: Tuple[TocEntry, ...] = tuple(toc)
        self._viewport_provider = viewport_provider
        self._scroller = scroller
        self._reveal = reveal
        self._bottom_tolerance = bottom_tolerance
        self._activation_offset = activation_offset
        self._armed = False
        state.add_listener(self._handle_change)

    @property
    def armed(self) -> bool:
        return self._armed

    @property
    def state(self) -> ActiveHeaderState:
        return self._state

    @property
    def toc(self) -> Tuple[TocEntry, ...]:
        return self._toc

    def arm(self) -> None:
        """Start reacting to scroll events and evaluate the viewport once."""

        self._armed = True
        self.refresh()

    def disarm(self) -> None:
        self._armed = False

    def refresh(self) -> None:
        if self._viewport_provider is None:
            return
        viewport = self._viewport_provider()
        if viewport is not None:
            self.on_scroll(viewport)

    def on_scroll(self, viewport: ViewportState) -> str | None:
        if not self._armed:
            return self._state.current
        target = self.evaluate(viewport)
        if target is not None:
            self._state.set(target)
        return self._state.current

    def evaluate(self, viewport: ViewportState) -> str | None:
        """Return the heading that should be active, or ``None`` to keep the current one."""

        if self._toc and viewport.at_bottom(self._bottom_tolerance):
            return self._toc[-1].id
        current: str | None = None
        for heading_id, top in viewport.heading_tops:
            if heading_id and top < self._activation_offset:
                current = heading_id
        return current

    def select(self, header_id: str) -> None:
        """Scroll to ``header_id`` and highlight it without waiting for the scroll."""

        if self._scroller is not None:
            self._scroller(header_id)
        self._state.set(header_id)

    def _handle_change(self, current: str | None, _previous: str | None) -> None:
        if current is not None and self._reveal is not None:
            self._reveal(current)
