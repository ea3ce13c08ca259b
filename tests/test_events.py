"""Unit tests for :mod:`repolens.ui.events`."""

from __future__ import annotations

import gc
import logging
from dataclasses import dataclass

import pytest

from repolens.ui.events import ActiveHeaderChanged, Event, EventBus, FileSelected, ViewModeChanged


@dataclass(slots=True)
class SampleEvent(Event):
    message: str
    value: int = 0


class Recorder:
    def __init__(self) -> None:
        self.seen: list[Event] = []

    def on_event(self, event: Event) -> None:
        self.seen.append(event)


def test_publish_reaches_subscribers_in_order() -> None:
    bus: EventBus[Event] = EventBus()
    calls: list[str] = []
    bus.subscribe(SampleEvent, lambda event: calls.append(f"a:{event.message}"))
    bus.subscribe(SampleEvent, lambda event: calls.append(f"b:{event.message}"))

    delivered = bus.publish(SampleEvent(message="hi"))

    assert calls == ["a:hi", "b:hi"]
    assert delivered == 2


def test_events_are_isolated_by_type() -> None:
    bus: EventBus[Event] = EventBus()
    received: list[Event] = []
    bus.subscribe(FileSelected, received.append)

    assert bus.publish(SampleEvent(message="ignored")) == 0
    assert received == []


def test_base_class_subscription_sees_every_event() -> None:
    bus: EventBus[Event] = EventBus()
    log: list[str] = []
    bus.subscribe(Event, lambda event: log.append(type(event).__name__))

    bus.publish(FileSelected(repository="octo/demo", path="a.py"))
    bus.publish(ViewModeChanged(mode="file", file_path="a.py"))

    assert log == ["FileSelected", "ViewModeChanged"]


def test_cancelled_subscription_stops_delivery() -> None:
    bus: EventBus[Event] = EventBus()
    recorder = Recorder()
    subscription = bus.subscribe(SampleEvent, recorder.on_event)

    subscription.cancel()

    assert not subscription.active
    assert bus.publish(SampleEvent(message="x")) == 0
    assert recorder.seen == []


def test_handler_failure_does_not_stop_delivery() -> None:
    bus: EventBus[Event] = EventBus()
    received: list[str] = []

    def broken(event: SampleEvent) -> None:
        raise RuntimeError("boom")

    bus.subscribe(SampleEvent, broken)
    bus.subscribe(SampleEvent, lambda event: received.append(event.message))

    bus.publish(SampleEvent(message="still delivered"))

    assert received == ["still delivered"]


def test_bound_method_handlers_are_weak() -> None:
    bus: EventBus[Event] = EventBus()
    recorder = Recorder()
    subscription = bus.subscribe(SampleEvent, recorder.on_event)
    assert subscription.active

    del recorder
    gc.collect()

    assert not subscription.active
    assert bus.publish(SampleEvent(message="gone")) == 0


def test_quiet_events_are_not_logged(caplog: pytest.LogCaptureFixture) -> None:
    bus: EventBus[Event] = EventBus()
    bus.subscribe(Event, lambda event: None)

    with caplog.at_level(logging.DEBUG, logger="repolens.ui.events"):
        bus.publish(ActiveHeaderChanged(header_id="intro"))
        bus.publish(SampleEvent(message="loud"))

    messages = [record.getMessage() for record in caplog.records]
    assert messages == ["SampleEvent delivered to 1 handler(s)"]
