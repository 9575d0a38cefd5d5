"""Controller tests against the in-memory transport."""

import asyncio

import pytest

from padctrl.config import ControllerConfig
from padctrl.controller import TreadmillController
from padctrl.errors import InvalidArgument, UnknownModel
from padctrl.events import EventKind
from padctrl.protocol import (
    BeltMode,
    build_request_stats,
    build_set_mode,
    build_set_speed,
    build_start_belt,
    build_stop_belt,
)

FAST = ControllerConfig(command_interval=0.0, poll_interval=0.0)


def kinds(events):
    return [event.kind for event in events]


def test_initial_state():
    controller = TreadmillController()
    assert not controller.is_connected
    assert controller.model_name is None
    assert controller.translator is None
    assert not controller.degraded
    assert controller.current_speed == 0.0
    assert controller.get_status() == {"status": "DISCONNECTED"}


def test_attach_selects_translator(transport, events):
    controller = TreadmillController(transport, FAST, sink=events.append)
    controller.attach()
    assert controller.is_connected
    assert controller.translator.name == "KS-ST-A1P"
    assert not controller.degraded
    assert kinds(events) == [EventKind.CONNECTED]
    assert events[0].detail == "KS-ST-A1P"
    assert controller.get_status() == {"status": "CONNECTED"}


@pytest.mark.asyncio
async def test_actions_reach_transport_in_order(transport):
    controller = TreadmillController(transport, FAST)
    controller.attach()

    controller.select_manual_mode()
    controller.start_belt()
    controller.set_speed(2.0)
    controller.request_stats()
    controller.stop_belt()
    controller.select_standby_mode()
    await controller.dispatcher.join()

    assert transport.frames == [
        build_set_mode(BeltMode.MANUAL),
        build_start_belt(),
        build_set_speed(32),
        build_request_stats(),
        build_stop_belt(),
        build_set_mode(BeltMode.STANDBY),
    ]


@pytest.mark.asyncio
async def test_set_speed_returns_frame(transport):
    controller = TreadmillController(transport, FAST)
    controller.attach()
    assert controller.set_speed(1.5) == build_set_speed(24)
    assert controller.set_raw_speed(40) == build_set_speed(40)
    await controller.disconnect()


def test_set_speed_out_of_range(transport):
    controller = TreadmillController(transport, FAST)
    controller.attach()
    with pytest.raises(InvalidArgument):
        controller.set_speed(16.0)
    with pytest.raises(InvalidArgument):
        controller.set_speed(-1.0)
    with pytest.raises(InvalidArgument):
        controller.set_raw_speed(256)
    assert controller.dispatcher.pending == 0


@pytest.mark.asyncio
async def test_set_speed_accepts_values_rounding_to_top_raw(transport):
    controller = TreadmillController(transport, FAST)
    controller.attach()
    assert controller.set_speed(15.95) == build_set_speed(255)
    with pytest.raises(InvalidArgument):
        controller.set_speed(15.97)
    with pytest.raises(InvalidArgument):
        controller.set_speed(float("nan"))
    with pytest.raises(InvalidArgument):
        controller.set_speed(float("inf"))
    await controller.disconnect()


def test_action_outside_event_loop_queues_nothing(transport):
    controller = TreadmillController(transport, FAST)
    controller.attach()
    with pytest.raises(RuntimeError):
        controller.request_stats()
    assert controller.dispatcher.pending == 0


@pytest.mark.asyncio
async def test_unknown_model_is_degraded(unknown_transport, events, make_telemetry):
    controller = TreadmillController(unknown_transport, FAST, sink=events.append)
    controller.attach()

    assert controller.degraded
    assert kinds(events) == [EventKind.CONNECTED, EventKind.UNKNOWN_MODEL]
    assert isinstance(events[1].error, UnknownModel)

    with pytest.raises(UnknownModel):
        controller.set_speed(2.0)
    with pytest.raises(UnknownModel):
        controller.set_raw_speed(40)
    assert controller.dispatcher.pending == 0

    # Stop needs no unit conversion
    controller.stop_belt()
    await controller.dispatcher.join()
    assert unknown_transport.frames == [build_stop_belt()]

    unknown_transport.deliver(make_telemetry(speed=32, mode=1))
    stats = events[-1].stats
    assert stats.degraded
    assert stats.belt_speed is None
    assert stats.raw_speed == 32
    assert controller.current_speed == 0.0


def test_telemetry_flows_to_sink(transport, events, make_telemetry):
    controller = TreadmillController(transport, FAST, sink=events.append)
    controller.attach()
    events.clear()

    transport.deliver(make_telemetry(speed=0, mode=2))
    transport.deliver(make_telemetry(speed=32, mode=1, time=5, distance=10, steps=3))

    assert kinds(events) == [
        EventKind.STATS_UPDATED,
        EventKind.SPEED_CHANGED,
        EventKind.MODE_CHANGED,
        EventKind.STATS_UPDATED,
        EventKind.SPEED_CHANGED,
        EventKind.BELT_STARTED,
        EventKind.MODE_CHANGED,
    ]
    assert controller.current_speed == 2.0
    status = controller.get_status()
    assert status["status"] == "RUNNING"
    assert status["speed"] == 2.0
    assert status["steps"] == 3


def test_malformed_telemetry_reported(transport, events):
    controller = TreadmillController(transport, FAST, sink=events.append)
    controller.attach()
    events.clear()
    transport.deliver(b"\x00" * 13)
    assert kinds(events) == [EventKind.MALFORMED_TELEMETRY]
    assert controller.last_stats is None


@pytest.mark.asyncio
async def test_not_ready_reported_as_event(transport, events):
    controller = TreadmillController(transport, FAST, sink=events.append)
    controller.attach()
    transport.ready = False
    frame = controller.start_belt()
    await controller.dispatcher.join()

    event = events[-1]
    assert event.kind is EventKind.DISPATCH_NOT_READY
    assert event.frame == frame
    assert transport.frames == []


@pytest.mark.asyncio
async def test_actions_before_attach_are_dropped(events):
    controller = TreadmillController(config=FAST, sink=events.append)
    controller.request_stats()
    await controller.dispatcher.join()
    assert kinds(events) == [EventKind.DISPATCH_NOT_READY]


@pytest.mark.asyncio
async def test_polling_uses_dispatch_path(transport):
    config = ControllerConfig(command_interval=0.0, poll_interval=0.02)
    controller = TreadmillController(transport, config)
    controller.attach()
    controller.start_polling()
    await asyncio.sleep(0.07)
    controller.stop_polling()
    await controller.dispatcher.join()

    assert len(transport.frames) >= 3
    assert set(transport.frames) == {build_request_stats()}


@pytest.mark.asyncio
async def test_connect_with_custom_transport_starts_polling(transport, events):
    config = ControllerConfig(command_interval=0.0, poll_interval=10.0)
    controller = TreadmillController(transport, config, sink=events.append)
    await controller.connect()
    await controller.dispatcher.join()

    assert controller.poller.is_polling
    assert transport.frames == [build_request_stats()]

    await controller.disconnect()
    assert not controller.poller.is_polling
    assert kinds(events)[-1] is EventKind.DISCONNECTED
    assert controller.last_stats is None


@pytest.mark.asyncio
async def test_disconnect_discards_pending(transport, make_telemetry):
    controller = TreadmillController(transport, ControllerConfig(poll_interval=0.0))
    controller.attach()
    controller.start_belt()
    controller.set_speed(2.0)
    controller.request_stats()
    await asyncio.sleep(0)

    await controller.disconnect()
    assert transport.frames == [build_start_belt()]
    assert controller.dispatcher.pending == 0

    # Notifications after disconnect are ignored
    transport.deliver(make_telemetry(speed=32, mode=1))
    assert controller.last_stats is None


def test_sink_errors_are_contained(transport, make_telemetry):
    def sink(event):
        raise RuntimeError("boom")

    controller = TreadmillController(transport, FAST, sink=sink)
    controller.attach()
    transport.deliver(make_telemetry(speed=16, mode=1))
    assert controller.current_speed == 1.0


def test_set_sink(transport, events):
    controller = TreadmillController(transport, FAST)
    controller.set_sink(events.append)
    controller.attach()
    assert kinds(events) == [EventKind.CONNECTED]
    controller.set_sink(None)
    controller.attach()
    assert len(events) == 1
