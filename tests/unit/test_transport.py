"""Transport boundary tests that need no BLE adapter."""

import pytest

from padctrl.errors import NotReady
from padctrl.transport import BleakTransport, Transport


def test_fake_satisfies_protocol(transport):
    assert isinstance(transport, Transport)


def test_bleak_transport_satisfies_protocol():
    assert isinstance(BleakTransport(), Transport)


def test_bleak_transport_initial_state():
    ble = BleakTransport(address="AA:BB:CC:DD:EE:FF")
    assert not ble.is_connected
    assert not ble.is_ready
    assert ble.model_name is None
    assert ble.device_name == "KS-ST-A1P"


@pytest.mark.asyncio
async def test_send_without_connection_raises_not_ready():
    with pytest.raises(NotReady):
        await BleakTransport().send_bytes(b"\xF7\xA2\x00\x00\xA2\xFD")


@pytest.mark.asyncio
async def test_disconnect_when_not_connected_is_noop():
    await BleakTransport().disconnect()


def test_notifications_forwarded_as_bytes():
    ble = BleakTransport()
    received = []
    ble.set_receive_callback(received.append)
    ble._handle_notification(None, bytearray(b"\x01\x02"))
    assert received == [b"\x01\x02"]
    assert isinstance(received[0], bytes)


def test_disconnect_callback_invoked():
    ble = BleakTransport()
    calls = []
    ble.set_disconnect_callback(lambda: calls.append(True))
    ble._handle_disconnect(None)
    assert calls == [True]
    assert not ble.is_ready
