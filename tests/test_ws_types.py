import uuid

import pytest

from brio.kernel.ws_types import (
    ChannelClosedError,
    ClientDisconnectedError,
    ClientId,
    PatchMessage,
    ShutdownMessage,
    WsConnectionError,
    WsPatch,
    WsSerializationError,
    to_frame_payload,
)


def test_client_id_is_unique():
    values = [ClientId.generate().value for _ in range(50)]
    assert len(set(values)) == 50
    assert all(value.version == 4 for value in values)


def test_client_id_display():
    client = ClientId.generate()
    display = str(client)
    assert display == str(client.value)
    assert uuid.UUID(display) == client.value


def test_broadcast_message_shutdown_serializes():
    assert to_frame_payload(ShutdownMessage()) == '{"type":"shutdown"}'


def test_patch_serializes_in_canonical_order():
    patch = WsPatch([{"value": 1, "path": "/a", "op": "add"}])
    assert patch.to_json() == '[{"op":"add","path":"/a","value":1}]'


def test_move_and_remove_serialization():
    patch = WsPatch([{"op": "move", "path": "/b", "from": "/a"}, {"op": "remove", "path": "/c"}])
    assert patch.to_json() == (
        '[{"op":"move","from":"/a","path":"/b"},{"op":"remove","path":"/c"}]'
    )


def test_patch_message_payload():
    patch = WsPatch([{"op": "replace", "path": "/status", "value": "ok"}])
    assert to_frame_payload(PatchMessage(patch)) == patch.to_json()


@pytest.mark.parametrize(
    "operation",
    [
        {"op": "frobnicate", "path": "/a"},
        {"op": "add", "path": "/a"},
        {"op": "remove", "path": "no-slash"},
        {"path": "/a", "value": 1},
    ],
)
def test_invalid_operations_rejected(operation):
    with pytest.raises(ValueError):
        WsPatch([operation])


def test_unserializable_value_raises():
    patch = WsPatch([{"op": "add", "path": "/a", "value": object()}])
    with pytest.raises(WsSerializationError) as excinfo:
        patch.to_json()
    assert str(excinfo.value).startswith("Serialization error: ")


def test_error_messages():
    assert str(ChannelClosedError()) == "Broadcast channel closed"
    assert str(ClientDisconnectedError()) == "Connection closed by client"
    assert str(WsConnectionError("reset")) == "WebSocket connection error: reset"


def test_to_frame_payload_rejects_other_types():
    with pytest.raises(TypeError):
        to_frame_payload("shutdown")