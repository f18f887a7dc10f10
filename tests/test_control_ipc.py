import asyncio
import json
import os
import shutil
import struct
import tempfile

import pytest

from dictation.control_ipc import (
    Confirm,
    Ready,
    StatusQuery,
    StatusResponse,
    TranscriptionUpdate,
    decode_message,
    encode_message,
    open_control_server,
)


@pytest.fixture
def socket_path():
    directory = tempfile.mkdtemp(prefix="ctl")
    yield os.path.join(directory, "c.sock")
    shutil.rmtree(directory, ignore_errors=True)


def test_ready_serialize():
    assert encode_message(Ready()) == b'"Ready"'


def test_confirm_serialize():
    assert json.loads(encode_message(Confirm())) == "Confirm"


def test_transcription_serialize():
    data = encode_message(TranscriptionUpdate(text="test text", is_final=True))
    assert "test text" in data.decode()
    assert json.loads(data) == {
        "TranscriptionUpdate": {"text": "test text", "is_final": True}
    }


def test_roundtrip():
    original = TranscriptionUpdate(text="hello world", is_final=False)
    parsed = decode_message(encode_message(original))
    assert isinstance(parsed, TranscriptionUpdate)
    assert parsed.text == "hello world"
    assert parsed.is_final is False


def test_status_response_roundtrip():
    original = StatusResponse(state="recording", session_active=True)
    assert decode_message(encode_message(original)) == original


def test_unit_variant_with_null_body():
    assert decode_message('{"StatusQuery":null}') == StatusQuery()


@pytest.mark.parametrize(
    "data",
    [
        '"Bogus"',
        "42",
        '{"TranscriptionUpdate":{"text":"x"}}',
        '{"TranscriptionUpdate":{"text":1,"is_final":true}}',
        '{"Ready":{"a":1}}',
        "not json",
    ],
)
def test_decode_invalid(data):
    with pytest.raises(ValueError):
        decode_message(data)


@pytest.mark.asyncio
async def test_control_server_new(socket_path):
    server = open_control_server(socket_path)
    try:
        assert os.path.exists(socket_path)
        assert server.client_count == 0
    finally:
        server.close()
    assert not os.path.exists(socket_path)


@pytest.mark.asyncio
async def test_control_server_replaces_stale_file(socket_path):
    with open(socket_path, "w") as handle:
        handle.write("stale")
    server = open_control_server(socket_path)
    try:
        assert server.socket_path == socket_path
        assert not os.path.isfile(socket_path) or os.path.getsize(socket_path) == 0
    finally:
        server.close()


@pytest.mark.asyncio
async def test_broadcast_no_clients(socket_path):
    server = open_control_server(socket_path)
    try:
        await server.broadcast(Ready())
        assert server.client_count == 0
    finally:
        server.close()


@pytest.mark.asyncio
async def test_try_accept_without_client(socket_path):
    server = open_control_server(socket_path)
    try:
        assert await server.try_accept() is False
    finally:
        server.close()


@pytest.mark.asyncio
async def test_broadcast_reaches_client(socket_path):
    async with open_control_server(socket_path) as server:
        reader, writer = await asyncio.open_unix_connection(socket_path)
        assert await server.try_accept() is True
        assert server.client_count == 1

        message = TranscriptionUpdate(text="hi", is_final=True)
        await server.broadcast(message)
        (length,) = struct.unpack(">I", await reader.readexactly(4))
        body = await reader.readexactly(length)
        assert decode_message(body) == message
        writer.close()


async def _poll(server, attempts=50):
    for _ in range(attempts):
        message = await server.receive_from_any()
        if message is not None:
            return message
        await asyncio.sleep(0.01)
    return None


@pytest.mark.asyncio
async def test_receive_from_client(socket_path):
    async with open_control_server(socket_path) as server:
        _, writer = await asyncio.open_unix_connection(socket_path)
        assert await server.try_accept() is True

        data = encode_message(StatusQuery())
        writer.write(struct.pack(">I", len(data)) + data)
        await writer.drain()

        assert await _poll(server) == StatusQuery()
        writer.close()


@pytest.mark.asyncio
async def test_receive_without_clients(socket_path):
    async with open_control_server(socket_path) as server:
        assert await server.receive_from_any() is None


@pytest.mark.asyncio
async def test_disconnected_client_removed(socket_path):
    async with open_control_server(socket_path) as server:
        _, writer = await asyncio.open_unix_connection(socket_path)
        assert await server.try_accept() is True
        writer.close()
        await writer.wait_closed()

        for _ in range(50):
            assert await server.receive_from_any() is None
            if server.client_count == 0:
                break
            await asyncio.sleep(0.01)
        assert server.client_count == 0