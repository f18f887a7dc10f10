"""Length-prefixed JSON control messages over a Unix socket."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import socket
import struct
from contextlib import suppress
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

_LENGTH = struct.Struct(">I")
ACCEPT_WAIT_SECONDS = 0.01


@dataclass(frozen=True)
class ControlMessage:
    """Base class of control messages."""


@dataclass(frozen=True)
class Ready(ControlMessage):
    """The daemon is ready."""


@dataclass(frozen=True)
class TranscriptionUpdate(ControlMessage):
    """New transcription text."""

    text: str
    is_final: bool


@dataclass(frozen=True)
class Confirm(ControlMessage):
    """Confirm the current transcription."""


@dataclass(frozen=True)
class ProcessingStarted(ControlMessage):
    """Final processing has begun."""


@dataclass(frozen=True)
class Complete(ControlMessage):
    """Processing is complete."""


@dataclass(frozen=True)
class StartRecording(ControlMessage):
    """Begin a recording session."""


@dataclass(frozen=True)
class StopRecording(ControlMessage):
    """Stop the recording session."""


@dataclass(frozen=True)
class StatusQuery(ControlMessage):
    """Ask for the daemon status."""


@dataclass(frozen=True)
class StatusResponse(ControlMessage):
    """Answer to a status query."""

    state: str
    session_active: bool


@dataclass(frozen=True)
class Shutdown(ControlMessage):
    """Shut the daemon down."""


_UNIT_VARIANTS: dict[str, type[ControlMessage]] = {
    cls.__name__: cls
    for cls in (
        Ready,
        Confirm,
        ProcessingStarted,
        Complete,
        StartRecording,
        StopRecording,
        StatusQuery,
        Shutdown,
    )
}
_STRUCT_VARIANTS: dict[str, tuple[type[ControlMessage], dict[str, type]]] = {
    "TranscriptionUpdate": (TranscriptionUpdate, {"text": str, "is_final": bool}),
    "StatusResponse": (StatusResponse, {"state": str, "session_active": bool}),
}


def _to_json_value(msg: ControlMessage) -> Any:
    name = type(msg).__name__
    if name in _UNIT_VARIANTS and type(msg) is _UNIT_VARIANTS[name]:
        return name
    if name in _STRUCT_VARIANTS and type(msg) is _STRUCT_VARIANTS[name][0]:
        fields = _STRUCT_VARIANTS[name][1]
        return {name: {key: getattr(msg, key) for key in fields}}
    raise TypeError(f"not a control message: {msg!r}")


def encode_message(msg: ControlMessage) -> bytes:
    """Serialise a message to compact JSON."""
    return json.dumps(_to_json_value(msg), separators=(",", ":")).encode("utf-8")


def decode_message(data: bytes | str) -> ControlMessage:
    """Parse JSON into a message; raise ``ValueError`` when it is not one."""
    value = json.loads(data)
    if isinstance(value, str):
        if value in _UNIT_VARIANTS:
            return _UNIT_VARIANTS[value]()
        raise ValueError(f"unknown control message '{value}'")
    if not isinstance(value, dict) or len(value) != 1:
        raise ValueError("control message must be a string or a single-key object")

    ((name, body),) = value.items()
    if name in _UNIT_VARIANTS:
        if body is not None:
            raise ValueError(f"control message '{name}' takes no data")
        return _UNIT_VARIANTS[name]()
    if name not in _STRUCT_VARIANTS:
        raise ValueError(f"unknown control message '{name}'")
    cls, fields = _STRUCT_VARIANTS[name]
    if not isinstance(body, dict):
        raise ValueError(f"control message '{name}' needs an object")
    kwargs = {}
    for key, kind in fields.items():
        if key not in body:
            raise ValueError(f"control message '{name}' is missing field '{key}'")
        if not isinstance(body[key], kind):
            raise ValueError(f"field '{key}' of '{name}' has the wrong type")
        kwargs[key] = body[key]
    return cls(**kwargs)


class ControlServer:
    """Listening Unix socket with its connected control clients."""

    def __init__(self, listener: socket.socket, socket_path: str) -> None:
        listener.setblocking(False)
        self._listener = listener
        self.socket_path = socket_path
        self._clients: list[socket.socket] = []

    @property
    def client_count(self) -> int:
        """Number of connected clients."""
        return len(self._clients)

    async def __aenter__(self) -> ControlServer:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()

    async def broadcast(self, msg: ControlMessage) -> None:
        """Send a framed message to every client, dropping those that fail."""
        data = encode_message(msg)
        frame = _LENGTH.pack(len(data)) + data
        loop = asyncio.get_running_loop()
        alive: list[socket.socket] = []
        for client in self._clients:
            try:
                await loop.sock_sendall(client, frame)
            except OSError:
                client.close()
            else:
                alive.append(client)
        self._clients = alive

    async def try_accept(self) -> bool:
        """Wait briefly for one new client; return whether one connected."""
        loop = asyncio.get_running_loop()
        try:
            client, _ = await asyncio.wait_for(
                loop.sock_accept(self._listener), ACCEPT_WAIT_SECONDS
            )
        except (asyncio.TimeoutError, OSError):
            return False
        client.setblocking(False)
        logger.info("Control client connected")
        self._clients.append(client)
        return True

    @staticmethod
    async def _read_exact(client: socket.socket, size: int, initial: bytes = b"") -> bytes:
        loop = asyncio.get_running_loop()
        data = bytearray(initial)
        while len(data) < size:
            part = await loop.sock_recv(client, size - len(data))
            if not part:
                raise ConnectionResetError("client closed mid-message")
            data.extend(part)
        return bytes(data)

    async def receive_from_any(self) -> ControlMessage | None:
        """Return the first message waiting on any client, or ``None``."""
        disconnected: list[socket.socket] = []
        message: ControlMessage | None = None

        for client in self._clients:
            try:
                head = client.recv(_LENGTH.size)
            except BlockingIOError:
                continue
            except OSError:
                disconnected.append(client)
                continue
            if not head:
                disconnected.append(client)
                continue
            try:
                head = await self._read_exact(client, _LENGTH.size, head)
                (length,) = _LENGTH.unpack(head)
                body = await self._read_exact(client, length)
            except OSError:
                disconnected.append(client)
                continue
            try:
                message = decode_message(body)
            except ValueError:
                continue
            break

        for client in disconnected:
            logger.info("Control client disconnected")
            client.close()
            self._clients.remove(client)
        return message

    def close(self) -> None:
        """Close all clients and the listener and remove the socket file."""
        for client in self._clients:
            client.close()
        self._clients.clear()
        self._listener.close()
        with suppress(FileNotFoundError):
            os.remove(self.socket_path)


def open_control_server(socket_path: str) -> ControlServer:
    """Bind a control server at ``socket_path``, replacing a stale socket file."""
    if os.path.exists(socket_path):
        os.remove(socket_path)
    listener = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        listener.bind(socket_path)
        listener.listen()
    except OSError:
        listener.close()
        raise
    logger.info("Control IPC server listening on %s", socket_path)
    return ControlServer(listener, socket_path)