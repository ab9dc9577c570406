"""Shared state of the kernel: mesh routing, database, broadcasting, sessions."""

from __future__ import annotations

import asyncio
import sqlite3
import threading
from typing import Optional
from urllib.parse import parse_qsl, quote

from brio.kernel.broadcaster import Broadcaster
from brio.kernel.inference import LLMProvider
from brio.kernel.policy import PrefixPolicy
from brio.kernel.store import SqlStore
from brio.kernel.vfs import PathLike, SessionManager
from brio.kernel.ws_types import PatchMessage, WsPatch
from brio.mesh import MeshMessage, Payload

_SCHEME = "sqlite:"


class MeshCallError(Exception):
    """A call through the service mesh could not be completed."""


def _connect(db_url: str) -> sqlite3.Connection:
    if not db_url.startswith(_SCHEME):
        raise ValueError(f"Unsupported database URL: {db_url}")
    rest = db_url[len(_SCHEME):]
    if rest.startswith("//"):
        rest = rest[2:]
    location, _, query = rest.partition("?")

    if location == ":memory:":
        return sqlite3.connect(":memory:", check_same_thread=False, isolation_level=None)
    if not location:
        raise ValueError(f"Database URL names no file: {db_url}")

    options = dict(parse_qsl(query))
    mode = options.get("mode", "rw")
    uri = f"file:{quote(location)}?mode={quote(mode)}"
    return sqlite3.connect(uri, uri=True, check_same_thread=False, isolation_level=None)


class BrioHostState:
    """State shared by every component the kernel hosts."""

    def __init__(
        self,
        db_url: str,
        provider: LLMProvider,
        *,
        session_root: Optional[PathLike] = None,
    ) -> None:
        self._connection = _connect(db_url)
        self._router: dict[str, asyncio.Queue[MeshMessage]] = {}
        self._router_lock = threading.Lock()
        self._broadcaster = Broadcaster()
        self._sessions = SessionManager(session_root)
        self._session_lock = threading.Lock()
        self._provider = provider

    @property
    def db(self) -> sqlite3.Connection:
        """The database connection."""
        return self._connection

    @property
    def broadcaster(self) -> Broadcaster:
        """The broadcaster feeding WebSocket clients."""
        return self._broadcaster

    @property
    def sessions(self) -> SessionManager:
        """The manager of sandboxed working copies."""
        return self._sessions

    @property
    def inference(self) -> LLMProvider:
        """The chat completion provider."""
        return self._provider

    def register_component(self, component_id: str, queue: asyncio.Queue[MeshMessage]) -> None:
        """Route mesh calls addressed to ``component_id`` into ``queue``."""
        with self._router_lock:
            self._router[component_id] = queue

    def get_store(self, scope: str) -> SqlStore:
        """A SQL store over the shared database, guarded by the prefix policy."""
        return SqlStore(self._connection, PrefixPolicy())

    def broadcast_patch(self, patch: WsPatch) -> None:
        """Send a state patch to every connected client."""
        self._broadcaster.broadcast(PatchMessage(patch))

    async def mesh_call(self, target: str, method: str, payload: Payload) -> Payload:
        """Call a registered component and wait for its reply."""
        with self._router_lock:
            queue = self._router.get(target)
        if queue is None:
            raise MeshCallError(f"Target component '{target}' not found")

        message = MeshMessage(target, method, payload)
        await queue.put(message)
        try:
            return await asyncio.wrap_future(message.reply_future)
        except RuntimeError as error:
            raise MeshCallError(f"Target '{target}' returned error: {error}") from error

    def begin_session(self, base_path: PathLike) -> str:
        """Start a sandboxed session over ``base_path``; returns the session id."""
        with self._session_lock:
            return self._sessions.begin_session(base_path)

    def commit_session(self, session_id: str) -> None:
        """Apply a session's changes to its base directory."""
        with self._session_lock:
            self._sessions.commit_session(session_id)

    def close(self) -> None:
        """Close the database connection."""
        self._connection.close()

    def __enter__(self) -> BrioHostState:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()