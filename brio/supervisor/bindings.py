"""Host interfaces the supervisor calls: SQL state and the service mesh.

Calls go to the attached host backend. When no backend is attached these
calls answer as a detached host would: queries return no rows, statements
affect no rows, and every mesh call is accepted. Host-side failures are
raised as ``RuntimeError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence

from brio.mesh import Json, Payload

_ACCEPTED_RESPONSE = '{"status":"accepted"}'


@dataclass
class Row:
    """A row returned by a SQL query, as parallel column and value lists."""

    columns: list[str] = field(default_factory=list)
    values: list[str] = field(default_factory=list)


class _HostBackend(Protocol):
    def query(self, sql: str, params: list[str]) -> list[Row]: ...

    def execute(self, sql: str, params: list[str]) -> int: ...

    def call(self, target: str, method: str, args: Payload) -> Payload: ...


_backend: Optional[_HostBackend] = None


def _attach_backend(backend: Optional[_HostBackend]) -> Optional[_HostBackend]:
    """Attach a host backend (or detach with ``None``); return the previous one."""
    global _backend
    previous = _backend
    _backend = backend
    return previous


def query(sql: str, params: Sequence[str]) -> list[Row]:
    """Run a query that returns rows."""
    if _backend is None:
        return []
    return [Row(list(row.columns), list(row.values)) for row in _backend.query(sql, list(params))]


def execute(sql: str, params: Sequence[str]) -> int:
    """Run a statement that modifies data; returns the number of affected rows."""
    if _backend is None:
        return 0
    return int(_backend.execute(sql, list(params)))


def call(target: str, method: str, args: Payload) -> Payload:
    """Call a component through the service mesh and return its reply."""
    if _backend is None:
        return Json(_ACCEPTED_RESPONSE)
    return _backend.call(target, method, args)