"""Scoped SQL access with policy enforcement."""

from __future__ import annotations

import logging
import math
import sqlite3
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Sequence

from brio.kernel.policy import PolicyError, QueryPolicy

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base class for store failures."""


class StoreDatabaseError(StoreError):
    """The database rejected or failed a statement."""

    def __init__(self, error: Exception) -> None:
        super().__init__(f"Database Error: {error}")
        self.error = error


class StorePolicyError(StoreError):
    """The statement was refused by the query policy."""

    def __init__(self, error: PolicyError) -> None:
        super().__init__(f"Policy Violation: {error}")
        self.error = error


@dataclass
class GenericRow:
    """A result row as parallel lists of column names and text values."""

    columns: list[str] = field(default_factory=list)
    values: list[str] = field(default_factory=list)


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")


def convert_cell(value: Any) -> str:
    """Render a database cell as text; NULL becomes ``"NULL"``."""
    if value is None:
        return "NULL"
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_float(value)
    return "UNSUPPORTED_TYPE"


class SqlStore:
    """Runs SQL on a SQLite connection after the policy has authorized it."""

    def __init__(self, connection: sqlite3.Connection, policy: QueryPolicy) -> None:
        self._connection = connection
        self._policy = policy

    def _authorize(self, scope: str, sql: str) -> None:
        try:
            self._policy.authorize(scope, sql)
        except PolicyError as error:
            raise StorePolicyError(error) from error

    async def query(self, scope: str, sql: str, params: Sequence[str] = ()) -> list[GenericRow]:
        """Run a statement that returns rows."""
        self._authorize(scope, sql)
        logger.debug("store query", extra={"scope": scope})
        try:
            cursor = self._connection.execute(sql, list(params))
            try:
                rows = cursor.fetchall()
                columns = [description[0] for description in cursor.description or ()]
            finally:
                cursor.close()
        except sqlite3.Error as error:
            raise StoreDatabaseError(error) from error
        return [
            GenericRow(list(columns), [convert_cell(value) for value in row]) for row in rows
        ]

    async def execute(self, scope: str, sql: str, params: Sequence[str] = ()) -> int:
        """Run a statement that modifies state; returns the number of affected rows."""
        self._authorize(scope, sql)
        logger.debug("store execute", extra={"scope": scope})
        try:
            cursor = self._connection.execute(sql, list(params))
            try:
                affected = cursor.rowcount
            finally:
                cursor.close()
            if self._connection.in_transaction:
                self._connection.commit()
        except sqlite3.Error as error:
            raise StoreDatabaseError(error) from error
        return max(affected, 0)