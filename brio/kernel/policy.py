"""Authorization of SQL statements against a table-name scope."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Optional


class PolicyError(Exception):
    """Base class for policy failures."""


class PolicyParseError(PolicyError):
    """The SQL text could not be parsed."""

    def __init__(self, message: str) -> None:
        super().__init__(f"SQL Parse Error: {message}")
        self.message = message


class ScopeViolationError(PolicyError):
    """A statement touches a table outside the caller's scope."""

    def __init__(self, table: str, scope: str) -> None:
        super().__init__(f"Access Denied: Table '{table}' does not match scope '{scope}'")
        self.table = table
        self.scope = scope


class PolicyViolationError(PolicyError):
    """A statement breaks a policy rule."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Policy Violation: {message}")
        self.message = message


class QueryPolicy(ABC):
    """Contract for deciding whether SQL may run in a scope."""

    @abstractmethod
    def authorize(self, scope: str, sql: str) -> None:
        """Raise PolicyError if ``sql`` is not allowed for ``scope``."""


class _Kind(Enum):
    WORD = "word"
    IDENT = "ident"
    STRING = "string"
    NUMBER = "number"
    PARAM = "param"
    PUNCT = "punct"


@dataclass(frozen=True)
class _Token:
    kind: _Kind
    text: str

    @property
    def keyword(self) -> str:
        return self.text.upper() if self.kind is _Kind.WORD else ""

    def is_punct(self, char: str) -> bool:
        return self.kind is _Kind.PUNCT and self.text == char


_WORD = re.compile(r"(?!\d)\w[\w$]*")
_NUMBER = re.compile(r"\d+(?:\.\d*)?(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?")
_PARAM = re.compile(r"\?\d*|[:@$](?!\d)\w+|\$\d+")

_STATEMENT_KEYWORDS = frozenset(
    {
        "SELECT", "INSERT", "UPDATE", "DELETE", "REPLACE", "CREATE", "DROP",
        "ALTER", "WITH", "VALUES", "EXPLAIN", "PRAGMA", "BEGIN", "COMMIT",
        "ROLLBACK", "TRUNCATE", "ANALYZE", "VACUUM", "SAVEPOINT", "RELEASE",
        "ATTACH", "DETACH", "REINDEX", "START", "SET", "SHOW",
    }
)

_RESERVED = frozenset(
    {
        "SELECT", "FROM", "WHERE", "SET", "VALUES", "JOIN", "ON", "GROUP",
        "ORDER", "LIMIT", "UNION", "AND", "OR", "HAVING", "INTO",
    }
)

_NOT_ALIAS = _RESERVED | frozenset(
    {
        "INNER", "LEFT", "RIGHT", "FULL", "CROSS", "OUTER", "NATURAL", "USING",
        "OFFSET", "EXCEPT", "INTERSECT", "WINDOW", "RETURNING", "DEFAULT",
        "INDEXED", "NOT", "WHEN", "THEN", "ELSE", "END", "AS", "FETCH", "FOR",
        "LATERAL",
    }
)


def _quoted(sql: str, start: int, quote: str) -> tuple[str, int]:
    parts = []
    pos = start + 1
    while True:
        end = sql.find(quote, pos)
        if end < 0:
            raise PolicyParseError(f"Unterminated quoted text starting at offset {start}")
        parts.append(sql[pos:end])
        if sql.startswith(quote * 2, end):
            parts.append(quote)
            pos = end + 2
            continue
        return "".join(parts), end + 1


def _tokenize(sql: str) -> Iterator[_Token]:
    pos = 0
    while pos < len(sql):
        char = sql[pos]
        if char.isspace():
            pos += 1
            continue
        if sql.startswith("--", pos):
            end = sql.find("\n", pos)
            pos = len(sql) if end < 0 else end + 1
            continue
        if sql.startswith("/*", pos):
            end = sql.find("*/", pos + 2)
            if end < 0:
                raise PolicyParseError("Unexpected EOF while in a multi-line comment")
            pos = end + 2
            continue
        if char in "'\"`":
            text, pos = _quoted(sql, pos, char)
            yield _Token(_Kind.STRING if char == "'" else _Kind.IDENT, text)
            continue
        if char == "[":
            end = sql.find("]", pos + 1)
            if end < 0:
                raise PolicyParseError(f"Unterminated quoted identifier at offset {pos}")
            yield _Token(_Kind.IDENT, sql[pos + 1 : end])
            pos = end + 1
            continue
        for kind, pattern in ((_Kind.NUMBER, _NUMBER), (_Kind.WORD, _WORD), (_Kind.PARAM, _PARAM)):
            match = pattern.match(sql, pos)
            if match:
                yield _Token(kind, match.group())
                pos = match.end()
                break
        else:
            yield _Token(_Kind.PUNCT, char)
            pos += 1


def _split_statements(tokens: Iterable[_Token]) -> Iterator[list[_Token]]:
    current: list[_Token] = []
    for token in tokens:
        if token.is_punct(";"):
            if current:
                yield current
            current = []
        else:
            current.append(token)
    if current:
        yield current


class _StatementScanner:
    """Collects the table names a single statement refers to."""

    def __init__(self, tokens: list[_Token]) -> None:
        self.tokens = tokens
        self.pos = 0
        self.tables: list[str] = []

    def scan(self) -> list[str]:
        self._check_start()
        self._check_parens()
        select_levels = [False]
        while self.pos < len(self.tokens):
            token = self.tokens[self.pos]
            self.pos += 1
            if token.is_punct("("):
                select_levels.append(False)
                continue
            if token.is_punct(")"):
                select_levels.pop()
                continue
            keyword = token.keyword
            if keyword in ("SELECT", "DELETE"):
                select_levels[-1] = True
            elif keyword == "FROM":
                if select_levels[-1] and not self._previous_is("DISTINCT"):
                    self._table_list()
            elif keyword in ("JOIN", "INTO"):
                self._table_reference()
            elif keyword == "UPDATE":
                select_levels[-1] = True
                self._update_target()
            elif keyword == "TABLE":
                self._table_names()
        return self.tables

    def _check_start(self) -> None:
        first = self.tokens[0]
        if first.is_punct("(") or first.keyword in _STATEMENT_KEYWORDS:
            return
        raise PolicyParseError(f"Expected: an SQL statement, found: {first.text}")

    def _check_parens(self) -> None:
        depth = 0
        for token in self.tokens:
            if token.is_punct("("):
                depth += 1
            elif token.is_punct(")"):
                depth -= 1
                if depth < 0:
                    raise PolicyParseError("Unexpected closing parenthesis")
        if depth:
            raise PolicyParseError("Expected: ), found: EOF")

    def _peek(self) -> Optional[_Token]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _at_punct(self, char: str) -> bool:
        token = self._peek()
        return token is not None and token.is_punct(char)

    def _previous_is(self, keyword: str) -> bool:
        index = self.pos - 2
        return index >= 0 and self.tokens[index].keyword == keyword

    def _identifier(self) -> str:
        token = self._peek()
        if token is None:
            raise PolicyParseError("Expected: identifier, found: EOF")
        if token.kind is _Kind.IDENT or (
            token.kind is _Kind.WORD and token.keyword not in _RESERVED
        ):
            self.pos += 1
            return token.text
        raise PolicyParseError(f"Expected: identifier, found: {token.text}")

    def _name(self) -> str:
        last = self._identifier()
        while self._at_punct("."):
            self.pos += 1
            last = self._identifier()
        return last

    def _skip_alias(self) -> None:
        token = self._peek()
        if token is None:
            return
        if token.keyword == "AS":
            self.pos += 1
            self._identifier()
        elif token.kind is _Kind.IDENT or (
            token.kind is _Kind.WORD and token.keyword not in _NOT_ALIAS
        ):
            self.pos += 1

    def _table_reference(self) -> None:
        if self._at_punct("("):
            return
        self.tables.append(self._name())

    def _table_list(self) -> None:
        while True:
            if self._at_punct("("):
                return
            self.tables.append(self._name())
            if self._at_punct("("):
                return
            self._skip_alias()
            if not self._at_punct(","):
                return
            self.pos += 1

    def _update_target(self) -> None:
        token = self._peek()
        if token is not None and token.keyword == "OR":
            self.pos += 2
            token = self._peek()
        if token is not None and token.keyword == "SET":
            return
        self._table_reference()

    def _table_names(self) -> None:
        while (token := self._peek()) is not None and token.keyword in ("IF", "NOT", "EXISTS"):
            self.pos += 1
        while True:
            self.tables.append(self._name())
            if not self._at_punct(","):
                return
            self.pos += 1


def referenced_tables(sql: str) -> list[str]:
    """Return the unqualified names of all tables the SQL refers to, in order.

    Raises PolicyParseError if the text is not well-formed SQL.
    """
    statements = list(_split_statements(_tokenize(sql)))
    tables: list[str] = []
    for statement in statements:
        tables.extend(_StatementScanner(statement).scan())
    return tables


class PrefixPolicy(QueryPolicy):
    """Allows only tables whose names start with ``{scope}_``."""

    def authorize(self, scope: str, sql: str) -> None:
        prefix = f"{scope}_"
        for table in referenced_tables(sql):
            if not table.startswith(prefix):
                raise ScopeViolationError(table, scope)