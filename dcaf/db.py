"""Rule, group and key storage for the authorization manager."""

from __future__ import annotations

import sqlite3
from collections import defaultdict
from dataclasses import dataclass
from types import TracebackType

KEYS_TABLE = "Keys"
KEYS_FIELD_DEF = "kid BLOB, data BLOB, type INTEGER, expires INTEGER"
KEYS_FIELDS = "kid, data, type, expires"

_TABLES = {KEYS_TABLE: KEYS_FIELD_DEF}


@dataclass(frozen=True)
class Rule:
    """Permissions on a resource granted to the members of a group."""

    resource: str
    group: str
    permissions: int


@dataclass(frozen=True)
class KeyRecord:
    """A key stored in the key table."""

    kid: str
    data: str
    key_type: int
    expires: int


class KeyStore:
    """Access to the key table of a Database."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def add(self, kid: str, key_type: int, data: str, expiry: int) -> None:
        """Store key material ``data`` of ``key_type`` under ``kid``."""
        with self._connection:
            self._connection.execute(
                f"insert into {KEYS_TABLE} ({KEYS_FIELDS}) values (?, ?, ?, ?)",
                (kid, data, int(key_type), int(expiry)),
            )

    def get_by_id(self, kid: str) -> list[KeyRecord]:
        """Return all keys stored under ``kid`` in insertion order."""
        cursor = self._connection.execute(
            f"select {KEYS_FIELDS} from {KEYS_TABLE} where kid = ? order by rowid",
            (kid,),
        )
        return [KeyRecord(*row) for row in cursor]


class Database:
    """Groups and rules held in memory, keys held in SQLite.

    With ``memonly`` set, the key table lives in an in-memory database;
    otherwise ``dbname`` names the database file, optionally opened with
    the SQLite VFS ``vfs``.
    """

    def __init__(self, dbname: str, vfs: str | None = None, memonly: bool = False) -> None:
        self.memonly = memonly
        if memonly:
            connection = sqlite3.connect(":memory:")
        elif vfs:
            connection = sqlite3.connect(f"file:{dbname}?vfs={vfs}", uri=True)
        else:
            connection = sqlite3.connect(dbname)
        self._connection: sqlite3.Connection | None = connection
        self._groups: dict[str, list[str]] = defaultdict(list)
        self._rules: dict[str, list[Rule]] = defaultdict(list)
        try:
            with connection:
                for table, field_def in _TABLES.items():
                    connection.execute(f"create table if not exists {table} ({field_def})")
        except sqlite3.Error:
            connection.close()
            self._connection = None
            raise
        self.keys = KeyStore(connection)

    def __bool__(self) -> bool:
        return self._connection is not None

    def __enter__(self) -> Database:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def add_to_group(self, kid: str, group: str) -> None:
        """Record that the subject identified by ``kid`` is in ``group``."""
        self._groups[kid].append(group)

    def find_groups(self, kid: str) -> list[str]:
        """Return the groups of ``kid`` in the order they were added."""
        return list(self._groups.get(kid, ()))

    def add_to_rules(self, aud: str, rule: Rule) -> None:
        """Record ``rule`` as being in effect for the audience ``aud``."""
        self._rules[aud].append(rule)

    def find_rules(self, aud: str) -> list[Rule]:
        """Return the rules for ``aud`` in the order they were added."""
        return list(self._rules.get(aud, ()))

    def close(self) -> None:
        """Close the underlying SQLite connection; further key access fails."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None