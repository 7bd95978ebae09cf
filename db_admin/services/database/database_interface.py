"""
Database Interface für DSP DB Admin

Zugriff auf den verwalteten MySQL/MariaDB-Server über eine Django-Verbindung
(Alias aus ``settings.DB_ADMIN["TARGET_ALIAS"]``). Stellt bereit:
- Tabellen-/Datenbanklisten
- SHOW CREATE für Stored Routines
- Ausführen von DDL (try_query speichert den Serverfehler)
- Mehrere Statements inkl. aller Result Sets (CALL ...)
- Privilegienabfragen über information_schema

Author: DSP Development Team
Version: 1.0.0
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from django.conf import settings
from django.db import DatabaseError, connections

from ...exceptions import QueryFailedError
from ...utils.sql import backquote, quote_string

logger = logging.getLogger(__name__)


@dataclass
class ResultSet:
    """Ein Result Set: Spaltennamen, Zeilen und betroffene Zeilen."""

    columns: List[str] = field(default_factory=list)
    rows: List[tuple] = field(default_factory=list)
    rowcount: int = 0

    def as_dicts(self) -> List[Dict[str, Any]]:
        return [dict(zip(self.columns, row)) for row in self.rows]


def _read_result_set(cursor) -> ResultSet:
    if cursor.description is None:
        return ResultSet(rowcount=max(cursor.rowcount, 0))
    columns = [col[0] for col in cursor.description]
    rows = [tuple(row) for row in cursor.fetchall()]
    return ResultSet(columns=columns, rows=rows, rowcount=len(rows))


class DatabaseInterface:
    """
    Dünne Schicht über ``django.db.connections[alias]``.

    Methoden mit ``try_`` liefern bei einem Serverfehler ``None`` und merken
    sich die Fehlermeldung (``get_error()``); ``query()`` wirft stattdessen
    ``QueryFailedError``.
    """

    def __init__(self, alias: Optional[str] = None):
        self.alias = alias or settings.DB_ADMIN["TARGET_ALIAS"]
        self.current_db: Optional[str] = None
        self._last_error = ""
        self.logger = logger

    @property
    def connection(self):
        return connections[self.alias]

    # --- Query Execution ---

    def try_query(self, sql: str, params: Optional[Sequence[Any]] = None) -> Optional[ResultSet]:
        """
        Führt ein Statement aus.

        Returns:
            ResultSet (leer bei DDL) oder None bei einem Fehler
        """
        try:
            with self.connection.cursor() as cursor:
                cursor.execute(sql.strip().rstrip(";"), params)
                result = _read_result_set(cursor)
        except DatabaseError as e:
            self._last_error = str(e)
            self.logger.warning(f"Query fehlgeschlagen ({self.alias}): {e}")
            return None

        self._last_error = ""
        return result

    def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> ResultSet:
        result = self.try_query(sql, params)
        if result is None:
            raise QueryFailedError(sql, self._last_error)
        return result

    def try_multi_query(self, statements: List[str]) -> Optional[List[ResultSet]]:
        """
        Führt mehrere Statements auf derselben Verbindung aus und sammelt
        alle Result Sets (CALL kann mehrere liefern).
        """
        result_sets: List[ResultSet] = []
        try:
            with self.connection.cursor() as cursor:
                for statement in statements:
                    cursor.execute(statement.strip().rstrip(";"))
                    while True:
                        result_sets.append(_read_result_set(cursor))
                        next_set = getattr(cursor, "nextset", None)
                        if next_set is None or not next_set():
                            break
        except DatabaseError as e:
            self._last_error = str(e)
            self.logger.warning(f"Multi-Query fehlgeschlagen ({self.alias}): {e}")
            return None

        self._last_error = ""
        return result_sets

    def fetch_value(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        result = self.try_query(sql, params)
        if not result or not result.rows:
            return None
        return result.rows[0][0]

    def fetch_single_row(self, sql: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        result = self.try_query(sql, params)
        if not result or not result.rows:
            return None
        return result.as_dicts()[0]

    def fetch_result(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        result = self.try_query(sql, params)
        if result is None:
            return []
        return result.as_dicts()

    def get_error(self) -> str:
        return self._last_error

    def quote_string(self, value: str) -> str:
        return quote_string(value)

    # --- Schema Introspection ---

    def select_db(self, db: str) -> bool:
        if self.try_query("USE " + backquote(db)) is None:
            return False
        self.current_db = db
        return True

    def get_tables(self, db: str) -> List[str]:
        result = self.try_query("SHOW TABLES FROM " + backquote(db))
        return [row[0] for row in result.rows] if result else []

    def get_definition(self, db: str, which: str, name: str) -> Optional[str]:
        """
        Liefert die CREATE-Anweisung einer Routine (SHOW CREATE FUNCTION /
        PROCEDURE) oder None, wenn sie fehlt oder nicht sichtbar ist.

        Args:
            db: Datenbankname
            which: "FUNCTION" oder "PROCEDURE"
            name: Name der Routine
        """
        if which not in ("FUNCTION", "PROCEDURE"):
            return None

        sql = f"SHOW CREATE {which} {backquote(db)}.{backquote(name)}"
        row = self.fetch_single_row(sql)
        if not row:
            return None
        # Spalte "Create Function" / "Create Procedure" ist NULL ohne Rechte
        return row.get("Create " + which.title())

    def get_charsets(self) -> List[str]:
        result = self.try_query("SHOW CHARACTER SET")
        if not result:
            return []
        return sorted(row[0] for row in result.rows)

    # --- Users and Privileges ---

    def get_current_user(self) -> str:
        """CURRENT_USER() als "user@host" (leer, wenn nicht ermittelbar)."""
        return self.fetch_value("SELECT CURRENT_USER()") or ""

    def is_super_user(self) -> bool:
        return self.try_query("SELECT 1 FROM mysql.user LIMIT 1") is not None

    def get_grants(self) -> Optional[List[str]]:
        result = self.try_query("SHOW GRANTS")
        if result is None:
            return None
        return [row[0] for row in result.rows]

    def current_user_has_privilege(
        self, privilege: str, db: Optional[str] = None, table: Optional[str] = None
    ) -> bool:
        """
        Prüft ein Privileg über information_schema: erst global, dann auf
        Datenbank- und zuletzt auf Tabellenebene.
        """
        user = self.get_current_user()
        if not user:
            return False

        username, _, host = user.rpartition("@")
        grantee = f"'{username}'@'{host}'"
        base = (
            "SELECT `PRIVILEGE_TYPE` FROM `INFORMATION_SCHEMA`.`{}`"
            " WHERE GRANTEE = %s AND PRIVILEGE_TYPE = %s"
        )

        if self.fetch_value(base.format("USER_PRIVILEGES"), [grantee, privilege]):
            return True

        if db:
            # TABLE_SCHEMA kann Wildcards enthalten (GRANT ... ON `shop\_%`.*)
            sql = base.format("SCHEMA_PRIVILEGES") + " AND %s LIKE `TABLE_SCHEMA`"
            if self.fetch_value(sql, [grantee, privilege, db]):
                return True
        else:
            return False

        if table:
            sql = base.format("TABLE_PRIVILEGES") + " AND TABLE_SCHEMA = %s AND TABLE_NAME = %s"
            if self.fetch_value(sql, [grantee, privilege, db, table]):
                return True

        return False
