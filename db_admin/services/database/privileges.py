"""
User Privileges

Ermittelt die Rechte des aktuellen MySQL-Benutzers aus ``SHOW GRANTS``.
Liefert der Server keine Grants (z.B. fehlende Rechte), wird für einzelne
Prüfungen auf information_schema zurückgegriffen.

Author: DSP Development Team
Version: 1.0.0
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Set

from ...utils.sql import unquote_identifier

logger = logging.getLogger(__name__)

GRANT_PATTERN = re.compile(
    r"^GRANT\s+(?P<privileges>.+?)\s+ON\s+"
    r"(?:(?P<object_type>TABLE|FUNCTION|PROCEDURE)\s+)?"
    r"(?P<target>(?:`(?:[^`]|``)*`|\*|[^\s.`]+)(?:\.(?:`(?:[^`]|``)*`|\*|[^\s`]+))?)"
    r"\s+TO\s+",
    re.IGNORECASE,
)
# Spaltenlisten wie "SELECT (`id`, `name`)" entfernen
COLUMN_LIST_PATTERN = re.compile(r"\([^)]*\)")

ALL_PRIVILEGES = "ALL PRIVILEGES"


@dataclass
class Grant:
    privileges: Set[str]
    db: str
    table: str
    object_type: Optional[str] = None

    def covers(self, privilege: str) -> bool:
        return ALL_PRIVILEGES in self.privileges or privilege in self.privileges

    def matches_db(self, db: Optional[str]) -> bool:
        if self.db == "*":
            return True
        if db is None:
            return False
        return _db_pattern_matches(self.db, db)

    def matches_table(self, table: Optional[str]) -> bool:
        if self.table == "*":
            return True
        return table is not None and self.table == table


def _db_pattern_matches(pattern: str, db: str) -> bool:
    """
    Datenbanknamen in Grants dürfen die LIKE-Wildcards ``%`` und ``_``
    enthalten; ``\\_`` und ``\\%`` stehen für die Zeichen selbst.
    """
    regex = []
    index = 0
    while index < len(pattern):
        char = pattern[index]
        if char == "\\" and index + 1 < len(pattern):
            regex.append(re.escape(pattern[index + 1]))
            index += 2
            continue
        if char == "%":
            regex.append(".*")
        elif char == "_":
            regex.append(".")
        else:
            regex.append(re.escape(char))
        index += 1
    return re.fullmatch("".join(regex), db) is not None


def parse_grant(line: str) -> Optional[Grant]:
    """
    Zerlegt eine Zeile aus SHOW GRANTS.

    >>> parse_grant("GRANT SELECT, EXECUTE ON `shop`.* TO 'app'@'%'").db
    'shop'
    """
    match = GRANT_PATTERN.match(line.strip())
    if match is None:
        return None

    privileges_text = COLUMN_LIST_PATTERN.sub("", match.group("privileges"))
    privileges = {
        " ".join(priv.split()).upper() for priv in privileges_text.split(",") if priv.strip()
    }
    if "ALL" in privileges:
        privileges.discard("ALL")
        privileges.add(ALL_PRIVILEGES)

    target = match.group("target")
    db_part, _, table_part = target.partition(".")
    if not table_part:
        # "ON *" bezieht sich auf die Standarddatenbank, wie *.* behandeln
        table_part = "*"

    object_type = match.group("object_type")
    return Grant(
        privileges=privileges,
        db=unquote_identifier(db_part),
        table=unquote_identifier(table_part),
        object_type=object_type.upper() if object_type else None,
    )


@dataclass
class UserPrivileges:
    grants: List[Grant] = field(default_factory=list)
    grants_available: bool = False
    is_create_db_priv: bool = False
    is_reload_priv: bool = False
    proc_priv: bool = False
    db_to_create: str = ""


class CheckUserPrivileges:
    """
    Lädt und bewertet die Rechte des aktuellen Benutzers.

    Usage:
        privileges = CheckUserPrivileges(dbi)
        privileges.get_privileges()
        privileges.has_privilege("CREATE ROUTINE", "shop")
    """

    def __init__(self, dbi):
        self.dbi = dbi
        self.privileges = UserPrivileges()
        self._loaded = False
        self.logger = logger

    def get_privileges(self) -> UserPrivileges:
        if self._loaded:
            return self.privileges

        self._loaded = True
        lines = self.dbi.get_grants()
        if lines is None:
            self.logger.info("SHOW GRANTS nicht verfügbar, nutze information_schema")
            return self.privileges

        grants = [grant for grant in (parse_grant(line) for line in lines) if grant]
        self.privileges = self._analyse(grants)
        return self.privileges

    def _analyse(self, grants: List[Grant]) -> UserPrivileges:
        result = UserPrivileges(grants=grants, grants_available=True)

        for grant in grants:
            if grant.object_type in ("FUNCTION", "PROCEDURE"):
                continue

            is_global = grant.db == "*"
            if is_global and grant.covers("RELOAD"):
                result.is_reload_priv = True

            if grant.covers("CREATE") and grant.table == "*":
                result.is_create_db_priv = True
                if not is_global and not result.db_to_create:
                    # Muster wie `shop\_%` -> Vorschlag "shop_"
                    result.db_to_create = grant.db.replace("\\_", "_").rstrip("%")

            if grant.covers("SELECT") and (
                is_global or (grant.db == "mysql" and grant.table in ("*", "procs_priv"))
            ):
                result.proc_priv = True

        return result

    def has_privilege(
        self, privilege: str, db: Optional[str] = None, table: Optional[str] = None
    ) -> bool:
        privileges = self.get_privileges()
        if not privileges.grants_available:
            return self.dbi.current_user_has_privilege(privilege, db, table or None)

        privilege = privilege.upper()
        for grant in privileges.grants:
            if grant.object_type in ("FUNCTION", "PROCEDURE"):
                continue
            if not grant.covers(privilege) or not grant.matches_db(db):
                continue
            if grant.table == "*" or grant.matches_table(table):
                return True
        return False

    def has_routine_privilege(self, privilege: str, db: str, routine_type: str, name: str) -> bool:
        """
        Wie has_privilege, berücksichtigt zusätzlich Grants auf eine einzelne
        Routine (``GRANT ALTER ROUTINE ON PROCEDURE `db`.`name` ...``).
        MySQL vergibt diese automatisch an den Ersteller einer Routine.
        """
        if self.has_privilege(privilege, db):
            return True

        privileges = self.get_privileges()
        if not privileges.grants_available:
            return False

        privilege = privilege.upper()
        for grant in privileges.grants:
            if grant.object_type != routine_type or not grant.covers(privilege):
                continue
            # Routinennamen sind in MySQL case-insensitive, Datenbanknamen hier ohne Wildcards
            if grant.db == db and grant.table.lower() == name.lower():
                return True
        return False
