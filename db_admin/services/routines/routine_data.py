"""
Routine data structures and the MySQL vocabulary the editor offers.

Author: DSP Development Team
Version: 1.0.0
"""

from dataclasses import dataclass, field
from typing import List, Optional

ROUTINE_TYPES = ("PROCEDURE", "FUNCTION")
PARAM_DIRECTIONS = ("IN", "OUT", "INOUT")
PARAM_OPTS_NUM = ("UNSIGNED", "ZEROFILL", "UNSIGNED ZEROFILL")
SECURITY_TYPES = ("DEFINER", "INVOKER")
SQL_DATA_ACCESS = ("CONTAINS SQL", "NO SQL", "READS SQL DATA", "MODIFIES SQL DATA")

SUPPORTED_DATATYPES = (
    "TINYINT",
    "SMALLINT",
    "MEDIUMINT",
    "INT",
    "BIGINT",
    "DECIMAL",
    "FLOAT",
    "DOUBLE",
    "REAL",
    "BIT",
    "BOOLEAN",
    "SERIAL",
    "DATE",
    "DATETIME",
    "TIMESTAMP",
    "TIME",
    "YEAR",
    "CHAR",
    "VARCHAR",
    "TINYTEXT",
    "TEXT",
    "MEDIUMTEXT",
    "LONGTEXT",
    "BINARY",
    "VARBINARY",
    "TINYBLOB",
    "BLOB",
    "MEDIUMBLOB",
    "LONGBLOB",
    "ENUM",
    "SET",
    "GEOMETRY",
    "POINT",
    "LINESTRING",
    "POLYGON",
    "MULTIPOINT",
    "MULTILINESTRING",
    "MULTIPOLYGON",
    "GEOMETRYCOLLECTION",
    "JSON",
)

# Typen, die eine Länge bzw. Werteliste brauchen
TYPES_REQUIRING_LENGTH = ("ENUM", "SET", "VARCHAR", "VARBINARY")
NUMERIC_TYPES = ("TINYINT", "SMALLINT", "MEDIUMINT", "INT", "BIGINT", "FLOAT", "DOUBLE", "DECIMAL", "REAL")
TEXT_TYPES = ("CHAR", "VARCHAR", "TINYTEXT", "TEXT", "MEDIUMTEXT", "LONGTEXT", "ENUM", "SET")

# Funktionen, die im Ausführen-Dialog auf Eingabewerte angewendet werden dürfen
ALLOWED_FUNCTIONS = (
    "AES_DECRYPT",
    "AES_ENCRYPT",
    "BIN",
    "CHAR",
    "COMPRESS",
    "DATE",
    "FROM_BASE64",
    "FROM_DAYS",
    "FROM_UNIXTIME",
    "HEX",
    "INET_ATON",
    "INET_NTOA",
    "LCASE",
    "LOWER",
    "LTRIM",
    "MD5",
    "NOW",
    "OCT",
    "PASSWORD",
    "QUARTER",
    "REVERSE",
    "RTRIM",
    "SHA1",
    "SOUNDEX",
    "SPACE",
    "ST_GeomFromText",
    "TO_BASE64",
    "TRIM",
    "UCASE",
    "UNCOMPRESS",
    "UNHEX",
    "UNIX_TIMESTAMP",
    "UPPER",
    "UTC_DATE",
    "UTC_TIMESTAMP",
    "UUID",
)


def is_numeric_type(type_name: str) -> bool:
    return type_name.upper() in NUMERIC_TYPES


def is_text_type(type_name: str) -> bool:
    return type_name.upper() in TEXT_TYPES


@dataclass
class RoutineParameter:
    direction: str = ""
    name: str = ""
    type: str = ""
    length: str = ""
    opts_num: str = ""
    opts_text: str = ""

    @property
    def length_values(self) -> List[str]:
        """Werte einer ENUM/SET-Länge ('a','b') ohne Quotes."""
        values = []
        for raw in _split_length(self.length):
            raw = raw.strip()
            if len(raw) >= 2 and raw[0] == raw[-1] == "'":
                raw = raw[1:-1].replace("''", "'")
            values.append(raw)
        return values


def _split_length(length: str) -> List[str]:
    parts, current, in_quote = [], [], False
    for char in length:
        if char == "'":
            in_quote = not in_quote
        if char == "," and not in_quote:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    if current:
        parts.append("".join(current))
    return parts


@dataclass
class RoutineData:
    """
    Routine descriptor used by the editor, the execute dialog and the
    CREATE statement builder.

    ``original_name``/``original_type`` identify the routine before an edit,
    so that a rename or a type change drops the right object.
    """

    name: str = ""
    original_name: str = ""
    type: str = "PROCEDURE"
    original_type: str = "PROCEDURE"
    type_toggle: str = "FUNCTION"
    parameters: List[RoutineParameter] = field(default_factory=list)
    return_type: str = ""
    return_length: str = ""
    return_opts_num: str = ""
    return_opts_text: str = ""
    definition: str = ""
    is_deterministic: bool = False
    definer: str = ""
    security_type: str = "DEFINER"
    sql_data_access: str = ""
    comment: str = ""

    @property
    def num_params(self) -> int:
        return len(self.parameters)

    @property
    def is_function(self) -> bool:
        return self.type == "FUNCTION"

    def toggle_type(self) -> None:
        self.type, self.type_toggle = self.type_toggle, self.type


@dataclass
class RoutineSummary:
    """Eine Zeile der Routinenliste."""

    db: str
    name: str
    type: str
    definer: str = ""
    returns: str = ""
    comment: str = ""
    created: Optional[str] = None
    updated: Optional[str] = None
