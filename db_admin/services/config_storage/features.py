"""
Configuration Storage Features

Ein Feature ist nur aktiv, wenn alle zugehörigen Tabellen konfiguriert und
vorhanden sind. Die Feature-Objekte sind unveränderlich und enthalten nur
bereits geprüfte Bezeichner.

Author: DSP Development Team
Version: 1.0.0
"""

from dataclasses import dataclass

from ...exceptions import InvalidIdentifierError

# MySQL: Datenbank- und Tabellennamen maximal 64 Zeichen
MAX_IDENTIFIER_LENGTH = 64


def _validate_identifier(kind: str, value) -> None:
    if not isinstance(value, str) or value == "":
        raise InvalidIdentifierError(kind, str(value), "the name must not be empty.")
    if len(value) > MAX_IDENTIFIER_LENGTH:
        raise InvalidIdentifierError(
            kind, value, f"the name must not be longer than {MAX_IDENTIFIER_LENGTH} characters."
        )
    if value != value.rstrip(" "):
        raise InvalidIdentifierError(kind, value, "the name must not end with a space character.")


@dataclass(frozen=True)
class DatabaseName:
    name: str

    def __post_init__(self):
        _validate_identifier("database", self.name)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class TableName:
    name: str

    def __post_init__(self):
        _validate_identifier("table", self.name)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class DisplayFeature:
    """
    Display Field Feature: Datenbank des Configuration Storage, die
    Relationstabelle und die Tabelle mit den Anzeigespalten (table_info).
    """

    database: DatabaseName
    relation: TableName
    table_info: TableName
