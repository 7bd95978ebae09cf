"""
Database Services Package für DSP DB Admin

Dieses Paket enthält den Zugriff auf den verwalteten Server:
- DatabaseInterface: Abfragen, DDL, SHOW CREATE
- CheckUserPrivileges: Rechte des aktuellen Benutzers
- DbTableExists: Existenzprüfungen

Author: DSP Development Team
Version: 1.0.0
"""

from .database_interface import DatabaseInterface, ResultSet
from .privileges import CheckUserPrivileges, Grant, UserPrivileges, parse_grant
from .table_exists import DbTableExists

__all__ = [
    "DatabaseInterface",
    "ResultSet",
    "CheckUserPrivileges",
    "Grant",
    "UserPrivileges",
    "parse_grant",
    "DbTableExists",
]
