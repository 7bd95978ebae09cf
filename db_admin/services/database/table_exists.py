"""
Existence checks for databases and tables, used before a request touches them.
"""

import logging

from ...exceptions import DatabaseNotFoundError, TableNotFoundError

logger = logging.getLogger(__name__)


class DbTableExists:
    def __init__(self, dbi):
        self.dbi = dbi

    def has_database(self, db: str) -> bool:
        return bool(db) and self.dbi.select_db(db)

    def check_database(self, db: str) -> None:
        if not self.has_database(db):
            logger.info(f"Datenbank nicht gefunden: {db}")
            raise DatabaseNotFoundError(db)

    def check(self, db: str, table: str) -> None:
        """Wirft TableNotFoundError, wenn ``table`` nicht in ``db`` existiert."""
        self.check_database(db)
        if table not in self.dbi.get_tables(db):
            logger.info(f"Tabelle nicht gefunden: {db}.{table}")
            raise TableNotFoundError(db, table)
