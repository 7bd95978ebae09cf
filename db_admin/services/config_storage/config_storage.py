"""
Configuration Storage Service

Liest die Konfiguration aus ``settings.DB_ADMIN["CONFIG_STORAGE"]`` und
prüft, ob die Tabellen auf dem verwalteten Server existieren.

Author: DSP Development Team
Version: 1.0.0
"""

import logging
from functools import cached_property
from typing import Any, Dict, Optional

from django.conf import settings

from ...exceptions import InvalidIdentifierError
from ...utils.sql import backquote
from .features import DatabaseName, DisplayFeature, TableName

logger = logging.getLogger(__name__)


class ConfigStorage:
    """
    Usage:
        storage = ConfigStorage(dbi)
        feature = storage.get_display_feature()
        column = storage.get_display_field("shop", "customers")
    """

    def __init__(self, dbi, config: Optional[Dict[str, Any]] = None):
        self.dbi = dbi
        self.config = config if config is not None else settings.DB_ADMIN.get("CONFIG_STORAGE", {})
        self.logger = logger

    @cached_property
    def display_feature(self) -> Optional[DisplayFeature]:
        pmadb = self.config.get("pmadb")
        relation = self.config.get("relation")
        table_info = self.config.get("table_info")
        if not pmadb or not relation or not table_info:
            return None

        try:
            feature = DisplayFeature(
                database=DatabaseName(pmadb),
                relation=TableName(relation),
                table_info=TableName(table_info),
            )
        except InvalidIdentifierError as e:
            self.logger.warning(f"Configuration Storage ungültig: {e.message}")
            return None

        tables = self.dbi.get_tables(str(feature.database))
        missing = [str(name) for name in (feature.relation, feature.table_info) if str(name) not in tables]
        if missing:
            self.logger.info(f"Display Feature deaktiviert, Tabellen fehlen: {', '.join(missing)}")
            return None
        return feature

    def get_display_feature(self) -> Optional[DisplayFeature]:
        return self.display_feature

    def get_display_field(self, db: str, table: str) -> str:
        """
        Anzeigespalte einer Tabelle aus der table_info-Tabelle.

        Returns:
            Spaltenname oder "" wenn keine konfiguriert ist
        """
        feature = self.get_display_feature()
        if feature is None:
            return ""

        sql = (
            f"SELECT `display_field` FROM {backquote(str(feature.database))}.{backquote(str(feature.table_info))}"
            " WHERE `db_name` = %s AND `table_name` = %s"
        )
        return self.dbi.fetch_value(sql, [db, table]) or ""
