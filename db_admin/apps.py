"""
DB Admin App Configuration - DSP (Digital Solutions Platform)

Dieses Modul enthält die Django App-Konfiguration für das DB Admin Tool.
Die App verwaltet Stored Routines (FUNCTION / PROCEDURE) auf einem
MySQL/MariaDB-Server.

Author: DSP Development Team
Version: 1.0.0
"""

from django.apps import AppConfig


class DbAdminConfig(AppConfig):
    """
    Django AppConfig für das DB Admin Modul.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "db_admin"
    verbose_name = "DB Admin"
