"""
Export Routines Management Command - DSP (Digital Solutions Platform)

Schreibt die CREATE-Anweisungen der Stored Routines einer Datenbank als
DELIMITER-Blöcke auf stdout, z.B. für Backups oder Deployments:

    python manage.py export_routines shop > shop_routines.sql
    python manage.py export_routines shop --type FUNCTION --name calc_tax

Author: DSP Development Team
Version: 1.0.0
"""

import logging

from django.core.management.base import BaseCommand, CommandError

from db_admin.exceptions import DbAdminException
from db_admin.services.database import DatabaseInterface, DbTableExists
from db_admin.services.routines import export_definition, get_details, get_routine_definition
from db_admin.services.routines.routine_data import ROUTINE_TYPES

# Logger einrichten
logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """
    Django Management Command für den Export von Stored Routines.

    Die SQL-Ausgabe geht nach stdout, Statusmeldungen nach stderr.
    """

    help = "Exportiert Stored Routines (FUNCTION / PROCEDURE) einer Datenbank als SQL."

    def add_arguments(self, parser):
        parser.add_argument("db", help="Name der Datenbank")
        parser.add_argument(
            "--type",
            choices=ROUTINE_TYPES,
            default=None,
            help="Nur Routinen dieses Typs exportieren",
        )
        parser.add_argument("--name", default="", help="Nur die Routine mit diesem Namen exportieren")
        parser.add_argument(
            "--database-alias",
            default=None,
            help="Django-Datenbank-Alias des verwalteten Servers (Standard: DB_ADMIN['TARGET_ALIAS'])",
        )

    def handle(self, *args, **options):
        """
        Hauptausführungsmethode für das Management Command.

        Raises:
            CommandError: Datenbank fehlt, keine Routine gefunden oder Serverfehler
        """
        db = options["db"]
        dbi = DatabaseInterface(options["database_alias"])

        try:
            DbTableExists(dbi).check_database(db)
            routines = get_details(dbi, db, options["type"], options["name"])

            if not routines:
                raise CommandError(f"Keine Routinen in Datenbank {db} gefunden.")

            exported = 0
            for routine in routines:
                definition = get_routine_definition(dbi, db, routine.type, routine.name)
                if definition is None:
                    # Ohne Rechte liefert SHOW CREATE keine Definition
                    self.stderr.write(
                        self.style.WARNING(f"Übersprungen (keine Rechte?): {routine.type} {routine.name}")
                    )
                    continue

                self.stdout.write(f"-- {routine.type} {routine.name}")
                self.stdout.write(export_definition(definition))
                exported += 1

            self.stderr.write(self.style.SUCCESS(f"{exported} Routine(n) exportiert."))

        except CommandError:
            raise
        except DbAdminException as e:
            logger.error(f"Fehler beim Ausführen von export_routines: {e.message}", exc_info=True)
            raise CommandError(e.message)
