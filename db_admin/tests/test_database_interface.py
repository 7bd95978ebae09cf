"""
Database Interface Tests - DSP (Digital Solutions Platform)

Die Django-Verbindung wird gemockt, geprüft werden SQL und Fehlerbehandlung.

Author: DSP Development Team
Version: 1.0.0
"""

from unittest import mock

from django.db import DatabaseError
from django.test import SimpleTestCase

from db_admin.exceptions import QueryFailedError
from db_admin.services.database import DatabaseInterface


class DatabaseInterfaceTests(SimpleTestCase):
    def setUp(self):
        self.cursor = mock.MagicMock()
        self.cursor.description = None
        self.cursor.rowcount = 0
        self.cursor.nextset.return_value = None
        connection = mock.MagicMock()
        connection.cursor.return_value.__enter__.return_value = self.cursor

        patcher = mock.patch(
            "db_admin.services.database.database_interface.connections", {"default": connection}
        )
        patcher.start()
        self.addCleanup(patcher.stop)
        self.dbi = DatabaseInterface("default")

    def test_get_definition(self):
        self.cursor.description = [("Procedure",), ("sql_mode",), ("Create Procedure",)]
        self.cursor.fetchall.return_value = [("add_order", "", "CREATE PROCEDURE `add_order`() BEGIN END")]

        definition = self.dbi.get_definition("shop", "PROCEDURE", "add_order")

        self.assertEqual(definition, "CREATE PROCEDURE `add_order`() BEGIN END")
        self.cursor.execute.assert_called_once_with("SHOW CREATE PROCEDURE `shop`.`add_order`", None)

    def test_get_definition_rejects_unknown_type(self):
        self.assertIsNone(self.dbi.get_definition("shop", "TRIGGER", "t"))
        self.cursor.execute.assert_not_called()

    def test_try_query_stores_error(self):
        self.cursor.execute.side_effect = DatabaseError("(1305, 'PROCEDURE shop.nope does not exist')")

        self.assertIsNone(self.dbi.try_query("DROP PROCEDURE `nope`;\n"))
        self.assertIn("does not exist", self.dbi.get_error())
        self.cursor.execute.assert_called_once_with("DROP PROCEDURE `nope`", None)

    def test_error_is_reset_after_success(self):
        self.cursor.execute.side_effect = [DatabaseError("boom"), None]

        self.dbi.try_query("SELECT 1")
        self.dbi.try_query("SELECT 1")

        self.assertEqual(self.dbi.get_error(), "")

    def test_query_raises(self):
        self.cursor.execute.side_effect = DatabaseError("boom")

        with self.assertRaises(QueryFailedError) as ctx:
            self.dbi.query("SELECT nope")

        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(ctx.exception.server_error, "boom")

    def test_try_multi_query(self):
        self.cursor.description = [("total",)]
        self.cursor.fetchall.return_value = [(42,)]

        result_sets = self.dbi.try_multi_query(["SET @p0='5';\n", "CALL `add_order`(@p0, @p1);\n"])

        self.assertEqual(
            self.cursor.execute.call_args_list,
            [mock.call("SET @p0='5'"), mock.call("CALL `add_order`(@p0, @p1)")],
        )
        self.assertEqual(len(result_sets), 2)
        self.assertEqual(result_sets[0].as_dicts(), [{"total": 42}])
        self.assertEqual(result_sets[0].rowcount, 1)

    def test_select_db(self):
        self.assertTrue(self.dbi.select_db("shop"))
        self.assertEqual(self.dbi.current_db, "shop")
        self.cursor.execute.assert_called_once_with("USE `shop`", None)

    def test_current_user_privilege_without_user(self):
        self.cursor.description = [("CURRENT_USER()",)]
        self.cursor.fetchall.return_value = []

        self.assertFalse(self.dbi.current_user_has_privilege("EXECUTE", "shop"))
