"""
Routines Service Tests - DSP (Digital Solutions Platform)

Tests für Editor, CREATE-Anweisung, Anlegen/Ändern, Ausführen, Löschen und
die Routinenliste gegen einen In-Memory-Server.

Author: DSP Development Team
Version: 1.0.0
"""

from django.conf import settings
from django.test import RequestFactory, SimpleTestCase

from db_admin.exceptions import InsufficientPrivilegesError
from db_admin.services.database import CheckUserPrivileges, ResultSet
from db_admin.services.routines import (
    RoutineData,
    RoutineParameter,
    Routines,
    export_definition,
    get_details,
)
from db_admin.utils import RequestParams, ResponseRenderer

from .fakes import FakeDatabaseInterface

ADD_ORDER = (
    "CREATE DEFINER=`root`@`localhost` PROCEDURE `add_order`(IN `customer` INT, OUT `total` INT)\n"
    "    MODIFIES SQL DATA\n"
    "BEGIN\n"
    "  SELECT 1;\n"
    "END"
)
CALC_TAX = (
    "CREATE DEFINER=`root`@`localhost` FUNCTION `calc_tax`(`amount` DECIMAL(10,2)) "
    "RETURNS decimal(10,2)\n"
    "    DETERMINISTIC\n"
    "    COMMENT 'VAT'\n"
    "RETURN amount * 0.19"
)
RESET_STATS = "CREATE DEFINER=`root`@`localhost` PROCEDURE `reset_stats`(OUT `affected` INT) BEGIN END"

VALID_PROCEDURE = {
    "item_type": "PROCEDURE",
    "item_name": "add_order",
    "item_definer": "root@localhost",
    "item_param_dir": ["IN", "OUT"],
    "item_param_name": ["customer", "total"],
    "item_param_type": ["INT", "DECIMAL"],
    "item_param_length": ["11", "10,2"],
    "item_param_opts_num": ["", "UNSIGNED"],
    "item_param_opts_text": ["", ""],
    "item_definition": "BEGIN SELECT 1; END",
    "item_securitytype": "INVOKER",
    "item_sqldataaccess": "MODIFIES SQL DATA",
    "item_comment": "Creates an order",
}


class RoutinesServiceTestCase(SimpleTestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.dbi = FakeDatabaseInterface()
        self.dbi.select_db("shop")

    def make_service(self, post=None, get=None, ajax=False):
        headers = {"HTTP_X_REQUESTED_WITH": "XMLHttpRequest"} if ajax else {}
        if post is not None:
            request = self.factory.post("/api/db-admin/routines/?" + (get or ""), post, **headers)
        else:
            request = self.factory.get("/api/db-admin/routines/?" + (get or ""), **headers)
        response = ResponseRenderer(request)
        service = Routines(
            self.dbi,
            response,
            CheckUserPrivileges(self.dbi),
            RequestParams.from_request(request),
            db="shop",
        )
        return service, response


class QueryFromRequestTests(RoutinesServiceTestCase):
    def test_procedure_statement(self):
        service, _ = self.make_service(post=VALID_PROCEDURE)

        query, errors = service.get_query_from_request()

        self.assertEqual(errors, [])
        self.assertEqual(
            query,
            "CREATE DEFINER=`root`@`localhost` PROCEDURE `add_order`"
            "(IN `customer` INT(11), OUT `total` DECIMAL(10,2) UNSIGNED)"
            " COMMENT 'Creates an order' NOT DETERMINISTIC MODIFIES SQL DATA"
            " SQL SECURITY INVOKER BEGIN SELECT 1; END",
        )

    def test_function_statement(self):
        service, _ = self.make_service(
            post={
                "item_type": "FUNCTION",
                "item_name": "greet",
                "item_param_name": ["who"],
                "item_param_type": ["VARCHAR"],
                "item_param_length": ["20"],
                "item_param_opts_text": ["utf8mb4"],
                "item_returntype": "VARCHAR",
                "item_returnlength": "40",
                "item_returnopts_text": "utf8mb4",
                "item_isdeterministic": "1",
                "item_definition": "RETURN CONCAT('Hi ', who)",
                "item_securitytype": "DEFINER",
                "item_sqldataaccess": "NO SQL",
            }
        )

        query, errors = service.get_query_from_request()

        self.assertEqual(errors, [])
        self.assertEqual(
            query,
            "CREATE FUNCTION `greet`(`who` VARCHAR(20) CHARSET utf8mb4)"
            " RETURNS VARCHAR(40) CHARSET utf8mb4 DETERMINISTIC NO SQL"
            " SQL SECURITY DEFINER RETURN CONCAT('Hi ', who)",
        )

    def test_validation_errors(self):
        service, _ = self.make_service(
            post={
                "item_type": "TRIGGER",
                "item_definer": "root",
                "item_param_name": ["state"],
                "item_param_type": ["ENUM"],
                "item_param_length": [""],
            }
        )

        _query, errors = service.get_query_from_request()

        self.assertIn('The definer must be in the "username@hostname" format!', errors)
        self.assertIn('Invalid routine type: "TRIGGER"', errors)
        self.assertIn("You must provide a routine name!", errors)
        self.assertIn('You must provide length/values for routine parameter "state".', errors)
        self.assertIn("You must provide a routine definition.", errors)

    def test_parameter_without_name(self):
        service, _ = self.make_service(
            post={
                "item_type": "PROCEDURE",
                "item_name": "p",
                "item_param_name": ["a", ""],
                "item_param_type": ["INT", "INT"],
                "item_definition": "BEGIN END",
            }
        )

        _query, errors = service.get_query_from_request()

        self.assertEqual(errors, ["You must provide a name and a type for each routine parameter."])

    def test_function_return_type_errors(self):
        service, _ = self.make_service(
            post={"item_type": "FUNCTION", "item_name": "f", "item_returntype": "NOPE", "item_definition": "RETURN 1"}
        )
        self.assertIn("You must provide a valid return type for the routine.", service.get_query_from_request()[1])

        service, _ = self.make_service(
            post={"item_type": "FUNCTION", "item_name": "f", "item_returntype": "ENUM", "item_definition": "RETURN 1"}
        )
        self.assertIn("You must provide length/values for routine return type.", service.get_query_from_request()[1])


class DataTests(RoutinesServiceTestCase):
    def test_get_data_from_request(self):
        service, _ = self.make_service(post=dict(VALID_PROCEDURE, item_param_opts_text=["", "klingon"]))

        routine = service.get_data_from_request()

        self.assertEqual(routine.name, "add_order")
        self.assertEqual(routine.type, "PROCEDURE")
        self.assertEqual(routine.num_params, 2)
        self.assertEqual(routine.parameters[1].opts_num, "UNSIGNED")
        self.assertEqual(routine.parameters[1].opts_text, "")
        self.assertEqual(routine.security_type, "INVOKER")
        self.assertFalse(routine.is_deterministic)

    def test_get_data_from_name(self):
        self.dbi.add_routine("shop", CALC_TAX)
        service, _ = self.make_service()

        routine = service.get_data_from_name("calc_tax", "FUNCTION")

        self.assertEqual(routine.type, "FUNCTION")
        self.assertEqual(routine.type_toggle, "PROCEDURE")
        self.assertEqual(routine.return_type, "DECIMAL")
        self.assertEqual(routine.return_length, "10,2")
        self.assertEqual(routine.definition, "RETURN amount * 0.19")
        self.assertEqual(routine.definer, "root@localhost")
        self.assertEqual(routine.comment, "VAT")
        self.assertTrue(routine.is_deterministic)
        self.assertEqual(routine.parameters, [RoutineParameter(name="amount", type="DECIMAL", length="10,2")])

    def test_get_data_from_name_missing(self):
        service, _ = self.make_service()
        self.assertIsNone(service.get_data_from_name("nope", "PROCEDURE"))


class CreateOrEditTests(RoutinesServiceTestCase):
    def test_nothing_to_do(self):
        service, _ = self.make_service(post=VALID_PROCEDURE)
        self.assertEqual(service.handle_request_create_or_edit(["x"]), ["x"])
        self.assertEqual(self.dbi.routines, {})

    def test_create(self):
        service, response = self.make_service(post=dict(VALID_PROCEDURE, editor_process_add="1"))

        errors = service.handle_request_create_or_edit([])

        self.assertEqual(errors, [])
        self.assertIn(("shop", "PROCEDURE", "add_order"), self.dbi.routines)
        self.assertIn("Routine `add_order` has been created.", response.get_display())
        self.assertFalse(response.is_finished)

    def test_create_ajax(self):
        service, response = self.make_service(post=dict(VALID_PROCEDURE, editor_process_add="1"), ajax=True)

        service.handle_request_create_or_edit([])
        data = response.get_json()

        self.assertTrue(response.is_finished)
        self.assertTrue(response.is_success())
        self.assertEqual(data["name"], "ADD_ORDER")
        self.assertTrue(data["insert"])
        self.assertIn("add_order", data["new_row"])
        self.assertEqual(data["tableType"], "routines")
        self.assertIn("has been created", data["message"])

    def test_create_fails(self):
        self.dbi.fail_on("CREATE")
        service, response = self.make_service(post=dict(VALID_PROCEDURE, editor_process_add="1"), ajax=True)

        errors = service.handle_request_create_or_edit([])

        self.assertEqual(len(errors), 1)
        self.assertIn("The following query has failed", errors[0])
        self.assertIn("You have an error in your SQL syntax", errors[0])
        self.assertFalse(response.is_success())
        self.assertIn("One or more errors have occurred", response.get_json()["message"])

    def test_edit_renames_and_adjusts_privileges(self):
        self.dbi.add_routine("shop", "CREATE DEFINER=`root`@`localhost` PROCEDURE `old_name`() BEGIN END")
        self.dbi.procs_priv = [
            ("localhost", "shop", "app", "old_name", "PROCEDURE", "root@localhost", "Execute", "2025-07-10 09:00:00")
        ]
        service, response = self.make_service(
            post={
                "editor_process_edit": "1",
                "item_original_name": "old_name",
                "item_original_type": "PROCEDURE",
                "item_name": "new_name",
                "item_type": "PROCEDURE",
                "item_definition": "BEGIN SELECT 2; END",
                "item_securitytype": "DEFINER",
                "item_sqldataaccess": "CONTAINS SQL",
            }
        )

        errors = service.handle_request_create_or_edit([])

        self.assertEqual(errors, [])
        self.assertNotIn(("shop", "PROCEDURE", "old_name"), self.dbi.routines)
        self.assertIn(("shop", "PROCEDURE", "new_name"), self.dbi.routines)
        inserts = [params for sql, params in self.dbi.executed if sql.startswith("INSERT INTO `mysql`.`procs_priv`")]
        self.assertEqual(inserts[0][3:5], ["new_name", "PROCEDURE"])
        self.assertIn(("FLUSH PRIVILEGES", None), self.dbi.executed)
        self.assertIn(
            "Routine `new_name` has been modified. Privileges have been adjusted.", response.get_display()
        )

    def test_edit_restores_old_routine_when_create_fails(self):
        self.dbi.add_routine("shop", ADD_ORDER)
        self.dbi.fail_on("PROCEDURE `broken`")
        service, _ = self.make_service(
            post={
                "editor_process_edit": "1",
                "item_original_name": "add_order",
                "item_original_type": "PROCEDURE",
                "item_name": "broken",
                "item_type": "PROCEDURE",
                "item_definition": "BEGIN oops END",
            }
        )

        errors = service.handle_request_create_or_edit([])

        self.assertEqual(len(errors), 1)
        self.assertIn(("shop", "PROCEDURE", "add_order"), self.dbi.routines)
        self.assertNotIn("Sorry, we failed to restore the dropped routine.", errors)

    def test_edit_reports_failed_restore(self):
        self.dbi.add_routine("shop", ADD_ORDER)
        self.dbi.fail_on("CREATE")
        service, _ = self.make_service(
            post={
                "editor_process_edit": "1",
                "item_original_name": "add_order",
                "item_original_type": "PROCEDURE",
                "item_name": "add_order",
                "item_type": "PROCEDURE",
                "item_definition": "BEGIN END",
            }
        )

        errors = service.handle_request_create_or_edit([])

        self.assertIn("Sorry, we failed to restore the dropped routine.", errors)
        self.assertNotIn(("shop", "PROCEDURE", "add_order"), self.dbi.routines)


class EditorFormTests(RoutinesServiceTestCase):
    def test_fresh_add_gets_one_parameter_row(self):
        service, _ = self.make_service()
        routine = RoutineData()

        html = service.get_editor_form("add", "", routine)

        self.assertEqual(routine.num_params, 1)
        self.assertEqual(html.count('name="item_param_name"'), 1)
        self.assertIn('name="editor_process_add"', html)

    def test_operations(self):
        service, _ = self.make_service()
        routine = RoutineData(parameters=[RoutineParameter(name="a"), RoutineParameter(name="b")])

        service.get_editor_form("edit", "remove", routine)
        self.assertEqual([param.name for param in routine.parameters], ["a"])

        service.get_editor_form("edit", "add", routine)
        self.assertEqual(routine.num_params, 2)

        service.get_editor_form("edit", "change", routine)
        self.assertEqual((routine.type, routine.type_toggle), ("FUNCTION", "PROCEDURE"))

    def test_edit_form_keeps_original_identity(self):
        service, _ = self.make_service()
        routine = RoutineData(name="add_order", original_name="add_order", original_type="PROCEDURE")

        html = service.get_editor_form("edit", "", routine)

        self.assertIn('name="item_original_name" type="hidden" value="add_order"', html)
        self.assertEqual(html.count('name="item_param_name"'), 0)

    def test_parameter_row_template(self):
        service, _ = self.make_service()
        html = service.get_parameter_row()
        self.assertIn('id="item_param_length_%s"', html)


class ExecuteTests(RoutinesServiceTestCase):
    def test_execute_procedure(self):
        self.dbi.add_routine("shop", ADD_ORDER)
        self.dbi.multi_results = [ResultSet(columns=["total"], rows=[(42,)], rowcount=1), ResultSet()]
        service, response = self.make_service(
            post={
                "execute_routine": "1",
                "item_name": "add_order",
                "item_type": "PROCEDURE",
                "params[customer]": "5",
                "funcs[customer]": "",
            },
            ajax=True,
        )

        service.handle_execute()
        data = response.get_json()

        self.assertEqual(
            self.dbi.multi_statements[0],
            ["SET @p0='5';\n", "CALL `add_order`(@p0, @p1);\n", "SELECT @p1 AS `total`;\n"],
        )
        self.assertTrue(response.is_finished)
        self.assertTrue(response.is_success())
        self.assertFalse(data["dialog"])
        self.assertIn("<td>42</td>", data["message"])
        self.assertIn("1 row affected by the last statement inside the procedure.", data["message"])

    def test_execute_function_with_input_function(self):
        self.dbi.add_routine("shop", CALC_TAX)
        service, response = self.make_service(
            post={
                "execute_routine": "1",
                "item_name": "calc_tax",
                "item_type": "FUNCTION",
                "params[amount]": "10",
                "funcs[amount]": "TRIM",
            }
        )

        service.handle_execute()

        self.assertEqual(
            self.dbi.multi_statements[0],
            ["SET @p0=TRIM('10');\n", "SELECT `calc_tax`(@p0) AS `calc_tax`;\n"],
        )
        self.assertIn("MySQL returned an empty result set", response.get_display())
        self.assertFalse(response.is_finished)

    def test_unknown_input_function_is_ignored(self):
        self.dbi.add_routine("shop", CALC_TAX)
        service, _ = self.make_service(
            post={
                "execute_routine": "1",
                "item_name": "calc_tax",
                "item_type": "FUNCTION",
                "params[amount]": "10",
                "funcs[amount]": "SLEEP",
            }
        )

        service.handle_execute()

        self.assertEqual(self.dbi.multi_statements[0][0], "SET @p0='10';\n")

    def test_execute_failure_stops_request(self):
        self.dbi.add_routine("shop", ADD_ORDER)
        self.dbi.fail_on("CALL")
        service, response = self.make_service(
            post={"execute_routine": "1", "item_name": "add_order", "item_type": "PROCEDURE"}
        )

        service.handle_execute()

        self.assertTrue(response.is_finished)
        self.assertFalse(response.is_success())
        self.assertIn("The following query has failed", response.get_display())

    def test_execute_dialog(self):
        self.dbi.add_routine("shop", ADD_ORDER)
        service, response = self.make_service(get="execute_dialog=1&item_name=add_order&item_type=PROCEDURE")

        service.handle_execute()
        html = response.get_display()

        self.assertTrue(response.is_finished)
        self.assertIn("<h2>Execute routine</h2>", html)
        self.assertIn('name="params[customer]"', html)
        self.assertNotIn('name="params[total]"', html)

    def test_execute_dialog_ajax(self):
        self.dbi.add_routine("shop", ADD_ORDER)
        service, response = self.make_service(
            get="execute_dialog=1&item_name=add_order&item_type=PROCEDURE", ajax=True
        )

        service.handle_execute()
        data = response.get_json()

        self.assertTrue(data["dialog"])
        self.assertEqual(data["title"], "Execute routine `add_order`")
        self.assertIn('name="execute_routine"', data["message"])


class DropTests(RoutinesServiceTestCase):
    def test_drop(self):
        self.dbi.add_routine("shop", ADD_ORDER)
        service, response = self.make_service(
            post={"drop_item": "1", "item_name": "add_order", "item_type": "PROCEDURE"}, ajax=True
        )

        service.handle_drop()

        self.assertEqual(self.dbi.routines, {})
        self.assertTrue(response.is_success())
        self.assertIn("Routine `add_order` has been dropped.", response.get_json()["message"].get_display())

    def test_drop_requires_privilege(self):
        self.dbi = FakeDatabaseInterface(grants=["GRANT EXECUTE ON `shop`.* TO `app`@`%`"], super_user=False)
        self.dbi.select_db("shop")
        self.dbi.add_routine("shop", ADD_ORDER)
        service, _ = self.make_service(
            post={"drop_item": "1", "item_name": "add_order", "item_type": "PROCEDURE"}
        )

        with self.assertRaises(InsufficientPrivilegesError) as context:
            service.handle_drop()

        self.assertEqual(context.exception.status_code, 403)
        self.assertIn(("shop", "PROCEDURE", "add_order"), self.dbi.routines)

    def test_drop_with_grant_on_routine(self):
        self.dbi = FakeDatabaseInterface(
            grants=[
                "GRANT USAGE ON *.* TO `app`@`%`",
                "GRANT EXECUTE, ALTER ROUTINE ON PROCEDURE `shop`.`add_order` TO `app`@`%`",
            ],
            super_user=False,
        )
        self.dbi.select_db("shop")
        self.dbi.add_routine("shop", ADD_ORDER)
        service, response = self.make_service(
            post={"drop_item": "1", "item_name": "add_order", "item_type": "PROCEDURE"}
        )

        service.handle_drop()

        self.assertEqual(self.dbi.routines, {})
        self.assertIn("Routine `add_order` has been dropped.", response.get_display())

    def test_drop_multiple(self):
        self.dbi.add_routine("shop", ADD_ORDER)
        self.dbi.add_routine("shop", CALC_TAX)
        service, _ = self.make_service()

        dropped, message = service.drop_multiple([("PROCEDURE", "add_order"), ("FUNCTION", "calc_tax")])

        self.assertEqual(dropped, ["add_order", "calc_tax"])
        self.assertTrue(message.is_success())
        self.assertEqual(message.get_message(), "2 routines have been dropped.")
        self.assertEqual(self.dbi.routines, {})

    def test_drop_multiple_reports_each_failure(self):
        self.dbi = FakeDatabaseInterface(
            grants=["GRANT ALTER ROUTINE ON PROCEDURE `shop`.`add_order` TO `app`@`%`"], super_user=False
        )
        self.dbi.select_db("shop")
        self.dbi.add_routine("shop", ADD_ORDER)
        self.dbi.add_routine("shop", CALC_TAX)
        service, _ = self.make_service()

        dropped, message = service.drop_multiple([("PROCEDURE", "add_order"), ("FUNCTION", "calc_tax")])

        self.assertEqual(dropped, ["add_order"])
        self.assertTrue(message.is_error())
        self.assertIn("1 routine has been dropped.", message.get_message())
        self.assertIn(
            "<li>You do not have the necessary privileges to drop the routine `calc_tax`.</li>", message.get_message()
        )
        self.assertIn(("shop", "FUNCTION", "calc_tax"), self.dbi.routines)


class ListingTests(RoutinesServiceTestCase):
    def setUp(self):
        super().setUp()
        self.dbi.add_routine("shop", ADD_ORDER)
        self.dbi.add_routine("shop", CALC_TAX)
        self.dbi.add_routine("shop", RESET_STATS)

    def test_get_details_sorted(self):
        names = [item.name for item in get_details(self.dbi, "shop")]
        self.assertEqual(names, ["add_order", "calc_tax", "reset_stats"])

    def test_get_details_filtered(self):
        items = get_details(self.dbi, "shop", "FUNCTION")
        self.assertEqual([item.name for item in items], ["calc_tax"])
        self.assertEqual(items[0].returns, "decimal(10,2)")

    def test_get_details_without_information_schema(self):
        with self.settings(DB_ADMIN={**settings.DB_ADMIN, "DISABLE_IS": True}):
            items = get_details(self.dbi, "shop", name="reset_stats")

        self.assertEqual([(item.name, item.type) for item in items], [("reset_stats", "PROCEDURE")])
        self.assertTrue(any(sql.startswith("SHOW PROCEDURE STATUS") for sql, _ in self.dbi.executed))

    def test_row_for_definer(self):
        service, _ = self.make_service()
        item = get_details(self.dbi, "shop", name="add_order")[0]

        html = service.get_row(item)

        self.assertIn('class="ajax edit_anchor"', html)
        self.assertIn('class="ajax export_anchor"', html)
        self.assertIn("execute_dialog=1", html)
        self.assertIn("DROP PROCEDURE IF EXISTS `add_order`", html)

    def test_row_without_input_parameters_executes_directly(self):
        service, _ = self.make_service()
        item = get_details(self.dbi, "shop", name="reset_stats")[0]

        html = service.get_row(item, "ajaxInsert hide")

        self.assertIn('<tr class="ajaxInsert hide">', html)
        self.assertIn('name="execute_routine"', html)

    def test_row_for_other_user(self):
        self.dbi.grants = ["GRANT EXECUTE ON `shop`.* TO `app`@`%`"]
        self.dbi.current_user = "app@%"
        self.dbi.super_user = False
        service, _ = self.make_service()
        item = get_details(self.dbi, "shop", name="add_order")[0]

        html = service.get_row(item)

        self.assertNotIn('class="ajax edit_anchor"', html)
        self.assertNotIn('class="ajax export_anchor"', html)
        self.assertNotIn('class="ajax drop_anchor"', html)
        self.assertIn('class="ajax exec_anchor"', html)

    def test_row_for_definer_without_alter_routine(self):
        self.dbi.grants = ["GRANT CREATE ROUTINE, EXECUTE ON `shop`.* TO `root`@`localhost`"]
        self.dbi.super_user = False
        service, _ = self.make_service()
        item = get_details(self.dbi, "shop", name="add_order")[0]

        html = service.get_row(item)

        self.assertIn('class="ajax edit_anchor"', html)
        self.assertNotIn('class="ajax drop_anchor"', html)

    def test_row_with_alter_routine_on_routine(self):
        self.dbi.grants = [
            "GRANT CREATE ROUTINE, EXECUTE ON `shop`.* TO `root`@`localhost`",
            "GRANT EXECUTE, ALTER ROUTINE ON PROCEDURE `shop`.`ADD_ORDER` TO `root`@`localhost`",
        ]
        self.dbi.super_user = False
        service, _ = self.make_service()
        items = {item.name: item for item in get_details(self.dbi, "shop")}

        self.assertIn('class="ajax drop_anchor"', service.get_row(items["add_order"]))
        self.assertNotIn('class="ajax drop_anchor"', service.get_row(items["calc_tax"]))

    def test_export_definition(self):
        self.assertEqual(export_definition("CREATE x"), "DELIMITER $$\nCREATE x$$\nDELIMITER ;\n")
