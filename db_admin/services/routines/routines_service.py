"""
Routines Service für DSP DB Admin

Business-Logik für Stored Routines (FUNCTION / PROCEDURE):
- Editor-Formulare (Anlegen, Bearbeiten, Parameterzeilen)
- CREATE-Anweisungen aus den Formularfeldern bauen und validieren
- Anlegen / Ändern (DROP + CREATE mit Backup und Rechte-Übernahme)
- Ausführen (Dialog und CALL / SELECT)
- Löschen
- Liste der Routinen einer Datenbank

Author: DSP Development Team
Version: 1.0.0
"""

import logging
import re
from functools import cached_property
from typing import List, Optional, Tuple

from django.conf import settings
from django.template.loader import render_to_string
from django.utils.html import escape
from django.utils.translation import gettext as _, ngettext

from ...exceptions import InsufficientPrivilegesError
from ...utils.message import Message, format_sql, get_message_with_query
from ...utils.request_params import SOURCE_GET, SOURCE_POST, RequestParams
from ...utils.sql import backquote, unquote_identifier
from ...utils.url import ROUTINES_URL, get_common
from .routine_data import (
    ALLOWED_FUNCTIONS,
    PARAM_DIRECTIONS,
    PARAM_OPTS_NUM,
    ROUTINE_TYPES,
    SECURITY_TYPES,
    SQL_DATA_ACCESS,
    SUPPORTED_DATATYPES,
    TYPES_REQUIRING_LENGTH,
    RoutineData,
    RoutineParameter,
    RoutineSummary,
    is_numeric_type,
    is_text_type,
)
from .routine_parser import try_parse_routine

logger = logging.getLogger(__name__)

CHARSET_NAME_PATTERN = re.compile(r"^\w+$")


# --- Definitions and Listing ---


def get_function_definition(dbi, db: str, name: str) -> Optional[str]:
    return dbi.get_definition(db, "FUNCTION", name)


def get_procedure_definition(dbi, db: str, name: str) -> Optional[str]:
    return dbi.get_definition(db, "PROCEDURE", name)


def get_routine_definition(dbi, db: str, routine_type: str, name: str) -> Optional[str]:
    if routine_type == "FUNCTION":
        return get_function_definition(dbi, db, name)
    return get_procedure_definition(dbi, db, name)


def export_definition(definition: str) -> str:
    """Verpackt eine CREATE-Anweisung für den mysql-Client."""
    return "DELIMITER $$\n" + definition + "$$\nDELIMITER ;\n"


def get_details(dbi, db: str, which: Optional[str] = None, name: str = "") -> List[RoutineSummary]:
    """
    Liefert die Routinen einer Datenbank, sortiert nach Namen.

    Args:
        dbi: DatabaseInterface
        db: Datenbankname
        which: "FUNCTION", "PROCEDURE" oder None für beide
        name: optional nur die Routine mit diesem Namen

    Returns:
        Liste von RoutineSummary
    """
    summaries: List[RoutineSummary] = []

    if not settings.DB_ADMIN.get("DISABLE_IS"):
        sql = (
            "SELECT `SPECIFIC_NAME`, `ROUTINE_NAME`, `ROUTINE_TYPE`, `DTD_IDENTIFIER`,"
            " `DEFINER`, `ROUTINE_COMMENT`, `CREATED`, `LAST_ALTERED`"
            " FROM `information_schema`.`ROUTINES` WHERE `ROUTINE_SCHEMA` = %s"
        )
        args = [db]
        if which in ROUTINE_TYPES:
            sql += " AND `ROUTINE_TYPE` = %s"
            args.append(which)
        if name:
            sql += " AND `SPECIFIC_NAME` = %s"
            args.append(name)

        for row in dbi.fetch_result(sql, args):
            summaries.append(
                RoutineSummary(
                    db=db,
                    name=row["SPECIFIC_NAME"],
                    type=row["ROUTINE_TYPE"],
                    definer=row.get("DEFINER") or "",
                    returns=row.get("DTD_IDENTIFIER") or "",
                    comment=row.get("ROUTINE_COMMENT") or "",
                    created=_as_text(row.get("CREATED")),
                    updated=_as_text(row.get("LAST_ALTERED")),
                )
            )
    else:
        for routine_type in [which] if which in ROUTINE_TYPES else list(ROUTINE_TYPES):
            sql = f"SHOW {routine_type} STATUS WHERE `Db` = %s"
            args = [db]
            if name:
                sql += " AND `Name` = %s"
                args.append(name)
            for row in dbi.fetch_result(sql, args):
                summaries.append(
                    RoutineSummary(
                        db=db,
                        name=row["Name"],
                        type=row["Type"],
                        definer=row.get("Definer") or "",
                        comment=row.get("Comment") or "",
                        created=_as_text(row.get("Created")),
                        updated=_as_text(row.get("Modified")),
                    )
                )

    return sorted(summaries, key=lambda summary: summary.name)


def _as_text(value) -> Optional[str]:
    return None if value is None else str(value)


def _query_failed(query: str, server_error: str) -> str:
    return (
        _('The following query has failed: "%s"') % escape(query)
        + "<br>"
        + _("MySQL said: ")
        + escape(server_error)
    )


class Routines:
    """
    Request-bezogener Service für Stored Routines.

    Usage:
        routines = Routines(dbi, response, privileges, params, db="shop")
        errors = routines.handle_request_create_or_edit([])
        routines.handle_execute()
    """

    def __init__(self, dbi, response, privileges, params: RequestParams, db: str, table: str = ""):
        self.dbi = dbi
        self.response = response
        self.privileges = privileges
        self.params = params
        self.db = db
        self.table = table
        self.logger = logger

    # --- Cached Lookups ---

    @cached_property
    def charsets(self) -> List[str]:
        return self.dbi.get_charsets()

    @cached_property
    def current_user(self) -> str:
        return self.dbi.get_current_user()

    @cached_property
    def is_super_user(self) -> bool:
        return self.dbi.is_super_user()

    def _valid_charset(self, charset: str) -> bool:
        if not charset or not CHARSET_NAME_PATTERN.match(charset):
            return False
        return not self.charsets or charset in self.charsets

    def _render(self, template_name: str, context) -> str:
        return render_to_string(template_name, context, request=self.response.request)

    def get_url(self, **params) -> str:
        base = {"db": self.db}
        if self.table:
            base["table"] = self.table
        base.update(params)
        return ROUTINES_URL + get_common(base)

    # --- Form Data ---

    def get_data_from_request(self) -> RoutineData:
        """Baut die Routine aus den (POST-)Feldern des Editors."""
        params = self.params
        routine = RoutineData(
            name=params.get("item_name", "", SOURCE_POST),
            original_name=params.get("item_original_name", "", SOURCE_POST),
            return_length=params.get("item_returnlength", "", SOURCE_POST),
            definition=params.get("item_definition", "", SOURCE_POST),
            comment=params.get("item_comment", "", SOURCE_POST),
            definer=params.get("item_definer", "", SOURCE_POST),
        )

        if params.get("item_type") == "FUNCTION":
            routine.type = "FUNCTION"
            routine.type_toggle = "PROCEDURE"
        if params.get("item_original_type", source=SOURCE_POST) == "FUNCTION":
            routine.original_type = "FUNCTION"

        names = params.getlist("item_param_name", SOURCE_POST)
        columns = {
            key: _pad(params.getlist("item_param_" + key, SOURCE_POST), len(names))
            for key in ("dir", "type", "length", "opts_num", "opts_text")
        }
        for index, name in enumerate(names):
            param_type = columns["type"][index].upper()
            opts_text = columns["opts_text"][index].lower()
            routine.parameters.append(
                RoutineParameter(
                    direction=columns["dir"][index] if columns["dir"][index] in PARAM_DIRECTIONS else "",
                    name=name,
                    type=param_type if param_type in SUPPORTED_DATATYPES else "",
                    length=columns["length"][index],
                    opts_num=columns["opts_num"][index] if columns["opts_num"][index] in PARAM_OPTS_NUM else "",
                    opts_text=opts_text if self._valid_charset(opts_text) else "",
                )
            )

        return_type = params.get("item_returntype", "", SOURCE_POST).upper()
        routine.return_type = return_type if return_type in SUPPORTED_DATATYPES else ""
        return_opts_num = params.get("item_returnopts_num", "", SOURCE_POST)
        routine.return_opts_num = return_opts_num if return_opts_num in PARAM_OPTS_NUM else ""
        return_opts_text = params.get("item_returnopts_text", "", SOURCE_POST).lower()
        routine.return_opts_text = return_opts_text if self._valid_charset(return_opts_text) else ""

        routine.is_deterministic = params.filled("item_isdeterministic", SOURCE_POST)
        security_type = params.get("item_securitytype", "", SOURCE_POST)
        routine.security_type = security_type if security_type in SECURITY_TYPES else "DEFINER"
        data_access = params.get("item_sqldataaccess", "", SOURCE_POST)
        routine.sql_data_access = data_access if data_access in SQL_DATA_ACCESS else ""
        return routine

    def get_data_from_name(self, name: str, routine_type: str, all_data: bool = True) -> Optional[RoutineData]:
        """
        Lädt eine bestehende Routine aus information_schema und SHOW CREATE.

        Args:
            name: Name der Routine
            routine_type: "FUNCTION" oder "PROCEDURE"
            all_data: False liefert nur Name, Typ und Parameter (Ausführen)

        Returns:
            RoutineData oder None, wenn die Routine nicht existiert oder die
            Rechte zum Lesen der Definition fehlen
        """
        row = self.dbi.fetch_single_row(
            "SELECT `SPECIFIC_NAME`, `ROUTINE_NAME`, `ROUTINE_TYPE`, `DTD_IDENTIFIER`,"
            " `ROUTINE_DEFINITION`, `IS_DETERMINISTIC`, `SQL_DATA_ACCESS`,"
            " `ROUTINE_COMMENT`, `SECURITY_TYPE`"
            " FROM `information_schema`.`ROUTINES`"
            " WHERE `ROUTINE_SCHEMA` = %s AND `SPECIFIC_NAME` = %s AND `ROUTINE_TYPE` = %s",
            [self.db, name, routine_type],
        )
        if not row:
            return None

        definition = get_routine_definition(self.dbi, self.db, row["ROUTINE_TYPE"], row["SPECIFIC_NAME"])
        if definition is None:
            return None

        parsed = try_parse_routine(definition)
        body = parsed.body if parsed else ""
        if not body:
            # Fallback, falls der Parser scheitert
            body = row.get("ROUTINE_DEFINITION") or ""

        routine = RoutineData(
            name=row["SPECIFIC_NAME"],
            type=row["ROUTINE_TYPE"],
            parameters=list(parsed.parameters) if parsed else [],
        )
        if not all_data:
            return routine

        routine.type_toggle = "PROCEDURE" if routine.type == "FUNCTION" else "FUNCTION"
        if row.get("DTD_IDENTIFIER") and parsed:
            routine.return_type = parsed.return_type
            routine.return_length = parsed.return_length
            routine.return_opts_num = parsed.return_opts_num
            routine.return_opts_text = parsed.return_opts_text

        routine.definer = parsed.definer if parsed else ""
        routine.definition = body
        routine.is_deterministic = row.get("IS_DETERMINISTIC") == "YES"
        routine.security_type = row.get("SECURITY_TYPE") or "DEFINER"
        routine.sql_data_access = row.get("SQL_DATA_ACCESS") or ""
        routine.comment = row.get("ROUTINE_COMMENT") or ""
        return routine

    # --- CREATE Statement ---

    def get_query_from_request(self) -> Tuple[str, List[str]]:
        """
        Baut die CREATE PROCEDURE / FUNCTION Anweisung aus dem Formular.

        Returns:
            (query, errors) - errors enthält HTML-sichere Fehlermeldungen
        """
        params = self.params
        errors: List[str] = []
        parts = ["CREATE"]

        definer = params.get("item_definer", "", SOURCE_POST)
        if definer:
            if "@" in definer:
                user, _sep, host = definer.rpartition("@")
                parts.append(
                    "DEFINER=" + backquote(unquote_identifier(user)) + "@" + backquote(unquote_identifier(host))
                )
            else:
                errors.append(_('The definer must be in the "username@hostname" format!'))

        routine_type = params.get("item_type", "", SOURCE_POST)
        if routine_type in ROUTINE_TYPES:
            parts.append(routine_type)
        else:
            errors.append(_('Invalid routine type: "%s"') % escape(routine_type))

        name = params.get("item_name", "", SOURCE_POST)
        if not name:
            errors.append(_("You must provide a routine name!"))

        parameters = self._build_parameters(routine_type, errors)
        parts.append(backquote(name) + "(" + ", ".join(parameters) + ")")

        if routine_type == "FUNCTION":
            returns = self._build_returns(errors)
            if returns:
                parts.append(returns)

        comment = params.get("item_comment", "", SOURCE_POST)
        if comment:
            parts.append("COMMENT " + self.dbi.quote_string(comment))

        if params.filled("item_isdeterministic", SOURCE_POST):
            parts.append("DETERMINISTIC")
        else:
            parts.append("NOT DETERMINISTIC")

        data_access = params.get("item_sqldataaccess", "", SOURCE_POST)
        if data_access in SQL_DATA_ACCESS:
            parts.append(data_access)

        security_type = params.get("item_securitytype", "", SOURCE_POST)
        if security_type in SECURITY_TYPES:
            parts.append("SQL SECURITY " + security_type)

        definition = params.get("item_definition", "", SOURCE_POST)
        if definition:
            parts.append(definition)
        else:
            errors.append(_("You must provide a routine definition."))

        return " ".join(parts), errors

    def _build_parameters(self, routine_type: str, errors: List[str]) -> List[str]:
        params = self.params
        names = params.getlist("item_param_name", SOURCE_POST)
        columns = {
            key: _pad(params.getlist("item_param_" + key, SOURCE_POST), len(names))
            for key in ("dir", "type", "length", "opts_num", "opts_text")
        }

        parameters = []
        for index, name in enumerate(names):
            param_type = columns["type"][index].upper()
            if not name or not param_type:
                errors.append(_("You must provide a name and a type for each routine parameter."))
                break
            if param_type not in SUPPORTED_DATATYPES:
                errors.append(_('Invalid type for routine parameter "%s".') % escape(name))
                continue

            direction = columns["dir"][index]
            text = ""
            if routine_type == "PROCEDURE" and direction in PARAM_DIRECTIONS:
                text = direction + " "
            text += backquote(name) + " " + param_type

            length = columns["length"][index]
            if length:
                text += "(" + length + ")"
            elif param_type in TYPES_REQUIRING_LENGTH:
                errors.append(_('You must provide length/values for routine parameter "%s".') % escape(name))

            opts_text = columns["opts_text"][index].lower()
            if opts_text and is_text_type(param_type) and self._valid_charset(opts_text):
                text += " CHARSET " + opts_text

            opts_num = columns["opts_num"][index].upper()
            if opts_num and is_numeric_type(param_type) and opts_num in PARAM_OPTS_NUM:
                text += " " + opts_num

            parameters.append(text)
        return parameters

    def _build_returns(self, errors: List[str]) -> str:
        params = self.params
        return_type = params.get("item_returntype", "", SOURCE_POST).upper()
        if return_type not in SUPPORTED_DATATYPES:
            errors.append(_("You must provide a valid return type for the routine."))
            return ""

        text = "RETURNS " + return_type
        length = params.get("item_returnlength", "", SOURCE_POST)
        if length:
            text += "(" + length + ")"
        elif return_type in TYPES_REQUIRING_LENGTH:
            errors.append(_("You must provide length/values for routine return type."))

        opts_text = params.get("item_returnopts_text", "", SOURCE_POST).lower()
        if opts_text and is_text_type(return_type) and self._valid_charset(opts_text):
            text += " CHARSET " + opts_text

        opts_num = params.get("item_returnopts_num", "", SOURCE_POST).upper()
        if opts_num and is_numeric_type(return_type) and opts_num in PARAM_OPTS_NUM:
            text += " " + opts_num
        return text

    # --- Create / Edit ---

    def handle_request_create_or_edit(self, errors: List[str]) -> List[str]:
        """
        Führt ein abgeschicktes Editor-Formular aus (editor_process_add /
        editor_process_edit).

        Returns:
            Die um neue Fehler ergänzte Fehlerliste
        """
        params = self.params
        is_edit = params.filled("editor_process_edit", SOURCE_POST)
        if not params.filled("editor_process_add", SOURCE_POST) and not is_edit:
            return errors

        errors = list(errors)
        sql_query = ""
        message = None
        name = params.get("item_name", "", SOURCE_POST)
        routine_type = params.get("item_type", "", SOURCE_POST)

        routine_query, query_errors = self.get_query_from_request()
        errors.extend(query_errors)

        if not errors and is_edit:
            original_type = params.get("item_original_type", "", SOURCE_POST)
            original_name = params.get("item_original_name", "", SOURCE_POST)
            if original_type not in ROUTINE_TYPES:
                errors.append(_('Invalid routine type: "%s"') % escape(original_type))
            else:
                # Backup der alten Routine, falls das Anlegen fehlschlägt
                create_routine = get_routine_definition(self.dbi, self.db, original_type, original_name)
                privileges_backup = self._backup_privileges(original_name, original_type)

                drop_routine = f"DROP {original_type} {backquote(original_name)};\n"
                if self.dbi.try_query(drop_routine) is None:
                    errors.append(_query_failed(drop_routine, self.dbi.get_error()))
                else:
                    new_errors, message = self._create(routine_query, create_routine, privileges_backup)
                    if new_errors:
                        errors.extend(new_errors)
                    else:
                        sql_query = drop_routine + routine_query
        elif not errors:
            if self.dbi.try_query(routine_query) is None:
                errors.append(_query_failed(routine_query, self.dbi.get_error()))
            else:
                message = Message.success(_("Routine %s has been created."))
                message.add_param(backquote(name))
                sql_query = routine_query
                self.logger.info(f"Routine angelegt: {self.db}.{name}")

        if errors:
            message = Message.error(_("One or more errors have occurred while processing your request:"))
            message.add_html("<ul>")
            for error in errors:
                message.add_html("<li>" + error + "</li>")
            message.add_html("</ul>")

        output = get_message_with_query(message, sql_query)

        if not self.response.is_ajax():
            self.response.add_html(output)
            return errors

        if message.is_success():
            details = get_details(self.dbi, self.db, routine_type, name)
            self.response.add_json("name", escape(name.upper()))
            self.response.add_json("new_row", self.get_row(details[0]) if details else "")
            self.response.add_json("insert", bool(details))
            self.response.add_json("message", output)
        else:
            self.response.set_request_status(False)
            self.response.add_json("message", output)

        self.response.add_json("tableType", "routines")
        self.response.finish()
        return errors

    def _create(self, routine_query: str, create_routine: Optional[str], privileges_backup: List[tuple]):
        if self.dbi.try_query(routine_query) is None:
            errors = [_query_failed(routine_query, self.dbi.get_error())]
            # Die alte Routine ist gelöscht, die neue ließ sich nicht anlegen:
            # Backup wiederherstellen
            if create_routine is None or self.dbi.try_query(create_routine) is None:
                errors.append(_("Sorry, we failed to restore the dropped routine."))
                if create_routine is not None:
                    errors.append(_query_failed(create_routine, self.dbi.get_error()))
            self.logger.error(f"Routine konnte nicht geändert werden: {self.db}")
            return errors, None

        name = self.params.get("item_name", "", SOURCE_POST)
        routine_type = self.params.get("item_type", "", SOURCE_POST)
        adjusted = False
        privileges = self.privileges.get_privileges()
        if privileges.proc_priv and privileges.is_reload_priv:
            # Alle bisherigen Rechte mit neuem Namen und Typ wieder eintragen
            for row in privileges_backup:
                result = self.dbi.try_query(
                    "INSERT INTO `mysql`.`procs_priv` VALUES (%s, %s, %s, %s, %s, %s, %s, %s)",
                    [row[0], row[1], row[2], name, routine_type, row[5], row[6], row[7]],
                )
                adjusted = result is not None

        self.logger.info(f"Routine geändert: {self.db}.{name}")
        return [], self._flush_privileges(adjusted, name)

    def _backup_privileges(self, original_name: str, original_type: str) -> List[tuple]:
        privileges = self.privileges.get_privileges()
        if not privileges.proc_priv or not privileges.is_reload_priv:
            return []

        result = self.dbi.try_query(
            "SELECT * FROM `mysql`.`procs_priv`"
            " WHERE `Db` = %s AND `Routine_name` = %s AND `Routine_type` = %s",
            [self.db, original_name, original_type],
        )
        return result.rows if result else []

    def _flush_privileges(self, flush: bool, name: str) -> Message:
        if flush and self.dbi.try_query("FLUSH PRIVILEGES") is not None:
            message = Message.success(_("Routine %s has been modified. Privileges have been adjusted."))
        else:
            message = Message.success(_("Routine %s has been modified."))
        message.add_param(backquote(name))
        return message

    # --- Editor ---

    def get_editor_form(self, mode: str, operation: str, routine: RoutineData, has_errors: bool = False) -> str:
        """
        Rendert das Formular zum Anlegen/Bearbeiten.

        Args:
            mode: "add" oder "edit"
            operation: "add" / "remove" (Parameterzeile), "change" (Typ wechseln) oder ""
            routine: Daten für das Formular
            has_errors: ob beim Verarbeiten bereits Fehler aufgetreten sind
        """
        if operation == "change":
            routine.toggle_type()
        elif operation == "add" or (routine.num_params == 0 and mode == "add" and not has_errors):
            routine.parameters.append(RoutineParameter())
        elif operation == "remove" and routine.parameters:
            routine.parameters.pop()

        parameter_rows = [self.get_parameter_row(routine, index) for index in range(routine.num_params)]
        return self._render(
            "db_admin/routines/editor_form.html",
            {
                "db": self.db,
                "table": self.table,
                "mode": mode,
                "routine": routine,
                "parameter_rows": parameter_rows,
                "is_ajax": self.response.is_ajax(),
                "action": ROUTINES_URL,
                "routine_types": ROUTINE_TYPES,
                "supported_datatypes": SUPPORTED_DATATYPES,
                "numeric_options": PARAM_OPTS_NUM,
                "charsets": self.charsets,
                "security_types": SECURITY_TYPES,
                "sql_data_access": SQL_DATA_ACCESS,
                "show_return_num": is_numeric_type(routine.return_type),
                "show_return_text": is_text_type(routine.return_type),
            },
        )

    def get_parameter_row(self, routine: Optional[RoutineData] = None, index: Optional[int] = None, class_: str = "") -> str:
        """
        Eine Parameterzeile des Editors. Ohne Index entsteht eine leere
        Vorlage, die das Frontend klont (``%s`` wird dort durch den Index ersetzt).
        """
        if index is None:
            param = RoutineParameter()
            index_label = "%s"
            is_function = False
        else:
            param = routine.parameters[index]
            index_label = str(index)
            is_function = routine.is_function

        return self._render(
            "db_admin/routines/parameter_row.html",
            {
                "index": index_label,
                "param": param,
                "class": class_,
                "is_function": is_function,
                "directions": PARAM_DIRECTIONS,
                "supported_datatypes": SUPPORTED_DATATYPES,
                "numeric_options": PARAM_OPTS_NUM,
                "charsets": self.charsets,
                "show_num": is_numeric_type(param.type),
                "show_text": is_text_type(param.type),
            },
        )

    # --- Execute ---

    def handle_execute(self) -> None:
        params = self.params
        if params.filled("execute_routine", SOURCE_POST) and params.filled("item_name", SOURCE_POST):
            self._handle_execute_routine()
        elif params.filled("execute_dialog", SOURCE_GET) and params.filled("item_name", SOURCE_GET):
            self._handle_execute_dialog()

    def _not_found_message(self, name: str) -> Message:
        return Message.error(
            _("Error in processing request:")
            + " "
            + _("No routine with name %(name)s found in database %(db)s.")
            % {"name": escape(backquote(name)), "db": escape(backquote(self.db))}
        )

    def _handle_execute_routine(self) -> None:
        params = self.params
        name = params.get("item_name", "", SOURCE_POST)
        routine = self.get_data_from_name(name, params.get("item_type", "", SOURCE_POST), all_data=False)
        if routine is None:
            message = self._not_found_message(name)
            if self.response.is_ajax():
                self.response.set_request_status(False, 404)
                self.response.add_json("message", message)
                self.response.finish()
                return
            self.response.add_html(message.get_display())
            return

        queries, args, end_query = [], [], []
        for index, param in enumerate(routine.parameters):
            values = params.getlist(f"params[{param.name}]", SOURCE_POST)
            if values:
                # SET-Typen kommen als Mehrfachauswahl
                value = self.dbi.quote_string(",".join(values))
                function = params.get(f"funcs[{param.name}]", "", SOURCE_POST)
                if function in ALLOWED_FUNCTIONS:
                    queries.append(f"SET @p{index}={function}({value});\n")
                else:
                    queries.append(f"SET @p{index}={value};\n")

            args.append(f"@p{index}")
            if routine.type == "PROCEDURE" and param.direction in ("OUT", "INOUT"):
                end_query.append(f"@p{index} AS {backquote(param.name)}")

        if routine.type == "PROCEDURE":
            queries.append(f"CALL {backquote(routine.name)}({', '.join(args)});\n")
            if end_query:
                queries.append(f"SELECT {', '.join(end_query)};\n")
        else:
            queries.append(
                f"SELECT {backquote(routine.name)}({', '.join(args)}) AS {backquote(routine.name)};\n"
            )

        result_sets = self.dbi.try_multi_query(queries)
        output = ""
        if result_sets is not None:
            displayed = [result for result in result_sets if result.columns and result.rows]
            if displayed:
                affected = displayed[-1].rowcount
            else:
                affected = result_sets[-1].rowcount if result_sets else 0

            output = self._render(
                "db_admin/routines/execute_result.html",
                {
                    "query": format_sql("\n".join(queries)),
                    "routine_name": backquote(routine.name),
                    "result_sets": displayed,
                    "empty_notice": Message.notice(
                        _("MySQL returned an empty result set (i.e. zero rows).")
                    ).get_display(),
                },
            )
            text = _("Your SQL query has been executed successfully.")
            if routine.type == "PROCEDURE":
                text += "<br>" + ngettext(
                    "%(count)d row affected by the last statement inside the procedure.",
                    "%(count)d rows affected by the last statement inside the procedure.",
                    affected,
                ) % {"count": affected}
            message = Message.success(text)
            self.logger.info(f"Routine ausgeführt: {self.db}.{routine.name}")
        else:
            multiple_query = "".join(queries)
            message = Message.error(
                _('The following query has failed: "%s"') % escape(multiple_query)
                + "<br><br>"
                + _("MySQL said: ")
                + escape(self.dbi.get_error())
            )

        if self.response.is_ajax():
            self.response.set_request_status(message.is_success())
            self.response.add_json("message", message.get_display() + output)
            self.response.add_json("dialog", False)
            self.response.finish()
            return

        self.response.add_html(message.get_display() + output)
        if message.is_error():
            # Fehlgeschlagen: keine weiteren Schritte ausführen
            self.response.set_request_status(False, 500)
            self.response.finish()

    def _handle_execute_dialog(self) -> None:
        params = self.params
        name = params.get("item_name", "", SOURCE_GET)
        routine = self.get_data_from_name(name, params.get("item_type", "", SOURCE_GET), all_data=True)
        if routine is not None:
            form = self.get_execute_form(routine)
            if self.response.is_ajax():
                self.response.add_json("message", form)
                self.response.add_json("title", _("Execute routine") + " " + escape(backquote(name)))
                self.response.add_json("dialog", True)
            else:
                self.response.add_html("\n\n<h2>" + _("Execute routine") + "</h2>\n\n")
                self.response.add_html(form)
            self.response.finish()
            return

        if self.response.is_ajax():
            self.response.set_request_status(False, 404)
            self.response.add_json("message", self._not_found_message(name))
            self.response.finish()

    def get_execute_form(self, routine: RoutineData) -> str:
        inputs = []
        for param in routine.parameters:
            if routine.type == "PROCEDURE" and param.direction == "OUT":
                continue
            if param.type in ("ENUM", "SET"):
                kind = param.type.lower()
            else:
                kind = "text"
            inputs.append({"param": param, "kind": kind, "values": param.length_values})

        return self._render(
            "db_admin/routines/execute_form.html",
            {
                "db": self.db,
                "table": self.table,
                "routine": routine,
                "inputs": inputs,
                "functions": ALLOWED_FUNCTIONS,
                "action": ROUTINES_URL,
                "is_ajax": self.response.is_ajax(),
            },
        )

    # --- Drop ---

    def has_drop_privilege(self, routine_type: str, name: str) -> bool:
        if self.is_super_user:
            return True
        return self.privileges.has_routine_privilege("ALTER ROUTINE", self.db, routine_type, name)

    def _drop_routine(self, routine_type: str, name: str) -> Optional[str]:
        """Führt DROP aus; liefert die Fehlermeldung oder None."""
        sql_drop = f"DROP {routine_type} IF EXISTS {backquote(name)}"
        if self.dbi.try_query(sql_drop) is None:
            return _query_failed(sql_drop, self.dbi.get_error())
        self.logger.info(f"Routine gelöscht: {self.db}.{name}")
        return None

    def handle_drop(self) -> None:
        """Löscht eine Routine (POST drop_item + item_name + item_type)."""
        params = self.params
        if not params.filled("drop_item", SOURCE_POST) or not params.filled("item_name", SOURCE_POST):
            return

        name = params.get("item_name", "", SOURCE_POST)
        routine_type = params.get("item_type", "", SOURCE_POST)
        if routine_type not in ROUTINE_TYPES:
            message = Message.error(_('Invalid routine type: "%s"') % escape(routine_type))
        elif not self.has_drop_privilege(routine_type, name):
            raise InsufficientPrivilegesError(
                "You do not have the necessary privileges to drop this routine.",
                required_privilege="ALTER ROUTINE",
            )
        else:
            error = self._drop_routine(routine_type, name)
            if error is not None:
                message = Message.error(error)
            else:
                message = Message.success(_("Routine %s has been dropped."))
                message.add_param(backquote(name))

        if self.response.is_ajax():
            self.response.set_request_status(message.is_success())
            self.response.add_json("message", message)
            self.response.finish()
            return
        self.response.add_html(message.get_display())

    def drop_multiple(self, items: List[Tuple[str, str]]) -> Tuple[List[str], Message]:
        """
        Löscht mehrere Routinen (Sammelaktion der Liste).

        Args:
            items: Paare (Typ, Name)

        Returns:
            Namen der gelöschten Routinen und die Meldung für den Benutzer
        """
        dropped = []
        errors = []
        for routine_type, name in items:
            if not self.has_drop_privilege(routine_type, name):
                errors.append(
                    _("You do not have the necessary privileges to drop the routine %s.")
                    % escape(backquote(name))
                )
                continue
            error = self._drop_routine(routine_type, name)
            if error is not None:
                errors.append(error)
                continue
            dropped.append(name)

        text = ngettext(
            "%(count)d routine has been dropped.", "%(count)d routines have been dropped.", len(dropped)
        ) % {"count": len(dropped)}
        if not errors:
            return dropped, Message.success(text)

        message = Message.error(
            text + "<br>" + _("The following errors have occurred:") + "<ul>"
            + "".join(f"<li>{error}</li>" for error in errors)
            + "</ul>"
        )
        return dropped, message

    # --- Listing ---

    def get_row(self, routine: RoutineSummary, row_class: str = "") -> str:
        """Rendert eine Zeile der Routinenliste mit den erlaubten Aktionen."""
        has_create_routine = self.privileges.has_privilege("CREATE ROUTINE", self.db)
        is_definer = bool(routine.definer) and self.current_user == routine.definer
        # Bearbeiten = DROP + CREATE, daher auch CREATE ROUTINE nötig
        has_edit_privilege = (has_create_routine and is_definer) or self.is_super_user
        has_export_privilege = has_edit_privilege
        has_execute_privilege = self.privileges.has_privilege("EXECUTE", self.db)

        execute_action = ""
        parsed = try_parse_routine(get_routine_definition(self.dbi, self.db, routine.type, routine.name))
        if parsed is not None and has_execute_privilege:
            execute_action = "execute_routine"
            for param in parsed.parameters:
                if routine.type == "PROCEDURE" and param.direction == "OUT":
                    continue
                execute_action = "execute_dialog"
                break

        item = {"item_name": routine.name, "item_type": routine.type}
        return self._render(
            "db_admin/routines/row.html",
            {
                "db": self.db,
                "table": self.table,
                "routine": routine,
                "row_class": row_class,
                "sql_drop": f"DROP {routine.type} IF EXISTS {backquote(routine.name)}",
                "has_edit_privilege": has_edit_privilege,
                "has_drop_privilege": self.has_drop_privilege(routine.type, routine.name),
                "has_export_privilege": has_export_privilege,
                "has_execute_privilege": has_execute_privilege,
                "execute_action": execute_action,
                "action": ROUTINES_URL,
                "edit_url": self.get_url(edit_item=1, **item),
                "export_url": self.get_url(export_item=1, **item),
                "execute_dialog_url": self.get_url(execute_dialog=1, **item),
            },
        )


def _pad(values: List[str], length: int) -> List[str]:
    return list(values[:length]) + [""] * (length - len(values))


__all__ = [
    "Routines",
    "get_details",
    "get_function_definition",
    "get_procedure_definition",
    "get_routine_definition",
    "export_definition",
]
