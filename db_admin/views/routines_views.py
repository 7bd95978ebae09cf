"""
Routines Views für DSP DB Admin

API-Endpoint für die Verwaltung von Stored Routines:
- GET  /api/db-admin/routines/?db=shop                 - Liste der Routinen
- GET  /api/db-admin/routines/?db=shop&add_item=1      - Formular "Add routine"
- GET  /api/db-admin/routines/?db=shop&edit_item=1&... - Formular "Edit routine"
- POST /api/db-admin/routines/ editor_process_add/edit - Anlegen / Ändern
- GET  /api/db-admin/routines/?execute_dialog=1&...    - Ausführen-Dialog
- POST /api/db-admin/routines/ execute_routine=1       - Ausführen
- GET  /api/db-admin/routines/?export_item=1&...       - Export
- POST /api/db-admin/routines/ drop_item=1             - Löschen
- POST /api/db-admin/routines/ submit_mult=export|drop  - Sammelaktion für markierte Routinen

AJAX-Requests (``ajax_request=1`` oder ``X-Requested-With: XMLHttpRequest``)
erhalten JSON, alle anderen eine vollständige HTML-Seite.

Author: DSP Development Team
Version: 1.0.0
"""

import logging
from typing import List, Tuple

from django.utils.html import escape
from django.utils.translation import gettext as _
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, renderer_classes
from rest_framework.permissions import IsAdminUser
from rest_framework.renderers import JSONRenderer

from ..exceptions import DbAdminException, MissingParameterError
from ..services.database import CheckUserPrivileges, DatabaseInterface, DbTableExists
from ..services.routines import Routines, export_definition, get_details, get_routine_definition
from ..services.routines.routine_data import ROUTINE_TYPES
from ..utils import Message, RequestParams, ResponseRenderer, backquote
from ..utils.url import ROUTINES_URL
from ..utils.request_params import SOURCE_GET, SOURCE_POST

logger = logging.getLogger(__name__)


class RoutinesController:
    """
    Ablauf eines Requests an den Routines-Endpoint.

    Die Schritte laufen in fester Reihenfolge; sobald ein Schritt die Antwort
    abschließt (``response.is_finished``), endet der Request.
    """

    def __init__(self, response: ResponseRenderer, params: RequestParams, dbi, privileges, routines: Routines):
        self.response = response
        self.params = params
        self.dbi = dbi
        self.privileges = privileges
        self.routines = routines
        self.db = routines.db
        self.table = routines.table
        self.logger = logger

    def check_parameters(self, names: List[str]) -> None:
        missing = [name for name in names if not getattr(self, name)]
        if missing:
            raise MissingParameterError(missing)

    def has_database(self) -> bool:
        if self.db and DbTableExists(self.dbi).has_database(self.db):
            return True

        message = Message.error(_("No databases selected."))
        self.response.set_request_status(False, status.HTTP_404_NOT_FOUND)
        self.response.add_html(message.get_display())
        return False

    def __call__(self) -> None:
        self.response.add_script_files(["routines.js"])
        self.response.title = _("Routines")

        # Rechte des aktuellen Benutzers laden (SHOW GRANTS darf fehlen)
        self.privileges.get_privileges()

        if not self.response.is_ajax():
            if self.table and self.table in self.dbi.get_tables(self.db):
                self.check_parameters(["db", "table"])
                DbTableExists(self.dbi).check(self.db, self.table)
            else:
                self.table = ""
                self.routines.table = ""
                self.check_parameters(["db"])
                if not self.has_database():
                    return
        elif self.db:
            self.dbi.select_db(self.db)

        # Fehler beim Verarbeiten eines Add/Edit
        errors = self.routines.handle_request_create_or_edit([])
        if self.response.is_finished:
            return

        if self._show_editor(errors):
            self._editor(errors)
            if self.response.is_finished:
                return

        self.routines.handle_execute()
        if self.response.is_finished:
            return

        self.routines.handle_drop()
        if self.response.is_finished:
            return

        self._multi_submit()
        if self.response.is_finished:
            return

        self._export()
        if self.response.is_finished:
            return

        self._list()

    # --- Steps ---

    def _show_editor(self, errors: List[str]) -> bool:
        params = self.params
        if errors:
            return True
        if params.filled("editor_process_add", SOURCE_POST) or params.filled("editor_process_edit", SOURCE_POST):
            return False
        return (
            params.filled("add_item")
            or params.filled("edit_item")
            or params.filled("routine_addparameter", SOURCE_POST)
            or params.filled("routine_removeparameter", SOURCE_POST)
            or params.filled("routine_changetype", SOURCE_POST)
        )

    def _editor(self, errors: List[str]) -> None:
        params = self.params

        # Formular ohne JavaScript: Parameter hinzufügen/entfernen, Typ wechseln
        operation = ""
        if params.filled("routine_addparameter", SOURCE_POST):
            operation = "add"
        elif params.filled("routine_removeparameter", SOURCE_POST):
            operation = "remove"
        elif params.filled("routine_changetype", SOURCE_POST):
            operation = "change"

        routine = None
        mode = ""
        title = ""
        if params.filled("add_item"):
            title = _("Add routine")
            routine = self.routines.get_data_from_request()
            mode = "add"
        elif params.filled("edit_item"):
            title = _("Edit routine")
            if (
                not operation
                and params.filled("item_name", SOURCE_GET)
                and not params.filled("editor_process_edit", SOURCE_POST)
            ):
                routine = self.routines.get_data_from_name(
                    params.get("item_name", "", SOURCE_GET), params.get("item_type", "", SOURCE_GET)
                )
                if routine is not None:
                    routine.original_name = routine.name
                    routine.original_type = routine.type
            else:
                routine = self.routines.get_data_from_request()
            mode = "edit"

        if routine is not None:
            editor = self.routines.get_editor_form(mode, operation, routine, has_errors=bool(errors))
            if self.response.is_ajax():
                self.response.add_json("message", editor)
                self.response.add_json("title", title)
                self.response.add_json("paramTemplate", self.routines.get_parameter_row())
                self.response.add_json("type", routine.type)
                self.response.finish()
                return

            self.response.add_html("\n\n<h2>" + title + "</h2>\n\n" + editor)
            self.response.finish()
            return

        message = Message.error(
            _("Error in processing request:")
            + " "
            + _(
                "No routine with name %(name)s found in database %(db)s. "
                "You might be lacking the necessary privileges to edit this routine."
            )
            % {
                "name": escape(backquote(params.get("item_name", ""))),
                "db": escape(backquote(self.db)),
            }
        )
        if self.response.is_ajax():
            self.response.set_request_status(False, status.HTTP_404_NOT_FOUND)
            self.response.add_json("message", message)
            self.response.finish()
            return

        self.response.add_html(message.get_display())

    def _selected_items(self) -> List[Tuple[str, str]]:
        # Checkbox-Werte haben die Form "TYP:name"
        items = []
        for value in self.params.getlist("selected_item", SOURCE_POST):
            routine_type, _sep, name = value.partition(":")
            if routine_type in ROUTINE_TYPES and name:
                items.append((routine_type, name))
        return items

    def _multi_submit(self) -> None:
        """Sammelaktionen der Liste: Export oder Löschen der markierten Routinen."""
        action = self.params.get("submit_mult", "", SOURCE_POST)
        if action not in ("export", "drop"):
            return

        items = self._selected_items()
        if not items:
            message = Message.error(_("No routine selected."))
            if self.response.is_ajax():
                self.response.set_request_status(False)
                self.response.add_json("message", message)
                self.response.finish()
                return
            self.response.add_html(message.get_display())
            return

        if action == "export":
            self._export_selected(items)
            return

        dropped, message = self.routines.drop_multiple(items)
        if self.response.is_ajax():
            self.response.set_request_status(message.is_success())
            self.response.add_json("message", message)
            self.response.add_json("dropped", dropped)
            self.response.finish()
            return
        self.response.add_html(message.get_display())

    def _export_selected(self, items: List[Tuple[str, str]]) -> None:
        exports = []
        missing = []
        for routine_type, name in items:
            definition = get_routine_definition(self.dbi, self.db, routine_type, name)
            if definition is None:
                missing.append(escape(backquote(name)))
                continue
            exports.append(export_definition(definition))

        if not exports:
            message = Message.error(
                _("No routine with name %(name)s found in database %(db)s.")
                % {"name": ", ".join(missing), "db": escape(backquote(self.db))}
            )
            if self.response.is_ajax():
                self.response.set_request_status(False, status.HTTP_404_NOT_FOUND)
                self.response.add_json("message", message)
                self.response.finish()
                return
            self.response.add_html(message.get_display())
            return

        export_data = escape("\n".join(exports).strip())
        title = _("Export of selected routines")
        if self.response.is_ajax():
            self.response.add_json("message", export_data)
            self.response.add_json("title", title)
            self.response.add_json("missing", missing)
            self.response.finish()
            return

        if missing:
            self.response.add_html(
                Message.error(
                    _("The following routines could not be exported: %s") % ", ".join(missing)
                ).get_display()
            )
        self.response.render("db_admin/routines/export.html", {"title": title, "export_data": export_data})

    def _export(self) -> None:
        params = self.params
        routine_type = params.get("item_type", source=SOURCE_GET)
        if not (
            params.filled("export_item", SOURCE_GET)
            and params.filled("item_name", SOURCE_GET)
            and routine_type in ROUTINE_TYPES
        ):
            return

        name = params.get("item_name", "", SOURCE_GET)
        definition = get_routine_definition(self.dbi, self.db, routine_type, name)
        item_name = escape(backquote(name))

        if definition is not None:
            export_data = escape(export_definition(definition).strip())
            title = _("Export of routine %s") % item_name

            if self.response.is_ajax():
                self.response.add_json("message", export_data)
                self.response.add_json("title", title)
                self.response.finish()
                return

            self.response.render(
                "db_admin/routines/export.html", {"title": title, "export_data": export_data}
            )
            return

        message = Message.error(
            _(
                "Error in processing request: No routine with name %(name)s found in database %(db)s."
                " You might be lacking the necessary privileges to view/export this routine."
            )
            % {"name": item_name, "db": escape(backquote(self.db))}
        )
        if self.response.is_ajax():
            self.response.set_request_status(False, status.HTTP_404_NOT_FOUND)
            self.response.add_json("message", message)
            self.response.finish()
            return

        self.response.add_html(message.get_display())

    def _list(self) -> None:
        routine_type = self.params.get("type")
        if routine_type not in ROUTINE_TYPES:
            routine_type = None

        items = get_details(self.dbi, self.db, routine_type)
        is_ajax = self.response.is_ajax() and not self.params.filled("ajax_page_request")

        rows = "".join(self.routines.get_row(item, "ajaxInsert hide" if is_ajax else "") for item in items)

        self.response.render(
            "db_admin/routines/index.html",
            {
                "db": self.db,
                "table": self.table,
                "items": items,
                "rows": rows,
                "has_privilege": self.privileges.has_privilege("CREATE ROUTINE", self.db, self.table or None),
                "add_url": self.routines.get_url(add_item=1),
                "action": ROUTINES_URL,
            },
        )


@api_view(["GET", "POST"])
@permission_classes([IsAdminUser])
@renderer_classes([JSONRenderer])
def routines(request):
    """
    Routines-Endpoint (siehe Modul-Docstring).

    Fehler-Envelope für AJAX:
    {
        "success": false,
        "error": "<div class=\"alert alert-danger\" ...>...</div>"
    }
    """
    response = ResponseRenderer(request)
    params = RequestParams.from_request(request)
    db = params.get("db", "") or ""
    table = params.get("table", "") or ""

    dbi = DatabaseInterface()
    privileges = CheckUserPrivileges(dbi)
    service = Routines(dbi, response, privileges, params, db=db, table=table)
    controller = RoutinesController(response, params, dbi, privileges, service)

    try:
        controller()
    except DbAdminException as e:
        logger.warning(f"Routines-Request abgebrochen ({e.error_code}): {e.message}")
        message = Message.error(escape(e.message))
        response.set_request_status(False, e.status_code or status.HTTP_400_BAD_REQUEST)
        if response.is_ajax():
            response.add_json("message", message)
        else:
            response.add_html(message.get_display())

    return response.to_response()
