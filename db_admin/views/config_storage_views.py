"""
Configuration Storage Views für DSP DB Admin

- GET /api/db-admin/config-storage/display-field/?db=shop&table=customers

Author: DSP Development Team
Version: 1.0.0
"""

import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response

from ..exceptions import MissingParameterError
from ..services.config_storage import ConfigStorage
from ..services.database import DatabaseInterface

logger = logging.getLogger(__name__)


@api_view(["GET"])
@permission_classes([IsAdminUser])
def display_field(request):
    """
    Liefert die Anzeigespalte einer Tabelle aus dem Configuration Storage.

    Response:
    {
        "success": true,
        "enabled": true,
        "database": "phpmyadmin",
        "relation": "pma__relation",
        "table_info": "pma__table_info",
        "display_field": "name"
    }
    """
    db = request.query_params.get("db", "")
    table = request.query_params.get("table", "")
    missing = [name for name, value in (("db", db), ("table", table)) if not value]
    if missing:
        error = MissingParameterError(missing)
        return Response(
            {"success": False, "error": error.message, "details": error.details},
            status=status.HTTP_400_BAD_REQUEST,
        )

    storage = ConfigStorage(DatabaseInterface())
    feature = storage.get_display_feature()
    if feature is None:
        return Response({"success": True, "enabled": False, "display_field": ""})

    return Response(
        {
            "success": True,
            "enabled": True,
            "database": str(feature.database),
            "relation": str(feature.relation),
            "table_info": str(feature.table_info),
            "display_field": storage.get_display_field(db, table),
        }
    )
