"""
DB Admin Views

- routines_views: Stored Routines (Liste, Editor, Ausführen, Export, Löschen)
- config_storage_views: Display Field aus dem Configuration Storage

Author: DSP Development Team
Version: 1.0.0
"""

from .routines_views import RoutinesController, routines
from .config_storage_views import display_field

__all__ = [
    "RoutinesController",
    "routines",
    "display_field",
]
