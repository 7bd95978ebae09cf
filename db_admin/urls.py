"""
DB Admin URL Configuration

Author: DSP Development Team
Version: 1.0.0
"""

from django.urls import path
from . import views

app_name = "db_admin"

urlpatterns = [
    # --- Stored Routines ---
    # Liste, Editor, Ausführen, Export und Löschen über einen Endpoint
    path("routines/", views.routines, name="routines"),
    # --- Configuration Storage ---
    path(
        "config-storage/display-field/",
        views.display_field,
        name="display_field",
    ),
]
