"""
DB Admin Services Package für DSP (Digital Solutions Platform)

Struktur:
├── database/          # Zugriff auf den verwalteten Server, Rechte
├── routines/          # Stored Routines (FUNCTION / PROCEDURE)
└── config_storage/    # Konfigurationsspeicher (Display Feature)

Author: DSP Development Team
Version: 1.0.0
"""

# Database Services
from .database import CheckUserPrivileges, DatabaseInterface, DbTableExists

# Routines Services
from .routines import Routines, RoutineData, RoutineSummary

# Config Storage
from .config_storage import ConfigStorage, DisplayFeature

__all__ = [
    # Database
    "DatabaseInterface",
    "CheckUserPrivileges",
    "DbTableExists",
    # Routines
    "Routines",
    "RoutineData",
    "RoutineSummary",
    # Config Storage
    "ConfigStorage",
    "DisplayFeature",
]
