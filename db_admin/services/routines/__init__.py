"""
Routines Services Package für DSP DB Admin

- routine_data: RoutineData, RoutineParameter, RoutineSummary und Vokabular
- routine_parser: SHOW CREATE PROCEDURE/FUNCTION zerlegen
- routines_service: Editor, Anlegen/Ändern, Ausführen, Export, Liste

Author: DSP Development Team
Version: 1.0.0
"""

from .routine_data import RoutineData, RoutineParameter, RoutineSummary
from .routine_parser import ParsedRoutine, RoutineParseError, parse_routine, try_parse_routine
from .routines_service import (
    Routines,
    export_definition,
    get_details,
    get_function_definition,
    get_procedure_definition,
    get_routine_definition,
)

__all__ = [
    "RoutineData",
    "RoutineParameter",
    "RoutineSummary",
    "ParsedRoutine",
    "RoutineParseError",
    "parse_routine",
    "try_parse_routine",
    "Routines",
    "export_definition",
    "get_details",
    "get_function_definition",
    "get_procedure_definition",
    "get_routine_definition",
]
