"""
Configuration Storage Package für DSP DB Admin

Author: DSP Development Team
Version: 1.0.0
"""

from .config_storage import ConfigStorage
from .features import DatabaseName, DisplayFeature, TableName

__all__ = [
    "ConfigStorage",
    "DatabaseName",
    "DisplayFeature",
    "TableName",
]
