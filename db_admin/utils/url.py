"""
URL Helpers

Builds the query strings used for links and form actions.

Author: DSP Development Team
Version: 1.0.0
"""

from typing import Dict, Any
from urllib.parse import urlencode

ROUTINES_URL = "/api/db-admin/routines/"


def get_common(params: Dict[str, Any], divider: str = "?") -> str:
    """
    Generates the query string part of a URL.

    Args:
        params: Parameters to encode (empty values are kept)
        divider: Character prepended to the encoded string ("?" or "&")

    Returns:
        Encoded query string with divider, or an empty string for no params
    """
    if not params:
        return ""
    return divider + urlencode(params, doseq=True)

