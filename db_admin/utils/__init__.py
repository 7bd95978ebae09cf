"""
DB Admin Utilities

- sql: Quoting/Escaping für Bezeichner und Literale
- url: Query-Strings für Links
- message: Fehler-/Erfolgsmeldungen
- request_params: Zugriff auf GET/POST-Parameter
- response_renderer: HTML-Seite oder JSON-Envelope

Author: DSP Development Team
Version: 1.0.0
"""

from .sql import backquote, escape_string, quote_string, unquote_identifier
from .url import get_common
from .message import Message, format_sql, get_message_with_query
from .request_params import RequestParams, is_filled
from .response_renderer import ResponseRenderer

__all__ = [
    "backquote",
    "escape_string",
    "quote_string",
    "unquote_identifier",
    "get_common",
    "Message",
    "format_sql",
    "get_message_with_query",
    "RequestParams",
    "is_filled",
    "ResponseRenderer",
]
