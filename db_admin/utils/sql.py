"""
SQL Helpers

Quoting and escaping of identifiers and literals for statements that are
assembled as text (DDL cannot be parameterized).

Author: DSP Development Team
Version: 1.0.0
"""

from typing import Iterable, List, Union

# MySQL string escapes, siehe mysql_real_escape_string()
_ESCAPES = {
    "\\": "\\\\",
    "\0": "\\0",
    "\n": "\\n",
    "\r": "\\r",
    "'": "\\'",
    '"': '\\"',
    "\x1a": "\\Z",
}


def backquote(name: Union[str, Iterable[str]]) -> Union[str, List[str]]:
    """
    Quotes an identifier (or each identifier of a list) with backticks.

    Embedded backticks are doubled; ``*`` is returned unchanged so that
    ``backquote("db") + "." + backquote("*")`` stays valid.
    """
    if not isinstance(name, str):
        return [backquote(item) for item in name]
    if name == "*":
        return name
    return "`" + name.replace("`", "``") + "`"


def escape_string(value: str) -> str:
    """Escapes a value for use inside a single quoted MySQL string literal."""
    return "".join(_ESCAPES.get(char, char) for char in str(value))


def quote_string(value: str) -> str:
    return "'" + escape_string(value) + "'"


def unquote_identifier(name: str) -> str:
    """Strips backticks/quotes from an identifier as found in SHOW CREATE output."""
    name = name.strip()
    if len(name) >= 2 and name[0] == name[-1] and name[0] in "`'\"":
        quote = name[0]
        return name[1:-1].replace(quote * 2, quote)
    return name
