"""
Parser for CREATE PROCEDURE / CREATE FUNCTION statements as returned by
``SHOW CREATE``. Extracts definer, parameters, return type,
characteristics and body so the editor can be filled from an existing
routine.

Author: DSP Development Team
Version: 1.0.0
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ...utils.sql import unquote_identifier
from .routine_data import RoutineParameter, is_numeric_type

logger = logging.getLogger(__name__)

_IDENT = r"(?:`(?:[^`]|``)*`|'[^']*'|\"[^\"]*\"|[\w$]+)"
_HOST = r"(?:`(?:[^`]|``)*`|'[^']*'|\"[^\"]*\"|[^\s(]+)"

HEADER_PATTERN = re.compile(
    r"^\s*CREATE\s+(?:OR\s+REPLACE\s+)?"
    r"(?:DEFINER\s*=\s*(?P<definer>" + _IDENT + r"@" + _HOST + r"|CURRENT_USER(?:\(\))?)\s+)?"
    r"(?P<type>PROCEDURE|FUNCTION)\s+(?:IF\s+NOT\s+EXISTS\s+)?"
    r"(?P<name>" + _IDENT + r"(?:\s*\.\s*" + _IDENT + r")?)\s*\(",
    re.IGNORECASE,
)
PARAMETER_PATTERN = re.compile(
    r"^(?:(?P<direction>IN|OUT|INOUT)\s+)?(?P<name>" + _IDENT + r")\s+"
    r"(?P<type>\w+)(?:\s*\((?P<length>.*?)\))?(?P<opts>\s.*)?$",
    re.IGNORECASE | re.DOTALL,
)
RETURNS_PATTERN = re.compile(
    r"^\s*RETURNS\s+(?P<type>\w+)(?:\s*\((?P<length>[^)]*)\))?", re.IGNORECASE
)
RETURN_OPTION_PATTERNS = (
    ("num", re.compile(r"^\s+(UNSIGNED|SIGNED|ZEROFILL)\b", re.IGNORECASE)),
    ("charset", re.compile(r"^\s+(?:CHARSET|CHARACTER\s+SET)\s+([\w]+)", re.IGNORECASE)),
    ("collate", re.compile(r"^\s+COLLATE\s+([\w]+)", re.IGNORECASE)),
)
CHARACTERISTIC_PATTERNS = (
    ("comment", re.compile(r"^\s*COMMENT\s+'((?:[^'\\]|\\.|'')*)'", re.IGNORECASE | re.DOTALL)),
    ("language", re.compile(r"^\s*LANGUAGE\s+SQL\b", re.IGNORECASE)),
    ("not_deterministic", re.compile(r"^\s*NOT\s+DETERMINISTIC\b", re.IGNORECASE)),
    ("deterministic", re.compile(r"^\s*DETERMINISTIC\b", re.IGNORECASE)),
    (
        "data_access",
        re.compile(
            r"^\s*(CONTAINS\s+SQL|NO\s+SQL|READS\s+SQL\s+DATA|MODIFIES\s+SQL\s+DATA)\b",
            re.IGNORECASE,
        ),
    ),
    ("security", re.compile(r"^\s*SQL\s+SECURITY\s+(DEFINER|INVOKER)\b", re.IGNORECASE)),
)
CHARSET_OPTION_PATTERN = re.compile(r"(?:CHARSET|CHARACTER\s+SET)\s+(\w+)", re.IGNORECASE)
NUM_OPTION_PATTERN = re.compile(r"\b(UNSIGNED|ZEROFILL)\b", re.IGNORECASE)


class RoutineParseError(ValueError):
    pass


@dataclass
class ParsedRoutine:
    type: str
    name: str
    definer: str = ""
    parameters: List[RoutineParameter] = field(default_factory=list)
    return_type: str = ""
    return_length: str = ""
    return_opts_num: str = ""
    return_opts_text: str = ""
    comment: str = ""
    is_deterministic: bool = False
    sql_data_access: str = ""
    security_type: str = ""
    body: str = ""


def _find_closing_paren(text: str, start: int) -> int:
    """Index der schließenden Klammer zu ``text[start - 1] == "("``."""
    depth = 1
    quote = None
    index = start
    while index < len(text):
        char = text[index]
        if quote:
            if char == "\\" and quote != "`":
                index += 2
                continue
            if char == quote:
                quote = None
        elif char in "'\"`":
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return index
        index += 1
    raise RoutineParseError("Unbalanced parentheses in parameter list")


def split_top_level(text: str, separator: str = ",") -> List[str]:
    """Splits on ``separator`` outside of quotes and parentheses."""
    parts, current = [], []
    depth = 0
    quote = None
    for char in text:
        if quote:
            if char == quote:
                quote = None
        elif char in "'\"`":
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char == separator and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    if "".join(current).strip():
        parts.append("".join(current))
    return [part.strip() for part in parts if part.strip()]


def parse_definer(definer: str) -> str:
    """```root`@`localhost``` -> ``root@localhost``"""
    if not definer or definer.upper().startswith("CURRENT_USER"):
        return ""
    user, _, host = definer.rpartition("@")
    return unquote_identifier(user) + "@" + unquote_identifier(host)


def _split_options(opts: str) -> Tuple[str, str]:
    num = " ".join(opt.upper() for opt in NUM_OPTION_PATTERN.findall(opts))
    charset = CHARSET_OPTION_PATTERN.search(opts)
    return num, charset.group(1).lower() if charset else ""


def parse_parameter(text: str) -> RoutineParameter:
    match = PARAMETER_PATTERN.match(text.strip())
    if match is None:
        raise RoutineParseError(f"Cannot parse routine parameter: {text}")

    opts_num, opts_text = _split_options(match.group("opts") or "")
    param_type = match.group("type").upper()
    return RoutineParameter(
        direction=(match.group("direction") or "").upper(),
        name=unquote_identifier(match.group("name")),
        type=param_type,
        length=(match.group("length") or "").strip(),
        opts_num=opts_num if is_numeric_type(param_type) else "",
        opts_text=opts_text,
    )


def _unescape_comment(value: str) -> str:
    return re.sub(r"\\(.)", r"\1", value.replace("''", "'"))


def parse_routine(definition: str) -> ParsedRoutine:
    """
    Zerlegt eine CREATE-Anweisung einer Routine.

    Raises:
        RoutineParseError: wenn die Anweisung nicht erkannt wird
    """
    header = HEADER_PATTERN.match(definition)
    if header is None:
        raise RoutineParseError("Not a CREATE PROCEDURE/FUNCTION statement")

    name = header.group("name")
    if "." in name and not name.startswith("`"):
        name = name.split(".", 1)[1]
    elif re.match(r"^`(?:[^`]|``)*`\s*\.", name):
        name = name.split(".", 1)[1]

    parsed = ParsedRoutine(
        type=header.group("type").upper(),
        name=unquote_identifier(name.strip()),
        definer=parse_definer(header.group("definer") or ""),
    )

    close = _find_closing_paren(definition, header.end())
    parsed.parameters = [
        parse_parameter(part) for part in split_top_level(definition[header.end():close])
    ]
    rest = definition[close + 1:]

    if parsed.type == "FUNCTION":
        returns = RETURNS_PATTERN.match(rest)
        if returns:
            parsed.return_type = returns.group("type").upper()
            parsed.return_length = (returns.group("length") or "").strip()
            rest = rest[returns.end():]
            rest = _consume_return_options(parsed, rest)

    rest = _consume_characteristics(parsed, rest)
    parsed.body = rest.strip()
    return parsed


def _consume_return_options(parsed: ParsedRoutine, rest: str) -> str:
    num_options = []
    matched = True
    while matched:
        matched = False
        for kind, pattern in RETURN_OPTION_PATTERNS:
            option = pattern.match(rest)
            if option is None:
                continue
            if kind == "num":
                num_options.append(option.group(1).upper())
            elif kind == "charset":
                parsed.return_opts_text = option.group(1).lower()
            rest = rest[option.end():]
            matched = True
    if is_numeric_type(parsed.return_type):
        parsed.return_opts_num = " ".join(opt for opt in num_options if opt != "SIGNED")
    return rest


def _consume_characteristics(parsed: ParsedRoutine, rest: str) -> str:
    matched = True
    while matched:
        matched = False
        for kind, pattern in CHARACTERISTIC_PATTERNS:
            characteristic = pattern.match(rest)
            if characteristic is None:
                continue
            if kind == "comment":
                parsed.comment = _unescape_comment(characteristic.group(1))
            elif kind == "deterministic":
                parsed.is_deterministic = True
            elif kind == "not_deterministic":
                parsed.is_deterministic = False
            elif kind == "data_access":
                parsed.sql_data_access = " ".join(characteristic.group(1).upper().split())
            elif kind == "security":
                parsed.security_type = characteristic.group(1).upper()
            rest = rest[characteristic.end():]
            matched = True
            break
    return rest


def try_parse_routine(definition: Optional[str]) -> Optional[ParsedRoutine]:
    if not definition:
        return None
    try:
        return parse_routine(definition)
    except RoutineParseError as e:
        logger.warning(f"Routine-Definition nicht lesbar: {e}")
        return None
