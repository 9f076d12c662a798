"""
Identifier and column type validation for schemaguard.

Pure functions: nothing here talks to the database.
"""

import re
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Tuple, Type, TypeVar

from pymysql.converters import escape_string

from ..database.statements import IDENTIFIER_PATTERN
from ..exceptions import InvalidEnumError, InvalidNameError, InvalidTypeError


E = TypeVar("E", bound=Enum)

_UNSAFE_CHARACTERS = re.compile(r"[^A-Za-z0-9_]")
_PARENTHETICAL = re.compile(r"\(.*\)")
_NUMERIC = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")

ALLOWED_TYPES = (
    "TINYINT",
    "SMALLINT",
    "MEDIUMINT",
    "INT",
    "BIGINT",
    "DECIMAL",
    "FLOAT",
    "DOUBLE",
    "BIT",
    "CHAR",
    "VARCHAR",
    "BINARY",
    "VARBINARY",
    "TINYBLOB",
    "BLOB",
    "MEDIUMBLOB",
    "LONGBLOB",
    "TINYTEXT",
    "TEXT",
    "MEDIUMTEXT",
    "LONGTEXT",
    "ENUM",
    "SET",
    "DATE",
    "TIME",
    "DATETIME",
    "TIMESTAMP",
    "YEAR",
    "JSON",
)

# Default length when none (or a non-positive one) is given.
LENGTH_REQUIRED_TYPES = {
    "CHAR": 1,
    "BINARY": 1,
    "VARCHAR": 255,
    "VARBINARY": 255,
}

LENGTH_OPTIONAL_TYPES = ("TINYINT", "SMALLINT", "MEDIUMINT", "INT", "BIGINT")

PRECISION_TYPES = ("DECIMAL", "FLOAT", "DOUBLE")
PRECISION_SCALE = 2

DEFAULT_KEYWORDS = ("CURRENT_TIMESTAMP", "NOW()", "NULL")


def strip_identifier(name: Any) -> str:
    """Remove every character outside ``[A-Za-z0-9_]``."""
    if name is None:
        return ""
    return _UNSAFE_CHARACTERS.sub("", str(name))


def is_valid_identifier(name: str) -> bool:
    """Check a name against the identifier pattern."""
    return bool(name) and IDENTIFIER_PATTERN.match(name) is not None


def sanitize_identifier(name: Any, kind: str = "identifier") -> str:
    """
    Sanitize a raw table, column or index name.

    Unsafe characters are stripped; the result must then be a valid
    identifier. A name that strips down to nothing, or that starts with a
    digit, is rejected rather than passed on.

    Raises:
        InvalidNameError: If the sanitized name is not a usable identifier.
    """
    sanitized = strip_identifier(name)
    if not is_valid_identifier(sanitized):
        raise InvalidNameError("" if name is None else str(name), kind)
    return sanitized


def base_type(raw: str) -> str:
    """Uppercase a type string and drop its parenthetical suffix."""
    return _PARENTHETICAL.sub("", (raw or "").upper()).strip()


def validate_type(raw: str, length: Optional[int] = None) -> str:
    """
    Validate a column type against the allow-list and normalize its length.

    Examples:
        >>> validate_type("varchar")
        'VARCHAR(255)'
        >>> validate_type("int", 11)
        'INT(11)'
        >>> validate_type("decimal", 10)
        'DECIMAL(10,2)'

    Raises:
        InvalidTypeError: If the base type is not allowed.
    """
    base = base_type(raw)

    if base not in ALLOWED_TYPES:
        raise InvalidTypeError((raw or "").upper())

    has_length = length is not None and int(length) > 0

    if base in LENGTH_REQUIRED_TYPES:
        size = int(length) if has_length else LENGTH_REQUIRED_TYPES[base]
        return f"{base}({size})"

    if base in LENGTH_OPTIONAL_TYPES and has_length:
        return f"{base}({int(length)})"

    if base in PRECISION_TYPES and has_length:
        return f"{base}({int(length)},{PRECISION_SCALE})"

    return base


def _default_literal(value: Any) -> Optional[str]:
    """SQL text for defaults that need no quoting, else None."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float, Decimal)):
        return str(value)

    text = str(value)
    if _NUMERIC.match(text.strip()):
        return text.strip()
    if text.strip().upper() in DEFAULT_KEYWORDS:
        return text.strip().upper()
    return None


def escape_default(value: Any) -> str:
    """
    Render a column default as SQL text.

    ``None`` becomes ``NULL``, booleans ``1``/``0``, numbers are kept as is,
    whitelisted keywords are uppercased and everything else is escaped and
    quoted as a string literal.
    """
    literal = _default_literal(value)
    if literal is not None:
        return literal
    return "'" + escape_string(str(value)) + "'"


def default_clause(value: Any) -> Tuple[str, Tuple[Any, ...]]:
    """
    Build the ``DEFAULT`` clause template for a column default.

    Keywords and numbers are inlined; string literals are left to the driver
    as a ``%s`` parameter.
    """
    literal = _default_literal(value)
    if literal is not None:
        return f"DEFAULT {literal}", ()
    return "DEFAULT %s", (str(value),)


def validate_choice(value: Any, enum_cls: Type[E], kind: str) -> E:
    """
    Resolve a case-insensitive string to a member of ``enum_cls``.

    Raises:
        InvalidEnumError: If the value is empty or not a member.
    """
    if isinstance(value, enum_cls):
        return value
    normalized = str(value or "").strip().upper()
    for member in enum_cls:
        if member.value == normalized:
            return member
    raise InvalidEnumError(kind, value, [member.value for member in enum_cls])
