"""
Parameterized statement model for schemaguard.

A ``Statement`` is a template plus positional parameters. Two placeholders are
understood:

- ``%i`` takes an :class:`Identifier` and is replaced by its backtick-quoted
  name once the name has been re-checked against the identifier pattern.
- ``%s`` takes a literal value which is bound by the driver.

``%%`` produces a literal percent sign. Nothing else is ever interpolated into
the text sent to the engine.
"""

import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

from pymysql.converters import escape_item

from ..exceptions import InvalidNameError


IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_PLACEHOLDER = re.compile(r"%[is%]")


@dataclass(frozen=True)
class Identifier:
    """A table, column, index or constraint name used in a statement."""

    name: str
    kind: str = "identifier"
    from_catalog: bool = False

    @classmethod
    def catalog(cls, name: str, kind: str = "table") -> "Identifier":
        """A name reported by the engine itself, such as a ``SHOW TABLES`` row."""
        return cls(name, kind, from_catalog=True)

    def quoted(self) -> str:
        """
        Return the backtick-quoted name, refusing anything unsafe.

        Caller-supplied names must match the identifier pattern. Catalog names
        may hold any character MySQL allows in a name; backticks are doubled.
        """
        if self.from_catalog:
            if not self.name or "\x00" in self.name:
                raise InvalidNameError(self.name, self.kind)
            return "`" + self.name.replace("`", "``") + "`"
        if not IDENTIFIER_PATTERN.match(self.name or ""):
            raise InvalidNameError(self.name, self.kind)
        return f"`{self.name}`"

    def __str__(self) -> str:
        return self.name


@dataclass
class Statement:
    """A statement template with its positional parameters."""

    template: str
    params: Tuple[Any, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        self.params = tuple(self.params)

    def compile(self) -> Tuple[str, Optional[Tuple[Any, ...]]]:
        """
        Produce the driver query and its value arguments.

        Identifiers are resolved in place; literal values stay as ``%s`` for
        the driver to bind. Returns ``None`` for the arguments when the
        statement has no literal values, so the driver leaves the text alone.

        Raises:
            ValueError: If the placeholders and parameters do not line up.
            InvalidNameError: If an identifier is unsafe.
        """
        params = list(self.params)
        values: List[Any] = []
        parts: List[str] = []
        position = 0

        for match in _PLACEHOLDER.finditer(self.template):
            parts.append(self.template[position:match.start()])
            position = match.end()
            token = match.group()

            if token == "%%":
                parts.append("%%")
                continue

            if not params:
                raise ValueError(f"Not enough parameters for statement: {self.template}")
            param = params.pop(0)

            if token == "%i":
                if not isinstance(param, Identifier):
                    raise ValueError(f"Expected an Identifier for %i, got {type(param).__name__}")
                # A percent inside a quoted name is literal for the driver
                parts.append(param.quoted().replace("%", "%%"))
            else:
                if isinstance(param, Identifier):
                    raise ValueError(f"Identifier {param.name!r} passed for a %s placeholder")
                parts.append("%s")
                values.append(param)

        if params:
            raise ValueError(f"Too many parameters for statement: {self.template}")

        parts.append(self.template[position:])
        query = "".join(parts)

        if not values:
            return query.replace("%%", "%"), None
        return query, tuple(values)

    def render(self, charset: str = "utf8mb4") -> str:
        """Return the statement as readable SQL, for logs and dry runs."""
        query, values = self.compile()
        if values is None:
            return query
        return query % tuple(escape_item(value, charset) for value in values)

    def __str__(self) -> str:
        return self.render()


def identifiers(names: Sequence[str], kind: str = "column") -> List[Identifier]:
    """Wrap several names as identifiers of the same kind."""
    return [Identifier(name, kind) for name in names]


def placeholders(count: int, token: str = "%i") -> str:
    """Comma-separated placeholder list, e.g. ``%i, %i, %i``."""
    return ", ".join([token] * count)
