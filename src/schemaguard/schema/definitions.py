"""
Input definitions for schema changes.

These are what callers hand to the services: loosely typed on the way in
(strings from a form or JSON body), coerced by pydantic, and validated
properly by the service and builder layers.
"""

from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ValidationError


class ColumnDefinition(BaseModel):
    """A column to create or redefine."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field("", description="Column name")
    type: str = Field("", description="Column type, e.g. VARCHAR or INT")
    length: Optional[int] = Field(None, description="Length or precision")
    nullable: bool = Field(True, description="Allow NULL values")
    default: Optional[Any] = Field(None, description="Default value or keyword")
    auto_increment: bool = Field(False, description="AUTO_INCREMENT column")
    primary: bool = Field(False, description="Part of the primary key (create table only)")
    after: Optional[str] = Field(None, description="Position after this column (add only)")

    @field_validator("length", mode="before")
    @classmethod
    def empty_length(cls, v):
        if v in ("", None):
            return None
        return v


class IndexDefinition(BaseModel):
    """An index to add to a table."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = Field("", description="Index name")
    kind: str = Field("INDEX", alias="type", description="PRIMARY, UNIQUE, FULLTEXT, SPATIAL or INDEX")
    columns: List[str] = Field(default_factory=list, description="Indexed columns, in order")


class RelationDefinition(BaseModel):
    """A foreign key to add to a table."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = Field(None, description="Constraint name, synthesized when empty")
    column: str = Field("", description="Source column")
    referenced_table: str = Field("", description="Referenced table")
    referenced_column: str = Field("", description="Referenced column")
    on_delete: Optional[str] = Field(None, description="ON DELETE action")
    on_update: Optional[str] = Field(None, description="ON UPDATE action")


D = TypeVar("D", bound=BaseModel)


def parse_definition(model: Type[D], data: Union[D, Dict[str, Any], None], kind: str) -> D:
    """
    Coerce a mapping into a definition model.

    Raises:
        ValidationError: If the mapping cannot be coerced, coded ``invalid_<kind>``.
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data or {})
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid {kind} definition: {e}", cause=e, code=f"invalid_{kind}") from e
