"""
Typed operation results for schemaguard services.
"""

from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, TypeVar

from .exceptions import SchemaGuardError


T = TypeVar("T")


@dataclass
class Result(Generic[T]):
    """Result of a service operation: a value on success, an error code otherwise."""

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    code: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: SchemaGuardError) -> "Result[T]":
        return cls(ok=False, error=error.message, code=error.code, details=dict(error.details))

    def unwrap(self) -> T:
        """Return the value, raising if the operation failed."""
        if not self.ok:
            raise SchemaGuardError(self.error or "Operation failed", self.details, code=self.code)
        return self.value

    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            return {"success": True, "data": _plain(self.value)}
        data: Dict[str, Any] = {"success": False, "code": self.code, "message": self.error}
        if self.details:
            data["details"] = self.details
        return data


def _plain(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if hasattr(value, "model_dump"):
        return value.model_dump()
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    return value
