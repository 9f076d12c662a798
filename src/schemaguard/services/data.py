"""
Paginated data preview.
"""

from ..database.introspection import DataPreview
from ..exceptions import NotFoundError, ValidationError
from .base import EntityService, service_operation


class DataService(EntityService):
    """Read-only row previews for one caller."""

    def __init__(self, *args, default_limit: int = 100, max_limit: int = 1000, **kwargs):
        super().__init__(*args, **kwargs)
        self.default_limit = default_limit
        self.max_limit = max_limit

    def _clamp(self, limit, offset):
        try:
            limit = self.default_limit if limit is None else int(limit)
            offset = 0 if offset is None else int(offset)
        except (TypeError, ValueError) as e:
            raise ValidationError("Limit and offset must be integers.", cause=e, code="invalid_pagination") from e
        return min(max(limit, 1), self.max_limit), max(offset, 0)

    @service_operation
    def preview(self, table: str, limit: int = None, offset: int = 0) -> DataPreview:
        """Fetch a page of rows; limit is clamped to 1..max_limit, offset to >= 0."""
        self.gate.authorize_tables(self.caller)
        name = self._existing_table(table)
        limit, offset = self._clamp(limit, offset)

        preview = self.introspector.data_preview(name, limit, offset)
        if preview is None:
            # Dropped between the existence check and the read
            raise NotFoundError("table", name)
        return preview
