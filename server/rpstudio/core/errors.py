from __future__ import annotations


class StoreError(Exception):
    """Base class for persistence-layer failures."""


class StoreUnavailable(StoreError):
    """The shared database handle could not be established."""

    def __init__(self, operation: str | None = None) -> None:
        msg = "Database not available"
        if operation:
            msg = f"{msg} (operation: {operation})"
        super().__init__(msg)
        self.operation: str | None = operation


class NotFound(StoreError):
    """A row required by the operation is missing or not owned by the caller."""

    def __init__(self, entity: str, entity_id: object = None) -> None:
        super().__init__(f"{entity} not found")
        self.entity: str = entity
        self.entity_id: object = entity_id

    def __str__(self) -> str:
        base = super().__str__()
        if self.entity_id is None:
            return base
        return f"{base} (id: {self.entity_id})"


class MissingRequiredField(ValueError):
    def __init__(self, field: str, operation: str) -> None:
        super().__init__(f"{field} is required for {operation}")
        self.field: str = field
