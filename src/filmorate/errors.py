"""Exception taxonomy shared by the stores, engines and API layer."""

from __future__ import annotations


class FilmorateError(Exception):
    """Base class for all service errors."""


class NotFoundError(FilmorateError):
    """An entity id does not resolve."""

    def __init__(self, entity: str, entity_id: int) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} with id {entity_id} not found")


class ValidationError(FilmorateError):
    """A payload or query parameter is malformed."""


class StorageFailure(FilmorateError):
    """The persistence layer failed or a write touched an unexpected row count."""
