"""Error types raised by the lifecycle services.

Storage errors coming out of SQLAlchemy are translated into these at the
transaction boundary (see ``Database.transaction``), so callers only ever
have to deal with this hierarchy.
"""


class MediaShelfError(Exception):
    """Base class for all mediashelf errors."""

    pass


class InvariantViolation(MediaShelfError):
    """A requested change would break a cross-entity invariant.

    Raised before anything is written.
    """

    pass


class NotFoundError(MediaShelfError):
    """A referenced library, series or book does not exist."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class ConstraintViolation(MediaShelfError):
    """A write conflicted with an existing row (duplicate id or unique key)."""

    pass


class StorageFailure(MediaShelfError):
    """The storage layer failed; the whole transaction was rolled back."""

    pass
