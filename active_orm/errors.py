class ActiveOrmError(Exception):
    """Base exception for active_orm errors."""


class MappingError(ActiveOrmError):
    """Malformed class-level declarations of an entity."""


class ConstraintViolation(ActiveOrmError):
    """The database rejected a statement because of an integrity constraint."""


class DbConnectionError(ActiveOrmError):
    """Transport-level failure while talking to the database."""


class QueryError(ActiveOrmError):
    """A query references something the entity does not map."""


class NoDatabaseBound(ActiveOrmError):
    """An operation was run without an explicit or bound database."""
