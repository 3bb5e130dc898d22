"""
The persistence engine.

The functions here work on anything exposing ``mapping()``; ``ActiveRecord``
only forwards to them. Instance bookkeeping (``persisted``, dirty flags,
generated keys) is touched strictly after the connection returned, so an
exception from the connection leaves the instance as it was.
"""
import logging
import typing

from active_orm.types import from_storage, to_storage

if typing.TYPE_CHECKING:
    from active_orm.database import Database
    from active_orm.mapping import AttributeMapping, ObjectMapping

logger = logging.getLogger(__name__)


def _row_identity(mapping: "ObjectMapping") -> typing.Any:
    # the key the stored row is known under, even if the user has changed it since
    primary_key = mapping.primary_key.state
    return primary_key.original_value if mapping.persisted else primary_key.read()


def _values(attributes: typing.Sequence["AttributeMapping"]) -> typing.List[typing.Any]:
    return [to_storage(attribute.state.read()) for attribute in attributes]


def _insert_attributes(mapping: "ObjectMapping") -> typing.List["AttributeMapping"]:
    # a column still holding its declared default is clean but has never been stored
    return [
        attribute
        for attribute in mapping.attributes
        if attribute.state.has_been_modified() or attribute.state.read() is not None
    ]


def _insert(mapping: "ObjectMapping", database: "Database") -> bool:
    primary_key = mapping.primary_key
    dirty = _insert_attributes(mapping)
    if primary_key.column.auto_generated and primary_key.state.read() is None:
        dirty = [attribute for attribute in dirty if attribute is not primary_key]

    sql = database.dialect.insert(mapping.table_name, [attribute.column.name for attribute in dirty])
    result = database.connection.execute(sql, _values(dirty), primary_key.column)
    if result.affected_rows <= 0:
        logger.warning("INSERT into %s affected no rows", mapping.table_name)
        return False

    key_supplied = any(attribute is primary_key for attribute in dirty)
    if primary_key.column.auto_generated and not key_supplied and result.generated_key is not None:
        primary_key.state.write(from_storage(result.generated_key, primary_key.column.python_type))

    mapping.persisted = True
    for attribute in dirty:
        attribute.state.mark_clean()
    primary_key.state.mark_clean()
    return True


def _update(mapping: "ObjectMapping", database: "Database") -> bool:
    dirty = mapping.dirty_attributes()
    if not dirty:
        logger.debug("Nothing to update in %s", mapping.table_name)
        return True

    primary_key = mapping.primary_key
    sql = database.dialect.update(
        mapping.table_name, [attribute.column.name for attribute in dirty], [primary_key.column.name], ["="]
    )
    identity = _row_identity(mapping)
    result = database.connection.execute(sql, _values(dirty) + [to_storage(identity)])
    if result.affected_rows <= 0:
        logger.warning(
            "Stale state: UPDATE of %s with %s=%r affected no rows",
            mapping.table_name,
            primary_key.column.name,
            identity,
        )
        return False

    for attribute in dirty:
        attribute.state.mark_clean()
    return True


def save(record: typing.Any, database: "Database") -> bool:
    """
    Inserts or updates the record's row, cascading over its relationships.

    belongs-to parents are saved before the row so the foreign key is
    current; has-many and has-one children are saved after it. The result
    reflects the record's own row only.
    """
    mapping = record.mapping()
    if mapping.saving:
        logger.debug("Skipping re-entrant save of %r", record)
        return False

    mapping.saving = True
    try:
        for relationship in mapping.relationships:
            if relationship.descriptor.role.saves_before_owner:
                relationship.save(database)

        if mapping.persisted:
            saved = _update(mapping, database)
        else:
            saved = _insert(mapping, database)

        for relationship in mapping.relationships:
            if not relationship.descriptor.role.saves_before_owner:
                relationship.save(database)
    finally:
        mapping.saving = False
    return saved


def destroy(record: typing.Any, database: "Database") -> bool:
    """Deletes the record's row; related rows are left alone."""
    mapping = record.mapping()
    primary_key = mapping.primary_key
    sql = database.dialect.delete(mapping.table_name, [primary_key.column.name], ["="])
    identity = _row_identity(mapping)
    result = database.connection.execute(sql, [to_storage(identity)])
    if result.affected_rows <= 0:
        if mapping.persisted:
            logger.warning(
                "Stale state: DELETE from %s with %s=%r affected no rows",
                mapping.table_name,
                primary_key.column.name,
                identity,
            )
        return False

    mapping.forget_row()
    return True


def destroy_all(record: typing.Any, database: "Database") -> bool:
    """Deletes dependent rows first, then the record's own row."""
    mapping = record.mapping()
    for relationship in mapping.relationships:
        relationship.destroy_all(database)
    return destroy(record, database)
