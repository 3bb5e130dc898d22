import abc
import logging
import typing

from active_orm import persistence
from active_orm.attribute_state import AttributeState
from active_orm.declarations import Role
from active_orm.metadata import RelationshipDescriptor
from active_orm.query import Query
from active_orm.registry import default_registry
from active_orm.types import to_storage

if typing.TYPE_CHECKING:
    from active_orm.database import Database

logger = logging.getLogger(__name__)


def _key_of(record: typing.Any, column_name: str) -> typing.Any:
    return record.mapping().attribute_for_column(column_name).state.read()


def _set_key(record: typing.Any, column_name: str, value: typing.Any) -> None:
    record.mapping().attribute_for_column(column_name).state.write(value)


class Relationship(abc.ABC):
    """Per-instance side of a relationship declaration."""

    def __init__(self, descriptor: RelationshipDescriptor, owner: typing.Any) -> None:
        self.descriptor = descriptor
        self.owner = owner

    @property
    def target(self) -> typing.Type:
        return self.descriptor.foreign_entity

    @abc.abstractmethod
    def assign(self, value: typing.Any) -> None:
        pass

    @abc.abstractmethod
    def save(self, database: "Database") -> None:
        pass

    @abc.abstractmethod
    def destroy_all(self, database: "Database") -> None:
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.descriptor.name} -> {self.target.__name__}>"


class _OwnedRecords(Relationship):
    """Rows of the target whose foreign key holds the owner's local key."""

    @property
    def owner_key(self) -> typing.Any:
        return _key_of(self.owner, self.descriptor.local_key)

    @abc.abstractmethod
    def attached(self) -> typing.List[typing.Any]:
        pass

    def query(self, database: typing.Optional["Database"] = None) -> Query:
        return Query.build(self.target, database).where(self.descriptor.foreign_key, "=", self.owner_key)

    def save(self, database: "Database") -> None:
        owner_key = self.owner_key
        for record in self.attached():
            if owner_key is not None:
                _set_key(record, self.descriptor.foreign_key, owner_key)
            persistence.save(record, database)

    def destroy_all(self, database: "Database") -> None:
        owner_key = self.owner_key
        if owner_key is None:
            logger.debug("%r: owner has no key, nothing to delete", self)
            return

        table_name = default_registry.descriptor_for(self.target).table_name
        sql = database.dialect.delete(table_name, [self.descriptor.foreign_key], ["="])
        result = database.connection.execute(sql, [to_storage(owner_key)])
        if result.affected_rows > 0:
            for record in self.attached():
                if _key_of(record, self.descriptor.foreign_key) == owner_key:
                    record.mapping().forget_row()


class HasMany(_OwnedRecords):
    def __init__(self, descriptor: RelationshipDescriptor, owner: typing.Any) -> None:
        super().__init__(descriptor, owner)
        self._records: typing.List[typing.Any] = []

    def attached(self) -> typing.List[typing.Any]:
        return list(self._records)

    def add(self, *records: typing.Any) -> None:
        for record in records:
            if not isinstance(record, self.target):
                raise TypeError(f"{self!r} accepts {self.target.__name__} records, got {type(record).__name__}")
            if not any(record is attached for attached in self._records):
                self._records.append(record)

    def remove(self, record: typing.Any) -> None:
        self._records = [attached for attached in self._records if attached is not record]

    def assign(self, value: typing.Iterable[typing.Any]) -> None:
        self._records = []
        self.add(*value)

    def results(self, database: typing.Optional["Database"] = None) -> typing.List[typing.Any]:
        return self.query(database).results()

    def __iter__(self) -> typing.Iterator[typing.Any]:
        return iter(self.attached())

    def __len__(self) -> int:
        return len(self._records)


class HasOne(_OwnedRecords):
    def __init__(self, descriptor: RelationshipDescriptor, owner: typing.Any) -> None:
        super().__init__(descriptor, owner)
        self._record = AttributeState()

    def attached(self) -> typing.List[typing.Any]:
        record = self._record.read()
        return [] if record is None else [record]

    def get(self) -> typing.Any:
        return self._record.read()

    def set(self, record: typing.Any) -> None:
        if record is not None and not isinstance(record, self.target):
            raise TypeError(f"{self!r} accepts a {self.target.__name__} record, got {type(record).__name__}")
        self._record.write(record)

    assign = set

    def save(self, database: "Database") -> None:
        # the replaced record's row must stop pointing at the owner
        previous = self._record.original_value
        if self._record.has_been_modified() and previous is not None and previous.mapping().persisted:
            if _key_of(previous, self.descriptor.foreign_key) == self.owner_key:
                _set_key(previous, self.descriptor.foreign_key, None)
                persistence.save(previous, database)
        super().save(database)
        self._record.mark_clean()

    def results(self, database: typing.Optional["Database"] = None) -> typing.Any:
        return self.query(database).first()


class BelongsTo(Relationship):
    """The owner's local key refers to a parent row of the target."""

    def __init__(self, descriptor: RelationshipDescriptor, owner: typing.Any) -> None:
        super().__init__(descriptor, owner)
        self._parent = AttributeState()

    def set(self, record: typing.Any) -> None:
        if record is not None and not isinstance(record, self.target):
            raise TypeError(f"{self!r} accepts a {self.target.__name__} record, got {type(record).__name__}")
        self._parent.write(record)

    assign = set

    def get(self, database: typing.Optional["Database"] = None) -> typing.Any:
        """The attached parent, or the one the local key points to."""
        parent = self._parent.read()
        if parent is not None:
            return parent

        key = _key_of(self.owner, self.descriptor.local_key)
        if key is None:
            return None
        parent = Query.build(self.target, database).where(self.descriptor.foreign_key, "=", key).first()
        if parent is not None:
            self._parent.write(parent)
            self._parent.mark_clean()
        return parent

    def save(self, database: "Database") -> None:
        parent = self._parent.read()
        if parent is None:
            if self._parent.has_been_modified():
                _set_key(self.owner, self.descriptor.local_key, None)
                self._parent.mark_clean()
            return

        if not parent.mapping().persisted:
            persistence.save(parent, database)
        _set_key(self.owner, self.descriptor.local_key, _key_of(parent, self.descriptor.foreign_key))
        self._parent.mark_clean()

    def destroy_all(self, database: "Database") -> None:
        # a child does not own its parent
        pass


HANDLES = {Role.HAS_MANY: HasMany, Role.HAS_ONE: HasOne, Role.BELONGS_TO: BelongsTo}


def handle_for(descriptor: RelationshipDescriptor, owner: typing.Any) -> Relationship:
    return HANDLES[descriptor.role](descriptor, owner)
