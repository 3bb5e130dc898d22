import typing

import attr

from active_orm.database import Database, resolve_database
from active_orm.errors import QueryError
from active_orm.metadata import ColumnDescriptor, EntityDescriptor
from active_orm.registry import default_registry
from active_orm.types import to_storage

T = typing.TypeVar("T")


@attr.s(auto_attribs=True, frozen=True)
class Query(typing.Generic[T]):
    """
    Immutable SELECT over one entity class.

    Every refinement returns a new query, so a pre-filtered query (such as the
    one a has-many relationship hands out) can be refined freely.
    """

    entity_class: typing.Type[T]
    database: typing.Optional[Database] = None
    conditions: typing.Tuple[typing.Tuple[str, str, typing.Any], ...] = ()
    ordering: typing.Tuple[typing.Tuple[str, str], ...] = ()
    row_limit: typing.Optional[int] = None
    row_offset: typing.Optional[int] = None

    @classmethod
    def build(cls, entity_class: typing.Type[T], database: typing.Optional[Database] = None) -> "Query[T]":
        return cls(entity_class=entity_class, database=database)

    @property
    def descriptor(self) -> EntityDescriptor:
        return default_registry.descriptor_for(self.entity_class)

    def _column(self, name: str) -> ColumnDescriptor:
        column = self.descriptor.column_for(name)
        if column is None:
            raise QueryError(f"{self.entity_class.__name__} has no column {name!r}")
        return column

    def where(self, column: str, operator: str = "=", value: typing.Any = None) -> "Query[T]":
        column_name = self._column(column).name
        return attr.evolve(self, conditions=self.conditions + ((column_name, operator, value),))

    def order_by(self, column: str, descending: bool = False) -> "Query[T]":
        column_name = self._column(column).name
        return attr.evolve(self, ordering=self.ordering + ((column_name, "DESC" if descending else "ASC"),))

    def limit(self, count: int) -> "Query[T]":
        return attr.evolve(self, row_limit=count)

    def offset(self, count: int) -> "Query[T]":
        return attr.evolve(self, row_offset=count)

    def to_sql(self) -> typing.Tuple[str, typing.List[typing.Any]]:
        descriptor = self.descriptor
        try:
            sql = self._database.dialect.select(
                descriptor.table_name,
                [column.name for column in descriptor.columns],
                [column for column, _, _ in self.conditions],
                [operator for _, operator, _ in self.conditions],
                order_by=self.ordering,
                limit=self.row_limit,
                offset=self.row_offset,
            )
        except ValueError as exc:
            raise QueryError(str(exc)) from exc
        return sql, [to_storage(value) for _, _, value in self.conditions]

    @property
    def _database(self) -> Database:
        return resolve_database(self.entity_class, self.database)

    def results(self) -> typing.List[T]:
        sql, params = self.to_sql()
        rows = self._database.connection.fetch_all(sql, params)
        return [self._hydrate(row) for row in rows]

    def first(self) -> typing.Optional[T]:
        results = self.limit(1).results()
        return results[0] if results else None

    def __iter__(self) -> typing.Iterator[T]:
        return iter(self.results())

    def _hydrate(self, row: typing.Mapping[str, typing.Any]) -> T:
        record = self.entity_class()
        record.mapping().load_row(row)
        return record
