import typing

import attr
from sqlalchemy import Column, ForeignKey, MetaData, Table
from sqlalchemy.engine import Engine

from active_orm.declarations import Role
from active_orm.metadata import ColumnDescriptor, EntityDescriptor, RelationshipDescriptor, Visitor
from active_orm.registry import Registry, default_registry


@attr.s(auto_attribs=True)
class RawTable:
    name: str
    columns: typing.List[ColumnDescriptor] = attr.Factory(list)
    foreign_keys: typing.Dict[str, str] = attr.Factory(dict)

    def append_column(self, column: ColumnDescriptor) -> None:
        self.columns.append(column)

    def append_foreign_key(self, column_name: str, target: str) -> None:
        self.foreign_keys[column_name] = target

    def materialize(self, metadata: MetaData) -> Table:
        columns = []
        for column in self.columns:
            args: typing.List[typing.Any] = [column.name, column.sql_type]
            if column.name in self.foreign_keys:
                args.append(ForeignKey(self.foreign_keys[column.name]))
            columns.append(
                Column(
                    *args,
                    primary_key=column.primary_key,
                    nullable=column.nullable,
                    autoincrement=column.primary_key and column.auto_generated and column.python_type is int,
                )
            )
        return Table(self.name, metadata, *columns)


class TableBuildingVisitor(Visitor):
    def __init__(self, metadata: MetaData, registry: Registry, mapped: typing.Collection[typing.Type]) -> None:
        self._metadata = metadata
        self._registry = registry
        self._mapped = mapped
        self._raw_table: typing.Optional[RawTable] = None
        self.tables: typing.List[Table] = []

    def visit_entity(self, entity: EntityDescriptor) -> None:
        self._raw_table = RawTable(name=entity.table_name)

    def visit_column(self, column: ColumnDescriptor) -> None:
        self._raw_table.append_column(column)

    def visit_relationship(self, relationship: RelationshipDescriptor) -> None:
        # foreign keys may only point at tables created alongside this one
        if relationship.role is not Role.BELONGS_TO or relationship.foreign_entity not in self._mapped:
            return
        target_table = self._registry.descriptor_for(relationship.foreign_entity).table_name
        self._raw_table.append_foreign_key(relationship.local_key, f"{target_table}.{relationship.foreign_key}")

    def leave_entity(self, entity: EntityDescriptor) -> None:
        self.tables.append(self._raw_table.materialize(self._metadata))
        self._raw_table = None


def build_tables(
    metadata: MetaData, *entity_classes: typing.Type, registry: Registry = default_registry
) -> typing.List[Table]:
    visitor = TableBuildingVisitor(metadata, registry, set(entity_classes))
    for entity_class in entity_classes:
        visitor.traverse_from(registry.descriptor_for(entity_class))
    return visitor.tables


def create_tables(
    engine: Engine, *entity_classes: typing.Type, registry: Registry = default_registry
) -> MetaData:
    metadata = MetaData()
    build_tables(metadata, *entity_classes, registry=registry)
    metadata.create_all(engine)
    return metadata
