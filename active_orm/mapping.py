import typing

import attr

from active_orm.relationships import Relationship, handle_for
from active_orm.attribute_state import AttributeState
from active_orm.metadata import ColumnDescriptor, EntityDescriptor
from active_orm.registry import Registry, default_registry
from active_orm.types import from_storage


@attr.s(auto_attribs=True, eq=False)
class AttributeMapping:
    column: ColumnDescriptor
    state: AttributeState


@attr.s(auto_attribs=True, eq=False, repr=False)
class ObjectMapping:
    """
    Binds a live entity instance to its class-level descriptor.

    Descriptors are shared by every instance of the class; the attribute
    cells, relationship handles and the ``persisted`` flag belong to the
    instance alone.
    """

    descriptor: EntityDescriptor
    attributes: typing.List[AttributeMapping]
    relationships: typing.List[Relationship] = attr.Factory(list)
    persisted: bool = False
    saving: bool = False
    _by_field: typing.Dict[str, AttributeMapping] = attr.ib(init=False)
    _by_column: typing.Dict[str, AttributeMapping] = attr.ib(init=False)

    def __attrs_post_init__(self) -> None:
        self._by_field = {attribute.column.field_name: attribute for attribute in self.attributes}
        self._by_column = {attribute.column.name: attribute for attribute in self.attributes}

    @classmethod
    def of(
        cls, entity_class: typing.Type, instance: typing.Any, registry: Registry = default_registry
    ) -> "ObjectMapping":
        descriptor = registry.descriptor_for(entity_class)
        attributes = [AttributeMapping(column, AttributeState.initial(column.default)) for column in descriptor.columns]
        handles = [handle_for(relationship, instance) for relationship in descriptor.relationships]
        return cls(descriptor=descriptor, attributes=attributes, relationships=handles)

    @property
    def entity_class(self) -> typing.Type:
        return self.descriptor.entity_class

    @property
    def table_name(self) -> str:
        return self.descriptor.table_name

    @property
    def primary_key(self) -> AttributeMapping:
        return self._by_column[self.descriptor.primary_key.name]

    def has_attribute(self, field_name: str) -> bool:
        return field_name in self._by_field

    def attribute(self, field_name: str) -> AttributeMapping:
        return self._by_field[field_name]

    def attribute_for_column(self, column_name: str) -> AttributeMapping:
        return self._by_column[column_name]

    def relationship(self, name: str) -> Relationship:
        for handle in self.relationships:
            if handle.descriptor.name == name:
                return handle
        raise KeyError(name)

    def dirty_attributes(self) -> typing.List[AttributeMapping]:
        return [attribute for attribute in self.attributes if attribute.state.has_been_modified()]

    def load_row(self, row: typing.Mapping[str, typing.Any]) -> None:
        """Takes the state of a row just read from the table."""
        for attribute in self.attributes:
            if attribute.column.name in row:
                attribute.state.write(from_storage(row[attribute.column.name], attribute.column.python_type))
            attribute.state.mark_clean()
        self.persisted = True

    def forget_row(self) -> None:
        """The backing row is gone; a later save has to insert everything again."""
        self.persisted = False
        for attribute in self.attributes:
            attribute.state.invalidate()

    def __repr__(self) -> str:
        dirty = [attribute.column.field_name for attribute in self.dirty_attributes()]
        return f"<ObjectMapping {self.table_name} persisted={self.persisted} dirty={dirty}>"
