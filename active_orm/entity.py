import abc
import inspect
import typing

import attr

from active_orm import persistence
from active_orm.database import Database, resolve_database
from active_orm.mapping import ObjectMapping
from active_orm.query import Query
from active_orm.registry import default_registry

T = typing.TypeVar("T", bound="ActiveRecord")


def _is_class_var(annotation: typing.Any) -> bool:
    if isinstance(annotation, str):
        return annotation.startswith(("ClassVar", "typing.ClassVar"))
    return annotation is typing.ClassVar or getattr(annotation, "__origin__", None) is typing.ClassVar


class EntityMeta(abc.ABCMeta):
    """
    Turns every entity class into an attrs class whose columns all default to
    ``None``, and registers it so relationships can refer to it by name.
    """

    def __new__(mcs, name: str, bases: tuple, namespace: dict, **kwargs: typing.Any) -> type:
        cls = super().__new__(mcs, name, bases, namespace, **kwargs)
        if not any(isinstance(base, EntityMeta) for base in bases):
            return cls

        for field_name, annotation in inspect.get_annotations(cls).items():
            if not _is_class_var(annotation) and field_name not in cls.__dict__:
                setattr(cls, field_name, attr.ib(default=None))

        attr_cls = attr.s(auto_attribs=True)(cls)
        default_registry.register(attr_cls)
        return attr_cls


class ActiveRecord(metaclass=EntityMeta):
    """
    Base class of persistent entities.

    Column values live in the instance's ``ObjectMapping``; reading and
    writing attributes goes through its attribute cells, which is what keeps
    track of modifications.
    """

    __tablename__: typing.ClassVar[typing.Optional[str]] = None
    __database__: typing.ClassVar[typing.Optional[Database]] = None

    def __attrs_post_init__(self) -> None:
        self.mapping()

    def mapping(self) -> ObjectMapping:
        try:
            return self.__dict__["_mapping"]
        except KeyError:
            mapping = ObjectMapping.of(type(self), self)
            object.__setattr__(self, "_mapping", mapping)
            return mapping

    def __getattr__(self, name: str) -> typing.Any:
        if name.startswith("__"):
            raise AttributeError(name)
        mapping = self.mapping()
        if not mapping.has_attribute(name):
            raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")
        return mapping.attribute(name).state.read()

    def __setattr__(self, name: str, value: typing.Any) -> None:
        mapping = self.mapping()
        if mapping.has_attribute(name):
            mapping.attribute(name).state.write(value)
        else:
            object.__setattr__(self, name, value)

    def identity(self) -> typing.Any:
        return self.mapping().primary_key.state.read()

    def save(self, database: typing.Optional[Database] = None) -> bool:
        return persistence.save(self, resolve_database(type(self), database))

    def destroy(self, database: typing.Optional[Database] = None) -> bool:
        return persistence.destroy(self, resolve_database(type(self), database))

    def destroy_all(self, database: typing.Optional[Database] = None) -> bool:
        return persistence.destroy_all(self, resolve_database(type(self), database))

    @classmethod
    def bind(cls, database: typing.Optional[Database]) -> None:
        cls.__database__ = database

    @classmethod
    def query(cls: typing.Type[T], database: typing.Optional[Database] = None) -> Query[T]:
        return Query.build(cls, database)

    @classmethod
    def find(
        cls: typing.Type[T], identity: typing.Any, database: typing.Optional[Database] = None
    ) -> typing.Optional[T]:
        primary_key = default_registry.descriptor_for(cls).primary_key
        return cls.query(database).where(primary_key.name, "=", identity).first()
