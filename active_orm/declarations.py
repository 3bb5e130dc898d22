import enum
import typing

import attr

T = typing.TypeVar("T")

COLUMN_METADATA_KEY = "active_orm.column"


class Identity(typing.Generic[T]):
    """Marks the primary key of an entity: ``id: Identity[int]``."""

    @classmethod
    def is_identity(cls, field_type: typing.Any) -> bool:
        return getattr(field_type, "__origin__", None) is cls


@attr.s(auto_attribs=True, frozen=True)
class ColumnOptions:
    name: typing.Optional[str] = None
    primary_key: bool = False
    auto_generated: bool = False
    nullable: typing.Optional[bool] = None


def column(
    name: typing.Optional[str] = None,
    primary_key: bool = False,
    auto_generated: bool = False,
    nullable: typing.Optional[bool] = None,
    default: typing.Any = None,
) -> typing.Any:
    """
    Field-level column declaration.

    The column name defaults to the field name and nullability to whether the
    annotation is ``Optional``.
    """
    options = ColumnOptions(name=name, primary_key=primary_key, auto_generated=auto_generated, nullable=nullable)
    return attr.ib(default=default, metadata={COLUMN_METADATA_KEY: options})


class Role(enum.Enum):
    HAS_MANY = "has_many"
    HAS_ONE = "has_one"
    BELONGS_TO = "belongs_to"

    @property
    def cascades_destroy(self) -> bool:
        # a child does not own its parent
        return self is not Role.BELONGS_TO

    @property
    def saves_before_owner(self) -> bool:
        return self is Role.BELONGS_TO


class RelationshipDeclaration:
    """
    Class attribute declaring a link to another entity.

    Accessed on an instance it returns the instance's relationship handle;
    assigning to it attaches records to that handle.
    """

    def __init__(
        self,
        role: Role,
        target: typing.Union[str, type],
        local_key: typing.Optional[str] = None,
        foreign_key: typing.Optional[str] = None,
    ) -> None:
        self.role = role
        self.target = target
        self.local_key = local_key
        self.foreign_key = foreign_key
        self.name: typing.Optional[str] = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: typing.Any, owner: type) -> typing.Any:
        if instance is None:
            return self
        return instance.mapping().relationship(self.name)

    def __set__(self, instance: typing.Any, value: typing.Any) -> None:
        instance.mapping().relationship(self.name).assign(value)

    def __repr__(self) -> str:
        return f"<{self.role.value} {self.name} -> {getattr(self.target, '__name__', self.target)}>"


def has_many(
    target: typing.Union[str, type], foreign_key: typing.Optional[str] = None, local_key: typing.Optional[str] = None
) -> RelationshipDeclaration:
    return RelationshipDeclaration(Role.HAS_MANY, target, local_key=local_key, foreign_key=foreign_key)


def has_one(
    target: typing.Union[str, type], foreign_key: typing.Optional[str] = None, local_key: typing.Optional[str] = None
) -> RelationshipDeclaration:
    return RelationshipDeclaration(Role.HAS_ONE, target, local_key=local_key, foreign_key=foreign_key)


def belongs_to(
    target: typing.Union[str, type], local_key: typing.Optional[str] = None, foreign_key: typing.Optional[str] = None
) -> RelationshipDeclaration:
    return RelationshipDeclaration(Role.BELONGS_TO, target, local_key=local_key, foreign_key=foreign_key)
