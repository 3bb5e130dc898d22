import abc
import typing
from types import UnionType

import attr
import inflection
from sqlalchemy.types import TypeEngine

from active_orm import native_type_to_column
from active_orm.declarations import COLUMN_METADATA_KEY, ColumnOptions, Identity, RelationshipDeclaration, Role
from active_orm.dialect import validate_identifier
from active_orm.errors import MappingError

if typing.TYPE_CHECKING:
    from active_orm.registry import Registry

# Names an entity field may not take because ActiveRecord already defines them
RESERVED_NAMES = frozenset({"mapping", "identity", "save", "destroy", "destroy_all", "query", "find", "bind"})

_UNION_ORIGINS = (typing.Union, UnionType)


def _is_generic(field_type: typing.Type) -> bool:
    return typing.get_origin(field_type) is not None


def _get_wrapped_type(wrapped_type: typing.Any) -> typing.Type:
    return typing.get_args(wrapped_type)[0]


def _is_field_nullable(field_type: typing.Type) -> bool:
    args = typing.get_args(field_type)
    return typing.get_origin(field_type) in _UNION_ORIGINS and len(args) == 2 and type(None) in args


def _non_null_member(field_type: typing.Type) -> typing.Type:
    return next(arg for arg in typing.get_args(field_type) if arg is not type(None))


class Visitor:
    def traverse_from(self, node: "Node") -> None:
        node.accept(self)
        for child in node.children:
            self.traverse_from(child)
        node.farewell(self)

    def visit_entity(self, entity: "EntityDescriptor") -> None:
        pass

    def leave_entity(self, entity: "EntityDescriptor") -> None:
        pass

    def visit_column(self, column: "ColumnDescriptor") -> None:
        pass

    def leave_column(self, column: "ColumnDescriptor") -> None:
        pass

    def visit_relationship(self, relationship: "RelationshipDescriptor") -> None:
        pass

    def leave_relationship(self, relationship: "RelationshipDescriptor") -> None:
        pass


class Node(abc.ABC):
    @property
    def children(self) -> typing.Sequence["Node"]:
        return ()

    @abc.abstractmethod
    def accept(self, visitor: Visitor) -> None:
        pass

    @abc.abstractmethod
    def farewell(self, visitor: Visitor) -> None:
        pass


@attr.s(auto_attribs=True, frozen=True)
class ColumnDescriptor(Node):
    name: str
    field_name: str
    python_type: typing.Type
    sql_type: TypeEngine = attr.ib(eq=False)
    nullable: bool = False
    primary_key: bool = False
    auto_generated: bool = False
    default: typing.Any = None

    def accept(self, visitor: Visitor) -> None:
        visitor.visit_column(self)

    def farewell(self, visitor: Visitor) -> None:
        visitor.leave_column(self)


@attr.s(auto_attribs=True, frozen=True)
class RelationshipDescriptor(Node):
    name: str
    role: Role
    foreign_entity: typing.Type
    local_key: str
    foreign_key: str

    def accept(self, visitor: Visitor) -> None:
        visitor.visit_relationship(self)

    def farewell(self, visitor: Visitor) -> None:
        visitor.leave_relationship(self)


@attr.s(auto_attribs=True, frozen=True)
class EntityDescriptor(Node):
    entity_class: typing.Type
    table_name: str
    columns: typing.Tuple[ColumnDescriptor, ...]
    relationships: typing.Tuple[RelationshipDescriptor, ...] = ()

    @property
    def children(self) -> typing.Sequence[Node]:
        return self.columns + self.relationships

    @property
    def primary_key(self) -> ColumnDescriptor:
        return next(column for column in self.columns if column.primary_key)

    def column_for(self, name: str) -> typing.Optional[ColumnDescriptor]:
        """Finds a column by field name first, then by column name."""
        for column in self.columns:
            if column.field_name == name:
                return column
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def accept(self, visitor: Visitor) -> None:
        visitor.visit_entity(self)

    def farewell(self, visitor: Visitor) -> None:
        visitor.leave_entity(self)


def table_name_of(entity_class: typing.Type) -> str:
    table_name = getattr(entity_class, "__tablename__", None) or inflection.underscore(entity_class.__name__)
    try:
        return validate_identifier(table_name, "table")
    except (TypeError, ValueError) as exc:
        raise MappingError(f"{entity_class.__name__}: {exc}") from exc


def _default(field: attr.Attribute) -> typing.Any:
    if field.default is attr.NOTHING:
        return None
    if isinstance(field.default, attr.Factory):
        # factories taking self are evaluated per instance by attrs itself
        return None if field.default.takes_self else field.default.factory()
    return field.default


def _parse_column(entity_class: typing.Type, field: attr.Attribute) -> ColumnDescriptor:
    options: ColumnOptions = field.metadata.get(COLUMN_METADATA_KEY, ColumnOptions())
    field_type = field.type
    primary_key = options.primary_key
    nullable = False

    if field_type is None:
        raise MappingError(f"{entity_class.__name__}.{field.name} has no type annotation")

    if _is_generic(field_type):
        if Identity.is_identity(field_type):
            field_type = _get_wrapped_type(field_type)
            primary_key = True
        elif _is_field_nullable(field_type):
            field_type = _non_null_member(field_type)
            nullable = True
        else:
            raise MappingError(f"{entity_class.__name__}.{field.name}: unhandled generic type - {field_type}")

    if options.nullable is not None:
        nullable = options.nullable
    if primary_key:
        nullable = False

    try:
        sql_type = native_type_to_column.convert(field_type)
    except TypeError as exc:
        raise MappingError(f"{entity_class.__name__}.{field.name}: {exc}") from exc

    column_name = options.name or field.name
    try:
        validate_identifier(column_name, "column")
    except (TypeError, ValueError) as exc:
        raise MappingError(f"{entity_class.__name__}.{field.name}: {exc}") from exc

    return ColumnDescriptor(
        name=column_name,
        field_name=field.name,
        python_type=field_type,
        sql_type=sql_type,
        nullable=nullable,
        primary_key=primary_key,
        auto_generated=options.auto_generated,
        default=_default(field),
    )


def build_columns(entity_class: typing.Type) -> typing.Tuple[ColumnDescriptor, ...]:
    """Columns of an entity, without resolving its relationships."""
    try:
        attr.resolve_types(entity_class)
    except NameError as exc:
        raise MappingError(f"{entity_class.__name__}: cannot resolve annotation - {exc}") from exc

    columns: typing.List[ColumnDescriptor] = []
    for field in attr.fields(entity_class):
        if field.name in RESERVED_NAMES:
            raise MappingError(f"{entity_class.__name__}.{field.name} shadows an ActiveRecord method")
        columns.append(_parse_column(entity_class, field))

    seen: typing.Dict[str, str] = {}
    for column in columns:
        if column.name in seen:
            raise MappingError(
                f"{entity_class.__name__}: fields {seen[column.name]!r} and {column.field_name!r} "
                f"both map to column {column.name!r}"
            )
        seen[column.name] = column.field_name

    primary_keys = [column for column in columns if column.primary_key]
    if not primary_keys:
        raise MappingError(f"{entity_class.__name__} has no primary key")
    if len(primary_keys) > 1:
        names = ", ".join(column.field_name for column in primary_keys)
        raise MappingError(f"{entity_class.__name__} has more than one primary key: {names}")

    return tuple(columns)


def _declarations(entity_class: typing.Type) -> typing.List[RelationshipDeclaration]:
    declarations: typing.Dict[str, RelationshipDeclaration] = {}
    for klass in reversed(entity_class.__mro__):
        for name, value in vars(klass).items():
            if isinstance(value, RelationshipDeclaration):
                declarations[name] = value
    return list(declarations.values())


def _require_column(
    columns: typing.Sequence[ColumnDescriptor], name: str, entity_class: typing.Type, relationship: str
) -> str:
    if not any(column.name == name for column in columns):
        raise MappingError(f"{relationship}: {entity_class.__name__} has no column {name!r}")
    return name


def _parse_relationship(
    entity_class: typing.Type,
    columns: typing.Sequence[ColumnDescriptor],
    declaration: RelationshipDeclaration,
    registry: "Registry",
) -> RelationshipDescriptor:
    label = f"{entity_class.__name__}.{declaration.name}"
    target = registry.resolve(declaration.target, entity_class)
    target_columns = build_columns(target)

    if declaration.role is Role.BELONGS_TO:
        local_key = declaration.local_key or f"{declaration.name}_id"
        foreign_key = declaration.foreign_key or next(c.name for c in target_columns if c.primary_key)
    else:
        local_key = declaration.local_key or next(c.name for c in columns if c.primary_key)
        foreign_key = declaration.foreign_key or f"{inflection.underscore(entity_class.__name__)}_id"

    return RelationshipDescriptor(
        name=declaration.name,
        role=declaration.role,
        foreign_entity=target,
        local_key=_require_column(columns, local_key, entity_class, label),
        foreign_key=_require_column(target_columns, foreign_key, target, label),
    )


def build(entity_class: typing.Type, registry: "Registry") -> EntityDescriptor:
    columns = build_columns(entity_class)
    relationships = tuple(
        _parse_relationship(entity_class, columns, declaration, registry)
        for declaration in _declarations(entity_class)
    )
    return EntityDescriptor(
        entity_class=entity_class, table_name=table_name_of(entity_class), columns=columns, relationships=relationships
    )
