import typing

import attr
from sqlalchemy import create_engine

from active_orm.config import DatabaseConfig
from active_orm.connection import Connection, SqlAlchemyConnection
from active_orm.dialect import SqlDialect, StandardDialect
from active_orm.errors import NoDatabaseBound


@attr.s(auto_attribs=True, frozen=True)
class Database:
    """What the engine needs from the outside world: a way to phrase SQL and a way to run it."""

    connection: Connection
    dialect: SqlDialect = attr.Factory(StandardDialect)

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> "Database":
        engine = create_engine(config.url, echo=config.echo, pool_pre_ping=config.pool_pre_ping)
        return cls(connection=SqlAlchemyConnection(engine), dialect=StandardDialect(quote_char=config.quote_char))


def resolve_database(entity_class: typing.Type, database: typing.Optional[Database] = None) -> Database:
    if database is not None:
        return database
    bound = getattr(entity_class, "__database__", None)
    if bound is None:
        raise NoDatabaseBound(
            f"No database given for {entity_class.__name__}; pass one explicitly or call {entity_class.__name__}.bind()"
        )
    return bound
