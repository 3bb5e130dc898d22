from active_orm.config import DatabaseConfig
from active_orm.connection import Connection, ExecuteResult, SqlAlchemyConnection
from active_orm.database import Database
from active_orm.declarations import Identity, Role, belongs_to, column, has_many, has_one
from active_orm.dialect import SqlDialect, StandardDialect
from active_orm.entity import ActiveRecord
from active_orm.errors import (
    ActiveOrmError,
    ConstraintViolation,
    DbConnectionError,
    MappingError,
    NoDatabaseBound,
    QueryError,
)
from active_orm.query import Query
from active_orm.schema import create_tables

__all__ = [
    "ActiveRecord",
    "ActiveOrmError",
    "Connection",
    "ConstraintViolation",
    "Database",
    "DatabaseConfig",
    "DbConnectionError",
    "ExecuteResult",
    "Identity",
    "MappingError",
    "NoDatabaseBound",
    "Query",
    "QueryError",
    "Role",
    "SqlAlchemyConnection",
    "SqlDialect",
    "StandardDialect",
    "belongs_to",
    "column",
    "create_tables",
    "has_many",
    "has_one",
]
