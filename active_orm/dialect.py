import abc
import re
import typing

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

Ordering = typing.Sequence[typing.Tuple[str, str]]


def validate_identifier(name: str, identifier_type: str = "identifier") -> str:
    """
    Checks that a table or column name is safe to interpolate into SQL.

    Identifiers are never taken from user input; this only rejects
    declarations that could not be rendered.
    """
    if not isinstance(name, str):
        raise TypeError(f"{identifier_type} must be a string, got {type(name).__name__}")
    if not _IDENTIFIER.match(name):
        raise ValueError(
            f"Invalid {identifier_type} {name!r}: "
            "must start with a letter or underscore and contain only alphanumeric characters and underscores"
        )
    return name


class SqlDialect(abc.ABC):
    """Pure SQL synthesis. Placeholders are positional and bound as set values followed by where values."""

    @abc.abstractmethod
    def insert(self, table: str, columns: typing.Sequence[str]) -> str:
        pass

    @abc.abstractmethod
    def update(
        self,
        table: str,
        set_columns: typing.Sequence[str],
        where_columns: typing.Sequence[str],
        where_operators: typing.Sequence[str],
    ) -> str:
        pass

    @abc.abstractmethod
    def delete(self, table: str, where_columns: typing.Sequence[str], where_operators: typing.Sequence[str]) -> str:
        pass

    @abc.abstractmethod
    def select(
        self,
        table: str,
        projection: typing.Sequence[str],
        where_columns: typing.Sequence[str] = (),
        where_operators: typing.Sequence[str] = (),
        order_by: typing.Optional[Ordering] = None,
        limit: typing.Optional[int] = None,
        offset: typing.Optional[int] = None,
    ) -> str:
        pass


class StandardDialect(SqlDialect):
    PLACEHOLDER = "?"
    OPERATORS = frozenset({"=", "!=", "<>", "<", "<=", ">", ">=", "LIKE"})
    DIRECTIONS = frozenset({"ASC", "DESC"})

    def __init__(self, quote_char: typing.Optional[str] = None) -> None:
        self.quote_char = quote_char

    def _identifier(self, name: str) -> str:
        validate_identifier(name)
        if self.quote_char:
            return f"{self.quote_char}{name}{self.quote_char}"
        return name

    def _where(self, columns: typing.Sequence[str], operators: typing.Sequence[str]) -> str:
        if len(columns) != len(operators):
            raise ValueError(f"Got {len(columns)} where columns but {len(operators)} operators")
        if not columns:
            return ""
        conditions = []
        for column_name, operator in zip(columns, operators):
            operator = operator.upper()
            if operator not in self.OPERATORS:
                raise ValueError(f"Unsupported operator {operator!r}")
            conditions.append(f"{self._identifier(column_name)} {operator} {self.PLACEHOLDER}")
        return " WHERE " + " AND ".join(conditions)

    def insert(self, table: str, columns: typing.Sequence[str]) -> str:
        if not columns:
            return f"INSERT INTO {self._identifier(table)} DEFAULT VALUES"
        column_names = ", ".join(self._identifier(name) for name in columns)
        placeholders = ", ".join(self.PLACEHOLDER for _ in columns)
        return f"INSERT INTO {self._identifier(table)} ({column_names}) VALUES ({placeholders})"

    def update(
        self,
        table: str,
        set_columns: typing.Sequence[str],
        where_columns: typing.Sequence[str],
        where_operators: typing.Sequence[str],
    ) -> str:
        if not set_columns:
            raise ValueError("UPDATE needs at least one column to set")
        set_clause = ", ".join(f"{self._identifier(name)} = {self.PLACEHOLDER}" for name in set_columns)
        return f"UPDATE {self._identifier(table)} SET {set_clause}{self._where(where_columns, where_operators)}"

    def delete(self, table: str, where_columns: typing.Sequence[str], where_operators: typing.Sequence[str]) -> str:
        return f"DELETE FROM {self._identifier(table)}{self._where(where_columns, where_operators)}"

    def select(
        self,
        table: str,
        projection: typing.Sequence[str],
        where_columns: typing.Sequence[str] = (),
        where_operators: typing.Sequence[str] = (),
        order_by: typing.Optional[Ordering] = None,
        limit: typing.Optional[int] = None,
        offset: typing.Optional[int] = None,
    ) -> str:
        columns = ", ".join(self._identifier(name) for name in projection) if projection else "*"
        sql = f"SELECT {columns} FROM {self._identifier(table)}{self._where(where_columns, where_operators)}"

        if order_by:
            terms = []
            for column_name, direction in order_by:
                direction = direction.upper()
                if direction not in self.DIRECTIONS:
                    raise ValueError(f"Unsupported ordering direction {direction!r}")
                terms.append(f"{self._identifier(column_name)} {direction}")
            sql += " ORDER BY " + ", ".join(terms)

        if offset is not None and limit is None:
            raise ValueError("OFFSET requires a LIMIT")
        if limit is not None:
            sql += f" LIMIT {self._count(limit, 'limit')}"
        if offset is not None:
            sql += f" OFFSET {self._count(offset, 'offset')}"
        return sql

    @staticmethod
    def _count(value: int, what: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError(f"{what} must be a non-negative integer, got {value!r}")
        return value
