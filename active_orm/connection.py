import abc
import itertools
import logging
import re
import typing

import attr
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DisconnectionError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.sql import TextClause

from active_orm.errors import ConstraintViolation, DbConnectionError
from active_orm.metadata import ColumnDescriptor

logger = logging.getLogger(__name__)

Params = typing.Sequence[typing.Any]
Row = typing.Dict[str, typing.Any]


@attr.s(auto_attribs=True, frozen=True)
class ExecuteResult:
    affected_rows: int
    generated_key: typing.Any = None


class Connection(abc.ABC):
    @abc.abstractmethod
    def execute(
        self, sql: str, params: Params, primary_key: typing.Optional[ColumnDescriptor] = None
    ) -> ExecuteResult:
        """
        Runs a statement with positional parameters.

        When ``primary_key`` is given and auto-generated, the key the database
        assigned to an inserted row is reported back as ``generated_key``.
        """

    @abc.abstractmethod
    def fetch_all(self, sql: str, params: Params) -> typing.List[Row]:
        pass


# single-quoted literals are matched first so a ``?`` inside one is left alone
_PLACEHOLDER = re.compile(r"'(?:[^']|'')*'|\?")


def bind_parameters(sql: str, params: Params) -> typing.Tuple[TextClause, typing.Dict[str, typing.Any]]:
    """Turns positional ``?`` placeholders into named binds SQLAlchemy compiles for the driver."""
    counter = itertools.count(1)

    def _name(match: "re.Match[str]") -> str:
        if match.group(0) != "?":
            return match.group(0)
        return f":p{next(counter)}"

    statement = _PLACEHOLDER.sub(_name, sql)
    placeholders = next(counter) - 1
    if placeholders != len(params):
        raise ValueError(f"Statement has {placeholders} placeholders but got {len(params)} parameters")
    return text(statement), {f"p{index}": value for index, value in enumerate(params, start=1)}


class SqlAlchemyConnection(Connection):
    """
    Runs statements on a SQLAlchemy engine, one transaction per statement.

    Generated keys are read from the DB-API cursor's ``lastrowid``, which
    SQLite and MySQL drivers report.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def execute(
        self, sql: str, params: Params, primary_key: typing.Optional[ColumnDescriptor] = None
    ) -> ExecuteResult:
        statement, parameters = bind_parameters(sql, params)
        logger.debug("Executing %s with %r", sql, parameters)
        try:
            with self.engine.begin() as conn:
                result = conn.execute(statement, parameters)
                generated_key = None
                if primary_key is not None and primary_key.auto_generated:
                    generated_key = result.lastrowid
                return ExecuteResult(affected_rows=int(result.rowcount), generated_key=generated_key)
        except IntegrityError as exc:
            raise ConstraintViolation(str(exc.orig)) from exc
        except (OperationalError, InterfaceError, DisconnectionError) as exc:
            raise DbConnectionError(str(exc)) from exc

    def fetch_all(self, sql: str, params: Params) -> typing.List[Row]:
        statement, parameters = bind_parameters(sql, params)
        logger.debug("Fetching %s with %r", sql, parameters)
        try:
            with self.engine.connect() as conn:
                result = conn.execute(statement, parameters)
                return [dict(row) for row in result.mappings()]
        except (OperationalError, InterfaceError, DisconnectionError) as exc:
            raise DbConnectionError(str(exc)) from exc
