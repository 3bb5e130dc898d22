import itertools
import typing

import pytest
from _pytest.config.argparsing import Parser
from _pytest.fixtures import SubRequest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from active_orm.connection import Connection, ExecuteResult, SqlAlchemyConnection
from active_orm.database import Database
from active_orm.metadata import ColumnDescriptor


def pytest_addoption(parser: Parser) -> None:
    parser.addoption("--sqlalchemy-url", action="store", default=None)


class RecordingConnection(Connection):
    """Remembers every statement and answers with scripted results."""

    def __init__(self) -> None:
        self.statements: typing.List[typing.Tuple[str, typing.List[typing.Any]]] = []
        self.affected_rows = 1
        self.generated_keys = itertools.count(1)
        self.rows: typing.List[typing.Dict[str, typing.Any]] = []

    @property
    def sql(self) -> typing.List[str]:
        return [sql for sql, _ in self.statements]

    def execute(
        self, sql: str, params: typing.Sequence[typing.Any], primary_key: typing.Optional[ColumnDescriptor] = None
    ) -> ExecuteResult:
        self.statements.append((sql, list(params)))
        generated_key = None
        if primary_key is not None and primary_key.auto_generated and self.affected_rows > 0:
            generated_key = next(self.generated_keys)
        return ExecuteResult(self.affected_rows, generated_key)

    def fetch_all(self, sql: str, params: typing.Sequence[typing.Any]) -> typing.List[typing.Dict[str, typing.Any]]:
        self.statements.append((sql, list(params)))
        return [dict(row) for row in self.rows]


@pytest.fixture()
def recording() -> RecordingConnection:
    return RecordingConnection()


@pytest.fixture()
def fake_db(recording: RecordingConnection) -> Database:
    return Database(connection=recording)


@pytest.fixture()
def engine(request: SubRequest, tmp_path) -> typing.Generator[Engine, None, None]:
    connection_url = request.config.getoption("--sqlalchemy-url") or f"sqlite:///{tmp_path / 'active_orm.db'}"
    engine = create_engine(connection_url)
    yield engine
    engine.dispose()


@pytest.fixture()
def database(engine: Engine) -> Database:
    return Database(connection=SqlAlchemyConnection(engine))
