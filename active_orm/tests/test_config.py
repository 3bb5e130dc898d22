import pytest

from active_orm import Database, DatabaseConfig, SqlAlchemyConnection


def test_database_from_config(tmp_path):
    config = DatabaseConfig(url=f"sqlite:///{tmp_path / 'config.db'}", quote_char='"')

    database = Database.from_config(config)

    assert isinstance(database.connection, SqlAlchemyConnection)
    assert database.dialect.delete("user", ["id"], ["="]) == 'DELETE FROM "user" WHERE "id" = ?'
    database.connection.engine.dispose()


@pytest.mark.parametrize("kwargs", [{"url": ""}, {"url": None}, {"url": "sqlite://", "quote_char": "'"}])
def test_rejects_invalid_config(kwargs: dict):
    with pytest.raises((TypeError, ValueError)):
        DatabaseConfig(**kwargs)
