import logging
import typing

import pytest

from active_orm import ActiveRecord, Database, DbConnectionError, Identity, column
from active_orm.connection import Connection, ExecuteResult


class User(ActiveRecord):
    id: Identity[int] = column(auto_generated=True)
    name: str
    email: str


class Tag(ActiveRecord):
    label: Identity[str]
    uses: int = 0


class BrokenConnection(Connection):
    def execute(self, sql, params, primary_key=None) -> ExecuteResult:
        raise DbConnectionError("connection reset")

    def fetch_all(self, sql, params) -> typing.List[dict]:
        raise DbConnectionError("connection reset")


def test_insert_update_and_noop(fake_db, recording):
    user = User(name="Ann", email="ann@example.com")

    assert user.save(fake_db)
    assert user.id == 1
    assert user.mapping().persisted

    user.name = "Bo"
    assert user.save(fake_db)
    assert user.save(fake_db)

    assert recording.statements == [
        ("INSERT INTO user (name, email) VALUES (?, ?)", ["Ann", "ann@example.com"]),
        ("UPDATE user SET name = ? WHERE id = ?", ["Bo", 1]),
    ]
    assert user.mapping().dirty_attributes() == []


def test_update_sets_every_modified_column(fake_db, recording):
    user = User(name="Ann", email="ann@example.com")
    user.save(fake_db)

    user.name = "Bo"
    user.email = "bo@example.com"
    user.save(fake_db)

    assert recording.statements[-1] == ("UPDATE user SET name = ?, email = ? WHERE id = ?", ["Bo", "bo@example.com", 1])


def test_reverting_a_change_skips_the_update(fake_db, recording):
    user = User(name="Ann", email="ann@example.com")
    user.save(fake_db)

    user.name = "Bo"
    user.name = "Ann"

    assert user.save(fake_db)
    assert recording.sql == ["INSERT INTO user (name, email) VALUES (?, ?)"]


def test_failed_insert_keeps_the_record_new(fake_db, recording, caplog):
    user = User(name="Ann", email="ann@example.com")
    recording.affected_rows = 0

    with caplog.at_level(logging.WARNING, logger="active_orm.persistence"):
        assert not user.save(fake_db)

    assert not user.mapping().persisted
    assert user.id is None
    assert "affected no rows" in caplog.text

    recording.affected_rows = 1
    assert user.save(fake_db)
    assert recording.sql == ["INSERT INTO user (name, email) VALUES (?, ?)"] * 2
    assert user.id == 1


def test_stale_update_returns_false_and_keeps_changes(fake_db, recording, caplog):
    user = User(name="Ann", email="ann@example.com")
    user.save(fake_db)
    user.name = "Bo"
    recording.affected_rows = 0

    with caplog.at_level(logging.WARNING, logger="active_orm.persistence"):
        assert not user.save(fake_db)

    assert "Stale state" in caplog.text
    assert [attribute.column.name for attribute in user.mapping().dirty_attributes()] == ["name"]


def test_supplied_key_is_inserted_as_is(fake_db, recording):
    tag = Tag(label="python", uses=3)

    assert tag.save(fake_db)

    assert recording.statements == [("INSERT INTO tag (label, uses) VALUES (?, ?)", ["python", 3])]
    assert tag.label == "python"


def test_insert_stores_declared_defaults(fake_db, recording):
    tag = Tag(label="rust")

    assert tag.save(fake_db)

    assert recording.statements == [("INSERT INTO tag (label, uses) VALUES (?, ?)", ["rust", 0])]
    assert tag.mapping().dirty_attributes() == []


def test_changing_the_key_updates_the_stored_row(fake_db, recording):
    tag = Tag(label="python", uses=3)
    tag.save(fake_db)

    tag.label = "py"
    tag.save(fake_db)
    tag.destroy(fake_db)

    assert recording.statements[1:] == [
        ("UPDATE tag SET label = ? WHERE label = ?", ["py", "python"]),
        ("DELETE FROM tag WHERE label = ?", ["py"]),
    ]


def test_destroying_a_new_record_returns_false(fake_db, recording):
    user = User(name="Ann")
    recording.affected_rows = 0

    assert not user.destroy(fake_db)
    assert recording.statements == [("DELETE FROM user WHERE id = ?", [None])]


def test_save_after_destroy_inserts_the_whole_row(fake_db, recording):
    user = User(name="Ann", email="ann@example.com")
    user.save(fake_db)

    assert user.destroy(fake_db)
    assert not user.mapping().persisted
    assert user.save(fake_db)

    assert recording.statements[1:] == [
        ("DELETE FROM user WHERE id = ?", [1]),
        ("INSERT INTO user (id, name, email) VALUES (?, ?, ?)", [1, "Ann", "ann@example.com"]),
    ]
    assert user.id == 1


def test_connection_failure_leaves_bookkeeping_untouched():
    database = Database(connection=BrokenConnection())
    user = User(name="Ann", email="ann@example.com")

    with pytest.raises(DbConnectionError):
        user.save(database)

    assert not user.mapping().persisted
    assert not user.mapping().saving
    assert user.id is None
    assert len(user.mapping().dirty_attributes()) == 2


def test_insert_without_values_uses_defaults(fake_db, recording):
    User().save(fake_db)

    assert recording.statements == [("INSERT INTO user DEFAULT VALUES", [])]
