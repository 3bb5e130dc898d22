import typing

import pytest

from active_orm import ActiveRecord, Database, Identity, NoDatabaseBound, column


class Book(ActiveRecord):
    isbn: Identity[str]
    title: str
    pages: typing.Optional[int] = column(name="page_count")
    rating: float = 0.0


@pytest.fixture()
def bound_db(fake_db):
    Book.bind(fake_db)
    yield fake_db
    Book.bind(None)


def test_constructor_values_are_pending_changes():
    book = Book(isbn="978-0", title="Dune")

    dirty = [attribute.column.field_name for attribute in book.mapping().dirty_attributes()]
    assert dirty == ["isbn", "title"]
    assert not book.mapping().persisted


def test_column_values_live_in_the_mapping():
    book = Book(title="Dune")

    assert "title" not in book.__dict__
    assert book.title == "Dune"
    assert book.mapping().attribute("title").state.read() == "Dune"
    assert book.rating == 0.0


def test_assignment_is_tracked():
    book = Book()

    book.pages = 412

    assert book.mapping().attribute_for_column("page_count").state.has_been_modified()


def test_identity_reads_the_primary_key():
    assert Book(isbn="978-0").identity() == "978-0"
    assert Book().identity() is None


def test_unknown_attributes_raise():
    book = Book()

    with pytest.raises(AttributeError):
        book.author

    book.note = "kept on the instance"
    assert book.note == "kept on the instance"
    assert book.mapping().dirty_attributes() == []


def test_mapping_is_created_once():
    book = Book()

    assert book.mapping() is book.mapping()


def test_operations_need_a_database():
    with pytest.raises(NoDatabaseBound):
        Book(isbn="978-0").save()

    with pytest.raises(NoDatabaseBound):
        Book.find("978-0")


def test_bound_database_is_used_by_default(bound_db, recording):
    book = Book(isbn="978-0", title="Dune")

    assert book.save()
    assert book.destroy()

    assert recording.sql == [
        "INSERT INTO book (isbn, title, rating) VALUES (?, ?, ?)",
        "DELETE FROM book WHERE isbn = ?",
    ]


def test_explicit_database_wins_over_bound_one(bound_db, recording):
    other = type(recording)()
    Book(isbn="978-0").save(Database(connection=other))

    assert recording.statements == []
    assert other.sql == ["INSERT INTO book (isbn, rating) VALUES (?, ?)"]


def test_find_selects_by_primary_key(bound_db, recording):
    recording.rows = [{"isbn": "978-0", "title": "Dune", "page_count": 412, "rating": 4.5}]

    book = Book.find("978-0")

    assert recording.statements == [
        ("SELECT isbn, title, page_count, rating FROM book WHERE isbn = ? LIMIT 1", ["978-0"])
    ]
    assert (book.title, book.pages, book.rating) == ("Dune", 412, 4.5)
    assert book.mapping().persisted
    assert book.mapping().dirty_attributes() == []


def test_find_returns_none_without_rows(bound_db):
    assert Book.find("missing") is None
