import typing

from sqlalchemy import Integer, MetaData, String, inspect

from active_orm import ActiveRecord, Identity, belongs_to, column, create_tables, has_many
from active_orm.schema import build_tables


class Shelf(ActiveRecord):
    id: Identity[int] = column(auto_generated=True)
    label: str = column(name="shelf_label")
    volumes = has_many("Volume")


class Volume(ActiveRecord):
    code: Identity[str]
    shelf_id: typing.Optional[int]
    shelf = belongs_to(Shelf)


def test_builds_a_table_per_entity():
    shelf, volume = build_tables(MetaData(), Shelf, Volume)

    assert shelf.name == "shelf"
    assert [c.name for c in shelf.columns] == ["id", "shelf_label"]
    assert isinstance(shelf.c.id.type, Integer)
    assert shelf.c.id.primary_key and shelf.c.id.autoincrement is True
    assert not shelf.c.shelf_label.nullable

    assert isinstance(volume.c.code.type, String)
    assert volume.c.code.autoincrement is False
    assert volume.c.shelf_id.nullable
    assert [fk.target_fullname for fk in volume.c.shelf_id.foreign_keys] == ["shelf.id"]


def test_foreign_keys_need_the_target_table():
    (volume,) = build_tables(MetaData(), Volume)

    assert not volume.c.shelf_id.foreign_keys


def test_create_tables(engine):
    create_tables(engine, Shelf, Volume)

    assert set(inspect(engine).get_table_names()) >= {"shelf", "volume"}
