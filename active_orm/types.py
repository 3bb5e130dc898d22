import enum
import typing
import uuid
from datetime import date, datetime
from decimal import Decimal
from functools import singledispatch


@singledispatch
def to_storage(argument: typing.Any) -> typing.Any:
    return argument


@to_storage.register(uuid.UUID)
def _(argument: uuid.UUID) -> str:
    return str(argument)


@to_storage.register(Decimal)
def _(argument: Decimal) -> str:
    return str(argument)


@to_storage.register(date)
def _(argument: date) -> str:
    return argument.isoformat()


@to_storage.register(datetime)
def _(argument: datetime) -> str:
    return argument.isoformat()


@to_storage.register(enum.Enum)
def _(argument: enum.Enum) -> str:
    return argument.name


@to_storage.register(bool)
def _(argument: bool) -> int:
    return int(argument)


def _to_uuid(argument: typing.Any) -> uuid.UUID:
    return argument if isinstance(argument, uuid.UUID) else uuid.UUID(str(argument))


def _to_datetime(argument: typing.Any) -> datetime:
    return argument if isinstance(argument, datetime) else datetime.fromisoformat(str(argument))


def _to_date(argument: typing.Any) -> date:
    if isinstance(argument, datetime):
        return argument.date()
    return argument if isinstance(argument, date) else date.fromisoformat(str(argument))


def _to_bytes(argument: typing.Any) -> bytes:
    return bytes(argument)


mapping = {
    uuid.UUID: _to_uuid,
    Decimal: lambda argument: Decimal(str(argument)),
    datetime: _to_datetime,
    date: _to_date,
    bool: bool,
    float: float,
    bytes: _to_bytes,
}


def from_storage(argument: typing.Any, python_type: typing.Type) -> typing.Any:
    if argument is None:
        return None
    if isinstance(python_type, type) and issubclass(python_type, enum.Enum):
        return argument if isinstance(argument, python_type) else python_type[argument]
    try:
        return mapping[python_type](argument)
    except KeyError:
        return argument
