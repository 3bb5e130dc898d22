import enum
import typing
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, Float, Integer, LargeBinary, Numeric, String
from sqlalchemy.types import TypeEngine

# Values are bound through types.to_storage, so UUIDs and enums travel as strings
mapping = {
    int: Integer,
    str: String(255),
    float: Float,
    bool: Boolean,
    Decimal: Numeric,
    uuid.UUID: String(36),
    date: Date,
    datetime: DateTime,
    bytes: LargeBinary,
}


def convert(arg: typing.Type) -> TypeEngine:
    if isinstance(arg, type) and issubclass(arg, enum.Enum):
        return String(255)
    try:
        return mapping[arg]
    except (KeyError, TypeError):
        raise TypeError(f"Unsupported type - {arg}")
