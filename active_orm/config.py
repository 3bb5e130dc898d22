from typing import Optional

import attr


def _non_empty(instance: "DatabaseConfig", attribute: attr.Attribute, value: str) -> None:
    if not value:
        raise ValueError(f"{attribute.name} must not be empty")


@attr.s(auto_attribs=True, frozen=True)
class DatabaseConfig:
    url: str = attr.ib(validator=[attr.validators.instance_of(str), _non_empty])
    echo: bool = False
    pool_pre_ping: bool = False
    quote_char: Optional[str] = attr.ib(default=None, validator=attr.validators.in_([None, '"', "`"]))
