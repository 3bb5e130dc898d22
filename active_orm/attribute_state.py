import typing

import attr


def _is_entity(value: typing.Any) -> bool:
    return callable(getattr(value, "mapping", None))


def _differs(value: typing.Any, original: typing.Any) -> bool:
    if _is_entity(value) or _is_entity(original):
        return value is not original
    return bool(value != original)


@attr.s(auto_attribs=True, eq=False)
class AttributeState:
    value: typing.Any = None
    original_value: typing.Any = None
    dirty: bool = False

    @classmethod
    def initial(cls, default: typing.Any) -> "AttributeState":
        return cls(value=default, original_value=default)

    def read(self) -> typing.Any:
        return self.value

    def write(self, value: typing.Any) -> None:
        self.value = value
        self.dirty = _differs(value, self.original_value)

    def mark_clean(self) -> None:
        self.original_value = self.value
        self.dirty = False

    def invalidate(self) -> None:
        # nothing is stored anymore, every known value has to be written again
        self.dirty = self.value is not None

    def has_been_modified(self) -> bool:
        return self.dirty
