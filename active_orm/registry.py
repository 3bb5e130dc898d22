import logging
import threading
from typing import Any, Dict, List, Type, Union

import attr

from active_orm import metadata
from active_orm.errors import MappingError
from active_orm.metadata import EntityDescriptor

logger = logging.getLogger(__name__)


@attr.s(auto_attribs=True)
class Registry:
    """
    Process-wide knowledge about entity classes.

    Descriptors are built at most once per class, under a lock, and only read
    afterwards.
    """

    entities: Dict[str, List[Type]] = attr.Factory(dict)
    descriptors: Dict[Type, EntityDescriptor] = attr.Factory(dict)
    _lock: Any = attr.ib(factory=threading.RLock, repr=False)

    def register(self, entity_class: Type) -> None:
        with self._lock:
            self.entities.setdefault(entity_class.__name__, []).append(entity_class)

    def is_registered(self, entity_class: Type) -> bool:
        return entity_class in self.entities.get(entity_class.__name__, ())

    def resolve(self, target: Union[str, Type], owner: Type) -> Type:
        """
        Finds the entity class a relationship points to.

        A class name is looked up among registered entities, preferring the
        latest one declared in the owner's module.
        """
        if not isinstance(target, str):
            if isinstance(target, type) and self.is_registered(target):
                return target
            raise MappingError(f"{owner.__name__}: relationship target {target!r} is not an entity")

        candidates = self.entities.get(target, [])
        same_module = [candidate for candidate in candidates if candidate.__module__ == owner.__module__]
        if same_module:
            return same_module[-1]
        if len(candidates) == 1:
            return candidates[0]
        if not candidates:
            raise MappingError(f"{owner.__name__}: relationship references unknown entity {target!r}")
        modules = ", ".join(candidate.__module__ for candidate in candidates)
        raise MappingError(f"{owner.__name__}: entity name {target!r} is ambiguous, declared in {modules}")

    def descriptor_for(self, entity_class: Type) -> EntityDescriptor:
        try:
            return self.descriptors[entity_class]
        except KeyError:
            pass

        with self._lock:
            if entity_class not in self.descriptors:
                descriptor = metadata.build(entity_class, self)
                logger.debug(
                    "Mapped %s onto table %s (%d columns, %d relationships)",
                    entity_class.__name__,
                    descriptor.table_name,
                    len(descriptor.columns),
                    len(descriptor.relationships),
                )
                self.descriptors[entity_class] = descriptor
            return self.descriptors[entity_class]


default_registry = Registry()
