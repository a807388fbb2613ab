"""
Registry of mapped tables, keyed by identifier.

Relations name their target either by class or by an identifier registered
here; identifiers are resolved when the owning table registers its columns,
so every reachable relation target is known before any query runs.
"""
import logging
import threading
from typing import TYPE_CHECKING

from db2obj.exceptions import UnknownRelationError

if TYPE_CHECKING:
    from db2obj.table import MappedTable

logger = logging.getLogger(__name__)

_TABLE_REGISTRY: dict[str, type['MappedTable']] = {}
_registry_lock = threading.RLock()


def register_table(identifier: str):
    """Decorator to register a mapped table under an identifier.

    Usage:
        @register_table('user')
        class User(MappedTable):
            ...
    """
    def decorator(cls: type['MappedTable']) -> type['MappedTable']:
        with _registry_lock:
            existing = _TABLE_REGISTRY.get(identifier)
            if existing is not None and existing is not cls:
                logger.warning(f'Table identifier {identifier!r} rebound from '
                               f'{existing.__qualname__} to {cls.__qualname__}')
            _TABLE_REGISTRY[identifier] = cls
        cls.identifier = identifier
        return cls
    return decorator


def unregister_table(identifier: str) -> None:
    with _registry_lock:
        _TABLE_REGISTRY.pop(identifier, None)


def get_registered_tables() -> dict[str, type['MappedTable']]:
    """Snapshot of identifier -> table class."""
    with _registry_lock:
        return dict(_TABLE_REGISTRY)


def resolve_relation(target: 'type[MappedTable] | str') -> type['MappedTable']:
    """Resolve a relation target to its table class.

    Raises
        UnknownRelationError: If the identifier is not registered or the
        class is not a mapped table
    """
    from db2obj.table import MappedTable

    if isinstance(target, str):
        with _registry_lock:
            cls = _TABLE_REGISTRY.get(target)
        if cls is None:
            raise UnknownRelationError(f'No mapped table registered as {target!r}')
        return cls

    if isinstance(target, type) and issubclass(target, MappedTable):
        return target

    raise UnknownRelationError(f'Relation target {target!r} is not a mapped table')
