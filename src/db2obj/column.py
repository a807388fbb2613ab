"""
Column descriptors: name, access flags, stored value and relation linkage.
"""
import base64
import binascii
import enum
import json
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from db2obj.table import MappedTable

logger = logging.getLogger(__name__)

__all__ = [
    'Flag',
    'ColumnDescriptor',
    'serialize_value',
    'deserialize_value',
]


class Flag(enum.IntFlag):
    """Access flags carried by a column descriptor."""
    NONE = 0
    EXCLUDE_GET = 1       # value hidden from get_column_value
    EXCLUDE_SET = 2       # value settable once, then write-protected
    EXCLUDE_UPDATE = 4    # left out of update()
    UNIQUE_ID = 8         # the table's primary identifier
    SERIALIZE_VALUE = 16  # stored as encoded text, exposed as structured value


_TUPLE_TAG = '__tuple__'
_ITEMS_TAG = '__items__'
_SCALARS = (str, int, float, bool)


def _encode(value: Any) -> Any:
    """JSON-ready form of `value`.

    Tuples and dicts that JSON cannot hold as-is (non-string keys, or a key
    equal to a tag) are wrapped in single-key tag objects.
    """
    if value is None or type(value) in _SCALARS:
        return value
    if isinstance(value, list):
        return [_encode(item) for item in value]
    if isinstance(value, tuple):
        return {_TUPLE_TAG: [_encode(item) for item in value]}
    if isinstance(value, dict):
        if all(isinstance(key, str) for key in value) and not value.keys() & {_TUPLE_TAG, _ITEMS_TAG}:
            return {key: _encode(item) for key, item in value.items()}
        return {_ITEMS_TAG: [[_encode(key), _encode(item)] for key, item in value.items()]}
    raise TypeError(f'{type(value).__name__} values cannot be serialized')


def _decode_object(obj: dict) -> Any:
    if len(obj) == 1:
        if _TUPLE_TAG in obj:
            return tuple(obj[_TUPLE_TAG])
        if _ITEMS_TAG in obj:
            return {key: item for key, item in obj[_ITEMS_TAG]}
    return obj


def serialize_value(value: Any) -> str | None:
    """Encode a list, tuple or dict as base64 JSON text for a text column.

    Nested values may be None, str, int, float, bool, list, tuple or dict; dict keys
    may be any of those scalars or tuples of them. Anything else, at the top
    level or nested, yields None.
    """
    if not isinstance(value, (list, tuple, dict)):
        return None
    try:
        text = json.dumps(_encode(value))
    except (TypeError, ValueError) as err:
        logger.debug(f'Value not serializable: {err}')
        return None
    return base64.b64encode(text.encode('utf-8')).decode('ascii')


def deserialize_value(stored: Any) -> Any:
    """Exact inverse of `serialize_value`.

    Non-text input, or text that does not decode, yields None.
    """
    if isinstance(stored, bytes):
        try:
            stored = stored.decode('ascii')
        except UnicodeDecodeError:
            return None
    if not isinstance(stored, str):
        return None
    try:
        text = base64.b64decode(stored, validate=True).decode('utf-8')
        return json.loads(text, object_hook=_decode_object)
    except (binascii.Error, TypeError, ValueError) as err:
        logger.debug(f'Stored value does not decode: {err}')
        return None


class ColumnDescriptor:
    """Metadata and value holder for one column of a mapped table.

    `relation` names the mapped table this column points at, either as the
    class itself or as an identifier registered with
    `db2obj.registry.register_table`. `relation_column` overrides which column
    of that table is matched; by default its unique id column is used.
    """

    def __init__(self, name: str, flags: int = Flag.NONE,
                 relation: 'type[MappedTable] | str | None' = None) -> None:
        self._name = name
        self.flags = Flag(flags)
        self.value: Any = None
        self.needs_initial_value = True
        self.changed = False
        self.relation = relation or None
        self.relation_column: str | None = None

    def __repr__(self) -> str:
        return f'ColumnDescriptor({self._name!r}, flags={self.flags!r}, value={self.value!r})'

    @property
    def name(self) -> str:
        return self._name

    def has_flag(self, flag: Flag) -> bool:
        return bool(self.flags & flag)

    @property
    def is_unique(self) -> bool:
        return self.has_flag(Flag.UNIQUE_ID)

    @property
    def has_relation(self) -> bool:
        return self.relation is not None

    def get_value(self, ignore_flags: bool = False) -> Any:
        """Visible value; deserialized when SERIALIZE_VALUE applies.
        """
        if (not ignore_flags and self.has_flag(Flag.SERIALIZE_VALUE)
                and self.value is not None):
            return deserialize_value(self.value)
        return self.value

    def set_value(self, value: Any, ignore_flags: bool = False) -> None:
        """Store `value`, serializing it when SERIALIZE_VALUE applies.

        Marks the column changed when `value` differs from the visible value.
        """
        if value != self.get_value():
            self.changed = True
        if not ignore_flags and self.has_flag(Flag.SERIALIZE_VALUE):
            self.value = serialize_value(value)
        else:
            self.value = value
        self.needs_initial_value = False

    def reset(self) -> None:
        """Return to the freshly constructed state."""
        self.value = None
        self.needs_initial_value = True
        self.changed = False

    def set_relation(self, relation: 'type[MappedTable] | str | None') -> None:
        self.relation = relation or None

    def set_relation_column(self, name: str | None) -> None:
        self.relation_column = name or None
