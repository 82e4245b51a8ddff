"""
Desired state bag handed to resource reconcilers.
"""

import collections.abc
import dataclasses
import typing

from provisioner.providers.base.resource_exceptions import (
    ResourceValidationException,
    ShapeException,
)

TYPE_STRING = "string"
TYPE_BOOL = "bool"
TYPE_INT = "int"
TYPE_FLOAT = "float"
TYPE_LIST = "list"
TYPE_SET = "set"
TYPE_MAP = "map"

_ZERO_VALUES = {
    TYPE_STRING: "",
    TYPE_BOOL: False,
    TYPE_INT: 0,
    TYPE_FLOAT: 0.0,
}


@dataclasses.dataclass
class Field:
    """
    Schema of a single field.

    Args:
        type (str): one of the TYPE_* constants.
        required (bool): the configuration must provide it.
        default: value used when the configuration doesn't set the field.
        elem: element type for sets/lists/maps, either a TYPE_* constant or a
            nested schema (dict of name -> Field) for lists of blocks.
        max_items (int): maximum number of list elements.
    """

    type: str
    required: bool = False
    default: typing.Any = None
    elem: typing.Any = None
    max_items: typing.Optional[int] = None

    def zero(self):
        if self.type == TYPE_LIST:
            return []
        if self.type == TYPE_SET:
            return frozenset()
        if self.type == TYPE_MAP:
            return {}
        return _ZERO_VALUES[self.type]


Schema = dict[str, Field]


def _coerce_scalar(field_type: str, value, key: str):
    if field_type == TYPE_STRING:
        if isinstance(value, str):
            return value
    elif field_type == TYPE_BOOL:
        if isinstance(value, bool):
            return value
    elif field_type == TYPE_INT:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
    elif field_type == TYPE_FLOAT:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    raise ShapeException(
        f"field '{key}' expects {field_type}, got {type(value).__name__}"
    )


def normalize(field: Field, value, key: str):
    """
    Coerce a raw value into the canonical shape of `field`.

    Sets become frozensets, nested blocks get their schema defaults filled in
    and their unset keys dropped.
    """
    if field.type == TYPE_SET:
        if isinstance(value, (str, bytes, dict)) or not isinstance(
            value, collections.abc.Iterable
        ):
            raise ShapeException(f"field '{key}' expects a set")
        return frozenset(_coerce_scalar(field.elem, v, key) for v in value)

    if field.type == TYPE_MAP:
        if not isinstance(value, dict):
            raise ShapeException(f"field '{key}' expects a map")
        return {
            str(k): _coerce_scalar(field.elem or TYPE_STRING, v, f"{key}.{k}")
            for k, v in value.items()
        }

    if field.type == TYPE_LIST:
        if not isinstance(value, (list, tuple)):
            raise ShapeException(f"field '{key}' expects a list")
        if field.max_items is not None and len(value) > field.max_items:
            raise ShapeException(
                f"field '{key}' accepts at most {field.max_items} item(s), got {len(value)}"
            )
        if isinstance(field.elem, dict):
            return [
                normalize_block(field.elem, item, f"{key}.{i}")
                for i, item in enumerate(value)
            ]
        return [_coerce_scalar(field.elem, v, key) for v in value]

    return _coerce_scalar(field.type, value, key)


def normalize_block(schema: Schema, block, key: str) -> dict:
    if block is None:
        block = {}
    if not isinstance(block, dict):
        raise ShapeException(f"block '{key}' expects a map")
    unknown = set(block) - set(schema)
    if unknown:
        raise ShapeException(f"block '{key}' has unknown fields: {sorted(unknown)}")

    normalized = {}
    for name, field in schema.items():
        value = block.get(name)
        if value is None:
            if field.default is not None:
                normalized[name] = field.default
            continue
        normalized[name] = normalize(field, value, f"{key}.{name}")
    return normalized


def _missing_required(schema: Schema, values: dict, prefix: str) -> list[str]:
    missing = []
    for key, field in schema.items():
        if key not in values:
            if field.required:
                missing.append(f"{prefix}{key}")
            continue
        if field.type == TYPE_LIST and isinstance(field.elem, dict):
            for i, block in enumerate(values[key]):
                missing.extend(
                    _missing_required(field.elem, block, f"{prefix}{key}.{i}.")
                )
    return missing


def to_primitive(value):
    """Convert a normalized value into something json.dumps can handle."""
    if isinstance(value, frozenset):
        return sorted(value)
    if isinstance(value, dict):
        return {k: to_primitive(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_primitive(v) for v in value]
    return value


class ResourceData:
    """
    One resource instance: the user's configuration, the state observed on the
    previous run and the state observed on this run.

    `config` holds only what the user wrote, so presence in it means the field
    was explicitly set. `prior_state` is used for change detection. Reads write
    what the remote API returned through `set()`.
    """

    def __init__(
        self,
        schema: Schema,
        config: typing.Optional[dict] = None,
        prior_state: typing.Optional[dict] = None,
        id: str = "",
    ):
        self.schema = schema
        self._config = self._normalize_all(config or {}, "config")
        self._prior = self._normalize_all(prior_state or {}, "state")
        self._observed: dict = {}
        self._id = id or ""

    def _normalize_all(self, values: dict, origin: str) -> dict:
        normalized = {}
        for key, value in values.items():
            if key not in self.schema:
                raise ShapeException(f"unknown {origin} field '{key}'")
            if value is None:
                continue
            normalized[key] = normalize(self.schema[key], value, key)
        return normalized

    @property
    def id(self) -> str:
        return self._id

    def set_id(self, id: str):
        self._id = id or ""

    def _default(self, key: str):
        field = self.schema[key]
        if field.default is not None:
            return field.default
        return field.zero()

    def _field(self, key: str) -> Field:
        try:
            return self.schema[key]
        except KeyError:
            raise ShapeException(f"unknown field '{key}'") from None

    def get(self, key: str):
        """Configured value, falling back to the schema default or zero value."""
        self._field(key)
        if key in self._config:
            return self._config[key]
        return self._default(key)

    def is_set(self, key: str) -> bool:
        """Whether the configuration explicitly provides `key`."""
        self._field(key)
        return key in self._config

    def get_ok(self, key: str) -> tuple[typing.Any, bool]:
        return self.get(key), self.is_set(key)

    def get_prior(self, key: str):
        self._field(key)
        if key in self._prior:
            return self._prior[key]
        return self._default(key)

    def has_change(self, key: str) -> bool:
        return self.get(key) != self.get_prior(key)

    def set(self, key: str, value):
        """Record an observed remote value. None removes the field."""
        field = self._field(key)
        if value is None:
            self._observed.pop(key, None)
            return
        self._observed[key] = normalize(field, value, key)

    def observed(self, key: str, default=None):
        return self._observed.get(key, default)

    def clear(self):
        self._observed = {}

    def validate(self):
        """Check that every required field, nested ones included, is configured."""
        missing = _missing_required(self.schema, self._config, "")
        if missing:
            raise ResourceValidationException(
                f"missing required field(s): {', '.join(missing)}"
            )

    def state(self) -> dict:
        return {key: to_primitive(value) for key, value in self._observed.items()}

    def __contains__(self, key: str) -> bool:
        return key in self._observed

    def __repr__(self):
        return f"ResourceData(id={self._id!r}, state={self.state()!r})"
