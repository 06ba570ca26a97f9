"""Nested configuration objects built from and edited by dot paths."""

import copy
from collections.abc import Iterable, Mapping
from typing import Any

from foxshrine_api.lib.config_store.keys import KEY_SEPARATOR, normalize_key, split_key
from foxshrine_api.lib.config_store.values import coerce_value


def set_path(config: dict[str, Any], key: str, value: Any) -> dict[str, Any]:
    """Assign ``value`` at the dot path ``key`` inside ``config`` (in place).

    Missing intermediate levels are created; an intermediate holding a
    non-dict value is replaced by a dict.

    Returns:
        The same ``config`` object.
    """
    segments = split_key(key)
    cursor = config
    for segment in segments[:-1]:
        child = cursor.get(segment)
        if not isinstance(child, dict):
            child = {}
            cursor[segment] = child
        cursor = child
    cursor[segments[-1]] = value
    return config


def get_path(config: Mapping[str, Any], key: str, default: Any = None) -> Any:
    """Read the value at a dot path, or ``default`` when any level is missing."""
    cursor: Any = config
    for segment in split_key(key):
        if not isinstance(cursor, Mapping) or segment not in cursor:
            return default
        cursor = cursor[segment]
    return cursor


def build_config_object(rows: Iterable[tuple[str, Any]]) -> dict[str, Any]:
    """Materialize flat ``(key, stored_value)`` rows into a nested dict.

    Keys are normalized and values coerced. Rows apply in iteration order,
    so the last row for a colliding path wins.

    Example:
        >>> build_config_object([("a.b", "1"), ("a.c", "2")])
        {'a': {'b': 1, 'c': 2}}
    """
    config: dict[str, Any] = {}
    for key, value in rows:
        set_path(config, normalize_key(key), coerce_value(value))
    return config


def _is_object(item: Any) -> bool:
    return isinstance(item, dict)


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` onto ``base`` without mutating either.

    Nested dicts merge key by key; any other override value (lists
    included) replaces the base value.
    """
    output = copy.deepcopy(dict(base))
    for key, value in override.items():
        if _is_object(value) and _is_object(output.get(key)):
            output[key] = deep_merge(output[key], value)
        else:
            output[key] = copy.deepcopy(value)
    return output


def flatten_config(config: Mapping[str, Any], prefix: str = "") -> list[tuple[str, Any]]:
    """Flatten a nested config into ``(dot_path, leaf_value)`` pairs.

    Dicts are descended into; every other value (lists included) is a leaf.

    Example:
        >>> flatten_config({"a": {"b": 1}, "c": [1, 2]})
        [('a.b', 1), ('c', [1, 2])]
    """
    pairs: list[tuple[str, Any]] = []
    for key, value in config.items():
        path = f"{prefix}{KEY_SEPARATOR}{key}" if prefix else key
        if isinstance(value, Mapping) and value:
            pairs.extend(flatten_config(value, path))
        else:
            pairs.append((path, value))
    return pairs
