"""Site configuration rules: key aliases, value coercion, dot-path trees.

Pure functions shared by the server-side store and the client cache.
"""

from foxshrine_api.lib.config_store.defaults import DEFAULT_SITE_CONFIG
from foxshrine_api.lib.config_store.keys import LEGACY_KEY_MAP, normalize_key, split_key
from foxshrine_api.lib.config_store.tree import (
    build_config_object,
    deep_merge,
    flatten_config,
    get_path,
    set_path,
)
from foxshrine_api.lib.config_store.values import coerce_value, serialize_value

__all__ = [
    "DEFAULT_SITE_CONFIG",
    "LEGACY_KEY_MAP",
    "build_config_object",
    "coerce_value",
    "deep_merge",
    "flatten_config",
    "get_path",
    "normalize_key",
    "serialize_value",
    "set_path",
    "split_key",
]
