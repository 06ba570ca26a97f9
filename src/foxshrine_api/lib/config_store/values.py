"""Typed coercion of stored configuration values.

Values are persisted as text. On read they are coerced, in priority order,
to JSON (object/array), boolean, number, or left as the original string.
"""

import json
import math
import re
from decimal import Decimal
from typing import Any

_BOOL_RE = re.compile(r"^(true|false)$", re.IGNORECASE)
_NUMBER_RE = re.compile(r"^-?\d+(?:\.\d+)?$", re.ASCII)


def _looks_like_json_container(text: str) -> bool:
    return (text.startswith("{") and text.endswith("}")) or (text.startswith("[") and text.endswith("]"))


def coerce_value(value: Any) -> Any:
    """Coerce a stored value to its semantic type.

    Rules, applied to the stripped string:

    1. ``{...}`` / ``[...]``: parsed as JSON; the raw string on parse failure.
    2. ``true`` / ``false`` (any case): ``bool``.
    3. ``-?digits(.digits)?`` with a finite value: ``int`` or ``float``.
    4. Anything else: the original string, untouched.

    Non-string values (including ``None``) are returned unchanged.
    """
    if not isinstance(value, str):
        return value

    trimmed = value.strip()

    if _looks_like_json_container(trimmed):
        try:
            return json.loads(trimmed)
        except ValueError:
            return value

    if _BOOL_RE.match(trimmed):
        return trimmed.lower() == "true"

    if _NUMBER_RE.match(trimmed):
        number = float(trimmed)
        if math.isfinite(number):
            if "." in trimmed:
                return number
            return int(trimmed)

    return value


def serialize_value(value: Any) -> str:
    """Serialize a value for storage.

    Dicts and lists become compact JSON; booleans become ``"true"`` /
    ``"false"``; ``None`` becomes ``"null"``; finite floats use positional
    notation (``0.00001``, not ``1e-05``); everything else is
    ``str()``.
    """
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float) and math.isfinite(value):
        return format(Decimal(repr(value)), "f")
    return str(value)
