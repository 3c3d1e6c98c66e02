"""Conversion of span attributes into flat wire attributes."""

import json
from datetime import datetime
from typing import Any

Scalar = str | bool | int | float


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, bool, int, float))


def _wire_value(value: Any) -> Any:
    if _is_scalar(value):
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return list(value)
    return json.dumps(value, default=str)


def flatten_attributes(attributes: dict[str, Any]) -> dict[str, Any]:
    """Flatten span attributes for the tracing backend.

    A list of mappings becomes indexed groups (`key.0.sub`, `key.1.sub`, ...),
    other mappings and mixed lists become JSON strings, lists of strings are
    kept as sequences and None values are dropped.
    """
    flat: dict[str, Any] = {}
    for key, value in attributes.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)) and value and all(isinstance(v, dict) for v in value):
            for index, group in enumerate(value):
                for sub_key, sub_value in group.items():
                    if sub_value is not None:
                        flat[f"{key}.{index}.{sub_key}"] = _wire_value(sub_value)
            continue
        flat[key] = _wire_value(value)
    return flat
