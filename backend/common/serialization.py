"""
Serialization Utilities

Converts engine result objects (dataclasses, enums, datetimes) into plain
JSON-compatible structures for the HTTP layer.
"""

import datetime
from enum import Enum
from dataclasses import is_dataclass, fields
from typing import Any


def serialize(obj: Any) -> Any:
    """
    Serialize an object into dicts, lists and primitives.

    Args:
        obj: The object to serialize

    Returns:
        JSON-compatible representation of ``obj``
    """
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj

    if isinstance(obj, (datetime.datetime, datetime.date)):
        return obj.isoformat()

    if isinstance(obj, Enum):
        return obj.value

    if isinstance(obj, (list, tuple, set, frozenset)):
        return [serialize(item) for item in obj]

    if isinstance(obj, dict):
        return {serialize(key): serialize(value) for key, value in obj.items()}

    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: serialize(getattr(obj, f.name)) for f in fields(obj)}

    return str(obj)
