"""
JSON payload codec for documents.

Turns a frozen document dataclass into plain JSON types and back, driven by
the dataclass field annotations.  Decimals travel as strings so no precision
is lost; dates and datetimes as ISO-8601; UUIDs as strings; enums as their
values; tuples as lists.
"""

from __future__ import annotations

import types
import typing
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Any
from uuid import UUID


def encode_value(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: encode_value(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, (tuple, list)):
        return [encode_value(v) for v in value]
    raise TypeError(f"Cannot encode {type(value).__name__} for document payload")


@lru_cache(maxsize=None)
def _hints(cls: type) -> dict[str, Any]:
    return typing.get_type_hints(cls)


def decode_value(hint: Any, value: Any) -> Any:
    if value is None:
        return None
    origin = typing.get_origin(hint)
    if origin is typing.Union or origin is types.UnionType:
        inner = [a for a in typing.get_args(hint) if a is not type(None)]
        return decode_value(inner[0], value)
    if origin is tuple:
        item_hint = typing.get_args(hint)[0]
        return tuple(decode_value(item_hint, v) for v in value)
    if hint is Decimal:
        return Decimal(value)
    if hint is datetime:
        return datetime.fromisoformat(value)
    if hint is date:
        return date.fromisoformat(value)
    if hint is UUID:
        return UUID(value)
    if isinstance(hint, type) and issubclass(hint, Enum):
        return hint(value)
    if isinstance(hint, type) and is_dataclass(hint):
        return decode_dataclass(hint, value)
    return value


def decode_dataclass(cls: type, payload: dict[str, Any]) -> Any:
    """Rebuild ``cls`` from ``payload``; absent keys fall back to defaults."""
    hints = _hints(cls)
    kwargs = {
        f.name: decode_value(hints[f.name], payload[f.name])
        for f in fields(cls)
        if f.init and f.name in payload
    }
    return cls(**kwargs)


def encode_document(document: Any) -> dict[str, Any]:
    return encode_value(document)
