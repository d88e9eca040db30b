"""
Structural deep clone for documents, actions and snapshots.

A JSON round-trip would drop ``None``-valued optionals and turn tuples
into lists, so the clone walks the structure instead: dataclasses are
rebuilt field by field, lists / tuples / dicts are copied recursively,
and scalars (str, int, float, bool, None, Enum members) are shared.
"""
from __future__ import annotations

import dataclasses
from enum import Enum
from typing import TypeVar

T = TypeVar("T")

_SCALARS = (str, int, float, bool, bytes, type(None), Enum)


def deep_clone(value: T) -> T:
    """Return a structurally independent copy of *value*."""
    if isinstance(value, _SCALARS):
        return value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        kwargs = {
            f.name: deep_clone(getattr(value, f.name))
            for f in dataclasses.fields(value)
            if f.init
        }
        return type(value)(**kwargs)  # type: ignore[return-value]
    if isinstance(value, list):
        return [deep_clone(v) for v in value]  # type: ignore[return-value]
    if isinstance(value, tuple):
        return tuple(deep_clone(v) for v in value)  # type: ignore[return-value]
    if isinstance(value, dict):
        return {k: deep_clone(v) for k, v in value.items()}  # type: ignore[return-value]
    if isinstance(value, set):
        return {deep_clone(v) for v in value}  # type: ignore[return-value]
    # Anything else (e.g. datetime) is treated as an immutable value
    return value
