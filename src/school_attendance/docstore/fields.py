"""Field-level write semantics shared by every store backend.

Writes are plain JSON-like values, dotted field paths (``"history.01"``),
and the sentinels below. Backends stage a batch by calling
:func:`apply_set` / :func:`apply_update` on copies of the current documents.
"""

from __future__ import annotations

import copy
from datetime import datetime
from typing import Any, Mapping, Optional


class _Sentinel:
    def __init__(self, name: str):
        self._name = name

    def __repr__(self) -> str:
        return self._name


SERVER_TIMESTAMP = _Sentinel("SERVER_TIMESTAMP")
DELETE_FIELD = _Sentinel("DELETE_FIELD")


class ArrayUnion:
    """Append each value that is not already present (deep equality)."""

    def __init__(self, *values: Any):
        self.values = [copy.deepcopy(v) for v in values]

    def apply(self, current: Any) -> list:
        out = list(current) if isinstance(current, list) else []
        for value in self.values:
            if value not in out:
                out.append(copy.deepcopy(value))
        return out

    def __repr__(self) -> str:
        return f"ArrayUnion({self.values!r})"


class ArrayRemove:
    """Drop every element deep-equal to one of the values."""

    def __init__(self, *values: Any):
        self.values = [copy.deepcopy(v) for v in values]

    def apply(self, current: Any) -> list:
        if not isinstance(current, list):
            return []
        return [item for item in current if item not in self.values]

    def __repr__(self) -> str:
        return f"ArrayRemove({self.values!r})"


_TRANSFORMS = (ArrayUnion, ArrayRemove)


def split_path(path: str) -> list[str]:
    parts = path.split(".")
    if not path or any(not p for p in parts):
        raise ValueError(f"Invalid field path: {path!r}")
    return parts


def get_path(data: Mapping[str, Any], path: str) -> Any:
    node: Any = data
    for part in split_path(path):
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    return node


def _resolve(value: Any, now: datetime) -> Any:
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, _TRANSFORMS):
        return value.apply(None)
    if isinstance(value, Mapping):
        return {k: _resolve(v, now) for k, v in value.items() if v is not DELETE_FIELD}
    if isinstance(value, (list, tuple)):
        return [_resolve(v, now) for v in value]
    return copy.deepcopy(value)


def _assign(node: dict, key: str, value: Any, now: datetime) -> None:
    if value is DELETE_FIELD:
        node.pop(key, None)
    elif isinstance(value, _TRANSFORMS):
        node[key] = value.apply(node.get(key))
    else:
        node[key] = _resolve(value, now)


def _merge_into(target: dict, data: Mapping[str, Any], now: datetime) -> None:
    for key, value in data.items():
        if isinstance(value, Mapping):
            child = target.get(key)
            if not isinstance(child, dict):
                child = {}
                target[key] = child
            _merge_into(child, value, now)
        else:
            _assign(target, key, value, now)


def apply_set(existing: Optional[dict], data: Mapping[str, Any], *, merge: bool, now: datetime) -> dict:
    """Overwrite the document, or deep-merge into it when ``merge`` is set."""
    doc = copy.deepcopy(existing) if (merge and existing is not None) else {}
    _merge_into(doc, data, now)
    return doc


def apply_update(existing: dict, fields: Mapping[str, Any], *, now: datetime) -> dict:
    """Replace only the targeted field paths; every other field is kept."""
    doc = copy.deepcopy(existing)
    for path, value in fields.items():
        parts = split_path(path)
        node = doc
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        _assign(node, parts[-1], value, now)
    return doc
