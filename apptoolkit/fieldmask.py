"""Copying selected fields between objects of one dataclass type."""

from __future__ import annotations

import copy
import dataclasses
from collections.abc import Iterable
from typing import Any


class FieldMaskError(ValueError):
    """Raised when a merge with a field mask cannot be done."""


def _is_struct(obj: Any) -> bool:
    return dataclasses.is_dataclass(obj) and not isinstance(obj, type)


def _has_field(obj: Any, name: str) -> bool:
    return _is_struct(obj) and any(f.name == name for f in dataclasses.fields(obj))


def _copy_value(value: Any) -> Any:
    return copy.copy(value) if _is_struct(value) else value


def _blank_like(value: Any) -> Any:
    try:
        return type(value)()
    except TypeError as exc:
        raise FieldMaskError(f"Cannot create an empty {type(value).__name__}") from exc


def _merge_path(source: Any, dest: Any, path: str) -> None:
    parts = path.split(".")
    last = len(parts) - 1
    src, dst = source, dest
    for depth, part in enumerate(parts):
        if not _is_struct(dst):
            return
        if not (_has_field(src, part) and _has_field(dst, part)):
            raise FieldMaskError(
                f'Field path "{path}" doesn\'t exist in type {type(source).__name__}'
            )
        src_value = getattr(src, part)
        if depth == last:
            setattr(dst, part, _copy_value(src_value))
            return
        dst_value = getattr(dst, part)
        if dst_value is None and src_value is not None:
            dst_value = _blank_like(src_value)
            setattr(dst, part, dst_value)
        src, dst = src_value, dst_value


def merge_with_mask(source: Any, dest: Any, mask: Iterable[str] | None) -> None:
    """Copy the fields of ``source`` named by the dotted paths in ``mask`` into ``dest``."""
    paths = list(mask or ())
    if not paths:
        return
    if source is None:
        raise FieldMaskError("Source object is nil")
    if dest is None:
        raise FieldMaskError("Destination object is nil")
    if type(source) is not type(dest):
        raise FieldMaskError("Types of source and destination objects do not match")
    for path in paths:
        _merge_path(source, dest, path)