"""Conversion between resource identifiers and database values."""

from __future__ import annotations

import abc
import dataclasses
import re
import threading
from typing import Any, ClassVar

DEFAULT_RESOURCE = "<default>"

_INT64 = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class ResourceError(Exception):
    """Raised when an identifier cannot be registered, encoded or decoded."""


@dataclasses.dataclass
class Identifier:
    """A resource identifier: application name, resource type and resource id."""

    application_name: str = ""
    resource_type: str = ""
    resource_id: str = ""

    MESSAGE_NAME: ClassVar[str] = "atlas.rpc.Identifier"

    def build_string(self) -> str:
        """Return the fully qualified form ``app/type/id`` of the non-empty parts."""
        parts = (self.application_name, self.resource_type, self.resource_id)
        return "/".join(part for part in parts if part)

    @classmethod
    def parse_string(cls, value: str) -> Identifier:
        """Parse ``id``, ``type/id`` or ``app/type/id``."""
        parts = value.split("/", 2)
        if len(parts) == 1:
            return cls(resource_id=parts[0])
        if len(parts) == 2:
            return cls(resource_type=parts[0], resource_id=parts[1])
        return cls(*parts)

    def is_nil(self) -> bool:
        """Tell whether every part is empty."""
        return not (self.application_name or self.resource_type or self.resource_id)


class Codec(abc.ABC):
    """Converts between identifiers and database values; must be thread safe."""

    @abc.abstractmethod
    def encode(self, value: Any) -> Identifier | None:
        """Encode a database value as an identifier."""

    @abc.abstractmethod
    def decode(self, identifier: Identifier | None) -> Any:
        """Decode an identifier to a database value."""


class _State:
    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.registry: dict[str, Codec] = {}
        self.appname = ""
        self.as_empty = False
        self.as_plural = False


_state = _State()


def message_name(pb: Any) -> str:
    """Return the fully qualified message name of ``pb``."""
    descriptor = getattr(pb, "DESCRIPTOR", None)
    full_name = getattr(descriptor, "full_name", None)
    if isinstance(full_name, str):
        return full_name
    declared = getattr(pb, "MESSAGE_NAME", None)
    if isinstance(declared, str):
        return declared
    return type(pb).__name__


def _registry_key(pb: Any) -> str:
    return DEFAULT_RESOURCE if pb is None else message_name(pb)


def register_application(name: str) -> None:
    """Register the application name used by ``encode``; only once."""
    with _state.lock:
        if _state.appname:
            raise ResourceError("resource: application name already registered")
        _state.appname = name


def set_return_empty() -> None:
    """Make ``encode`` return an empty identifier for None values."""
    with _state.lock:
        _state.as_empty = True


def return_empty() -> bool:
    """Tell whether None values are encoded as empty identifiers."""
    with _state.lock:
        return _state.as_empty


def set_plural() -> None:
    """Make ``name`` return names in plural form."""
    with _state.lock:
        _state.as_plural = True


def plural() -> bool:
    """Tell whether ``set_plural`` was called."""
    with _state.lock:
        return _state.as_plural


def register_codec(codec: Codec | None, pb: Any) -> None:
    """Register ``codec`` for messages like ``pb``, or as default when ``pb`` is None."""
    key = _registry_key(pb)
    with _state.lock:
        if codec is None:
            raise ResourceError("resource: register nil codec for resource " + key)
        if key in _state.registry:
            raise ResourceError("resource: register codec called twice for resource " + key)
        _state.registry[key] = codec


def reset_registry() -> None:
    """Forget all codecs, the application name and the flags."""
    with _state.lock:
        _state.registry.clear()
        _state.appname = ""
        _state.as_empty = False
        _state.as_plural = False


def _lookup_codec(pb: Any) -> Codec | None:
    key = _registry_key(pb)
    with _state.lock:
        return _state.registry.get(key)


def application_name() -> str:
    """Return the registered application name."""
    with _state.lock:
        return _state.appname


def _camel_to_snake(value: str) -> str:
    value = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", value)
    value = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", value)
    return value.lower()


def name(pb: Any) -> str:
    """Return the resource name of ``pb``.

    A ``resource_name()`` method wins; otherwise the last part of the message
    name in snake case, with an ``s`` added in plural mode.
    """
    if pb is None:
        return ""
    namer = getattr(pb, "resource_name", None)
    if callable(namer):
        return namer()
    result = _camel_to_snake(message_name(pb).split(".")[-1])
    if plural():
        result += "s"
    return result


def decode(pb: Any, identifier: Identifier | None) -> Any:
    """Decode ``identifier`` with the codec registered for ``pb``.

    Without a codec: a nil identifier gives None, a None ``pb`` gives the fully
    qualified string, and otherwise the resource id after checking the
    application name and resource type.
    """
    codec = _lookup_codec(pb)
    if codec is not None:
        return codec.decode(identifier)
    if identifier is None or identifier.is_nil():
        return None
    if pb is None:
        return identifier.build_string()
    app = application_name()
    resource = name(pb)
    if identifier.application_name not in (app, ""):
        raise ResourceError(
            f"resource: invalid application name - {identifier.application_name}, expected {app}"
        )
    if identifier.resource_type not in (resource, ""):
        raise ResourceError(
            f"resource: invalid resource name - {identifier.resource_type}, expected {resource}"
        )
    return identifier.resource_id


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def decode_int64(pb: Any, identifier: Identifier | None) -> int:
    """Decode ``identifier`` to a 64-bit integer; None and "" give 0."""
    value = decode(pb, identifier)
    if value is None:
        return 0
    if _is_int(value):
        return value
    if not isinstance(value, str):
        raise ResourceError("resource: invalid value type, expected int64")
    if value == "":
        return 0
    if not _INT64.fullmatch(value):
        raise ResourceError("resource: invalid value type, expected int64")
    number = int(value)
    if not _INT64_MIN <= number <= _INT64_MAX:
        raise ResourceError("resource: invalid value type, expected int64")
    return number


def decode_bytes(pb: Any, identifier: Identifier | None) -> bytes | None:
    """Decode ``identifier`` to bytes; None and "" give None."""
    value = decode(pb, identifier)
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if not isinstance(value, str):
        raise ResourceError("resource: invalid value type, expected []byte")
    if value == "":
        return None
    return value.encode()


def encode(pb: Any, value: Any) -> Identifier | None:
    """Encode ``value`` with the codec registered for ``pb``.

    Without a codec the value must be str, bytes or int. With a None ``pb`` a
    string is parsed as a fully qualified identifier. Missing application
    name and resource type are filled from the registry and ``name(pb)``.
    """
    codec = _lookup_codec(pb)
    if codec is not None:
        return codec.encode(value)
    if value is None:
        return Identifier() if return_empty() else None
    if isinstance(value, (bytes, bytearray)):
        text = bytes(value).decode()
    elif _is_int(value):
        text = str(value)
    elif isinstance(value, str):
        text = value
    else:
        raise ResourceError(f"resource: unsupported value type {type(value).__name__}")
    if text == "":
        return Identifier()
    identifier = Identifier.parse_string(text) if pb is None else Identifier()
    if not identifier.application_name:
        identifier.application_name = application_name()
    if not identifier.resource_type:
        identifier.resource_type = name(pb)
    if not identifier.resource_id:
        identifier.resource_id = text
    return identifier